"""
Per-company recalculation locks.

Recomputing a company's months is a forward chain (each month needs
the previous month's rollover), so two recalculations of the same
company must never interleave. Different companies never contend.

Locks are re-entrant for the holding thread: an adjustment takes
the lock, persists, and then runs the cascade, which takes it again.
"""

import logging
import threading
from contextlib import contextmanager

from hours_bank.config import get_settings
from hours_bank.exceptions import ConcurrentRecalculation

logger = logging.getLogger(__name__)


class LockRegistry:

    def __init__(self, timeout: float | None = None):
        if timeout is None:
            timeout = get_settings().RECALC_LOCK_TIMEOUT_SECONDS
        self.timeout = timeout
        self._locks: dict[int, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, company_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(company_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[company_id] = lock
            return lock

    @contextmanager
    def hold(self, company_id: int, timeout: float | None = None):
        """
        Hold the company's recalculation lock for the block.

        Waits up to ``timeout`` seconds (the registry default when
        omitted, 0 means do not wait) and raises
        ConcurrentRecalculation if the lock is still taken.
        """
        wait = self.timeout if timeout is None else timeout
        lock = self._lock_for(company_id)

        if wait > 0:
            acquired = lock.acquire(timeout=wait)
        else:
            acquired = lock.acquire(blocking=False)

        if not acquired:
            logger.info(
                "Recalculation lock busy",
                extra={"company_id": company_id, "operation": "lock"},
            )
            raise ConcurrentRecalculation(
                f"A recalculation for company {company_id} is already running",
                details={"company_id": company_id, "waited_seconds": wait},
            )
        try:
            yield
        finally:
            lock.release()


# Shared by every request handled by this process.
default_registry = LockRegistry()
