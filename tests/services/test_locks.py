"""
Tests for per-company recalculation locks.
"""

import threading

import pytest

from hours_bank.exceptions import ConcurrentRecalculation
from hours_bank.services.locks import LockRegistry


def hold_in_thread(locks, company_id):
    """Take the company's lock in another thread until released."""
    taken = threading.Event()
    release = threading.Event()

    def worker():
        with locks.hold(company_id):
            taken.set()
            release.wait(5)

    thread = threading.Thread(target=worker)
    thread.start()
    taken.wait(5)
    return release, thread


class TestLockRegistry:

    def test_second_holder_is_rejected(self):
        locks = LockRegistry(timeout=0)
        release, thread = hold_in_thread(locks, 1)
        try:
            with pytest.raises(ConcurrentRecalculation) as exc_info:
                with locks.hold(1):
                    pass
            assert exc_info.value.status_code == 409
        finally:
            release.set()
            thread.join()

    def test_other_companies_do_not_contend(self):
        locks = LockRegistry(timeout=0)
        release, thread = hold_in_thread(locks, 1)
        try:
            with locks.hold(2):
                pass
        finally:
            release.set()
            thread.join()

    def test_lock_is_reentrant_for_the_holder(self):
        locks = LockRegistry(timeout=0)
        with locks.hold(1):
            with locks.hold(1):
                pass

    def test_waits_up_to_timeout(self):
        locks = LockRegistry(timeout=0)
        release, thread = hold_in_thread(locks, 1)
        threading.Timer(0.05, release.set).start()
        with locks.hold(1, timeout=5):
            pass
        thread.join()


class TestRecalculationUnderLock:

    def test_recalculation_rejected_while_company_is_busy(
        self, service, locks, company, make_contract
    ):
        make_contract(company.id)
        service.get_or_calculate(company.id, 2024, 1)

        release, thread = hold_in_thread(locks, company.id)
        try:
            with pytest.raises(ConcurrentRecalculation):
                service.recalculate(company.id, 2024, 1)
        finally:
            release.set()
            thread.join()

        assert service.recalculate(company.id, 2024, 1).version == 1
