"""
Ledger events.

The engine does not render anything for end users. It emits
structured events and leaves presentation to whoever listens.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Protocol

from hours_bank.services.periods import format_period


class EventKind(str, enum.Enum):
    DEFICIT_DETECTED = "deficit_detected"
    OVERAGE_GENERATED = "overage_generated"
    RATE_MISSING = "rate_missing"
    ADJUSTMENT_APPLIED = "adjustment_applied"
    CALCULATION_SUCCEEDED = "calculation_succeeded"
    CALCULATION_FAILED = "calculation_failed"


@dataclass
class LedgerEvent:
    kind: EventKind
    company_id: int
    year: int
    month: int
    payload: dict = field(default_factory=dict)

    @property
    def period(self) -> str:
        return format_period(self.year, self.month)


class Notifier(Protocol):
    def emit(self, event: LedgerEvent) -> None:  # pragma: no cover - interface
        ...


_WARNING_EVENTS = {
    EventKind.DEFICIT_DETECTED,
    EventKind.RATE_MISSING,
    EventKind.CALCULATION_FAILED,
}


class LoggingNotifier:
    """Default notifier: writes every event to the hours_bank.events logger."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("hours_bank.events")

    def emit(self, event: LedgerEvent) -> None:
        level = logging.WARNING if event.kind in _WARNING_EVENTS else logging.INFO
        self.logger.log(
            level,
            "%s for %s",
            event.kind.value,
            event.period,
            extra={
                "company_id": event.company_id,
                "year": event.year,
                "month": event.month,
                "event": event.kind.value,
                "payload": event.payload,
            },
        )
