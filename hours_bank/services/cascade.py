"""
Cascade recalculation.

When an input of month M changes, M and every calculated month
after it are recomputed, strictly in order, because each month
starts from the previous month's rollover. The run holds the
company's recalculation lock from start to end.

Each month is committed as soon as it is computed. A failing month
is rolled back and stops the chain; the months before it stay
committed and the result says where the chain stopped and why, so
the run can be resumed from there once the cause is fixed.
"""

import logging
import threading
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from hours_bank.exceptions import HoursBankError
from hours_bank.models.enums import ChangeKind
from hours_bank.services import audit as audit_actions
from hours_bank.services.audit import AuditService
from hours_bank.services.ledger_calculator import LedgerCalculator
from hours_bank.services.locks import LockRegistry
from hours_bank.services.periods import Period, format_period, iter_months

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    company_id: int
    start: Period
    until: Period
    recomputed: list[Period] = field(default_factory=list)
    stopped_at: Period | None = None
    error: HoursBankError | None = None
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        return self.stopped_at is None

    def to_dict(self) -> dict:
        return {
            "company_id": self.company_id,
            "start": format_period(*self.start),
            "until": format_period(*self.until),
            "recomputed": [format_period(*p) for p in self.recomputed],
            "stopped_at": (
                format_period(*self.stopped_at) if self.stopped_at else None
            ),
            "error": self.error.to_dict() if self.error else None,
            "cancelled": self.cancelled,
        }


class CascadeRecalculator:
    """Recomputes a run of months in order under the company lock."""

    def __init__(
        self,
        db: Session,
        calculator: LedgerCalculator,
        locks: LockRegistry,
        audit: AuditService | None = None,
    ):
        self.db = db
        self.calculator = calculator
        self.locks = locks
        self.audit = audit or AuditService(db)

    def default_until(self, company_id: int, start: Period) -> Period:
        """The later of ``start`` and the last calculated month."""
        latest = self.calculator.latest_period(company_id)
        if latest is None:
            return start
        return max(start, latest)

    def run(
        self,
        company_id: int,
        start: Period,
        until: Period | None = None,
        change_kind: ChangeKind = ChangeKind.RECALCULATION,
        reason: str | None = None,
        actor: str | None = None,
        cancel: threading.Event | None = None,
    ) -> CascadeResult:
        with self.locks.hold(company_id):
            if until is None:
                until = self.default_until(company_id, start)
            result = CascadeResult(company_id=company_id, start=start, until=until)
            log_extra = {"company_id": company_id, "operation": "cascade"}

            for period in iter_months(start, until):
                if cancel is not None and cancel.is_set():
                    result.cancelled = True
                    result.stopped_at = period
                    logger.info(
                        "Cascade cancelled before %s",
                        format_period(*period),
                        extra=log_extra,
                    )
                    break

                try:
                    self.calculator.calculate_month(
                        company_id,
                        *period,
                        change_kind=change_kind,
                        reason=reason,
                        actor=actor,
                    )
                    self.db.commit()
                except HoursBankError as e:
                    self.db.rollback()
                    result.stopped_at = period
                    result.error = e
                    logger.warning(
                        "Cascade halted at %s: %s",
                        format_period(*period),
                        e.message,
                        extra={**log_extra, "year": period[0], "month": period[1]},
                    )
                    break
                except Exception:
                    self.db.rollback()
                    raise

                result.recomputed.append(period)

            self._record(result, change_kind, reason, actor)
            self.db.commit()
        return result

    def _record(self, result: CascadeResult, change_kind, reason, actor) -> None:
        if result.completed:
            action = audit_actions.CASCADE_COMPLETED
            description = (
                f"Recalculated {len(result.recomputed)} month(s) from "
                f"{format_period(*result.start)}"
            )
        else:
            action = audit_actions.CASCADE_HALTED
            description = (
                f"Recalculation stopped at {format_period(*result.stopped_at)}"
            )
        self.audit.record(
            action,
            description,
            company_id=result.company_id,
            payload={
                **result.to_dict(),
                "change_kind": change_kind,
                "reason": reason,
            },
            actor=actor,
        )
        logger.info(
            description,
            extra={"company_id": result.company_id, "operation": "cascade"},
        )
