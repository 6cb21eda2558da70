"""
Adjustment service.

Adjustments are manual corrections to a month. They are validated
completely before anything is written, stored as immutable rows,
and can only be switched off (never edited or deleted).

Every write recalculates the adjusted month and the calculated
months after it. The company's recalculation lock is taken before
the adjustment is persisted and held until the cascade is done.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_bank.config import get_settings
from hours_bank.exceptions import InvalidAdjustment, NotFoundError
from hours_bank.models.adjustment import Adjustment
from hours_bank.models.enums import AdjustmentDirection, ChangeKind
from hours_bank.schemas.adjustment import AdjustmentCreate
from hours_bank.services import audit as audit_actions
from hours_bank.services.audit import AuditService
from hours_bank.services.contract_service import ContractService
from hours_bank.services.duration import InvalidDuration, parse_duration_strict
from hours_bank.services.notifications import EventKind, LedgerEvent, LoggingNotifier
from hours_bank.services.periods import format_period

logger = logging.getLogger(__name__)

TICKET_STEP = Decimal("0.01")


@dataclass(frozen=True)
class AdjustmentTotals:
    """Signed net of a month's active adjustments."""
    minutes: int = 0
    tickets: Decimal = Decimal("0.00")


def aggregate_adjustments(
    db: Session, company_id: int, year: int, month: int
) -> AdjustmentTotals:
    """Sum active adjustments: "in" adds, "out" subtracts."""
    rows = db.execute(
        select(Adjustment).where(
            Adjustment.company_id == company_id,
            Adjustment.year == year,
            Adjustment.month == month,
            Adjustment.is_active.is_(True),
        )
    ).scalars().all()

    minutes = 0
    tickets = Decimal("0.00")
    for row in rows:
        if row.hours_minutes:
            minutes += row.sign * row.hours_minutes
        if row.tickets:
            tickets += row.sign * row.tickets
    return AdjustmentTotals(minutes=minutes, tickets=tickets)


class AdjustmentService:
    """Creates and deactivates adjustments and recalculates from their month."""

    def __init__(
        self,
        db: Session,
        contracts: ContractService | None = None,
        cascade=None,
        audit: AuditService | None = None,
        notifier=None,
        settings=None,
    ):
        self.db = db
        self.audit = audit or AuditService(db)
        self.contracts = contracts or ContractService(db, self.audit)
        self.cascade = cascade
        self.notifier = notifier or LoggingNotifier()
        self.settings = settings or get_settings()

    # --- Validation ---

    def _parse_hours(self, text: str | None) -> int | None:
        if text is None or str(text).strip() == "":
            return None
        try:
            return parse_duration_strict(text)
        except InvalidDuration as e:
            raise InvalidAdjustment(str(e), details={"field": "hours"}) from e

    def validate(self, company_id: int, data: AdjustmentCreate) -> tuple:
        """
        Check an adjustment request and return (minutes, tickets).

        Raises InvalidAdjustment before anything is written.
        """
        justification = (data.justification or "").strip()
        minimum = self.settings.MIN_JUSTIFICATION_LENGTH
        if len(justification) < minimum:
            raise InvalidAdjustment(
                f"Justification must have at least {minimum} characters",
                details={"field": "justification", "minimum_length": minimum},
            )

        minutes = self._parse_hours(data.hours)
        tickets = data.tickets
        if tickets is not None:
            tickets = tickets.quantize(TICKET_STEP, rounding=ROUND_HALF_UP)
        if minutes is not None and minutes < 0:
            raise InvalidAdjustment(
                "Hours must not be negative; use the direction instead",
                details={"field": "hours"},
            )
        if tickets is not None and tickets < 0:
            raise InvalidAdjustment(
                "Tickets must not be negative; use the direction instead",
                details={"field": "tickets"},
            )
        if not minutes and not tickets:
            raise InvalidAdjustment(
                "Inform hours or tickets for the adjustment",
                details={"fields": ["hours", "tickets"]},
            )
        if not isinstance(data.direction, AdjustmentDirection):
            raise InvalidAdjustment(
                f"Invalid direction {data.direction!r}",
                details={"field": "direction"},
            )

        params = self.contracts.resolve(company_id, data.year, data.month)
        kind = params.contract_kind
        if minutes and not kind.includes_hours:
            raise InvalidAdjustment(
                f"The contract in {format_period(data.year, data.month)} "
                f"does not include hours",
                details={"field": "hours", "contract_kind": kind.value},
            )
        if tickets and not kind.includes_tickets:
            raise InvalidAdjustment(
                f"The contract in {format_period(data.year, data.month)} "
                f"does not include tickets",
                details={"field": "tickets", "contract_kind": kind.value},
            )

        return (minutes or None, tickets or None)

    # --- Writes ---

    def create_adjustment(
        self,
        company_id: int,
        data: AdjustmentCreate,
        actor: str | None = None,
    ):
        """
        Record an adjustment and recalculate from its month.

        Returns (adjustment, cascade_result).
        """
        self.contracts.get_company(company_id)
        minutes, tickets = self.validate(company_id, data)

        with self.cascade.locks.hold(company_id):
            adjustment = Adjustment(
                company_id=company_id,
                year=data.year,
                month=data.month,
                hours_minutes=minutes,
                tickets=tickets,
                direction=data.direction,
                justification=data.justification.strip(),
                is_active=True,
                created_by=actor,
            )
            self.db.add(adjustment)
            self.db.flush()

            self.audit.record(
                audit_actions.ADJUSTMENT_CREATED,
                f"Adjustment ({data.direction.value}) for "
                f"{format_period(data.year, data.month)}",
                company_id=company_id,
                payload={
                    "adjustment_id": adjustment.id,
                    "hours_minutes": minutes,
                    "tickets": tickets,
                    "direction": data.direction,
                    "justification": adjustment.justification,
                },
                actor=actor,
            )
            self.db.commit()

            self.notifier.emit(LedgerEvent(
                EventKind.ADJUSTMENT_APPLIED,
                company_id,
                data.year,
                data.month,
                {
                    "adjustment_id": adjustment.id,
                    "direction": data.direction.value,
                    "hours_minutes": minutes,
                    "tickets": str(tickets) if tickets is not None else None,
                },
            ))
            logger.info(
                "Adjustment %s recorded",
                adjustment.id,
                extra={
                    "company_id": company_id,
                    "year": data.year,
                    "month": data.month,
                    "operation": "adjustment",
                },
            )

            result = self.cascade.run(
                company_id,
                (data.year, data.month),
                change_kind=ChangeKind.ADJUSTMENT,
                reason=adjustment.justification,
                actor=actor,
            )
        return adjustment, result

    def get_adjustment(self, adjustment_id: int) -> Adjustment:
        adjustment = self.db.get(Adjustment, adjustment_id)
        if not adjustment:
            raise NotFoundError(
                f"Adjustment {adjustment_id} not found",
                details={"adjustment_id": adjustment_id},
            )
        return adjustment

    def deactivate_adjustment(
        self,
        adjustment_id: int,
        reason: str,
        actor: str | None = None,
    ):
        """
        Switch an adjustment off and recalculate from its month.

        Returns (adjustment, cascade_result).
        """
        adjustment = self.get_adjustment(adjustment_id)
        reason = (reason or "").strip()
        if not reason:
            raise InvalidAdjustment(
                "A reason is required to deactivate an adjustment",
                details={"field": "reason"},
            )
        if not adjustment.is_active:
            raise InvalidAdjustment(
                f"Adjustment {adjustment_id} is already inactive",
                details={"adjustment_id": adjustment_id},
            )

        company_id = adjustment.company_id
        period = (adjustment.year, adjustment.month)

        with self.cascade.locks.hold(company_id):
            adjustment.is_active = False
            adjustment.deactivated_at = datetime.utcnow()
            adjustment.deactivated_by = actor
            adjustment.deactivation_reason = reason

            self.audit.record(
                audit_actions.ADJUSTMENT_DEACTIVATED,
                f"Adjustment {adjustment_id} deactivated",
                company_id=company_id,
                payload={"adjustment_id": adjustment_id, "reason": reason},
                actor=actor,
            )
            self.db.commit()

            self.notifier.emit(LedgerEvent(
                EventKind.ADJUSTMENT_APPLIED,
                company_id,
                period[0],
                period[1],
                {"adjustment_id": adjustment_id, "deactivated": True},
            ))

            result = self.cascade.run(
                company_id,
                period,
                change_kind=ChangeKind.ADJUSTMENT,
                reason=f"Adjustment {adjustment_id} deactivated: {reason}",
                actor=actor,
            )
        return adjustment, result

    # --- Reads ---

    def list_adjustments(
        self,
        company_id: int,
        year: int | None = None,
        month: int | None = None,
        include_inactive: bool = False,
    ) -> list[Adjustment]:
        query = select(Adjustment).where(Adjustment.company_id == company_id)
        if year is not None:
            query = query.where(Adjustment.year == year)
        if month is not None:
            query = query.where(Adjustment.month == month)
        if not include_inactive:
            query = query.where(Adjustment.is_active.is_(True))
        query = query.order_by(Adjustment.year, Adjustment.month, Adjustment.id)
        return list(self.db.execute(query).scalars().all())

    def aggregate(self, company_id: int, year: int, month: int) -> AdjustmentTotals:
        return aggregate_adjustments(self.db, company_id, year, month)
