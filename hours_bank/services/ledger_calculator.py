"""
Monthly ledger calculator.

Produces the single MonthlyLedgerEntry of a company and month:

1. baseline          baseline of the parameters in force for the month
2. available_balance baseline + rollover_in
3. net_adjustment    active adjustments, "in" adding, "out" subtracting
4. total_consumption consumption + billed_requirements - net_adjustment
5. monthly_balance   available_balance - total_consumption
6. rollover_out, overage and the cycle flag from the rollover rules

Hours (minutes) and tickets are computed independently and never
mixed. A kind the contract does not include stays NULL.

The calculator flushes but never commits; the cascade commits one
month at a time and the facade commits single calculations.
"""

import logging
from dataclasses import dataclass, fields
from decimal import Decimal

from sqlalchemy import select, or_, and_
from sqlalchemy.orm import Session

from hours_bank.config import get_settings
from hours_bank.exceptions import DataSourceUnavailable, HoursBankError
from hours_bank.models.contract import ContractParameters
from hours_bank.models.enums import ChangeKind, QuantityKind
from hours_bank.models.ledger_entry import MonthlyLedgerEntry
from hours_bank.services import audit as audit_actions
from hours_bank.services.adjustment_service import aggregate_adjustments
from hours_bank.services.allocation_service import AllocationService
from hours_bank.services.audit import AuditService
from hours_bank.services.contract_service import ContractService
from hours_bank.services.duration import InvalidDuration, parse_duration_strict
from hours_bank.services.notifications import EventKind, LedgerEvent, Notifier
from hours_bank.services.overage import OverageBiller
from hours_bank.services.periods import (
    Period,
    format_period,
    previous_month,
)
from hours_bank.services.rollover import (
    CyclePosition,
    apply_rollover,
    cycle_position,
)
from hours_bank.services.sources import (
    ConsumptionSource,
    RequirementsSource,
    Usage,
)
from hours_bank.services.versioning import VersionRecorder, has_changes, snapshot

logger = logging.getLogger(__name__)

DEFICIT_TO_BASELINE = "baseline"


@dataclass
class KindFigures:
    """Calculated values of one kind for one month."""
    baseline: int | Decimal
    rollover_in: int | Decimal
    available_balance: int | Decimal
    consumption: int | Decimal
    billed_requirements: int | Decimal
    net_adjustment: int | Decimal
    total_consumption: int | Decimal
    monthly_balance: int | Decimal
    rollover_out: int | Decimal
    overage: int | Decimal
    overage_value: Decimal | None = None


def compute_kind(
    params: ContractParameters,
    kind: QuantityKind,
    baseline,
    rollover_in,
    consumption,
    billed_requirements,
    net_adjustment,
    position: CyclePosition,
    deficit_target: str = "available_balance",
) -> KindFigures:
    """Apply the monthly formulas and the rollover rules for one kind."""
    if deficit_target == DEFICIT_TO_BASELINE and rollover_in < 0:
        # The carried deficit is folded into the month's baseline
        baseline = baseline + rollover_in
        rollover_in = 0 if kind == QuantityKind.HOURS else Decimal("0.00")

    available = baseline + rollover_in
    total_consumption = consumption + billed_requirements - net_adjustment
    balance = available - total_consumption
    outcome = apply_rollover(balance, position, params, kind)

    return KindFigures(
        baseline=baseline,
        rollover_in=rollover_in,
        available_balance=available,
        consumption=consumption,
        billed_requirements=billed_requirements,
        net_adjustment=net_adjustment,
        total_consumption=total_consumption,
        monthly_balance=balance,
        rollover_out=outcome.rollover_out,
        overage=outcome.overage,
    )


class LedgerCalculator:
    """
    Calculates and stores monthly ledger entries.

    Works inside the caller's transaction: it flushes but the caller
    decides when to commit or roll back.
    """

    def __init__(
        self,
        db: Session,
        consumption: ConsumptionSource,
        requirements: RequirementsSource,
        biller: OverageBiller,
        notifier: Notifier,
        contracts: ContractService | None = None,
        versions: VersionRecorder | None = None,
        allocations: AllocationService | None = None,
        audit: AuditService | None = None,
        settings=None,
    ):
        self.db = db
        self.consumption = consumption
        self.requirements = requirements
        self.biller = biller
        self.notifier = notifier
        self.audit = audit or AuditService(db)
        self.contracts = contracts or ContractService(db, self.audit)
        self.versions = versions or VersionRecorder(db)
        self.allocations = allocations or AllocationService(db, self.audit)
        self.settings = settings or get_settings()

    # --- Lookups ---

    def get_entry(
        self, company_id: int, year: int, month: int, for_update: bool = False
    ) -> MonthlyLedgerEntry | None:
        query = select(MonthlyLedgerEntry).where(
            MonthlyLedgerEntry.company_id == company_id,
            MonthlyLedgerEntry.year == year,
            MonthlyLedgerEntry.month == month,
        )
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalar_one_or_none()

    def latest_period(self, company_id: int) -> Period | None:
        row = self.db.execute(
            select(MonthlyLedgerEntry.year, MonthlyLedgerEntry.month)
            .where(MonthlyLedgerEntry.company_id == company_id)
            .order_by(MonthlyLedgerEntry.year.desc(), MonthlyLedgerEntry.month.desc())
            .limit(1)
        ).first()
        return (row.year, row.month) if row else None

    def has_later_entries(self, company_id: int, year: int, month: int) -> bool:
        later = self.db.execute(
            select(MonthlyLedgerEntry.id)
            .where(
                MonthlyLedgerEntry.company_id == company_id,
                or_(
                    MonthlyLedgerEntry.year > year,
                    and_(
                        MonthlyLedgerEntry.year == year,
                        MonthlyLedgerEntry.month > month,
                    ),
                ),
            )
            .limit(1)
        ).first()
        return later is not None

    def missing_predecessors(self, company_id: int, year: int, month: int) -> list[Period]:
        """
        Uncalculated months between the contract start and the month.

        Only the unbroken run of missing months directly before the
        target is returned, oldest first.
        """
        start = self.contracts.contract_start(company_id)
        if start is None:
            return []
        missing = []
        current = previous_month(year, month)
        while current >= start and self.get_entry(company_id, *current) is None:
            missing.append(current)
            current = previous_month(*current)
        missing.reverse()
        return missing

    # --- Inputs ---

    def _minutes(self, value, company_id: int, year: int, month: int, source: str) -> int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return parse_duration_strict(value)
        except InvalidDuration as e:
            raise DataSourceUnavailable(
                f"Unreadable {source} duration {value!r} for "
                f"{format_period(year, month)}",
                details={
                    "company_id": company_id,
                    "period": format_period(year, month),
                    "source": source,
                    "cause": str(e),
                },
            ) from e

    def _usage(self, company_id: int, year: int, month: int):
        consumed: Usage = self.consumption.consumption(company_id, year, month)
        billed: Usage = self.requirements.billed_requirements(company_id, year, month)
        return (
            self._minutes(consumed.minutes, company_id, year, month, "consumption"),
            Decimal(consumed.tickets or 0),
            self._minutes(billed.minutes, company_id, year, month, "billed requirements"),
            Decimal(billed.tickets or 0),
        )

    # --- Calculation ---

    def compute_values(
        self,
        params: ContractParameters,
        company_id: int,
        year: int,
        month: int,
        previous: MonthlyLedgerEntry | None,
    ) -> tuple[dict, CyclePosition, list[LedgerEvent]]:
        """
        Column values for the month, without touching the database row.

        Also returns the deficit and overage events the month produces;
        they are only emitted once the entry has been written. Raises
        RateNotFound when a closing deficit cannot be priced, before
        anything is written.
        """
        kind = params.contract_kind
        position = cycle_position(params, year, month, previous)
        consumed_min, consumed_tk, billed_min, billed_tk = self._usage(
            company_id, year, month
        )
        adjustments = aggregate_adjustments(self.db, company_id, year, month)
        deficit_target = self.settings.DEFICIT_CARRY_TARGET

        values = {"is_cycle_end": position.is_cycle_end, "cycle_index": position.cycle_index}
        total_to_bill = Decimal("0.00")
        notes = []
        events = []
        hour_rate = ticket_rate = None

        if kind.includes_hours:
            rollover_in = 0
            if previous is not None and previous.hours_rollover_out is not None:
                rollover_in = previous.hours_rollover_out
            figures = compute_kind(
                params,
                QuantityKind.HOURS,
                params.baseline_minutes,
                rollover_in,
                consumed_min,
                billed_min,
                adjustments.minutes,
                position,
                deficit_target,
            )
            if figures.overage:
                charge = self.biller.bill(
                    company_id, year, month, QuantityKind.HOURS, figures.overage
                )
                figures.overage_value = charge.amount
                hour_rate = charge.rate
                total_to_bill += charge.amount
                notes.append(charge.description)
                events.append(
                    self.biller.generated_event(company_id, year, month, charge)
                )
            events.extend(self._deficit_events(
                company_id, year, month, QuantityKind.HOURS, figures
            ))
            values.update(self._columns("hours", figures))
        else:
            values.update(self._columns("hours", None))

        if kind.includes_tickets:
            rollover_in = Decimal("0.00")
            if previous is not None and previous.tickets_rollover_out is not None:
                rollover_in = Decimal(previous.tickets_rollover_out)
            figures = compute_kind(
                params,
                QuantityKind.TICKETS,
                Decimal(params.baseline_tickets),
                rollover_in,
                consumed_tk,
                billed_tk,
                adjustments.tickets,
                position,
                deficit_target,
            )
            if figures.overage:
                charge = self.biller.bill(
                    company_id, year, month, QuantityKind.TICKETS, figures.overage
                )
                figures.overage_value = charge.amount
                ticket_rate = charge.rate
                total_to_bill += charge.amount
                notes.append(charge.description)
                events.append(
                    self.biller.generated_event(company_id, year, month, charge)
                )
            events.extend(self._deficit_events(
                company_id, year, month, QuantityKind.TICKETS, figures
            ))
            values.update(self._columns("tickets", figures))
        else:
            values.update(self._columns("tickets", None))

        values["total_to_bill"] = total_to_bill
        values["hour_rate_used"] = hour_rate
        values["ticket_rate_used"] = ticket_rate
        values["public_note"] = "\n\n".join(notes) if notes else None
        return values, position, events

    @staticmethod
    def _columns(prefix: str, figures: KindFigures | None) -> dict:
        names = [f.name for f in fields(KindFigures)]
        if figures is None:
            return {f"{prefix}_{name}": None for name in names}
        return {f"{prefix}_{name}": getattr(figures, name) for name in names}

    @staticmethod
    def _deficit_events(company_id, year, month, kind, figures: KindFigures):
        if figures.monthly_balance >= 0:
            return []
        return [LedgerEvent(
            EventKind.DEFICIT_DETECTED,
            company_id,
            year,
            month,
            {
                "kind": kind.value,
                "monthly_balance": str(figures.monthly_balance),
                "billed": bool(figures.overage),
            },
        )]

    def calculate_month(
        self,
        company_id: int,
        year: int,
        month: int,
        change_kind: ChangeKind = ChangeKind.RECALCULATION,
        reason: str | None = None,
        actor: str | None = None,
    ) -> MonthlyLedgerEntry:
        """
        Calculate (or recalculate) one month and write its entry.

        Uncalculated months between the contract start and this month
        are calculated first, oldest first, so the rollover coming in
        is always the real previous month's rollover out.
        """
        for period in self.missing_predecessors(company_id, year, month):
            self._calculate_one(company_id, *period, change_kind, reason, actor)
        return self._calculate_one(company_id, year, month, change_kind, reason, actor)

    def _calculate_one(
        self,
        company_id: int,
        year: int,
        month: int,
        change_kind: ChangeKind,
        reason: str | None,
        actor: str | None,
    ) -> MonthlyLedgerEntry:
        log_extra = {
            "company_id": company_id,
            "year": year,
            "month": month,
            "operation": "calculate",
        }
        try:
            params = self.contracts.resolve(company_id, year, month)
            previous = self.get_entry(company_id, *previous_month(year, month))
            values, position, events = self.compute_values(
                params, company_id, year, month, previous
            )
            entry = self._write(
                company_id, year, month, values, change_kind, reason, actor
            )
        except HoursBankError as e:
            logger.warning("Calculation failed: %s", e.message, extra=log_extra)
            self.notifier.emit(LedgerEvent(
                EventKind.CALCULATION_FAILED, company_id, year, month, e.to_dict(),
            ))
            raise

        # Only the newest month moves the contract's cycle counter,
        # unless an administrator is correcting history.
        if change_kind == ChangeKind.CORRECTION or not self.has_later_entries(
            company_id, year, month
        ):
            params.current_cycle_index = position.next_index
            self.db.flush()

        for event in events:
            self.notifier.emit(event)
        self.notifier.emit(LedgerEvent(
            EventKind.CALCULATION_SUCCEEDED,
            company_id,
            year,
            month,
            {"version": entry.version, "total_to_bill": str(entry.total_to_bill)},
        ))
        logger.info("Month calculated (v%s)", entry.version, extra=log_extra)
        return entry

    def _write(
        self,
        company_id: int,
        year: int,
        month: int,
        values: dict,
        change_kind: ChangeKind,
        reason: str | None,
        actor: str | None,
    ) -> MonthlyLedgerEntry:
        """Insert or update the entry under a row lock."""
        entry = self.get_entry(company_id, year, month, for_update=True)

        if entry is None:
            entry = MonthlyLedgerEntry(
                company_id=company_id,
                year=year,
                month=month,
                version=1,
                created_by=actor,
                updated_by=actor,
                **values,
            )
            self.db.add(entry)
            self.db.flush()
            self.audit.record(
                audit_actions.LEDGER_CALCULATED,
                f"Ledger calculated for {format_period(year, month)}",
                company_id=company_id,
                ledger_entry_id=entry.id,
                payload=snapshot(entry),
                actor=actor,
            )
            return entry

        before = snapshot(entry)
        for column, value in values.items():
            setattr(entry, column, value)
        after = snapshot(entry)

        if not has_changes(before, after):
            return entry

        entry.updated_by = actor
        version = self.versions.record(
            entry,
            before,
            reason or "Recalculation",
            change_kind,
            actor,
        )
        self.allocations.invalidate_entry(entry.id)
        self.audit.record(
            audit_actions.LEDGER_RECALCULATED,
            f"Ledger for {format_period(year, month)} updated to "
            f"v{version.to_version}",
            company_id=company_id,
            ledger_entry_id=entry.id,
            payload={
                "change_kind": change_kind,
                "from_version": version.from_version,
                "to_version": version.to_version,
            },
            actor=actor,
        )
        return entry

