"""
Hours bank service.

The entry point the rest of the application uses. It wires the
calculator, cascade, adjustment and allocation services to one
session and to the external collaborators. Any collaborator not
passed in falls back to the SQL-backed default.
"""

import logging

from sqlalchemy import select, or_, and_
from sqlalchemy.orm import Session

from hours_bank.config import get_settings
from hours_bank.exceptions import NotFoundError
from hours_bank.models.enums import ChangeKind
from hours_bank.models.ledger_entry import MonthlyLedgerEntry
from hours_bank.schemas.adjustment import AdjustmentCreate
from hours_bank.schemas.allocation import AllocationCreate, AllocationUpdate
from hours_bank.schemas.contract import ContractParametersCreate
from hours_bank.schemas.usage import RateCreate, UsageUpdate
from hours_bank.services import audit as audit_actions
from hours_bank.services.adjustment_service import AdjustmentService
from hours_bank.services.allocation_service import AllocationService
from hours_bank.services.audit import AuditService
from hours_bank.services.cascade import CascadeRecalculator, CascadeResult
from hours_bank.services.contract_service import ContractService
from hours_bank.services.duration import InvalidDuration, parse_duration_strict
from hours_bank.services.ledger_calculator import LedgerCalculator
from hours_bank.services.locks import LockRegistry, default_registry
from hours_bank.services.notifications import LoggingNotifier
from hours_bank.services.observation_service import ObservationService
from hours_bank.services.overage import OverageBiller
from hours_bank.services.periods import Period, format_period, validate_period
from hours_bank.services.sources import SqlRateTable, SqlUsageSource
from hours_bank.services.versioning import VersionRecorder

logger = logging.getLogger(__name__)


class HoursBankService:
    """Single entry point for routers; commits the unit of work it runs."""

    def __init__(
        self,
        db: Session,
        consumption=None,
        requirements=None,
        rates=None,
        notifier=None,
        locks: LockRegistry | None = None,
        settings=None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.notifier = notifier or LoggingNotifier()
        self.locks = locks or default_registry

        self.usage = SqlUsageSource(db)
        self.rate_table = SqlRateTable(db)

        self.audit = AuditService(db)
        self.contracts = ContractService(db, self.audit)
        self.versions = VersionRecorder(db)
        self.allocations = AllocationService(db, self.audit)
        self.biller = OverageBiller(
            rates or self.rate_table, self.notifier, self.settings.CURRENCY
        )
        self.calculator = LedgerCalculator(
            db,
            consumption or self.usage,
            requirements or self.usage,
            self.biller,
            self.notifier,
            contracts=self.contracts,
            versions=self.versions,
            allocations=self.allocations,
            audit=self.audit,
            settings=self.settings,
        )
        self.cascade = CascadeRecalculator(db, self.calculator, self.locks, self.audit)
        self.adjustments = AdjustmentService(
            db,
            contracts=self.contracts,
            cascade=self.cascade,
            audit=self.audit,
            notifier=self.notifier,
            settings=self.settings,
        )
        self.observations = ObservationService(db, self.contracts, self.audit)

    # --- Ledger ---

    def get_entry(self, company_id: int, year: int, month: int) -> MonthlyLedgerEntry:
        entry = self.calculator.get_entry(company_id, year, month)
        if entry is None:
            raise NotFoundError(
                f"No ledger entry for company {company_id} "
                f"in {format_period(year, month)}",
                details={"company_id": company_id, "period": format_period(year, month)},
            )
        return entry

    def get_or_calculate(
        self, company_id: int, year: int, month: int, actor: str | None = None
    ) -> MonthlyLedgerEntry:
        """Stored entry for the month, calculating (and committing) it if missing."""
        validate_period(year, month)
        self.contracts.get_company(company_id)
        entry = self.calculator.get_entry(company_id, year, month)
        if entry is not None:
            return entry

        with self.locks.hold(company_id):
            entry = self.calculator.calculate_month(company_id, year, month, actor=actor)
            self.db.commit()
        return entry

    def run_cascade(
        self,
        company_id: int,
        start: Period,
        until: Period | None = None,
        change_kind: ChangeKind = ChangeKind.RECALCULATION,
        reason: str | None = None,
        actor: str | None = None,
        cancel=None,
    ) -> CascadeResult:
        validate_period(*start)
        self.contracts.get_company(company_id)
        return self.cascade.run(
            company_id,
            start,
            until=until,
            change_kind=change_kind,
            reason=reason,
            actor=actor,
            cancel=cancel,
        )

    def recalculate(
        self,
        company_id: int,
        year: int,
        month: int,
        change_kind: ChangeKind = ChangeKind.RECALCULATION,
        reason: str | None = None,
        actor: str | None = None,
    ) -> MonthlyLedgerEntry:
        """
        Recalculate the month and the calculated months after it.

        Raises the month's own error if it could not be recalculated.
        Failures further down the chain are recorded in the audit log
        and left for ``run_cascade`` callers to report.
        """
        result = self.run_cascade(
            company_id,
            (year, month),
            change_kind=change_kind,
            reason=reason or "Manual recalculation",
            actor=actor,
        )
        if result.stopped_at == (year, month) and result.error is not None:
            raise result.error
        return self.get_entry(company_id, year, month)

    def list_versions(self, company_id: int, year: int, month: int):
        return self.versions.list_versions(company_id, year, month)

    def compare_versions(self, version_id: int) -> dict:
        return self.versions.compare_versions(version_id)

    # --- Allocations ---

    def list_allocations(self, company_id: int, active_only: bool = False):
        self.contracts.get_company(company_id)
        return self.allocations.list_allocations(company_id, active_only)

    def create_allocation(self, company_id: int, data: AllocationCreate, actor=None):
        allocation = self.allocations.create(company_id, data, actor)
        self.db.commit()
        return allocation

    def update_allocation(self, allocation_id: int, data: AllocationUpdate, actor=None):
        allocation = self.allocations.update(allocation_id, data, actor)
        self.db.commit()
        return allocation

    def deactivate_allocation(self, allocation_id: int, actor=None):
        allocation = self.allocations.deactivate(allocation_id, actor)
        self.db.commit()
        return allocation

    def validate_allocations(self, company_id: int) -> dict:
        self.contracts.get_company(company_id)
        return self.allocations.validate_shares(company_id)

    def get_segmented(self, company_id: int, year: int, month: int):
        entry = self.get_or_calculate(company_id, year, month)
        segments = self.allocations.segment(entry)
        self.db.commit()
        return segments

    # --- Adjustments ---

    def create_adjustment(self, company_id: int, data: AdjustmentCreate, actor=None):
        return self.adjustments.create_adjustment(company_id, data, actor)

    def deactivate_adjustment(self, adjustment_id: int, reason: str, actor=None):
        return self.adjustments.deactivate_adjustment(adjustment_id, reason, actor)

    def list_adjustments(self, company_id: int, year=None, month=None,
                         include_inactive: bool = False):
        self.contracts.get_company(company_id)
        return self.adjustments.list_adjustments(
            company_id, year, month, include_inactive
        )

    # --- Observations ---

    def add_observation(
        self, company_id: int, year: int, month: int, text: str, actor=None
    ):
        observation = self.observations.create(company_id, year, month, text, actor)
        self.db.commit()
        return observation

    def update_observation(self, observation_id: int, text: str, actor=None):
        observation = self.observations.update(observation_id, text, actor)
        self.db.commit()
        return observation

    def delete_observation(self, observation_id: int, actor=None) -> None:
        self.observations.delete(observation_id, actor)
        self.db.commit()

    def list_observations(self, company_id: int, year=None, month=None):
        """Manual observations merged with active adjustment justifications."""
        self.contracts.get_company(company_id)
        return self.observations.list_unified(company_id, year, month)

    # --- Triggers ---

    def _calculated_from(self, company_id: int, year: int, month: int) -> bool:
        """True if the month or any later month has been calculated."""
        found = self.db.execute(
            select(MonthlyLedgerEntry.id)
            .where(
                MonthlyLedgerEntry.company_id == company_id,
                or_(
                    MonthlyLedgerEntry.year > year,
                    and_(
                        MonthlyLedgerEntry.year == year,
                        MonthlyLedgerEntry.month >= month,
                    ),
                ),
            )
            .limit(1)
        ).first()
        return found is not None

    def set_contract_parameters(
        self, company_id: int, data: ContractParametersCreate, actor=None
    ):
        """
        Add a parameter version and recalculate the months it governs.

        Returns (parameters, cascade_result or None when no month at or
        after the effective month has been calculated yet).
        """
        params = self.contracts.create(company_id, data, actor)
        self.db.commit()

        start = (data.effective_from.year, data.effective_from.month)
        if not self._calculated_from(company_id, *start):
            return params, None
        result = self.cascade.run(
            company_id,
            start,
            change_kind=ChangeKind.RECALCULATION,
            reason=f"Contract parameters effective {data.effective_from.isoformat()}",
            actor=actor,
        )
        return params, result

    def list_contract_parameters(self, company_id: int):
        self.contracts.get_company(company_id)
        return self.contracts.list_history(company_id)

    def refresh_usage(
        self, company_id: int, year: int, month: int, data: UsageUpdate, actor=None
    ):
        """
        Store new usage totals and recalculate if the month is calculated.

        Returns (snapshot, cascade_result or None).
        """
        validate_period(year, month)
        self.contracts.get_company(company_id)
        try:
            consumed = parse_duration_strict(data.consumed_hours)
            billed = parse_duration_strict(data.billed_hours)
        except InvalidDuration as e:
            raise ValueError(str(e)) from e

        snapshot = self.usage.store(
            company_id, year, month,
            consumed, data.consumed_tickets,
            billed, data.billed_tickets,
        )
        self.audit.record(
            audit_actions.USAGE_REFRESHED,
            f"Usage refreshed for {format_period(year, month)}",
            company_id=company_id,
            payload=data.model_dump(),
            actor=actor,
        )
        self.db.commit()

        if not self._calculated_from(company_id, year, month):
            return snapshot, None
        result = self.cascade.run(
            company_id,
            (year, month),
            change_kind=ChangeKind.RECALCULATION,
            reason="Consumption data refreshed",
            actor=actor,
        )
        return snapshot, result

    def add_rate(self, company_id: int, data: RateCreate):
        self.contracts.get_company(company_id)
        rate = self.rate_table.add(
            company_id, data.kind, data.unit_rate, data.valid_from, data.valid_to
        )
        self.db.commit()
        return rate
