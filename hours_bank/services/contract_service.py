"""
Contract parameter service.

Parameters are versioned by effective date. A month is governed by
the row with the latest effective_from whose month is not after it.
New rows are added, old rows are kept, so any past month can be
recomputed under the rules it was calculated with.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_bank.exceptions import (
    ContractNotConfigured,
    InvalidContractParameters,
    NotFoundError,
)
from hours_bank.models.company import Company
from hours_bank.models.contract import ContractParameters
from hours_bank.schemas.contract import ContractParametersCreate
from hours_bank.services import audit as audit_actions
from hours_bank.services.audit import AuditService
from hours_bank.services.duration import InvalidDuration, parse_duration_strict
from hours_bank.services.periods import Period, first_day, format_period, next_month

logger = logging.getLogger(__name__)


class ContractService:

    def __init__(self, db: Session, audit: AuditService | None = None):
        self.db = db
        self.audit = audit or AuditService(db)

    def get_company(self, company_id: int) -> Company:
        company = self.db.get(Company, company_id)
        if not company:
            raise NotFoundError(
                f"Company {company_id} not found",
                details={"company_id": company_id},
            )
        return company

    def resolve(self, company_id: int, year: int, month: int) -> ContractParameters:
        """Parameters in force for the month, or ContractNotConfigured."""
        # Anything effective before the first day of the following month
        # counts, so a mid-month effective date governs its whole month.
        limit = first_day(*next_month(year, month))
        params = self.db.execute(
            select(ContractParameters)
            .where(
                ContractParameters.company_id == company_id,
                ContractParameters.effective_from < limit,
            )
            .order_by(
                ContractParameters.effective_from.desc(),
                ContractParameters.id.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()

        if params is None:
            raise ContractNotConfigured(
                f"No contract parameters for company {company_id} "
                f"in {format_period(year, month)}",
                details={
                    "company_id": company_id,
                    "period": format_period(year, month),
                },
            )
        return params

    def contract_start(self, company_id: int) -> Period | None:
        """Effective month of the company's earliest parameters."""
        earliest = self.db.execute(
            select(ContractParameters.effective_from)
            .where(ContractParameters.company_id == company_id)
            .order_by(ContractParameters.effective_from)
            .limit(1)
        ).scalar_one_or_none()
        if earliest is None:
            return None
        return (earliest.year, earliest.month)

    def list_history(self, company_id: int) -> list[ContractParameters]:
        return list(
            self.db.execute(
                select(ContractParameters)
                .where(ContractParameters.company_id == company_id)
                .order_by(ContractParameters.effective_from, ContractParameters.id)
            ).scalars().all()
        )

    def _parse_baseline_hours(self, text: str | None) -> int | None:
        if text is None:
            return None
        try:
            minutes = parse_duration_strict(text)
        except InvalidDuration as e:
            raise InvalidContractParameters(
                str(e), details={"field": "baseline_hours"}
            ) from e
        if minutes < 0:
            raise InvalidContractParameters(
                "Baseline hours cannot be negative",
                details={"field": "baseline_hours", "value": text},
            )
        return minutes

    def create(
        self,
        company_id: int,
        data: ContractParametersCreate,
        actor: str | None = None,
    ) -> ContractParameters:
        """
        Add a parameter version for the company.

        The baseline for each kind in the contract must be given, and
        baselines for kinds outside it must not be. Triggering the
        recalculation of affected months is the caller's job.
        """
        self.get_company(company_id)
        baseline_minutes = self._parse_baseline_hours(data.baseline_hours)
        kind = data.contract_kind

        if kind.includes_hours and baseline_minutes is None:
            raise InvalidContractParameters(
                f"A {kind.value} contract needs an hours baseline",
                details={"field": "baseline_hours"},
            )
        if kind.includes_tickets and data.baseline_tickets is None:
            raise InvalidContractParameters(
                f"A {kind.value} contract needs a tickets baseline",
                details={"field": "baseline_tickets"},
            )
        if not kind.includes_hours and baseline_minutes is not None:
            raise InvalidContractParameters(
                f"A {kind.value} contract cannot have an hours baseline",
                details={"field": "baseline_hours"},
            )
        if not kind.includes_tickets and data.baseline_tickets is not None:
            raise InvalidContractParameters(
                f"A {kind.value} contract cannot have a tickets baseline",
                details={"field": "baseline_tickets"},
            )

        params = ContractParameters(
            company_id=company_id,
            contract_kind=kind,
            assessment_period_months=data.assessment_period_months,
            effective_from=data.effective_from,
            baseline_minutes=baseline_minutes,
            baseline_tickets=data.baseline_tickets,
            has_special_rollover=data.has_special_rollover,
            cycles_before_zeroing=data.cycles_before_zeroing,
            monthly_rollover_percent=data.monthly_rollover_percent,
            current_cycle_index=1,
            created_by=actor,
        )
        self.db.add(params)
        self.db.flush()

        self.audit.record(
            audit_actions.CONTRACT_PARAMETERS_CREATED,
            f"Contract parameters effective {data.effective_from.isoformat()} "
            f"({kind.value})",
            company_id=company_id,
            payload=data.model_dump(),
            actor=actor,
        )
        logger.info(
            "Contract parameters created",
            extra={
                "company_id": company_id,
                "year": data.effective_from.year,
                "month": data.effective_from.month,
                "operation": "contract_parameters",
            },
        )
        return params
