"""
Pydantic schemas for contract parameters.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, computed_field

from hours_bank.models.enums import ContractKind
from hours_bank.services.duration import format_duration


class ContractParametersCreate(BaseModel):
    """
    A new parameter version for a company.

    Hours are given as "H:MM" text. Which baselines are required
    depends on contract_kind and is checked by the service.
    """
    contract_kind: ContractKind
    assessment_period_months: int = Field(default=1, ge=1, le=12)
    effective_from: date
    baseline_hours: str | None = None
    baseline_tickets: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    has_special_rollover: bool = False
    cycles_before_zeroing: int = Field(default=1, ge=1)
    monthly_rollover_percent: Decimal = Field(
        default=Decimal("100"), ge=0, le=100
    )


class ContractParametersResponse(BaseModel):
    id: int
    company_id: int
    contract_kind: ContractKind
    assessment_period_months: int
    effective_from: date
    baseline_minutes: int | None
    baseline_tickets: Decimal | None
    has_special_rollover: bool
    cycles_before_zeroing: int
    monthly_rollover_percent: Decimal
    current_cycle_index: int
    created_at: datetime
    created_by: str | None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def baseline_hours(self) -> str | None:
        if self.baseline_minutes is None:
            return None
        return format_duration(self.baseline_minutes)
