"""
Pydantic schemas for usage snapshots and rates.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from hours_bank.models.enums import QuantityKind
from hours_bank.schemas.ledger import CascadeReport


class UsageUpdate(BaseModel):
    """Monthly totals pushed by the timesheet and billing sync."""
    consumed_hours: str = "0:00"
    consumed_tickets: Decimal = Field(default=Decimal("0"), ge=0)
    billed_hours: str = "0:00"
    billed_tickets: Decimal = Field(default=Decimal("0"), ge=0)


class UsageResponse(BaseModel):
    id: int
    company_id: int
    year: int
    month: int
    consumed_minutes: int
    consumed_tickets: Decimal
    billed_minutes: int
    billed_tickets: Decimal
    refreshed_at: datetime

    model_config = {"from_attributes": True}


class UsageRefreshResult(BaseModel):
    usage: UsageResponse
    cascade: CascadeReport | None


class RateCreate(BaseModel):
    kind: QuantityKind
    unit_rate: Decimal = Field(gt=0, decimal_places=4)
    valid_from: date
    valid_to: date | None = None

    @model_validator(mode="after")
    def check_range(self):
        if self.valid_to is not None and self.valid_to < self.valid_from:
            raise ValueError("valid_to must not be before valid_from")
        return self


class RateResponse(BaseModel):
    id: int
    company_id: int
    kind: QuantityKind
    unit_rate: Decimal
    valid_from: date
    valid_to: date | None
    created_at: datetime

    model_config = {"from_attributes": True}
