"""
Pydantic schemas for adjustments.

Justification length and value rules are enforced by the
adjustment service so that every rejection carries the same
INVALID_ADJUSTMENT error shape.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, computed_field

from hours_bank.models.enums import AdjustmentDirection
from hours_bank.schemas.ledger import CascadeReport
from hours_bank.services.duration import format_duration


class AdjustmentCreate(BaseModel):
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    direction: AdjustmentDirection
    hours: str | None = None
    tickets: Decimal | None = None
    justification: str = ""


class AdjustmentDeactivate(BaseModel):
    reason: str = ""


class AdjustmentResponse(BaseModel):
    id: int
    company_id: int
    year: int
    month: int
    direction: AdjustmentDirection
    hours_minutes: int | None
    tickets: Decimal | None
    justification: str
    is_active: bool
    created_at: datetime
    created_by: str | None
    deactivated_at: datetime | None
    deactivated_by: str | None
    deactivation_reason: str | None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def hours(self) -> str | None:
        if self.hours_minutes is None:
            return None
        return format_duration(self.hours_minutes)


class AdjustmentResult(BaseModel):
    """An adjustment together with the recalculation it triggered."""
    adjustment: AdjustmentResponse
    cascade: CascadeReport
