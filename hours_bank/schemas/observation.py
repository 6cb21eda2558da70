"""
Pydantic schemas for month observations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, computed_field

from hours_bank.models.enums import AdjustmentDirection, ObservationSource
from hours_bank.services.duration import format_duration


class ObservationCreate(BaseModel):
    text: str


class ObservationUpdate(BaseModel):
    text: str


class ObservationResponse(BaseModel):
    id: int
    company_id: int
    year: int
    month: int
    text: str
    created_at: datetime
    updated_at: datetime
    created_by: str | None
    updated_by: str | None

    model_config = {"from_attributes": True}


class UnifiedObservationResponse(BaseModel):
    """
    A line of the month's observation list.

    Lines with source "adjustment" show the adjustment's justification
    and its values; their id is the adjustment id.
    """
    id: int
    source: ObservationSource
    year: int
    month: int
    text: str
    created_at: datetime
    created_by: str | None
    updated_at: datetime | None
    direction: AdjustmentDirection | None
    hours_minutes: int | None
    tickets: Decimal | None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def hours(self) -> str | None:
        if self.hours_minutes is None:
            return None
        return format_duration(self.hours_minutes)
