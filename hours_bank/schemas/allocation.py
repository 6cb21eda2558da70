"""
Pydantic schemas for allocations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class AllocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    baseline_share_percent: Decimal = Field(gt=0, le=100, decimal_places=2)


class AllocationUpdate(BaseModel):
    """Partial update. Setting is_active=True reactivates."""
    name: str | None = Field(default=None, min_length=1, max_length=100)
    baseline_share_percent: Decimal | None = Field(
        default=None, gt=0, le=100, decimal_places=2
    )
    is_active: bool | None = None


class AllocationResponse(BaseModel):
    id: int
    company_id: int
    name: str
    baseline_share_percent: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime
    created_by: str | None
    updated_by: str | None

    model_config = {"from_attributes": True}


class ShareValidationResponse(BaseModel):
    total_percent: Decimal
    errors: list[str]
    warnings: list[str]
