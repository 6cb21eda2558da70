"""
Adjustment API endpoints.
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from hours_bank.exceptions import HoursBankError
from hours_bank.models.base import get_db
from hours_bank.schemas.adjustment import (
    AdjustmentCreate,
    AdjustmentDeactivate,
    AdjustmentResponse,
    AdjustmentResult,
)
from hours_bank.schemas.ledger import CascadeReport
from hours_bank.services.hours_bank_service import HoursBankService

router = APIRouter(tags=["Adjustments"])


def _result(adjustment, cascade) -> AdjustmentResult:
    return AdjustmentResult(
        adjustment=AdjustmentResponse.model_validate(adjustment),
        cascade=CascadeReport.from_result(cascade),
    )


@router.post(
    "/companies/{company_id}/adjustments",
    response_model=AdjustmentResult,
    status_code=201,
)
def create_adjustment(
    company_id: int,
    request: AdjustmentCreate,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    """
    Record an adjustment and recalculate from its month.

    The adjustment is kept even if the recalculation stops at a
    later month; the cascade report says where and why.
    """
    service = HoursBankService(db)
    try:
        adjustment, cascade = service.create_adjustment(company_id, request, actor)
        return _result(adjustment, cascade)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get(
    "/companies/{company_id}/adjustments",
    response_model=list[AdjustmentResponse],
)
def list_adjustments(
    company_id: int,
    year: int | None = None,
    month: int | None = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        return service.list_adjustments(company_id, year, month, include_inactive)
    except HoursBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post(
    "/adjustments/{adjustment_id}/deactivate",
    response_model=AdjustmentResult,
)
def deactivate_adjustment(
    adjustment_id: int,
    request: AdjustmentDeactivate,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    """Switch an adjustment off and recalculate from its month."""
    service = HoursBankService(db)
    try:
        adjustment, cascade = service.deactivate_adjustment(
            adjustment_id, request.reason, actor
        )
        return _result(adjustment, cascade)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
