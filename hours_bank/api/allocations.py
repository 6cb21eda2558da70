"""
Allocation API endpoints.

Changing allocations never touches the consolidated ledger. It only
drops the cached segmented views of the company.
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from hours_bank.exceptions import HoursBankError
from hours_bank.models.base import get_db
from hours_bank.schemas.allocation import (
    AllocationCreate,
    AllocationResponse,
    AllocationUpdate,
    ShareValidationResponse,
)
from hours_bank.services.hours_bank_service import HoursBankService

router = APIRouter(tags=["Allocations"])


@router.get(
    "/companies/{company_id}/allocations",
    response_model=list[AllocationResponse],
)
def list_allocations(
    company_id: int,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        return service.list_allocations(company_id, active_only)
    except HoursBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get(
    "/companies/{company_id}/allocations/validation",
    response_model=ShareValidationResponse,
)
def validate_allocations(
    company_id: int,
    db: Session = Depends(get_db),
):
    """Errors and warnings for the company's active allocation set."""
    service = HoursBankService(db)
    try:
        return service.validate_allocations(company_id)
    except HoursBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post(
    "/companies/{company_id}/allocations",
    response_model=AllocationResponse,
    status_code=201,
)
def create_allocation(
    company_id: int,
    request: AllocationCreate,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        return service.create_allocation(company_id, request, actor)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.patch("/allocations/{allocation_id}", response_model=AllocationResponse)
def update_allocation(
    allocation_id: int,
    request: AllocationUpdate,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        return service.update_allocation(allocation_id, request, actor)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post(
    "/allocations/{allocation_id}/deactivate",
    response_model=AllocationResponse,
)
def deactivate_allocation(
    allocation_id: int,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        return service.deactivate_allocation(allocation_id, actor)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
