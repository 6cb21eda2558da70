"""
Contract parameter, usage and rate endpoints.

These are the write paths that feed the calculator. A change to
parameters or usage of an already calculated month triggers the
recalculation of that month and the ones after it.
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hours_bank.exceptions import HoursBankError
from hours_bank.models.base import get_db
from hours_bank.schemas.contract import (
    ContractParametersCreate,
    ContractParametersResponse,
)
from hours_bank.schemas.ledger import CascadeReport
from hours_bank.schemas.usage import (
    RateCreate,
    RateResponse,
    UsageRefreshResult,
    UsageResponse,
    UsageUpdate,
)
from hours_bank.services.hours_bank_service import HoursBankService

router = APIRouter(tags=["Contracts"])


class ContractParametersResult(BaseModel):
    parameters: ContractParametersResponse
    cascade: CascadeReport | None


@router.get(
    "/companies/{company_id}/contract-parameters",
    response_model=list[ContractParametersResponse],
)
def list_contract_parameters(
    company_id: int,
    db: Session = Depends(get_db),
):
    """Every parameter version of the company, oldest first."""
    service = HoursBankService(db)
    try:
        return service.list_contract_parameters(company_id)
    except HoursBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post(
    "/companies/{company_id}/contract-parameters",
    response_model=ContractParametersResult,
    status_code=201,
)
def create_contract_parameters(
    company_id: int,
    request: ContractParametersCreate,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        params, cascade = service.set_contract_parameters(company_id, request, actor)
        return ContractParametersResult(
            parameters=ContractParametersResponse.model_validate(params),
            cascade=CascadeReport.from_result(cascade) if cascade else None,
        )
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.put(
    "/companies/{company_id}/usage/{year}/{month}",
    response_model=UsageRefreshResult,
)
def refresh_usage(
    company_id: int,
    year: int,
    month: int,
    request: UsageUpdate,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    """Replace the month's consumption and billed-requirement totals."""
    service = HoursBankService(db)
    try:
        usage, cascade = service.refresh_usage(company_id, year, month, request, actor)
        return UsageRefreshResult(
            usage=UsageResponse.model_validate(usage),
            cascade=CascadeReport.from_result(cascade) if cascade else None,
        )
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/companies/{company_id}/rates",
    response_model=RateResponse,
    status_code=201,
)
def add_rate(
    company_id: int,
    request: RateCreate,
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        return service.add_rate(company_id, request)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
