"""
Observation API endpoints.

Notes on a company's month. The month listing also carries the
justifications of the month's active adjustments.
"""

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlalchemy.orm import Session

from hours_bank.exceptions import HoursBankError
from hours_bank.models.base import get_db
from hours_bank.schemas.observation import (
    ObservationCreate,
    ObservationResponse,
    ObservationUpdate,
    UnifiedObservationResponse,
)
from hours_bank.services.hours_bank_service import HoursBankService

router = APIRouter(tags=["Observations"])


@router.get(
    "/companies/{company_id}/ledger/{year}/{month}/observations",
    response_model=list[UnifiedObservationResponse],
)
def list_month_observations(
    company_id: int,
    year: int,
    month: int,
    db: Session = Depends(get_db),
):
    """Observations and adjustment justifications of one month, newest first."""
    service = HoursBankService(db)
    try:
        return service.list_observations(company_id, year, month)
    except HoursBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post(
    "/companies/{company_id}/ledger/{year}/{month}/observations",
    response_model=ObservationResponse,
    status_code=201,
)
def add_observation(
    company_id: int,
    year: int,
    month: int,
    request: ObservationCreate,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        return service.add_observation(company_id, year, month, request.text, actor)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/companies/{company_id}/observations",
    response_model=list[UnifiedObservationResponse],
)
def list_company_observations(
    company_id: int,
    db: Session = Depends(get_db),
):
    """Every month's observations and adjustment justifications."""
    service = HoursBankService(db)
    try:
        return service.list_observations(company_id)
    except HoursBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.patch("/observations/{observation_id}", response_model=ObservationResponse)
def update_observation(
    observation_id: int,
    request: ObservationUpdate,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        return service.update_observation(observation_id, request.text, actor)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.delete("/observations/{observation_id}", status_code=204)
def delete_observation(
    observation_id: int,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    service = HoursBankService(db)
    try:
        service.delete_observation(observation_id, actor)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return Response(status_code=204)
