"""
Ledger API endpoints.

Consolidated and segmented monthly views, manual recalculation and
version history. The API layer is thin: it maps domain errors to
HTTP responses and delegates everything else to HoursBankService.
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from hours_bank.exceptions import HoursBankError
from hours_bank.models.base import get_db
from hours_bank.schemas.ledger import (
    CascadeReport,
    LedgerEntryResponse,
    RecalculateRequest,
    RecalculationResponse,
    SegmentedEntryResponse,
    VersionDiffResponse,
    VersionResponse,
)
from hours_bank.services.hours_bank_service import HoursBankService

router = APIRouter(tags=["Ledger"])


@router.get(
    "/companies/{company_id}/ledger/{year}/{month}",
    response_model=LedgerEntryResponse,
)
def get_ledger_entry(
    company_id: int,
    year: int,
    month: int,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    """
    Consolidated view of one month.

    Calculated on first access, together with any earlier month of
    the contract that has not been calculated yet.
    """
    service = HoursBankService(db)
    try:
        entry = service.get_or_calculate(company_id, year, month, actor=actor)
        return LedgerEntryResponse.from_entry(entry)
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/companies/{company_id}/ledger/{year}/{month}/recalculate",
    response_model=RecalculationResponse,
)
def recalculate_ledger_entry(
    company_id: int,
    year: int,
    month: int,
    request: RecalculateRequest | None = None,
    actor: str | None = Header(default=None, alias="X-Actor"),
    db: Session = Depends(get_db),
):
    """
    Recalculate a month and every calculated month after it.

    A failure in a later month does not fail the request: the
    cascade report says where the chain stopped. A failure in the
    requested month itself is returned as an error.
    """
    request = request or RecalculateRequest()
    service = HoursBankService(db)
    try:
        result = service.run_cascade(
            company_id,
            (year, month),
            change_kind=request.change_kind,
            reason=request.reason or "Manual recalculation",
            actor=actor,
        )
        if result.stopped_at == (year, month) and result.error is not None:
            raise result.error
        entry = service.get_entry(company_id, year, month)
        return RecalculationResponse(
            entry=LedgerEntryResponse.from_entry(entry),
            cascade=CascadeReport.from_result(result),
        )
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/companies/{company_id}/ledger/{year}/{month}/segmented",
    response_model=list[SegmentedEntryResponse],
)
def get_segmented_view(
    company_id: int,
    year: int,
    month: int,
    db: Session = Depends(get_db),
):
    """Per-allocation breakdown of the month."""
    service = HoursBankService(db)
    try:
        segments = service.get_segmented(company_id, year, month)
        return [SegmentedEntryResponse.from_segment(s) for s in segments]
    except HoursBankError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/companies/{company_id}/ledger/{year}/{month}/versions",
    response_model=list[VersionResponse],
)
def list_versions(
    company_id: int,
    year: int,
    month: int,
    db: Session = Depends(get_db),
):
    """Change history of the month, oldest first."""
    service = HoursBankService(db)
    return service.list_versions(company_id, year, month)


@router.get("/versions/{version_id}/diff", response_model=VersionDiffResponse)
def compare_version(
    version_id: int,
    db: Session = Depends(get_db),
):
    """Fields added, removed or modified by one version."""
    service = HoursBankService(db)
    try:
        return service.compare_versions(version_id)
    except HoursBankError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
