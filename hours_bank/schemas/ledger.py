"""
Pydantic schemas for ledger views.

Hours leave the API as "H:MM" text, with the same figures in decimal
hours alongside; tickets and money as decimals.
A kind the contract does not include is returned as null.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator

from hours_bank.models.enums import ChangeKind
from hours_bank.services.duration import format_duration, minutes_to_decimal_hours
from hours_bank.services.periods import format_period


class HoursFigures(BaseModel):
    baseline: str
    rollover_in: str
    available_balance: str
    consumption: str
    billed_requirements: str
    net_adjustment: str
    total_consumption: str
    monthly_balance: str
    rollover_out: str
    overage: str
    overage_value: Decimal | None
    # Same figures as decimal hours ("1:30" is 1.50)
    decimal_hours: dict[str, Decimal]


class TicketFigures(BaseModel):
    baseline: Decimal
    rollover_in: Decimal
    available_balance: Decimal
    consumption: Decimal
    billed_requirements: Decimal
    net_adjustment: Decimal
    total_consumption: Decimal
    monthly_balance: Decimal
    rollover_out: Decimal
    overage: Decimal
    overage_value: Decimal | None


_FIGURE_NAMES = list(TicketFigures.model_fields)


def _hours(row) -> HoursFigures | None:
    if row.hours_baseline is None:
        return None
    values = {}
    decimal_hours = {}
    for name in _FIGURE_NAMES:
        value = getattr(row, f"hours_{name}")
        if name == "overage_value":
            values[name] = value
        else:
            values[name] = format_duration(value or 0)
            decimal_hours[name] = minutes_to_decimal_hours(value or 0)
    return HoursFigures(**values, decimal_hours=decimal_hours)


def _tickets(row) -> TicketFigures | None:
    if row.tickets_baseline is None:
        return None
    values = {}
    for name in _FIGURE_NAMES:
        value = getattr(row, f"tickets_{name}")
        if name == "overage_value":
            values[name] = value
        else:
            values[name] = value if value is not None else Decimal("0")
    return TicketFigures(**values)


class LedgerEntryResponse(BaseModel):
    id: int
    company_id: int
    year: int
    month: int
    hours: HoursFigures | None
    tickets: TicketFigures | None
    total_to_bill: Decimal
    is_cycle_end: bool
    cycle_index: int
    hour_rate_used: Decimal | None
    ticket_rate_used: Decimal | None
    public_note: str | None
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entry(cls, entry) -> "LedgerEntryResponse":
        return cls(
            id=entry.id,
            company_id=entry.company_id,
            year=entry.year,
            month=entry.month,
            hours=_hours(entry),
            tickets=_tickets(entry),
            total_to_bill=entry.total_to_bill,
            is_cycle_end=entry.is_cycle_end,
            cycle_index=entry.cycle_index,
            hour_rate_used=entry.hour_rate_used,
            ticket_rate_used=entry.ticket_rate_used,
            public_note=entry.public_note,
            version=entry.version,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


class SegmentedEntryResponse(BaseModel):
    ledger_entry_id: int
    allocation_id: int
    allocation_name: str
    baseline_share_percent: Decimal
    hours: HoursFigures | None
    tickets: TicketFigures | None
    total_to_bill: Decimal

    @classmethod
    def from_segment(cls, segment) -> "SegmentedEntryResponse":
        return cls(
            ledger_entry_id=segment.ledger_entry_id,
            allocation_id=segment.allocation_id,
            allocation_name=segment.allocation.name,
            baseline_share_percent=segment.allocation.baseline_share_percent,
            hours=_hours(segment),
            tickets=_tickets(segment),
            total_to_bill=segment.total_to_bill,
        )


class CascadeReport(BaseModel):
    """Outcome of a chain of monthly recalculations."""
    company_id: int
    start: str
    until: str
    recomputed: list[str]
    stopped_at: str | None
    error: dict | None
    cancelled: bool
    completed: bool

    @classmethod
    def from_result(cls, result) -> "CascadeReport":
        return cls(
            company_id=result.company_id,
            start=format_period(*result.start),
            until=format_period(*result.until),
            recomputed=[format_period(*p) for p in result.recomputed],
            stopped_at=(
                format_period(*result.stopped_at) if result.stopped_at else None
            ),
            error=result.error.to_dict() if result.error else None,
            cancelled=result.cancelled,
            completed=result.completed,
        )


class RecalculationResponse(BaseModel):
    entry: LedgerEntryResponse
    cascade: CascadeReport


class VersionResponse(BaseModel):
    id: int
    ledger_entry_id: int
    from_version: int
    to_version: int
    before: dict
    after: dict
    reason: str
    change_kind: ChangeKind
    created_at: datetime
    created_by: str | None

    model_config = {"from_attributes": True}


class VersionDiffResponse(BaseModel):
    version_id: int
    from_version: int
    to_version: int
    added: dict
    removed: dict
    modified: dict


class RecalculateRequest(BaseModel):
    """Manual recalculation. Use change_kind "correction" for administrative fixes."""
    reason: str | None = None
    change_kind: ChangeKind = ChangeKind.RECALCULATION

    @field_validator("change_kind")
    @classmethod
    def not_adjustment(cls, value):
        if value == ChangeKind.ADJUSTMENT:
            raise ValueError("Adjustments are recalculated through the adjustments API")
        return value
