"""
External data the ledger depends on.

Consumption comes from timesheets, billed requirements from the
billing subsystem and rates from the price table. The engine only
sees the Protocols below; the SQL implementations read the
usage_snapshots and rates tables that the sync jobs maintain.

A month with no snapshot row has simply had no usage yet. A failing
query is a different thing and is reported as DataSourceUnavailable,
never as zero.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hours_bank.exceptions import DataSourceUnavailable
from hours_bank.models.enums import QuantityKind
from hours_bank.models.rate import Rate
from hours_bank.models.usage import UsageSnapshot
from hours_bank.services.periods import first_day, format_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Usage:
    """
    Totals for one month.

    ``minutes`` may arrive as "H:MM" text from feeds that do not
    convert; the calculator parses it strictly.
    """
    minutes: int | str = 0
    tickets: Decimal = Decimal("0")


class ConsumptionSource(Protocol):
    def consumption(
        self, company_id: int, year: int, month: int
    ) -> Usage:  # pragma: no cover - interface
        ...


class RequirementsSource(Protocol):
    def billed_requirements(
        self, company_id: int, year: int, month: int
    ) -> Usage:  # pragma: no cover - interface
        ...


class RateTable(Protocol):
    def rate_for(
        self, company_id: int, year: int, month: int, kind: QuantityKind
    ) -> Decimal | None:  # pragma: no cover - interface
        ...


class SqlUsageSource:
    """Consumption and billed requirements from usage_snapshots."""

    def __init__(self, db: Session):
        self.db = db

    def _snapshot(self, company_id: int, year: int, month: int, source: str):
        try:
            return self.db.execute(
                select(UsageSnapshot).where(
                    UsageSnapshot.company_id == company_id,
                    UsageSnapshot.year == year,
                    UsageSnapshot.month == month,
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Usage lookup failed",
                extra={"company_id": company_id, "year": year, "month": month},
            )
            raise DataSourceUnavailable(
                f"Could not read {source} for {format_period(year, month)}",
                details={
                    "company_id": company_id,
                    "period": format_period(year, month),
                    "source": source,
                    "cause": str(e),
                },
            ) from e

    def consumption(self, company_id: int, year: int, month: int) -> Usage:
        snapshot = self._snapshot(company_id, year, month, "consumption")
        if snapshot is None:
            return Usage()
        return Usage(snapshot.consumed_minutes, snapshot.consumed_tickets)

    def billed_requirements(
        self, company_id: int, year: int, month: int
    ) -> Usage:
        snapshot = self._snapshot(company_id, year, month, "billed requirements")
        if snapshot is None:
            return Usage()
        return Usage(snapshot.billed_minutes, snapshot.billed_tickets)

    def store(
        self,
        company_id: int,
        year: int,
        month: int,
        consumed_minutes: int,
        consumed_tickets: Decimal,
        billed_minutes: int,
        billed_tickets: Decimal,
    ) -> UsageSnapshot:
        """Insert or replace the month's snapshot. Caller commits."""
        snapshot = self._snapshot(company_id, year, month, "usage")
        if snapshot is None:
            snapshot = UsageSnapshot(company_id=company_id, year=year, month=month)
            self.db.add(snapshot)
        snapshot.consumed_minutes = consumed_minutes
        snapshot.consumed_tickets = consumed_tickets
        snapshot.billed_minutes = billed_minutes
        snapshot.billed_tickets = billed_tickets
        self.db.flush()
        return snapshot


class SqlRateTable:
    """
    Rates from the rates table.

    When several rates are valid on the first day of the month,
    the oldest one applies.
    """

    def __init__(self, db: Session):
        self.db = db

    def rate_for(
        self, company_id: int, year: int, month: int, kind: QuantityKind
    ) -> Decimal | None:
        day = first_day(year, month)
        try:
            rate = self.db.execute(
                select(Rate)
                .where(
                    Rate.company_id == company_id,
                    Rate.kind == kind,
                    Rate.valid_from <= day,
                    or_(Rate.valid_to.is_(None), Rate.valid_to >= day),
                )
                .order_by(Rate.valid_from, Rate.id)
                .limit(1)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DataSourceUnavailable(
                f"Could not read rates for {format_period(year, month)}",
                details={
                    "company_id": company_id,
                    "period": format_period(year, month),
                    "source": "rates",
                    "cause": str(e),
                },
            ) from e
        return rate.unit_rate if rate else None

    def add(self, company_id: int, kind: QuantityKind, unit_rate: Decimal,
            valid_from, valid_to=None) -> Rate:
        rate = Rate(
            company_id=company_id,
            kind=kind,
            unit_rate=unit_rate,
            valid_from=valid_from,
            valid_to=valid_to,
        )
        self.db.add(rate)
        self.db.flush()
        return rate
