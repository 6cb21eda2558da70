"""
Usage snapshot model.

Monthly consumption and already-billed requirement totals, written
by the timesheet and billing synchronisation jobs. The default
consumption and requirements sources read from here.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime, Integer, Numeric, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hours_bank.models.base import Base


class UsageSnapshot(Base):
    __tablename__ = "usage_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "year", "month", name="uq_usage_company_period"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    consumed_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    consumed_tickets: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    billed_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    billed_tickets: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    refreshed_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
