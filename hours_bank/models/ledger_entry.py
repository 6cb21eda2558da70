"""
Monthly ledger entry model.

Exactly one live row per company and month. The row is created by
the ledger calculator and later updated in place by recomputations
of that same month; every update bumps ``version`` and leaves a
LedgerVersion row behind, which is where history lives.

Hours and tickets are two independent, parallel sets of columns.
The set for a kind the contract does not include stays NULL.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Integer, Numeric, Text, ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hours_bank.models.base import Base


# Per-kind figures, in calculation order. Column names are the
# figure name prefixed with "hours_" or "tickets_".
FIGURES = (
    "baseline",
    "rollover_in",
    "available_balance",
    "consumption",
    "billed_requirements",
    "net_adjustment",
    "total_consumption",
    "monthly_balance",
    "rollover_out",
    "overage",
    "overage_value",
)


class LedgerFiguresMixin:
    """Columns shared by the consolidated and the segmented entries."""

    # Hours, in minutes
    hours_baseline: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_rollover_in: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_available_balance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_consumption: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_billed_requirements: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_net_adjustment: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_total_consumption: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_monthly_balance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_rollover_out: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_overage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_overage_value: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 2), nullable=True
    )

    # Tickets
    tickets_baseline: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_rollover_in: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_available_balance: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_consumption: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_billed_requirements: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_net_adjustment: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_total_consumption: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_monthly_balance: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_rollover_out: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_overage: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tickets_overage_value: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 2), nullable=True
    )

    total_to_bill: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0.00")
    )


class MonthlyLedgerEntry(LedgerFiguresMixin, Base):
    __tablename__ = "monthly_ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "year", "month", name="uq_ledger_company_period"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    is_cycle_end: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    # Position of this month inside its cycle, 1-based
    cycle_index: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    hour_rate_used: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    ticket_rate_used: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    public_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    versions: Mapped[list["LedgerVersion"]] = relationship(
        back_populates="ledger_entry",
        order_by="LedgerVersion.to_version",
    )

    @property
    def period(self) -> tuple[int, int]:
        return (self.year, self.month)

    def __repr__(self) -> str:
        return (
            f"<MonthlyLedgerEntry company={self.company_id} "
            f"{self.month:02d}/{self.year} v{self.version}>"
        )
