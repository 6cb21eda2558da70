"""
Segmented ledger entry model.

The share of one consolidated entry that belongs to one allocation.
These rows are a cache: they are derived from the parent entry and
the allocation set, deleted whenever either changes, and rebuilt on
the next read. Nothing edits them directly.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hours_bank.models.base import Base
from hours_bank.models.ledger_entry import LedgerFiguresMixin


class SegmentedLedgerEntry(LedgerFiguresMixin, Base):
    __tablename__ = "segmented_ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "ledger_entry_id", "allocation_id", name="uq_segment_entry_allocation"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    ledger_entry_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_ledger_entries.id"), nullable=False, index=True
    )
    allocation_id: Mapped[int] = mapped_column(
        ForeignKey("allocations.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    ledger_entry: Mapped["MonthlyLedgerEntry"] = relationship()
    allocation: Mapped["Allocation"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<SegmentedLedgerEntry entry={self.ledger_entry_id} "
            f"allocation={self.allocation_id}>"
        )
