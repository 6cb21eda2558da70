"""
Ledger version model.

An immutable before/after snapshot of one change to a monthly
ledger entry. Versions are append-only: the service layer never
updates or deletes them.
"""

from datetime import datetime

from sqlalchemy import (
    String, DateTime, Integer, Text, JSON, ForeignKey,
    Enum as SAEnum, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hours_bank.models.base import Base
from hours_bank.models.enums import ChangeKind


class LedgerVersion(Base):
    __tablename__ = "ledger_versions"
    __table_args__ = (
        UniqueConstraint(
            "ledger_entry_id", "to_version", name="uq_version_entry_to"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    ledger_entry_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_ledger_entries.id"), nullable=False, index=True
    )
    from_version: Mapped[int] = mapped_column(Integer, nullable=False)
    to_version: Mapped[int] = mapped_column(Integer, nullable=False)
    before: Mapped[dict] = mapped_column(JSON, nullable=False)
    after: Mapped[dict] = mapped_column(JSON, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    change_kind: Mapped[ChangeKind] = mapped_column(
        SAEnum(ChangeKind, name="change_kind_enum", create_constraint=True),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    ledger_entry: Mapped["MonthlyLedgerEntry"] = relationship(
        back_populates="versions"
    )

    def __repr__(self) -> str:
        return (
            f"<LedgerVersion entry={self.ledger_entry_id} "
            f"v{self.from_version}->v{self.to_version} ({self.change_kind.value})>"
        )
