"""
Adjustment model.

A manual correction to a month's balance. Values are stored as
positive magnitudes; the direction says whether they add to the
month ("in") or remove from it ("out"). Adjustments are never
edited or deleted. Deactivation removes them from the month's
totals while keeping them for audit.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Integer, Numeric, Text, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from hours_bank.models.base import Base
from hours_bank.models.enums import AdjustmentDirection


class Adjustment(Base):
    __tablename__ = "adjustments"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    hours_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tickets: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    direction: Mapped[AdjustmentDirection] = mapped_column(
        SAEnum(
            AdjustmentDirection,
            name="adjustment_direction_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    deactivated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    deactivation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def sign(self) -> int:
        return 1 if self.direction == AdjustmentDirection.IN else -1

    def __repr__(self) -> str:
        return (
            f"<Adjustment {self.direction.value} "
            f"{self.month:02d}/{self.year} company={self.company_id}>"
        )
