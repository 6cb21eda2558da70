"""
Rate model.

Unit prices used to bill overage, per company and quantity kind,
valid over a date range. An open valid_to means "until replaced".
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Numeric, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from hours_bank.models.base import Base
from hours_bank.models.enums import QuantityKind


class Rate(Base):
    __tablename__ = "rates"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"), nullable=False, index=True
    )
    kind: Mapped[QuantityKind] = mapped_column(
        SAEnum(QuantityKind, name="quantity_kind_enum", create_constraint=True),
        nullable=False,
    )
    unit_rate: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    valid_from: Mapped[date] = mapped_column(Date, nullable=False)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Rate {self.kind.value} {self.unit_rate} from {self.valid_from}>"
