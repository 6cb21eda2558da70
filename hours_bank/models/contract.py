"""
Contract parameters model.

A company may have several parameter rows over time. Each row
takes effect on its effective_from date and stays in force until
a later row takes over; rows are never edited in place so that
older months can always be recomputed with the rules they were
calculated under. The one exception is current_cycle_index, which
the rollover engine moves forward as cycles close.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Integer, Numeric, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hours_bank.models.base import Base
from hours_bank.models.enums import ContractKind


class ContractParameters(Base):
    __tablename__ = "contract_parameters"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"), nullable=False, index=True
    )
    contract_kind: Mapped[ContractKind] = mapped_column(
        SAEnum(
            ContractKind,
            name="contract_kind_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    assessment_period_months: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)

    # Monthly baselines. Hours are stored as minutes.
    baseline_minutes: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    baseline_tickets: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )

    has_special_rollover: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    cycles_before_zeroing: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    monthly_rollover_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("100")
    )
    current_cycle_index: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    created_by: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )

    company: Mapped["Company"] = relationship()

    @property
    def effective_year(self) -> int:
        return self.effective_from.year

    @property
    def effective_month(self) -> int:
        return self.effective_from.month

    def __repr__(self) -> str:
        return (
            f"<ContractParameters company={self.company_id} "
            f"{self.contract_kind.value} from {self.effective_from}>"
        )
