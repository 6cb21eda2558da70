"""
Company model.

The client company a contract belongs to. Company maintenance is
done elsewhere; the engine only reads the name (for billing text)
and the active flag.
"""

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hours_bank.models.base import Base


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    allocations: Mapped[list["Allocation"]] = relationship(
        back_populates="company"
    )

    def __repr__(self) -> str:
        return f"<Company {self.id} {self.name}>"
