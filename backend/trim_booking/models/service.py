"""
Service offered by a business.

Services are deactivated rather than deleted so historical bookings keep
their reference.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..database import Base

if TYPE_CHECKING:
    from .business import Business


class Service(Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    business_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("businesses.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    deposit_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    business: Mapped["Business"] = relationship("Business", back_populates="services")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
        CheckConstraint("price > 0", name="ck_services_price_positive"),
        CheckConstraint(
            "deposit_percentage BETWEEN 0 AND 100", name="ck_services_deposit_percentage"
        ),
    )

    def __repr__(self) -> str:
        return f"<Service(name={self.name}, {self.duration_minutes}min, price={self.price})>"
