"""
Business (tenant) model.

Every other entity belongs to exactly one business, directly or through
its barber. The slug is what requests use to name their tenant.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..database import Base

if TYPE_CHECKING:
    from .barber import Barber
    from .service import Service
    from .user import User


class Business(Base):
    """A tenant: one barbershop with its own staff, services and bookings."""

    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    slug: Mapped[str] = mapped_column(String(63), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="Europe/Dublin")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    barbers: Mapped[List["Barber"]] = relationship("Barber", back_populates="business")
    services: Mapped[List["Service"]] = relationship("Service", back_populates="business")
    users: Mapped[List["User"]] = relationship("User", back_populates="business")

    def __repr__(self) -> str:
        return f"<Business(slug={self.slug}, name={self.name})>"
