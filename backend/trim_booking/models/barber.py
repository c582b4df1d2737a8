"""
Barber, weekly availability, and break models.

A barber works at most one recurring window per weekday. Breaks are
time-of-day intervals that apply on every working day.
"""

from datetime import time
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..database import Base

if TYPE_CHECKING:
    from .business import Business


class Barber(Base):
    """Staff member who can be booked."""

    __tablename__ = "barbers"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    business_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("businesses.id"), nullable=False, index=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    business: Mapped["Business"] = relationship("Business", back_populates="barbers")
    availability: Mapped[List["AvailabilityWindow"]] = relationship(
        "AvailabilityWindow", back_populates="barber", cascade="all, delete-orphan"
    )
    breaks: Mapped[List["BarberBreak"]] = relationship(
        "BarberBreak", back_populates="barber", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Barber(id={self.id}, name={self.name}, active={self.active})>"


class AvailabilityWindow(Base):
    """Recurring working hours for one weekday (0=Monday ... 6=Sunday)."""

    __tablename__ = "barber_availability"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    barber_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("barbers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    barber: Mapped["Barber"] = relationship("Barber", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("barber_id", "day_of_week", name="uq_barber_availability_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_barber_availability_day"),
        CheckConstraint("start_time < end_time", name="ck_barber_availability_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<AvailabilityWindow(barber={self.barber_id}, day={self.day_of_week}, "
            f"{self.start_time}-{self.end_time}, available={self.is_available})>"
        )


class BarberBreak(Base):
    """Recurring break (lunch etc.), subtracted from every working day."""

    __tablename__ = "barber_breaks"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    barber_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("barbers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    barber: Mapped["Barber"] = relationship("Barber", back_populates="breaks")

    __table_args__ = (CheckConstraint("start_time < end_time", name="ck_barber_breaks_order"),)

    def __repr__(self) -> str:
        return f"<BarberBreak(barber={self.barber_id}, {self.start_time}-{self.end_time})>"
