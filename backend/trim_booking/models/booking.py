# backend/trim_booking/models/booking.py
"""
Booking model for the Trim booking engine.

A booking reserves one barber for one service interval on one local date.
Bookings are never deleted: cancellation is a terminal status so history
and no-show counts survive.

Status changes go through BookingLifecycle; this module only defines the
columns, the status vocabularies, and read-side helpers.
"""

from datetime import datetime
from enum import Enum
import logging
import os
from typing import Optional, cast

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.timezone_utils import ensure_utc
from ..database import Base

logger = logging.getLogger(__name__)

IS_SQLITE = os.getenv("DB_DIALECT", "").lower().startswith("sqlite")


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Slot held, not yet confirmed
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class PaymentStatus(str, Enum):
    """Money state of a booking, moved in lock-step with BookingStatus."""

    PENDING = "PENDING"  # Pay in shop, nothing collected yet
    DEPOSIT_PENDING = "DEPOSIT_PENDING"  # Online deposit awaited; booking expires
    DEPOSIT_PAID = "DEPOSIT_PAID"
    FULLY_PAID = "FULLY_PAID"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    PAY_ONLINE = "pay_online"
    PAY_IN_SHOP = "pay_in_shop"


TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value, BookingStatus.NO_SHOW.value}
)


class Booking(Base):
    """
    Reservation of a barber for a service interval.

    Invariants kept by the services:
    - non-cancelled bookings for one barber/date never overlap
    - expires_at is set iff status is PENDING and payment_status is DEPOSIT_PENDING
    """

    __tablename__ = "bookings"

    # Primary key
    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Tenant and participants
    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)
    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    barber_id = Column(String(26), ForeignKey("barbers.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("services.id"), nullable=False)

    # Local schedule in the business timezone
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Lifecycle
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.PAY_ONLINE.value)

    # Money
    deposit_amount = Column(Numeric(10, 2), nullable=False, default=0)
    outstanding_balance = Column(Numeric(10, 2), nullable=False, default=0)

    # Slot hold deadline (UTC)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Relationships
    business = relationship("Business")
    customer = relationship("User", foreign_keys=[customer_id])
    barber = relationship("Barber")
    service = relationship("Service")
    payment = relationship("Payment", back_populates="booking", uselist=False)

    # Data integrity constraints
    _table_constraints = [
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('PENDING', 'DEPOSIT_PENDING', 'DEPOSIT_PAID', "
            "'FULLY_PAID', 'REFUNDED', 'CANCELLED')",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint(
            "payment_method IN ('pay_online', 'pay_in_shop')",
            name="ck_bookings_payment_method",
        ),
        CheckConstraint("deposit_amount >= 0", name="ck_bookings_deposit_non_negative"),
        CheckConstraint("outstanding_balance >= 0", name="ck_bookings_outstanding_non_negative"),
        Index("ix_bookings_barber_date_status", "barber_id", "booking_date", "status"),
        Index("ix_bookings_expiry_scan", "status", "payment_status", "expires_at"),
    ]

    if not IS_SQLITE:
        _table_constraints.append(
            CheckConstraint("start_time < end_time", name="ck_bookings_time_order")
        )

    __table_args__ = tuple(_table_constraints)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Booking {self.id}: business={self.business_id}, barber={self.barber_id}, "
            f"date={self.booking_date}, time={self.start_time}-{self.end_time}, "
            f"status={self.status}/{self.payment_status}>"
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_awaiting_deposit(self) -> bool:
        return (
            self.status == BookingStatus.PENDING.value
            and self.payment_status == PaymentStatus.DEPOSIT_PENDING.value
        )

    def is_expired(self, now: datetime) -> bool:
        """True for an unpaid hold whose deadline has passed."""
        expires_at = ensure_utc(cast(Optional[datetime], self.expires_at))
        return self.is_awaiting_deposit and expires_at is not None and expires_at <= ensure_utc(now)

