# backend/trim_booking/schemas/booking.py
"""
Booking schemas for the Trim booking engine.

A booking carries its own date and time; end_time is derived from the
service duration and is never accepted from the client.
"""

from datetime import date, datetime, time
import re
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.constants import MAX_REASON_LENGTH
from ..models.booking import Booking, PaymentMethod
from ..services.availability_calculator import ScheduleEntry
from .base import Money, StandardizedModel, StrictRequestModel
from .payment import DepositIntentResponse

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        return candidate
    return value


def _ensure_local_time(value: time) -> time:
    # Times are wall-clock in the business timezone
    if value.tzinfo is not None:
        raise ValueError("start_time must be a local time without a UTC offset")
    return value


class BookingCreateRequest(StrictRequestModel):
    """Request a slot with a barber for one service."""

    customer_id: str = Field(..., description="Customer the booking is for")
    barber_id: str = Field(..., description="Barber to book")
    service_id: str = Field(..., description="Service being booked")
    booking_date: date = Field(..., description="Local date in the business timezone")
    start_time: time = Field(..., description="Local start time")
    payment_method: PaymentMethod = Field(
        PaymentMethod.PAY_ONLINE, description="pay_online (deposit) or pay_in_shop"
    )

    @field_validator("booking_date", mode="before")
    @classmethod
    def validate_booking_date(cls, v: object) -> object:
        return _ensure_date_only(v, "booking_date")

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v: time) -> time:
        return _ensure_local_time(v)


class BookingRescheduleRequest(StrictRequestModel):
    booking_date: date
    start_time: time

    @field_validator("booking_date", mode="before")
    @classmethod
    def validate_booking_date(cls, v: object) -> object:
        return _ensure_date_only(v, "booking_date")

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v: time) -> time:
        return _ensure_local_time(v)


class BookingCancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class BookingResponse(StandardizedModel):
    id: str
    business_id: str
    customer_id: str
    barber_id: str
    service_id: str
    booking_date: date
    start_time: time
    end_time: time
    status: str
    payment_status: str
    payment_method: str
    deposit_amount: Money
    outstanding_balance: Money
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls.model_validate(booking)


class BookingCreateResponse(StandardizedModel):
    """Created booking plus the deposit handle when one was opened."""

    booking: BookingResponse
    payment: Optional[DepositIntentResponse] = None


class ScheduleEntryResponse(StandardizedModel):
    booking_id: str
    start_time: time
    end_time: time
    status: str
    payment_status: str
    customer_name: Optional[str] = None
    service_name: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: ScheduleEntry) -> "ScheduleEntryResponse":
        return cls.model_validate(entry)


class BarberScheduleResponse(StandardizedModel):
    barber_id: str
    booking_date: date
    entries: List[ScheduleEntryResponse]


class BookingListResponse(StandardizedModel):
    bookings: List[BookingResponse]
    total: int

    @classmethod
    def from_bookings(cls, bookings: List[Booking]) -> "BookingListResponse":
        return cls(
            bookings=[BookingResponse.from_booking(booking) for booking in bookings],
            total=len(bookings),
        )
