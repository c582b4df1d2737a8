# backend/trim_booking/schemas/__init__.py
"""
Request and response schemas for the v1 API.
"""

from .availability import AvailabilityResponse
from .booking import (
    BarberScheduleResponse,
    BookingCancelRequest,
    BookingCreateRequest,
    BookingCreateResponse,
    BookingRescheduleRequest,
    BookingResponse,
    ScheduleEntryResponse,
)
from .payment import CreateIntentRequest, DepositIntentResponse, WebhookResponse

__all__ = [
    "AvailabilityResponse",
    "BarberScheduleResponse",
    "BookingCancelRequest",
    "BookingCreateRequest",
    "BookingCreateResponse",
    "BookingRescheduleRequest",
    "BookingResponse",
    "CreateIntentRequest",
    "DepositIntentResponse",
    "ScheduleEntryResponse",
    "WebhookResponse",
]
