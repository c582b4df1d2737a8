# backend/trim_booking/schemas/availability.py
"""Public slot listing."""

from datetime import date, time
from typing import List

from .base import StandardizedModel


class AvailabilityResponse(StandardizedModel):
    barber_id: str
    service_id: str
    booking_date: date
    slot_interval_minutes: int
    slots: List[time]
