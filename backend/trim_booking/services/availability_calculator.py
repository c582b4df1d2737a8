# backend/trim_booking/services/availability_calculator.py
"""
Availability Calculator for the Trim booking engine.

Derives bookable start times for a barber on a local date from:
- the weekly working window for that weekday
- recurring breaks
- bookings that currently occupy the barber

All interval math is done in minutes since midnight on half-open
[start, end) ranges, so back-to-back appointments never collide.
The calculator only reads; the scheduler re-checks under its lock.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.tenant import TenantContext
from ..core.timezone_utils import business_now, utc_now
from ..models.barber import AvailabilityWindow, BarberBreak
from ..models.booking import Booking
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

Interval = Tuple[int, int]

MINUTES_PER_DAY = 24 * 60


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def intervals_overlap(first: Interval, second: Interval) -> bool:
    """Half-open overlap: touching endpoints do not overlap."""
    return first[0] < second[1] and second[0] < first[1]


def subtract_intervals(free: Sequence[Interval], busy: Iterable[Interval]) -> List[Interval]:
    """
    Remove busy ranges from free ranges.

    >>> subtract_intervals([(540, 1020)], [(720, 780)])
    [(540, 720), (780, 1020)]
    """
    remaining = list(free)
    for busy_start, busy_end in sorted(busy):
        next_remaining: List[Interval] = []
        for free_start, free_end in remaining:
            if not intervals_overlap((free_start, free_end), (busy_start, busy_end)):
                next_remaining.append((free_start, free_end))
                continue
            if free_start < busy_start:
                next_remaining.append((free_start, busy_start))
            if busy_end < free_end:
                next_remaining.append((busy_end, free_end))
        remaining = next_remaining
    return remaining


def working_ranges(
    window: Optional[AvailabilityWindow], breaks: Iterable[BarberBreak]
) -> List[Interval]:
    """Working window minus breaks; empty when the barber is off that day."""
    if window is None or not window.is_available:
        return []
    base = [(to_minutes(window.start_time), to_minutes(window.end_time))]
    return subtract_intervals(
        base, [(to_minutes(b.start_time), to_minutes(b.end_time)) for b in breaks]
    )


def booking_interval(booking: Booking) -> Interval:
    return (to_minutes(booking.start_time), to_minutes(booking.end_time))


@dataclass(frozen=True)
class ScheduleEntry:
    """One occupied interval on a barber's day, as shown to staff."""

    booking_id: str
    start_time: time
    end_time: time
    status: str
    payment_status: str
    customer_name: Optional[str]
    service_name: Optional[str]


class AvailabilityCalculator(BaseService):
    """
    Read-only slot computation for one tenant's barbers.
    """

    def __init__(self, db: Session):
        super().__init__(db)
        self.barber_repository = RepositoryFactory.create_barber_repository(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    def _get_barber(self, tenant: TenantContext, barber_id: str, require_active: bool = True):
        barber = self.barber_repository.get_in_business(barber_id, tenant.business_id)
        if not barber or (require_active and not barber.active):
            raise NotFoundException("Barber not found", code="BARBER_NOT_FOUND")
        return barber

    def occupied_intervals(
        self,
        tenant: TenantContext,
        barber_id: str,
        booking_date: date,
        now: Optional[datetime] = None,
    ) -> List[Interval]:
        """Intervals held by non-cancelled bookings, ignoring lapsed deposit holds."""
        reference = now or utc_now()
        bookings = self.booking_repository.find_active_for_barber_day(
            tenant.business_id, barber_id, booking_date
        )
        return [booking_interval(b) for b in bookings if not b.is_expired(reference)]

    @BaseService.measure_operation("compute_slots")
    def compute_slots(
        self,
        tenant: TenantContext,
        barber_id: str,
        booking_date: date,
        service_duration_minutes: int,
        now: Optional[datetime] = None,
    ) -> List[time]:
        """
        Compute bookable start times.

        Args:
            tenant: Resolved tenant
            barber_id: Barber to check
            booking_date: Local date in the business timezone
            service_duration_minutes: Length of the requested service
            now: Reference instant (defaults to the real clock)

        Returns:
            Start times in ascending order

        Raises:
            NotFoundException: Unknown or inactive barber
            ValidationException: Non-positive duration
        """
        if service_duration_minutes <= 0:
            raise ValidationException(
                "Service duration must be positive", code="INVALID_DURATION"
            )
        self._get_barber(tenant, barber_id)

        reference = now or utc_now()
        local_now = business_now(tenant.timezone, reference)
        if booking_date < local_now.date():
            return []

        window = self.barber_repository.get_window_for_day(barber_id, booking_date.weekday())
        free = working_ranges(window, self.barber_repository.get_breaks(barber_id))
        if not free:
            return []
        free = subtract_intervals(
            free, self.occupied_intervals(tenant, barber_id, booking_date, reference)
        )

        step = settings.slot_interval_minutes
        slots: List[time] = []
        for range_start, range_end in free:
            cursor = range_start
            while cursor + service_duration_minutes <= range_end:
                slots.append(from_minutes(cursor))
                cursor += step

        if booking_date == local_now.date():
            cutoff = local_now.time()
            slots = [slot for slot in slots if slot > cutoff]

        slots.sort()
        self.logger.debug(
            "Computed slots",
            extra={
                "barber_id": barber_id,
                "date": booking_date.isoformat(),
                "slot_count": len(slots),
            },
        )
        return slots

    def compute_slots_for_service(
        self,
        tenant: TenantContext,
        barber_id: str,
        booking_date: date,
        service_id: str,
        now: Optional[datetime] = None,
    ) -> List[time]:
        # The barber in the path is reported before the service in the query
        self._get_barber(tenant, barber_id)
        service = self.service_repository.get_in_business(service_id, tenant.business_id)
        if not service or not service.active:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        return self.compute_slots(
            tenant, barber_id, booking_date, service.duration_minutes, now=now
        )

    @BaseService.measure_operation("get_schedule")
    def get_schedule(
        self,
        tenant: TenantContext,
        barber_id: str,
        booking_date: date,
        now: Optional[datetime] = None,
    ) -> List[ScheduleEntry]:
        """Occupied intervals for a barber's day, ordered by start; lapsed holds are left out."""
        reference = now or utc_now()
        self._get_barber(tenant, barber_id, require_active=False)
        bookings = self.booking_repository.find_active_for_barber_day(
            tenant.business_id, barber_id, booking_date, with_details=True
        )
        return [
            ScheduleEntry(
                booking_id=b.id,
                start_time=b.start_time,
                end_time=b.end_time,
                status=b.status,
                payment_status=b.payment_status,
                customer_name=b.customer.full_name if b.customer else None,
                service_name=b.service.name if b.service else None,
            )
            for b in bookings
            if not b.is_expired(reference)
        ]
