# backend/trim_booking/services/booking_scheduler.py
"""
Booking Scheduler for the Trim booking engine.

Admits or rejects booking requests for a barber's slot. Cheap checks
(existence, blacklist, time sanity, working hours, deposit size) run
first without any lock. The overlap check and the insert then run under
barber_day_lock inside a single transaction, which is what guarantees
that two concurrent requests for the same slot cannot both succeed.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.booking_lock import barber_day_lock
from ..core.config import settings
from ..core.constants import EVENT_BOOKING_EXPIRED, EVENT_BOOKING_RESCHEDULED
from ..core.exceptions import (
    BookingConflictException,
    CustomerBlockedException,
    InvalidTransitionException,
    NotFoundException,
    OutsideWorkingHoursException,
    ValidationException,
)
from ..core.tenant import TenantContext
from ..core.timezone_utils import business_now, utc_now
from ..models.barber import Barber
from ..models.booking import Booking, BookingStatus, PaymentMethod, PaymentStatus
from ..models.service import Service
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .availability_calculator import (
    MINUTES_PER_DAY,
    booking_interval,
    from_minutes,
    intervals_overlap,
    to_minutes,
    working_ranges,
)
from .base import BaseService
from .booking_lifecycle import BookingLifecycle
from .notification_dispatcher import NotificationDispatcher
from .payment_orchestrator import calculate_deposit, ensure_chargeable, to_minor_units

logger = logging.getLogger(__name__)

STALE_HOLD_REASON = "Payment window expired"


class BookingScheduler(BaseService):
    """
    Creates and reschedules bookings.

    All methods take the tenant explicitly; ids that belong to another
    business are reported as not found.
    """

    def __init__(
        self,
        db: Session,
        lifecycle: Optional[BookingLifecycle] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.barber_repository = RepositoryFactory.create_barber_repository(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.lifecycle = lifecycle or BookingLifecycle()
        self.dispatcher = dispatcher or NotificationDispatcher()

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        tenant: TenantContext,
        customer_id: str,
        barber_id: str,
        service_id: str,
        booking_date: date,
        start_time: time,
        payment_method: str = PaymentMethod.PAY_ONLINE.value,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Admit a new booking in PENDING.

        Args:
            tenant: Resolved tenant
            customer_id: Customer making the booking
            barber_id: Barber to book
            service_id: Service being booked (gives duration and price)
            booking_date: Local date in the business timezone
            start_time: Local start time
            payment_method: pay_online (deposit, expires) or pay_in_shop
            now: Reference instant (defaults to the real clock)

        Returns:
            The committed booking

        Raises:
            NotFoundException: Customer, barber or service unknown in this tenant
            CustomerBlockedException: Customer is blacklisted
            ValidationException: Bad duration, unknown payment method, or start in the past
            OutsideWorkingHoursException: Interval not inside working hours
            AmountTooSmallException: Deposit below the processor minimum
            BookingConflictException: Slot already taken
        """
        reference = now or utc_now()
        method = self._parse_payment_method(payment_method)

        customer = self._get_customer(tenant, customer_id)
        barber = self._get_active_barber(tenant, barber_id)
        service = self._get_active_service(tenant, service_id)
        if customer.blacklisted:
            raise CustomerBlockedException(customer.blacklist_reason)

        start_minute, end_minute = self._validate_timing(
            tenant, barber, service, booking_date, start_time, reference
        )

        deposit, outstanding = Decimal("0.00"), Decimal(service.price)
        if method == PaymentMethod.PAY_ONLINE:
            deposit, outstanding = calculate_deposit(service.price, service.deposit_percentage)
            if deposit > 0:
                ensure_chargeable(to_minor_units(deposit))

        with barber_day_lock(self.db, tenant.business_id, barber.id, booking_date):
            with self.transaction():
                released = self._check_conflicts(
                    tenant, barber.id, booking_date, (start_minute, end_minute), reference
                )
                values = {
                    "business_id": tenant.business_id,
                    "customer_id": customer.id,
                    "barber_id": barber.id,
                    "service_id": service.id,
                    "booking_date": booking_date,
                    "start_time": from_minutes(start_minute),
                    "end_time": from_minutes(end_minute),
                    "status": BookingStatus.PENDING.value,
                    "payment_method": method.value,
                }
                if method == PaymentMethod.PAY_ONLINE and deposit > 0:
                    values.update(
                        payment_status=PaymentStatus.DEPOSIT_PENDING.value,
                        deposit_amount=deposit,
                        outstanding_balance=outstanding,
                        expires_at=reference + timedelta(minutes=settings.booking_hold_minutes),
                    )
                else:
                    # Nothing to collect online: the booking waits for staff to confirm payment
                    values.update(
                        payment_status=PaymentStatus.PENDING.value,
                        deposit_amount=Decimal("0.00"),
                        outstanding_balance=Decimal(service.price),
                        expires_at=None,
                    )
                booking = self.booking_repository.create(**values)

        self._announce_released_holds(tenant, released)
        self.log_operation(
            "booking_created",
            booking_id=booking.id,
            business_id=tenant.business_id,
            barber_id=barber.id,
            payment_method=method.value,
        )
        return booking

    @BaseService.measure_operation("reschedule_booking")
    def reschedule_booking(
        self,
        tenant: TenantContext,
        booking_id: str,
        booking_date: date,
        start_time: time,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Move a booking to a new date and time with the same barber and service.

        Raises:
            NotFoundException: Booking not in this tenant
            InvalidTransitionException: Booking is completed, cancelled or a no-show
            ValidationException / OutsideWorkingHoursException: New time invalid
            BookingConflictException: New slot taken
        """
        reference = now or utc_now()
        booking = self.booking_repository.get_booking_with_details(booking_id, tenant.business_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if booking.is_terminal:
            raise InvalidTransitionException(booking.id, booking.status, "reschedule")

        barber = self._get_active_barber(tenant, booking.barber_id)
        service = booking.service
        start_minute, end_minute = self._validate_timing(
            tenant, barber, service, booking_date, start_time, reference
        )

        with barber_day_lock(self.db, tenant.business_id, barber.id, booking_date):
            with self.transaction():
                released = self._check_conflicts(
                    tenant,
                    barber.id,
                    booking_date,
                    (start_minute, end_minute),
                    reference,
                    exclude_booking_id=booking.id,
                )
                self.db.refresh(booking)
                if booking.is_terminal:
                    raise InvalidTransitionException(booking.id, booking.status, "reschedule")
                booking.booking_date = booking_date
                booking.start_time = from_minutes(start_minute)
                booking.end_time = from_minutes(end_minute)
                if booking.is_awaiting_deposit:
                    booking.expires_at = reference + timedelta(
                        minutes=settings.booking_hold_minutes
                    )

        self._announce_released_holds(tenant, released)
        self.log_operation(
            "booking_rescheduled",
            booking_id=booking.id,
            business_id=tenant.business_id,
            booking_date=booking_date.isoformat(),
        )
        self.dispatcher.booking_event(EVENT_BOOKING_RESCHEDULED, booking.id, tenant.business_id)
        return booking

    # Validation helpers (no lock held)

    @staticmethod
    def _parse_payment_method(payment_method: str) -> PaymentMethod:
        try:
            return PaymentMethod(payment_method)
        except ValueError:
            raise ValidationException(
                f"Unsupported payment method: {payment_method}", code="INVALID_PAYMENT_METHOD"
            )

    def _get_customer(self, tenant: TenantContext, customer_id: str) -> User:
        customer = self.user_repository.get_in_business(customer_id, tenant.business_id)
        if not customer or not customer.is_active:
            raise NotFoundException("Customer not found", code="CUSTOMER_NOT_FOUND")
        return customer

    def _get_active_barber(self, tenant: TenantContext, barber_id: str) -> Barber:
        barber = self.barber_repository.get_in_business(barber_id, tenant.business_id)
        if not barber or not barber.active:
            raise NotFoundException("Barber not found", code="BARBER_NOT_FOUND")
        return barber

    def _get_active_service(self, tenant: TenantContext, service_id: str) -> Service:
        service = self.service_repository.get_in_business(service_id, tenant.business_id)
        if not service or not service.active:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        return service

    def _validate_timing(
        self,
        tenant: TenantContext,
        barber: Barber,
        service: Service,
        booking_date: date,
        start_time: time,
        reference: datetime,
    ) -> Tuple[int, int]:
        """Return the [start, end) minutes of the requested interval, or raise."""
        duration = service.duration_minutes or 0
        if duration <= 0:
            raise ValidationException("Service duration must be positive", code="INVALID_DURATION")
        if start_time.tzinfo is not None:
            raise ValidationException(
                "Start time must be local to the business, without a UTC offset",
                code="INVALID_START_TIME",
            )

        requested_start = datetime.combine(booking_date, start_time.replace(second=0, microsecond=0))
        if requested_start <= business_now(tenant.timezone, reference):
            raise ValidationException("Cannot book time slots in the past", code="BOOKING_IN_PAST")

        start_minute = to_minutes(start_time)
        end_minute = start_minute + duration
        details = {
            "barber_id": barber.id,
            "date": booking_date.isoformat(),
            "start_time": start_time.strftime("%H:%M"),
        }
        if end_minute > MINUTES_PER_DAY:
            raise OutsideWorkingHoursException(
                "Booking cannot extend past midnight", details=details
            )

        window = self.barber_repository.get_window_for_day(barber.id, booking_date.weekday())
        ranges = working_ranges(window, self.barber_repository.get_breaks(barber.id))
        if not any(start <= start_minute and end_minute <= end for start, end in ranges):
            if window is None or not window.is_available:
                message = "Barber does not work on this day"
            else:
                message = "Requested time is outside the barber's working hours or overlaps a break"
            raise OutsideWorkingHoursException(message, details=details)
        return start_minute, end_minute

    # Serialized section helpers (lock held, transaction open)

    def _check_conflicts(
        self,
        tenant: TenantContext,
        barber_id: str,
        booking_date: date,
        requested: Tuple[int, int],
        reference: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[str]:
        """Raise on overlap; returns the ids of lapsed holds released along the way."""
        existing: List[Booking] = self.booking_repository.find_active_for_barber_day(
            tenant.business_id, barber_id, booking_date, exclude_booking_id=exclude_booking_id
        )
        released: List[str] = []
        for other in existing:
            if other.is_expired(reference):
                self.lifecycle.cancel(other, reason=STALE_HOLD_REASON)
                released.append(other.id)
                self.logger.info(
                    "Released lapsed hold during booking",
                    extra={"booking_id": other.id, "business_id": tenant.business_id},
                )
                continue
            if intervals_overlap(requested, booking_interval(other)):
                prometheus_metrics.inc_booking_conflict(
                    "reschedule" if exclude_booking_id else "create"
                )
                raise BookingConflictException(
                    details={
                        "conflicting_booking_id": other.id,
                        "date": booking_date.isoformat(),
                        "start_time": other.start_time.strftime("%H:%M"),
                        "end_time": other.end_time.strftime("%H:%M"),
                    }
                )
        self.booking_repository.flush()
        return released

    def _announce_released_holds(self, tenant: TenantContext, released: List[str]) -> None:
        """Treat holds released at admission like swept ones, once committed."""
        for booking_id in released:
            prometheus_metrics.inc_booking_expired("cancelled")
            self.dispatcher.booking_event(EVENT_BOOKING_EXPIRED, booking_id, tenant.business_id)
