# backend/trim_booking/services/booking_actions.py
"""
Staff and customer actions on existing bookings.

Each action runs a tenant-scoped lookup, applies one lifecycle
transition (and any payment row change) in a single transaction, and
only then hands the event to the notification dispatcher.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.constants import (
    EVENT_BOOKING_CANCELLED,
    EVENT_BOOKING_COMPLETED,
    EVENT_BOOKING_NO_SHOW,
)
from ..core.exceptions import NotFoundException
from ..core.tenant import TenantContext
from ..models.booking import Booking
from ..models.payment import PaymentRecordStatus
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_lifecycle import BookingLifecycle
from .notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

# Payment rows still open when the customer settles at the counter
_OPEN_PAYMENT_STATUSES = frozenset(
    {
        PaymentRecordStatus.PENDING.value,
        PaymentRecordStatus.PROCESSING.value,
        PaymentRecordStatus.FAILED.value,
    }
)


class BookingActionService(BaseService):
    def __init__(
        self,
        db: Session,
        lifecycle: Optional[BookingLifecycle] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.lifecycle = lifecycle or BookingLifecycle()
        self.dispatcher = dispatcher or NotificationDispatcher()

    def get_booking(self, tenant: TenantContext, booking_id: str) -> Booking:
        booking = self.booking_repository.get_booking_with_details(booking_id, tenant.business_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, tenant: TenantContext, booking_id: str, reason: Optional[str] = None
    ) -> Booking:
        booking = self._apply(
            tenant, booking_id, lambda b: self.lifecycle.cancel(b, reason=reason)
        )
        self.dispatcher.booking_event(EVENT_BOOKING_CANCELLED, booking.id, tenant.business_id)
        return booking

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, tenant: TenantContext, booking_id: str) -> Booking:
        booking = self._apply(tenant, booking_id, self.lifecycle.complete)
        self.dispatcher.booking_event(EVENT_BOOKING_COMPLETED, booking.id, tenant.business_id)
        return booking

    @BaseService.measure_operation("mark_paid_in_shop")
    def mark_paid_in_shop(self, tenant: TenantContext, booking_id: str) -> Booking:
        def settle(booking: Booking) -> Booking:
            self.lifecycle.mark_paid_in_shop(booking)
            if booking.payment is not None and booking.payment.status in _OPEN_PAYMENT_STATUSES:
                booking.payment.status = PaymentRecordStatus.PAY_IN_SHOP.value
            return booking

        return self._apply(tenant, booking_id, settle)

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(self, tenant: TenantContext, booking_id: str) -> Booking:
        booking = self._apply(tenant, booking_id, self.lifecycle.mark_no_show)
        self.dispatcher.booking_event(EVENT_BOOKING_NO_SHOW, booking.id, tenant.business_id)
        return booking

    def _apply(
        self,
        tenant: TenantContext,
        booking_id: str,
        transition: Callable[[Booking], Booking],
    ) -> Booking:
        with self.transaction():
            booking = self.get_booking(tenant, booking_id)
            # Row lock held until commit
            self.booking_repository.get_for_update(booking.id)
            transition(booking)
        self.log_operation(
            "booking_action",
            booking_id=booking.id,
            business_id=tenant.business_id,
            status=booking.status,
            payment_status=booking.payment_status,
        )
        return booking
