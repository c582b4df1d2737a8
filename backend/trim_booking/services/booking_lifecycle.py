# backend/trim_booking/services/booking_lifecycle.py
"""
Booking lifecycle state machine.

    PENDING   -> CONFIRMED | CANCELLED
    CONFIRMED -> COMPLETED | CANCELLED | NO_SHOW
    COMPLETED, CANCELLED, NO_SHOW are terminal

Payment status moves together with the booking status. Every operation
checks its preconditions before touching the entity, so a rejected
transition leaves the booking exactly as it was. The caller owns the
transaction; nothing here commits.
"""

from datetime import datetime
from decimal import Decimal
import logging
from typing import Callable, Dict, FrozenSet, Optional

from ..core.exceptions import InvalidTransitionException
from ..core.timezone_utils import utc_now
from ..models.booking import Booking, BookingStatus, PaymentStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    BookingStatus.PENDING.value: frozenset(
        {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value}
    ),
    BookingStatus.CONFIRMED.value: frozenset(
        {
            BookingStatus.COMPLETED.value,
            BookingStatus.CANCELLED.value,
            BookingStatus.NO_SHOW.value,
        }
    ),
    BookingStatus.COMPLETED.value: frozenset(),
    BookingStatus.CANCELLED.value: frozenset(),
    BookingStatus.NO_SHOW.value: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class BookingLifecycle:
    """Applies status transitions to attached Booking rows."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now

    def _require(self, booking: Booking, target: BookingStatus, action: str) -> None:
        if not can_transition(booking.status, target.value):
            raise InvalidTransitionException(booking.id, booking.status, action)

    def confirm_by_payment(self, booking: Booking) -> Booking:
        """Deposit captured: PENDING/DEPOSIT_PENDING -> CONFIRMED/DEPOSIT_PAID."""
        self._require(booking, BookingStatus.CONFIRMED, "confirm")
        if booking.payment_status != PaymentStatus.DEPOSIT_PENDING.value:
            raise InvalidTransitionException(
                booking.id, booking.status, "confirm", reason="no deposit is pending"
            )

        booking.status = BookingStatus.CONFIRMED.value
        booking.payment_status = PaymentStatus.DEPOSIT_PAID.value
        booking.expires_at = None
        booking.confirmed_at = self._clock()
        logger.info("Booking confirmed by payment", extra={"booking_id": booking.id})
        return booking

    def mark_paid_in_shop(self, booking: Booking) -> Booking:
        """
        Record full payment taken at the counter.

        Valid for a confirmed booking that is not yet fully paid, and for a
        pay-in-shop booking still PENDING, which is confirmed at the same time.
        """
        if booking.status == BookingStatus.CONFIRMED.value:
            if booking.payment_status == PaymentStatus.FULLY_PAID.value:
                raise InvalidTransitionException(
                    booking.id, booking.status, "mark paid", reason="already fully paid"
                )
        elif booking.status == BookingStatus.PENDING.value:
            if booking.payment_status != PaymentStatus.PENDING.value:
                raise InvalidTransitionException(
                    booking.id, booking.status, "mark paid", reason="deposit is still pending"
                )
        else:
            raise InvalidTransitionException(booking.id, booking.status, "mark paid")

        if booking.status == BookingStatus.PENDING.value:
            booking.status = BookingStatus.CONFIRMED.value
            booking.confirmed_at = self._clock()
        self._settle_in_full(booking)
        logger.info("Booking paid in shop", extra={"booking_id": booking.id})
        return booking

    def cancel(self, booking: Booking, reason: Optional[str] = None) -> Booking:
        self._require(booking, BookingStatus.CANCELLED, "cancel")

        booking.status = BookingStatus.CANCELLED.value
        booking.payment_status = PaymentStatus.CANCELLED.value
        booking.expires_at = None
        booking.cancelled_at = self._clock()
        booking.cancellation_reason = reason
        logger.info(
            "Booking cancelled", extra={"booking_id": booking.id, "reason": reason or ""}
        )
        return booking

    def complete(self, booking: Booking) -> Booking:
        self._require(booking, BookingStatus.COMPLETED, "complete")

        booking.status = BookingStatus.COMPLETED.value
        booking.completed_at = self._clock()
        self._settle_in_full(booking)
        logger.info("Booking completed", extra={"booking_id": booking.id})
        return booking

    def mark_no_show(self, booking: Booking) -> Booking:
        """CONFIRMED -> NO_SHOW; the customer's no-show count goes up by one."""
        self._require(booking, BookingStatus.NO_SHOW, "mark no-show")

        booking.status = BookingStatus.NO_SHOW.value
        if booking.customer is not None:
            booking.customer.record_no_show()
        logger.info("Booking marked no-show", extra={"booking_id": booking.id})
        return booking

    @staticmethod
    def _settle_in_full(booking: Booking) -> None:
        price = Decimal(booking.service.price) if booking.service is not None else None
        booking.payment_status = PaymentStatus.FULLY_PAID.value
        if price is not None:
            booking.deposit_amount = price
        booking.outstanding_balance = Decimal("0.00")
