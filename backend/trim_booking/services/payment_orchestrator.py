# backend/trim_booking/services/payment_orchestrator.py
"""
Payment Orchestrator for deposit payments through Stripe.

Creates deposit payment intents for online bookings and applies the
processor's asynchronous outcomes back onto payments and bookings.
Stripe is never called while a booking lock is held.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from sqlalchemy.orm import Session
import stripe

from ..core.config import settings
from ..core.constants import EVENT_BOOKING_CONFIRMED
from ..core.exceptions import (
    AmountTooSmallException,
    InvalidTransitionException,
    NotFoundException,
    PaymentNotFoundException,
    PaymentProcessorException,
    PaymentTenantMismatchException,
)
from ..core.tenant import TenantContext
from ..core.timezone_utils import utc_now
from ..models.booking import Booking
from ..models.payment import Payment, PaymentRecordStatus
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_lifecycle import BookingLifecycle
from .notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

OUTCOME_SUCCEEDED = "succeeded"
OUTCOME_PROCESSING = "processing"
OUTCOME_FAILED = "failed"
OUTCOME_CANCELED = "canceled"

# Stripe event type -> outcome understood by handle_payment_outcome
EVENT_OUTCOMES: Dict[str, str] = {
    "payment_intent.succeeded": OUTCOME_SUCCEEDED,
    "payment_intent.processing": OUTCOME_PROCESSING,
    "payment_intent.payment_failed": OUTCOME_FAILED,
    "payment_intent.canceled": OUTCOME_CANCELED,
}


def calculate_deposit(price: Decimal, percentage: int) -> Tuple[Decimal, Decimal]:
    """
    Split a price into (deposit, outstanding balance).

    >>> calculate_deposit(Decimal("50.00"), 50)
    (Decimal('25.00'), Decimal('25.00'))
    """
    price = Decimal(price).quantize(CENT, rounding=ROUND_HALF_UP)
    deposit = (price * Decimal(percentage) / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
    return deposit, price - deposit


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def ensure_chargeable(amount_cents: int) -> None:
    """Reject deposits the processor would refuse."""
    minimum = settings.stripe_minimum_charge_cents
    if amount_cents < minimum:
        raise AmountTooSmallException(amount_cents, minimum)


@dataclass(frozen=True)
class DepositIntent:
    """Handle returned to the client to complete a deposit payment."""

    booking_id: str
    payment_intent_id: str
    client_secret: Optional[str]
    deposit_amount: Decimal
    outstanding_balance: Decimal
    amount_cents: int
    currency: str


class PaymentOrchestrator(BaseService):
    """
    Coordinates deposit intents and processor callbacks.

    Payment rows are created only when a deposit flow starts and are never
    deleted; a retry after a failed intent refreshes the same row.
    """

    def __init__(
        self,
        db: Session,
        lifecycle: Optional[BookingLifecycle] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.lifecycle = lifecycle or BookingLifecycle()
        self.dispatcher = dispatcher or NotificationDispatcher()

        if settings.stripe_secret_key.get_secret_value():
            stripe.api_key = settings.stripe_secret_key.get_secret_value()
            stripe.max_network_retries = 1
        else:
            self.logger.warning("Stripe secret key not configured; deposit intents will fail")

    @BaseService.measure_operation("create_deposit")
    def create_deposit(self, tenant: TenantContext, booking_id: str) -> DepositIntent:
        """
        Create (or re-create) the deposit payment intent for a booking.

        Raises:
            NotFoundException: Booking not in this tenant
            InvalidTransitionException: Booking is not awaiting a deposit
            AmountTooSmallException: Deposit below the processor minimum
            PaymentProcessorException: Stripe rejected or failed the request
        """
        booking = self.booking_repository.get_booking_with_details(booking_id, tenant.business_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if not booking.is_awaiting_deposit:
            raise InvalidTransitionException(
                booking.id,
                booking.status,
                "create deposit for",
                reason="booking is not awaiting a deposit",
            )

        deposit, outstanding = calculate_deposit(
            booking.service.price, booking.service.deposit_percentage
        )
        amount_cents = to_minor_units(deposit)
        ensure_chargeable(amount_cents)

        existing = self.payment_repository.get_payment_by_booking_id(booking.id)
        attempt = 1
        if existing is not None:
            attempt = existing.attempts
            if existing.status == PaymentRecordStatus.FAILED.value:
                attempt += 1

        currency = settings.stripe_currency
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                automatic_payment_methods={"enabled": True},
                metadata={
                    "booking_id": booking.id,
                    "business_id": booking.business_id,
                    "deposit_amount": str(deposit),
                    "outstanding_balance": str(outstanding),
                },
                idempotency_key=f"booking-deposit:{booking.id}:{attempt}",
            )
        except stripe.StripeError as e:
            self.logger.error(
                f"Stripe error creating deposit intent: {str(e)}",
                extra={"booking_id": booking.id, "business_id": booking.business_id},
            )
            raise PaymentProcessorException()

        with self.transaction():
            if existing is None:
                self.payment_repository.create(
                    booking_id=booking.id,
                    business_id=booking.business_id,
                    stripe_payment_intent_id=intent.id,
                    amount=amount_cents,
                    currency=currency,
                    status=PaymentRecordStatus.PENDING.value,
                    attempts=attempt,
                )
            else:
                existing.stripe_payment_intent_id = intent.id
                existing.amount = amount_cents
                existing.currency = currency
                existing.status = PaymentRecordStatus.PENDING.value
                existing.attempts = attempt
            booking.deposit_amount = deposit
            booking.outstanding_balance = outstanding

        self.logger.info(
            "Deposit intent created",
            extra={
                "booking_id": booking.id,
                "business_id": booking.business_id,
                "payment_intent_id": intent.id,
                "amount_cents": amount_cents,
            },
        )
        return DepositIntent(
            booking_id=booking.id,
            payment_intent_id=intent.id,
            client_secret=getattr(intent, "client_secret", None),
            deposit_amount=deposit,
            outstanding_balance=outstanding,
            amount_cents=amount_cents,
            currency=currency,
        )

    def create_deposit_or_release(self, tenant: TenantContext, booking_id: str) -> DepositIntent:
        """
        Create the deposit for a freshly admitted booking.

        If the processor fails, the booking is cancelled so its slot is freed
        immediately instead of waiting for the hold to lapse.
        """
        try:
            return self.create_deposit(tenant, booking_id)
        except PaymentProcessorException:
            with self.transaction():
                booking = self.booking_repository.get_for_update(booking_id)
                if booking is not None and booking.is_awaiting_deposit:
                    self.lifecycle.cancel(booking, reason="Payment creation failed")
            self.logger.warning(
                "Released booking after payment creation failure",
                extra={"booking_id": booking_id, "business_id": tenant.business_id},
            )
            raise

    @BaseService.measure_operation("handle_payment_outcome")
    def handle_payment_outcome(
        self,
        payment_intent_id: str,
        outcome: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Apply a processor outcome to the payment and its booking.

        Args:
            payment_intent_id: Stripe payment intent id (globally unique)
            outcome: succeeded, processing, failed or canceled
            metadata: Intent metadata echoed by the processor

        Returns:
            True if the outcome was recognised (including replays), False otherwise

        Raises:
            PaymentNotFoundException: Unknown intent id
            PaymentTenantMismatchException: Metadata names a different business
        """
        payment = self.payment_repository.get_payment_by_intent_id(payment_intent_id)
        if not payment:
            raise PaymentNotFoundException(payment_intent_id)

        claimed_business = (metadata or {}).get("business_id")
        if claimed_business and claimed_business != payment.business_id:
            self.logger.error(
                "Payment callback names a different business",
                extra={
                    "payment_intent_id": payment_intent_id,
                    "business_id": payment.business_id,
                    "claimed_business_id": claimed_business,
                },
            )
            raise PaymentTenantMismatchException(payment_intent_id)

        if outcome not in (OUTCOME_SUCCEEDED, OUTCOME_PROCESSING, OUTCOME_FAILED, OUTCOME_CANCELED):
            self.logger.info(f"Ignoring unknown payment outcome: {outcome}")
            return False

        confirmed_booking: Optional[Booking] = None
        with self.transaction():
            booking = self.booking_repository.get_for_update(payment.booking_id)
            self.db.refresh(payment)

            if outcome == OUTCOME_SUCCEEDED:
                confirmed_booking = self._apply_success(payment, booking)
            elif payment.status == PaymentRecordStatus.SUCCEEDED.value:
                self.logger.warning(
                    f"Ignoring '{outcome}' after success",
                    extra={"payment_intent_id": payment_intent_id, "booking_id": payment.booking_id},
                )
            elif outcome == OUTCOME_PROCESSING:
                payment.status = PaymentRecordStatus.PROCESSING.value
            else:
                # Booking stays PENDING and expires unless a new intent succeeds
                payment.status = PaymentRecordStatus.FAILED.value
                self.logger.info(
                    "Deposit payment failed",
                    extra={"payment_intent_id": payment_intent_id, "booking_id": payment.booking_id},
                )

        if confirmed_booking is not None:
            self.dispatcher.booking_event(
                EVENT_BOOKING_CONFIRMED, confirmed_booking.id, confirmed_booking.business_id
            )
        return True

    def _apply_success(self, payment: Payment, booking: Optional[Booking]) -> Optional[Booking]:
        """Returns the booking when this call confirmed it."""
        if payment.status == PaymentRecordStatus.SUCCEEDED.value:
            self.logger.info(
                "Duplicate payment success ignored",
                extra={"payment_intent_id": payment.stripe_payment_intent_id},
            )
            return None

        payment.status = PaymentRecordStatus.SUCCEEDED.value
        payment.payment_date = utc_now()

        if booking is None:
            self.logger.error(
                "Payment succeeded for a missing booking",
                extra={"payment_intent_id": payment.stripe_payment_intent_id},
            )
            return None
        if booking.is_awaiting_deposit:
            self.lifecycle.confirm_by_payment(booking)
            return booking

        # Money arrived after the hold lapsed; staff must refund it
        self.logger.error(
            "Deposit captured for a booking that can no longer be confirmed; refund required",
            extra={
                "payment_intent_id": payment.stripe_payment_intent_id,
                "booking_id": booking.id,
                "business_id": booking.business_id,
                "booking_status": booking.status,
            },
        )
        return None
