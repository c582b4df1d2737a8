# backend/trim_booking/schemas/payment.py
"""Deposit payment request and response schemas."""

from typing import Optional

from pydantic import Field

from ..services.payment_orchestrator import DepositIntent
from .base import Money, StandardizedModel, StrictRequestModel


class CreateIntentRequest(StrictRequestModel):
    booking_id: str = Field(..., description="Booking awaiting a deposit")


class DepositIntentResponse(StandardizedModel):
    """Handle the client uses to complete the deposit with Stripe."""

    booking_id: str
    payment_intent_id: str
    client_secret: Optional[str] = None
    deposit_amount: Money
    outstanding_balance: Money
    amount_cents: int
    currency: str

    @classmethod
    def from_intent(cls, intent: DepositIntent) -> "DepositIntentResponse":
        return cls.model_validate(intent)


class WebhookResponse(StandardizedModel):
    """Response for webhook processing."""

    status: str = Field(..., description="Processing status (success, ignored, error)")
    event_type: str = Field(..., description="Stripe event type")
    message: Optional[str] = Field(None, description="Additional information")
