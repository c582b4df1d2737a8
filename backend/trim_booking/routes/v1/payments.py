# backend/trim_booking/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /create-intent → Create or retry the deposit intent for a booking
    POST /webhook       → Stripe webhook (no tenant, signature verified)
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Request
import stripe

from ...api.dependencies import get_current_principal, get_payment_orchestrator, get_tenant_context
from ...api.dependencies.auth import ensure_booking_access
from ...api.error_handling import handle_domain_exception
from ...auth import Principal
from ...core.config import settings
from ...core.exceptions import DomainException
from ...core.tenant import TenantContext
from ...schemas.payment import CreateIntentRequest, DepositIntentResponse, WebhookResponse
from ...services.payment_orchestrator import EVENT_OUTCOMES, PaymentOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])


@router.post(
    "/create-intent",
    response_model=DepositIntentResponse,
    responses={
        404: {"description": "Booking not found"},
        409: {"description": "Booking is not awaiting a deposit"},
        502: {"description": "Payment processor failure"},
    },
)
async def create_payment_intent(
    payload: CreateIntentRequest = Body(...),
    tenant: TenantContext = Depends(get_tenant_context),
    principal: Principal = Depends(get_current_principal),
    orchestrator: PaymentOrchestrator = Depends(get_payment_orchestrator),
) -> DepositIntentResponse:
    """Open a fresh deposit intent, e.g. after the previous attempt failed."""

    def _create():
        booking = orchestrator.booking_repository.get_booking_with_details(
            payload.booking_id, tenant.business_id
        )
        if booking is not None:
            ensure_booking_access(principal, booking)
        return orchestrator.create_deposit(tenant, payload.booking_id)

    try:
        intent = await asyncio.to_thread(_create)
        return DepositIntentResponse.from_intent(intent)
    except DomainException as e:
        handle_domain_exception(e)


# ========== Webhook Route (No Authentication) ==========


@router.post("/webhook", response_model=WebhookResponse)
async def handle_stripe_webhook(
    request: Request,
    orchestrator: PaymentOrchestrator = Depends(get_payment_orchestrator),
) -> WebhookResponse:
    """
    Apply a Stripe payment_intent event to its payment and booking.

    Note:
        This endpoint has no authentication as it uses webhook signature verification
    """
    try:
        payload = await request.body()
        sig_header = request.headers.get("stripe-signature")

        if not sig_header:
            logger.warning("Webhook received without signature")
            raise HTTPException(status_code=400, detail="No signature")

        secret = settings.stripe_webhook_secret_value()
        if not secret:
            logger.error("No webhook secret configured")
            raise HTTPException(status_code=400, detail="Webhook secret not configured")

        try:
            stripe.Webhook.construct_event(payload, sig_header, secret)
        except stripe.SignatureVerificationError:
            logger.warning("Webhook signature verification failed")
            raise HTTPException(status_code=400, detail="Invalid signature")
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid payload")

        event = json.loads(payload)
        event_type = event.get("type", "unknown")
        outcome = EVENT_OUTCOMES.get(event_type)
        if outcome is None:
            logger.info(f"Ignoring webhook event: {event_type}")
            return WebhookResponse(
                status="ignored", event_type=event_type, message="Event type not handled"
            )

        intent = event.get("data", {}).get("object", {})
        intent_id = intent.get("id")
        if not intent_id:
            raise HTTPException(status_code=400, detail="Event has no payment intent id")

        await asyncio.to_thread(
            orchestrator.handle_payment_outcome, intent_id, outcome, intent.get("metadata") or {}
        )
        logger.info(
            f"Webhook processed successfully: {event_type}",
            extra={"payment_intent_id": intent_id, "outcome": outcome},
        )
        return WebhookResponse(status="success", event_type=event_type)

    except HTTPException:
        raise
    except DomainException as e:
        handle_domain_exception(e)
    except Exception as e:
        logger.error(f"Unexpected webhook error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process webhook")


__all__ = ["router"]
