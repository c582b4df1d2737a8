# backend/trim_booking/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingScheduler, BookingActionService,
BookingQueryService and PaymentOrchestrator; services are synchronous and
run in a worker thread.

Endpoints:
    POST / - Create a booking (and its deposit intent for online payment)
    GET /customer/{customer_id} - A customer's bookings (all, upcoming or past)
    GET /barber/{barber_id} - Every booking of a barber (staff)
    GET /barber/{barber_id}/schedule - Staff view of a barber's day
    GET /{booking_id} - Booking details
    PUT /{booking_id} - Reschedule a booking
    PATCH /{booking_id}/cancel - Cancel a booking
    PUT /{booking_id}/complete - Mark booking as completed (staff)
    PUT /{booking_id}/mark-paid - Record payment taken in the shop (staff)
    PUT /{booking_id}/no-show - Mark booking as no-show (staff)
"""

import asyncio
from datetime import date
import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.params import Path

from ...api.dependencies import (
    get_availability_calculator,
    get_booking_action_service,
    get_booking_query_service,
    get_booking_scheduler,
    get_current_principal,
    get_payment_orchestrator,
    get_tenant_context,
    require_staff,
)
from ...api.dependencies.auth import (
    ensure_booking_access,
    ensure_customer_self,
    ensure_own_history,
)
from ...api.error_handling import handle_domain_exception
from ...auth import Principal
from ...core.constants import BOOKING_SCOPE_ALL
from ...core.exceptions import DomainException
from ...core.tenant import TenantContext
from ...schemas.booking import (
    BarberScheduleResponse,
    BookingCancelRequest,
    BookingCreateRequest,
    BookingCreateResponse,
    BookingListResponse,
    BookingRescheduleRequest,
    BookingResponse,
    ScheduleEntryResponse,
)
from ...schemas.payment import DepositIntentResponse
from ...services.availability_calculator import AvailabilityCalculator
from ...services.booking_actions import BookingActionService
from ...services.booking_queries import BookingQueryService
from ...services.booking_scheduler import BookingScheduler
from ...services.payment_orchestrator import PaymentOrchestrator

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def _booking_id_path() -> Any:
    return Path(
        ...,
        description="Booking ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    )


@router.post(
    "",
    response_model=BookingCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Customer blocked or booking for someone else"},
        409: {"description": "Slot already taken"},
        422: {"description": "Outside working hours or deposit too small"},
        502: {"description": "Payment processor failure; booking released"},
    },
)
async def create_booking(
    payload: BookingCreateRequest = Body(...),
    tenant: TenantContext = Depends(get_tenant_context),
    principal: Principal = Depends(get_current_principal),
    scheduler: BookingScheduler = Depends(get_booking_scheduler),
    orchestrator: PaymentOrchestrator = Depends(get_payment_orchestrator),
) -> BookingCreateResponse:
    """
    Create a booking.

    Online bookings with a deposit come back PENDING with a payment
    handle; the slot is held until the hold expires or Stripe confirms.
    """
    try:
        ensure_customer_self(principal, payload.customer_id)
        booking = await asyncio.to_thread(
            scheduler.create_booking,
            tenant,
            payload.customer_id,
            payload.barber_id,
            payload.service_id,
            payload.booking_date,
            payload.start_time,
            payload.payment_method.value,
        )
        payment: Optional[DepositIntentResponse] = None
        if booking.is_awaiting_deposit:
            intent = await asyncio.to_thread(
                orchestrator.create_deposit_or_release, tenant, booking.id
            )
            payment = DepositIntentResponse.from_intent(intent)
        return BookingCreateResponse(booking=BookingResponse.from_booking(booking), payment=payment)
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/customer/{customer_id}",
    response_model=BookingListResponse,
    responses={
        403: {"description": "Not your booking history"},
        404: {"description": "Customer not found"},
    },
)
async def list_customer_bookings(
    customer_id: str,
    scope: str = Query(BOOKING_SCOPE_ALL, pattern="^(all|upcoming|past)$"),
    tenant: TenantContext = Depends(get_tenant_context),
    principal: Principal = Depends(get_current_principal),
    query_service: BookingQueryService = Depends(get_booking_query_service),
) -> BookingListResponse:
    """
    A customer's bookings in this business.

    upcoming: today onwards without cancellations, nearest first.
    past: before today, most recent first.
    """
    try:
        ensure_own_history(principal, customer_id)
        bookings = await asyncio.to_thread(
            query_service.list_customer_bookings, tenant, customer_id, scope
        )
        return BookingListResponse.from_bookings(bookings)
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/barber/{barber_id}",
    response_model=BookingListResponse,
    responses={404: {"description": "Barber not found"}},
)
async def list_barber_bookings(
    barber_id: str,
    from_date: Optional[date] = Query(None, alias="from", description="YYYY-MM-DD"),
    to_date: Optional[date] = Query(None, alias="to", description="YYYY-MM-DD"),
    tenant: TenantContext = Depends(get_tenant_context),
    _: Principal = Depends(require_staff),
    query_service: BookingQueryService = Depends(get_booking_query_service),
) -> BookingListResponse:
    """Every booking of one barber in any status, ordered by date and start."""
    try:
        bookings = await asyncio.to_thread(
            query_service.list_barber_bookings, tenant, barber_id, from_date, to_date
        )
        return BookingListResponse.from_bookings(bookings)
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/barber/{barber_id}/schedule",
    response_model=BarberScheduleResponse,
    responses={404: {"description": "Barber not found"}},
)
async def get_barber_schedule(
    barber_id: str,
    booking_date: date = Query(..., alias="date", description="YYYY-MM-DD"),
    tenant: TenantContext = Depends(get_tenant_context),
    _: Principal = Depends(require_staff),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
) -> BarberScheduleResponse:
    """Occupied intervals for one barber's day, ordered by start."""
    try:
        entries = await asyncio.to_thread(
            calculator.get_schedule, tenant, barber_id, booking_date
        )
        return BarberScheduleResponse(
            barber_id=barber_id,
            booking_date=booking_date,
            entries=[ScheduleEntryResponse.from_entry(entry) for entry in entries],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
async def get_booking(
    booking_id: str = _booking_id_path(),
    tenant: TenantContext = Depends(get_tenant_context),
    principal: Principal = Depends(get_current_principal),
    action_service: BookingActionService = Depends(get_booking_action_service),
) -> BookingResponse:
    def _load():
        booking = action_service.get_booking(tenant, booking_id)
        ensure_booking_access(principal, booking)
        return booking

    try:
        booking = await asyncio.to_thread(_load)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{booking_id}",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}, 409: {"description": "Time conflict"}},
)
async def reschedule_booking(
    booking_id: str = _booking_id_path(),
    payload: BookingRescheduleRequest = Body(...),
    tenant: TenantContext = Depends(get_tenant_context),
    principal: Principal = Depends(get_current_principal),
    action_service: BookingActionService = Depends(get_booking_action_service),
    scheduler: BookingScheduler = Depends(get_booking_scheduler),
) -> BookingResponse:
    """Move a booking to another date and time with the same barber and service."""

    def _reschedule():
        ensure_booking_access(principal, action_service.get_booking(tenant, booking_id))
        return scheduler.reschedule_booking(
            tenant, booking_id, payload.booking_date, payload.start_time
        )

    try:
        booking = await asyncio.to_thread(_reschedule)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
async def cancel_booking(
    booking_id: str = _booking_id_path(),
    cancel_data: Optional[BookingCancelRequest] = Body(None),
    tenant: TenantContext = Depends(get_tenant_context),
    principal: Principal = Depends(get_current_principal),
    action_service: BookingActionService = Depends(get_booking_action_service),
) -> BookingResponse:
    """Cancel a booking."""
    reason = cancel_data.reason if cancel_data else None

    def _cancel():
        ensure_booking_access(principal, action_service.get_booking(tenant, booking_id))
        return action_service.cancel_booking(tenant, booking_id, reason=reason)

    try:
        booking = await asyncio.to_thread(_cancel)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{booking_id}/complete",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
async def complete_booking(
    booking_id: str = _booking_id_path(),
    tenant: TenantContext = Depends(get_tenant_context),
    _: Principal = Depends(require_staff),
    action_service: BookingActionService = Depends(get_booking_action_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(action_service.complete_booking, tenant, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{booking_id}/mark-paid",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
async def mark_booking_paid(
    booking_id: str = _booking_id_path(),
    tenant: TenantContext = Depends(get_tenant_context),
    _: Principal = Depends(require_staff),
    action_service: BookingActionService = Depends(get_booking_action_service),
) -> BookingResponse:
    """Record that the full price was taken at the counter."""
    try:
        booking = await asyncio.to_thread(action_service.mark_paid_in_shop, tenant, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{booking_id}/no-show",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
async def mark_booking_no_show(
    booking_id: str = _booking_id_path(),
    tenant: TenantContext = Depends(get_tenant_context),
    _: Principal = Depends(require_staff),
    action_service: BookingActionService = Depends(get_booking_action_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(action_service.mark_no_show, tenant, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


__all__ = ["router"]
