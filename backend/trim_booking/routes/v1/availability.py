# backend/trim_booking/routes/v1/availability.py
"""
Availability routes - API v1

Public slot listing for a barber and service. Needs a tenant but no
authentication.

Endpoints:
    GET /barbers/{barber_id}?date=YYYY-MM-DD&serviceId=... - Bookable start times
"""

import asyncio
from datetime import date
import logging

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_calculator, get_tenant_context
from ...api.error_handling import handle_domain_exception
from ...core.config import settings
from ...core.exceptions import DomainException
from ...core.tenant import TenantContext
from ...schemas.availability import AvailabilityResponse
from ...services.availability_calculator import AvailabilityCalculator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


@router.get(
    "/barbers/{barber_id}",
    response_model=AvailabilityResponse,
    responses={404: {"description": "Barber or service not found"}},
)
async def get_barber_availability(
    barber_id: str,
    booking_date: date = Query(..., alias="date", description="YYYY-MM-DD"),
    service_id: str = Query(..., alias="serviceId"),
    tenant: TenantContext = Depends(get_tenant_context),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
) -> AvailabilityResponse:
    """Start times at which the service fits the barber's free time."""
    try:
        slots = await asyncio.to_thread(
            calculator.compute_slots_for_service, tenant, barber_id, booking_date, service_id
        )
        return AvailabilityResponse(
            barber_id=barber_id,
            service_id=service_id,
            booking_date=booking_date,
            slot_interval_minutes=settings.slot_interval_minutes,
            slots=slots,
        )
    except DomainException as e:
        handle_domain_exception(e)


__all__ = ["router"]
