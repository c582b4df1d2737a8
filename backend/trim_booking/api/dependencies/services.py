# backend/trim_booking/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets service instances bound to its own session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_calculator import AvailabilityCalculator
from ...services.booking_actions import BookingActionService
from ...services.booking_queries import BookingQueryService
from ...services.booking_scheduler import BookingScheduler
from ...services.payment_orchestrator import PaymentOrchestrator
from .database import get_db


def get_booking_scheduler(db: Session = Depends(get_db)) -> BookingScheduler:
    return BookingScheduler(db)


def get_booking_action_service(db: Session = Depends(get_db)) -> BookingActionService:
    return BookingActionService(db)


def get_booking_query_service(db: Session = Depends(get_db)) -> BookingQueryService:
    return BookingQueryService(db)


def get_availability_calculator(db: Session = Depends(get_db)) -> AvailabilityCalculator:
    return AvailabilityCalculator(db)


def get_payment_orchestrator(db: Session = Depends(get_db)) -> PaymentOrchestrator:
    return PaymentOrchestrator(db)
