# backend/trim_booking/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .auth import get_current_principal, require_staff
from .database import get_db
from .services import (
    get_availability_calculator,
    get_booking_action_service,
    get_booking_query_service,
    get_booking_scheduler,
    get_payment_orchestrator,
)
from .tenant import get_tenant_context

__all__ = [
    # Auth
    "get_current_principal",
    "require_staff",
    # Database
    "get_db",
    # Tenant
    "get_tenant_context",
    # Services
    "get_availability_calculator",
    "get_booking_action_service",
    "get_booking_query_service",
    "get_booking_scheduler",
    "get_payment_orchestrator",
]
