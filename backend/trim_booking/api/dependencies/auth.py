# backend/trim_booking/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

A principal is only valid for the tenant that issued its token: a token
for one business gets 403 on every other business.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from jwt import PyJWTError

from ...auth import Principal, decode_access_token, oauth2_scheme_optional, principal_from_claims
from ...core.exceptions import ForbiddenException
from ...core.tenant import TenantContext
from ...models.booking import Booking
from ..error_handling import handle_domain_exception
from .tenant import get_tenant_context

logger = logging.getLogger(__name__)


def _credentials_exception(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(
    token: Optional[str] = Depends(oauth2_scheme_optional),
    tenant: TenantContext = Depends(get_tenant_context),
) -> Principal:
    """
    Verify the bearer token and bind it to the resolved tenant.

    Raises:
        HTTPException 401: Missing, invalid or expired token
        HTTPException 403: Token belongs to another business
    """
    if not token:
        raise _credentials_exception("Not authenticated")
    try:
        payload = decode_access_token(token)
    except PyJWTError as e:
        logger.warning(f"JWT validation error: {str(e)}")
        raise _credentials_exception("Could not validate credentials")

    principal = principal_from_claims(payload)
    if principal is None:
        raise _credentials_exception("Could not validate credentials")

    if principal.business_id != tenant.business_id:
        logger.warning(
            "Token used against another business",
            extra={"user_id": principal.user_id, "business_id": tenant.business_id},
        )
        handle_domain_exception(
            ForbiddenException("Token is not valid for this business", code="TENANT_MISMATCH")
        )
    return principal


def require_staff(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_staff:
        handle_domain_exception(
            ForbiddenException("Staff access required", code="STAFF_REQUIRED")
        )
    return principal


def ensure_customer_self(principal: Principal, customer_id: str) -> None:
    """Customers may only act for themselves; staff may act for anyone in their tenant."""
    if not principal.is_staff and principal.user_id != customer_id:
        raise ForbiddenException("You can only book for yourself", code="FORBIDDEN")


def ensure_booking_access(principal: Principal, booking: Booking) -> None:
    if not principal.is_staff and booking.customer_id != principal.user_id:
        raise ForbiddenException("You do not have access to this booking", code="FORBIDDEN")


def ensure_own_history(principal: Principal, customer_id: str) -> None:
    """Customers may only list their own bookings; staff may list anyone's in their tenant."""
    if not principal.is_staff and principal.user_id != customer_id:
        raise ForbiddenException("You can only view your own bookings", code="FORBIDDEN")
