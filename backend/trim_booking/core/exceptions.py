# backend/trim_booking/core/exceptions.py
"""
Domain-specific exceptions for the Trim booking engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying the structured detail."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        # Internal failure details stay in the logs
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": "An error occurred processing your request",
                "code": self.code,
                "details": {},
            },
        )


# Tenant resolution


class TenantRequiredException(ValidationException):
    """Raised when a tenant-scoped request carries no business slug."""

    def __init__(self) -> None:
        super().__init__(
            message="Business context required. Please provide a valid business slug.",
            code="TENANT_REQUIRED",
        )


class TenantNotFoundException(NotFoundException):
    """Raised when the business slug does not match any tenant."""

    def __init__(self, slug: str) -> None:
        super().__init__(
            message=f"Business not found for slug: {slug}",
            code="TENANT_NOT_FOUND",
            details={"slug": slug},
        )


# Scheduling


class BookingConflictException(ConflictException):
    """Raised when a booking conflicts with existing bookings."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class InvalidTransitionException(ConflictException):
    """Raised when a booking status change is not allowed from its current state."""

    def __init__(self, booking_id: str, current_status: str, action: str, reason: str = "") -> None:
        message = f"Cannot {action} booking in status {current_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code="INVALID_TRANSITION",
            details={"booking_id": booking_id, "status": current_status, "action": action},
        )


class CustomerBlockedException(ForbiddenException):
    """Raised when a blacklisted customer attempts to book."""

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(
            message=f"Customer is blacklisted: {reason or 'No reason provided'}",
            code="CUSTOMER_BLOCKED",
        )


class OutsideWorkingHoursException(BusinessRuleException):
    """Raised when a requested interval falls outside the barber's working hours."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message=message, code="OUTSIDE_WORKING_HOURS", details=details or {})


# Payments


class AmountTooSmallException(BusinessRuleException):
    """Raised when a deposit is below the processor's minimum chargeable amount."""

    def __init__(self, amount_cents: int, minimum_cents: int) -> None:
        super().__init__(
            message="Deposit amount is below the minimum chargeable amount",
            code="AMOUNT_TOO_SMALL",
            details={"amount_cents": amount_cents, "minimum_cents": minimum_cents},
        )


class PaymentNotFoundException(NotFoundException):
    """Raised when a payment intent handle is unknown."""

    def __init__(self, payment_intent_id: str) -> None:
        super().__init__(
            message="Payment not found",
            code="PAYMENT_NOT_FOUND",
            details={"payment_intent_id": payment_intent_id},
        )


class PaymentTenantMismatchException(ForbiddenException):
    """Raised when a payment callback names a different business than its booking."""

    def __init__(self, payment_intent_id: str) -> None:
        super().__init__(
            message="Payment does not belong to this business",
            code="PAYMENT_TENANT_MISMATCH",
            details={"payment_intent_id": payment_intent_id},
        )


class PaymentProcessorException(DomainException):
    """Raised when the payment processor rejects or fails a request."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str = "Payment creation failed") -> None:
        super().__init__(message=message, code="PAYMENT_PROCESSOR_ERROR")


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
