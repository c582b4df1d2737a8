# backend/trim_booking/repositories/factory.py
"""
Repository Factory for the Trim booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .barber_repository import BarberRepository
    from .booking_repository import BookingRepository
    from .business_repository import BusinessRepository
    from .notification_delivery_repository import NotificationDeliveryRepository
    from .payment_repository import PaymentRepository
    from .service_repository import ServiceRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_business_repository(db: Session) -> "BusinessRepository":
        from .business_repository import BusinessRepository

        return BusinessRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_barber_repository(db: Session) -> "BarberRepository":
        """Create repository for barbers, windows and breaks."""
        from .barber_repository import BarberRepository

        return BarberRepository(db)

    @staticmethod
    def create_service_repository(db: Session) -> "ServiceRepository":
        from .service_repository import ServiceRepository

        return ServiceRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        """Create repository for payment intent records."""
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)

    @staticmethod
    def create_notification_delivery_repository(db: Session) -> "NotificationDeliveryRepository":
        from .notification_delivery_repository import NotificationDeliveryRepository

        return NotificationDeliveryRepository(db)
