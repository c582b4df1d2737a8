# backend/trim_booking/repositories/__init__.py
"""
Repository layer for the Trim booking engine.

Repositories hold queries only and never commit; services own transactions.

Usage:
    from trim_booking.repositories import RepositoryFactory

    booking_repository = RepositoryFactory.create_booking_repository(db)
    bookings = booking_repository.find_active_for_barber_day(business_id, barber_id, day)
"""

from .barber_repository import BarberRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .business_repository import BusinessRepository
from .factory import RepositoryFactory
from .notification_delivery_repository import NotificationDeliveryRepository
from .payment_repository import PaymentRepository
from .service_repository import ServiceRepository
from .user_repository import UserRepository

__all__ = [
    "BarberRepository",
    "BaseRepository",
    "BookingRepository",
    "BusinessRepository",
    "NotificationDeliveryRepository",
    "PaymentRepository",
    "RepositoryFactory",
    "ServiceRepository",
    "UserRepository",
]
