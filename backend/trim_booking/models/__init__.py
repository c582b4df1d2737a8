"""
Database models for the Trim booking engine.

The models are organized by functionality:
- Tenancy: Business
- People: User (customers and staff)
- Scheduling: Barber, AvailabilityWindow, BarberBreak, Service, Booking
- Payments: Payment
- Notifications: NotificationDelivery
"""

from .barber import AvailabilityWindow, Barber, BarberBreak
from .booking import Booking, BookingStatus, PaymentMethod, PaymentStatus
from .business import Business
from .notification_delivery import NotificationDelivery
from .payment import Payment, PaymentRecordStatus
from .service import Service
from .user import User, UserRole

__all__ = [
    "AvailabilityWindow",
    "Barber",
    "BarberBreak",
    "Booking",
    "BookingStatus",
    "Business",
    "NotificationDelivery",
    "Payment",
    "PaymentMethod",
    "PaymentRecordStatus",
    "PaymentStatus",
    "Service",
    "User",
    "UserRole",
]
