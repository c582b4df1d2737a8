"""Application-wide constants for the Trim booking engine."""

BRAND_NAME = "Trim"

API_TITLE = f"{BRAND_NAME} Booking API"
API_VERSION = "1.0.0"
API_DESCRIPTION = "Multi-tenant barbershop booking engine with deposit payments."

# Text constraints
MAX_REASON_LENGTH = 255

# Notification event types
EVENT_BOOKING_CONFIRMED = "booking.confirmed"
EVENT_BOOKING_CANCELLED = "booking.cancelled"
EVENT_BOOKING_EXPIRED = "booking.expired"
EVENT_BOOKING_COMPLETED = "booking.completed"
EVENT_BOOKING_NO_SHOW = "booking.no_show"
EVENT_BOOKING_RESCHEDULED = "booking.rescheduled"
EVENT_BOOKING_REMINDER = "booking.reminder"

# Booking history scopes
BOOKING_SCOPE_ALL = "all"
BOOKING_SCOPE_UPCOMING = "upcoming"
BOOKING_SCOPE_PAST = "past"
