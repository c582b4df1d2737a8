"""
Timezone helpers for business-local scheduling.

Bookings store a local date and time-of-day in the business timezone;
expiry deadlines and audit timestamps are stored in UTC.
"""

from datetime import date, datetime, timezone
from typing import Optional

import pytz

from .config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values (SQLite drops tzinfo on the way back)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_business_timezone(tz_name: Optional[str]) -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(tz_name or settings.default_business_timezone)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(settings.default_business_timezone)


def business_now(tz_name: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Current wall-clock time in the business timezone, returned naive.

    Args:
        tz_name: IANA timezone of the business
        now: Reference instant (UTC-aware or naive UTC); defaults to the real clock
    """
    reference = ensure_utc(now) or utc_now()
    return reference.astimezone(get_business_timezone(tz_name)).replace(tzinfo=None)


def business_today(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    return business_now(tz_name, now).date()
