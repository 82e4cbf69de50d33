"""
utils/time_utils.py

Purpose: Time and timezone helpers

- Local-day boundaries for daily quotas (Africa/Juba by default)
- Expiry checks for subscriptions and payment sessions
- Timestamp formatting for user-facing messages
"""

from datetime import datetime, timedelta
from typing import Optional

import pytz

from app.core.config import settings


def utcnow() -> datetime:
    """
    Naive UTC timestamp, the form stored in MongoDB.
    """
    return datetime.utcnow()


def get_timezone():
    return pytz.timezone(settings.TIMEZONE)


def to_local(dt: datetime) -> datetime:
    """
    Converts a naive UTC (or aware) datetime to the configured timezone.
    """
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(get_timezone())


def local_date(dt: Optional[datetime] = None):
    return to_local(dt or utcnow()).date()


def is_new_local_day(last_reset: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Checks whether the local calendar day changed since the last reset.

    Args:
        last_reset: Naive UTC timestamp of the last counter reset
        now: Naive UTC "now" (defaults to current time)

    Returns:
        True if counters should be reset
    """
    if last_reset is None:
        return True
    return local_date(now) > local_date(last_reset)


def is_expired(expiry: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if expiry is None:
        return True
    return (now or utcnow()) >= expiry


def add_days(start: datetime, days: int) -> datetime:
    return start + timedelta(days=days)


def format_for_user(dt: Optional[datetime], format_str: str = "%Y-%m-%d %H:%M") -> str:
    """
    Formats a stored timestamp in local time for user-facing messages.
    """
    if not dt:
        return "N/A"
    local = to_local(dt)
    return f"{local.strftime(format_str)} ({settings.TIMEZONE.split('/')[-1]} time)"
