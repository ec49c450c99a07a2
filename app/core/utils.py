"""Core utility functions for the application"""

from datetime import datetime, timezone
from typing import Optional

from app.core.exceptions import ValidationError


def utcnow() -> datetime:
    """
    Current time as a naive UTC datetime, matching what the database stores.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize an incoming datetime to naive UTC.
    Naive values are assumed to already be UTC.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_today(now: Optional[datetime] = None) -> datetime:
    """
    Midnight of the current day (UTC).

    Args:
        now: Reference time, defaults to utcnow()

    Returns:
        datetime: The day's start as a naive datetime
    """
    now = now or utcnow()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def ensure_not_in_past(value: Optional[datetime], field_name: str) -> Optional[datetime]:
    """
    Reject dates before today; today itself is allowed.

    Raises:
        ValidationError: If the date falls on a past day
    """
    value = to_naive_utc(value)
    if value is not None and value < start_of_today():
        raise ValidationError(f"{field_name} cannot be in the past")
    return value
