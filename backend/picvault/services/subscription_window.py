"""Subscription window utilities.

Expiry stamps are UTC and stored as ``YYYYMMDDHHmmssSSS`` strings, the format
existing clients already read from the profile endpoint.
"""
from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta

EXPIRY_FORMAT = "%Y%m%d%H%M%S"
DEFAULT_SUBSCRIPTION_DAYS = 30


def get_current_utc_datetime() -> datetime:
    """Get current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def format_expiry(dt: datetime) -> str:
    """Format a datetime as an expiry stamp (millisecond precision).

    Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime(EXPIRY_FORMAT) + f"{dt.microsecond // 1000:03d}"


def parse_expiry(value: str | None) -> datetime | None:
    """Parse an expiry stamp.

    Returns:
        A UTC datetime, or None if the value is unset or unparseable.
    """
    if not value:
        return None
    value = value.strip()
    if len(value) != 17 or not value.isdigit():
        return None
    try:
        dt = datetime.strptime(value[:14], EXPIRY_FORMAT)
    except ValueError:
        return None
    return dt.replace(microsecond=int(value[14:]) * 1000, tzinfo=timezone.utc)


def compute_expiry(
    now: datetime | None = None,
    days: int = DEFAULT_SUBSCRIPTION_DAYS,
) -> str:
    """Get the expiry stamp ``days`` after ``now``.

    Args:
        now: Start of the window, defaults to the current UTC time.
        days: Window length in days.

    Returns:
        The expiry stamp string.
    """
    if now is None:
        now = get_current_utc_datetime()
    return format_expiry(now + relativedelta(days=days))
