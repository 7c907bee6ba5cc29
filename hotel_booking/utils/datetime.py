"""UTC datetime and stay-date utilities."""

from datetime import date, datetime, timedelta, timezone
from typing import Iterator
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    This function should be used instead of datetime.now() or datetime.utcnow()
    to ensure all timestamps are timezone-aware and stored in UTC.

    Returns:
        Timezone-aware datetime in UTC

    Example:
        >>> now = utc_now()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime read back from the store to an aware UTC value.

    Some backends (SQLite) drop tzinfo on round-trip; values are always written
    in UTC so a naive value is interpreted as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield every night of a stay, ``check_out`` excluded."""
    night = check_in
    while night < check_out:
        yield night
        night += timedelta(days=1)


def weekday_sunday_first(day: date) -> int:
    """Weekday number with 0 = Sunday ... 6 = Saturday (rate plan convention)."""
    return (day.weekday() + 1) % 7


def hotel_today(now: datetime, timezone_name: str) -> date:
    """Calendar date at a hotel right now, in the hotel's IANA timezone."""
    return now.astimezone(ZoneInfo(timezone_name)).date()
