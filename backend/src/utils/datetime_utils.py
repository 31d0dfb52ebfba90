"""
Datetime utilities for consistent timezone handling across the application.

All business logic runs in one fixed clinic timezone (CLINIC_TIMEZONE), never
in the server's or the caller's local zone. Civil dates are stored as
``date`` values and times-of-day as ``time`` values; absolute instants are only
used for "now" comparisons and for the waitlist offer window.
"""

import logging
from datetime import datetime, timezone, timedelta, date, time
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from core.config import CLINIC_TIMEZONE

logger = logging.getLogger(__name__)

CLINIC_TZ = ZoneInfo(CLINIC_TIMEZONE)

# Calendar-date arithmetic is anchored to local noon so that a DST shift
# never pushes the instant across a day boundary
CALENDAR_ANCHOR_TIME = time(12, 0)


def clinic_now() -> datetime:
    """
    Get the current datetime in the clinic timezone.

    Returns:
        Current timezone-aware datetime in CLINIC_TZ
    """
    return datetime.now(CLINIC_TZ)


def ensure_clinic_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware and expressed in the clinic zone.

    Naive datetimes are treated as UTC, which is how SQLite returns
    TIMESTAMP WITH TIME ZONE columns.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime in CLINIC_TZ, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(CLINIC_TZ)


def to_civil(instant: datetime) -> Tuple[date, time]:
    """
    Convert an absolute instant into the clinic's civil (date, time-of-day).

    Seconds and microseconds are dropped from the time-of-day.
    """
    local = ensure_clinic_tz(instant)
    assert local is not None
    return local.date(), time(local.hour, local.minute)


def to_instant(civil_date: date, time_of_day: time) -> datetime:
    """Localize a civil date and time-of-day in the clinic zone."""
    return datetime.combine(civil_date, time_of_day).replace(tzinfo=CLINIC_TZ)


def calendar_date_anchor(civil_date: date) -> datetime:
    """Return the local-noon instant of a civil date."""
    return to_instant(civil_date, CALENDAR_ANCHOR_TIME)


def civil_date_string(value: date | datetime) -> str:
    """
    Return the ISO calendar date (YYYY-MM-DD) of a date or an instant.

    Instants are first converted to the clinic zone so that two values on the
    same clinic day always compare equal, whatever their UTC offset.
    """
    if isinstance(value, datetime):
        return to_civil(value)[0].isoformat()
    return value.isoformat()


def clinic_weekday(civil_date: date) -> int:
    """Day of week with 0=Sunday, 1=Monday, ..., 6=Saturday."""
    return (civil_date.weekday() + 1) % 7


def add_days(civil_date: date, days: int) -> date:
    """Shift a civil date by a number of days through its noon anchor."""
    return (calendar_date_anchor(civil_date) + timedelta(days=days)).date()


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Automatically normalizes single-digit months/days.

    Args:
        date_str: Date string in YYYY-MM-DD or YYYY/MM/DD format

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Date string cannot be empty")

    date_str = date_str.strip()

    if '/' in date_str:
        parts = date_str.split('/')
    elif '-' in date_str:
        parts = date_str.split('-')
    else:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD): {date_str}")

    if len(parts) != 3:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD): {date_str}")

    year = parts[0].zfill(4)
    month = parts[1].zfill(2)
    day = parts[2].zfill(2)

    try:
        return datetime.strptime(f"{year}-{month}-{day}", '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD): {date_str}") from e


def parse_time_string(time_str: str) -> time:
    """
    Parse a 24h time-of-day string ("HH:MM", seconds tolerated).

    Raises:
        ValueError: If the string is not a valid time-of-day
    """
    if not time_str or not time_str.strip():
        raise ValueError("Time string cannot be empty")

    parts = time_str.strip().split(':')
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time format (expected HH:MM): {time_str}")

    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time format (expected HH:MM): {time_str}")
    return time(hour, minute)


def format_time(value: time) -> str:
    """Format a time-of-day as zero-padded HH:MM."""
    return f"{value.hour:02d}:{value.minute:02d}"


def time_to_minutes(value: time) -> int:
    """Minutes elapsed since midnight."""
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    """Inverse of time_to_minutes; 1440 (end of day) is clamped to 23:59."""
    if minutes >= 24 * 60:
        return time(23, 59)
    return time(minutes // 60, minutes % 60)
