"""
Calendar-day and timestamp helpers for the gamification engine

RULES:
- Timestamps the engine creates are timezone-aware UTC (use now_utc())
- Food log day keys come from the ISO string itself: the date part is taken
  verbatim in the log's own offset, no timezone conversion is performed
- "Today" for streaks is the caller's local calendar day (today_local())
"""

import logging
from datetime import datetime, date, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DAY_KEY_FORMAT = "%Y-%m-%d"


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(ZoneInfo("UTC"))


def today_local(tz_name: Optional[str] = None) -> date:
    """
    Get the caller's current calendar day

    Args:
        tz_name: IANA timezone name; the process local timezone when omitted

    Returns:
        Today's date
    """
    if tz_name is None:
        return date.today()
    try:
        return datetime.now(ZoneInfo(tz_name)).date()
    except (KeyError, ValueError) as e:
        logger.error(f"Invalid timezone '{tz_name}': {e}")
        return date.today()


def day_key_from_timestamp(timestamp: Optional[str]) -> Optional[str]:
    """
    Extract the YYYY-MM-DD calendar day from an ISO-8601 timestamp string

    The text before the 'T' separator is used as-is, so
    '2025-03-01T23:30:00+05:30' belongs to 2025-03-01.

    Returns:
        Day key, or None when the timestamp is empty or has no valid date part
    """
    if not timestamp:
        return None

    day_part = timestamp.split("T")[0].strip()
    try:
        datetime.strptime(day_part, DAY_KEY_FORMAT)
    except ValueError:
        logger.debug(f"Ignoring timestamp without a calendar day: {timestamp!r}")
        return None
    return day_part


def day_key(day: Union[date, datetime]) -> str:
    """Format a date as a YYYY-MM-DD key"""
    if isinstance(day, datetime):
        day = day.date()
    return day.strftime(DAY_KEY_FORMAT)


def parse_day_key(key: str) -> date:
    """Parse a YYYY-MM-DD key into a date"""
    return datetime.strptime(key, DAY_KEY_FORMAT).date()


def previous_day(key: str) -> str:
    """Return the key of the calendar day before the given key"""
    return day_key(parse_day_key(key) - timedelta(days=1))


def add_days(moment: datetime, days: int) -> datetime:
    """Shift a datetime by whole calendar days"""
    return moment + timedelta(days=days)
