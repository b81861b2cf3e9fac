"""
Logging Streak Calculation

The streak is derived from food logs on every load; it is never stored as a
source of truth.

Rules:
- A log's calendar day is the date part of its ISO timestamp, in the log's
  own offset (no timezone conversion)
- Counting starts at today and walks backward one calendar day at a time
- The first missing day ends the streak; there is no grace day
- No log today means a streak of 0, even if yesterday was logged
"""

from typing import Iterable, Optional, Union
from datetime import date
import logging

from chikitsa.models.food import FoodLogEntry
from chikitsa.utils.datetime_helpers import (
    day_key,
    day_key_from_timestamp,
    previous_day,
    today_local,
)

logger = logging.getLogger(__name__)


def logged_days(logs: Iterable[Union[FoodLogEntry, dict]]) -> list[str]:
    """
    Distinct calendar days with at least one log, newest first

    Accepts models or raw documents; entries without a usable timestamp are
    skipped.
    """
    days = set()
    for log in logs:
        timestamp = log.get("timestamp") if isinstance(log, dict) else log.timestamp
        key = day_key_from_timestamp(timestamp)
        if key:
            days.add(key)

    # YYYY-MM-DD keys sort chronologically as strings
    return sorted(days, reverse=True)


def compute_streak(
    logs: Iterable[Union[FoodLogEntry, dict]],
    today: Optional[date] = None
) -> int:
    """
    Count consecutive logged days ending today

    Args:
        logs: Food log entries (models or documents)
        today: Caller's local calendar day; defaults to the process local day

    Returns:
        Streak length, 0 for no logs or no log today

    Example:
        days [today, today-1, today-2] -> 3
        days [today-1, today-2]        -> 0
        days [today, today-2]          -> 1
    """
    days = logged_days(logs)
    if not days:
        return 0

    expected = day_key(today or today_local())
    streak = 0

    for day in days:
        if day == expected:
            streak += 1
            expected = previous_day(expected)
        elif day < expected:
            break
        # Days after today are ignored

    logger.debug(f"Computed streak {streak} from {len(days)} logged days")
    return streak
