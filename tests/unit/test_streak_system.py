"""Unit tests for Logging Streak Calculation (chikitsa/gamification/streak_system.py)"""
from datetime import date

from chikitsa.gamification.streak_system import compute_streak, logged_days
from chikitsa.models.food import FoodLogEntry


TODAY = date(2025, 3, 10)


def _log(timestamp: str) -> FoodLogEntry:
    return FoodLogEntry(timestamp=timestamp, meal="lunch", description="dal rice")


# ============================================================================
# Streak Rules
# ============================================================================

def test_no_logs_gives_zero():
    assert compute_streak([], today=TODAY) == 0


def test_consecutive_days_ending_today():
    """days [today, today-1, today-2] -> 3"""
    logs = [
        _log("2025-03-10T08:00:00Z"),
        _log("2025-03-09T13:00:00Z"),
        _log("2025-03-08T20:00:00Z"),
    ]

    assert compute_streak(logs, today=TODAY) == 3


def test_no_log_today_gives_zero():
    """days [today-1, today-2] -> 0"""
    logs = [
        _log("2025-03-09T13:00:00Z"),
        _log("2025-03-08T20:00:00Z"),
    ]

    assert compute_streak(logs, today=TODAY) == 0


def test_gap_ends_streak():
    """days [today, today-2] -> 1"""
    logs = [
        _log("2025-03-10T08:00:00Z"),
        _log("2025-03-08T20:00:00Z"),
    ]

    assert compute_streak(logs, today=TODAY) == 1


def test_multiple_logs_per_day_count_once():
    logs = [
        _log("2025-03-10T08:00:00Z"),
        _log("2025-03-10T13:00:00Z"),
        _log("2025-03-10T20:00:00Z"),
        _log("2025-03-09T08:00:00Z"),
    ]

    assert compute_streak(logs, today=TODAY) == 2


def test_day_taken_from_timestamp_text_not_converted():
    """23:30 at +05:30 is still that calendar day, even though it is earlier in UTC"""
    logs = [
        _log("2025-03-10T00:15:00+05:30"),
        _log("2025-03-09T23:30:00+05:30"),
    ]

    assert compute_streak(logs, today=TODAY) == 2


def test_streak_crosses_month_boundary():
    logs = [
        _log("2025-03-02T08:00:00Z"),
        _log("2025-03-01T08:00:00Z"),
        _log("2025-02-28T08:00:00Z"),
    ]

    assert compute_streak(logs, today=date(2025, 3, 2)) == 3


def test_future_days_are_ignored():
    logs = [
        _log("2025-03-11T08:00:00Z"),
        _log("2025-03-10T08:00:00Z"),
        _log("2025-03-09T08:00:00Z"),
    ]

    assert compute_streak(logs, today=TODAY) == 2


def test_accepts_raw_documents_and_skips_bad_timestamps():
    logs = [
        {"timestamp": "2025-03-10T08:00:00Z"},
        {"timestamp": "not-a-date"},
        {"timestamp": ""},
        {"meal": "snack"},
        {"timestamp": "2025-03-09"},
    ]

    assert compute_streak(logs, today=TODAY) == 2


# ============================================================================
# Logged Days
# ============================================================================

def test_logged_days_newest_first_and_distinct():
    logs = [
        _log("2025-03-08T08:00:00Z"),
        _log("2025-03-10T08:00:00Z"),
        _log("2025-03-08T21:00:00Z"),
    ]

    assert logged_days(logs) == ["2025-03-10", "2025-03-08"]
