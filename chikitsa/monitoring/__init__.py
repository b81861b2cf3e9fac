"""Monitoring infrastructure for chikitsa"""
from chikitsa.monitoring.metrics import (
    metrics,
    record_xp_award,
    record_achievement_unlock,
    record_challenge_completed,
    record_persist_failure,
    track_database_query,
    track_ai_call,
)

__all__ = [
    "metrics",
    "record_xp_award",
    "record_achievement_unlock",
    "record_challenge_completed",
    "record_persist_failure",
    "track_database_query",
    "track_ai_call",
]
