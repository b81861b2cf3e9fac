"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

from chikitsa.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class GamificationMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self, enabled: bool = ENABLE_PROMETHEUS):
        self._enabled = enabled
        if not enabled:
            logger.info("Prometheus metrics disabled")
            return

        # Progression Metrics
        self.xp_awarded_total = Counter(
            'chikitsa_xp_awarded_total',
            'Total XP awarded',
            ['ledger']
        )

        self.level_ups_total = Counter(
            'chikitsa_level_ups_total',
            'Total level-ups',
            ['ledger']
        )

        self.achievements_unlocked_total = Counter(
            'chikitsa_achievements_unlocked_total',
            'Total achievement unlocks',
            ['achievement_id']
        )

        self.challenges_completed_total = Counter(
            'chikitsa_challenges_completed_total',
            'Total completed challenges'
        )

        # Persistence Metrics
        self.persist_failures_total = Counter(
            'chikitsa_persist_failures_total',
            'Persistence writes that failed and were suppressed',
            ['entity_type']
        )

        self.db_queries_total = Counter(
            'chikitsa_db_queries_total',
            'Total database queries',
            ['query_type', 'table']
        )

        self.db_query_duration_seconds = Histogram(
            'chikitsa_db_query_duration_seconds',
            'Database query latency',
            ['query_type'],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
        )

        # AI Metrics
        self.ai_calls_total = Counter(
            'chikitsa_ai_calls_total',
            'Total generative API calls',
            ['call_type', 'status']
        )

        self.ai_call_duration_seconds = Histogram(
            'chikitsa_ai_call_duration_seconds',
            'Generative API call latency',
            ['call_type'],
            buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0]
        )

        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = GamificationMetrics()


def record_xp_award(ledger: str, amount: int, levels_gained: int) -> None:
    """Record an XP grant on the user or pet ledger"""
    if not metrics.enabled:
        return

    metrics.xp_awarded_total.labels(ledger=ledger).inc(amount)
    if levels_gained:
        metrics.level_ups_total.labels(ledger=ledger).inc(levels_gained)


def record_achievement_unlock(achievement_id: str) -> None:
    if not metrics.enabled:
        return
    metrics.achievements_unlocked_total.labels(achievement_id=achievement_id).inc()


def record_challenge_completed() -> None:
    if not metrics.enabled:
        return
    metrics.challenges_completed_total.inc()


def record_persist_failure(entity_type: str) -> None:
    if not metrics.enabled:
        return
    metrics.persist_failures_total.labels(entity_type=entity_type).inc()


@contextmanager
def track_database_query(query_type: str, table: str = ""):
    """Track database query metrics"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()

    try:
        yield
    finally:
        duration = time.time() - start_time
        metrics.db_query_duration_seconds.labels(
            query_type=query_type
        ).observe(duration)

        metrics.db_queries_total.labels(
            query_type=query_type,
            table=table
        ).inc()


@contextmanager
def track_ai_call(call_type: str):
    """Track generative API call metrics"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()
    status = "error"  # Default to error

    try:
        yield
        status = "success"
    finally:
        duration = time.time() - start_time
        metrics.ai_call_duration_seconds.labels(
            call_type=call_type
        ).observe(duration)

        metrics.ai_calls_total.labels(
            call_type=call_type,
            status=status
        ).inc()
