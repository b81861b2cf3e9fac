"""Global test fixtures and utilities for chikitsa tests"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from contextlib import asynccontextmanager
from datetime import datetime, date, timezone

from chikitsa.db.memory_store import InMemoryGateway
from chikitsa.services.gamification_service import GamificationService


# ============================================================================
# Clock Fixtures
# ============================================================================

FIXED_NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)
FIXED_TODAY = date(2025, 3, 10)


@pytest.fixture
def fixed_now():
    """Fixed engine clock (UTC)"""
    return FIXED_NOW


@pytest.fixture
def fixed_today():
    """Fixed local calendar day matching fixed_now"""
    return FIXED_TODAY


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "uid-123456789"


# ============================================================================
# Persistence Fixtures
# ============================================================================

@pytest.fixture
def gateway():
    """Empty in-memory persistence gateway"""
    return InMemoryGateway()


@pytest.fixture
def persist_errors():
    """Collects errors passed to the on_persist_error callback"""
    return []


@pytest.fixture
def service(test_user_id, gateway, persist_errors):
    """GamificationService bound to the in-memory gateway and a fixed clock"""
    return GamificationService(
        test_user_id,
        gateway,
        on_persist_error=persist_errors.append,
        clock=lambda: FIXED_NOW,
        today=lambda: FIXED_TODAY,
    )


@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    return cursor


@pytest.fixture
def mock_database(mock_db_cursor):
    """Mock Database whose connection() yields a connection with mock_db_cursor"""
    conn = MagicMock()
    conn.commit = AsyncMock()

    @asynccontextmanager
    async def cursor():
        yield mock_db_cursor

    conn.cursor = cursor

    @asynccontextmanager
    async def connection():
        yield conn

    database = MagicMock()
    database.connection = connection
    database.conn = conn
    return database


# ============================================================================
# Generative-text Fixtures
# ============================================================================

@pytest.fixture
def mock_generator():
    """Text generator whose complete() returns whatever the test sets"""
    generator = MagicMock()
    generator.complete = AsyncMock(return_value="")
    return generator
