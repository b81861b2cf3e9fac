"""
Persistence gateway contract

The gamification engine reads and writes per-user documents through this
interface and never talks to a database directly. Documents are plain
JSON-compatible dicts. Writes are last-write-wins; implementations raise
PersistenceError (or a subclass) when a write cannot be stored.
"""

from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class EntityType(str, Enum):
    """Document kinds stored per user"""
    USER_PROGRESS = "user_progress"  # single document
    PET_STATE = "pet_state"  # single document
    ACHIEVEMENTS = "achievements"  # keyed by achievement id
    CHALLENGES = "challenges"  # keyed by challenge id
    FOOD_LOGS = "food_logs"  # keyed by log id; written by FoodService, read by the engine
    LEADERBOARD = "leaderboard"  # single document of public stats
    MEAL_PLANS = "meal_plans"  # keyed by YYYY-MM-DD
    GROCERY_LISTS = "grocery_lists"  # keyed by YYYY-MM-DD
    CHAT_HISTORY = "chat_history"  # keyed by message id


SINGLE_DOCUMENT_KEY = "_"


def document_key(key: Optional[str]) -> str:
    """Key used for single-document entity types when none is given"""
    return key if key is not None else SINGLE_DOCUMENT_KEY


@runtime_checkable
class PersistenceGateway(Protocol):
    """Per-user document store used by the engine"""

    async def load_entity(
        self,
        user_id: str,
        entity_type: EntityType,
        key: Optional[str] = None
    ) -> Optional[dict]:
        """Return the stored document, or None when absent"""
        ...

    async def save_entity(
        self,
        user_id: str,
        entity_type: EntityType,
        document: dict,
        key: Optional[str] = None
    ) -> None:
        """Store (replace) a document; raises PersistenceError on failure"""
        ...

    async def list_entities(self, user_id: str, entity_type: EntityType) -> list[dict]:
        """Return every document of a collection entity type"""
        ...
