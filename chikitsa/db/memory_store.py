"""
In-memory persistence gateway

Used by tests and by embedders that do not need durability. Documents are
deep-copied on the way in and out so callers can never mutate stored state
by accident.
"""

import copy
import logging
from collections import defaultdict
from typing import Optional

from chikitsa.db.gateway import EntityType, document_key
from chikitsa.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class InMemoryGateway:
    """Dict-backed document store keyed by (user_id, entity_type, key)"""

    def __init__(self):
        self._documents: dict[tuple[str, str], dict[str, dict]] = defaultdict(dict)
        self._failing_types: set[EntityType] = set()
        self.save_count = 0

    def fail_writes_for(self, *entity_types: EntityType) -> None:
        """Make subsequent saves of these entity types raise PersistenceError"""
        self._failing_types.update(entity_types)

    def restore_writes(self) -> None:
        self._failing_types.clear()

    async def load_entity(
        self,
        user_id: str,
        entity_type: EntityType,
        key: Optional[str] = None
    ) -> Optional[dict]:
        """Get a stored document"""
        document = self._documents[(user_id, entity_type.value)].get(document_key(key))
        return copy.deepcopy(document) if document is not None else None

    async def save_entity(
        self,
        user_id: str,
        entity_type: EntityType,
        document: dict,
        key: Optional[str] = None
    ) -> None:
        """Save a document (last write wins)"""
        if entity_type in self._failing_types:
            raise PersistenceError(
                f"Write rejected for {entity_type.value}",
                entity_type=entity_type.value,
                user_id=user_id,
                operation="save_entity"
            )

        self._documents[(user_id, entity_type.value)][document_key(key)] = copy.deepcopy(document)
        self.save_count += 1
        logger.debug(f"Saved {entity_type.value}/{document_key(key)} for user {user_id}")

    async def list_entities(self, user_id: str, entity_type: EntityType) -> list[dict]:
        """Get all documents of a collection"""
        return [
            copy.deepcopy(document)
            for document in self._documents[(user_id, entity_type.value)].values()
        ]

    async def append_food_log(self, user_id: str, log: dict) -> str:
        """Seed a food log directly, bypassing FoodService validation"""
        collection = self._documents[(user_id, EntityType.FOOD_LOGS.value)]
        log_id = log.get("id") or f"log_{len(collection) + 1}"
        collection[log_id] = copy.deepcopy({**log, "id": log_id})
        return log_id
