"""
FoodService - Food Logging

Stores manual and quick-add food log entries through the persistence
gateway and reports each one to the user's gamification session, which
recomputes the streak from the stored logs.

Unlike gamification writes, a failed log write is raised to the caller.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from pydantic import ValidationError as ModelValidationError

from chikitsa.db.gateway import EntityType, PersistenceGateway
from chikitsa.exceptions import ValidationError
from chikitsa.gamification.integrations import GamificationResult, handle_food_logged
from chikitsa.models.food import FoodLogEntry
from chikitsa.services.gamification_service import GamificationService
from chikitsa.utils.datetime_helpers import day_key, day_key_from_timestamp, now_utc
from chikitsa.validators import FoodLogInput

logger = logging.getLogger(__name__)

# Common Indian dishes offered as one-tap entries
QUICK_FOODS: List[Dict[str, Any]] = [
    {"description": "Roti with Dal", "calories": 320, "protein": 12, "carbs": 48, "fats": 8, "meal": "lunch"},
    {"description": "Rice with Sabji", "calories": 400, "protein": 10, "carbs": 60, "fats": 12, "meal": "lunch"},
    {"description": "Poha", "calories": 250, "protein": 6, "carbs": 40, "fats": 8, "meal": "breakfast"},
    {"description": "Idli Sambar", "calories": 280, "protein": 8, "carbs": 45, "fats": 6, "meal": "breakfast"},
    {"description": "Egg Omelette", "calories": 180, "protein": 14, "carbs": 2, "fats": 12, "meal": "breakfast"},
    {"description": "Chicken Curry + Rice", "calories": 550, "protein": 30, "carbs": 50, "fats": 18, "meal": "dinner"},
    {"description": "Fruit Bowl", "calories": 150, "protein": 2, "carbs": 35, "fats": 1, "meal": "snack"},
    {"description": "Chai + Biscuit", "calories": 120, "protein": 3, "carbs": 18, "fats": 4, "meal": "snack"},
]


def new_log_id(now: datetime) -> str:
    """Millisecond timestamp plus a short random suffix; sorts by creation time"""
    return f"log_{int(now.timestamp() * 1000):013d}_{uuid4().hex[:6]}"


class FoodService:
    """
    Service for food logging.

    Responsibilities:
    - Validate and store food log entries
    - Quick-add entries from QUICK_FOODS
    - Food log retrieval and daily nutrition totals
    - Report new logs to gamification (first log, log count, streaks)
    """

    def __init__(
        self,
        user_id: str,
        gateway: PersistenceGateway,
        gamification: Optional[GamificationService] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        """
        Initialize FoodService.

        Args:
            user_id: Signed-in user's id
            gateway: Persistence gateway for food logs
            gamification: User's gamification session, if rewards apply
            clock: Source of "now" for new entries and ids
        """
        self.user_id = user_id
        self.gateway = gateway
        self.gamification = gamification
        self._clock = clock
        self.last_reward: Optional[GamificationResult] = None

    async def log_food(self, entry: FoodLogEntry) -> FoodLogEntry:
        """
        Validate, store and reward a food log entry.

        Args:
            entry: Entry to store; an empty timestamp means now, a missing id
                is generated

        Returns:
            The stored entry, with its id and cleaned fields

        Raises:
            ValidationError: entry failed validation
            PersistenceError: the gateway could not store it
        """
        now = self._clock()
        raw = entry.model_dump()
        raw["timestamp"] = entry.timestamp or now.isoformat()

        try:
            valid = FoodLogInput.model_validate(raw)
        except ModelValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "entry"
            raise ValidationError(
                error["msg"],
                field=field,
                value=raw.get(field),
                user_id=self.user_id,
                operation="log_food"
            )

        stored = entry.model_copy(update={
            **valid.model_dump(),
            "id": entry.id or new_log_id(now),
        })

        await self.gateway.save_entity(
            self.user_id,
            EntityType.FOOD_LOGS,
            stored.model_dump(mode="json"),
            key=stored.id
        )
        logger.info(
            f"Logged {stored.meal} for user {self.user_id}: "
            f"{stored.description} ({stored.calories:.0f} kcal)"
        )

        if self.gamification is not None:
            self.last_reward = await handle_food_logged(self.gamification)

        return stored

    async def quick_add(self, index: int) -> FoodLogEntry:
        """
        Log one of the QUICK_FOODS entries at the current time.

        Raises:
            ValidationError: index is out of range
        """
        if not 0 <= index < len(QUICK_FOODS):
            raise ValidationError(
                f"No quick food at index {index}",
                field="index",
                value=index,
                user_id=self.user_id
            )
        return await self.log_food(FoodLogEntry(timestamp="", **QUICK_FOODS[index]))

    async def get_food_logs(self, limit: Optional[int] = None) -> List[FoodLogEntry]:
        """
        Get the user's food logs, newest first.

        Stored documents that no longer validate are skipped.
        """
        documents = await self.gateway.list_entities(self.user_id, EntityType.FOOD_LOGS)

        logs = []
        for document in documents:
            try:
                logs.append(FoodLogEntry.model_validate(document))
            except ModelValidationError as e:
                logger.warning(f"Skipping malformed food log for user {self.user_id}: {e}")

        logs.sort(key=lambda log: log.timestamp, reverse=True)
        return logs[:limit] if limit is not None else logs

    async def get_daily_nutrition_summary(self, target_date: date) -> Dict[str, Any]:
        """
        Calculate nutrition totals for one calendar day.

        A log belongs to the day written in its own timestamp.

        Returns:
            dict: {
                'date': str,
                'total_calories': float,
                'total_protein': float,
                'total_carbs': float,
                'total_fats': float,
                'meal_count': int,
                'entries': List[FoodLogEntry]
            }
        """
        key = day_key(target_date)
        entries = [
            log for log in await self.get_food_logs()
            if day_key_from_timestamp(log.timestamp) == key
        ]

        return {
            'date': key,
            'total_calories': sum(log.calories for log in entries),
            'total_protein': sum(log.protein for log in entries),
            'total_carbs': sum(log.carbs for log in entries),
            'total_fats': sum(log.fats for log in entries),
            'meal_count': len(entries),
            'entries': entries,
        }
