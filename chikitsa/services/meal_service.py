"""
Meal Service

Meal planning features backed by the generative-text gateway: daily plans,
single-meal regeneration, grocery lists, the nutrition chat and the foodie
personality quiz. Plans, grocery lists and chat turns are stored through the
persistence gateway; those writes are best effort. Generated plans are also
reported to the user's gamification session.
"""

import json
import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from pydantic import ValidationError as ModelValidationError

from chikitsa.ai import prompts
from chikitsa.ai.gemini import TextGenerator
from chikitsa.ai.parsing import (
    parse_foodie_profile,
    parse_grocery_list,
    parse_meal,
    parse_meal_plan,
)
from chikitsa.db.gateway import EntityType, PersistenceGateway
from chikitsa.exceptions import PersistenceError, ValidationError
from chikitsa.gamification.integrations import GamificationResult, handle_meal_plan_generated
from chikitsa.models.food import (
    MEAL_TYPES,
    ChatMessage,
    DailyMealPlan,
    FoodieProfile,
    GroceryItem,
    Meal,
)
from chikitsa.services.gamification_service import GamificationService
from chikitsa.utils.datetime_helpers import day_key, now_utc
from chikitsa.validators import ChatMessageInput

logger = logging.getLogger(__name__)

CHAT_HISTORY_TURNS = 10


def format_history(history: Sequence[Dict[str, str]], limit: int = CHAT_HISTORY_TURNS) -> str:
    """Render the last chat turns as "User: ..." / "CHIKITSA: ..." lines"""
    lines = []
    for turn in list(history)[-limit:]:
        speaker = "User" if turn.get("role") == "user" else prompts.ASSISTANT_NAME
        lines.append(f"{speaker}: {turn.get('content', '')}")
    return "\n".join(lines) or "(no previous messages)"




def new_message_id(now: datetime) -> str:
    return f"msg_{int(now.timestamp() * 1000):013d}_{uuid4().hex[:6]}"


class MealService:
    """Meal plan generation for one signed-in user"""

    def __init__(
        self,
        user_id: str,
        generator: TextGenerator,
        gateway: PersistenceGateway,
        gamification: Optional[GamificationService] = None,
        local_clock: Callable[[], datetime] = datetime.now,
        clock: Callable[[], datetime] = now_utc,
    ):
        """
        Initialize MealService.

        Args:
            user_id: Signed-in user's id
            generator: Text completion client
            gateway: Persistence gateway for plans, grocery lists and chat
            gamification: User's gamification session, if rewards apply
            local_clock: Local wall-clock time, used for plan dates and the
                late-night plan check
            clock: UTC time for stored timestamps
        """
        self.user_id = user_id
        self.generator = generator
        self.gateway = gateway
        self.gamification = gamification
        self._local_clock = local_clock
        self._clock = clock
        self.last_reward: Optional[GamificationResult] = None

    def _day(self, day: Optional[date]) -> str:
        return day_key(day or self._local_clock().date())

    # ============================================
    # Meal plans
    # ============================================

    async def generate_meal_plan(self, context: str, plan_date: Optional[date] = None) -> DailyMealPlan:
        """
        Generate, store and reward a meal plan for one day.

        Args:
            context: Rendered user profile (diet, allergies, goals, cuisine)
            plan_date: Day the plan is for (default: today)

        Returns:
            Parsed plan with its date set

        Raises:
            GeminiAPIError: generation failed
            ResponseParseError: output was not a valid plan
        """
        generated_at = self._local_clock()
        text = await self.generator.complete(prompts.meal_plan_prompt(context), call_type="meal_plan")
        plan = parse_meal_plan(text)
        plan.date = day_key(plan_date or generated_at.date())

        plans_generated = await self._save_plan(plan)

        if self.gamification is not None:
            self.last_reward = await handle_meal_plan_generated(
                self.gamification, plans_generated, generated_at
            )

        logger.info(
            f"Generated meal plan for user {self.user_id} on {plan.date}: "
            f"{plan.total_calories:.0f} kcal"
        )
        return plan

    async def get_meal_plan(self, plan_date: Optional[date] = None) -> Optional[DailyMealPlan]:
        """Stored plan for a day (default: today), or None"""
        document = await self.gateway.load_entity(
            self.user_id, EntityType.MEAL_PLANS, key=self._day(plan_date)
        )
        if document is None:
            return None
        try:
            return DailyMealPlan.model_validate(document)
        except ModelValidationError as e:
            logger.warning(f"Ignoring malformed meal plan for user {self.user_id}: {e}")
            return None

    async def regenerate_meal(self, meal_type: str, context: str, plan: DailyMealPlan) -> DailyMealPlan:
        """
        Replace one meal in a plan and store the result.

        Raises:
            ValidationError: meal_type is not breakfast, lunch, dinner or snack
        """
        if meal_type not in MEAL_TYPES:
            raise ValidationError(
                f"Unknown meal type: {meal_type}",
                field="meal_type",
                value=meal_type,
                user_id=self.user_id
            )

        plan_json = plan.model_dump_json(by_alias=True, indent=2)
        text = await self.generator.complete(
            prompts.regenerate_meal_prompt(meal_type, context, plan_json),
            call_type="regenerate_meal"
        )
        meal = parse_meal(text)

        updated = plan.model_copy(update={meal_type: meal})
        updated.recompute_total_calories()
        await self._save_plan(updated)

        logger.info(f"Regenerated {meal_type} for user {self.user_id} on {updated.date}")
        return updated

    # ============================================
    # Grocery lists
    # ============================================

    async def generate_grocery_list(
        self,
        meals: Sequence[Meal],
        weekly_budget: float,
        list_date: Optional[date] = None
    ) -> List[GroceryItem]:
        """
        Build and store a grocery list with INR price estimates for the selected meals.

        The list is stored under the day it was built for (default: today),
        replacing any earlier list for that day.
        """
        if not meals:
            return []

        meals_json = json.dumps(
            [meal.model_dump(mode="json", by_alias=True) for meal in meals],
            indent=2,
            ensure_ascii=False
        )
        text = await self.generator.complete(
            prompts.grocery_list_prompt(meals_json, weekly_budget),
            call_type="grocery_list"
        )
        items = parse_grocery_list(text)

        total = sum(item.estimated_price for item in items)
        if total > weekly_budget:
            logger.info(
                f"Grocery estimate ₹{total:.0f} exceeds budget ₹{weekly_budget:.0f} "
                f"for user {self.user_id}"
            )

        await self._save(
            EntityType.GROCERY_LISTS,
            {
                "items": [item.model_dump(mode="json", by_alias=True) for item in items],
                "updatedAt": self._clock().isoformat(),
            },
            key=self._day(list_date)
        )
        return items

    async def get_grocery_list(self, list_date: Optional[date] = None) -> Optional[List[GroceryItem]]:
        """Stored grocery list for a day (default: today), or None"""
        document = await self.gateway.load_entity(
            self.user_id, EntityType.GROCERY_LISTS, key=self._day(list_date)
        )
        if document is None:
            return None
        try:
            return [GroceryItem.model_validate(item) for item in document.get("items", [])]
        except ModelValidationError as e:
            logger.warning(f"Ignoring malformed grocery list for user {self.user_id}: {e}")
            return None

    # ============================================
    # Chat
    # ============================================

    async def chat(
        self,
        message: str,
        history: Optional[Sequence[Dict[str, str]]] = None,
        context: str = ""
    ) -> str:
        """
        Answer a nutrition chat message and store both turns.

        Args:
            message: User's message
            history: Earlier turns as {"role", "content"} dicts; the stored
                history is used when omitted
            context: Rendered user profile

        Raises:
            ValidationError: message is empty or too long after sanitizing
        """
        try:
            text_in = ChatMessageInput(text=message).text
        except ModelValidationError as e:
            raise ValidationError(
                e.errors()[0]["msg"],
                field="message",
                value=message[:100],
                user_id=self.user_id
            )

        if history is None:
            history = [turn.model_dump() for turn in await self.get_chat_history()]

        await self._add_chat_message("user", text_in)
        text = await self.generator.complete(
            prompts.chat_prompt(text_in, format_history(history), context),
            call_type="chat"
        )
        reply = text.strip()
        await self._add_chat_message("assistant", reply)
        return reply

    async def get_chat_history(self) -> List[ChatMessage]:
        """Stored chat turns, oldest first"""
        documents = await self.gateway.list_entities(self.user_id, EntityType.CHAT_HISTORY)

        messages = []
        for document in documents:
            try:
                messages.append(ChatMessage.model_validate(document))
            except ModelValidationError as e:
                logger.warning(f"Skipping malformed chat message for user {self.user_id}: {e}")

        messages.sort(key=lambda m: m.timestamp)
        return messages

    async def _add_chat_message(self, role: str, content: str) -> ChatMessage:
        now = self._clock()
        message = ChatMessage(
            id=new_message_id(now),
            role=role,
            content=content,
            timestamp=now.isoformat()
        )
        await self._save(EntityType.CHAT_HISTORY, message.model_dump(mode="json"), key=message.id)
        return message

    # ============================================
    # Foodie personality
    # ============================================

    async def foodie_personality(self, answers: Dict[str, str]) -> FoodieProfile:
        """Generate a foodie personality profile from quiz answers"""
        text = await self.generator.complete(
            prompts.foodie_personality_prompt(answers),
            call_type="foodie_personality"
        )
        return parse_foodie_profile(text)

    # ============================================
    # Persistence
    # ============================================

    async def _save(self, entity_type: EntityType, document: dict, key: str) -> bool:
        """Store a document; failures are logged and reported as False"""
        try:
            await self.gateway.save_entity(self.user_id, entity_type, document, key=key)
            return True
        except PersistenceError as e:
            logger.error(f"Failed to save {entity_type.value} for user {self.user_id}: {e.message}")
            return False

    async def _save_plan(self, plan: DailyMealPlan) -> int:
        """
        Store a plan keyed by its date.

        Returns:
            Number of stored plans, or 0 if the store could not be reached
        """
        if not await self._save(EntityType.MEAL_PLANS, plan.model_dump(mode="json", by_alias=True), key=plan.date):
            return 0
        try:
            stored = await self.gateway.list_entities(self.user_id, EntityType.MEAL_PLANS)
        except PersistenceError as e:
            logger.error(f"Failed to count meal plans for user {self.user_id}: {e.message}")
            return 0
        return len(stored)
