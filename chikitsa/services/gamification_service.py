"""
GamificationService - per-user gamification session

Holds one user's progress, pet, unlocked achievements and challenges in
memory and writes every mutation through the persistence gateway.

Persistence is best effort: a mutation is applied in memory first, then the
write is issued in the same call. A failed write is not rolled back; it is
logged, counted, appended to `persist_failures` and passed to the optional
`on_persist_error` callback. Concurrent sessions for the same user are
last-write-wins at the gateway.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError as ModelValidationError

from chikitsa.db.gateway import EntityType, PersistenceGateway
from chikitsa.exceptions import PersistenceError
from chikitsa.gamification import achievement_system, challenges as challenge_rules
from chikitsa.gamification.pet import (
    ACHIEVEMENT_HAPPINESS,
    ACHIEVEMENT_PET_XP,
    CHALLENGE_HAPPINESS,
    default_pet,
    describe_pet,
    feed_pet,
    reward_pet,
)
from chikitsa.gamification.streak_system import compute_streak
from chikitsa.gamification.xp_system import add_xp, describe_level
from chikitsa.models.food import FoodLogEntry
from chikitsa.models.gamification import (
    Achievement,
    AchievementTrigger,
    Challenge,
    PetState,
    UserProgress,
)
from chikitsa.monitoring.metrics import (
    record_achievement_unlock,
    record_challenge_completed,
    record_persist_failure,
    record_xp_award,
)
from chikitsa.utils.datetime_helpers import now_utc, today_local

logger = logging.getLogger(__name__)

PersistErrorCallback = Callable[[PersistenceError], None]


class GamificationService:
    """
    Gamification engine for one signed-in user.

    Responsibilities:
    - Loading state and recomputing the logging streak
    - XP and level-up for the user and the pet
    - Recording achievement unlocks reported by callers
    - Challenge acceptance, progress and completion rewards
    - Pet feeding
    """

    def __init__(
        self,
        user_id: str,
        gateway: PersistenceGateway,
        on_persist_error: Optional[PersistErrorCallback] = None,
        clock: Callable[[], datetime] = now_utc,
        today: Callable[[], date] = today_local,
    ):
        """
        Initialize GamificationService.

        Args:
            user_id: Signed-in user's id
            gateway: Persistence gateway handle
            on_persist_error: Called with each suppressed write failure
            clock: Source of timestamps (unlock times, challenge windows)
            today: Source of the caller's local calendar day for streaks
        """
        self.user_id = user_id
        self.gateway = gateway
        self.on_persist_error = on_persist_error
        self._clock = clock
        self._today = today
        self._lock = asyncio.Lock()

        self.catalog: List[Achievement] = achievement_system.get_all_achievements()
        self.progress = UserProgress()
        self.pet: PetState = default_pet(clock())
        self.achievements: List[Achievement] = []
        self.unlocked_ids: set[str] = set()
        self.challenges: List[Challenge] = []
        self.food_log_count = 0
        self.persist_failures: List[PersistenceError] = []
        self.loaded = False

        logger.debug(f"GamificationService initialized for user {user_id}")

    # ============================================
    # Loading
    # ============================================

    @property
    def streak(self) -> int:
        return self.progress.streak

    async def refresh(self) -> None:
        """Reload all state from the gateway and recompute the streak"""
        async with self._lock:
            await self._refresh()

    async def _ensure_loaded(self) -> None:
        if not self.loaded:
            await self._refresh()

    async def _refresh(self) -> None:
        results = await asyncio.gather(
            self.gateway.load_entity(self.user_id, EntityType.USER_PROGRESS),
            self.gateway.load_entity(self.user_id, EntityType.PET_STATE),
            self.gateway.list_entities(self.user_id, EntityType.ACHIEVEMENTS),
            self.gateway.list_entities(self.user_id, EntityType.CHALLENGES),
            self.gateway.list_entities(self.user_id, EntityType.FOOD_LOGS),
            return_exceptions=True,
        )

        # Only gateway failures are suppressed
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, PersistenceError):
                raise result

        progress_doc, pet_doc, achievement_docs, challenge_docs, log_docs = results
        previous_streak = self.streak

        # A failed read keeps the current in-memory value
        if not isinstance(progress_doc, PersistenceError):
            self.progress = self._parse(UserProgress, progress_doc) or UserProgress()
        if not isinstance(pet_doc, PersistenceError):
            self.pet = self._parse(PetState, pet_doc) or default_pet(self._clock())
        if not isinstance(achievement_docs, PersistenceError):
            parsed = [self._parse(Achievement, doc) for doc in achievement_docs]
            self.achievements = [a for a in parsed if a is not None and a.unlocked_at is not None]
            self.unlocked_ids = {a.id for a in self.achievements}
        if not isinstance(challenge_docs, PersistenceError):
            parsed = [self._parse(Challenge, doc) for doc in challenge_docs]
            self.challenges = sorted((c for c in parsed if c is not None), key=lambda c: c.start_date)

        if isinstance(log_docs, PersistenceError):
            logger.warning(f"Could not load food logs for user {self.user_id}; keeping streak {previous_streak}")
            self.progress = self.progress.model_copy(update={"streak": previous_streak})
        else:
            logs = [self._parse(FoodLogEntry, doc) for doc in log_docs]
            logs = [log for log in logs if log is not None]
            self.food_log_count = len(logs)
            self.progress = self.progress.model_copy(
                update={"streak": compute_streak(logs, today=self._today())}
            )

        for result in results:
            if isinstance(result, PersistenceError):
                self._report_failure(result)

        self.loaded = True
        await self._sync_leaderboard()

        logger.info(
            f"Loaded gamification for user {self.user_id}: level={self.progress.level}, "
            f"xp={self.progress.xp}, streak={self.streak}, "
            f"achievements={len(self.unlocked_ids)}, challenges={len(self.challenges)}"
        )

    def _parse(self, model, document: Optional[dict]):
        if document is None:
            return None
        try:
            return model.model_validate(document)
        except ModelValidationError as e:
            logger.warning(
                f"Ignoring malformed {model.__name__} document for user {self.user_id}: {e}"
            )
            return None

    async def _sync_leaderboard(self) -> None:
        """Publish level, XP and streak for the community leaderboard"""
        await self._persist(EntityType.LEADERBOARD, {
            "level": self.progress.level,
            "xp": self.progress.xp,
            "streak": self.streak,
            "updated_at": self._clock().isoformat(),
        })

    # ============================================
    # Persistence
    # ============================================

    async def _persist(
        self,
        entity_type: EntityType,
        document: Dict[str, Any],
        key: Optional[str] = None
    ) -> bool:
        """
        Best-effort write.

        Returns:
            True if stored, False if the failure was suppressed
        """
        try:
            await self.gateway.save_entity(self.user_id, entity_type, document, key=key)
            return True
        except PersistenceError as e:
            self._report_failure(e)
            return False

    def _report_failure(self, error: PersistenceError) -> None:
        # In-memory state stays as applied; the next successful write reconciles
        self.persist_failures.append(error)
        record_persist_failure(error.entity_type or error.context.get("entity_type") or "unknown")
        logger.warning(
            f"Suppressed persistence failure for user {self.user_id}: {error.message}"
        )
        if self.on_persist_error is not None:
            self.on_persist_error(error)

    def _progress_document(self) -> Dict[str, Any]:
        # streak is derived from food logs and never stored
        return self.progress.model_dump(mode="json", exclude={"streak"})

    # ============================================
    # XP
    # ============================================

    async def add_xp(self, amount: int, reason: str = "Activity completed") -> Dict[str, Any]:
        """
        Award XP to the user and persist the new level state.

        Returns:
            {
                'xp_awarded': int,
                'leveled_up': bool,
                'old_level': int,
                'new_level': int,
                'xp': int,
                'xp_to_next_level': int
            }
        """
        async with self._lock:
            await self._ensure_loaded()
            return await self._add_user_xp(amount, reason)

    async def _add_user_xp(self, amount: int, reason: str) -> Dict[str, Any]:
        old = self.progress
        self.progress = add_xp(old, amount)
        awarded = max(amount, 0)

        await self._persist(EntityType.USER_PROGRESS, self._progress_document())

        levels_gained = self.progress.level - old.level
        record_xp_award("user", awarded, levels_gained)

        logger.info(
            f"Awarded {awarded} XP to user {self.user_id} for {reason}. "
            f"Level: {self.progress.level}, XP: {self.progress.xp}"
        )
        if levels_gained:
            logger.info(f"User {self.user_id} leveled up from {old.level} to {self.progress.level}!")

        level_info = describe_level(self.progress.level, self.progress.xp)
        return {
            "xp_awarded": awarded,
            "leveled_up": levels_gained > 0,
            "old_level": old.level,
            "new_level": self.progress.level,
            "xp": self.progress.xp,
            "xp_to_next_level": level_info["xp_to_next_level"],
        }

    async def _reward_pet(self, xp: int, happiness: int) -> None:
        old = self.pet
        self.pet = reward_pet(old, xp, happiness)
        await self._persist(EntityType.PET_STATE, self.pet.model_dump(mode="json"))
        record_xp_award("pet", xp, self.pet.level - old.level)

    # ============================================
    # Achievements
    # ============================================

    async def check_and_unlock(
        self,
        condition: Union[AchievementTrigger, str]
    ) -> Optional[Achievement]:
        """
        Record that a condition fired.

        Unknown conditions and already-unlocked achievements do nothing.

        Returns:
            The newly unlocked achievement, or None
        """
        async with self._lock:
            await self._ensure_loaded()

            unlocked = achievement_system.check_and_unlock(
                self.catalog,
                self.unlocked_ids,
                self.user_id,
                condition,
                now=self._clock(),
            )
            if unlocked is None:
                return None

            self.achievements.append(unlocked)
            await self._persist(
                EntityType.ACHIEVEMENTS,
                unlocked.model_dump(mode="json"),
                key=unlocked.id,
            )
            await self._reward_pet(ACHIEVEMENT_PET_XP, ACHIEVEMENT_HAPPINESS)
            record_achievement_unlock(unlocked.id)
            return unlocked

    def achievement_summary(self) -> Dict[str, Any]:
        """Unlocked/locked lists and totals for the achievements page"""
        return achievement_system.summarize_achievements(self.catalog, self.achievements)

    # ============================================
    # Challenges
    # ============================================

    async def accept_challenge(self, template_index: int) -> Optional[Challenge]:
        """
        Start a challenge from the template library.

        Returns:
            The new challenge, or None if the index is unknown or an
            uncompleted challenge with the same title already exists
        """
        async with self._lock:
            await self._ensure_loaded()

            template = challenge_rules.get_template(template_index)
            if template is None:
                logger.warning(f"Unknown challenge template index {template_index}")
                return None

            if challenge_rules.has_active_challenge(self.challenges, template.title):
                logger.debug(f"User {self.user_id} already has active challenge '{template.title}'")
                return None

            challenge = challenge_rules.create_challenge(template, now=self._clock())
            self.challenges.append(challenge)
            await self._persist(
                EntityType.CHALLENGES,
                challenge.model_dump(mode="json"),
                key=challenge.id,
            )

            logger.info(f"User {self.user_id} accepted challenge {challenge.id} ({challenge.title})")
            return challenge

    async def update_challenge_progress(
        self,
        challenge_id: str,
        increment: int = 1
    ) -> Optional[Challenge]:
        """
        Add progress to a challenge and reward completion.

        On the call that reaches the target the user gets the challenge's
        xp_reward and the pet gets the same XP plus 15 happiness.

        Returns:
            The updated challenge, or None when the id is unknown or the
            challenge was already completed
        """
        async with self._lock:
            await self._ensure_loaded()

            index = next(
                (i for i, c in enumerate(self.challenges) if c.id == challenge_id),
                None,
            )
            if index is None:
                logger.debug(f"Unknown challenge {challenge_id} for user {self.user_id}")
                return None

            challenge = self.challenges[index]
            if challenge.completed:
                return None

            updated, completed_now = challenge_rules.apply_progress(challenge, increment)
            self.challenges[index] = updated

            if completed_now:
                await self._add_user_xp(updated.xp_reward, f"challenge '{updated.title}'")
                await self._reward_pet(updated.xp_reward, CHALLENGE_HAPPINESS)
                record_challenge_completed()
                logger.info(
                    f"User {self.user_id} completed challenge {updated.id} "
                    f"({updated.current}/{updated.target} {updated.unit}) +{updated.xp_reward} XP"
                )

            await self._persist(
                EntityType.CHALLENGES,
                updated.model_dump(mode="json"),
                key=updated.id,
            )
            return updated

    @property
    def active_challenges(self) -> List[Challenge]:
        return challenge_rules.split_challenges(self.challenges)[0]

    @property
    def completed_challenges(self) -> List[Challenge]:
        return challenge_rules.split_challenges(self.challenges)[1]

    # ============================================
    # Pet
    # ============================================

    async def feed_pet(self) -> PetState:
        """Feed (or play with) the pet: +5 happiness, mood happy"""
        async with self._lock:
            await self._ensure_loaded()

            self.pet = feed_pet(self.pet, now=self._clock())
            await self._persist(EntityType.PET_STATE, self.pet.model_dump(mode="json"))
            return self.pet

    def pet_summary(self) -> Dict[str, Any]:
        return describe_pet(self.pet)

    def level_summary(self) -> Dict[str, Any]:
        summary = describe_level(self.progress.level, self.progress.xp)
        summary["streak"] = self.streak
        return summary
