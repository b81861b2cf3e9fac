"""
Achievement System

Static catalog of one-time badges, each tied to exactly one trigger.

The engine does not detect conditions itself: calling code reports that a
trigger fired (see integrations.py) and the engine records the unlock.
Unknown triggers and already-unlocked achievements are silent no-ops.

Unlock rewards (applied by GamificationService):
- Pet +25 XP, +10 happiness, mood excited
"""

from typing import Any, Dict, Iterable, List, Optional, Set, Union
from datetime import datetime
import logging

from chikitsa.gamification.pet import ACHIEVEMENT_PET_XP
from chikitsa.models.gamification import Achievement, AchievementTrigger
from chikitsa.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


# ============================================
# Achievement Catalog
# ============================================

ACHIEVEMENT_CATALOG: List[Achievement] = [
    Achievement(
        id="iron_will",
        title="Iron Will",
        description="Log meals for 7 days in a row",
        icon="🏆",
        condition=AchievementTrigger.SEVEN_DAY_STREAK,
    ),
    Achievement(
        id="veggie_voyager",
        title="Veggie Voyager",
        description="Eat 15 different vegetables in a month",
        icon="🥬",
        condition=AchievementTrigger.FIFTEEN_VEGGIES,
    ),
    Achievement(
        id="hydration_hero",
        title="Hydration Hero",
        description="Log water intake for 14 consecutive days",
        icon="💧",
        condition=AchievementTrigger.FOURTEEN_DAY_WATER,
    ),
    Achievement(
        id="streak_master",
        title="Streak Master",
        description="30-day logging streak",
        icon="🔥",
        condition=AchievementTrigger.THIRTY_DAY_STREAK,
    ),
    Achievement(
        id="meal_planner_pro",
        title="Meal Planner Pro",
        description="Generate 10 meal plans",
        icon="🧠",
        condition=AchievementTrigger.TEN_PLANS,
    ),
    Achievement(
        id="first_log",
        title="First Steps",
        description="Log your first meal",
        icon="👣",
        condition=AchievementTrigger.FIRST_LOG,
    ),
    Achievement(
        id="budget_boss",
        title="Budget Boss",
        description="Stay under weekly budget 4 weeks in a row",
        icon="💰",
        condition=AchievementTrigger.FOUR_WEEK_BUDGET,
    ),
    Achievement(
        id="social_butterfly",
        title="Social Butterfly",
        description="Share your first meal plan",
        icon="🦋",
        condition=AchievementTrigger.FIRST_SHARE,
    ),
    Achievement(
        id="salad_champion",
        title="Salad Champion",
        description="Eat salads 5 days in a row",
        icon="🥗",
        condition=AchievementTrigger.FIVE_DAY_SALAD,
    ),
    Achievement(
        id="snap_master",
        title="Snap Master",
        description="Scan 10 food photos with AI",
        icon="📸",
        condition=AchievementTrigger.TEN_SCANS,
    ),
    Achievement(
        id="night_owl",
        title="Night Owl Planner",
        description="Generate a meal plan after 10 PM",
        icon="🌙",
        condition=AchievementTrigger.LATE_PLAN,
    ),
    Achievement(
        id="community_star",
        title="Community Star",
        description="Get 10 likes on your community posts",
        icon="🤝",
        condition=AchievementTrigger.TEN_LIKES,
    ),
    Achievement(
        id="workout_fuel",
        title="Workout Fuel",
        description="Log pre/post workout meals 5 times",
        icon="🏃",
        condition=AchievementTrigger.FIVE_WORKOUT_MEALS,
    ),
    Achievement(
        id="consistency_king",
        title="Consistency King",
        description="Log meals every day for 14 days straight",
        icon="🎯",
        condition=AchievementTrigger.FOURTEEN_DAY_STREAK,
    ),
    Achievement(
        id="top_chef",
        title="Top Chef",
        description="Try recipes from 5 different cuisines",
        icon="🥇",
        condition=AchievementTrigger.FIVE_CUISINES,
    ),
    Achievement(
        id="diamond_logger",
        title="Diamond Logger",
        description="Log 100 total meals. You're unstoppable!",
        icon="💎",
        condition=AchievementTrigger.HUNDRED_LOGS,
    ),
]


def get_all_achievements() -> List[Achievement]:
    """
    Get every achievement in the catalog

    Returns:
        List of catalog entries (copies, locked)
    """
    return [achievement.model_copy() for achievement in ACHIEVEMENT_CATALOG]


def resolve_trigger(condition: Union[AchievementTrigger, str]) -> Optional[AchievementTrigger]:
    """Map a reported condition to a trigger; unknown strings give None"""
    if isinstance(condition, AchievementTrigger):
        return condition
    try:
        return AchievementTrigger(condition)
    except ValueError:
        logger.debug(f"Unknown achievement condition {condition!r}")
        return None


def find_by_trigger(
    catalog: Iterable[Achievement],
    condition: Union[AchievementTrigger, str]
) -> Optional[Achievement]:
    """Catalog entry whose trigger matches the condition"""
    trigger = resolve_trigger(condition)
    if trigger is None:
        return None

    for achievement in catalog:
        if achievement.condition == trigger:
            return achievement
    return None


def check_and_unlock(
    catalog: Iterable[Achievement],
    unlocked_ids: Set[str],
    user_id: str,
    condition: Union[AchievementTrigger, str],
    now: Optional[datetime] = None
) -> Optional[Achievement]:
    """
    Record that a condition fired and unlock its achievement

    Adds the achievement id to `unlocked_ids` on success. Persistence and the
    pet reward are applied by the caller (GamificationService).

    Args:
        catalog: Achievement catalog
        unlocked_ids: Ids the user already unlocked (updated in place)
        user_id: User the condition fired for
        condition: Trigger enum member or its string value
        now: Unlock time (defaults to now)

    Returns:
        The newly unlocked achievement with unlocked_at set, or None when the
        condition is unknown or its achievement was already unlocked
    """
    definition = find_by_trigger(catalog, condition)
    if definition is None:
        return None

    if definition.id in unlocked_ids:
        logger.debug(f"User {user_id} already unlocked {definition.id}")
        return None

    unlocked = definition.model_copy(update={"unlocked_at": now or now_utc()})
    unlocked_ids.add(unlocked.id)

    logger.info(
        f"User {user_id} unlocked achievement: {unlocked.id} "
        f"({unlocked.title}) pet +{ACHIEVEMENT_PET_XP} XP"
    )
    return unlocked


def summarize_achievements(
    catalog: List[Achievement],
    unlocked: Iterable[Achievement]
) -> Dict[str, Any]:
    """
    Achievement page summary

    Returns:
        {
            'unlocked': [unlocked achievements, newest first],
            'locked': [catalog entries not yet unlocked],
            'total_unlocked': int,
            'total_achievements': int,
            'total_xp_from_achievements': int,
            'percentage': int
        }
    """
    unlocked_by_id = {a.id: a for a in unlocked if a.unlocked_at is not None}

    unlocked_list = sorted(unlocked_by_id.values(), key=lambda a: a.unlocked_at, reverse=True)
    locked_list = [a for a in catalog if a.id not in unlocked_by_id]

    total = len(catalog)
    percentage = round(len(unlocked_list) / total * 100) if total else 0

    return {
        "unlocked": unlocked_list,
        "locked": locked_list,
        "total_unlocked": len(unlocked_list),
        "total_achievements": total,
        "total_xp_from_achievements": len(unlocked_list) * ACHIEVEMENT_PET_XP,
        "percentage": percentage,
    }
