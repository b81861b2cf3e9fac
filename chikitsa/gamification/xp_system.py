"""
XP and Leveling System

Level-up rollover shared by the user's ledger and the virtual pet's ledger.
The two ledgers use the same arithmetic but are never combined.

Leveling Curve:
- Advancing from level N to N+1 costs N * 100 XP
- xp is stored relative to the current level: 0 <= xp < level * 100
- A single large grant cascades through as many levels as it covers

XP Award Rules:
- Meal plan generated: 15 XP
- Meal from a plan logged: 10 XP
- Challenge completed: the challenge's xp_reward (user and pet)
- Achievement unlocked: 25 XP (pet only)
"""

from typing import Any, Dict, TypeVar
import logging

from chikitsa.models.gamification import UserProgress, PetState

logger = logging.getLogger(__name__)

XP_PER_LEVEL_STEP = 100

Ledger = TypeVar("Ledger", UserProgress, PetState)


def xp_threshold(level: int) -> int:
    """XP needed to advance from `level` to the next one"""
    return level * XP_PER_LEVEL_STEP


def add_xp(current: Ledger, amount: int) -> Ledger:
    """
    Add XP to a ledger and apply level-up rollover

    Pure function: returns a new model and leaves `current` untouched. The
    caller persists the result.

    Args:
        current: UserProgress or PetState
        amount: XP to add; negative amounts are clamped to 0

    Returns:
        Copy of `current` with updated level and xp

    Example:
        level 1, xp 90, +30  -> level 2, xp 20
        level 1, xp 0, +250  -> level 2, xp 150 (level 2 needs 200)
    """
    if amount < 0:
        logger.warning(f"Ignoring negative XP amount {amount}; treating as 0")
        amount = 0

    if amount == 0:
        return current.model_copy()

    level = current.level
    xp = current.xp + amount

    while xp >= xp_threshold(level):
        xp -= xp_threshold(level)
        level += 1

    return current.model_copy(update={"level": level, "xp": xp})


def total_xp(level: int, xp: int) -> int:
    """
    Lifetime XP represented by a (level, xp) pair

    Sum of thresholds of every completed level plus the in-level XP.
    """
    return XP_PER_LEVEL_STEP * (level - 1) * level // 2 + xp


def xp_to_next_level(level: int, xp: int) -> int:
    return xp_threshold(level) - xp


def level_progress_percent(level: int, xp: int) -> float:
    """Share of the current level completed, for progress bars"""
    return round(xp / xp_threshold(level) * 100, 1)


def describe_level(level: int, xp: int) -> Dict[str, Any]:
    """
    Level summary for display

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,
            'total_xp_for_next_level': int,
            'progress_percent': float,
            'total_xp': int
        }
    """
    return {
        "current_level": level,
        "xp_in_current_level": xp,
        "xp_to_next_level": xp_to_next_level(level, xp),
        "total_xp_for_next_level": xp_threshold(level),
        "progress_percent": level_progress_percent(level, xp),
        "total_xp": total_xp(level, xp),
    }


ACTIVITY_XP = {
    "meal_plan_generated": 15,
    "plan_meal_logged": 10,
}


def get_xp_for_activity(activity_type: str) -> int:
    """
    XP amount for app activities outside challenges

    Unknown activity types earn nothing.
    """
    return ACTIVITY_XP.get(activity_type, 0)
