"""
Gamification engine for chikitsa

Rules for:
- XP and level-up rollover (user and pet ledgers)
- Logging streaks derived from food logs
- Achievement unlocks reported by calling code
- Week-long challenges with completion rewards
- Virtual pet happiness, mood and XP

State is held and persisted by chikitsa.services.gamification_service.
"""

from chikitsa.gamification.xp_system import add_xp, xp_threshold, get_xp_for_activity
from chikitsa.gamification.streak_system import compute_streak
from chikitsa.gamification.achievement_system import (
    ACHIEVEMENT_CATALOG,
    check_and_unlock,
    get_all_achievements,
)
from chikitsa.gamification.challenges import CHALLENGE_TEMPLATES, create_challenge, apply_progress
from chikitsa.gamification.pet import default_pet, feed_pet, reward_pet

__all__ = [
    "add_xp",
    "xp_threshold",
    "get_xp_for_activity",
    "compute_streak",
    "ACHIEVEMENT_CATALOG",
    "check_and_unlock",
    "get_all_achievements",
    "CHALLENGE_TEMPLATES",
    "create_challenge",
    "apply_progress",
    "default_pet",
    "feed_pet",
    "reward_pet",
]
