"""
Virtual Pet

The pet is driven by the same events as the user's progress:
- Feeding: +5 happiness, mood happy, no XP
- Achievement unlock: +25 XP, +10 happiness, mood excited
- Challenge completion: +xp_reward XP, +15 happiness, mood excited

Happiness is clamped to [0, 100] on every mutation. Pet XP goes through the
same level-up rollover as the user's XP but on its own counters. Mood is only
a tag for the last mutation; animation mood cycling belongs to the UI.
"""

from datetime import datetime
from typing import Optional
import logging

from chikitsa.gamification.xp_system import add_xp, xp_threshold, xp_to_next_level
from chikitsa.models.gamification import PetMood, PetState
from chikitsa.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

MIN_HAPPINESS = 0
MAX_HAPPINESS = 100

FEED_HAPPINESS = 5
ACHIEVEMENT_PET_XP = 25
ACHIEVEMENT_HAPPINESS = 10
CHALLENGE_HAPPINESS = 15


def default_pet(now: Optional[datetime] = None) -> PetState:
    """Pet used when a user has no saved pet yet"""
    return PetState(last_interaction=now or now_utc())


def clamp_happiness(value: int) -> int:
    return max(MIN_HAPPINESS, min(MAX_HAPPINESS, value))


def feed_pet(pet: PetState, now: Optional[datetime] = None) -> PetState:
    """Direct feed/play interaction"""
    return pet.model_copy(update={
        "happiness": clamp_happiness(pet.happiness + FEED_HAPPINESS),
        "mood": PetMood.HAPPY,
        "last_interaction": now or now_utc(),
    })


def reward_pet(pet: PetState, xp: int, happiness: int) -> PetState:
    """
    Apply a reward event (achievement unlock or challenge completion)

    XP is run through the level ledger so large rewards cascade levels.
    """
    leveled = add_xp(pet, xp)
    rewarded = leveled.model_copy(update={
        "happiness": clamp_happiness(pet.happiness + happiness),
        "mood": PetMood.EXCITED,
    })

    if rewarded.level > pet.level:
        logger.info(f"Pet {pet.name} leveled up from {pet.level} to {rewarded.level}")

    return rewarded


def happiness_band(pet: PetState) -> str:
    """Colour band for the happiness meter: high, medium or low"""
    if pet.happiness > 70:
        return "high"
    if pet.happiness > 40:
        return "medium"
    return "low"


def describe_pet(pet: PetState) -> dict:
    """Display summary for the pet widget"""
    return {
        "name": pet.name,
        "level": pet.level,
        "xp": pet.xp,
        "xp_for_next_level": xp_threshold(pet.level),
        "xp_to_next_level": xp_to_next_level(pet.level, pet.xp),
        "xp_progress_percent": round(pet.xp / xp_threshold(pet.level) * 100, 1),
        "happiness": pet.happiness,
        "happiness_band": happiness_band(pet),
        "mood": pet.mood.value,
    }
