"""Gamification models: user progress, virtual pet, achievements, challenges"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from chikitsa.utils.datetime_helpers import now_utc


class PetMood(str, Enum):
    """Presentation tag set as a side effect of the last pet mutation"""
    HAPPY = "happy"
    NEUTRAL = "neutral"
    SLEEPY = "sleepy"
    EXCITED = "excited"


class AchievementTrigger(str, Enum):
    """Conditions reported by calling code; each catalog entry maps to one"""
    SEVEN_DAY_STREAK = "7_day_streak"
    FIFTEEN_VEGGIES = "15_veggies"
    FOURTEEN_DAY_WATER = "14_day_water"
    THIRTY_DAY_STREAK = "30_day_streak"
    TEN_PLANS = "10_plans"
    FIRST_LOG = "first_log"
    FOUR_WEEK_BUDGET = "4_week_budget"
    FIRST_SHARE = "first_share"
    FIVE_DAY_SALAD = "5_day_salad"
    TEN_SCANS = "10_scans"
    LATE_PLAN = "late_plan"
    TEN_LIKES = "10_likes"
    FIVE_WORKOUT_MEALS = "5_workout_meals"
    FOURTEEN_DAY_STREAK = "14_day_streak"
    FIVE_CUISINES = "5_cuisines"
    HUNDRED_LOGS = "100_logs"


class UserProgress(BaseModel):
    """
    User level and XP within the current level

    Invariant: 0 <= xp < level * 100. streak is derived from food logs on
    every load and is not a source of truth.
    """
    level: int = Field(1, ge=1)
    xp: int = Field(0, ge=0)
    streak: int = Field(0, ge=0)


class PetState(BaseModel):
    """Virtual pet with its own XP ledger, independent of the user's"""
    name: str = "Chompy"
    happiness: int = Field(70, ge=0, le=100)
    xp: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    mood: PetMood = PetMood.NEUTRAL
    last_interaction: datetime = Field(default_factory=now_utc)


class Achievement(BaseModel):
    """Catalog entry; unlocked_at is set only on a user's unlock record"""
    id: str
    title: str
    description: str
    icon: str
    condition: AchievementTrigger
    unlocked_at: Optional[datetime] = None

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None


class ChallengeTemplate(BaseModel):
    """Catalog entry a challenge is instantiated from"""
    title: str
    description: str
    icon: str
    target: int = Field(..., gt=0)
    unit: str
    xp_reward: int = Field(..., ge=0)


class Challenge(ChallengeTemplate):
    """
    Accepted challenge instance

    current is stored raw and may overshoot target by the final increment;
    display_current clamps it for rendering.
    """
    id: str
    start_date: datetime
    end_date: datetime
    current: int = Field(0, ge=0)
    completed: bool = False

    @property
    def display_current(self) -> int:
        return min(self.current, self.target)

    @property
    def progress_percent(self) -> float:
        return round(self.display_current / self.target * 100, 1)

    def days_remaining(self, now: Optional[datetime] = None) -> int:
        """Whole days left in the challenge window (0 once it has ended)"""
        now = now or now_utc()
        remaining = (self.end_date - now).days
        return max(remaining, 0)
