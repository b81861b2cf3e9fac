"""
Challenge System

Week-long, quantified goals accepted from a fixed template library.

Lifecycle:
    template (proposed) -> accepted (active, current < target)
                        -> completed (current >= target, terminal)

Rules:
- A user cannot hold two uncompleted challenges with the same title
- Every challenge runs for 7 days from acceptance
- Progress on a completed challenge is ignored
- Completion is checked with >=, so the final increment may overshoot;
  the raw value is stored and display_current clamps it
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from uuid import uuid4

from chikitsa.models.gamification import Challenge, ChallengeTemplate
from chikitsa.utils.datetime_helpers import add_days, now_utc

logger = logging.getLogger(__name__)

CHALLENGE_DURATION_DAYS = 7


# ============================================
# Challenge Template Library
# ============================================

CHALLENGE_TEMPLATES: List[ChallengeTemplate] = [
    ChallengeTemplate(
        title="No artificial sugar for 2 days",
        description="Avoid added sugars for 48 hours",
        icon="🚫🍬",
        target=2,
        unit="days",
        xp_reward=50,
    ),
    ChallengeTemplate(
        title="Eat 5 servings of fruit",
        description="Log 5 fruit servings this week",
        icon="🍎",
        target=5,
        unit="servings",
        xp_reward=30,
    ),
    ChallengeTemplate(
        title="Log every meal for 3 days",
        description="Don't miss a single meal log",
        icon="📝",
        target=9,
        unit="meals",
        xp_reward=40,
    ),
    ChallengeTemplate(
        title="Try a new cuisine",
        description="Cook something from a new cuisine",
        icon="🌍",
        target=1,
        unit="meal",
        xp_reward=25,
    ),
    ChallengeTemplate(
        title="Drink 8 glasses of water",
        description="Hit 8 glasses today",
        icon="💧",
        target=8,
        unit="glasses",
        xp_reward=20,
    ),
    ChallengeTemplate(
        title="Cook at home for 5 days",
        description="Home-cooked meals for 5 days",
        icon="👨‍🍳",
        target=5,
        unit="days",
        xp_reward=60,
    ),
]


# ============================================
# Challenge Management Functions
# ============================================

def get_all_templates() -> List[ChallengeTemplate]:
    """
    Get all challenge templates

    Returns:
        List of template definitions
    """
    return CHALLENGE_TEMPLATES.copy()


def get_template(index: int) -> Optional[ChallengeTemplate]:
    """
    Get a template by its position in the library

    Args:
        index: Template index

    Returns:
        Template if the index is valid, None otherwise
    """
    if 0 <= index < len(CHALLENGE_TEMPLATES):
        return CHALLENGE_TEMPLATES[index]
    return None


def has_active_challenge(challenges: Iterable[Challenge], title: str) -> bool:
    """Whether an uncompleted challenge with this title exists"""
    return any(c.title == title and not c.completed for c in challenges)


def new_challenge_id(now: datetime) -> str:
    """Generation-time id: millisecond timestamp plus a short random suffix"""
    return f"ch_{int(now.timestamp() * 1000)}_{uuid4().hex[:6]}"


def create_challenge(template: ChallengeTemplate, now: Optional[datetime] = None) -> Challenge:
    """
    Instantiate an accepted challenge from a template

    Template fields are copied by value; the window starts now and ends
    seven days later.
    """
    now = now or now_utc()
    return Challenge(
        **template.model_dump(),
        id=new_challenge_id(now),
        start_date=now,
        end_date=add_days(now, CHALLENGE_DURATION_DAYS),
        current=0,
        completed=False,
    )


def apply_progress(challenge: Challenge, increment: int) -> Tuple[Challenge, bool]:
    """
    Add progress to a challenge

    Args:
        challenge: Challenge to update
        increment: Progress to add; negative values are clamped to 0

    Returns:
        (updated challenge, completed_now). completed_now is True only for the
        call that moves the challenge into the completed state.
    """
    if challenge.completed:
        return challenge, False

    if increment < 0:
        logger.warning(f"Ignoring negative progress {increment} for challenge {challenge.id}")
        increment = 0

    current = challenge.current + increment
    completed_now = current >= challenge.target

    updated = challenge.model_copy(update={
        "current": current,
        "completed": completed_now,
    })
    return updated, completed_now


def split_challenges(challenges: Iterable[Challenge]) -> Tuple[List[Challenge], List[Challenge]]:
    """Split into (active, completed), each in acceptance order"""
    ordered = sorted(challenges, key=lambda c: c.start_date)
    active = [c for c in ordered if not c.completed]
    completed = [c for c in ordered if c.completed]
    return active, completed
