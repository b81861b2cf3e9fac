"""
Gamification Integration Hooks

Connects app actions (food logging, meal plans, photo scans, sharing) to the
gamification engine. The engine only records what it is told, so this module
is where conditions are detected and reported.

Usage:
    from chikitsa.gamification.integrations import handle_food_logged

    # After saving a food log
    result = await handle_food_logged(service)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, TypedDict

from chikitsa.gamification.xp_system import get_xp_for_activity
from chikitsa.models.gamification import AchievementTrigger

if TYPE_CHECKING:
    from chikitsa.services.gamification_service import GamificationService

logger = logging.getLogger(__name__)

STREAK_TRIGGERS = {
    7: AchievementTrigger.SEVEN_DAY_STREAK,
    14: AchievementTrigger.FOURTEEN_DAY_STREAK,
    30: AchievementTrigger.THIRTY_DAY_STREAK,
}

HUNDRED_LOGS = 100
PLANS_FOR_PRO = 10
SCANS_FOR_MASTER = 10
LATE_PLAN_HOUR = 22


class GamificationResult(TypedDict):
    """Result of gamification processing"""
    xp_awarded: int
    level_up: bool
    new_level: int
    current_streak: int
    achievements_unlocked: List[Dict[str, Any]]
    message: str


def _empty_result(service: GamificationService) -> GamificationResult:
    return {
        'xp_awarded': 0,
        'level_up': False,
        'new_level': service.progress.level,
        'current_streak': service.streak,
        'achievements_unlocked': [],
        'message': '',
    }


def triggers_for_food_logs(log_count: int, streak: int) -> List[AchievementTrigger]:
    """
    Achievement conditions satisfied by the user's food log history

    Args:
        log_count: Total number of food logs
        streak: Current logging streak in days

    Returns:
        Triggers to report, in catalog-independent order
    """
    triggers = []
    if log_count >= 1:
        triggers.append(AchievementTrigger.FIRST_LOG)
    if log_count >= HUNDRED_LOGS:
        triggers.append(AchievementTrigger.HUNDRED_LOGS)

    for days, trigger in sorted(STREAK_TRIGGERS.items()):
        if streak >= days:
            triggers.append(trigger)

    return triggers


async def _report(
    service: GamificationService,
    triggers: List[AchievementTrigger],
    result: GamificationResult
) -> None:
    for trigger in triggers:
        achievement = await service.check_and_unlock(trigger)
        if achievement is not None:
            result['achievements_unlocked'].append({
                'id': achievement.id,
                'title': achievement.title,
                'icon': achievement.icon,
                'unlocked_at': achievement.unlocked_at,
            })


def _build_message(result: GamificationResult) -> str:
    parts = []
    if result['xp_awarded']:
        parts.append(f"⭐ +{result['xp_awarded']} XP")
    if result['level_up']:
        parts.append(f"🎉 Level up! You're now level {result['new_level']}")
    if result['current_streak'] > 0:
        days = result['current_streak']
        parts.append(f"🔥 {days} day{'s' if days > 1 else ''} logging")
    for achievement in result['achievements_unlocked']:
        parts.append(f"{achievement['icon']} Achievement unlocked: {achievement['title']}")
    return "\n".join(parts)


async def _award_activity_xp(
    service: GamificationService,
    activity_type: str,
    result: GamificationResult
) -> None:
    xp_result = await service.add_xp(get_xp_for_activity(activity_type), reason=activity_type)
    result['xp_awarded'] += xp_result['xp_awarded']
    result['level_up'] = result['level_up'] or xp_result['leveled_up']
    result['new_level'] = xp_result['new_level']


async def handle_food_logged(service: GamificationService) -> GamificationResult:
    """
    Handle gamification after a food log was saved

    Reloads state (which recomputes the streak from the logs) and reports
    the log-count and streak achievements.
    """
    await service.refresh()
    result = _empty_result(service)

    triggers = triggers_for_food_logs(service.food_log_count, service.streak)
    await _report(service, triggers, result)

    result['message'] = _build_message(result)
    logger.info(
        f"[GAMIFICATION] food logged: user={service.user_id}, "
        f"logs={service.food_log_count}, streak={service.streak}, "
        f"achievements={len(result['achievements_unlocked'])}"
    )
    return result


async def handle_meal_plan_generated(
    service: GamificationService,
    plans_generated: int,
    generated_at: datetime
) -> GamificationResult:
    """
    Handle gamification after a meal plan was generated and saved

    Args:
        service: User's gamification session
        plans_generated: Total plans the user has generated, including this one
        generated_at: Local time the plan was generated
    """
    result = _empty_result(service)
    await _award_activity_xp(service, "meal_plan_generated", result)

    triggers = []
    if plans_generated >= PLANS_FOR_PRO:
        triggers.append(AchievementTrigger.TEN_PLANS)
    if generated_at.hour >= LATE_PLAN_HOUR:
        triggers.append(AchievementTrigger.LATE_PLAN)
    await _report(service, triggers, result)

    result['message'] = _build_message(result)
    return result


async def handle_plan_meal_logged(service: GamificationService) -> GamificationResult:
    """Handle gamification after a meal from the plan was logged"""
    result = _empty_result(service)
    await _award_activity_xp(service, "plan_meal_logged", result)
    result['message'] = _build_message(result)
    return result


async def handle_food_photo_scanned(
    service: GamificationService,
    scans_total: int
) -> GamificationResult:
    """Handle gamification after an AI food photo scan"""
    result = _empty_result(service)
    if scans_total >= SCANS_FOR_MASTER:
        await _report(service, [AchievementTrigger.TEN_SCANS], result)
    result['message'] = _build_message(result)
    return result


async def handle_plan_shared(service: GamificationService) -> GamificationResult:
    """Handle gamification after a meal plan was shared to the community"""
    result = _empty_result(service)
    await _report(service, [AchievementTrigger.FIRST_SHARE], result)
    result['message'] = _build_message(result)
    return result
