"""Unit tests for GamificationService"""

import asyncio

import pytest
from unittest.mock import patch

from chikitsa.db.gateway import EntityType
from chikitsa.exceptions import PersistenceError
from chikitsa.models.gamification import Challenge, PetMood, PetState, UserProgress
from chikitsa.services.gamification_service import GamificationService


# ============================================================================
# Loading
# ============================================================================

@pytest.mark.asyncio
async def test_refresh_defaults_for_new_user(service):
    await service.refresh()

    assert service.progress == UserProgress()
    assert service.pet.name == "Chompy"
    assert service.pet.happiness == 70
    assert service.achievements == []
    assert service.challenges == []
    assert service.streak == 0
    assert service.loaded is True


@pytest.mark.asyncio
async def test_refresh_computes_streak_from_food_logs(service, gateway, test_user_id):
    for ts in ("2025-03-10T08:00:00Z", "2025-03-09T13:00:00Z", "2025-03-08T19:00:00Z"):
        await gateway.append_food_log(test_user_id, {"timestamp": ts, "meal": "lunch"})

    await service.refresh()

    assert service.streak == 3
    assert service.food_log_count == 3


@pytest.mark.asyncio
async def test_refresh_syncs_leaderboard(service, gateway, test_user_id):
    await gateway.save_entity(test_user_id, EntityType.USER_PROGRESS, {"level": 3, "xp": 40})
    await gateway.append_food_log(test_user_id, {"timestamp": "2025-03-10T08:00:00Z"})

    await service.refresh()

    entry = await gateway.load_entity(test_user_id, EntityType.LEADERBOARD)
    assert entry["level"] == 3
    assert entry["xp"] == 40
    assert entry["streak"] == 1
    assert entry["updated_at"].startswith("2025-03-10")


@pytest.mark.asyncio
async def test_refresh_ignores_malformed_documents(service, gateway, test_user_id):
    await gateway.save_entity(test_user_id, EntityType.PET_STATE, {"happiness": "very"})

    await service.refresh()

    assert service.pet.happiness == 70


@pytest.mark.asyncio
async def test_state_round_trips_through_gateway(service, gateway, test_user_id, fixed_now, fixed_today):
    """A second session sees exactly what the first one stored"""
    await service.add_xp(130)
    await service.feed_pet()
    challenge = await service.accept_challenge(1)
    await service.update_challenge_progress(challenge.id, 2)
    await service.check_and_unlock("first_log")

    reloaded = GamificationService(
        test_user_id, gateway, clock=lambda: fixed_now, today=lambda: fixed_today
    )
    await reloaded.refresh()

    assert reloaded.progress.level == service.progress.level
    assert reloaded.progress.xp == service.progress.xp
    assert reloaded.pet == service.pet
    assert reloaded.challenges == service.challenges
    assert reloaded.unlocked_ids == {"first_log"}


@pytest.mark.asyncio
async def test_streak_is_not_stored_in_progress_document(service, gateway, test_user_id):
    await gateway.append_food_log(test_user_id, {"timestamp": "2025-03-10T08:00:00Z"})
    await service.add_xp(10)

    stored = await gateway.load_entity(test_user_id, EntityType.USER_PROGRESS)
    assert stored == {"level": 1, "xp": 10}


# ============================================================================
# XP
# ============================================================================

@pytest.mark.asyncio
async def test_add_xp_levels_up_and_persists(service, gateway, test_user_id):
    await service.add_xp(90)
    result = await service.add_xp(30, "meal plan")

    assert result["xp_awarded"] == 30
    assert result["leveled_up"] is True
    assert result["old_level"] == 1
    assert result["new_level"] == 2
    assert result["xp"] == 20
    assert result["xp_to_next_level"] == 180

    stored = await gateway.load_entity(test_user_id, EntityType.USER_PROGRESS)
    assert stored == {"level": 2, "xp": 20}


@pytest.mark.asyncio
async def test_add_xp_negative_awards_nothing(service):
    result = await service.add_xp(-50)

    assert result["xp_awarded"] == 0
    assert service.progress.xp == 0


@pytest.mark.asyncio
async def test_concurrent_xp_awards_are_serialized(service):
    await asyncio.gather(*(service.add_xp(10) for _ in range(25)))

    # 250 XP from level 1: 100 to reach level 2, 150 into level 2
    assert service.progress.level == 2
    assert service.progress.xp == 150


# ============================================================================
# Achievements
# ============================================================================

@pytest.mark.asyncio
async def test_unlock_rewards_pet_once(service, gateway, test_user_id):
    first = await service.check_and_unlock("7_day_streak")
    second = await service.check_and_unlock("7_day_streak")

    assert first is not None
    assert first.id == "iron_will"
    assert second is None
    assert service.pet.xp == 25
    assert service.pet.happiness == 80
    assert service.pet.mood == PetMood.EXCITED

    stored = await gateway.list_entities(test_user_id, EntityType.ACHIEVEMENTS)
    assert [doc["id"] for doc in stored] == ["iron_will"]


@pytest.mark.asyncio
async def test_unlock_unknown_condition_changes_nothing(service, gateway):
    saves_before = gateway.save_count

    result = await service.check_and_unlock("not_a_condition")

    assert result is None
    assert service.pet.xp == 0
    assert service.unlocked_ids == set()
    # Only the leaderboard sync from the initial load
    assert gateway.save_count == saves_before + 1


@pytest.mark.asyncio
async def test_unlock_survives_reload(service, gateway, test_user_id, fixed_now, fixed_today):
    await service.check_and_unlock("first_log")

    reloaded = GamificationService(
        test_user_id, gateway, clock=lambda: fixed_now, today=lambda: fixed_today
    )
    result = await reloaded.check_and_unlock("first_log")

    assert result is None
    assert reloaded.pet.xp == 25


@pytest.mark.asyncio
async def test_achievement_summary(service):
    await service.check_and_unlock("first_log")

    summary = service.achievement_summary()

    assert summary["total_unlocked"] == 1
    assert summary["total_achievements"] == 16


# ============================================================================
# Challenges
# ============================================================================

@pytest.mark.asyncio
async def test_accept_challenge(service, gateway, test_user_id, fixed_now):
    challenge = await service.accept_challenge(4)

    assert challenge.title == "Drink 8 glasses of water"
    assert challenge.start_date == fixed_now
    assert service.active_challenges == [challenge]

    stored = await gateway.load_entity(test_user_id, EntityType.CHALLENGES, key=challenge.id)
    assert Challenge.model_validate(stored) == challenge


@pytest.mark.asyncio
async def test_accept_duplicate_active_challenge_is_rejected(service):
    first = await service.accept_challenge(0)
    second = await service.accept_challenge(0)

    assert first is not None
    assert second is None
    assert len(service.challenges) == 1


@pytest.mark.asyncio
async def test_accept_same_title_after_completion(service):
    first = await service.accept_challenge(3)
    await service.update_challenge_progress(first.id, 1)

    again = await service.accept_challenge(3)

    assert again is not None
    assert again.id != first.id
    assert len(service.completed_challenges) == 1
    assert len(service.active_challenges) == 1


@pytest.mark.asyncio
async def test_accept_unknown_template(service):
    assert await service.accept_challenge(99) is None
    assert service.challenges == []


@pytest.mark.asyncio
async def test_challenge_completion_rewards_user_and_pet_once(service):
    challenge = await service.accept_challenge(1)  # 5 servings, 30 XP

    await service.update_challenge_progress(challenge.id, 4)
    assert service.progress.xp == 0

    completed = await service.update_challenge_progress(challenge.id, 3)

    assert completed.completed is True
    assert completed.current == 7
    assert completed.display_current == 5
    assert service.progress.xp == 30
    assert service.pet.xp == 30
    assert service.pet.happiness == 85
    assert service.pet.mood == PetMood.EXCITED

    after = await service.update_challenge_progress(challenge.id, 1)

    assert after is None
    assert service.challenges[0].current == 7
    assert service.progress.xp == 30
    assert service.pet.xp == 30


@pytest.mark.asyncio
async def test_update_unknown_challenge(service):
    assert await service.update_challenge_progress("ch_missing", 1) is None


# ============================================================================
# Pet
# ============================================================================

@pytest.mark.asyncio
async def test_feed_pet_persists(service, gateway, test_user_id, fixed_now):
    pet = await service.feed_pet()

    assert pet.happiness == 75
    assert pet.mood == PetMood.HAPPY

    stored = PetState.model_validate(await gateway.load_entity(test_user_id, EntityType.PET_STATE))
    assert stored.happiness == 75
    assert stored.last_interaction == fixed_now


# ============================================================================
# Persistence Failures
# ============================================================================

@pytest.mark.asyncio
async def test_failed_write_keeps_in_memory_state_and_reports(service, gateway, persist_errors):
    await service.refresh()
    gateway.fail_writes_for(EntityType.PET_STATE)

    pet = await service.feed_pet()

    assert pet.happiness == 75
    assert service.pet.happiness == 75
    assert len(persist_errors) == 1
    assert isinstance(persist_errors[0], PersistenceError)
    assert service.persist_failures == persist_errors


@pytest.mark.asyncio
async def test_failed_write_does_not_block_other_writes(service, gateway, test_user_id, persist_errors):
    gateway.fail_writes_for(EntityType.PET_STATE)

    unlocked = await service.check_and_unlock("first_log")

    assert unlocked is not None
    assert service.pet.xp == 25
    stored = await gateway.list_entities(test_user_id, EntityType.ACHIEVEMENTS)
    assert len(stored) == 1
    assert len(persist_errors) == 1


@pytest.mark.asyncio
async def test_failed_read_keeps_previous_values(service, gateway, test_user_id, persist_errors):
    await gateway.append_food_log(test_user_id, {"timestamp": "2025-03-10T08:00:00Z"})
    await service.add_xp(40)
    assert service.streak == 1

    async def failing_list(user_id, entity_type):
        raise PersistenceError("read failed", entity_type=entity_type.value)

    gateway.list_entities = failing_list
    await service.refresh()

    assert service.progress.xp == 40
    assert service.streak == 1
    assert len(persist_errors) == 3


@pytest.mark.asyncio
async def test_failure_metric_labelled_from_error_context(service, gateway, persist_errors):
    save_entity = gateway.save_entity

    async def failing_save(user_id, entity_type, document, key=None):
        if entity_type is EntityType.PET_STATE:
            raise PersistenceError("query failed", context={"entity_type": entity_type.value})
        await save_entity(user_id, entity_type, document, key=key)

    gateway.save_entity = failing_save

    with patch("chikitsa.services.gamification_service.record_persist_failure") as mock_record:
        await service.feed_pet()

    mock_record.assert_called_once_with("pet_state")
    assert len(persist_errors) == 1


@pytest.mark.asyncio
async def test_unexpected_gateway_errors_propagate(service, gateway):
    async def broken_load(user_id, entity_type, key=None):
        raise RuntimeError("bug")

    gateway.load_entity = broken_load

    with pytest.raises(RuntimeError):
        await service.refresh()


# ============================================================================
# Summaries
# ============================================================================

@pytest.mark.asyncio
async def test_level_summary_includes_streak(service, gateway, test_user_id):
    await gateway.append_food_log(test_user_id, {"timestamp": "2025-03-10T08:00:00Z"})
    await service.refresh()

    summary = service.level_summary()

    assert summary["current_level"] == 1
    assert summary["streak"] == 1
    assert service.pet_summary()["name"] == "Chompy"
