"""Unit tests for FoodService (food logging)"""
from datetime import date

import pytest

from chikitsa.db.gateway import EntityType
from chikitsa.exceptions import PersistenceError, ValidationError
from chikitsa.models.food import FoodLogEntry
from chikitsa.services.food_service import QUICK_FOODS, FoodService


@pytest.fixture
def food_service(test_user_id, gateway, service, fixed_now):
    return FoodService(test_user_id, gateway, gamification=service, clock=lambda: fixed_now)


# ============================================================================
# Logging
# ============================================================================

@pytest.mark.asyncio
async def test_log_food_stores_entry_and_rewards(food_service, gateway, service, test_user_id):
    entry = FoodLogEntry(
        timestamp="",
        meal="Lunch",
        description="<b>Dal</b> Chawal",
        calories=450,
        protein=14,
    )

    stored = await food_service.log_food(entry)

    assert stored.id.startswith("log_")
    assert stored.meal == "lunch"
    assert stored.description == "Dal Chawal"
    assert stored.timestamp == "2025-03-10T09:30:00+00:00"

    documents = await gateway.list_entities(test_user_id, EntityType.FOOD_LOGS)
    assert documents == [stored.model_dump(mode="json")]

    assert "first_log" in service.unlocked_ids
    assert service.streak == 1
    assert food_service.last_reward["achievements_unlocked"][0]["title"] == "First Steps"


@pytest.mark.asyncio
async def test_log_food_keeps_given_timestamp_and_id(food_service, gateway, test_user_id):
    entry = FoodLogEntry(
        id="log_custom",
        timestamp="2025-03-09T20:15:00+05:30",
        meal="dinner",
        description="Khichdi",
        calories=380,
    )

    stored = await food_service.log_food(entry)

    assert stored.id == "log_custom"
    assert stored.timestamp == "2025-03-09T20:15:00+05:30"
    assert await gateway.load_entity(test_user_id, EntityType.FOOD_LOGS, key="log_custom") is not None


@pytest.mark.asyncio
async def test_consecutive_days_build_streak(food_service, service):
    for day in ("2025-03-08", "2025-03-09", "2025-03-10"):
        await food_service.log_food(FoodLogEntry(
            timestamp=f"{day}T08:00:00+05:30",
            meal="breakfast",
            description="Poha",
            calories=250,
        ))

    assert service.streak == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("changes,field", [
    ({"calories": -5}, "calories"),
    ({"meal": "brunch"}, "meal"),
    ({"description": "  <i></i> "}, "description"),
    ({"timestamp": "yesterday"}, "timestamp"),
])
async def test_log_food_rejects_invalid_entry(food_service, gateway, service, changes, field):
    entry = FoodLogEntry(**{
        "timestamp": "2025-03-10T08:00:00+05:30",
        "meal": "breakfast",
        "description": "Idli",
        "calories": 200,
        **changes,
    })

    with pytest.raises(ValidationError) as exc_info:
        await food_service.log_food(entry)

    assert exc_info.value.field == field
    assert gateway.save_count == 0
    assert food_service.last_reward is None


@pytest.mark.asyncio
async def test_log_food_write_failure_raises(food_service, gateway, service):
    gateway.fail_writes_for(EntityType.FOOD_LOGS)

    with pytest.raises(PersistenceError):
        await food_service.log_food(FoodLogEntry(timestamp="", meal="snack", description="Chai"))

    assert service.unlocked_ids == set()


@pytest.mark.asyncio
async def test_log_food_without_gamification(test_user_id, gateway, fixed_now):
    food_service = FoodService(test_user_id, gateway, clock=lambda: fixed_now)

    await food_service.log_food(FoodLogEntry(timestamp="", meal="snack", description="Fruit Bowl"))

    assert food_service.last_reward is None
    assert len(await food_service.get_food_logs()) == 1


@pytest.mark.asyncio
async def test_quick_add(food_service):
    stored = await food_service.quick_add(2)

    assert stored.description == QUICK_FOODS[2]["description"] == "Poha"
    assert stored.meal == "breakfast"
    assert stored.calories == 250


@pytest.mark.asyncio
async def test_quick_add_unknown_index(food_service, gateway):
    with pytest.raises(ValidationError):
        await food_service.quick_add(len(QUICK_FOODS))

    assert gateway.save_count == 0


# ============================================================================
# Retrieval
# ============================================================================

@pytest.mark.asyncio
async def test_get_food_logs_newest_first(food_service, gateway, test_user_id):
    await gateway.append_food_log(test_user_id, {"timestamp": "2025-03-08T09:00:00+05:30", "description": "Upma"})
    await gateway.append_food_log(test_user_id, {"timestamp": "2025-03-10T09:00:00+05:30", "description": "Dosa"})
    await gateway.append_food_log(test_user_id, {"timestamp": "2025-03-09T09:00:00+05:30", "description": "Idli"})
    await gateway.append_food_log(test_user_id, {"description": "no timestamp"})

    logs = await food_service.get_food_logs()

    assert [log.description for log in logs] == ["Dosa", "Idli", "Upma"]
    assert [log.description for log in await food_service.get_food_logs(limit=1)] == ["Dosa"]


@pytest.mark.asyncio
async def test_daily_nutrition_summary(food_service, gateway, test_user_id):
    await gateway.append_food_log(test_user_id, {
        "timestamp": "2025-03-10T08:00:00+05:30", "calories": 250, "protein": 6, "carbs": 40, "fats": 8,
    })
    await gateway.append_food_log(test_user_id, {
        "timestamp": "2025-03-10T13:00:00+05:30", "calories": 400, "protein": 10, "carbs": 60, "fats": 12,
    })
    # Belongs to the day written in the timestamp
    await gateway.append_food_log(test_user_id, {
        "timestamp": "2025-03-09T23:30:00+05:30", "calories": 150, "protein": 2, "carbs": 35, "fats": 1,
    })

    summary = await food_service.get_daily_nutrition_summary(date(2025, 3, 10))

    assert summary["date"] == "2025-03-10"
    assert summary["meal_count"] == 2
    assert summary["total_calories"] == 650
    assert summary["total_protein"] == 16
    assert summary["total_carbs"] == 100
    assert summary["total_fats"] == 20


@pytest.mark.asyncio
async def test_daily_nutrition_summary_empty_day(food_service):
    summary = await food_service.get_daily_nutrition_summary(date(2025, 1, 1))

    assert summary["meal_count"] == 0
    assert summary["total_calories"] == 0
    assert summary["entries"] == []
