"""
Parsing of model output into typed models

Models are asked to return bare JSON but frequently wrap it in markdown
fences, add a sentence around it, or leave trailing commas. The helpers
here strip that noise before validating with the pydantic models.
"""

import json
import logging
import re
from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as ModelValidationError

from chikitsa.exceptions import ResponseParseError
from chikitsa.models.food import DailyMealPlan, FoodieProfile, GroceryItem, Meal

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def clean_json_text(text: str) -> str:
    """
    Reduce raw model output to the JSON payload it contains

    Removes ```json fences, slices to the outermost object or array and
    drops trailing commas before closing brackets.
    """
    cleaned = _FENCE_RE.sub("", text).strip()

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if starts:
        start = min(starts)
        closer = "}" if cleaned[start] == "{" else "]"
        end = cleaned.rfind(closer)
        if end > start:
            cleaned = cleaned[start:end + 1]

    return _TRAILING_COMMA_RE.sub(r"\1", cleaned)


def load_json(text: str, expected: str) -> Any:
    """Decode cleaned model output, raising ResponseParseError on bad JSON"""
    try:
        return json.loads(clean_json_text(text))
    except json.JSONDecodeError as e:
        logger.warning(f"Model returned invalid JSON for {expected}: {e}")
        raise ResponseParseError(
            f"Invalid JSON in {expected} response: {e}",
            raw_text=text,
            expected=expected,
            cause=e
        )


def _validate(model: Type[M], data: Any, text: str, expected: str) -> M:
    try:
        return model.model_validate(data)
    except ModelValidationError as e:
        raise ResponseParseError(
            f"{expected} response does not match schema: {e.error_count()} errors",
            raw_text=text,
            expected=expected,
            cause=e
        )


def parse_meal_plan(text: str) -> DailyMealPlan:
    """Parse a full-day meal plan"""
    plan = _validate(DailyMealPlan, load_json(text, "meal_plan"), text, "meal_plan")
    if not plan.total_calories:
        plan.recompute_total_calories()
    return plan


def parse_meal(text: str) -> Meal:
    """Parse a single regenerated meal"""
    return _validate(Meal, load_json(text, "meal"), text, "meal")


def parse_grocery_list(text: str) -> List[GroceryItem]:
    """Parse a grocery list array"""
    data = load_json(text, "grocery_list")
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        data = data["items"]

    try:
        return TypeAdapter(List[GroceryItem]).validate_python(data)
    except ModelValidationError as e:
        raise ResponseParseError(
            f"grocery_list response does not match schema: {e.error_count()} errors",
            raw_text=text,
            expected="grocery_list",
            cause=e
        )


def parse_foodie_profile(text: str) -> FoodieProfile:
    """Parse a foodie personality profile"""
    return _validate(FoodieProfile, load_json(text, "foodie_profile"), text, "foodie_profile")
