"""
Pydantic Input Validation Layer

Validates user inputs before they are stored or sent to the model.

Validation Categories:
1. Text Sanitization - Strip markup and script injection from free text
2. Chat Input - Max 4000 chars, whitespace trimmed
3. Food Log - Known meal, non-negative macros, ISO timestamp
4. Personal Info - Age, height and weight within age/gender-appropriate ranges
5. Budget - Weekly and monthly food budget limits in INR

The onboarding validators return every problem at once as a list of
FieldError so a form can highlight all invalid fields together.
"""

import logging
import re
from datetime import datetime
from typing import List, NamedTuple, Tuple

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# ============================================================================
# TEXT SANITIZATION
# ============================================================================

_TAG_RE = re.compile(r"<[^>]*>")
_NUMERIC_ENTITY_RE = re.compile(r"&#\d+;")
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)
_UNSAFE_CHARS_RE = re.compile(r"[<>{}]")
_NAME_DISALLOWED_RE = re.compile(r"[^a-zA-Z0-9\s.\-'À-ÿ]")


def sanitize(text: str) -> str:
    """
    Strip HTML tags, encoded entities, script protocols and event handlers

    Example:
        >>> sanitize('<b>Dal</b> <script>alert(1)</script>')
        'Dal alert(1)'
    """
    cleaned = _TAG_RE.sub("", text)
    cleaned = cleaned.replace("&lt;", "").replace("&gt;", "")
    cleaned = cleaned.replace("&amp;", "&").replace("&quot;", "")
    cleaned = _NUMERIC_ENTITY_RE.sub("", cleaned)
    cleaned = _JS_PROTOCOL_RE.sub("", cleaned)
    cleaned = _EVENT_HANDLER_RE.sub("", cleaned)
    cleaned = _UNSAFE_CHARS_RE.sub("", cleaned)
    return cleaned.strip()


def sanitize_name(name: str) -> str:
    """Keep only letters, digits, spaces, dots, hyphens and apostrophes"""
    return _NAME_DISALLOWED_RE.sub("", name).strip()


# ============================================================================
# CHAT INPUT VALIDATION
# ============================================================================

class ChatMessageInput(BaseModel):
    """
    Validate a chat message before it is sent to the model

    Constraints:
    - Min length: 1 character
    - Max length: 4000 characters
    - Whitespace is trimmed, markup is stripped
    """
    text: str = Field(..., min_length=1, max_length=4000, description="Message text")

    @field_validator('text')
    @classmethod
    def clean_text(cls, v: str) -> str:
        cleaned = sanitize(v)
        if not cleaned:
            raise ValueError("Message cannot be empty")
        return cleaned


# ============================================================================
# FOOD LOG VALIDATION
# ============================================================================

LOG_MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")
MAX_CALORIES_PER_ENTRY = 10000
MAX_MACRO_GRAMS = 1000


class FoodLogInput(BaseModel):
    """
    Validate a food log entry before it is stored

    Constraints:
    - Description: 1-200 characters after markup is stripped
    - Meal: breakfast, lunch, dinner or snack
    - Calories 0-10000, macros 0-1000 g
    - Timestamp: ISO-8601 with a date part
    """
    description: str = Field(..., min_length=1, max_length=200)
    meal: str
    calories: float = Field(0, ge=0, le=MAX_CALORIES_PER_ENTRY)
    protein: float = Field(0, ge=0, le=MAX_MACRO_GRAMS)
    carbs: float = Field(0, ge=0, le=MAX_MACRO_GRAMS)
    fats: float = Field(0, ge=0, le=MAX_MACRO_GRAMS)
    timestamp: str

    @field_validator('description')
    @classmethod
    def clean_description(cls, v: str) -> str:
        cleaned = sanitize(v)
        if not cleaned:
            raise ValueError("Description cannot be empty")
        return cleaned

    @field_validator('meal')
    @classmethod
    def known_meal(cls, v: str) -> str:
        meal = v.strip().lower()
        if meal not in LOG_MEAL_TYPES:
            raise ValueError(f"Meal must be one of: {', '.join(LOG_MEAL_TYPES)}")
        return meal

    @field_validator('timestamp')
    @classmethod
    def iso_timestamp(cls, v: str) -> str:
        # fromisoformat rejects a trailing Z before 3.11
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError("Timestamp must be an ISO-8601 date-time")
        return v


# ============================================================================
# ONBOARDING VALIDATION
# ============================================================================

class FieldError(NamedTuple):
    field: str
    message: str


class PersonalInfoInput(BaseModel):
    """Personal info entered on the first onboarding step"""
    name: str = ""
    age: int
    weight: float  # kg
    height: float  # cm
    gender: str = "other"

    @field_validator('gender')
    @classmethod
    def normalize_gender(cls, v: str) -> str:
        return v.strip().lower()


class BudgetInput(BaseModel):
    """Food budget in INR; a monthly budget of 0 means not set"""
    weekly_budget: float = Field(alias="weeklyBudget")
    monthly_budget: float = Field(0, alias="monthlyBudget")

    model_config = {"populate_by_name": True}


MIN_AGE, MAX_AGE = 5, 120
MIN_HEIGHT_CM, MAX_HEIGHT_CM = 60, 270
MIN_WEIGHT_KG, MAX_WEIGHT_KG = 10, 300

MIN_WEEKLY_BUDGET = 200
MAX_WEEKLY_BUDGET = 50000
MIN_MONTHLY_BUDGET = 500


def height_range(age: int) -> Tuple[int, int]:
    """Plausible height range in cm for an age"""
    if 5 <= age <= 8:
        return 95, 140
    if 9 <= age <= 12:
        return 110, 165
    if 13 <= age <= 17:
        return 130, 195
    return 140, 220


def weight_range(age: int, gender: str) -> Tuple[int, int]:
    """
    Plausible weight range in kg for an age and gender

    Ranges:
    - Child 5-8: 14-30
    - Child 9-11: 20-45
    - Teen 12-17: 30-80 (female 25-70)
    - Adult: 50-120 (female 40-100)
    """
    if 5 <= age <= 8:
        return 14, 30
    if 9 <= age <= 11:
        return 20, 45
    if 12 <= age <= 17:
        return (25, 70) if gender == "female" else (30, 80)
    return (40, 100) if gender == "female" else (50, 120)


def _format_number(value: float) -> str:
    return f"{value:g}"


def validate_personal_info(info: PersonalInfoInput) -> List[FieldError]:
    """
    Validate onboarding personal info

    Returns:
        All field errors found, empty if the input is valid
    """
    errors: List[FieldError] = []

    if len(info.name) < 2:
        errors.append(FieldError("name", "Name must be at least 2 characters"))
    if info.name != sanitize_name(info.name):
        errors.append(FieldError(
            "name",
            "Name contains invalid characters. Only letters, numbers, spaces, "
            "dots and hyphens are allowed. Kindly re-enter."
        ))

    if info.age < MIN_AGE or info.age > MAX_AGE:
        errors.append(FieldError("age", f"Age must be between {MIN_AGE} and {MAX_AGE} years"))

    height = _format_number(info.height)
    if info.height < MIN_HEIGHT_CM or info.height > MAX_HEIGHT_CM:
        errors.append(FieldError(
            "height", f"Height must be between {MIN_HEIGHT_CM} and {MAX_HEIGHT_CM} cm"
        ))
    elif info.age >= MIN_AGE:
        low, high = height_range(info.age)
        if not low <= info.height <= high:
            errors.append(FieldError(
                "height",
                f"{height}cm is not valid for a {info.age}-year-old "
                f"(expected {low}-{high}cm). Kindly re-enter with appropriate values."
            ))

    weight = _format_number(info.weight)
    if info.weight < MIN_WEIGHT_KG or info.weight > MAX_WEIGHT_KG:
        errors.append(FieldError(
            "weight", f"Weight must be between {MIN_WEIGHT_KG} and {MAX_WEIGHT_KG} kg"
        ))
    elif info.age >= MIN_AGE:
        low, high = weight_range(info.age, info.gender)
        label = info.gender if info.gender in ("female", "male") else "person"
        if not low <= info.weight <= high:
            errors.append(FieldError(
                "weight",
                f"{weight}kg is not practical for a {info.age}-year-old {label} "
                f"(expected {low}-{high}kg). Kindly re-enter with appropriate values."
            ))

    if errors:
        logger.debug(f"Personal info rejected: {[e.field for e in errors]}")
    return errors


def validate_budget(budget: BudgetInput) -> List[FieldError]:
    """
    Validate weekly/monthly food budget

    Returns:
        All field errors found, empty if the input is valid
    """
    errors: List[FieldError] = []
    weekly, monthly = budget.weekly_budget, budget.monthly_budget

    if weekly < MIN_WEEKLY_BUDGET:
        errors.append(FieldError(
            "weekly_budget",
            f"Weekly food budget should be at least ₹{MIN_WEEKLY_BUDGET} to plan realistic meals. "
            "Kindly re-enter with appropriate values."
        ))
    if weekly > MAX_WEEKLY_BUDGET:
        errors.append(FieldError(
            "weekly_budget", f"Weekly budget seems unrealistically high (max ₹{MAX_WEEKLY_BUDGET:,})"
        ))
    if 0 < monthly < MIN_MONTHLY_BUDGET:
        errors.append(FieldError(
            "monthly_budget", f"Monthly food budget should be at least ₹{MIN_MONTHLY_BUDGET}"
        ))
    if monthly > 0 and weekly > 0 and monthly < weekly:
        errors.append(FieldError(
            "monthly_budget",
            "Monthly budget can't be less than weekly budget. Kindly re-enter with appropriate values."
        ))

    return errors
