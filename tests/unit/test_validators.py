"""Tests for the input validation layer (chikitsa/validators.py)"""
import pytest
from pydantic import ValidationError

from chikitsa.validators import (
    BudgetInput,
    ChatMessageInput,
    FieldError,
    FoodLogInput,
    PersonalInfoInput,
    height_range,
    sanitize,
    sanitize_name,
    validate_budget,
    validate_personal_info,
    weight_range,
)


# ============================================================================
# Sanitization
# ============================================================================

class TestSanitize:
    """Free text and name sanitization"""

    def test_strips_tags(self):
        assert sanitize("<b>Dal</b> makhani") == "Dal makhani"

    def test_strips_script_payloads(self):
        assert sanitize('<img src=x onerror=alert(1)>') == ""
        assert sanitize("javascript:alert(1)") == "alert(1)"
        assert sanitize("click onclick= here") == "click  here"

    def test_strips_entities_and_braces(self):
        assert sanitize("&lt;tag&gt; {x} &amp; y&#39;") == "tag x & y"

    def test_plain_text_unchanged(self):
        assert sanitize("  Paneer tikka, no onion  ") == "Paneer tikka, no onion"

    def test_sanitize_name(self):
        assert sanitize_name("Priya O'Neil-Sharma") == "Priya O'Neil-Sharma"
        assert sanitize_name("José") == "José"
        assert sanitize_name("Ravi<script>") == "Raviscript"
        assert sanitize_name("Anu@#$!") == "Anu"


class TestChatMessageInput:
    def test_trims_and_sanitizes(self):
        assert ChatMessageInput(text="  <i>Is ghee healthy?</i> ").text == "Is ghee healthy?"

    def test_empty_after_sanitizing_rejected(self):
        with pytest.raises(ValidationError):
            ChatMessageInput(text="<br>")

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError):
            ChatMessageInput(text="a" * 4001)


# ============================================================================
# Food Log
# ============================================================================

def _log(**overrides):
    data = {
        "description": "Idli Sambar",
        "meal": "breakfast",
        "calories": 280,
        "protein": 8,
        "timestamp": "2025-03-10T08:00:00+05:30",
    }
    data.update(overrides)
    return FoodLogInput(**data)


class TestFoodLogInput:
    def test_valid_entry(self):
        entry = _log(meal=" Breakfast ", description="<b>Idli</b> Sambar")

        assert entry.meal == "breakfast"
        assert entry.description == "Idli Sambar"

    def test_zulu_timestamp_accepted(self):
        assert _log(timestamp="2025-03-10T02:30:00Z").timestamp == "2025-03-10T02:30:00Z"

    @pytest.mark.parametrize("overrides", [
        {"meal": "brunch"},
        {"calories": -1},
        {"calories": 10001},
        {"fats": 1001},
        {"description": "<p></p>"},
        {"description": "a" * 201},
        {"timestamp": "10/03/2025"},
        {"timestamp": ""},
    ])
    def test_invalid_entries_rejected(self, overrides):
        with pytest.raises(ValidationError):
            _log(**overrides)


# ============================================================================
# Personal Info
# ============================================================================

def _info(**overrides):
    data = {"name": "Priya", "age": 30, "weight": 60, "height": 165, "gender": "female"}
    data.update(overrides)
    return PersonalInfoInput(**data)


def _fields(errors):
    return [e.field for e in errors]


class TestPersonalInfo:
    """Age, height and weight bands"""

    def test_valid_adult(self):
        assert validate_personal_info(_info()) == []

    def test_short_name(self):
        assert _fields(validate_personal_info(_info(name="P"))) == ["name"]

    def test_name_with_special_characters(self):
        errors = validate_personal_info(_info(name="Priya<3"))

        assert _fields(errors) == ["name"]
        assert "invalid characters" in errors[0].message

    def test_age_out_of_range(self):
        errors = validate_personal_info(_info(age=3, height=100, weight=15))

        assert _fields(errors) == ["age"]

    def test_height_outside_absolute_range(self):
        errors = validate_personal_info(_info(height=280))

        assert errors == [FieldError("height", "Height must be between 60 and 270 cm")]

    def test_height_outside_age_band(self):
        errors = validate_personal_info(_info(age=7, height=170, weight=25))

        assert _fields(errors) == ["height"]
        assert "170cm is not valid for a 7-year-old (expected 95-140cm)" in errors[0].message

    def test_weight_outside_gender_band(self):
        errors = validate_personal_info(_info(weight=110))

        assert _fields(errors) == ["weight"]
        assert "110kg is not practical for a 30-year-old female (expected 40-100kg)" in errors[0].message

    def test_male_adult_weight_band(self):
        assert validate_personal_info(_info(gender="Male", weight=110)) == []

    def test_other_gender_uses_person_label(self):
        errors = validate_personal_info(_info(gender="other", weight=45))

        assert "45kg is not practical for a 30-year-old person" in errors[0].message

    def test_reports_every_problem(self):
        errors = validate_personal_info(_info(name="", weight=5, height=50))

        assert _fields(errors) == ["name", "height", "weight"]

    def test_ranges(self):
        assert height_range(10) == (110, 165)
        assert height_range(15) == (130, 195)
        assert weight_range(10, "male") == (20, 45)
        assert weight_range(14, "female") == (25, 70)
        assert weight_range(14, "male") == (30, 80)


# ============================================================================
# Budget
# ============================================================================

class TestBudget:
    def test_valid_budget(self):
        assert validate_budget(BudgetInput(weekly_budget=1500, monthly_budget=6000)) == []

    def test_monthly_optional(self):
        assert validate_budget(BudgetInput(weeklyBudget=1500)) == []

    def test_weekly_too_low(self):
        assert _fields(validate_budget(BudgetInput(weekly_budget=150))) == ["weekly_budget"]

    def test_weekly_too_high(self):
        errors = validate_budget(BudgetInput(weekly_budget=60000, monthly_budget=240000))

        assert _fields(errors) == ["weekly_budget"]
        assert "₹50,000" in errors[0].message

    def test_monthly_too_low(self):
        errors = validate_budget(BudgetInput(weekly_budget=450, monthly_budget=400))

        assert _fields(errors) == ["monthly_budget", "monthly_budget"]

    def test_monthly_below_weekly(self):
        errors = validate_budget(BudgetInput(weekly_budget=2000, monthly_budget=1000))

        assert _fields(errors) == ["monthly_budget"]
        assert "can't be less than weekly" in errors[0].message
