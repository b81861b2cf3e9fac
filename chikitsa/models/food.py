"""Food-related Pydantic models"""
from typing import Literal, Optional
from pydantic import BaseModel, Field


class FoodLogEntry(BaseModel):
    """
    Food log entry as stored by the logging feature

    timestamp is kept as the ISO-8601 string it was written with so its
    embedded offset determines the calendar day.
    """
    id: Optional[str] = None
    timestamp: str
    meal: str = ""
    description: str = ""
    calories: float = 0
    protein: float = 0  # grams
    carbs: float = 0  # grams
    fats: float = 0  # grams
    image_url: Optional[str] = None


class Ingredient(BaseModel):
    """Recipe ingredient with a free-form quantity ("100g", "1 medium")"""
    item: str
    quantity: str = ""


class Meal(BaseModel):
    """Single generated meal with recipe and macros"""
    name: str
    ingredients: list[Ingredient] = Field(default_factory=list)
    recipe: list[str] = Field(default_factory=list)
    prep_time: str = Field("", alias="prepTime")
    cook_time: str = Field("", alias="cookTime")
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fats: float = 0
    image_query: str = Field("", alias="imageQuery")
    explanation: Optional[str] = None

    model_config = {"populate_by_name": True}


MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")


class DailyMealPlan(BaseModel):
    """One day of generated meals; date is YYYY-MM-DD, set by the caller when the model omits it"""
    date: str = ""
    breakfast: Meal
    lunch: Meal
    dinner: Meal
    snack: Meal
    total_calories: float = Field(0, alias="totalCalories")

    model_config = {"populate_by_name": True}

    def recompute_total_calories(self) -> float:
        self.total_calories = sum(getattr(self, meal_type).calories for meal_type in MEAL_TYPES)
        return self.total_calories


class GroceryItem(BaseModel):
    """Grocery list line with an estimated price in INR"""
    name: str
    quantity: str = ""
    estimated_price: float = Field(0, alias="estimatedPrice", ge=0)
    category: str = "Other"
    purchased: bool = False

    model_config = {"populate_by_name": True}


class FoodieProfile(BaseModel):
    """Generated "foodie personality" from the preference quiz"""
    type: str
    emoji: str = ""
    description: str = ""
    traits: list[str] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """One stored turn of the nutrition chat"""
    id: Optional[str] = None
    role: Literal["user", "assistant"]
    content: str
    timestamp: str  # ISO-8601
