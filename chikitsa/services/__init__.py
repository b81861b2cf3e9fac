"""
Service Layer Package

Business logic services that sit between the app's presentation layer and
the persistence/AI gateways.

- GamificationService: per-user XP, levels, streak, achievements, challenges, pet
- FoodService: food logging, quick add and daily nutrition totals
- MealService: meal plans, grocery lists, chat and foodie personality via the
  generative-text gateway
"""

from chikitsa.services.gamification_service import GamificationService
from chikitsa.services.food_service import FoodService
from chikitsa.services.meal_service import MealService

__all__ = [
    "FoodService",
    "GamificationService",
    "MealService",
]
