"""Generative-text client, prompt builders and response parsing"""

from chikitsa.ai.gemini import GeminiClient, TextGenerator
from chikitsa.ai.parsing import (
    clean_json_text,
    parse_foodie_profile,
    parse_grocery_list,
    parse_meal,
    parse_meal_plan,
)

__all__ = [
    "GeminiClient",
    "TextGenerator",
    "clean_json_text",
    "parse_foodie_profile",
    "parse_grocery_list",
    "parse_meal",
    "parse_meal_plan",
]
