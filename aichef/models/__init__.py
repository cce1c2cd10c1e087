"""Pydantic models."""

from aichef.models.recipe import (
    NUTRITION_KEYS,
    UNKNOWN_NUTRIENT_VALUE,
    NutritionInfo,
    Recipe,
)

__all__ = [
    "NUTRITION_KEYS",
    "UNKNOWN_NUTRIENT_VALUE",
    "NutritionInfo",
    "Recipe",
]
