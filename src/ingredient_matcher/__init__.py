"""Ingredient Matcher - semantic matching of recipe ingredients to catalog products."""

from ingredient_matcher.sdk import IngredientMatcher

__all__ = ["IngredientMatcher"]
__version__ = "0.1.0"
