"""Redis-backed product catalog and recipe cache."""

from ingredient_matcher.store.recipe_cache import RecipeCache
from ingredient_matcher.store.redis_store import ProductStore

__all__ = ["ProductStore", "RecipeCache"]
