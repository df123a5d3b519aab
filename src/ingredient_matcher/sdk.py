"""Main SDK for the ingredient matcher."""

import logging
import time
from typing import Any

import redis

from ingredient_matcher.config import Settings
from ingredient_matcher.embeddings.acquirer import EmbeddingAcquirer
from ingredient_matcher.embeddings.base import Embedder, empty_vector
from ingredient_matcher.embeddings.cache import EmbeddingCache
from ingredient_matcher.errors import CacheWriteError, InvalidInputError
from ingredient_matcher.matcher import SimilarityMatcher
from ingredient_matcher.normalize import is_embeddable, normalize
from ingredient_matcher.selector import accepted_ids, select
from ingredient_matcher.store.recipe_cache import RecipeCache
from ingredient_matcher.store.redis_store import ProductStore
from ingredient_matcher.types import MatchMode, MatchOutcome, MatchResult, ProductRecord

logger = logging.getLogger(__name__)


def create_embedder(settings: Settings) -> Embedder:
    """Build the embedding provider named in the settings."""
    if settings.embed_provider == "st_local":
        from ingredient_matcher.embeddings.st_local import SentenceTransformerEmbedder

        return SentenceTransformerEmbedder(model_name=settings.embed_model_name)

    from ingredient_matcher.embeddings.bedrock_embedder import BedrockEmbedder

    return BedrockEmbedder(
        model_id=settings.embed_model_name,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        aws_region=settings.aws_region,
        vector_dim=settings.vector_dim,
        read_timeout=settings.embed_timeout_seconds,
        connect_timeout=settings.embed_connect_timeout_seconds,
    )


class IngredientMatcher:
    """Match recipe ingredients to catalog products."""

    def __init__(
        self,
        redis_url: str | None = None,
        embedder: Embedder | None = None,
        store: ProductStore | None = None,
        embedding_cache: EmbeddingCache | None = None,
        recipe_cache: RecipeCache | None = None,
        production_threshold: float | None = None,
        full_top_k: int | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the matcher.

        Args:
            redis_url: Redis connection URL. Defaults to config.
            embedder: Embedding provider. Defaults to the configured provider.
            store: Product catalog store. Built from config if omitted.
            embedding_cache: Shared embedding cache.
            recipe_cache: Shared recipe result cache. Uses the store's Redis
                connection if omitted.
            production_threshold: Minimum score for production matches.
            full_top_k: Candidates per ingredient in full mode.
            settings: Settings to use instead of the global instance.
        """
        if settings is None:
            from ingredient_matcher.config import settings

        self.settings = settings
        self.production_threshold = (
            production_threshold
            if production_threshold is not None
            else settings.production_threshold
        )
        self.full_top_k = full_top_k or settings.full_top_k

        if store is None:
            store = ProductStore(
                redis_url=redis_url or settings.redis_url,
                index_name=settings.index_name,
                key_prefix=settings.key_prefix,
                vector_dim=settings.vector_dim,
                ef_construction=settings.ef_construction,
                m=settings.m,
                socket_timeout=settings.redis_socket_timeout_seconds,
                socket_connect_timeout=settings.redis_connect_timeout_seconds,
            )
        self.store = store

        self.embedder = embedder if embedder is not None else create_embedder(settings)
        self.embedding_cache = (
            embedding_cache
            if embedding_cache is not None
            else EmbeddingCache(max_size=settings.embedding_cache_size)
        )
        self.acquirer = EmbeddingAcquirer(self.embedder, self.embedding_cache)
        self.matcher = SimilarityMatcher(self.store)
        self.recipe_cache = (
            recipe_cache
            if recipe_cache is not None
            else RecipeCache(
                self.store.client,
                key_prefix=settings.recipe_cache_prefix,
                ttl_months=settings.cache_ttl_months,
            )
        )

        logger.info("IngredientMatcher initialized")

    def ensure_index(self) -> None:
        """Create the catalog vector index if it doesn't exist."""
        self.store.ensure_index()

    def load_products(self, products: list[ProductRecord]) -> int:
        """Store already-embedded product records in the catalog."""
        return self.store.upsert_products(products)

    def match_full(
        self,
        ingredients: list[str],
        instructions: str | None = None,
        recipe_slug: str | None = None,
    ) -> MatchOutcome:
        """
        Match ingredients and return ranked candidates for each.

        Args:
            ingredients: Raw ingredient texts. Empty strings are allowed and
                produce no matches.
            instructions: Optional extra instructions for the embedding text.
            recipe_slug: Optional recipe key for the result cache.

        Returns:
            MatchOutcome whose payload is a list of MatchResult in input order.
        """
        return self._run("full", ingredients, instructions, recipe_slug)

    def match_production(
        self,
        ingredients: list[str],
        instructions: str | None = None,
        recipe_slug: str | None = None,
    ) -> MatchOutcome:
        """
        Match ingredients and return only confident product ids.

        Returns:
            MatchOutcome whose payload is the list of accepted product ids,
            in ingredient order.
        """
        return self._run("best", ingredients, instructions, recipe_slug)

    def _run(
        self,
        mode: MatchMode,
        ingredients: list[str],
        instructions: str | None,
        recipe_slug: str | None,
    ) -> MatchOutcome:
        _validate_ingredients(ingredients)

        cache_key = None
        if recipe_slug:
            cache_key = f"{'full' if mode == 'full' else 'production'}:{recipe_slug}"
            cached = self._cached(cache_key)
            if cached is not None:
                return cached

        start = time.perf_counter()
        selected = self.match(ingredients, instructions, mode)
        payload: Any = selected if mode == "full" else accepted_ids(selected)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Matched {len(ingredients)} ingredients ({mode}) in {elapsed_ms:.0f}ms")

        if cache_key:
            self._cache_write(cache_key, payload)

        return MatchOutcome(payload=payload, cache_hit=False)

    def match(
        self,
        ingredients: list[str],
        instructions: str | None = None,
        mode: MatchMode = "full",
    ) -> list[MatchResult]:
        """
        Embed, search and select without touching the recipe cache.

        Raises:
            EmbeddingProviderError: If embeddings cannot be obtained.
            VectorStoreError: If the catalog lookup fails.
        """
        embeddable = [
            (index, normalize(raw, instructions, self.settings.default_instruction))
            for index, raw in enumerate(ingredients)
            if is_embeddable(raw)
        ]
        vectors = self.acquirer.resolve([text for _, text in embeddable])
        vector_by_index = {index: vector for (index, _), vector in zip(embeddable, vectors, strict=True)}

        queries = [
            (index, vector_by_index.get(index, empty_vector()))
            for index in range(len(ingredients))
        ]

        if mode == "full":
            ranked = self.matcher.match(queries, top_k=self.full_top_k)
        else:
            ranked = self.matcher.match(queries, top_k=1, min_score=self.production_threshold)

        return select(
            ingredients,
            ranked,
            mode=mode,
            threshold=self.production_threshold,
            top_k=self.full_top_k,
        )

    def _cached(self, cache_key: str) -> MatchOutcome | None:
        try:
            entry = self.recipe_cache.lookup(cache_key)
        except redis.RedisError as e:
            logger.warning(f"Recipe cache lookup failed for {cache_key}, recomputing: {e}")
            return None
        if entry is None:
            return None
        # Report the ordinal of this hit
        return MatchOutcome(payload=entry["results"], cache_hit=True, hit_count=entry["hit_count"] + 1)

    def _cache_write(self, cache_key: str, payload: Any) -> None:
        try:
            self.recipe_cache.store(cache_key, payload)
        except CacheWriteError as e:
            logger.warning(f"Recipe cache write failed, returning uncached results: {e}")

    def cache_stats(self) -> dict[str, Any]:
        """Statistics for the recipe cache and the embedding cache."""
        return {
            "recipe_cache": self.recipe_cache.stats(),
            "embedding_cache": self.embedding_cache.stats(),
        }

    def cleanup_cache(self) -> int:
        """Delete expired recipe cache entries."""
        return self.recipe_cache.cleanup_expired()

    def sample_products(self, limit: int = 10) -> list[dict[str, Any]]:
        """A few catalog entries for inspection."""
        return self.store.sample_products(limit=limit)

    def health_check(self) -> bool:
        """
        Check matcher health.

        Returns:
            True if healthy, False otherwise.
        """
        return self.store.health_check()

    def close(self) -> None:
        """Close the matcher and clean up resources."""
        self.store.close()

    def __repr__(self) -> str:
        """String representation."""
        return f"IngredientMatcher(store={self.store}, embedder={self.embedder})"

    def __enter__(self) -> "IngredientMatcher":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()


def _validate_ingredients(ingredients: Any) -> None:
    if not isinstance(ingredients, list) or not ingredients:
        raise InvalidInputError("ingredients must be a non-empty list")
    for item in ingredients:
        if not isinstance(item, str):
            raise InvalidInputError("every ingredient must be a string")
