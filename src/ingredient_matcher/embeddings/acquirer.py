"""Embedding acquisition with caching and batching."""

import logging
import time

import numpy as np

from ingredient_matcher.embeddings.base import Embedder
from ingredient_matcher.embeddings.cache import EmbeddingCache
from ingredient_matcher.errors import EmbeddingProviderError

logger = logging.getLogger(__name__)


class EmbeddingAcquirer:
    """Fetch embeddings from a provider, one batched call per acquisition."""

    def __init__(self, embedder: Embedder, cache: EmbeddingCache | None = None):
        """
        Initialize the acquirer.

        Args:
            embedder: Embedding provider.
            cache: Shared embedding cache. A private one is created if omitted.
        """
        self.embedder = embedder
        self.cache = cache if cache is not None else EmbeddingCache()

    def acquire(self, texts: list[str]) -> list[np.ndarray]:
        """
        Embed texts with a single provider call.

        Args:
            texts: Distinct texts to embed.

        Returns:
            One 1-D float32 vector per text, in input order.

        Raises:
            EmbeddingProviderError: If the provider fails or returns a response
                that does not line up with the input.
        """
        if not texts:
            return []

        start = time.perf_counter()
        try:
            embeddings = self.embedder.encode(list(texts))
        except Exception as e:
            logger.error(f"Embedding provider failed for {len(texts)} texts: {e}")
            raise EmbeddingProviderError(f"Embedding provider failed: {e}") from e

        embeddings = np.asarray(embeddings, dtype=np.float32)
        if embeddings.ndim != 2 or embeddings.shape[0] != len(texts):
            raise EmbeddingProviderError(
                f"Embedding provider returned shape {embeddings.shape} for {len(texts)} texts"
            )
        if not np.all(np.isfinite(embeddings)):
            raise EmbeddingProviderError("Embedding provider returned non-finite values")

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Embedded {len(texts)} texts in {elapsed_ms:.0f}ms")
        return [row for row in embeddings]

    def resolve(self, texts: list[str]) -> list[np.ndarray]:
        """
        Return vectors for texts, calling the provider only for cache misses.

        Duplicate texts are embedded once. Newly acquired vectors are written
        to the cache.

        Args:
            texts: Texts to resolve, duplicates allowed.

        Returns:
            One vector per input text, in input order.
        """
        resolved: dict[str, np.ndarray] = {}
        misses: list[str] = []

        for text in dict.fromkeys(texts):
            cached = self.cache.get(text)
            if cached is None:
                misses.append(text)
            else:
                resolved[text] = cached

        logger.info(
            f"Embedding cache: {len(resolved)} hits, {len(misses)} misses "
            f"({len(texts)} texts requested)"
        )

        if misses:
            for text, vector in zip(misses, self.acquire(misses), strict=True):
                self.cache.put(text, vector)
                resolved[text] = vector

        return [resolved[text] for text in texts]
