"""Nearest-neighbour matching of ingredient vectors against the catalog."""

import logging
import time

import numpy as np

from ingredient_matcher.store.redis_store import ProductStore
from ingredient_matcher.types import Candidate

logger = logging.getLogger(__name__)


class SimilarityMatcher:
    """Query the product catalog for many ingredient vectors at once."""

    def __init__(self, store: ProductStore):
        self.store = store

    def match(
        self,
        queries: list[tuple[int, np.ndarray]],
        top_k: int,
        min_score: float | None = None,
    ) -> dict[int, list[Candidate]]:
        """
        Rank catalog products for each query vector.

        Args:
            queries: ``(index, embedding)`` pairs. An empty embedding means
                "nothing to look up" and yields an empty candidate list.
            top_k: Maximum candidates per query.
            min_score: When given, candidates scoring below it are dropped.

        Returns:
            Mapping from query index to best-first candidates. Every query
            index is present.

        Raises:
            VectorStoreError: If the batched lookup cannot be built or run.
        """
        results: dict[int, list[Candidate]] = {index: [] for index, _ in queries}
        searchable = [(index, vector) for index, vector in queries if len(vector) > 0]
        if not searchable:
            return results

        start = time.perf_counter()
        replies = self.store.knn_search_batch(
            [vector for _, vector in searchable],
            top_k=top_k,
            min_score=min_score,
        )
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Vector search for {len(searchable)} ingredients took {elapsed_ms:.0f}ms")

        for (index, _), candidates in zip(searchable, replies, strict=True):
            if min_score is not None:
                candidates = [c for c in candidates if c["score"] >= min_score]
            results[index] = candidates[:top_k]

        return results
