"""Unit tests for embedding acquisition."""

from unittest.mock import MagicMock

import numpy as np
import pytest

from ingredient_matcher.embeddings.acquirer import EmbeddingAcquirer
from ingredient_matcher.embeddings.cache import EmbeddingCache
from ingredient_matcher.errors import EmbeddingProviderError


class TestAcquire:
    """Test the single-call provider contract."""

    def test_one_call_in_order(self, hash_embedder):
        acquirer = EmbeddingAcquirer(hash_embedder)

        vectors = acquirer.acquire(["a", "b", "c"])

        assert len(hash_embedder.calls) == 1
        assert hash_embedder.calls[0] == ["a", "b", "c"]
        expected = hash_embedder.encode(["b"])[0]
        np.testing.assert_allclose(vectors[1], expected)

    def test_empty_input_makes_no_call(self, hash_embedder):
        acquirer = EmbeddingAcquirer(hash_embedder)
        assert acquirer.acquire([]) == []
        assert hash_embedder.calls == []

    def test_provider_failure(self):
        embedder = MagicMock()
        embedder.encode.side_effect = RuntimeError("throttled")
        acquirer = EmbeddingAcquirer(embedder)

        with pytest.raises(EmbeddingProviderError, match="throttled"):
            acquirer.acquire(["a"])

    def test_wrong_row_count(self):
        embedder = MagicMock()
        embedder.encode.return_value = np.zeros((1, 4), dtype=np.float32)
        acquirer = EmbeddingAcquirer(embedder)

        with pytest.raises(EmbeddingProviderError, match="shape"):
            acquirer.acquire(["a", "b"])

    def test_non_finite_values(self):
        embedder = MagicMock()
        embedder.encode.return_value = np.array([[np.nan, 1.0]], dtype=np.float32)
        acquirer = EmbeddingAcquirer(embedder)

        with pytest.raises(EmbeddingProviderError, match="non-finite"):
            acquirer.acquire(["a"])


class TestResolve:
    """Test cache-aware resolution."""

    def test_only_misses_are_acquired(self, hash_embedder):
        cache = EmbeddingCache(max_size=10)
        cached = np.ones(8, dtype=np.float32)
        cache.put("a", cached)
        acquirer = EmbeddingAcquirer(hash_embedder, cache)

        vectors = acquirer.resolve(["a", "b"])

        assert hash_embedder.calls == [["b"]]
        np.testing.assert_array_equal(vectors[0], cached)
        assert "b" in cache

    def test_duplicates_embedded_once(self, hash_embedder):
        acquirer = EmbeddingAcquirer(hash_embedder)

        vectors = acquirer.resolve(["x", "y", "x"])

        assert hash_embedder.calls == [["x", "y"]]
        assert len(vectors) == 3
        np.testing.assert_array_equal(vectors[0], vectors[2])

    def test_all_cached_makes_no_call(self, hash_embedder):
        acquirer = EmbeddingAcquirer(hash_embedder)
        acquirer.resolve(["x"])
        acquirer.resolve(["x", "x"])

        assert hash_embedder.calls == [["x"]]

    def test_failure_leaves_cache_untouched(self):
        embedder = MagicMock()
        embedder.encode.side_effect = RuntimeError("down")
        cache = EmbeddingCache(max_size=10)
        acquirer = EmbeddingAcquirer(embedder, cache)

        with pytest.raises(EmbeddingProviderError):
            acquirer.resolve(["a", "b"])
        assert len(cache) == 0
