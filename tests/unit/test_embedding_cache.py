"""Unit tests for the embedding cache."""

import threading

import numpy as np
import pytest

from ingredient_matcher.embeddings.cache import EmbeddingCache


def vec(value: float) -> np.ndarray:
    return np.full(4, value, dtype=np.float32)


class TestEmbeddingCache:
    """Test bounded FIFO caching."""

    def test_get_missing(self):
        cache = EmbeddingCache(max_size=2)
        assert cache.get("nope") is None
        assert cache.misses == 1

    def test_put_and_get(self):
        cache = EmbeddingCache(max_size=2)
        cache.put("a", vec(1.0))
        np.testing.assert_array_equal(cache.get("a"), vec(1.0))
        assert cache.hits == 1

    def test_overflow_evicts_first_inserted(self):
        cache = EmbeddingCache(max_size=3)
        for i, key in enumerate(["a", "b", "c", "d"]):
            cache.put(key, vec(float(i)))

        assert len(cache) == 3
        assert cache.get("a") is None
        assert "b" in cache and "c" in cache and "d" in cache
        assert cache.evictions == 1

    def test_reads_do_not_refresh_position(self):
        cache = EmbeddingCache(max_size=2)
        cache.put("a", vec(1.0))
        cache.put("b", vec(2.0))
        cache.get("a")
        cache.put("c", vec(3.0))

        # Insertion order wins over access order
        assert "a" not in cache
        assert "b" in cache

    def test_overwrite_keeps_size(self):
        cache = EmbeddingCache(max_size=2)
        cache.put("a", vec(1.0))
        cache.put("a", vec(5.0))
        assert len(cache) == 1
        np.testing.assert_array_equal(cache.get("a"), vec(5.0))

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            EmbeddingCache(max_size=0)

    def test_stats(self):
        cache = EmbeddingCache(max_size=5)
        cache.put("a", vec(1.0))
        cache.get("a")
        cache.get("b")
        stats = cache.stats()
        assert stats["size"] == 1
        assert stats["hit_rate"] == 0.5

    def test_concurrent_puts_stay_bounded(self):
        cache = EmbeddingCache(max_size=50)

        def writer(offset: int) -> None:
            for i in range(200):
                cache.put(f"{offset}-{i}", vec(float(i)))
                cache.get(f"{offset}-{i // 2}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 50
        assert cache.evictions == 8 * 200 - 50
