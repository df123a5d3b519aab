"""Pytest configuration and fixtures."""

import hashlib
from unittest.mock import MagicMock

import numpy as np
import pytest

pytest_plugins = ("pytest_asyncio",)


class HashEmbedder:
    """Deterministic embedder: the same text always gives the same unit vector."""

    def __init__(self, dim: int = 8):
        self._dim = dim
        self.calls: list[list[str]] = []

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, texts: list[str]) -> np.ndarray:
        self.calls.append(list(texts))
        rows = []
        for text in texts:
            seed = int(hashlib.sha256(text.encode("utf-8")).hexdigest()[:8], 16)
            vector = np.random.default_rng(seed).standard_normal(self._dim).astype(np.float32)
            rows.append(vector / np.linalg.norm(vector))
        return np.asarray(rows, dtype=np.float32).reshape(len(texts), self._dim)


class InMemoryRecipeCache:
    """Dict-backed stand-in for RecipeCache."""

    def __init__(self):
        self.entries: dict[str, dict] = {}
        self.store_calls = 0

    def lookup(self, slug):
        entry = self.entries.get(slug)
        if entry is None:
            return None
        previous = entry["hit_count"]
        entry["hit_count"] += 1
        return {**entry, "hit_count": previous}

    def store(self, slug, results, ttl_months=None):
        self.store_calls += 1
        self.entries[slug] = {
            "slug": slug,
            "results": results,
            "created_at": "2026-01-01T00:00:00+00:00",
            "expires_at": "2026-02-01T00:00:00+00:00",
            "hit_count": 0,
            "last_accessed": "2026-01-01T00:00:00+00:00",
        }

    def stats(self):
        hits = sum(e["hit_count"] for e in self.entries.values())
        total = len(self.entries)
        return {
            "total_entries": total,
            "expired_entries": 0,
            "total_hits": hits,
            "average_hits": hits / total if total else 0.0,
        }

    def cleanup_expired(self):
        return 0


def candidate(product_id: str, score: float, title: str | None = None) -> dict:
    """Build a candidate dict."""
    return {
        "id": product_id,
        "title": title or product_id,
        "title_original": None,
        "score": score,
    }


@pytest.fixture
def mock_redis_client():
    """Mock Redis client for unit tests."""
    mock_client = MagicMock()
    mock_client.ping.return_value = True
    mock_client.ft.return_value = mock_client
    mock_client.info.return_value = {}
    return mock_client


@pytest.fixture
def hash_embedder():
    """Deterministic 8-dimensional embedder."""
    return HashEmbedder(dim=8)


@pytest.fixture
def recipe_cache():
    """In-memory recipe cache."""
    return InMemoryRecipeCache()


@pytest.fixture
def mock_store():
    """Mock product store returning one candidate per query."""
    store = MagicMock()
    store.health_check.return_value = True

    def search(vectors, top_k=3, min_score=None):
        return [[candidate(f"P{i}", 0.9)] for i, _ in enumerate(vectors)]

    store.knn_search_batch.side_effect = search
    return store


@pytest.fixture
def sample_ingredients():
    """Danish ingredient lines as they appear in recipes."""
    return ["tomat", "agurk", ""]
