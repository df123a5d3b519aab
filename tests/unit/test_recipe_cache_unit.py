"""Unit tests for the recipe result cache (with mocks)."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import redis

from ingredient_matcher.errors import CacheWriteError
from ingredient_matcher.store.recipe_cache import RecipeCache, add_months

NOW = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scripts():
    return MagicMock(name="lookup"), MagicMock(name="delete_if_expired")


@pytest.fixture
def client(scripts):
    mock_client = MagicMock()
    mock_client.register_script.side_effect = list(scripts)
    return mock_client


@pytest.fixture
def cache(client):
    return RecipeCache(client, key_prefix="test:", ttl_months=1, clock=lambda: NOW)


class TestAddMonths:
    """Test calendar month arithmetic."""

    def test_clamps_to_month_end(self):
        assert add_months(NOW, 1) == datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)

    def test_leap_year(self):
        moment = datetime(2028, 1, 31, tzinfo=timezone.utc)
        assert add_months(moment, 1).day == 29

    def test_crosses_year(self):
        moment = datetime(2026, 12, 15, tzinfo=timezone.utc)
        assert add_months(moment, 2) == datetime(2027, 2, 15, tzinfo=timezone.utc)


class TestRecipeCache:
    """Test recipe cache lookups and writes."""

    def test_lookup_miss(self, cache, scripts):
        lookup, _ = scripts
        lookup.return_value = None

        assert cache.lookup("full:boller-i-karry") is None
        assert lookup.call_args.kwargs["keys"] == ["test:full:boller-i-karry"]

    def test_lookup_hit_returns_previous_count(self, cache, scripts):
        lookup, _ = scripts
        results = [{"ingredient": "løg", "matches": []}]
        lookup.return_value = [
            json.dumps(results).encode(),
            b"2026-01-01T00:00:00+00:00",
            b"2026-02-01T00:00:00+00:00",
            2,
            b"2026-01-20T00:00:00+00:00",
        ]

        entry = cache.lookup("full:boller-i-karry")

        assert entry["hit_count"] == 2
        assert entry["results"] == results
        assert entry["expires_at"] == "2026-02-01T00:00:00+00:00"
        now_ts, now_iso = lookup.call_args.kwargs["args"]
        assert now_ts == NOW.timestamp()
        assert now_iso == NOW.isoformat()

    def test_store_upserts_with_reset_count(self, cache, client):
        pipe = MagicMock()
        client.pipeline.return_value = pipe

        cache.store("full:boller-i-karry", [{"ingredient": "løg", "matches": []}])

        client.pipeline.assert_called_once_with(transaction=True)
        pipe.delete.assert_called_once_with("test:full:boller-i-karry")
        mapping = pipe.hset.call_args.kwargs["mapping"]
        assert mapping["hit_count"] == 0
        assert mapping["expires_at"] == "2026-02-28T12:00:00+00:00"
        assert json.loads(mapping["results"])[0]["ingredient"] == "løg"
        pipe.execute.assert_called_once()

    def test_store_custom_ttl(self, cache, client):
        pipe = MagicMock()
        client.pipeline.return_value = pipe

        cache.store("s", [], ttl_months=3)

        assert pipe.hset.call_args.kwargs["mapping"]["expires_at"].startswith("2026-04-30")

    def test_store_failure(self, cache, client):
        pipe = MagicMock()
        pipe.execute.side_effect = redis.ConnectionError("gone")
        client.pipeline.return_value = pipe

        with pytest.raises(CacheWriteError, match="gone"):
            cache.store("s", [])

    def test_stats(self, cache, client):
        client.scan_iter.return_value = [b"test:a", b"test:b", b"test:c"]
        pipe = MagicMock()
        pipe.execute.return_value = [
            [str(NOW.timestamp() + 100).encode(), b"4"],
            [str(NOW.timestamp() - 100).encode(), b"2"],
            [None, None],
        ]
        client.pipeline.return_value = pipe

        stats = cache.stats()

        assert stats == {
            "total_entries": 2,
            "expired_entries": 1,
            "total_hits": 6,
            "average_hits": 3.0,
        }

    def test_cleanup_expired(self, cache, client, scripts):
        _, delete_if_expired = scripts
        delete_if_expired.return_value = 1
        client.scan_iter.return_value = [b"test:a", b"test:b"]
        pipe = MagicMock()
        pipe.execute.return_value = [
            [str(NOW.timestamp() + 100).encode(), b"0"],
            [str(NOW.timestamp() - 100).encode(), b"0"],
        ]
        client.pipeline.return_value = pipe

        assert cache.cleanup_expired() == 1
        delete_if_expired.assert_called_once_with(keys=[b"test:b"], args=[NOW.timestamp()])
