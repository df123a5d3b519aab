"""Recipe-level cache of complete match runs, stored in Redis."""

import calendar
import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import redis

from ingredient_matcher.errors import CacheWriteError
from ingredient_matcher.types import CachedRecipe, CacheStats

logger = logging.getLogger(__name__)

# Reads, counts and returns a live entry atomically. Returns nil when the
# entry is missing or expired. The returned hit count is the value before
# this hit was counted.
LOOKUP_SCRIPT = """
local data = redis.call('HMGET', KEYS[1], 'results', 'created_at', 'expires_at', 'expires_ts', 'last_accessed')
if not data[1] then
    return nil
end
if tonumber(data[4]) < tonumber(ARGV[1]) then
    return nil
end
local previous = redis.call('HINCRBY', KEYS[1], 'hit_count', 1) - 1
redis.call('HSET', KEYS[1], 'last_accessed', ARGV[2])
return {data[1], data[2], data[3], previous, data[5]}
"""

DELETE_IF_EXPIRED_SCRIPT = """
local expires = redis.call('HGET', KEYS[1], 'expires_ts')
if expires and tonumber(expires) < tonumber(ARGV[1]) then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift a datetime by whole calendar months, clamping the day of month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


class RecipeCache:
    """
    Cache of match results keyed by recipe slug.

    Entries expire a whole number of months after they are written. Expired
    entries are invisible to ``lookup`` and are removed by ``cleanup_expired``.
    """

    def __init__(
        self,
        client: redis.Redis,
        key_prefix: str = "im:recipe:",
        ttl_months: int = 1,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the recipe cache.

        Args:
            client: Redis client (shared with the product store).
            key_prefix: Prefix for recipe cache keys.
            ttl_months: Default time-to-live in months.
            clock: Returns the current UTC time.
        """
        self.client = client
        self.key_prefix = key_prefix
        self.ttl_months = ttl_months
        self._clock = clock
        self._lookup = client.register_script(LOOKUP_SCRIPT)
        self._delete_if_expired = client.register_script(DELETE_IF_EXPIRED_SCRIPT)

    def _key(self, slug: str) -> str:
        return f"{self.key_prefix}{slug}"

    def lookup(self, slug: str) -> CachedRecipe | None:
        """
        Fetch a live entry and count the hit.

        Args:
            slug: Cache key, e.g. ``"full:boller-i-karry"``.

        Returns:
            The entry with its hit count *before* this hit, or None when the
            entry is missing or expired.
        """
        now = self._clock()
        reply = self._lookup(keys=[self._key(slug)], args=[now.timestamp(), now.isoformat()])
        if reply is None:
            logger.debug(f"Recipe cache miss: {slug}")
            return None

        results, created_at, expires_at, previous_hits, last_accessed = reply
        logger.info(f"Recipe cache hit: {slug} (previous hits: {int(previous_hits)})")
        return {
            "slug": slug,
            "results": json.loads(results),
            "created_at": _text(created_at),
            "expires_at": _text(expires_at),
            "hit_count": int(previous_hits),
            "last_accessed": _text(last_accessed),
        }

    def store(self, slug: str, results: Any, ttl_months: int | None = None) -> None:
        """
        Write or replace an entry. Replacing resets the hit count.

        Raises:
            CacheWriteError: If Redis rejects the write.
        """
        months = ttl_months if ttl_months is not None else self.ttl_months
        now = self._clock()
        expires_at = add_months(now, months)
        mapping = {
            "results": json.dumps(results, ensure_ascii=False),
            "created_at": now.isoformat(),
            "expires_at": expires_at.isoformat(),
            "expires_ts": expires_at.timestamp(),
            "hit_count": 0,
            "last_accessed": now.isoformat(),
        }

        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.delete(self._key(slug))
            pipe.hset(self._key(slug), mapping=mapping)
            pipe.execute()
        except redis.RedisError as e:
            raise CacheWriteError(f"Could not cache results for {slug}: {e}") from e

        logger.info(f"Cached results for {slug} until {expires_at.isoformat()}")

    def _entries(self) -> list[tuple[bytes, Any, Any]]:
        keys = list(self.client.scan_iter(match=f"{self.key_prefix}*", count=500))
        pipe = self.client.pipeline(transaction=False)
        for key in keys:
            pipe.hmget(key, "expires_ts", "hit_count")
        return [(key, expires, hits) for key, (expires, hits) in zip(keys, pipe.execute(), strict=True)]

    def stats(self) -> CacheStats:
        """Count entries, expired entries and hits across the cache."""
        now_ts = self._clock().timestamp()
        total = expired = hits = 0
        for _, expires, hit_count in self._entries():
            if expires is None:
                continue
            total += 1
            hits += int(hit_count or 0)
            if float(expires) < now_ts:
                expired += 1

        return {
            "total_entries": total,
            "expired_entries": expired,
            "total_hits": hits,
            "average_hits": hits / total if total else 0.0,
        }

    def cleanup_expired(self) -> int:
        """
        Delete expired entries.

        Returns:
            Number of entries deleted.
        """
        now_ts = self._clock().timestamp()
        deleted = 0
        for key, expires, _ in self._entries():
            if expires is not None and float(expires) < now_ts:
                deleted += int(self._delete_if_expired(keys=[key], args=[now_ts]))
        logger.info(f"Removed {deleted} expired recipe cache entries")
        return deleted
