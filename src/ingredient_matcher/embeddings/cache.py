"""Bounded in-process cache of embedding vectors."""

import logging
import threading
from collections import OrderedDict

import numpy as np

logger = logging.getLogger(__name__)


class EmbeddingCache:
    """
    Thread-safe embedding cache keyed by the composed embedding text.

    Eviction is by insertion order: once the cache is full, the entry that was
    inserted first is dropped. Reads never change the eviction order.
    """

    def __init__(self, max_size: int = 1000):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[str, np.ndarray] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> np.ndarray | None:
        """Return the cached vector for ``key``, or None."""
        with self._lock:
            vector = self._entries.get(key)
            if vector is None:
                self.misses += 1
            else:
                self.hits += 1
            return vector

    def put(self, key: str, vector: np.ndarray) -> None:
        """Store a vector. Overwriting a key keeps its original queue position."""
        with self._lock:
            if key in self._entries:
                self._entries[key] = vector
                return
            self._entries[key] = vector
            if len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"Evicted embedding for: {evicted[-60:]!r}")

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def stats(self) -> dict[str, float]:
        """Counters for logging and diagnostics."""
        return {
            "size": len(self),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.hit_rate,
        }
