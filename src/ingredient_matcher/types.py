"""Type definitions for the ingredient matcher."""

from typing import Any, Literal, NamedTuple, TypedDict

MatchMode = Literal["full", "best"]


class Candidate(TypedDict):
    """A catalog product proposed for an ingredient."""

    id: str
    title: str | None
    title_original: str | None
    score: float


class MatchResult(TypedDict):
    """Ranked candidates for one ingredient, best first."""

    ingredient: str
    matches: list[Candidate]


class ProductRecord(TypedDict, total=False):
    """Catalog product as stored in the vector store."""

    id: str
    title: str | None
    title_original: str | None
    embedding: list[float] | None


class CachedRecipe(TypedDict):
    """A live recipe cache entry as returned by a lookup."""

    slug: str
    results: Any
    created_at: str
    expires_at: str
    hit_count: int
    last_accessed: str


class CacheStats(TypedDict):
    """Aggregate numbers for the recipe cache."""

    total_entries: int
    expired_entries: int
    total_hits: int
    average_hits: float


class MatchOutcome(NamedTuple):
    """Payload of a match run tagged with its recipe cache status."""

    payload: Any
    cache_hit: bool
    hit_count: int | None = None
