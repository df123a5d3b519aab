"""Exceptions raised by the ingredient matcher."""


class MatcherError(Exception):
    """Base class for ingredient matcher errors."""

    pass


class InvalidInputError(MatcherError):
    """Raised for an empty or malformed ingredient list."""

    pass


class EmbeddingProviderError(MatcherError):
    """Raised when the embedding provider fails or returns a malformed response."""

    pass


class VectorStoreError(MatcherError):
    """Raised when the product catalog cannot be queried."""

    pass


class CacheWriteError(MatcherError):
    """Raised when a recipe cache entry cannot be written."""

    pass
