"""Embedding providers and caching for the ingredient matcher."""

from ingredient_matcher.embeddings.acquirer import EmbeddingAcquirer
from ingredient_matcher.embeddings.base import Embedder, empty_vector
from ingredient_matcher.embeddings.cache import EmbeddingCache

__all__ = ["Embedder", "EmbeddingAcquirer", "EmbeddingCache", "empty_vector"]
