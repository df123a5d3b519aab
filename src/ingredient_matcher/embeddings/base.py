"""Base protocol for embedding providers."""

from typing import Protocol

import numpy as np


class Embedder(Protocol):
    """Protocol for embedding providers."""

    @property
    def dim(self) -> int:
        """Return the dimension of embeddings."""
        ...

    def encode(self, texts: list[str]) -> np.ndarray:
        """
        Encode a batch of texts with one provider call.

        Args:
            texts: List of text strings to encode.

        Returns:
            numpy array of shape (N, dim), rows in input order.
        """
        ...


def empty_vector() -> np.ndarray:
    """The "no embedding available" sentinel."""
    return np.empty(0, dtype=np.float32)
