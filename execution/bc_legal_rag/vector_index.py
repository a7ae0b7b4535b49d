"""
Exact In-Memory Vector Index

Flat L2 index: stores vectors in insertion order and answers k-nearest
queries by brute-force squared Euclidean distance. The corpus is small
(tens to low hundreds of chunks) so no approximation or pruning is used.

Labels are 0-based insertion positions. The index never stores payloads;
callers map labels back onto their own ordered chunk list.
"""

import logging
from typing import Sequence

import numpy as np

from .exceptions import ConfigurationError, DimensionMismatch

logger = logging.getLogger(__name__)


class VectorIndex:
    """
    Flat index over squared L2 distance.

    Usage:
        index = VectorIndex(dimension=3)
        index.add([[0, 0, 0], [1, 1, 1]])
        distances, labels = index.search([0, 0, 0], k=1)
    """

    def __init__(self, dimension: int):
        if not isinstance(dimension, (int, np.integer)) or isinstance(dimension, bool) or dimension <= 0:
            raise ConfigurationError(f"Index dimension must be a positive integer, got {dimension!r}")
        self._dimension = int(dimension)
        self._vectors = np.empty((0, self._dimension), dtype=np.float64)

    @property
    def dimension(self) -> int:
        """Return the fixed vector dimensionality."""
        return self._dimension

    @property
    def size(self) -> int:
        """Return the number of stored vectors."""
        return self._vectors.shape[0]

    def __len__(self) -> int:
        return self.size

    def _check(self, vector: Sequence[float], operation: str) -> np.ndarray:
        arr = np.asarray(vector, dtype=np.float64)
        if arr.ndim != 1 or arr.shape[0] != self._dimension:
            actual = arr.shape[0] if arr.ndim == 1 else int(arr.size)
            raise DimensionMismatch(self._dimension, actual, operation=operation)
        return arr

    def add(self, vectors: Sequence[Sequence[float]]) -> None:
        """
        Append vectors in order.

        Every vector is validated before any is stored, so a bad batch
        leaves the index unmodified.

        Raises:
            DimensionMismatch: If any vector's length differs from the index dimension
        """
        if len(vectors) == 0:
            return

        batch = np.vstack([self._check(v, "add") for v in vectors])
        self._vectors = np.vstack([self._vectors, batch])
        logger.debug(f"Added {batch.shape[0]} vectors (total {self.size})")

    def search(self, query: Sequence[float], k: int) -> tuple[list[float], list[int]]:
        """
        Find the k nearest stored vectors.

        Args:
            query: Query vector of length `dimension`
            k: Number of neighbours to return

        Returns:
            (distances, labels) ordered by squared distance ascending; ties go
            to the lower label. Truncated to the number of stored vectors.

        Raises:
            DimensionMismatch: If the query length differs from the index dimension
        """
        q = self._check(query, "search")

        if k <= 0 or self.size == 0:
            return [], []

        diff = self._vectors - q
        distances = np.einsum("ij,ij->i", diff, diff)

        # Stable sort keeps insertion order among equal distances
        order = np.argsort(distances, kind="stable")[: min(k, self.size)]

        return [float(distances[i]) for i in order], [int(i) for i in order]

    def reconstruct(self, label: int) -> list[float]:
        """Return a copy of the stored vector for a label."""
        return self._vectors[label].tolist()
