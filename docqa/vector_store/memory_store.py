"""
In-memory VectorStore with brute-force cosine similarity search.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np

from docqa.errors import DimensionMismatchError, NotInitializedError
from docqa.vector_store.base import EmbeddedChunk, VectorStore

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStore):
    def __init__(self, embedding_model: str | None = None, dimensions: int | None = None) -> None:
        self.embedding_model = embedding_model
        self.dimensions = dimensions
        self._items: List[EmbeddedChunk] = []
        self._matrix: np.ndarray | None = None

    def configure(self, embedding_model: str, dimensions: int | None = None) -> None:
        """Bind the store to an embedding model. Re-binding drops existing vectors."""
        if self._items and embedding_model != self.embedding_model:
            self.clear()
        self.embedding_model = embedding_model
        if dimensions is not None:
            self.dimensions = dimensions

    @property
    def is_initialized(self) -> bool:
        return bool(self.embedding_model)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> Tuple[EmbeddedChunk, ...]:
        return tuple(self._items)

    def clear(self) -> None:
        self._items = []
        self._matrix = None
        logger.debug("In-memory store cleared", extra={"model": self.embedding_model})

    def insert(self, items: Sequence[EmbeddedChunk]) -> None:
        if not self.is_initialized:
            raise NotInitializedError("Vector store has no embedding configuration")
        if not items:
            return

        # validate everything first so a bad item leaves the store untouched
        expected = self.dimensions or len(items[0].vector)
        if expected == 0:
            raise DimensionMismatchError("Embedding vectors must not be empty")
        for item in items:
            if len(item.vector) != expected:
                raise DimensionMismatchError(
                    f"Vector of length {len(item.vector)} does not match store dimensionality {expected}",
                    position=item.chunk.position,
                )

        self.dimensions = expected
        self._items.extend(items)
        self._matrix = None
        logger.debug("Inserted embedded chunks", extra={"count": len(items), "total": len(self._items)})

    def search(self, query_vector: Sequence[float], k: int) -> List[Tuple[EmbeddedChunk, float]]:
        if k <= 0 or not self._items:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        if query.ndim != 1 or query.shape[0] != self.dimensions:
            raise DimensionMismatchError(
                f"Query vector of length {query.size} does not match store dimensionality {self.dimensions}"
            )

        scores = self._cosine_scores(query)
        # stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[: min(k, len(self._items))]
        return [(self._items[i], float(scores[i])) for i in order]

    def _cosine_scores(self, query: np.ndarray) -> np.ndarray:
        matrix = self._get_matrix()
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.zeros(len(self._items), dtype=np.float64)
        np.divide(dots, norms, out=scores, where=norms > 0)
        return scores

    def _get_matrix(self) -> np.ndarray:
        if self._matrix is None:
            self._matrix = np.asarray([item.vector for item in self._items], dtype=np.float64)
        return self._matrix


__all__ = ["InMemoryVectorStore"]
