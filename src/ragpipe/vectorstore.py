"""In-memory vector index."""

import math
from typing import Optional

from .document import Chunk, SearchResult
from .exceptions import EmbeddingDimensionError
from .utils.logging import get_logger

logger = get_logger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Calculate cosine similarity between two vectors.

    Similarity with a zero-norm vector is 0.
    """
    if len(a) != len(b):
        raise ValueError("Vectors must have the same dimension")

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = dot_product / (norm_a * norm_b)
    # Rounding can push identical vectors a hair past 1
    return max(-1.0, min(1.0, similarity))


class VectorIndex:
    """Brute-force cosine similarity index over embedded chunks.

    A linear scan is fast enough for corpora of tens of thousands of chunks.
    Chunks without an embedding are ignored; the first stored vector fixes
    the dimensionality of the whole index.
    """

    def __init__(self) -> None:
        """Initialize the vector index."""
        self._chunks: dict[str, Chunk] = {}
        self._dimension: Optional[int] = None

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _check_dimension(self, vector: list[float]) -> None:
        if self._dimension is not None and len(vector) != self._dimension:
            raise EmbeddingDimensionError(self._dimension, len(vector))

    def add(self, chunks: list[Chunk]) -> list[str]:
        """Add embedded chunks to the index.

        Returns:
            IDs of the chunks that were stored
        """
        ids = []
        for chunk in chunks:
            if chunk.embedding is None:
                continue

            try:
                self._check_dimension(chunk.embedding)
            except EmbeddingDimensionError as e:
                logger.warning(f"Skipping vector for chunk {chunk.id}: {e}")
                continue

            if self._dimension is None:
                self._dimension = len(chunk.embedding)

            self._chunks[chunk.id] = chunk
            ids.append(chunk.id)

        logger.debug(f"Added {len(ids)} vectors to index")
        return ids

    async def search(
        self,
        query_embedding: list[float],
        k: int = 5,
    ) -> list[SearchResult]:
        """Return the top-k chunks by descending cosine similarity."""
        if not self._chunks:
            return []

        try:
            self._check_dimension(query_embedding)
        except EmbeddingDimensionError as e:
            logger.warning(f"Query vector rejected: {e}")
            return []

        similarities = [
            (chunk, cosine_similarity(query_embedding, chunk.embedding))
            for chunk in self._chunks.values()
        ]
        similarities.sort(key=lambda x: x[1], reverse=True)

        return [
            SearchResult(chunk=chunk, score=score, method="vector")
            for chunk, score in similarities[:k]
        ]

    def count(self) -> int:
        """Return the number of indexed vectors."""
        return len(self._chunks)

    def clear(self) -> None:
        """Remove every vector and forget the dimensionality."""
        self._chunks.clear()
        self._dimension = None
