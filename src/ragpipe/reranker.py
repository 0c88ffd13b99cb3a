"""Reranker implementations."""

from typing import Optional

from .base import BaseEmbedding, BaseReranker
from .document import SearchResult
from .embeddings import embed_text
from .utils.logging import get_logger
from .vectorstore import cosine_similarity

logger = get_logger(__name__)


class CrossSimilarityReranker(BaseReranker):
    """Rerank candidates against the original, unexpanded query.

    With a query embedding, every embedded candidate is rescored by its
    direct cosine similarity to the query; candidates without an embedding
    keep the score they arrived with. Without a query embedding, scores are
    boosted by the fraction of query terms found in the candidate text.
    """

    def __init__(
        self,
        embedding: Optional[BaseEmbedding] = None,
        overlap_boost: float = 0.5,
        min_term_length: int = 3,
        timeout: Optional[float] = None,
    ):
        """Initialize the reranker.

        Args:
            embedding: Provider used to embed the query when no vector is given
            overlap_boost: Weight of the term-overlap boost in fallback mode
            min_term_length: Shorter query terms are ignored in fallback mode
            timeout: Optional timeout for the query embedding call
        """
        self.embedding = embedding
        self.overlap_boost = overlap_boost
        self.min_term_length = min_term_length
        self.timeout = timeout

    async def rerank(
        self,
        query: str,
        results: list[SearchResult],
        top_k: int = 3,
        query_embedding: Optional[list[float]] = None,
    ) -> list[SearchResult]:
        """Rescore and return the top_k results."""
        if not results:
            return []

        if query_embedding is None and self.embedding is not None:
            outcome = await embed_text(self.embedding, query, self.timeout)
            if outcome.ok:
                query_embedding = outcome.embedding
            else:
                logger.warning(f"Query embedding failed, using term overlap: {outcome.error}")

        if query_embedding is not None:
            rescored = self._by_similarity(results, query_embedding)
        else:
            rescored = self._by_term_overlap(results, query)

        rescored.sort(key=lambda x: x.score, reverse=True)
        return rescored[:top_k]

    def _by_similarity(
        self,
        results: list[SearchResult],
        query_embedding: list[float],
    ) -> list[SearchResult]:
        rescored = []
        for result in results:
            embedding = result.chunk.embedding
            if embedding is not None and len(embedding) == len(query_embedding):
                score = cosine_similarity(query_embedding, embedding)
                rescored.append(result.model_copy(update={"score": score}))
            else:
                rescored.append(result.model_copy())
        return rescored

    def _by_term_overlap(self, results: list[SearchResult], query: str) -> list[SearchResult]:
        terms = [t for t in query.lower().split() if len(t) >= self.min_term_length]

        rescored = []
        for result in results:
            text = result.chunk.content.lower()
            hits = sum(1 for term in terms if term in text)
            boost = hits / max(len(terms), 1)
            score = result.score * (1 + boost * self.overlap_boost)
            rescored.append(result.model_copy(update={"score": score}))
        return rescored
