"""Lexical scoring and hybrid retrieval."""

import asyncio
import math
from typing import Optional, Sequence

from .document import Chunk, SearchResult
from .utils.logging import get_logger
from .vectorstore import VectorIndex

logger = get_logger(__name__)


class LexicalScorer:
    """Keyword scorer using BM25-like scoring.

    Term frequency is the number of substring occurrences of a query term in
    the lowercased chunk text divided by the chunk's word count, and document
    length is normalized against a fixed average rather than the corpus mean.
    Scores are rescaled so the best match in a result set is 1.0.
    """

    def __init__(
        self,
        k1: float = 1.5,
        b: float = 0.75,
        avg_doc_length: float = 100.0,
        min_term_length: int = 3,
    ):
        """Initialize the lexical scorer.

        Args:
            k1: BM25 k1 parameter (term frequency saturation)
            b: BM25 b parameter (document length normalization)
            avg_doc_length: Assumed average chunk length in words
            min_term_length: Shorter query terms are ignored
        """
        self.k1 = k1
        self.b = b
        self.avg_doc_length = avg_doc_length
        self.min_term_length = min_term_length
        self._chunks: list[Chunk] = []
        self._texts: list[str] = []
        self._word_counts: list[int] = []

    def add(self, chunks: list[Chunk]) -> None:
        """Add chunks to the index."""
        for chunk in chunks:
            text = chunk.content.lower()
            self._chunks.append(chunk)
            self._texts.append(text)
            self._word_counts.append(len(text.split()))

    def tokenize(self, query: str) -> list[str]:
        """Split a query into lowercase whitespace-delimited terms."""
        return [t for t in query.lower().split() if len(t) >= self.min_term_length]

    def _idf(self, term: str) -> float:
        N = len(self._chunks)
        df = sum(1 for text in self._texts if term in text)
        return math.log((N - df + 0.5) / (df + 0.5) + 1)

    def _score(self, terms: list[str], idfs: dict[str, float], position: int) -> float:
        """Calculate the BM25 score of one chunk."""
        text = self._texts[position]
        word_count = self._word_counts[position]
        length_norm = 1 - self.b + self.b * (word_count / self.avg_doc_length)

        score = 0.0
        for term in terms:
            tf = text.count(term) / max(word_count, 1)
            if tf == 0:
                continue
            score += (tf * (self.k1 + 1)) / (tf + self.k1 * length_norm) * idfs[term]

        return score

    async def search(self, query: str, k: int = 5) -> list[SearchResult]:
        """Return the top-k chunks by descending normalized BM25 score."""
        terms = self.tokenize(query)

        if not terms or not self._chunks:
            return []

        idfs = {term: self._idf(term) for term in set(terms)}

        scores = []
        for position, chunk in enumerate(self._chunks):
            score = self._score(terms, idfs, position)
            if score > 0:
                scores.append((chunk, score))

        if not scores:
            return []

        max_score = max(max(score for _, score in scores), 0.001)
        scores.sort(key=lambda x: x[1], reverse=True)

        return [
            SearchResult(chunk=chunk, score=score / max_score, method="keyword")
            for chunk, score in scores[:k]
        ]

    def count(self) -> int:
        """Return the number of indexed chunks."""
        return len(self._chunks)

    def clear(self) -> None:
        """Clear all chunks."""
        self._chunks.clear()
        self._texts.clear()
        self._word_counts.clear()


def reciprocal_rank_fusion(
    result_lists: Sequence[Sequence[SearchResult]],
    k: int = 5,
    k_rrf: int = 60,
) -> list[SearchResult]:
    """
    Merge ranked lists using Reciprocal Rank Fusion.

    Each item contributes ``1 / (k_rrf + rank + 1)`` for its 0-based rank in
    every list it appears in. Only rank positions matter, so lists scored on
    different scales can be fused. A merged result keeps the method of the
    list it was first seen in.

    Args:
        result_lists: Ranked lists, each sorted by score descending
        k: Number of fused results to return
        k_rrf: Smoothing constant

    Returns:
        Fused results sorted by RRF score
    """
    fused: dict[str, SearchResult] = {}

    for results in result_lists:
        for rank, result in enumerate(results):
            contribution = 1.0 / (k_rrf + rank + 1)
            existing = fused.get(result.chunk.id)
            if existing is None:
                fused[result.chunk.id] = SearchResult(
                    chunk=result.chunk,
                    score=contribution,
                    method=result.method,
                )
            else:
                existing.score += contribution

    merged = sorted(fused.values(), key=lambda r: r.score, reverse=True)
    return merged[:k]


class HybridSearcher:
    """Hybrid searcher combining vector and keyword search.

    Both searches are asked for ``2k`` candidates and fused by rank.
    """

    def __init__(
        self,
        vector_index: VectorIndex,
        lexical_scorer: LexicalScorer,
        rrf_k: int = 60,
    ):
        """Initialize the hybrid searcher.

        Args:
            vector_index: Cosine similarity index
            lexical_scorer: BM25 keyword scorer
            rrf_k: Reciprocal Rank Fusion smoothing constant
        """
        self.vector_index = vector_index
        self.lexical_scorer = lexical_scorer
        self.rrf_k = rrf_k

    async def search(
        self,
        query_embedding: Optional[list[float]],
        query: str,
        k: int = 5,
    ) -> list[SearchResult]:
        """Search with both signals and fuse the rankings."""
        candidate_k = k * 2

        # Vector results go first so they win the method tie-break
        tasks = []
        if query_embedding is not None:
            tasks.append(self.vector_index.search(query_embedding, candidate_k))
        tasks.append(self.lexical_scorer.search(query, candidate_k))

        results_list = await asyncio.gather(*tasks)
        logger.debug(
            f"Hybrid search {query!r}: "
            + ", ".join(f"{len(r)} candidates" for r in results_list)
        )

        return reciprocal_rank_fusion(results_list, k=k, k_rrf=self.rrf_k)
