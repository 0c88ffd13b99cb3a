"""Base classes and abstract interfaces for pipeline components."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .document import Chunk, SearchResult


class BaseEmbedding(ABC):
    """Abstract base class for embedding providers.

    Embedding providers convert text into dense vector representations.
    Implementations raise ``EmbeddingError`` when a call fails.
    """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single piece of text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the name reported in pipeline statistics."""
        pass


class BaseChunker(ABC):
    """Abstract base class for document chunkers.

    Chunkers split documents into smaller pieces for indexing.
    """

    @abstractmethod
    def chunk(
        self,
        text: str,
        source: str,
        id_prefix: Optional[str] = None,
    ) -> list["Chunk"]:
        """Split document text into chunks.

        Args:
            text: Raw document text
            source: Source label recorded on every chunk
            id_prefix: Label used to derive chunk ids (defaults to source)

        Returns:
            List of chunks in document order
        """
        pass


class BaseReranker(ABC):
    """Abstract base class for rerankers.

    Rerankers reorder search results to improve relevance.
    """

    @abstractmethod
    async def rerank(
        self,
        query: str,
        results: list["SearchResult"],
        top_k: int = 3,
        query_embedding: Optional[list[float]] = None,
    ) -> list["SearchResult"]:
        """Rerank search results.

        Args:
            query: Original query string
            results: Search results to rerank
            top_k: Number of results to return
            query_embedding: Precomputed embedding of the query, if any

        Returns:
            Reranked search results
        """
        pass
