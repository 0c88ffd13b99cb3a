"""Document, chunk and result data structures."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class Document(BaseModel):
    """A titled document to be chunked and indexed.

    Attributes:
        title: Document title, used as the chunk source label
        content: The raw text content
    """

    title: str
    content: str

    def __repr__(self) -> str:
        content_preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"Document(title={self.title!r}, content={content_preview!r})"


class ChunkPosition(BaseModel):
    """Where a chunk sits inside its source document."""

    chunk_index: int = Field(ge=0)
    total_chunks: int = Field(ge=1)
    char_start: int = Field(ge=0)
    char_end: int

    @model_validator(mode="after")
    def _check_bounds(self) -> "ChunkPosition":
        if self.char_start >= self.char_end:
            raise ValueError("char_start must be less than char_end")
        if self.chunk_index >= self.total_chunks:
            raise ValueError("chunk_index must be less than total_chunks")
        return self


class Chunk(BaseModel):
    """A bounded segment of a document, the unit of retrieval.

    Attributes:
        id: Identifier derived from the source title and chunk index
        content: Trimmed chunk text
        source: Title of the originating document
        position: Offsets and index within the source document
        embedding: Optional embedding vector
    """

    id: str
    content: str
    source: str
    position: ChunkPosition
    embedding: Optional[list[float]] = None

    def __repr__(self) -> str:
        content_preview = self.content[:30] + "..." if len(self.content) > 30 else self.content
        return f"Chunk(id={self.id!r}, source={self.source!r}, content={content_preview!r})"


class SearchResult(BaseModel):
    """A scored reference to a chunk.

    Attributes:
        chunk: The matching chunk
        score: Relevance score (higher is better)
        method: Which search produced the score
    """

    chunk: Chunk
    score: float
    method: Literal["vector", "keyword"]

    def __repr__(self) -> str:
        return f"SearchResult(chunk_id={self.chunk.id!r}, score={self.score:.4f}, method={self.method!r})"


class PipelineStats(BaseModel):
    """Execution statistics for a single query."""

    total_documents: int
    total_chunks: int
    search_time_ms: int
    embedding_model: str
    top_score: float = 0.0


class PipelineResult(BaseModel):
    """Everything a caller needs from one pass of the pipeline."""

    query: str
    expanded_queries: list[str]
    retrieved_chunks: list[SearchResult]
    reranked_chunks: list[SearchResult]
    context_block: str
    stats: PipelineStats


class CorpusStats(BaseModel):
    """Corpus-level counts."""

    documents: int
    chunks: int
    embedding_mode: str


class AddDocumentResult(BaseModel):
    """Outcome of appending a document to the live corpus."""

    chunks_added: int
