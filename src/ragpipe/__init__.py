"""Hybrid retrieval pipeline for grounding LLM answers in a document corpus.

This package provides:
- Paragraph-aware chunking with overlap
- Pluggable embedding providers (OpenAI, local, fake) with soft failures
- Cosine similarity and BM25-style keyword search fused by Reciprocal Rank Fusion
- Rule-based query expansion
- Re-ranking against the original query
- An orchestrating pipeline that returns a citation-tagged context block

Example:
    ```python
    from ragpipe import RAGPipeline, RAGConfig, EmbeddingConfig

    config = RAGConfig(
        embedding=EmbeddingConfig(provider="openai", api_key="sk-..."),
    )
    pipeline = RAGPipeline(config)

    result = await pipeline.query("How should I chunk documents for RAG?")
    print(result.context_block)

    await pipeline.add_document("Runbook", "Restart the indexer nightly...")
    print(pipeline.get_stats())
    ```

Without an embedding provider the pipeline falls back to keyword search:
    ```python
    pipeline = RAGPipeline()
    result = await pipeline.query("vector database")
    ```
"""

# Data structures
from .document import (
    Document,
    ChunkPosition,
    Chunk,
    SearchResult,
    PipelineStats,
    PipelineResult,
    CorpusStats,
    AddDocumentResult,
)

# Base classes
from .base import BaseEmbedding, BaseChunker, BaseReranker

# Configuration
from .config import RAGConfig, EmbeddingConfig, load_config

# Exceptions
from .exceptions import (
    RAGError,
    EmbeddingError,
    EmbeddingUnavailableError,
    EmbeddingDimensionError,
)

# Embedding providers
from .embeddings import (
    OpenAIEmbedding,
    LocalEmbedding,
    FakeEmbedding,
    EmbeddingOutcome,
    IngestionReport,
    create_embedding,
    embed_text,
    embed_chunks,
)

# Chunking
from .chunking import ParagraphChunker

# Search
from .vectorstore import VectorIndex, cosine_similarity
from .retriever import LexicalScorer, HybridSearcher, reciprocal_rank_fusion

# Query expansion and reranking
from .expansion import QueryExpander
from .reranker import CrossSimilarityReranker

# Corpus and pipeline
from .corpus import CorpusState, InitState, KEYWORD_FALLBACK, load_builtin_documents
from .pipeline import RAGPipeline

__version__ = "0.1.0"

__all__ = [
    # Data structures
    "Document",
    "ChunkPosition",
    "Chunk",
    "SearchResult",
    "PipelineStats",
    "PipelineResult",
    "CorpusStats",
    "AddDocumentResult",
    # Base classes
    "BaseEmbedding",
    "BaseChunker",
    "BaseReranker",
    # Configuration
    "RAGConfig",
    "EmbeddingConfig",
    "load_config",
    # Exceptions
    "RAGError",
    "EmbeddingError",
    "EmbeddingUnavailableError",
    "EmbeddingDimensionError",
    # Embeddings
    "OpenAIEmbedding",
    "LocalEmbedding",
    "FakeEmbedding",
    "EmbeddingOutcome",
    "IngestionReport",
    "create_embedding",
    "embed_text",
    "embed_chunks",
    # Chunking
    "ParagraphChunker",
    # Search
    "VectorIndex",
    "cosine_similarity",
    "LexicalScorer",
    "HybridSearcher",
    "reciprocal_rank_fusion",
    # Expansion and reranking
    "QueryExpander",
    "CrossSimilarityReranker",
    # Corpus and pipeline
    "CorpusState",
    "InitState",
    "KEYWORD_FALLBACK",
    "load_builtin_documents",
    "RAGPipeline",
]
