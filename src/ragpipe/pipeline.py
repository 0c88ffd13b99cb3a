"""End-to-end retrieval pipeline."""

import time
from typing import Optional

from .base import BaseChunker, BaseEmbedding, BaseReranker
from .chunking import ParagraphChunker
from .config import RAGConfig
from .corpus import CorpusState, load_builtin_documents
from .document import (
    AddDocumentResult,
    CorpusStats,
    Document,
    PipelineResult,
    PipelineStats,
    SearchResult,
)
from .embeddings import IngestionReport, create_embedding, embed_chunks, embed_text
from .expansion import QueryExpander
from .reranker import CrossSimilarityReranker
from .retriever import HybridSearcher, LexicalScorer
from .utils.logging import get_logger

logger = get_logger(__name__)


class RAGPipeline:
    """Query-to-context retrieval pipeline over an in-memory corpus.

    A query is expanded into variants, each variant is searched with hybrid
    vector + keyword retrieval, the candidates are merged and re-ranked
    against the original query, and the winners are formatted into a
    citation-tagged context block.

    The corpus is ingested lazily on the first query (or ``initialize()``),
    exactly once even under concurrent callers. Without a working embedding
    provider the pipeline degrades to keyword-only retrieval; embedding
    failures never surface as exceptions from ``query()``.

    Example:
        ```python
        config = RAGConfig(embedding=EmbeddingConfig(provider="openai", api_key=key))
        pipeline = RAGPipeline(config)

        result = await pipeline.query("What is RAG?")
        print(result.context_block)
        ```
    """

    def __init__(
        self,
        config: Optional[RAGConfig] = None,
        embedding: Optional[BaseEmbedding] = None,
        documents: Optional[list[Document]] = None,
        corpus: Optional[CorpusState] = None,
        chunker: Optional[BaseChunker] = None,
        expander: Optional[QueryExpander] = None,
        reranker: Optional[BaseReranker] = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration (default: RAGConfig())
            embedding: Embedding provider (default: built from config.embedding)
            documents: Documents ingested on initialization (default: built-in corpus)
            corpus: Shared corpus state (default: a fresh CorpusState)
            chunker: Document chunker (default: ParagraphChunker)
            expander: Query expander (default: QueryExpander)
            reranker: Result reranker (default: CrossSimilarityReranker)
        """
        self.config = config or RAGConfig()
        self.embedding = embedding if embedding is not None else create_embedding(self.config.embedding)
        self.documents = documents if documents is not None else load_builtin_documents()
        self.corpus = corpus or CorpusState(
            lexical_scorer=LexicalScorer(
                k1=self.config.bm25_k1,
                b=self.config.bm25_b,
                avg_doc_length=self.config.avg_doc_length,
                min_term_length=self.config.min_term_length,
            ),
        )
        self.chunker = chunker or ParagraphChunker(
            chunk_size=self.config.chunk_size,
            overlap=self.config.chunk_overlap,
            min_chunk_chars=self.config.min_chunk_chars,
        )
        self.expander = expander or QueryExpander()
        self.reranker = reranker or CrossSimilarityReranker(
            embedding=self.embedding,
            overlap_boost=self.config.overlap_boost,
            min_term_length=self.config.min_term_length,
            timeout=self.config.embedding.timeout,
        )
        self.searcher = HybridSearcher(
            vector_index=self.corpus.vector_index,
            lexical_scorer=self.corpus.lexical_scorer,
            rrf_k=self.config.rrf_k,
        )

    @property
    def model_name(self) -> Optional[str]:
        return self.embedding.model_name if self.embedding is not None else None

    @property
    def ingestion_reports(self) -> list[IngestionReport]:
        """Per-document embedding statistics, in ingestion order."""
        return list(self.corpus.reports)

    async def initialize(self) -> None:
        """Ingest the configured documents unless that already happened."""
        await self.corpus.ensure_initialized(self._ingest_documents)

    async def _ingest_documents(self) -> None:
        logger.info(f"Initializing corpus with {len(self.documents)} documents...")

        for document in self.documents:
            await self._ingest(document.title, document.content)

        logger.info(
            f"Corpus ready: {self.corpus.document_count} documents, "
            f"{self.corpus.chunk_count} chunks "
            f"({self.corpus.embedding_mode(self.model_name)})"
        )

    async def _ingest(self, title: str, content: str) -> int:
        """Chunk, embed and append one document. Returns the chunk count."""
        label = self.corpus.unique_label(title)
        chunks = self.chunker.chunk(content, title, id_prefix=label)

        embedded, report = await embed_chunks(
            self.embedding,
            chunks,
            source=title,
            batch_size=self.config.embed_batch_size,
            timeout=self.config.embedding.timeout,
        )
        self.corpus.add_chunks(embedded, report)

        logger.debug(f"Ingested '{title}': {len(embedded)} chunks")
        return len(embedded)

    async def _embed_query(self, text: str) -> Optional[list[float]]:
        if self.embedding is None:
            return None

        outcome = await embed_text(self.embedding, text, self.config.embedding.timeout)
        if not outcome.ok:
            logger.warning(f"Query embedding failed for {text!r}: {outcome.error}")
        return outcome.embedding

    async def query(self, text: str) -> PipelineResult:
        """Run the full pipeline for a query.

        Args:
            text: Free-text query

        Returns:
            PipelineResult with retrieved and re-ranked chunks and the context block
        """
        start = time.perf_counter()

        await self.initialize()

        expanded_queries = self.expander.expand(text)
        logger.debug(f"Expanded queries: {' | '.join(expanded_queries)}")

        query_vectors: dict[str, Optional[list[float]]] = {}
        merged: dict[str, SearchResult] = {}

        for variant in expanded_queries:
            if variant not in query_vectors:
                query_vectors[variant] = await self._embed_query(variant)

            results = await self.searcher.search(
                query_vectors[variant],
                variant,
                self.config.top_k,
            )
            for result in results:
                existing = merged.get(result.chunk.id)
                if existing is None or result.score > existing.score:
                    merged[result.chunk.id] = result

        retrieved = sorted(merged.values(), key=lambda r: r.score, reverse=True)
        retrieved = retrieved[:self.config.top_k]

        reranked = await self.reranker.rerank(
            text,
            retrieved,
            self.config.rerank_top,
            query_embedding=query_vectors.get(text),
        )

        context_block = self.build_context(reranked)
        elapsed_ms = round((time.perf_counter() - start) * 1000)
        top_score = reranked[0].score if reranked else 0.0

        result = PipelineResult(
            query=text,
            expanded_queries=expanded_queries,
            retrieved_chunks=retrieved,
            reranked_chunks=reranked,
            context_block=context_block,
            stats=PipelineStats(
                total_documents=self.corpus.document_count,
                total_chunks=self.corpus.chunk_count,
                search_time_ms=elapsed_ms,
                embedding_model=self.corpus.embedding_mode(self.model_name),
                top_score=top_score,
            ),
        )

        logger.info(
            f"Pipeline complete in {elapsed_ms}ms - {len(reranked)} results "
            f"(top score: {top_score:.3f})"
        )
        return result

    def build_context(self, results: list[SearchResult]) -> str:
        """Format results as source-tagged blocks joined by a separator."""
        return self.config.context_separator.join(
            f"[Source {i + 1}: {r.chunk.source} | Relevance: {r.score * 100:.1f}%]\n{r.chunk.content}"
            for i, r in enumerate(results)
        )

    async def add_document(self, title: str, content: str) -> AddDocumentResult:
        """Chunk, embed and append a document to the live corpus.

        Args:
            title: Document title, used as the chunk source
            content: Document text

        Returns:
            Number of chunks added (0 for empty or tiny content)
        """
        await self.initialize()

        added = await self._ingest(title, content)
        logger.info(f"Added document '{title}' - {added} chunks")
        return AddDocumentResult(chunks_added=added)

    def get_stats(self) -> CorpusStats:
        """Return document and chunk counts and the active embedding mode."""
        return self.corpus.stats(self.model_name)

    def reset(self) -> None:
        """Clear the corpus and its initialization guard."""
        self.corpus.clear()
