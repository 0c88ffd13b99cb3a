"""Corpus state and the built-in knowledge base."""

import asyncio
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

import yaml

from .chunking import chunk_id_prefix
from .document import Chunk, CorpusStats, Document
from .embeddings import IngestionReport
from .retriever import LexicalScorer
from .utils.logging import get_logger
from .vectorstore import VectorIndex

logger = get_logger(__name__)

KEYWORD_FALLBACK = "keyword_fallback"
BUILTIN_CORPUS_PATH = Path(__file__).parent / "data" / "builtin_corpus.yaml"


def load_builtin_documents(path: str | Path = BUILTIN_CORPUS_PATH) -> list[Document]:
    """Load the packaged knowledge base (or any file in the same format)."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return [Document(**doc) for doc in data.get("documents", [])]


class InitState(str, Enum):
    """Initialization lifecycle of a corpus."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class CorpusState:
    """Owns every chunk of the corpus plus the indexes built over them.

    Chunks are append-only. Initialization runs at most once: callers that
    arrive while it is in flight await the same task. Only ``clear()``
    resets the guard.
    """

    def __init__(
        self,
        vector_index: Optional[VectorIndex] = None,
        lexical_scorer: Optional[LexicalScorer] = None,
    ) -> None:
        self.chunks: list[Chunk] = []
        self.vector_index = vector_index or VectorIndex()
        self.lexical_scorer = lexical_scorer or LexicalScorer()
        self.reports: list[IngestionReport] = []
        self.state = InitState.UNINITIALIZED
        self._init_task: Optional[asyncio.Task] = None
        self._id_prefixes: set[str] = set()

    @property
    def is_ready(self) -> bool:
        return self.state is InitState.READY

    async def ensure_initialized(self, initializer: Callable[[], Awaitable[None]]) -> None:
        """Run ``initializer`` once, sharing the in-flight run with every caller.

        If the initializer fails, the error reaches every waiter and the next
        call starts a fresh attempt. A run cancelled by ``clear()`` is replaced
        by a new one, which the waiters then await.
        """
        while self.state is not InitState.READY:
            if self._init_task is None:
                self.state = InitState.INITIALIZING
                self._init_task = asyncio.ensure_future(self._run_initializer(initializer))

            task = self._init_task
            try:
                # Shielded so one cancelled caller does not cancel the shared run
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if task.cancelled() and self._init_task is not task:
                    logger.info("Initialization restarted after corpus reset")
                    continue
                raise

    async def _run_initializer(self, initializer: Callable[[], Awaitable[None]]) -> None:
        try:
            await initializer()
        except BaseException:
            if self._init_task is asyncio.current_task():
                self.state = InitState.UNINITIALIZED
                self._init_task = None
            raise

        if self._init_task is asyncio.current_task():
            self.state = InitState.READY

    def unique_label(self, title: str) -> str:
        """Return an id label for ``title`` that no earlier document used.

        Labels are compared by their chunk-id prefix, so ``"My Guide"`` and
        ``"My_Guide"`` count as the same label. Repeats get a numeric suffix.
        """
        label = title
        suffix = 1
        while chunk_id_prefix(label) in self._id_prefixes:
            suffix += 1
            label = f"{title} {suffix}"

        self._id_prefixes.add(chunk_id_prefix(label))
        return label

    def add_chunks(self, chunks: list[Chunk], report: Optional[IngestionReport] = None) -> None:
        """Append chunks to the corpus and both indexes."""
        self.chunks.extend(chunks)
        self.vector_index.add(chunks)
        self.lexical_scorer.add(chunks)
        if report is not None:
            self.reports.append(report)

    @property
    def document_count(self) -> int:
        return len({chunk.source for chunk in self.chunks})

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    def embedding_mode(self, model_name: Optional[str]) -> str:
        """Name of the active embedding model, or the keyword fallback marker."""
        if model_name and self.vector_index.count() > 0:
            return model_name
        return KEYWORD_FALLBACK

    def stats(self, model_name: Optional[str]) -> CorpusStats:
        return CorpusStats(
            documents=self.document_count,
            chunks=self.chunk_count,
            embedding_mode=self.embedding_mode(model_name),
        )

    def clear(self) -> None:
        """Drop every chunk and reset the initialization guard."""
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        self._init_task = None
        self.state = InitState.UNINITIALIZED
        self.chunks.clear()
        self.vector_index.clear()
        self.lexical_scorer.clear()
        self.reports.clear()
        self._id_prefixes.clear()
        logger.info("Corpus cleared")
