"""Embedding providers and soft-failure embedding helpers."""

import asyncio
import hashlib
import math
import struct
from typing import Optional

import openai
from pydantic import BaseModel, Field

from .base import BaseEmbedding
from .config import EmbeddingConfig
from .document import Chunk
from .exceptions import EmbeddingError, EmbeddingUnavailableError
from .utils.logging import get_logger

logger = get_logger(__name__)


class OpenAIEmbedding(BaseEmbedding):
    """OpenAI (or OpenAI-compatible) embedding API.

    Uses ``AsyncOpenAI.embeddings.create`` with one text per call.
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """Initialize the OpenAI embedding provider.

        Args:
            model: Embedding model name
            api_key: API key
            base_url: Optional base URL for OpenAI-compatible servers
        """
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self._client = None

    @property
    def model_name(self) -> str:
        return self.model

    def _get_client(self) -> openai.AsyncOpenAI:
        """Get or create the OpenAI client."""
        if self._client is None:
            kwargs = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url

            self._client = openai.AsyncOpenAI(**kwargs)
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Embed a single text using the OpenAI API."""
        client = self._get_client()

        try:
            response = await client.embeddings.create(
                model=self.model,
                input=text,
            )
        except openai.OpenAIError as e:
            raise EmbeddingError(str(e), provider="openai") from e

        if not response.data:
            raise EmbeddingError("empty response", provider="openai")

        return list(response.data[0].embedding)


class LocalEmbedding(BaseEmbedding):
    """Local embedding model using sentence-transformers.

    Runs entirely on the local machine. Requires the 'local' extra.
    """

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        device: Optional[str] = None,
        normalize: bool = True,
    ):
        """Initialize the local embedding model.

        Args:
            model_name: Name of the sentence-transformers model
            device: Device to run on (cuda, cpu, mps). Auto-detected if None.
            normalize: Whether to normalize embeddings
        """
        self._model_name = model_name
        self.device = device
        self.normalize = normalize
        self._model = None

    @property
    def model_name(self) -> str:
        return self._model_name

    def _get_model(self):
        """Get or load the sentence-transformers model."""
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError:
                raise ImportError(
                    "Local embedding requires 'sentence-transformers'. "
                    "Install it with: pip install ragpipe[local]"
                )

            self._model = SentenceTransformer(self._model_name, device=self.device)
            logger.info(f"Loaded embedding model: {self._model_name}")
        return self._model

    async def embed(self, text: str) -> list[float]:
        """Embed a single text with the local model."""
        model = self._get_model()

        # Run in thread pool to avoid blocking
        loop = asyncio.get_running_loop()
        try:
            vector = await loop.run_in_executor(
                None,
                lambda: model.encode(
                    text,
                    normalize_embeddings=self.normalize,
                    convert_to_numpy=True,
                ),
            )
        except (RuntimeError, ValueError) as e:
            raise EmbeddingError(str(e), provider="local") from e

        return vector.tolist()


class FakeEmbedding(BaseEmbedding):
    """Fake embedding that generates deterministic embeddings from text.

    Useful for demos and tests that need predictable vectors.
    The embedding is generated from the hash of the text.
    """

    def __init__(self, dimension: int = 256, seed: int = 42):
        """Initialize the fake embedding.

        Args:
            dimension: Dimension of the embedding vectors
            seed: Seed mixed into the hash
        """
        self._dimension = dimension
        self.seed = seed

    @property
    def model_name(self) -> str:
        return f"fake-{self._dimension}"

    def _hash_text(self, text: str) -> list[float]:
        """Generate a deterministic unit vector from the text hash."""
        embedding = []
        counter = 0
        while len(embedding) < self._dimension:
            digest = hashlib.sha256(f"{self.seed}:{counter}:{text}".encode()).digest()
            for offset in range(0, len(digest), 4):
                (value,) = struct.unpack(">I", digest[offset:offset + 4])
                embedding.append(value / 0xFFFFFFFF * 2.0 - 1.0)
            counter += 1

        embedding = embedding[:self._dimension]
        norm = math.sqrt(sum(v * v for v in embedding)) or 1.0
        return [v / norm for v in embedding]

    async def embed(self, text: str) -> list[float]:
        return self._hash_text(text)


def create_embedding(config: EmbeddingConfig) -> Optional[BaseEmbedding]:
    """Build the embedding provider described by the configuration.

    Returns None when no provider is configured or its credentials are
    missing; the pipeline then runs in keyword-only mode.
    """
    if config.provider is None:
        logger.warning("No embedding provider configured, falling back to keyword search")
        return None

    if config.provider == "openai":
        if not config.api_key:
            logger.warning("No embedding API key configured, falling back to keyword search")
            return None
        return OpenAIEmbedding(
            model=config.model,
            api_key=config.api_key,
            base_url=config.base_url,
        )

    if config.provider == "local":
        return LocalEmbedding(model_name=config.model)

    return FakeEmbedding(dimension=config.dimension)


class EmbeddingOutcome(BaseModel):
    """Result of one embedding call: a vector or the error that replaced it."""

    embedding: Optional[list[float]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.embedding is not None


class IngestionReport(BaseModel):
    """Embedding statistics for one ingested document."""

    source: str
    chunks: int = 0
    embedded: int = 0
    failed: int = 0
    errors: dict[str, str] = Field(default_factory=dict)


async def embed_text(
    provider: Optional[BaseEmbedding],
    text: str,
    timeout: Optional[float] = None,
) -> EmbeddingOutcome:
    """Embed text, turning any failure into an error outcome.

    Args:
        provider: Embedding provider, or None when unavailable
        text: Text to embed
        timeout: Optional per-call timeout in seconds

    Returns:
        EmbeddingOutcome carrying either the vector or the error message
    """
    if provider is None:
        return EmbeddingOutcome(error=EmbeddingUnavailableError().message)

    try:
        if timeout is not None:
            vector = await asyncio.wait_for(provider.embed(text), timeout=timeout)
        else:
            vector = await provider.embed(text)
    except asyncio.TimeoutError:
        return EmbeddingOutcome(error=f"Embedding timed out after {timeout}s")
    except Exception as e:
        return EmbeddingOutcome(error=str(e) or type(e).__name__)

    if not vector:
        return EmbeddingOutcome(error="Embedding provider returned an empty vector")

    return EmbeddingOutcome(embedding=[float(v) for v in vector])


async def embed_chunks(
    provider: Optional[BaseEmbedding],
    chunks: list[Chunk],
    source: str,
    batch_size: int = 10,
    timeout: Optional[float] = None,
) -> tuple[list[Chunk], IngestionReport]:
    """Embed chunks in bounded concurrent batches.

    At most ``batch_size`` calls are in flight; every call in a batch finishes
    before the next batch starts. Chunks whose call fails keep no embedding.

    Args:
        provider: Embedding provider, or None when unavailable
        chunks: Chunks to embed
        source: Document title the chunks came from
        batch_size: Maximum concurrent embedding calls
        timeout: Optional per-call timeout in seconds

    Returns:
        New chunk objects (embedded where possible) and an ingestion report
    """
    report = IngestionReport(source=source, chunks=len(chunks))

    if provider is None or not chunks:
        return list(chunks), report

    embedded_chunks = []
    for i in range(0, len(chunks), batch_size):
        batch = chunks[i:i + batch_size]
        tasks = [embed_text(provider, chunk.content, timeout) for chunk in batch]
        outcomes = await asyncio.gather(*tasks)

        for chunk, outcome in zip(batch, outcomes):
            if outcome.ok:
                embedded_chunks.append(chunk.model_copy(update={"embedding": outcome.embedding}))
                report.embedded += 1
            else:
                logger.warning(f"Failed to embed chunk {chunk.id}: {outcome.error}")
                embedded_chunks.append(chunk)
                report.failed += 1
                report.errors[chunk.id] = outcome.error or ""

    logger.info(f"Embedded {report.embedded}/{report.chunks} chunks of '{source}'")
    return embedded_chunks, report
