"""
Configuration for the retrieval pipeline.
"""

import json
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


class EmbeddingConfig(BaseModel):
    """Embedding provider settings.

    Resolved once by the surrounding application and handed to the pipeline;
    nothing in this package reads environment variables.
    """

    provider: Optional[Literal["openai", "local", "fake"]] = None
    model: str = "text-embedding-3-small"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: Optional[float] = None
    dimension: int = 256


class RAGConfig(BaseModel):
    """Tunable constants for chunking, scoring, fusion and re-ranking."""

    # Chunking
    chunk_size: int = Field(default=400, gt=0)
    chunk_overlap: int = Field(default=80, ge=0)
    min_chunk_chars: int = Field(default=20, ge=0)

    # BM25
    bm25_k1: float = 1.5
    bm25_b: float = 0.75
    avg_doc_length: float = Field(default=100.0, gt=0)
    min_term_length: int = Field(default=3, ge=1)

    # Fusion and retrieval
    rrf_k: int = Field(default=60, ge=0)
    top_k: int = Field(default=5, gt=0)
    rerank_top: int = Field(default=3, gt=0)

    # Embedding and re-ranking
    embed_batch_size: int = Field(default=10, gt=0)
    overlap_boost: float = 0.5

    context_separator: str = "\n\n---\n\n"

    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)

    @model_validator(mode="after")
    def _check_overlap(self) -> "RAGConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> "RAGConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "RAGConfig":
        """Load configuration from file (YAML or JSON)."""
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        elif path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")


def load_config(path: str | Path = "ragpipe.yaml") -> RAGConfig:
    """
    Load pipeline configuration from file.

    Args:
        path: Path to config file

    Returns:
        RAGConfig instance, with defaults when the file does not exist
    """
    path = Path(path)

    if not path.exists():
        return RAGConfig()

    return RAGConfig.from_file(path)
