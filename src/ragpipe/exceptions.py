"""
Retrieval pipeline exceptions.
"""


class RAGError(Exception):
    """Base exception for retrieval pipeline errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class EmbeddingError(RAGError):
    """Raised when an embedding provider call fails."""

    def __init__(self, message: str, provider: str | None = None):
        self.provider = provider
        prefix = f"Embedding provider '{provider}' failed: " if provider else "Embedding failed: "
        super().__init__(prefix + message, code=1001)


class EmbeddingUnavailableError(RAGError):
    """Raised when no embedding provider is configured or reachable."""

    def __init__(self, message: str = "No embedding provider available"):
        super().__init__(message, code=1002)


class EmbeddingDimensionError(RAGError):
    """Raised when a vector does not match the corpus dimensionality."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}",
            code=1003,
        )
