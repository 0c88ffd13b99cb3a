"""
Test configuration and fixtures.
"""

import asyncio

import pytest

from ragpipe import BaseEmbedding, Document, EmbeddingError


CONCEPT_AXES = [
    ("cat", "feline", "kitten", "whisker"),
    ("dog", "canine", "puppy", "bark"),
    ("vector", "embedding", "similarity"),
]


class ConceptEmbedding(BaseEmbedding):
    """Embeds text as counts of concept words, one axis per concept.

    A small constant component keeps every vector non-zero.
    """

    def __init__(self):
        self.calls: list[str] = []

    @property
    def model_name(self) -> str:
        return "concept-test"

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        lower = text.lower()
        vector = [float(sum(lower.count(word) for word in axis)) for axis in CONCEPT_AXES]
        vector.append(0.1)
        return vector


class TrackingEmbedding(ConceptEmbedding):
    """Concept embedding that records the peak number of concurrent calls."""

    def __init__(self, delay: float = 0.01):
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed(self, text: str) -> list[float]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return await super().embed(text)
        finally:
            self.in_flight -= 1


class FailingEmbedding(BaseEmbedding):
    """Embedding provider whose every call fails."""

    def __init__(self):
        self.calls = 0

    @property
    def model_name(self) -> str:
        return "failing-test"

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        raise EmbeddingError("service unavailable", provider="test")


@pytest.fixture
def concept_embedding():
    return ConceptEmbedding()


@pytest.fixture
def tracking_embedding():
    return TrackingEmbedding()


@pytest.fixture
def failing_embedding():
    return FailingEmbedding()


@pytest.fixture
def pet_documents():
    """Two single-topic documents of three paragraphs each."""
    cats = Document(
        title="Cats",
        content=(
            "The cat is a small feline that spends much of the day asleep.\n\n"
            "A kitten learns to hunt by watching older felines stalk their prey.\n\n"
            "Feline whiskers help a cat judge whether it fits through a gap."
        ),
    )
    dogs = Document(
        title="Dogs",
        content=(
            "The dog is a loyal canine that enjoys long walks outside.\n\n"
            "A puppy needs patient training and plenty of sleep to grow.\n\n"
            "Canine companions bark to warn their owners about strangers."
        ),
    )
    return [cats, dogs]


@pytest.fixture
def long_paragraphs():
    """Document text whose paragraphs each fill most of a chunk."""
    return "\n\n".join(
        " ".join(f"Paragraph {i} covers point {j} of the topic." for j in range(8))
        for i in range(25)
    )
