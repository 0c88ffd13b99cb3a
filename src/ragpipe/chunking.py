"""Document chunking strategies."""

import re
from typing import Optional

from .base import BaseChunker
from .document import Chunk, ChunkPosition

# A blank line, optionally holding stray spaces or tabs
PARAGRAPH_BREAK_RE = re.compile(r"\r?\n(?:[ \t]*\r?\n)+")
PARAGRAPH_JOINER = "\n\n"


def chunk_id_prefix(label: str) -> str:
    """Prefix shared by the ids of every chunk cut from ``label``."""
    return re.sub(r"\s+", "_", label)


class ParagraphChunker(BaseChunker):
    """Chunk documents on paragraph boundaries with a character overlap.

    Paragraphs are accumulated into a buffer until adding the next one would
    push it past ``chunk_size``. The buffer is then flushed and the next one is
    seeded with the last ``overlap`` characters of the flushed text.

    A single paragraph longer than ``chunk_size`` is kept whole. Oversized
    chunks are accepted in exchange for never cutting mid-sentence.
    """

    def __init__(
        self,
        chunk_size: int = 400,
        overlap: int = 80,
        min_chunk_chars: int = 20,
    ):
        """Initialize the paragraph chunker.

        Args:
            chunk_size: Target maximum characters per chunk
            overlap: Characters carried over from the previous chunk
            min_chunk_chars: Chunks shorter than this once trimmed are dropped
        """
        if overlap >= chunk_size:
            raise ValueError("Overlap must be less than chunk_size")

        self.chunk_size = chunk_size
        self.overlap = overlap
        self.min_chunk_chars = min_chunk_chars

    def chunk(
        self,
        text: str,
        source: str,
        id_prefix: Optional[str] = None,
    ) -> list[Chunk]:
        """Split document text into overlapping paragraph chunks."""
        pieces = self._assemble(self._paragraphs(text))

        kept = []
        for content, start, end in pieces:
            content = content.strip()
            if len(content) < self.min_chunk_chars:
                continue
            kept.append((content, start, end))

        label = chunk_id_prefix(id_prefix or source)
        return [
            Chunk(
                id=f"{label}_chunk_{index}",
                content=content,
                source=source,
                position=ChunkPosition(
                    chunk_index=index,
                    total_chunks=len(kept),
                    char_start=start,
                    char_end=end,
                ),
            )
            for index, (content, start, end) in enumerate(kept)
        ]

    def _paragraphs(self, text: str) -> list[tuple[str, int, int]]:
        """Return (paragraph, start, end) with offsets into the raw text."""
        spans = []
        cursor = 0
        for match in PARAGRAPH_BREAK_RE.finditer(text):
            spans.append((cursor, match.start()))
            cursor = match.end()
        spans.append((cursor, len(text)))

        paragraphs = []
        for start, end in spans:
            raw = text[start:end]
            stripped = raw.strip()
            if not stripped:
                continue
            start += len(raw) - len(raw.lstrip())
            end -= len(raw) - len(raw.rstrip())
            paragraphs.append((stripped.replace("\r\n", "\n"), start, end))

        return paragraphs

    def _assemble(
        self,
        paragraphs: list[tuple[str, int, int]],
    ) -> list[tuple[str, int, int]]:
        """Accumulate paragraphs into overlapping buffers."""
        pieces = []
        buffer = ""
        buffer_start = 0
        buffer_end = 0

        for para, para_start, para_end in paragraphs:
            if buffer and len(buffer) + len(PARAGRAPH_JOINER) + len(para) > self.chunk_size:
                pieces.append((buffer, buffer_start, buffer_end))

                overlap_text = buffer[-self.overlap:] if self.overlap > 0 else ""
                if overlap_text:
                    buffer_start = max(buffer_start, buffer_end - len(overlap_text))
                    buffer = overlap_text + PARAGRAPH_JOINER + para
                else:
                    buffer_start = para_start
                    buffer = para
            elif buffer:
                buffer += PARAGRAPH_JOINER + para
            else:
                buffer = para
                buffer_start = para_start

            buffer_end = para_end

        if buffer.strip():
            pieces.append((buffer, buffer_start, buffer_end))

        return pieces
