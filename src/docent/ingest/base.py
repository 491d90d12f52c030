"""Base chunker interface shared by all chunking strategies."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import NamedTuple

from docent.db.models import Chunk, ChunkType
from docent.ingest.normalize import normalize_text

# A blank line: newline, optional horizontal/vertical whitespace, newline.
_BLANK_LINE_RE = re.compile(r"\n\s*\n")


class Span(NamedTuple):
    """A region of the source text: raw offsets plus its normalized text."""

    start: int
    end: int
    text: str


class BaseChunker(ABC):
    """Abstract base for all chunkers.

    Subclasses implement ``chunk()``. Offsets on the returned chunks always
    refer to the raw text handed to ``chunk()``; chunk text is normalized.

    Token counting uses a 4-chars-per-token approximation; no external
    tokenizer dependency is required.
    """

    chunk_type: ChunkType

    def __init__(self, max_chars: int = 1500, overlap: int = 200) -> None:
        if max_chars < 1:
            raise ValueError("max_chars must be >= 1")
        if overlap < 0:
            raise ValueError("overlap must be >= 0")
        if overlap >= max_chars:
            raise ValueError("overlap must be smaller than max_chars")
        self.max_chars = max_chars
        self.overlap = overlap

    @abstractmethod
    def chunk(self, document_id: str, text: str) -> list[Chunk]:
        """Split *text* into Chunk objects for *document_id*.

        Args:
            document_id: id of the parent Document row.
            text: Full extracted text of the document.

        Returns:
            Ordered list of Chunk objects with dense zero-based ``chunk_index``.
            Empty or whitespace-only text yields an empty list.
        """

    @staticmethod
    def count_tokens(text: str) -> int:
        """Approximate token count: 4 characters ≈ 1 token."""
        return max(1, len(text) // 4)

    @staticmethod
    def paragraph_spans(text: str) -> list[Span]:
        """Split *text* on blank lines and locate each non-empty paragraph.

        Each paragraph is found by scanning forward from the end of the
        previous one, so repeated paragraphs map to their own occurrence.
        """
        spans: list[Span] = []
        cursor = 0
        for segment in _BLANK_LINE_RE.split(text):
            stripped = segment.strip()
            normalized = normalize_text(stripped)
            if not normalized:
                continue
            start = text.find(stripped, cursor)
            end = start + len(stripped)
            spans.append(Span(start, end, normalized))
            cursor = end
        return spans

    def _make_chunks(self, document_id: str, spans: list[Span]) -> list[Chunk]:
        """Convert spans into sequentially indexed Chunks of this chunker's type."""
        return [
            Chunk(
                document_id=document_id,
                chunk_index=i,
                chunk_type=self.chunk_type,
                char_start=span.start,
                char_end=span.end,
                text=span.text,
                token_count=self.count_tokens(span.text),
            )
            for i, span in enumerate(spans)
        ]
