"""Recursive chunker: bounded windows built from paragraphs, with overlap."""

from __future__ import annotations

import re

from docent.db.models import Chunk, ChunkType
from docent.ingest.base import BaseChunker, Span
from docent.ingest.normalize import normalize_text

_WORD_RE = re.compile(r"\S+")


class RecursiveChunker(BaseChunker):
    """Accumulate paragraphs into windows of at most ``max_chars`` characters.

    Strategy:
    - Paragraphs are absorbed into a running buffer while the buffer's
      normalized text stays within ``max_chars``.
    - When the next paragraph does not fit, the buffer is flushed and the new
      buffer is seeded with the last ``overlap`` characters of the flushed one
      (snapped forward to a word start, never before the flushed buffer's
      start).
    - A paragraph longer than ``max_chars`` is first hard-split at whitespace
      into windows of at most ``max_chars``.

    No chunk is longer than ``max_chars + overlap`` characters.
    """

    chunk_type = ChunkType.RECURSIVE

    def chunk(self, document_id: str, text: str) -> list[Chunk]:
        if not text.strip():
            return []
        return self._make_chunks(document_id, self.windows(text))

    def windows(self, text: str) -> list[Span]:
        """Return the overlapping windows of *text* as spans."""
        units: list[tuple[int, int]] = []
        for span in self.paragraph_spans(text):
            if len(span.text) <= self.max_chars:
                units.append((span.start, span.end))
            else:
                units.extend(self._hard_split(text, span.start, span.end))

        windows: list[Span] = []
        buf_start: int | None = None
        buf_end = 0
        for unit_start, unit_end in units:
            if buf_start is None:
                buf_start, buf_end = unit_start, unit_end
                continue
            if len(normalize_text(text[buf_start:unit_end])) <= self.max_chars:
                buf_end = unit_end
                continue
            windows.append(self._span(text, buf_start, buf_end))
            seed = self._seed_start(text, buf_start, buf_end, unit_start)
            if len(normalize_text(text[seed:unit_end])) > self.max_chars + self.overlap:
                seed = unit_start
            buf_start, buf_end = seed, unit_end

        if buf_start is not None:
            windows.append(self._span(text, buf_start, buf_end))
        return [w for w in windows if w.text]

    def _seed_start(self, text: str, buf_start: int, buf_end: int, limit: int) -> int:
        """Offset where the next buffer begins: ``overlap`` chars before the flush."""
        if self.overlap == 0:
            return limit
        pos = max(buf_start, buf_end - self.overlap, 0)
        # Do not start mid-word.
        while pos < limit and pos > buf_start and not text[pos - 1].isspace():
            pos += 1
        while pos < limit and text[pos].isspace():
            pos += 1
        return pos

    def _hard_split(self, text: str, start: int, end: int) -> list[tuple[int, int]]:
        """Split text[start:end] at whitespace into pieces of at most ``max_chars``."""
        pieces: list[tuple[int, int]] = []
        piece_start: int | None = None
        piece_end = 0
        length = 0
        for match in _WORD_RE.finditer(text, start, end):
            w_start, w_end = match.span()
            # A single word longer than the budget is cut into fixed slices.
            while w_end - w_start > self.max_chars:
                if piece_start is not None:
                    pieces.append((piece_start, piece_end))
                    piece_start, length = None, 0
                pieces.append((w_start, w_start + self.max_chars))
                w_start += self.max_chars
            if w_start >= w_end:
                continue
            word_len = w_end - w_start
            if piece_start is None:
                piece_start, piece_end, length = w_start, w_end, word_len
            elif length + 1 + word_len <= self.max_chars:
                piece_end = w_end
                length += 1 + word_len
            else:
                pieces.append((piece_start, piece_end))
                piece_start, piece_end, length = w_start, w_end, word_len
        if piece_start is not None:
            pieces.append((piece_start, piece_end))
        return pieces

    @staticmethod
    def _span(text: str, start: int, end: int) -> Span:
        return Span(start, end, normalize_text(text[start:end]))
