"""Hybrid chunker: recursive windows followed by a greedy merge pass."""

from __future__ import annotations

from docent.db.models import Chunk, ChunkType
from docent.ingest.base import Span
from docent.ingest.normalize import normalize_text
from docent.ingest.recursive import RecursiveChunker


class HybridChunker(RecursiveChunker):
    """Recursive chunking, then merge small neighbours up to ``merge_ceiling``.

    A single left-to-right pass joins the current chunk with the next one
    while their combined length stays under ``merge_ceiling``. The merged
    chunk covers ``a.char_start .. b.char_end`` and its text is the
    normalized source span, so the overlap between the two is not repeated.
    Ordinals are dense from zero and every chunk is tagged ``hybrid``.
    """

    chunk_type = ChunkType.HYBRID

    def __init__(
        self, max_chars: int = 1500, overlap: int = 200, merge_ceiling: int = 1800
    ) -> None:
        super().__init__(max_chars=max_chars, overlap=overlap)
        if merge_ceiling < 1:
            raise ValueError("merge_ceiling must be >= 1")
        self.merge_ceiling = merge_ceiling

    def chunk(self, document_id: str, text: str) -> list[Chunk]:
        if not text.strip():
            return []
        return self._make_chunks(document_id, self.merge(text, self.windows(text)))

    def merge(self, text: str, windows: list[Span]) -> list[Span]:
        """Greedily merge adjacent *windows* of *text*."""
        if not windows:
            return []
        merged: list[Span] = []
        current = windows[0]
        for nxt in windows[1:]:
            if len(current.text) + len(nxt.text) < self.merge_ceiling:
                joined = normalize_text(text[current.start : nxt.end])
                if len(joined) <= self.merge_ceiling:
                    current = Span(current.start, nxt.end, joined)
                    continue
            merged.append(current)
            current = nxt
        merged.append(current)
        return merged
