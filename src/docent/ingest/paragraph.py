"""Paragraph chunker: one chunk per blank-line separated paragraph."""

from __future__ import annotations

from docent.db.models import Chunk, ChunkType
from docent.ingest.base import BaseChunker


class ParagraphChunker(BaseChunker):
    """Split on blank lines; no overlap, no merging.

    Used for short structured documents whose paragraphs are already close
    to retrieval granularity. Offsets are non-decreasing in ordinal order.
    """

    chunk_type = ChunkType.PARAGRAPH

    def chunk(self, document_id: str, text: str) -> list[Chunk]:
        if not text.strip():
            return []
        return self._make_chunks(document_id, self.paragraph_spans(text))
