"""Chunking strategy registry: ChunkType → chunker."""

from __future__ import annotations

from docent.config import ChunkingCfg
from docent.db.models import ChunkType
from docent.ingest.base import BaseChunker
from docent.ingest.hybrid import HybridChunker
from docent.ingest.paragraph import ParagraphChunker
from docent.ingest.recursive import RecursiveChunker

CHUNKERS: dict[ChunkType, type[BaseChunker]] = {
    ChunkType.PARAGRAPH: ParagraphChunker,
    ChunkType.RECURSIVE: RecursiveChunker,
    ChunkType.HYBRID: HybridChunker,
}


def get_chunker(chunk_type: ChunkType, cfg: ChunkingCfg | None = None) -> BaseChunker:
    """Build the chunker registered for *chunk_type* from *cfg* (defaults if None)."""
    cfg = cfg or ChunkingCfg()
    if chunk_type is ChunkType.HYBRID:
        return HybridChunker(cfg.max_chars, cfg.overlap, cfg.merge_ceiling)
    return CHUNKERS[chunk_type](cfg.max_chars, cfg.overlap)
