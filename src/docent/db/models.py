"""Domain models for the docent database layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DocumentStatus(str, Enum):
    """Per-document ingestion state machine.

    uploaded → extracting → classifying → chunking → embedding → persisted,
    with ``failed`` reachable from any step.
    """

    UPLOADED = "uploaded"
    EXTRACTING = "extracting"
    CLASSIFYING = "classifying"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    PERSISTED = "persisted"
    FAILED = "failed"

    @property
    def in_progress(self) -> bool:
        return self in _IN_PROGRESS


_IN_PROGRESS = frozenset(
    {
        DocumentStatus.EXTRACTING,
        DocumentStatus.CLASSIFYING,
        DocumentStatus.CHUNKING,
        DocumentStatus.EMBEDDING,
    }
)


class ChunkType(str, Enum):
    PARAGRAPH = "paragraph"
    RECURSIVE = "recursive"
    HYBRID = "hybrid"


@dataclass
class Document:
    id: str
    user_id: str
    file_name: str
    content_hash: str
    storage_path: str
    status: DocumentStatus = DocumentStatus.UPLOADED
    page_count: int = 0
    doc_type: str = ""
    error: str | None = None
    lease_until: str | None = None
    created_at: str | None = None


@dataclass
class Chunk:
    document_id: str
    chunk_index: int
    chunk_type: ChunkType
    char_start: int
    char_end: int
    text: str
    token_count: int = 0
    embedding: list[float] | None = None
    created_at: str | None = None
    id: int | None = None  # rowid; None for unsaved chunks
