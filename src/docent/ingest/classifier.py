"""Document classification and chunking-strategy selection."""

from __future__ import annotations

import re
from enum import Enum

from docent.db.models import ChunkType

_SHORT_MAX_PAGES = 2
_SHORT_MAX_MEAN_PARAGRAPH = 500

_RESUME_RE = re.compile(r"resume|curriculum vitae|experience", re.IGNORECASE)
_LONG_STRUCTURED_RE = re.compile(r"table of contents|chapter", re.IGNORECASE)
_LEGAL_RE = re.compile(r"legal|hereby|whereas", re.IGNORECASE)


class DocType(str, Enum):
    SHORT_STRUCTURED = "short_structured"
    RESUME = "resume"
    LONG_STRUCTURED = "long_structured"
    LEGAL = "legal"
    GENERIC = "generic"


_STRATEGIES: dict[DocType, ChunkType] = {
    DocType.SHORT_STRUCTURED: ChunkType.PARAGRAPH,
    DocType.RESUME: ChunkType.PARAGRAPH,
    DocType.LONG_STRUCTURED: ChunkType.HYBRID,
    DocType.LEGAL: ChunkType.HYBRID,
    DocType.GENERIC: ChunkType.HYBRID,
}


def mean_paragraph_length(text: str) -> float:
    """Mean length of the blank-line separated segments of *text*."""
    segments = text.split("\n\n")
    return sum(len(s) for s in segments) / len(segments)


def classify(text: str, page_count: int) -> DocType:
    """Return the document type tag for *text*; the first matching rule wins.

    Args:
        text: Full extracted text (not normalized; blank lines matter).
        page_count: Page count reported by the extractor. Values below 1
            are treated as 1.
    """
    pages = max(1, page_count)
    if pages <= _SHORT_MAX_PAGES and mean_paragraph_length(text) < _SHORT_MAX_MEAN_PARAGRAPH:
        return DocType.SHORT_STRUCTURED
    if _RESUME_RE.search(text):
        return DocType.RESUME
    if _LONG_STRUCTURED_RE.search(text):
        return DocType.LONG_STRUCTURED
    if _LEGAL_RE.search(text):
        return DocType.LEGAL
    return DocType.GENERIC


def strategy_for(doc_type: DocType) -> ChunkType:
    """Chunking strategy used for documents of *doc_type*."""
    return _STRATEGIES[doc_type]
