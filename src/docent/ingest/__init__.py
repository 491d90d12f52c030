"""docent ingest pipeline: normalization, classification, chunking, extraction."""

from docent.ingest.base import BaseChunker, Span
from docent.ingest.classifier import DocType, classify, strategy_for
from docent.ingest.extractor import ExtractedText, PdfExtractor, TextExtractor
from docent.ingest.hybrid import HybridChunker
from docent.ingest.normalize import normalize_text
from docent.ingest.paragraph import ParagraphChunker
from docent.ingest.recursive import RecursiveChunker
from docent.ingest.registry import CHUNKERS, get_chunker

__all__ = [
    "BaseChunker",
    "CHUNKERS",
    "DocType",
    "ExtractedText",
    "HybridChunker",
    "ParagraphChunker",
    "PdfExtractor",
    "RecursiveChunker",
    "Span",
    "TextExtractor",
    "classify",
    "get_chunker",
    "normalize_text",
    "strategy_for",
]
