"""Tests for document classification and strategy selection."""

from __future__ import annotations

import pytest

from docent.db.models import ChunkType
from docent.ingest.classifier import DocType, classify, mean_paragraph_length, strategy_for

_LONG_PARAGRAPH = "word " * 150  # 750 chars


def test_short_document_with_short_paragraphs():
    assert classify("Intro text.\n\nBody text.", page_count=1) is DocType.SHORT_STRUCTURED


def test_short_rule_wins_over_vocabulary():
    assert classify("My resume.\n\nWork experience.", page_count=2) is DocType.SHORT_STRUCTURED


def test_page_count_below_one_treated_as_one():
    assert classify("Short.", page_count=0) is DocType.SHORT_STRUCTURED


def test_resume_vocabulary():
    text = _LONG_PARAGRAPH + "\n\nProfessional Experience at ACME"
    assert classify(text, page_count=3) is DocType.RESUME


def test_curriculum_vitae_case_insensitive():
    assert classify(_LONG_PARAGRAPH + " CURRICULUM VITAE", page_count=1) is DocType.RESUME


def test_long_structured_markers():
    assert classify("Table of Contents\n" + _LONG_PARAGRAPH, page_count=10) is DocType.LONG_STRUCTURED
    assert classify(_LONG_PARAGRAPH + " Chapter 3", page_count=10) is DocType.LONG_STRUCTURED


def test_legal_vocabulary():
    assert classify("WHEREAS the parties " + _LONG_PARAGRAPH, page_count=5) is DocType.LEGAL


def test_generic_fallback():
    assert classify(_LONG_PARAGRAPH, page_count=5) is DocType.GENERIC


def test_many_pages_are_not_short():
    assert classify("Tiny.\n\nParagraphs.", page_count=3) is DocType.GENERIC


def test_mean_paragraph_length():
    assert mean_paragraph_length("aa\n\nbbbb") == 3


@pytest.mark.parametrize(
    "doc_type, expected",
    [
        (DocType.SHORT_STRUCTURED, ChunkType.PARAGRAPH),
        (DocType.RESUME, ChunkType.PARAGRAPH),
        (DocType.LONG_STRUCTURED, ChunkType.HYBRID),
        (DocType.LEGAL, ChunkType.HYBRID),
        (DocType.GENERIC, ChunkType.HYBRID),
    ],
)
def test_strategy_for(doc_type, expected):
    assert strategy_for(doc_type) is expected
