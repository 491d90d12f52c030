"""Fixtures shared by the retrieval and answering tests."""

from __future__ import annotations

import asyncio

import pytest

from docent.db.models import Chunk, ChunkType
from docent.rag.retriever import Candidate, Retriever

CATS = "Cats purr when they are happy."
DOGS = "Dogs bark at the mail carrier."
SECRET = "Cats purr loudly in the secret lab."


@pytest.fixture
def library(pipeline):
    """Two users with overlapping vocabulary, fully processed. Maps file name → document id."""
    ids = {}
    for user, name, text in [
        ("alice", "cats.txt", CATS),
        ("alice", "dogs.txt", DOGS),
        ("bob", "secret.txt", SECRET),
    ]:
        accepted = pipeline.accept(text.encode(), name, user)
        asyncio.run(pipeline.process(accepted.document_id))
        ids[name] = accepted.document_id
    return ids


@pytest.fixture
def retriever(repo, embedder):
    return Retriever(repo, embedder)


@pytest.fixture
def make_candidate():
    """Factory for a Candidate wrapping an unsaved chunk."""

    def _make(text: str, embedding: list[float] | None = None, index: int = 0) -> Candidate:
        chunk = Chunk(
            document_id="doc-1",
            chunk_index=index,
            chunk_type=ChunkType.PARAGRAPH,
            char_start=0,
            char_end=len(text),
            text=text,
            embedding=embedding,
            id=index + 1,
        )
        return Candidate(chunk=chunk, distance=0.0, file_name="doc.txt")

    return _make
