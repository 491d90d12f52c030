"""Shared pytest fixtures and in-process fakes for external collaborators."""

from __future__ import annotations

import asyncio
import hashlib
import math
import re

import pytest

from docent.db.connection import Database
from docent.db.repository import Repository
from docent.db.schema import initialize
from docent.errors import QueueUnavailableError
from docent.ingest.extractor import PdfExtractor
from docent.ingest.pipeline import IngestionPipeline
from docent.jobs.queue import Job, JobQueue, Reservation
from docent.rag.embedder import Embedder
from docent.rag.llm_client import Generator
from docent.rag.reranker import Reranker
from docent.storage import LocalBlobStore

_WORD_RE = re.compile(r"\w+")


def _words(text: str) -> list[str]:
    return _WORD_RE.findall(text.lower())


class FakeEmbedder(Embedder):
    """Deterministic bag-of-words embedding, unit length.

    Texts sharing words have positive cosine similarity; identical texts 1.0.
    Texts listed in ``fail_on`` raise RuntimeError.
    """

    def __init__(self, dims: int = 256, fail_on: set[str] | None = None) -> None:
        self.dims = dims
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise RuntimeError(f"cannot embed {text!r}")
        vec = [0.0] * self.dims
        for word in _words(text):
            idx = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dims
            vec[idx] += 1.0
        norm = math.sqrt(sum(v * v for v in vec))
        return [v / norm for v in vec] if norm else vec


class FakeReranker(Reranker):
    """Scores by the fraction of query words found in the text."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    async def score(self, query: str, texts: list[str]) -> list[float]:
        if self.fail:
            raise RuntimeError("reranker down")
        q = set(_words(query))
        return [len(q & set(_words(t))) / len(q) if q else 0.0 for t in texts]


class FakeGenerator(Generator):
    """Answers with the first context paragraph; rewrites to a fixed query."""

    def __init__(
        self,
        rewrite: str = "",
        answer: str | None = None,
        fail_generate: bool = False,
        fail_rewrite: bool = False,
    ) -> None:
        self.rewrite = rewrite
        self.answer = answer
        self.fail_generate = fail_generate
        self.fail_rewrite = fail_rewrite
        self.rewrites: list[str] = []
        self.prompts: list[tuple[str, str]] = []

    async def generate(self, question: str, context: str) -> str:
        if self.fail_generate:
            raise RuntimeError("generator down")
        self.prompts.append((question, context))
        if self.answer is not None:
            return self.answer
        return context.split("\n\n")[0] if context else "I don't know."

    async def rewrite_query(self, question: str) -> str:
        self.rewrites.append(question)
        if self.fail_rewrite:
            raise RuntimeError("rewrite failed")
        return self.rewrite


class InMemoryJobQueue(JobQueue):
    """List-backed JobQueue with the same reserve/ack semantics as Redis."""

    def __init__(self, up: bool = True, hang: bool = False) -> None:
        self.up = up
        self.hang = hang
        self.pending: list[str] = []
        self.processing: list[str] = []

    async def ping(self) -> bool:
        if self.hang:
            await asyncio.sleep(60)
        if not self.up:
            raise QueueUnavailableError("queue is down")
        return True

    async def enqueue(self, job: Job) -> None:
        if not self.up:
            raise QueueUnavailableError("queue is down")
        self.pending.append(job.to_json())

    async def reserve(self, timeout: float = 5.0) -> Reservation | None:
        if not self.pending:
            await asyncio.sleep(min(timeout, 0.01))
            return None
        raw = self.pending.pop(0)
        self.processing.append(raw)
        try:
            job: Job | None = Job.from_json(raw)
        except ValueError:
            job = None
        return Reservation(job=job, raw=raw)

    async def ack(self, reservation: Reservation) -> None:
        self.processing.remove(reservation.raw)

    async def requeue_unacked(self) -> int:
        moved = len(self.processing)
        self.pending = self.processing + self.pending
        self.processing = []
        return moved


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "docent.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def pipeline(repo, blobs, embedder):
    return IngestionPipeline(repo, blobs, PdfExtractor(), embedder)


@pytest.fixture
def fakes():
    """Access to the fake classes for tests that need custom instances."""

    class _Fakes:
        Embedder = FakeEmbedder
        Reranker = FakeReranker
        Generator = FakeGenerator
        Queue = InMemoryJobQueue

    return _Fakes
