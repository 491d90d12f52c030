"""Component wiring: builds one process's docent stack from a DocentConfig."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path

from docent.config import DocentConfig
from docent.db.connection import Database
from docent.db.repository import Repository
from docent.db.schema import initialize
from docent.documents import DocumentService
from docent.ingest.extractor import PdfExtractor, TextExtractor
from docent.ingest.pipeline import IngestionPipeline
from docent.jobs.dispatch import Dispatcher, DispatchMode, IngestTrigger
from docent.jobs.poller import Poller
from docent.jobs.queue import JobQueue, RedisJobQueue
from docent.jobs.worker import Worker
from docent.rag.answerer import Answerer
from docent.rag.correction import SelfCorrector
from docent.rag.embedder import Embedder, SentenceTransformerEmbedder
from docent.rag.llm_client import Generator, build_generator
from docent.rag.reranker import CrossEncoderReranker, Reranker
from docent.rag.retriever import Retriever
from docent.storage import LocalBlobStore


@dataclass
class App:
    conn: sqlite3.Connection
    repo: Repository
    embedder: Embedder
    queue: JobQueue | None
    pipeline: IngestionPipeline
    dispatcher: Dispatcher
    trigger: IngestTrigger
    poller: Poller
    worker: Worker
    answerer: Answerer
    documents: DocumentService

    def warm_up(self) -> None:
        """Start loading the embedding and reranking models in the background."""
        self.embedder.warm_up()
        if self.answerer.reranker is not None:
            self.answerer.reranker.warm_up()

    async def aclose(self) -> None:
        if self.queue is not None:
            await self.queue.close()
        self.conn.close()


def build_app(
    cfg: DocentConfig,
    *,
    embedder: Embedder | None = None,
    reranker: Reranker | None = None,
    generator: Generator | None = None,
    queue: JobQueue | None = None,
    extractor: TextExtractor | None = None,
    force_mode: DispatchMode | None = None,
) -> App:
    """Open the database and build every component.

    Collaborators not passed in are built from *cfg*: the generator only if
    its API key is set, the reranker only if ``rerank.enabled``, the queue
    only if ``queue.url`` is set.
    """
    conn = Database(Path(cfg.database.path)).connect()
    initialize(conn)
    repo = Repository(conn)
    blobs = LocalBlobStore(cfg.storage.root)

    embedder = embedder or SentenceTransformerEmbedder(cfg.embedding.model)
    if reranker is None and cfg.rerank.enabled:
        reranker = CrossEncoderReranker(cfg.rerank.model)
    if generator is None:
        generator = build_generator(cfg.generation)
    if queue is None and cfg.queue.url:
        queue = RedisJobQueue(cfg.queue.url, cfg.queue.topic)

    pipeline = IngestionPipeline(
        repo,
        blobs,
        extractor or PdfExtractor(),
        embedder,
        chunking=cfg.chunking,
        max_indexed_dims=cfg.embedding.max_indexed_dims,
        concurrency=cfg.embedding.concurrency,
        lease_seconds=cfg.ingest.lease_seconds,
    )
    dispatcher = Dispatcher(queue, probe_timeout=cfg.queue.probe_timeout, force=force_mode)
    poller = Poller(pipeline, repo, cfg.poller.interval, cfg.poller.batch_size)

    retriever = Retriever(
        repo, embedder, cfg.embedding.max_indexed_dims, cfg.retrieval.candidates
    )
    corrector = (
        SelfCorrector(retriever, generator, cfg.correction.threshold)
        if cfg.correction.enabled
        else None
    )
    answerer = Answerer(
        retriever,
        embedder,
        generator,
        corrector,
        reranker,
        rerank_top_k=cfg.rerank.top_k,
        faithfulness_top_k=cfg.faithfulness.top_k,
        threshold=cfg.correction.threshold,
    )

    return App(
        conn=conn,
        repo=repo,
        embedder=embedder,
        queue=queue,
        pipeline=pipeline,
        dispatcher=dispatcher,
        trigger=IngestTrigger(pipeline, dispatcher),
        poller=poller,
        worker=Worker(pipeline, dispatcher, poller),
        answerer=answerer,
        documents=DocumentService(repo, blobs),
    )
