"""Periodic scan that processes documents the queue never delivered."""

from __future__ import annotations

import asyncio
import logging

from docent.db.repository import Repository
from docent.errors import DocentError
from docent.ingest.pipeline import IngestionPipeline, ProcessResult

logger = logging.getLogger(__name__)


class Poller:
    """Every *interval* seconds, process up to *batch_size* newest documents without chunks.

    Safe to run alongside request-triggered ingestion: ``process()`` claims a
    lease, so a document being handled elsewhere is skipped.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        repo: Repository,
        interval: float = 30.0,
        batch_size: int = 20,
    ) -> None:
        self.pipeline = pipeline
        self.repo = repo
        self.interval = interval
        self.batch_size = batch_size
        self._stop = asyncio.Event()

    async def scan_once(self) -> list[ProcessResult]:
        results: list[ProcessResult] = []
        pending = self.repo.list_unprocessed(self.batch_size)
        if pending:
            logger.info("Poller found %d unprocessed documents", len(pending))
        for document in pending:
            try:
                results.append(await self.pipeline.process(document.id))
            except DocentError as exc:
                logger.error(
                    "Poller could not process document: %s",
                    exc,
                    extra={"document_id": document.id},
                )
        return results

    async def run(self) -> None:
        """Scan until ``stop()`` is called. A failed scan is logged and retried next interval."""
        self._stop.clear()
        while not self._stop.is_set():
            try:
                await self.scan_once()
            except Exception:
                logger.exception("Poller scan failed, retrying in %.1fs", self.interval)
            try:
                await asyncio.wait_for(self._stop.wait(), self.interval)
            except asyncio.TimeoutError:
                continue

    def stop(self) -> None:
        self._stop.set()
