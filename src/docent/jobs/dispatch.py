"""Dispatch policy: queue the work, run it inline, or leave it to the poller.

The mode is chosen by probing the queue with a short timeout. A queue that
is down or slow degrades to inline processing instead of blocking uploads.
Tests force a mode with ``Dispatcher(force=...)``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from docent.db.models import DocumentStatus
from docent.errors import QueueUnavailableError
from docent.ingest.pipeline import IngestionPipeline
from docent.jobs.queue import Job, JobQueue

logger = logging.getLogger(__name__)


class DispatchMode(str, Enum):
    QUEUED = "queued"
    INLINE = "inline"
    POLL_RECOVERED = "poll_recovered"


class Dispatcher:
    """Chooses a DispatchMode per request (or once at worker start-up)."""

    def __init__(
        self,
        queue: JobQueue | None,
        probe_timeout: float = 2.0,
        force: DispatchMode | None = None,
    ) -> None:
        self.queue = queue
        self.probe_timeout = probe_timeout
        self.force = force

    async def select(self) -> DispatchMode:
        if self.force is not None:
            return self.force
        if self.queue is None:
            return DispatchMode.INLINE
        try:
            if await asyncio.wait_for(self.queue.ping(), self.probe_timeout):
                return DispatchMode.QUEUED
        except asyncio.TimeoutError:
            logger.warning("Queue probe timed out after %.1fs", self.probe_timeout)
        except QueueUnavailableError as exc:
            logger.warning("Queue unavailable: %s", exc.message)
        return DispatchMode.INLINE


@dataclass
class IngestResult:
    document_id: str
    queued: bool
    note: str | None = None


class IngestTrigger:
    """Entry point for uploads: accept the bytes, then dispatch processing."""

    def __init__(self, pipeline: IngestionPipeline, dispatcher: Dispatcher) -> None:
        self.pipeline = pipeline
        self.dispatcher = dispatcher

    async def submit(self, file_bytes: bytes, file_name: str, user_id: str) -> IngestResult:
        """Accept an upload and hand it off for processing.

        Raises:
            InputError: Missing file, file name or user.
            IngestionError: The upload could not be stored, or inline
                processing failed unexpectedly.
        """
        accepted = self.pipeline.accept(file_bytes, file_name, user_id)
        if not accepted.created:
            return IngestResult(accepted.document_id, queued=False, note="duplicate")

        mode = await self.dispatcher.select()
        if mode is DispatchMode.QUEUED:
            job = Job(accepted.storage_path, accepted.document_id, user_id)
            try:
                await self.dispatcher.queue.enqueue(job)
                return IngestResult(accepted.document_id, queued=True)
            except QueueUnavailableError as exc:
                logger.warning(
                    "Enqueue failed, processing inline: %s",
                    exc.message,
                    extra={"document_id": accepted.document_id},
                )
                mode = DispatchMode.INLINE

        if mode is DispatchMode.POLL_RECOVERED:
            return IngestResult(accepted.document_id, queued=False, note="deferred to poller")

        result = await self.pipeline.process(accepted.document_id)
        if result.status is DocumentStatus.FAILED:
            note = "extraction failed"
        elif result.skipped:
            note = "already processing"
        elif result.status is DocumentStatus.UPLOADED:
            note = "no chunks stored, left for the poller"
        else:
            note = f"processed inline ({result.chunks_written} chunks)"
        return IngestResult(accepted.document_id, queued=False, note=note)
