"""Background worker: consume the job queue, or poll when it is unreachable."""

from __future__ import annotations

import asyncio
import logging

from docent.errors import DocumentNotFoundError, IngestionError, QueueUnavailableError
from docent.ingest.pipeline import IngestionPipeline
from docent.jobs.dispatch import Dispatcher, DispatchMode
from docent.jobs.poller import Poller
from docent.jobs.queue import JobQueue, Reservation

logger = logging.getLogger(__name__)


class Worker:
    """Runs the ingestion back end for one process.

    The queue is probed once at start-up. If it answers, jobs are consumed
    (after returning any jobs a previous crash left unacknowledged);
    otherwise the poller loop runs instead. Losing the queue mid-run also
    hands over to the poller.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        dispatcher: Dispatcher,
        poller: Poller,
        reserve_timeout: float = 5.0,
    ) -> None:
        self.pipeline = pipeline
        self.dispatcher = dispatcher
        self.poller = poller
        self.reserve_timeout = reserve_timeout
        self._stop = asyncio.Event()
        self.processed = 0

    async def run(self, once: bool = False) -> DispatchMode:
        """Run until ``stop()``; with *once*, drain the current backlog and return.

        Returns:
            The mode the worker ended in.
        """
        self._stop.clear()
        self.pipeline.embedder.warm_up()
        mode = await self.dispatcher.select()
        logger.info("Worker starting", extra={"mode": mode.value})
        if mode is DispatchMode.QUEUED and self.dispatcher.queue is not None:
            try:
                await self._consume(self.dispatcher.queue, once)
                return mode
            except QueueUnavailableError as exc:
                logger.warning("Queue lost, falling back to polling: %s", exc.message)
                mode = DispatchMode.POLL_RECOVERED
        if once:
            results = await self.poller.scan_once()
            self.processed += sum(1 for r in results if not r.skipped)
        elif not self._stop.is_set():
            await self._poll_until_stopped()
        return mode

    async def _poll_until_stopped(self) -> None:
        poll = asyncio.create_task(self.poller.run())
        stop = asyncio.create_task(self._stop.wait())
        await asyncio.wait({poll, stop}, return_when=asyncio.FIRST_COMPLETED)
        self.poller.stop()
        stop.cancel()
        # Re-raises if the poller died on its own.
        await poll

    async def _consume(self, queue: JobQueue, once: bool) -> None:
        await queue.requeue_unacked()
        while not self._stop.is_set():
            reservation = await queue.reserve(self.reserve_timeout)
            if reservation is None:
                if once:
                    return
                continue
            await self._handle(queue, reservation)

    async def _handle(self, queue: JobQueue, reservation: Reservation) -> None:
        job = reservation.job
        if job is None:
            await queue.ack(reservation)
            return
        try:
            result = await self.pipeline.process(job.document_id)
            if not result.skipped:
                self.processed += 1
        except DocumentNotFoundError:
            logger.info("Dropping job for deleted document", extra={"document_id": job.document_id})
        except IngestionError as exc:
            logger.error("Job failed: %s", exc, extra={"document_id": job.document_id})
        await queue.ack(reservation)

    def stop(self) -> None:
        self._stop.set()
        self.poller.stop()
