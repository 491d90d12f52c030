"""Durable ingestion job queue with at-least-once delivery.

``RedisJobQueue`` implements the reliable-queue pattern on two Redis lists:
jobs are pushed onto ``<topic>``, atomically moved to ``<topic>:processing``
when reserved, and removed from there when acknowledged. Entries left in the
processing list by a crashed worker are moved back by ``requeue_unacked()``.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from docent.errors import QueueUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """Payload for one document: ``{filePath, documentId, userId}`` on the wire."""

    file_path: str
    document_id: str
    user_id: str

    def to_json(self) -> str:
        return json.dumps(
            {"filePath": self.file_path, "documentId": self.document_id, "userId": self.user_id}
        )

    @classmethod
    def from_json(cls, raw: str) -> Job:
        """Parse a wire payload. Raises ValueError on malformed input."""
        try:
            data = json.loads(raw)
            return cls(
                file_path=data["filePath"],
                document_id=data["documentId"],
                user_id=data["userId"],
            )
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            raise ValueError(f"Malformed job payload: {raw!r}") from exc


@dataclass
class Reservation:
    """A job taken off the queue and not yet acknowledged."""

    job: Job | None
    raw: str


class JobQueue(ABC):
    @abstractmethod
    async def ping(self) -> bool:
        """Return True if the queue answers.

        Raises:
            QueueUnavailableError: The queue cannot be reached.
        """

    @abstractmethod
    async def enqueue(self, job: Job) -> None:
        """Append *job*. Raises QueueUnavailableError if it cannot be stored."""

    @abstractmethod
    async def reserve(self, timeout: float = 5.0) -> Reservation | None:
        """Take the next job, waiting up to *timeout* seconds. None if idle.

        Raises:
            QueueUnavailableError: The queue stopped answering.
        """

    @abstractmethod
    async def ack(self, reservation: Reservation) -> None:
        """Acknowledge a reserved job so it is not delivered again."""

    @abstractmethod
    async def requeue_unacked(self) -> int:
        """Return reserved-but-unacknowledged jobs to the queue. Returns the count."""

    async def close(self) -> None:
        return None


class RedisJobQueue(JobQueue):
    """Job queue backed by two Redis lists (see module docstring)."""

    def __init__(
        self,
        url: str,
        topic: str = "pdf-processing",
        client: aioredis.Redis | None = None,
    ) -> None:
        self.topic = topic
        self.processing = f"{topic}:processing"
        self._client = client or aioredis.Redis.from_url(url, decode_responses=True)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError) as exc:
            raise QueueUnavailableError(f"Redis did not answer PING: {exc}") from exc

    async def enqueue(self, job: Job) -> None:
        try:
            await self._client.rpush(self.topic, job.to_json())
        except RedisError as exc:
            raise QueueUnavailableError(
                f"Could not enqueue job: {exc}", details={"document_id": job.document_id}
            ) from exc
        logger.info("Job queued", extra={"document_id": job.document_id, "topic": self.topic})

    async def reserve(self, timeout: float = 5.0) -> Reservation | None:
        try:
            raw = await self._client.blmove(
                self.topic, self.processing, timeout, src="LEFT", dest="RIGHT"
            )
        except (RedisError, OSError) as exc:
            raise QueueUnavailableError(f"Could not reserve a job: {exc}") from exc
        if raw is None:
            return None
        try:
            job: Job | None = Job.from_json(raw)
        except ValueError:
            logger.error("Dropping malformed job payload", extra={"payload": raw})
            job = None
        return Reservation(job=job, raw=raw)

    async def ack(self, reservation: Reservation) -> None:
        try:
            await self._client.lrem(self.processing, 1, reservation.raw)
        except (RedisError, OSError) as exc:
            raise QueueUnavailableError(f"Could not acknowledge job: {exc}") from exc

    async def requeue_unacked(self) -> int:
        moved = 0
        try:
            while await self._client.lmove(self.processing, self.topic, "RIGHT", "LEFT"):
                moved += 1
        except (RedisError, OSError) as exc:
            raise QueueUnavailableError(f"Could not requeue jobs: {exc}") from exc
        if moved:
            logger.warning("Requeued unacknowledged jobs", extra={"count": moved})
        return moved

    async def close(self) -> None:
        await self._client.aclose()
