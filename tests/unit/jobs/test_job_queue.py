"""Tests for Job payloads and RedisJobQueue (against a mocked Redis client)."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from docent.errors import QueueUnavailableError
from docent.jobs.queue import Job, RedisJobQueue, Reservation


def _queue():
    client = MagicMock()
    for name in ("ping", "rpush", "blmove", "lrem", "lmove", "aclose"):
        setattr(client, name, AsyncMock())
    return RedisJobQueue("redis://localhost:6379/0", topic="pdf-processing", client=client), client


def test_job_wire_format():
    job = Job(file_path="ab/cd/abcd", document_id="doc-1", user_id="alice")
    assert json.loads(job.to_json()) == {
        "filePath": "ab/cd/abcd",
        "documentId": "doc-1",
        "userId": "alice",
    }
    assert Job.from_json(job.to_json()) == job


@pytest.mark.parametrize("raw", ["not json", "{}", "[1, 2]"])
def test_job_from_malformed_json(raw):
    with pytest.raises(ValueError):
        Job.from_json(raw)


def test_enqueue_pushes_onto_topic():
    queue, client = _queue()
    job = Job("p", "doc-1", "alice")
    asyncio.run(queue.enqueue(job))
    client.rpush.assert_awaited_once_with("pdf-processing", job.to_json())


def test_enqueue_failure_raises_queue_unavailable():
    queue, client = _queue()
    client.rpush.side_effect = RedisConnectionError("refused")
    with pytest.raises(QueueUnavailableError):
        asyncio.run(queue.enqueue(Job("p", "doc-1", "alice")))


def test_reserve_moves_to_processing_list():
    queue, client = _queue()
    raw = Job("p", "doc-1", "alice").to_json()
    client.blmove.return_value = raw
    reservation = asyncio.run(queue.reserve(timeout=1.0))
    client.blmove.assert_awaited_once_with(
        "pdf-processing", "pdf-processing:processing", 1.0, src="LEFT", dest="RIGHT"
    )
    assert reservation.job.document_id == "doc-1"
    assert reservation.raw == raw


def test_reserve_idle_returns_none():
    queue, client = _queue()
    client.blmove.return_value = None
    assert asyncio.run(queue.reserve(timeout=0.1)) is None


def test_reserve_malformed_payload_has_no_job():
    queue, client = _queue()
    client.blmove.return_value = "garbage"
    reservation = asyncio.run(queue.reserve())
    assert reservation.job is None
    assert reservation.raw == "garbage"


def test_ack_removes_from_processing_list():
    queue, client = _queue()
    asyncio.run(queue.ack(Reservation(job=None, raw="payload")))
    client.lrem.assert_awaited_once_with("pdf-processing:processing", 1, "payload")


def test_requeue_unacked_moves_everything_back():
    queue, client = _queue()
    client.lmove.side_effect = ["a", "b", None]
    assert asyncio.run(queue.requeue_unacked()) == 2
    client.lmove.assert_awaited_with(
        "pdf-processing:processing", "pdf-processing", "RIGHT", "LEFT"
    )


def test_ping_failure_raises_queue_unavailable():
    queue, client = _queue()
    client.ping.side_effect = RedisConnectionError("refused")
    with pytest.raises(QueueUnavailableError) as exc_info:
        asyncio.run(queue.ping())
    assert exc_info.value.details["collaborator"] == "queue"


def test_reserve_connection_loss_raises_queue_unavailable():
    queue, client = _queue()
    client.blmove.side_effect = RedisConnectionError("connection reset")
    with pytest.raises(QueueUnavailableError):
        asyncio.run(queue.reserve(0.1))


def test_ack_connection_loss_raises_queue_unavailable():
    queue, client = _queue()
    client.lrem.side_effect = RedisConnectionError("connection reset")
    with pytest.raises(QueueUnavailableError):
        asyncio.run(queue.ack(Reservation(job=None, raw="payload")))


def test_close_closes_client():
    queue, client = _queue()
    asyncio.run(queue.close())
    client.aclose.assert_awaited_once()
