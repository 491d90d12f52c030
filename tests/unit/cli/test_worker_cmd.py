"""Tests for `docent worker`."""

from __future__ import annotations

import yaml


def test_worker_once_polls_deferred_uploads(cli, notes):
    cli.invoke("ingest", str(notes), "--user", "alice", "--defer")
    result = cli.invoke("worker", "--once")
    assert result.exit_code == 0, result.output
    assert "Worker finished (inline): 1 documents processed" in result.output
    with cli.repo() as repo:
        assert repo.list_unprocessed() == []


def test_worker_poll_flag(cli, notes, fakes):
    cli.queue = fakes.Queue()
    cli.invoke("ingest", str(notes), "--user", "alice", "--defer")
    result = cli.invoke("worker", "--once", "--poll")
    assert result.exit_code == 0, result.output
    assert "(poll_recovered)" in result.output
    assert "1 documents processed" in result.output


def test_worker_consumes_queued_jobs(cli, notes, fakes):
    cli.queue = fakes.Queue()
    cli.invoke("ingest", str(notes), "--user", "alice")
    result = cli.invoke("worker", "--once")
    assert result.exit_code == 0, result.output
    assert "Worker finished (queued): 1 documents processed" in result.output
    assert cli.queue.pending == [] and cli.queue.processing == []


def test_worker_reports_unreachable_queue(cli, notes, fakes):
    (cli.root / "docent.yaml").write_text(
        yaml.dump({"queue": {"url": "redis://localhost:6399/0"}}), encoding="utf-8"
    )
    cli.queue = fakes.Queue(up=False)
    result = cli.invoke("worker", "--once")
    assert result.exit_code == 0, result.output
    assert "not reachable" in result.output
    assert "(inline)" in result.output
