"""Tests for `docent ingest`."""

from __future__ import annotations

from docent.db.models import DocumentStatus


def test_ingest_processes_inline_without_queue(cli, notes):
    result = cli.invoke("ingest", str(notes), "--user", "alice")
    assert result.exit_code == 0, result.output
    assert "processed inline (2 chunks)" in result.output
    with cli.repo() as repo:
        [doc] = repo.list_documents("alice")
        assert doc.status is DocumentStatus.PERSISTED
        assert doc.file_name == "notes.txt"
        assert repo.count_chunks(doc.id) == 2


def test_ingest_same_bytes_twice_is_unchanged(cli, notes):
    cli.invoke("ingest", str(notes), "--user", "alice")
    result = cli.invoke("ingest", str(notes), "--user", "alice")
    assert result.exit_code == 0
    assert "Unchanged" in result.output
    with cli.repo() as repo:
        assert len(repo.list_documents("alice")) == 1


def test_ingest_defer_leaves_work_for_worker(cli, notes):
    result = cli.invoke("ingest", str(notes), "--user", "alice", "--defer")
    assert result.exit_code == 0
    assert "deferred to poller" in result.output
    with cli.repo() as repo:
        [doc] = repo.list_unprocessed()
        assert doc.status is DocumentStatus.UPLOADED


def test_ingest_queues_when_queue_answers(cli, notes, fakes):
    cli.queue = fakes.Queue()
    result = cli.invoke("ingest", str(notes), "--user", "alice")
    assert result.exit_code == 0
    assert "Queued" in result.output
    assert len(cli.queue.pending) == 1


def test_ingest_missing_file_exits_1(cli, notes):
    result = cli.invoke("ingest", str(notes), "missing.pdf", "--user", "alice")
    assert result.exit_code == 1
    assert "File not found" in result.output
    with cli.repo() as repo:
        assert len(repo.list_documents("alice")) == 1


def test_ingest_unreadable_file_exits_1(cli, tmp_path):
    bad = tmp_path / "bad.bin"
    bad.write_bytes(b"\xff\xfe\x00\x81")
    result = cli.invoke("ingest", str(bad), "--user", "alice")
    assert result.exit_code == 1
    assert "Ingest failed" in result.output
    with cli.repo() as repo:
        [doc] = repo.list_documents("alice")
        assert doc.status is DocumentStatus.FAILED


def test_ingest_empty_file_is_input_error(cli, tmp_path):
    empty = tmp_path / "empty.txt"
    empty.write_bytes(b"")
    result = cli.invoke("ingest", str(empty), "--user", "alice")
    assert result.exit_code == 1
    assert "No file uploaded" in result.output


def test_ingest_blank_user_is_input_error(cli, notes):
    result = cli.invoke("ingest", str(notes), "--user", " ")
    assert result.exit_code == 1
    assert "User id is required" in result.output


def test_ingest_db_option(cli, notes, tmp_path):
    db = tmp_path / "custom" / "other.db"
    result = cli.invoke("ingest", str(notes), "--user", "alice", "--db", str(db))
    assert result.exit_code == 0
    assert db.exists()
