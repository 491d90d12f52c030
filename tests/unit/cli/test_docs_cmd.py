"""Tests for `docent docs list` and `docent docs remove`."""

from __future__ import annotations

import pytest


@pytest.fixture
def doc_id(cli, notes):
    cli.invoke("ingest", str(notes), "--user", "alice")
    with cli.repo() as repo:
        [doc] = repo.list_documents("alice")
    return doc.id


def test_list_shows_documents(cli, doc_id):
    result = cli.invoke("docs", "list", "--user", "alice")
    assert result.exit_code == 0
    assert doc_id in result.output
    assert "notes.txt" in result.output
    assert "persisted" in result.output


def test_list_empty(cli):
    result = cli.invoke("docs", "list", "--user", "bob")
    assert result.exit_code == 0
    assert "No documents" in result.output


def test_remove_yes_deletes_document_and_blob(cli, doc_id):
    with cli.repo() as repo:
        storage_path = repo.get_document(doc_id).storage_path
    result = cli.invoke("docs", "remove", "--user", "alice", "--id", doc_id, "--yes")
    assert result.exit_code == 0
    assert "Removed" in result.output
    with cli.repo() as repo:
        assert repo.get_document(doc_id) is None
        assert repo.count_chunks(doc_id) == 0
    assert not (cli.root / ".docent" / "blobs" / storage_path).exists()


def test_remove_asks_confirmation(cli, doc_id):
    result = cli.invoke("docs", "remove", "--user", "alice", "--id", doc_id, input="n\n")
    assert result.exit_code == 0
    assert "2 chunks" in result.output
    assert "Cancelled" in result.output
    with cli.repo() as repo:
        assert repo.get_document(doc_id) is not None


def test_remove_other_users_document_is_not_found(cli, doc_id):
    result = cli.invoke("docs", "remove", "--user", "bob", "--id", doc_id, "--yes")
    assert result.exit_code == 1
    assert "Document not found" in result.output
    with cli.repo() as repo:
        assert repo.get_document(doc_id) is not None
