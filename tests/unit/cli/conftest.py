"""CLI fixtures: a working directory, config isolation and fake collaborators."""

from __future__ import annotations

from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from docent.app import build_app
from docent.cli.main import app
from docent.db.connection import Database
from docent.db.repository import Repository

_ENV_VARS = (
    "DOCENT_GENERATION_MODEL",
    "DOCENT_EMBEDDING_MODEL",
    "DOCENT_QUEUE_URL",
    "DOCENT_DB",
    "GEMINI_API_KEY",
)


@pytest.fixture
def cli(tmp_path, monkeypatch, fakes):
    """Run ``docent`` in tmp_path with fake models, generator and queue.

    Set ``cli.generator = None`` to simulate a missing API key and
    ``cli.queue`` to attach a job queue.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COLUMNS", "200")
    monkeypatch.setattr("docent.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    stack = SimpleNamespace(
        generator=fakes.Generator(),
        queue=None,
        db_path=tmp_path / ".docent" / "docent.db",
        root=tmp_path,
    )

    def _build(cfg, force_mode=None):
        return build_app(
            cfg,
            embedder=fakes.Embedder(),
            reranker=fakes.Reranker(),
            generator=stack.generator,
            queue=stack.queue,
            force_mode=force_mode,
        )

    monkeypatch.setattr("docent.cli.common.build_app", _build)

    runner = CliRunner()
    stack.invoke = lambda *args, **kwargs: runner.invoke(app, list(args), **kwargs)

    @contextmanager
    def _repo():
        conn = Database(stack.db_path).connect()
        try:
            yield Repository(conn)
        finally:
            conn.close()

    stack.repo = _repo
    return stack


@pytest.fixture
def notes(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("Intro text.\n\nBody text.", encoding="utf-8")
    return path
