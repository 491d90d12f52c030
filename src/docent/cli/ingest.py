"""docent ingest: upload files for a user and dispatch their processing.

Each file is accepted (hashed, stored, recorded), then queued when the job
queue answers, processed inline otherwise, or left for the poller with
``--defer``. Re-uploading identical bytes for the same user is a no-op.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from docent.app import App
from docent.cli.common import console, open_app
from docent.cli.errors import err_file_not_found, err_ingest_failed, err_input
from docent.errors import IngestionError, InputError
from docent.jobs.dispatch import DispatchMode


def ingest_cmd(
    files: Annotated[
        list[Path],
        typer.Argument(help="Files to upload (PDF or UTF-8 text)."),
    ],
    user: Annotated[
        str,
        typer.Option("--user", "-u", help="Owning user id."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the docent database (default from config)."),
    ] = None,
    defer: Annotated[
        bool,
        typer.Option("--defer", help="Only record the upload; leave processing to the worker."),
    ] = False,
) -> None:
    """Upload one or more documents into a user's knowledge base."""
    _, app = open_app(db, force_mode=DispatchMode.POLL_RECOVERED if defer else None)
    failures = asyncio.run(_ingest_all(app, files, user))
    if failures:
        raise typer.Exit(1)


async def _ingest_all(app: App, files: list[Path], user: str) -> int:
    failures = 0
    try:
        for path in files:
            if not path.is_file():
                console.print(err_file_not_found(str(path)))
                failures += 1
                continue
            console.print(f"\n[bold]→ {path.name}[/]")
            try:
                result = await app.trigger.submit(path.read_bytes(), path.name, user)
            except InputError as exc:
                console.print(err_input(exc.message))
                failures += 1
                continue
            except IngestionError as exc:
                console.print(err_ingest_failed(path.name, exc.message))
                failures += 1
                continue

            if result.note == "duplicate":
                console.print(f"  [dim]↷ Unchanged, already stored as {result.document_id}[/]")
            elif result.queued:
                console.print(f"  [green]✓[/] Queued  {result.document_id}")
            elif result.note == "extraction failed":
                console.print(err_ingest_failed(path.name, "text could not be extracted"))
                failures += 1
            else:
                console.print(f"  [green]✓[/] {result.document_id}  [dim]{result.note}[/]")
    finally:
        await app.aclose()
    return failures
