"""docent worker: process uploaded documents in the background.

Consumes the Redis job queue when it answers; otherwise (or with --poll)
scans for unprocessed documents every ``poller.interval`` seconds.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Annotated

import typer

from docent.app import App
from docent.cli.common import console, open_app
from docent.cli.errors import err_queue_unavailable
from docent.jobs.dispatch import DispatchMode


def worker_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the docent database (default from config)."),
    ] = None,
    once: Annotated[
        bool,
        typer.Option("--once", help="Drain the current backlog, then exit."),
    ] = False,
    poll: Annotated[
        bool,
        typer.Option("--poll", help="Ignore the queue and only poll the database."),
    ] = False,
) -> None:
    """Run the ingestion worker."""
    cfg, app = open_app(db, force_mode=DispatchMode.POLL_RECOVERED if poll else None)
    try:
        mode = asyncio.run(_run(app, once))
    except KeyboardInterrupt:
        console.print("\n[dim]Worker stopped.[/]")
        return
    if cfg.queue.url and mode is not DispatchMode.QUEUED and not poll:
        console.print(err_queue_unavailable(cfg.queue.url))
    console.print(
        f"[green]✓[/] Worker finished ({mode.value}): {app.worker.processed} documents processed"
    )


async def _run(app: App, once: bool) -> DispatchMode:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, app.worker.stop)
    except (NotImplementedError, RuntimeError):
        pass  # not supported on this platform / thread
    try:
        return await app.worker.run(once=once)
    finally:
        await app.aclose()
