"""Shared CLI plumbing: config loading and app construction."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from docent.app import App, build_app
from docent.cli.errors import err_config
from docent.config import ConfigError, DocentConfig, load_config
from docent.jobs.dispatch import DispatchMode

console = Console()


def load_cli_config(db: Path | None) -> DocentConfig:
    """Load layered config; ``--db`` overrides ``database.path``. Exits on bad config."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    if db is not None:
        cfg.database.path = str(db)
    return cfg


def open_app(db: Path | None, force_mode: DispatchMode | None = None) -> tuple[DocentConfig, App]:
    cfg = load_cli_config(db)
    return cfg, build_app(cfg, force_mode=force_mode)
