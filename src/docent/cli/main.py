"""docent CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from docent.cli.ask import ask_cmd
from docent.cli.docs import docs_app
from docent.cli.ingest import ingest_cmd
from docent.cli.worker import worker_cmd
from docent.log import configure_logging


def _version() -> str:
    try:
        return importlib.metadata.version("docent")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"docent {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="docent",
    help=(
        "docent: ask questions of your own documents.\n\n"
        "  docent ingest   Upload documents (chunked and embedded in the background).\n"
        "  docent ask      Answer a question strictly from a user's documents."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    ] = "WARNING",
) -> None:
    """docent: ask questions of your own documents."""
    try:
        configure_logging(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc


app.command("ingest")(ingest_cmd)
app.command("ask")(ask_cmd)
app.command("worker")(worker_cmd)
app.add_typer(docs_app, name="docs")


@app.command("version")
def version_cmd() -> None:
    """Show the installed docent version."""
    typer.echo(f"docent {_version()}")


if __name__ == "__main__":
    app()
