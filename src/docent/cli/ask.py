"""docent ask: answer a question from one user's documents."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from docent.app import App
from docent.cli.common import console, open_app
from docent.cli.errors import err_input, err_no_api_key
from docent.errors import InputError
from docent.rag.answerer import AnswerResult


def ask_cmd(
    question: Annotated[str, typer.Argument(help="Question to answer.")],
    user: Annotated[
        str,
        typer.Option("--user", "-u", help="User whose documents are searched."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the docent database (default from config)."),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the full answer record as JSON."),
    ] = False,
) -> None:
    """Answer QUESTION using only the user's ingested documents."""
    cfg, app = open_app(db)
    app.warm_up()
    if app.answerer.generator is None and not as_json:
        console.print(err_no_api_key(cfg.generation.model))
    try:
        result = asyncio.run(_answer(app, question, user))
    except InputError as exc:
        console.print(err_input(exc.message))
        raise typer.Exit(1) from exc

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return
    _show(result)


async def _answer(app: App, question: str, user: str) -> AnswerResult:
    try:
        return await app.answerer.answer(question, user)
    finally:
        await app.aclose()


def _show(result: AnswerResult) -> None:
    console.print(Panel(result.answer, title="[bold]Answer[/]", expand=False))
    trace = result.self_correction
    console.print(
        f"Faithfulness: [bold]{result.faithfulness}[/]/100  |  "
        f"Initial similarity: {trace.initial_similarity:.2f}  |  "
        f"Retrieval: {trace.retrieval_used}"
    )
    if trace.rephrased_query:
        console.print(f"  [dim]Rewritten query:[/] {trace.rephrased_query}")

    if not result.sources:
        console.print("[dim]No sources.[/]")
        return
    table = Table(title="Sources", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("File")
    table.add_column("Chunk", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Text")
    for i, source in enumerate(result.sources, 1):
        score = f"{source.rerank_score:.2f}" if source.rerank_score is not None else "-"
        preview = source.text if len(source.text) <= 80 else source.text[:77] + "..."
        table.add_row(str(i), source.file_name, str(source.chunk.chunk_index), score, preview)
    console.print(table)
