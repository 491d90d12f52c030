"""docent docs: list and remove a user's documents."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from docent.cli.common import console, open_app
from docent.cli.errors import err_document_not_found
from docent.errors import DocumentNotFoundError

docs_app = typer.Typer(help="Manage uploaded documents.", add_completion=False)


@docs_app.command("list")
def list_cmd(
    user: Annotated[str, typer.Option("--user", "-u", help="Owning user id.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the docent database (default from config)."),
    ] = None,
) -> None:
    """List a user's documents, newest first."""
    _, app = open_app(db)
    try:
        documents = app.documents.list(user)
        table = Table(title=f"Documents for {user}")
        table.add_column("ID")
        table.add_column("File")
        table.add_column("Status")
        table.add_column("Type")
        table.add_column("Chunks", justify="right")
        table.add_column("Uploaded")
        for doc in documents:
            status = doc.status.value
            if doc.error:
                status = f"[red]{status}[/]"
            table.add_row(
                doc.id,
                doc.file_name,
                status,
                doc.doc_type or "-",
                str(app.repo.count_chunks(doc.id)),
                doc.created_at or "",
            )
        if documents:
            console.print(table)
        else:
            console.print("[dim]No documents.[/]")
    finally:
        app.conn.close()


@docs_app.command("remove")
def remove_cmd(
    user: Annotated[str, typer.Option("--user", "-u", help="Owning user id.")],
    document_id: Annotated[str, typer.Option("--id", help="Document id to remove.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the docent database (default from config)."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a document, its chunks and (if unshared) its stored file."""
    _, app = open_app(db)
    try:
        try:
            document = app.documents.get(user, document_id)
        except DocumentNotFoundError as exc:
            console.print(err_document_not_found(document_id))
            raise typer.Exit(1) from exc

        chunk_count = app.repo.count_chunks(document.id)
        console.print(f"\nRemove document: [bold]{document.file_name}[/]  ({chunk_count} chunks)")
        if not yes and not typer.confirm("Confirm removal?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

        app.documents.delete(user, document.id)
        console.print(f"\n[green]✓[/] Removed: {document.file_name}")
    finally:
        app.conn.close()
