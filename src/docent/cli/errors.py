"""docent rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from docent.cli.errors import err_file_not_found
    console.print(err_file_not_found("report.pdf"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from docent.rag.llm_client import _PROVIDER_ENV


def err_no_api_key(model: str) -> str:
    """No API key for the provider of *model*; answers fall back.

    Example:
        No API key for 'gemini'. Set:  export GEMINI_API_KEY=...
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider) or f"{provider.upper()}_API_KEY"
    return (
        f"[yellow]Warning:[/] No API key for '{provider}'; answers cannot be generated.\n"
        f"  Set:  export {env_var}=..."
    )


def err_config(message: str) -> str:
    """docent.yaml or ~/.docent/config.yaml is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix the value in docent.yaml (or ~/.docent/config.yaml) and retry."
    )


def err_file_not_found(path: str) -> str:
    return (
        f"[red]Error:[/] File not found: '{path}'\n"
        "  Check the path and retry:  docent ingest --user <id> <file>"
    )


def err_input(message: str) -> str:
    return f"[red]Error:[/] {message}\n  Run:  docent --help"


def err_ingest_failed(file_name: str, message: str) -> str:
    return (
        f"[red]✗ Ingest failed:[/] '{file_name}': {message}\n"
        "  The document is marked failed. Remove it and upload a readable copy:\n"
        "    docent docs remove --user <id> --id <document-id>"
    )


def err_document_not_found(document_id: str) -> str:
    """Document missing or owned by another user."""
    return (
        f"[yellow]Document not found:[/] '{document_id}'\n"
        "  Run:  docent docs list --user <id>  to see your documents."
    )


def err_queue_unavailable(url: str) -> str:
    return (
        f"[yellow]Warning:[/] Job queue at '{url}' is not reachable.\n"
        "  Falling back to polling for unprocessed documents.\n"
        "  Start Redis or unset queue.url in docent.yaml to silence this."
    )
