"""Exception hierarchy for the docent core.

Every exception carries a ``details`` dict so log records and CLI messages
can show the identifiers involved without string parsing.
"""

from __future__ import annotations

from typing import Any


class DocentError(Exception):
    """Base class for all docent errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InputError(DocentError):
    """Caller supplied a missing or malformed input (file, question, user)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class IngestionError(DocentError):
    """A document could not be accepted or processed."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if document_id:
            details["document_id"] = document_id
        super().__init__(message, details)


class ExtractionError(IngestionError):
    """The stored bytes could not be turned into text (corrupt or unsupported)."""


class DocumentNotFoundError(DocentError):
    """No document with this id exists for the requesting user."""

    def __init__(self, document_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["document_id"] = document_id
        super().__init__(f"Document not found: {document_id}", details)


class CollaboratorUnavailableError(DocentError):
    """An external collaborator (queue, model, generator) cannot be reached."""

    def __init__(
        self,
        message: str,
        collaborator: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if collaborator:
            details["collaborator"] = collaborator
        super().__init__(message, details)


class QueueUnavailableError(CollaboratorUnavailableError):
    """The job queue did not answer the connectivity probe."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, collaborator="queue", details=details)
