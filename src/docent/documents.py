"""Per-user document management: listing and deletion."""

from __future__ import annotations

import logging

from docent.db.models import Document
from docent.db.repository import Repository
from docent.errors import DocumentNotFoundError
from docent.storage import BlobStore

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, repo: Repository, blobs: BlobStore) -> None:
        self.repo = repo
        self.blobs = blobs

    def list(self, user_id: str) -> list[Document]:
        """The user's documents, newest first."""
        return self.repo.list_documents(user_id)

    def get(self, user_id: str, document_id: str) -> Document:
        document = self.repo.get_user_document(user_id, document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def delete(self, user_id: str, document_id: str) -> Document:
        """Delete a document with its chunks, and its stored bytes once unreferenced.

        Another user's document is reported as not found.

        Raises:
            DocumentNotFoundError: No such document for *user_id*.
        """
        document = self.get(user_id, document_id)
        self.repo.delete_document(document.id)
        if self.repo.count_storage_references(document.storage_path) == 0:
            self.blobs.delete(document.storage_path)
        else:
            logger.debug(
                "Blob still referenced, kept", extra={"storage_path": document.storage_path}
            )
        logger.info("Deleted document", extra={"document_id": document.id, "user_id": user_id})
        return document
