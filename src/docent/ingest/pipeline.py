"""Ingestion pipeline: accept an upload, then extract → classify → chunk → embed → persist.

``accept()`` runs in the upload path and only stores bytes plus a Document
row. ``process()`` does the heavy work and may run inline, in a queue worker,
or from the poller; the processing lease makes concurrent triggers safe.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import sqlite3
import uuid
from dataclasses import dataclass

from docent.config import ChunkingCfg
from docent.db.models import Chunk, Document, DocumentStatus
from docent.db.repository import Repository
from docent.db.vectors import truncate
from docent.errors import DocumentNotFoundError, ExtractionError, IngestionError, InputError
from docent.ingest.classifier import DocType, classify, strategy_for
from docent.ingest.extractor import TextExtractor
from docent.ingest.registry import get_chunker
from docent.rag.embedder import Embedder
from docent.storage import BlobStore, blob_key

logger = logging.getLogger(__name__)


@dataclass
class AcceptedUpload:
    document_id: str
    created: bool
    storage_path: str


@dataclass
class ProcessResult:
    """Outcome of one ``process()`` call.

    ``status`` is None when another worker holds the document (nothing done).
    ``uploaded`` means chunks were produced but none could be stored; the
    document stays eligible for the poller.
    """

    document_id: str
    status: DocumentStatus | None
    chunks_written: int = 0
    chunks_skipped: int = 0
    doc_type: DocType | None = None

    @property
    def skipped(self) -> bool:
        return self.status is None


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class IngestionPipeline:
    """Per-document ingestion, from raw bytes to embedded chunks."""

    def __init__(
        self,
        repo: Repository,
        blobs: BlobStore,
        extractor: TextExtractor,
        embedder: Embedder,
        *,
        chunking: ChunkingCfg | None = None,
        max_indexed_dims: int = 2000,
        concurrency: int = 4,
        lease_seconds: int = 600,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.repo = repo
        self.blobs = blobs
        self.extractor = extractor
        self.embedder = embedder
        self.chunking = chunking or ChunkingCfg()
        self.max_indexed_dims = max_indexed_dims
        self.concurrency = concurrency
        self.lease_seconds = lease_seconds

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def accept(self, file_bytes: bytes, file_name: str, user_id: str) -> AcceptedUpload:
        """Store *file_bytes* and create the Document row (status ``uploaded``).

        Identical bytes from the same user resolve to the existing document.

        Raises:
            InputError: Missing file, file name or user.
            IngestionError: Bytes or row could not be persisted.
        """
        if not file_bytes:
            raise InputError("No file uploaded", field="file")
        if not file_name or not file_name.strip():
            raise InputError("File name is required", field="file_name")
        if not user_id or not user_id.strip():
            raise InputError("User id is required", field="user_id")

        digest = content_hash(file_bytes)
        existing = self.repo.get_document_by_hash(user_id, digest)
        if existing is not None:
            logger.info(
                "Duplicate upload", extra={"document_id": existing.id, "user_id": user_id}
            )
            return AcceptedUpload(existing.id, created=False, storage_path=existing.storage_path)

        key = blob_key(digest)
        try:
            self.blobs.put(key, file_bytes)
        except OSError as exc:
            raise IngestionError(
                f"Could not store {file_name}: {exc}", details={"storage_path": key}
            ) from exc

        document = Document(
            id=str(uuid.uuid4()),
            user_id=user_id,
            file_name=file_name,
            content_hash=digest,
            storage_path=key,
        )
        try:
            self.repo.add_document(document)
        except sqlite3.IntegrityError as exc:
            # Lost a race with a concurrent upload of the same bytes.
            winner = self.repo.get_document_by_hash(user_id, digest)
            if winner is None:
                raise IngestionError(f"Could not record {file_name}: {exc}") from exc
            return AcceptedUpload(winner.id, created=False, storage_path=winner.storage_path)
        except sqlite3.Error as exc:
            raise IngestionError(f"Could not record {file_name}: {exc}") from exc

        logger.info(
            "Accepted upload",
            extra={"document_id": document.id, "user_id": user_id, "file_name": file_name},
        )
        return AcceptedUpload(document.id, created=True, storage_path=key)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process(self, document_id: str) -> ProcessResult:
        """Run extraction through persistence for one document.

        Returns a result with ``status=None`` when the document is held by
        another worker or already finished.

        Raises:
            DocumentNotFoundError: The document does not exist.
            IngestionError: An unexpected failure after the document was
                marked ``failed``.
        """
        if not self.repo.claim_document(document_id, self.lease_seconds):
            if self.repo.get_document(document_id) is None:
                raise DocumentNotFoundError(document_id)
            logger.info("Document not claimable, skipping", extra={"document_id": document_id})
            return ProcessResult(document_id, status=None)

        document = self.repo.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)

        removed = self.repo.delete_chunks(document_id)
        if removed:
            logger.warning(
                "Discarded chunks from an interrupted run",
                extra={"document_id": document_id, "chunks": removed},
            )

        try:
            return await self._run(document)
        except ExtractionError as exc:
            logger.error(
                "Extraction failed: %s", exc.message, extra={"document_id": document_id}
            )
            self.repo.set_status(document_id, DocumentStatus.FAILED, error=exc.message)
            return ProcessResult(document_id, status=DocumentStatus.FAILED)
        except Exception as exc:
            self.repo.set_status(document_id, DocumentStatus.FAILED, error=str(exc))
            raise IngestionError(f"Processing failed: {exc}", document_id=document_id) from exc

    async def _run(self, document: Document) -> ProcessResult:
        try:
            data = await asyncio.to_thread(self.blobs.get, document.storage_path)
        except FileNotFoundError as exc:
            raise ExtractionError(
                f"Stored file is missing: {document.storage_path}", document_id=document.id
            ) from exc
        extracted = await asyncio.to_thread(self.extractor.extract, data, document.file_name)

        self.repo.set_status(document.id, DocumentStatus.CLASSIFYING, page_count=extracted.page_count)
        doc_type = classify(extracted.text, extracted.page_count)

        self.repo.set_status(document.id, DocumentStatus.CHUNKING, doc_type=doc_type.value)
        chunker = get_chunker(strategy_for(doc_type), self.chunking)
        chunks = chunker.chunk(document.id, extracted.text)

        self.repo.set_status(document.id, DocumentStatus.EMBEDDING)
        vectors = await self._embed_all(document.id, chunks)
        written, skipped = self._persist(document.id, chunks, vectors)

        if chunks and not written:
            # Nothing stored; hand the document back so the poller retries it.
            self.repo.set_status(
                document.id,
                DocumentStatus.UPLOADED,
                error=f"None of {len(chunks)} chunks could be embedded",
            )
            logger.error(
                "No chunks persisted, document left for retry",
                extra={"document_id": document.id, "chunks_skipped": skipped},
            )
            return ProcessResult(
                document.id,
                status=DocumentStatus.UPLOADED,
                chunks_skipped=skipped,
                doc_type=doc_type,
            )

        self.repo.set_status(document.id, DocumentStatus.PERSISTED)
        logger.info(
            "Document persisted",
            extra={
                "document_id": document.id,
                "doc_type": doc_type.value,
                "chunks_written": written,
                "chunks_skipped": skipped,
            },
        )
        return ProcessResult(
            document.id,
            status=DocumentStatus.PERSISTED,
            chunks_written=written,
            chunks_skipped=skipped,
            doc_type=doc_type,
        )

    async def _embed_all(
        self, document_id: str, chunks: list[Chunk]
    ) -> list[list[float] | None]:
        """Embed every chunk, at most ``concurrency`` at a time; failures become None."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _one(chunk: Chunk) -> list[float] | None:
            async with semaphore:
                try:
                    return await self.embedder.embed(chunk.text)
                except Exception as exc:
                    logger.warning(
                        "Embedding failed, skipping chunk: %s",
                        exc,
                        extra={"document_id": document_id, "chunk_index": chunk.chunk_index},
                    )
                    return None

        return list(await asyncio.gather(*(_one(c) for c in chunks)))

    def _persist(
        self, document_id: str, chunks: list[Chunk], vectors: list[list[float] | None]
    ) -> tuple[int, int]:
        """Insert chunks in ordinal order. Ordinals stay dense over written chunks."""
        written = skipped = 0
        for chunk, vector in zip(chunks, vectors):
            if not vector:
                skipped += 1
                continue
            chunk.chunk_index = written
            chunk.embedding = truncate(vector, self.max_indexed_dims)
            try:
                self.repo.add_chunk(chunk)
            except sqlite3.Error as exc:
                logger.warning(
                    "Chunk insert failed, skipping: %s",
                    exc,
                    extra={"document_id": document_id, "chunk_index": chunk.chunk_index},
                )
                skipped += 1
                continue
            written += 1
        return written, skipped
