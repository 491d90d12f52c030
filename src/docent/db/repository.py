"""Repository pattern for all docent database operations.

Single interface for: documents, processing leases, chunks and
user-scoped nearest-neighbour search.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from docent.db.models import Chunk, ChunkType, Document, DocumentStatus
from docent.db.vectors import from_blob, to_blob

_DOCUMENT_COLUMNS = (
    "id, user_id, file_name, content_hash, storage_path, status, "
    "page_count, doc_type, error, lease_until, created_at"
)

_IN_PROGRESS_SQL = "('extracting', 'classifying', 'chunking', 'embedding')"


@dataclass
class ChunkHit:
    """One nearest-neighbour result: the chunk, its distance, its file name."""

    chunk: Chunk
    distance: float
    file_name: str


class Repository:
    """Data access layer for all docent database entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see docent.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def add_document(self, document: Document) -> None:
        """Insert a new document record.

        Raises:
            sqlite3.IntegrityError: If (user_id, content_hash) already exists.
        """
        self._conn.execute(
            """
            INSERT INTO documents (id, user_id, file_name, content_hash, storage_path, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                document.id,
                document.user_id,
                document.file_name,
                document.content_hash,
                document.storage_path,
                document.status.value,
            ),
        )
        self._conn.commit()

    def get_document(self, document_id: str) -> Document | None:
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?",
            (document_id,),
        ).fetchone()
        return _row_to_document(row) if row else None

    def get_user_document(self, user_id: str, document_id: str) -> Document | None:
        """Return the document only if it belongs to *user_id*."""
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ? AND user_id = ?",
            (document_id, user_id),
        ).fetchone()
        return _row_to_document(row) if row else None

    def get_document_by_hash(self, user_id: str, content_hash: str) -> Document | None:
        """Dedup lookup: the user's document with these exact bytes, if any."""
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE user_id = ? AND content_hash = ?",
            (user_id, content_hash),
        ).fetchone()
        return _row_to_document(row) if row else None

    def list_documents(self, user_id: str) -> list[Document]:
        """Return all documents of *user_id*, newest first."""
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE user_id = ? "
            "ORDER BY created_at DESC, rowid DESC",
            (user_id,),
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def list_unprocessed(self, limit: int = 20) -> list[Document]:
        """Return up to *limit* newest documents with no chunks that still need work.

        Terminal documents (``persisted``, ``failed``) are excluded: a
        persisted document with zero chunks was empty, and failed extraction
        is not retried automatically. A document whose chunks all failed to
        embed is returned to ``uploaded`` and so is picked up again.
        """
        rows = self._conn.execute(
            f"""
            SELECT {_DOCUMENT_COLUMNS} FROM documents d
            WHERE d.status NOT IN ('persisted', 'failed')
              AND NOT EXISTS (SELECT 1 FROM chunks c WHERE c.document_id = d.id)
            ORDER BY d.created_at DESC, d.rowid DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def count_storage_references(self, storage_path: str) -> int:
        """Number of documents (any user) pointing at *storage_path*."""
        return self._conn.execute(
            "SELECT COUNT(*) FROM documents WHERE storage_path = ?", (storage_path,)
        ).fetchone()[0]

    def delete_document(self, document_id: str) -> None:
        """Delete a document; its chunks go with it (ON DELETE CASCADE)."""
        self._conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        self._conn.commit()

    def set_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        error: str | None = None,
        doc_type: str | None = None,
        page_count: int | None = None,
    ) -> None:
        """Move a document to *status*. Terminal states release the lease."""
        terminal = status in (DocumentStatus.PERSISTED, DocumentStatus.FAILED)
        self._conn.execute(
            """
            UPDATE documents SET
                status = ?,
                error = ?,
                doc_type = COALESCE(?, doc_type),
                page_count = COALESCE(?, page_count),
                lease_until = CASE WHEN ? THEN NULL ELSE lease_until END
            WHERE id = ?
            """,
            (status.value, error, doc_type, page_count, terminal, document_id),
        )
        self._conn.commit()

    def claim_document(self, document_id: str, lease_seconds: int) -> bool:
        """Atomically take the processing lease on *document_id*.

        Succeeds when the document is ``uploaded``, or sits in an in-progress
        state whose lease has expired (a crashed worker). The document moves
        to ``extracting`` with a fresh lease.

        Returns:
            True if this caller now owns the document.
        """
        cur = self._conn.execute(
            f"""
            UPDATE documents SET
                status = 'extracting',
                error = NULL,
                lease_until = datetime('now', ?)
            WHERE id = ? AND (
                status = 'uploaded'
                OR (status IN {_IN_PROGRESS_SQL}
                    AND (lease_until IS NULL OR lease_until < datetime('now')))
            )
            """,
            (f"+{int(lease_seconds)} seconds", document_id),
        )
        self._conn.commit()
        return cur.rowcount == 1

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def add_chunk(self, chunk: Chunk) -> int:
        """Insert a chunk with its embedding. Returns the new rowid.

        Raises:
            ValueError: If the chunk has no embedding.
        """
        if not chunk.embedding:
            raise ValueError(
                f"chunk {chunk.chunk_index} of {chunk.document_id} has no embedding"
            )
        cur = self._conn.execute(
            """
            INSERT INTO chunks (document_id, chunk_index, chunk_type, char_start,
                                char_end, text, token_count, embedding)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                chunk.document_id,
                chunk.chunk_index,
                chunk.chunk_type.value,
                chunk.char_start,
                chunk.char_end,
                chunk.text,
                chunk.token_count,
                to_blob(chunk.embedding),
            ),
        )
        self._conn.commit()
        chunk.id = cur.lastrowid
        return cur.lastrowid

    def list_chunks(self, document_id: str) -> list[Chunk]:
        """Return a document's chunks in ordinal order."""
        rows = self._conn.execute(
            """
            SELECT rowid AS rowid, document_id, chunk_index, chunk_type, char_start, char_end,
                   text, token_count, embedding, created_at
            FROM chunks WHERE document_id = ? ORDER BY chunk_index, rowid
            """,
            (document_id,),
        ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    def count_chunks(self, document_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM chunks WHERE document_id = ?", (document_id,)
        ).fetchone()[0]

    def delete_chunks(self, document_id: str) -> int:
        """Delete every chunk of *document_id*. Returns the number removed."""
        cur = self._conn.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
        self._conn.commit()
        return cur.rowcount

    # ------------------------------------------------------------------
    # Nearest-neighbour search
    # ------------------------------------------------------------------

    def search_chunks(
        self, user_id: str, embedding: list[float], limit: int = 30
    ) -> list[ChunkHit]:
        """Nearest chunks to *embedding* among documents owned by *user_id*.

        The ownership filter is part of the search query itself, so chunks of
        other users are never candidates. Chunks stored with a different
        dimensionality are skipped. Results are sorted by ascending L2 distance.
        """
        rows = self._conn.execute(
            """
            SELECT c.rowid AS rowid, c.document_id, c.chunk_index, c.chunk_type, c.char_start,
                   c.char_end, c.text, c.token_count, c.embedding, c.created_at,
                   d.file_name,
                   vec_distance_l2(c.embedding, ?) AS distance
            FROM chunks c
            JOIN documents d ON d.id = c.document_id
            WHERE d.user_id = ?
              AND vec_length(c.embedding) = ?
            ORDER BY distance
            LIMIT ?
            """,
            (to_blob(embedding), user_id, len(embedding), limit),
        ).fetchall()
        return [
            ChunkHit(chunk=_row_to_chunk(r), distance=r["distance"], file_name=r["file_name"])
            for r in rows
        ]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        user_id=row["user_id"],
        file_name=row["file_name"],
        content_hash=row["content_hash"],
        storage_path=row["storage_path"],
        status=DocumentStatus(row["status"]),
        page_count=row["page_count"],
        doc_type=row["doc_type"],
        error=row["error"],
        lease_until=row["lease_until"],
        created_at=row["created_at"],
    )


def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    return Chunk(
        id=row["rowid"],
        document_id=row["document_id"],
        chunk_index=row["chunk_index"],
        chunk_type=ChunkType(row["chunk_type"]),
        char_start=row["char_start"],
        char_end=row["char_end"],
        text=row["text"],
        token_count=row["token_count"],
        embedding=from_blob(row["embedding"]),
        created_at=row["created_at"],
    )
