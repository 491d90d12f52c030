"""docent database layer."""

from docent.db.connection import Database
from docent.db.migrations import MIGRATIONS, run_migrations
from docent.db.models import Chunk, ChunkType, Document, DocumentStatus
from docent.db.repository import ChunkHit, Repository
from docent.db.schema import initialize

__all__ = [
    "Chunk",
    "ChunkHit",
    "ChunkType",
    "Database",
    "Document",
    "DocumentStatus",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "Repository",
]
