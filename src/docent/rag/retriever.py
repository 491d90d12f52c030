"""User-scoped dense retrieval over stored chunk embeddings.

The query is embedded with the same model as ingest, truncated with the same
rule as stored vectors, and searched with ``Repository.search_chunks``. The
owner filter lives inside the search query, so another user's chunks are
never candidates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from docent.db.models import Chunk
from docent.db.repository import Repository
from docent.db.vectors import truncate
from docent.rag.embedder import Embedder

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    """A retrieved chunk plus retrieval metadata.

    Attributes:
        chunk: The Chunk row (identity, offsets and stored embedding).
        distance: L2 distance to the query (lower = closer).
        file_name: Name of the owning document.
        rerank_score: Cross-encoder relevance in [0, 1]; None until reranked.
    """

    chunk: Chunk
    distance: float
    file_name: str
    rerank_score: float | None = None

    @property
    def text(self) -> str:
        return self.chunk.text


@dataclass
class RetrievalResult:
    query: str
    query_embedding: list[float]
    candidates: list[Candidate] = field(default_factory=list)


class Retriever:
    def __init__(
        self,
        repo: Repository,
        embedder: Embedder,
        max_indexed_dims: int = 2000,
        limit: int = 30,
    ) -> None:
        self.repo = repo
        self.embedder = embedder
        self.max_indexed_dims = max_indexed_dims
        self.limit = limit

    async def retrieve(self, query: str, user_id: str, limit: int | None = None) -> RetrievalResult:
        """Return the nearest chunks of *user_id*'s documents, closest first."""
        vector = truncate(await self.embedder.embed(query), self.max_indexed_dims)
        hits = self.repo.search_chunks(user_id, vector, limit or self.limit)
        logger.debug("Retrieved %d candidates", len(hits), extra={"user_id": user_id})
        return RetrievalResult(
            query=query,
            query_embedding=vector,
            candidates=[Candidate(h.chunk, h.distance, h.file_name) for h in hits],
        )
