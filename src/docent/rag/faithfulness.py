"""Faithfulness: how close the answer's embedding lies to its context.

A groundedness proxy on a 0-100 scale, not a correctness check.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from docent.db.models import Chunk
from docent.db.vectors import cosine
from docent.rag.embedder import Embedder

logger = logging.getLogger(__name__)


@dataclass
class ChunkSimilarity:
    chunk_id: int | None
    chunk_index: int
    similarity: float

    def to_dict(self) -> dict:
        return {"chunkId": self.chunk_id, "chunkIndex": self.chunk_index, "similarity": self.similarity}


@dataclass
class FaithfulnessResult:
    score: int
    per_chunk: list[ChunkSimilarity] = field(default_factory=list)


async def score_faithfulness(
    embedder: Embedder,
    context: Sequence[Chunk],
    answer: str,
    top_k: int = 3,
) -> FaithfulnessResult:
    """Score *answer* against the *context* chunks used to generate it.

    Per-chunk cosine similarities between the answer and each chunk are
    ranked, the top *top_k* are averaged and mapped onto 0-100 (clamped).
    A chunk's stored embedding is used when present; otherwise its text is
    embedded, and a chunk that fails to embed scores 0. No answer or no
    context scores 0 with an empty breakdown.
    """
    if not answer or not answer.strip() or not context:
        return FaithfulnessResult(score=0)

    answer_vec = await embedder.embed(answer)
    per_chunk: list[ChunkSimilarity] = []
    for chunk in context:
        vector = chunk.embedding
        if not vector:
            try:
                vector = await embedder.embed(chunk.text)
            except Exception as exc:
                logger.warning(
                    "Could not embed context chunk: %s", exc, extra={"chunk_id": chunk.id}
                )
                vector = None
        sim = cosine(answer_vec, vector) if vector else 0.0
        per_chunk.append(ChunkSimilarity(chunk.id, chunk.chunk_index, sim))

    per_chunk.sort(key=lambda c: c.similarity, reverse=True)
    top = per_chunk[: max(1, top_k)]
    mean = sum(c.similarity for c in top) / len(top)
    score = max(0, min(100, round(mean * 100)))
    return FaithfulnessResult(score=score, per_chunk=per_chunk)
