"""Self-correction: detect weak retrieval and retry once with a rewritten query."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from docent.db.vectors import cosine
from docent.rag.llm_client import Generator
from docent.rag.retriever import Candidate, RetrievalResult, Retriever

logger = logging.getLogger(__name__)

NO_CONTEXT = "no_context"
LOW_SIMILARITY = "low_similarity"


@dataclass
class RelevanceAssessment:
    needs_correction: bool
    avg_similarity: float
    threshold: float
    reason: str | None = None


@dataclass
class RetrievalTrace:
    """What happened to one question's retrieval. Never persisted."""

    initial_similarity: float
    needs_correction: bool
    reason: str | None = None
    rephrased_query: str | None = None
    retrieval_used: str = "original"
    note: str | None = None

    def to_dict(self) -> dict:
        return {
            "initialSimilarity": self.initial_similarity,
            "needsCorrection": self.needs_correction,
            "reason": self.reason,
            "rephrasedQuery": self.rephrased_query,
            "retrievalUsed": self.retrieval_used,
            "note": self.note,
        }


def assess_context_relevance(
    query_embedding: list[float],
    candidates: list[Candidate],
    threshold: float = 0.30,
) -> RelevanceAssessment:
    """Mean cosine similarity between the query and each candidate's stored embedding.

    An empty candidate list always needs correction (``no_context``).
    Candidates without a stored embedding are ignored; if none is usable the
    mean is 0.
    """
    if not candidates:
        return RelevanceAssessment(True, 0.0, threshold, reason=NO_CONTEXT)

    sims = [cosine(query_embedding, c.chunk.embedding) for c in candidates if c.chunk.embedding]
    avg = sum(sims) / len(sims) if sims else 0.0
    if avg < threshold:
        return RelevanceAssessment(True, avg, threshold, reason=LOW_SIMILARITY)
    return RelevanceAssessment(False, avg, threshold)


class SelfCorrector:
    """Single-shot corrective retrieval. Not a loop."""

    def __init__(
        self,
        retriever: Retriever,
        generator: Generator | None,
        threshold: float = 0.30,
    ) -> None:
        self.retriever = retriever
        self.generator = generator
        self.threshold = threshold

    async def run(
        self, question: str, user_id: str, initial: RetrievalResult
    ) -> tuple[list[Candidate], RetrievalTrace]:
        """Return the candidate set to answer from and the trace explaining it."""
        assessment = assess_context_relevance(
            initial.query_embedding, initial.candidates, self.threshold
        )
        trace = RetrievalTrace(
            initial_similarity=assessment.avg_similarity,
            needs_correction=assessment.needs_correction,
            reason=assessment.reason,
        )
        if not assessment.needs_correction:
            return initial.candidates, trace

        trace.note = "Low question-context similarity"
        if self.generator is None:
            trace.note += "; no generator for rewriting"
            return initial.candidates, trace

        try:
            rephrased = await self.generator.rewrite_query(question)
        except Exception as exc:
            logger.warning("Query rewrite failed: %s", exc, extra={"user_id": user_id})
            trace.note += "; rewrite failed"
            return initial.candidates, trace
        if not rephrased:
            return initial.candidates, trace

        trace.rephrased_query = rephrased
        retried = await self.retriever.retrieve(rephrased, user_id)
        if not retried.candidates:
            trace.note += "; rewritten query found nothing"
            return initial.candidates, trace

        trace.retrieval_used = "rephrase"
        logger.info(
            "Self-correction used rewritten query",
            extra={"user_id": user_id, "candidates": len(retried.candidates)},
        )
        return retried.candidates, trace
