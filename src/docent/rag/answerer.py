"""Question answering: retrieve → self-correct → rerank → generate → score."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from docent.errors import InputError
from docent.rag.correction import RetrievalTrace, SelfCorrector, assess_context_relevance
from docent.rag.embedder import Embedder
from docent.rag.faithfulness import ChunkSimilarity, score_faithfulness
from docent.rag.llm_client import Generator
from docent.rag.reranker import Reranker
from docent.rag.retriever import Candidate, Retriever

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "Sorry, couldn't generate an answer."


@dataclass
class AnswerResult:
    answer: str
    sources: list[Candidate]
    faithfulness: int
    self_correction: RetrievalTrace
    faithfulness_detail: list[ChunkSimilarity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "answer": self.answer,
            "sources": [
                {
                    "id": s.chunk.id,
                    "documentId": s.chunk.document_id,
                    "fileName": s.file_name,
                    "chunkIndex": s.chunk.chunk_index,
                    "chunkType": s.chunk.chunk_type.value,
                    "charStart": s.chunk.char_start,
                    "charEnd": s.chunk.char_end,
                    "text": s.chunk.text,
                    "distance": s.distance,
                    "rerankScore": s.rerank_score,
                }
                for s in self.sources
            ],
            "faithfulness": self.faithfulness,
            "faithfulnessDetail": [d.to_dict() for d in self.faithfulness_detail],
            "selfCorrection": self.self_correction.to_dict(),
        }


class Answerer:
    """Answers a user's question strictly from that user's documents.

    Collaborators are optional where the pipeline can degrade: without a
    corrector the initial retrieval is used as-is, without a reranker the
    first ``rerank_top_k`` candidates are kept, and without a generator the
    answer is ``FALLBACK_ANSWER``.
    """

    def __init__(
        self,
        retriever: Retriever,
        embedder: Embedder,
        generator: Generator | None = None,
        corrector: SelfCorrector | None = None,
        reranker: Reranker | None = None,
        *,
        rerank_top_k: int = 6,
        faithfulness_top_k: int = 3,
        threshold: float = 0.30,
    ) -> None:
        self.retriever = retriever
        self.embedder = embedder
        self.generator = generator
        self.corrector = corrector
        self.reranker = reranker
        self.rerank_top_k = rerank_top_k
        self.faithfulness_top_k = faithfulness_top_k
        self.threshold = threshold

    async def answer(self, question: str, user_id: str) -> AnswerResult:
        """Answer *question* for *user_id*.

        Raises:
            InputError: Missing question or user.
        """
        if not question or not question.strip():
            raise InputError("Missing question", field="question")
        if not user_id or not user_id.strip():
            raise InputError("User id is required", field="user_id")
        question = question.strip()

        initial = await self.retriever.retrieve(question, user_id)
        if self.corrector is not None:
            candidates, trace = await self.corrector.run(question, user_id, initial)
        else:
            assessment = assess_context_relevance(
                initial.query_embedding, initial.candidates, self.threshold
            )
            candidates = initial.candidates
            trace = RetrievalTrace(
                initial_similarity=assessment.avg_similarity,
                needs_correction=assessment.needs_correction,
                reason=assessment.reason,
                note="self-correction disabled" if assessment.needs_correction else None,
            )

        if self.reranker is not None:
            context = await self.reranker.rerank(question, candidates, self.rerank_top_k)
        else:
            context = candidates[: self.rerank_top_k]

        text = await self._generate(question, context)
        if text == FALLBACK_ANSWER:
            faith_score, faith_detail = 0, []
        else:
            faith = await score_faithfulness(
                self.embedder, [c.chunk for c in context], text, self.faithfulness_top_k
            )
            faith_score, faith_detail = faith.score, faith.per_chunk

        logger.info(
            "Answered question",
            extra={
                "user_id": user_id,
                "sources": len(context),
                "retrieval_used": trace.retrieval_used,
                "faithfulness": faith_score,
            },
        )
        return AnswerResult(
            answer=text,
            sources=context,
            faithfulness=faith_score,
            self_correction=trace,
            faithfulness_detail=faith_detail,
        )

    async def _generate(self, question: str, context: list[Candidate]) -> str:
        if self.generator is None:
            return FALLBACK_ANSWER
        joined = "\n\n".join(c.text for c in context)
        try:
            text = await self.generator.generate(question, joined)
        except Exception as exc:
            logger.error("Generation failed: %s", exc)
            return FALLBACK_ANSWER
        return text or FALLBACK_ANSWER
