"""Cross-encoder reranking of retrieved candidates."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from docent.rag.embedder import LazyModel
from docent.rag.retriever import Candidate

logger = logging.getLogger(__name__)


class Reranker(ABC):
    async def rerank(self, query: str, candidates: list[Candidate], top_k: int = 6) -> list[Candidate]:
        """Return the *top_k* candidates by descending relevance to *query*.

        Each returned candidate carries ``rerank_score`` in [0, 1]; chunk
        identity and metadata are untouched. If scoring fails the first
        *top_k* candidates are returned in retrieval order.
        """
        if not candidates:
            return []
        try:
            scores = await self.score(query, [c.text for c in candidates])
        except Exception as exc:
            logger.warning("Reranking failed, keeping retrieval order: %s", exc)
            return candidates[:top_k]
        ranked = sorted(zip(candidates, scores), key=lambda pair: float(pair[1]), reverse=True)
        for candidate, score in ranked:
            candidate.rerank_score = float(np.clip(score, 0.0, 1.0))
        return [candidate for candidate, _ in ranked[:top_k]]

    def warm_up(self) -> None:
        """Start loading model weights in the background. No-op by default."""

    @abstractmethod
    async def score(self, query: str, texts: list[str]) -> list[float]:
        """Relevance of each text to *query*, higher is better.

        Candidates are ranked on these raw values; the stored
        ``rerank_score`` is clipped to [0, 1].
        """


def _load_cross_encoder(model_name: str) -> Any:
    from sentence_transformers import CrossEncoder

    return CrossEncoder(model_name)


class CrossEncoderReranker(Reranker):
    """sentence-transformers CrossEncoder.

    ms-marco cross-encoders return raw logits, so scores are passed through a
    sigmoid to land in (0, 1) without changing their order.
    """

    def __init__(self, model_name: str = "cross-encoder/ms-marco-MiniLM-L-6-v2") -> None:
        self.model_name = model_name
        self._model: LazyModel[Any] = LazyModel(
            lambda: _load_cross_encoder(model_name), name=model_name
        )

    def warm_up(self) -> None:
        self._model.start()

    async def score(self, query: str, texts: list[str]) -> list[float]:
        model = await self._model.get()
        pairs = [(query, text) for text in texts]
        scores = await asyncio.to_thread(model.predict, pairs, show_progress_bar=False)
        logits = np.atleast_1d(np.asarray(scores, dtype=np.float64))
        return [float(s) for s in 1.0 / (1.0 + np.exp(-logits))]
