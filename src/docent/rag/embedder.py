"""Sentence embeddings and the lazily loaded model handle they share.

Model weights are loaded once per process, on first use, on a background
thread. Every caller awaits the same in-flight load.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LazyModel(Generic[T]):
    """A once-initialized shared resource.

    The first call to ``get()`` starts *loader* on a daemon thread. All
    callers, on any event loop, await the same future. If the load fails the
    future is discarded so a later call retries; callers already waiting see
    the error.
    """

    def __init__(self, loader: Callable[[], T], name: str = "model") -> None:
        self._loader = loader
        self.name = name
        self._lock = threading.Lock()
        self._future: concurrent.futures.Future[T] | None = None

    @property
    def loaded(self) -> bool:
        fut = self._future
        return fut is not None and fut.done() and fut.exception() is None

    def start(self) -> concurrent.futures.Future[T]:
        """Kick off the load if it is not already running; return its future."""
        with self._lock:
            if self._future is None:
                fut: concurrent.futures.Future[T] = concurrent.futures.Future()
                fut.set_running_or_notify_cancel()
                self._future = fut
                threading.Thread(
                    target=self._load, args=(fut,), name=f"load-{self.name}", daemon=True
                ).start()
            return self._future

    def _load(self, fut: concurrent.futures.Future[T]) -> None:
        logger.info("Loading %s", self.name)
        try:
            value = self._loader()
        except BaseException as exc:  # delivered to every awaiting caller
            with self._lock:
                if self._future is fut:
                    self._future = None
            logger.error("Failed to load %s: %s", self.name, exc)
            fut.set_exception(exc)
            return
        logger.info("Loaded %s", self.name)
        fut.set_result(value)

    async def get(self) -> T:
        """Return the loaded resource, waiting for the load if needed."""
        return await asyncio.wrap_future(self.start())


class Embedder(ABC):
    """text → unit-length vector of fixed dimensionality."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed one text."""

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts; order is preserved."""
        return list(await asyncio.gather(*(self.embed(t) for t in texts)))

    def warm_up(self) -> None:
        """Start loading model weights in the background. No-op by default."""


def _load_sentence_transformer(model_name: str, device: str | None) -> Any:
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name, device=device)


class SentenceTransformerEmbedder(Embedder):
    """Embeddings from a sentence-transformers model, normalized to unit length.

    ``encode()`` runs in a worker thread so the event loop is never blocked.
    """

    def __init__(self, model_name: str, device: str | None = None) -> None:
        self.model_name = model_name
        self._model: LazyModel[Any] = LazyModel(
            lambda: _load_sentence_transformer(model_name, device), name=model_name
        )

    def warm_up(self) -> None:
        """Start loading the model without waiting for it."""
        self._model.start()

    async def embed(self, text: str) -> list[float]:
        model = await self._model.get()
        vector = await asyncio.to_thread(
            model.encode, text, normalize_embeddings=True, show_progress_bar=False
        )
        return [float(v) for v in vector]

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        model = await self._model.get()
        matrix = await asyncio.to_thread(
            model.encode, list(texts), normalize_embeddings=True, show_progress_bar=False
        )
        return [[float(v) for v in row] for row in matrix]
