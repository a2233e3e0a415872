"""Instrumented access to the configured embedding provider."""
from __future__ import annotations

import logging
import time
from typing import List, Sequence

from labor_rag.errors import ProviderError
from labor_rag.providers.base import EmbeddingProvider
from labor_rag.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)


class EmbeddingModel:
    """Wrap an :class:`EmbeddingProvider` with timing, logging and validation."""

    def __init__(self, provider: EmbeddingProvider) -> None:
        self._provider = provider

    @property
    def name(self) -> str:
        return self._provider.name

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        started = time.perf_counter()
        try:
            embeddings = await self._provider.encode(list(texts))
        except ProviderError as error:
            self._emit(len(texts), started, error)
            raise
        except Exception as error:
            self._emit(len(texts), started, error)
            raise ProviderError(
                f"Embedding provider {self.name} failed: {error}", provider=self.name, cause=error
            ) from error

        if len(embeddings) != len(texts):
            error = ProviderError(
                f"Embedding response size mismatch: expected {len(texts)}, got {len(embeddings)}",
                provider=self.name,
            )
            self._emit(len(texts), started, error)
            raise error

        self._emit(len(texts), started)
        return [list(map(float, vector)) for vector in embeddings]

    async def embed_text(self, text: str) -> List[float]:
        return (await self.embed_texts([text]))[0]

    def _emit(self, count: int, started: float, error: BaseException | None = None) -> None:
        emit_embeddings_event(
            model=self.name,
            count=count,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            errors=[str(error)] if error else None,
        )
