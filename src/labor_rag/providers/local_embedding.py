"""Embedding provider backed by a local Sentence Transformers model."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, List, Optional, Sequence

from labor_rag.errors import ProviderError

from .base import EmbeddingProvider

LOGGER = logging.getLogger(__name__)


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Encode texts with ``sentence-transformers`` in a worker thread.

    The model is loaded lazily on first use; install the ``local`` extra to
    enable this backend.
    """

    name = "sentence-transformers"

    def __init__(self, model_name: str, *, device: Optional[str] = None) -> None:
        self.model_name = model_name
        self.device = device
        self._model: Any = None
        self._lock = threading.Lock()

    def _load(self) -> Any:
        with self._lock:
            if self._model is None:
                try:
                    from sentence_transformers import SentenceTransformer
                except ImportError as error:
                    raise ProviderError(
                        "EMBEDDING_PROVIDER=local requires the 'sentence-transformers' package",
                        provider=self.name,
                        cause=error,
                    ) from error
                LOGGER.info("Loading sentence-transformers model %s", self.model_name)
                self._model = SentenceTransformer(self.model_name, device=self.device)
            return self._model

    def _encode_sync(self, texts: List[str]) -> List[List[float]]:
        model = self._load()
        embeddings = model.encode(
            texts,
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=False,
        )
        return embeddings.tolist()

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        return await asyncio.to_thread(self._encode_sync, list(texts))
