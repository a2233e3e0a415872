"""Exhaustive cosine-similarity search over an in-memory corpus."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from labor_rag.config import EMBEDDING_PREFIX_CHARS
from labor_rag.embeddings import EmbeddingModel
from labor_rag.errors import ProviderError
from labor_rag.ingest.models import DocumentChunk
from labor_rag.telemetry import emit_retriever_event

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredChunk:
    """A corpus chunk paired with its similarity to the query."""

    chunk: DocumentChunk
    score: float


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Return the cosine of the angle between two vectors.

    Zero-magnitude input scores ``0.0`` instead of dividing by zero.
    """

    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError("Vectors must be of the same dimension")
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return 0.0
    return float(np.dot(a, b) / norm)


def cosine_scores(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Score every row of *matrix* against *query*; zero-norm rows score 0."""

    q = np.asarray(query, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
        raise ValueError("Embedding dimensions do not match the query")
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    scores = np.zeros(len(matrix), dtype=np.float64)
    np.divide(dots, norms, out=scores, where=norms > 0)
    return scores


def embedding_input(chunk: DocumentChunk, prefix_chars: int = EMBEDDING_PREFIX_CHARS) -> str:
    """Text that is actually embedded for *chunk*."""

    return chunk.content[:prefix_chars]


async def ensure_embeddings(
    chunks: Sequence[DocumentChunk],
    embedding_model: EmbeddingModel,
    prefix_chars: int = EMBEDDING_PREFIX_CHARS,
) -> int:
    """Embed and cache vectors for chunks that do not have one yet.

    Returns the number of chunks embedded.
    """

    missing = [chunk for chunk in chunks if chunk.embedding is None]
    if not missing:
        return 0
    vectors = await embedding_model.embed_texts([embedding_input(chunk, prefix_chars) for chunk in missing])
    for chunk, vector in zip(missing, vectors):
        chunk.embedding = vector
    return len(missing)


class SimilarityEngine:
    """Rank corpus chunks by cosine similarity to a query."""

    def __init__(self, embedding_model: EmbeddingModel, *, prefix_chars: int = EMBEDDING_PREFIX_CHARS) -> None:
        self.embedding_model = embedding_model
        self.prefix_chars = prefix_chars

    async def search(self, query: str, corpus: Sequence[DocumentChunk], top_k: int) -> List[ScoredChunk]:
        """Return up to *top_k* chunks ordered by descending score.

        Ties keep corpus insertion order. An empty corpus yields an empty list
        without calling the embedding provider.
        """

        if not corpus or top_k <= 0:
            return []

        started = time.perf_counter()
        query_vector = await self.embedding_model.embed_text(query)
        embedded_on_demand = await ensure_embeddings(corpus, self.embedding_model, self.prefix_chars)

        try:
            matrix = np.asarray([chunk.embedding for chunk in corpus], dtype=np.float64)
            scores = cosine_scores(query_vector, matrix)
        except ValueError as error:
            raise ProviderError(
                f"Inconsistent embedding dimensions: {error}", provider=self.embedding_model.name, cause=error
            ) from error

        order = np.argsort(-scores, kind="stable")[:top_k]
        results = [ScoredChunk(chunk=corpus[index], score=float(scores[index])) for index in order]

        emit_retriever_event(
            query=query,
            top_k=top_k,
            corpus_size=len(corpus),
            results=[
                {
                    "file_name": item.chunk.metadata.file_name,
                    "chunk_index": item.chunk.metadata.chunk_index,
                    "score": round(item.score, 6),
                }
                for item in results
            ],
            embedded_on_demand=embedded_on_demand,
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return results
