"""In-memory corpus storage and similarity search."""

from __future__ import annotations

from .corpus import CorpusStore
from .similarity import (
    ScoredChunk,
    SimilarityEngine,
    cosine_scores,
    cosine_similarity,
    embedding_input,
    ensure_embeddings,
)

__all__ = [
    "CorpusStore",
    "ScoredChunk",
    "SimilarityEngine",
    "cosine_scores",
    "cosine_similarity",
    "embedding_input",
    "ensure_embeddings",
]
