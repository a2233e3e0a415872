"""Mock embedding provider for tests and offline development."""
from __future__ import annotations

import hashlib
import math
import re
from typing import List, Sequence

from .base import EmbeddingProvider

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class MockEmbeddingProvider(EmbeddingProvider):
    """Return deterministic bag-of-words vectors.

    Every lower-cased token is hashed into one of ``dimension`` buckets, so
    texts sharing vocabulary score higher than unrelated ones. Text without
    word characters maps to the zero vector.
    """

    name = "mock-embedding"

    def __init__(self, dimension: int = 64) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be a positive integer")
        self.dimension = dimension
        self.calls: List[List[str]] = []

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self._embed(text) for text in texts]

    def _embed(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:4], "big") % self.dimension] += 1.0
        norm = math.sqrt(sum(value * value for value in vector))
        if norm:
            vector = [value / norm for value in vector]
        return vector
