"""Contracts shared by the embedding and completion backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

__all__ = ["EmbeddingProvider", "LLMProvider"]


class EmbeddingProvider(ABC):
    """Turns texts into fixed-length vectors."""

    name: str = "embedding"

    @abstractmethod
    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        """Encode the provided texts into embeddings, one vector per text."""


class LLMProvider(ABC):
    """Produces an answer for a fully assembled prompt."""

    name: str = "llm"

    @abstractmethod
    async def generate(self, prompt: str, max_tokens: int = 256, temperature: float = 0.0) -> str:
        """Return the completion text; failures surface as exceptions."""
