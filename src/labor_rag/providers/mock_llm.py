"""Offline completion backend used by tests and keyless deployments."""
from __future__ import annotations

from typing import List

from .base import LLMProvider


class MockLLMProvider(LLMProvider):
    """Record each prompt and answer with a fixed prefix plus its head."""

    name = "mock-llm"

    def __init__(self) -> None:
        self.prompts: List[str] = []

    async def generate(self, prompt: str, max_tokens: int = 256, temperature: float = 0.0) -> str:
        del max_tokens, temperature
        self.prompts.append(prompt)
        return f"MOCK_ANSWER: {prompt[:100]}"
