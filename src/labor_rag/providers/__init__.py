"""Embedding and completion providers selected by configuration."""
from __future__ import annotations

from labor_rag.config import Settings

from .base import EmbeddingProvider, LLMProvider
from .local_embedding import SentenceTransformerEmbeddingProvider
from .mock_embedding import MockEmbeddingProvider
from .mock_llm import MockLLMProvider
from .openai_provider import OpenAIChatProvider, OpenAIEmbeddingProvider, build_client


def create_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Instantiate the embedding backend named by ``EMBEDDING_PROVIDER``."""

    if settings.embedding_provider == "openai":
        client = build_client(
            settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.provider_timeout,
        )
        return OpenAIEmbeddingProvider(
            client,
            model=settings.openai_embedding_model,
            max_attempts=settings.provider_max_retries,
        )
    if settings.embedding_provider == "local":
        return SentenceTransformerEmbeddingProvider(settings.local_embedding_model)
    return MockEmbeddingProvider()


def create_llm_provider(settings: Settings) -> LLMProvider:
    """Instantiate the completion backend named by ``LLM_PROVIDER``."""

    if settings.llm_provider == "openai":
        client = build_client(
            settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.provider_timeout,
        )
        return OpenAIChatProvider(
            client,
            model=settings.openai_model,
            max_attempts=settings.provider_max_retries,
        )
    return MockLLMProvider()


__all__ = [
    "EmbeddingProvider",
    "LLMProvider",
    "MockEmbeddingProvider",
    "MockLLMProvider",
    "OpenAIChatProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
    "create_embedding_provider",
    "create_llm_provider",
]
