"""OpenAI-backed embedding and chat completion providers."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

import openai
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from labor_rag.errors import ProviderError

from .base import EmbeddingProvider, LLMProvider

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Network hiccups and throttling are worth another attempt; auth and request
# errors are not.
TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def build_client(api_key: str, *, base_url: Optional[str] = None, timeout: float = 60.0) -> AsyncOpenAI:
    if not api_key:
        raise ProviderError("OPENAI_API_KEY is required for the openai provider", provider="openai")
    return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    *,
    provider: str,
    max_attempts: int = 3,
    wait_multiplier: float = 1.0,
) -> T:
    """Run *call*, retrying transient OpenAI failures with exponential backoff."""

    try:
        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=wait_multiplier, min=wait_multiplier, max=30 * wait_multiplier),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    LOGGER.warning("Retrying %s call (attempt %s)", provider, attempt.retry_state.attempt_number)
                return await call()
    except openai.OpenAIError as error:
        raise ProviderError(f"{provider} request failed: {error}", provider=provider, cause=error) from error
    raise ProviderError(f"{provider} retries exhausted", provider=provider)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings through the OpenAI embeddings endpoint."""

    name = "openai-embedding"

    def __init__(
        self,
        client: Any,
        *,
        model: str = "text-embedding-3-small",
        max_attempts: int = 3,
        wait_multiplier: float = 1.0,
    ) -> None:
        self._client = client
        self.model = model
        self._max_attempts = max_attempts
        self._wait_multiplier = wait_multiplier

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []

        async def _call() -> Any:
            return await self._client.embeddings.create(model=self.model, input=list(texts))

        response = await call_with_retry(
            _call,
            provider=self.name,
            max_attempts=self._max_attempts,
            wait_multiplier=self._wait_multiplier,
        )
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


class OpenAIChatProvider(LLMProvider):
    """Single-turn chat completions through the OpenAI API."""

    name = "openai-chat"

    def __init__(
        self,
        client: Any,
        *,
        model: str = "gpt-3.5-turbo",
        max_attempts: int = 3,
        wait_multiplier: float = 1.0,
    ) -> None:
        self._client = client
        self.model = model
        self._max_attempts = max_attempts
        self._wait_multiplier = wait_multiplier

    async def generate(self, prompt: str, max_tokens: int = 256, temperature: float = 0.0) -> str:
        async def _call() -> Any:
            return await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )

        completion = await call_with_retry(
            _call,
            provider=self.name,
            max_attempts=self._max_attempts,
            wait_multiplier=self._wait_multiplier,
        )
        if not completion.choices:
            raise ProviderError("Completion returned no choices", provider=self.name)
        return completion.choices[0].message.content or ""
