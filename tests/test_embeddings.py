from typing import List, Sequence

import pytest

from labor_rag.embeddings import EmbeddingModel
from labor_rag.errors import ProviderError
from labor_rag.providers import EmbeddingProvider, MockEmbeddingProvider


class ShortEmbeddingProvider(EmbeddingProvider):
    name = "short"

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        return [[1.0]]


class ExplodingEmbeddingProvider(EmbeddingProvider):
    name = "exploding"

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        raise ConnectionError("socket closed")


@pytest.mark.anyio
async def test_embed_texts_returns_float_vectors():
    model = EmbeddingModel(MockEmbeddingProvider(dimension=8))

    vectors = await model.embed_texts(["نظام العمل", "labor law"])

    assert len(vectors) == 2
    assert all(len(vector) == 8 for vector in vectors)
    assert all(isinstance(value, float) for value in vectors[0])
    assert model.name == "mock-embedding"


@pytest.mark.anyio
async def test_empty_input_skips_provider():
    provider = MockEmbeddingProvider()

    assert await EmbeddingModel(provider).embed_texts([]) == []
    assert provider.calls == []


@pytest.mark.anyio
async def test_response_size_mismatch_raises():
    with pytest.raises(ProviderError):
        await EmbeddingModel(ShortEmbeddingProvider()).embed_texts(["a", "b"])


@pytest.mark.anyio
async def test_unexpected_provider_errors_are_wrapped():
    with pytest.raises(ProviderError) as excinfo:
        await EmbeddingModel(ExplodingEmbeddingProvider()).embed_text("a")

    assert excinfo.value.provider == "exploding"
    assert isinstance(excinfo.value.__cause__, ConnectionError)
