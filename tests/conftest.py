"""Shared fixtures: offline providers, an isolated service and an API client."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from labor_rag.config import Settings, reset_settings_cache
from labor_rag.ingest.models import ChunkMetadata, DocumentChunk, DocumentType, SourceOrigin
from labor_rag.providers import EmbeddingProvider, MockEmbeddingProvider, MockLLMProvider
from labor_rag.services.rag import RAGService, get_rag_service


class StaticEmbeddingProvider(EmbeddingProvider):
    """Return pre-registered vectors; unknown texts map to *default*."""

    name = "static-embedding"

    def __init__(self, vectors: Dict[str, List[float]], default: Optional[List[float]] = None) -> None:
        self.vectors = vectors
        self.default = default or [0.0, 0.0]
        self.calls: List[List[str]] = []

    async def encode(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [list(self.vectors.get(text, self.default)) for text in texts]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    for key in ("OPENAI_API_KEY", "EMBEDDING_PROVIDER", "LLM_PROVIDER", "OPENAI_BASE_URL"):
        monkeypatch.delenv(key, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        uploads_dir=str(tmp_path / "uploads"),
        backend_laws_dir=str(tmp_path / "backend_laws"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def llm_provider() -> MockLLMProvider:
    return MockLLMProvider()


@pytest.fixture
def rag_service(settings, embedding_provider, llm_provider) -> RAGService:
    return RAGService(settings, embedding_provider=embedding_provider, llm_provider=llm_provider)


@pytest.fixture
def client(rag_service):
    from labor_rag.main import app

    app.dependency_overrides[get_rag_service] = lambda: rag_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_chunk() -> Callable[..., DocumentChunk]:
    def _factory(
        content: str,
        *,
        document_type: DocumentType = DocumentType.LAW,
        file_name: str = "labor-law.pdf",
        chunk_index: int = 0,
        embedding: Optional[List[float]] = None,
    ) -> DocumentChunk:
        metadata = ChunkMetadata(
            document_type=document_type,
            file_name=file_name,
            source_origin=SourceOrigin.ADMIN_UPLOAD,
            file_id=f"{file_name}-id",
            chunk_index=chunk_index,
            char_start=0,
            char_end=len(content),
        )
        return DocumentChunk(content=content, metadata=metadata, embedding=embedding)

    return _factory
