from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from labor_rag.config import Settings, get_settings
from labor_rag.embeddings import EmbeddingModel
from labor_rag.ingest.models import DocumentType, IngestOutcome, IngestResult, SourceOrigin
from labor_rag.ingest.pipeline import IngestPipeline, IngestPipelineConfig, OCRResult
from labor_rag.logging_config import AUDIT_LOGGER_NAME
from labor_rag.providers import create_embedding_provider, create_llm_provider
from labor_rag.providers.base import EmbeddingProvider, LLMProvider
from labor_rag.telemetry import traced_duration
from labor_rag.vectorstore.corpus import CorpusStore
from labor_rag.vectorstore.similarity import SimilarityEngine

from .chat import ChatAnswer, ChatOrchestrator, ChatTurn

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)


class RAGService:
    """High level orchestration for the labor-law assistant.

    Owns the corpus store and wires it into the ingestion pipeline and the
    chat orchestrator so that both see the same law and contract corpora.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        embedding_provider: Optional[EmbeddingProvider] = None,
        llm_provider: Optional[LLMProvider] = None,
        store: Optional[CorpusStore] = None,
    ) -> None:
        self.settings = settings
        self.store = store or CorpusStore()
        embedding_model = EmbeddingModel(embedding_provider or create_embedding_provider(settings))
        self.pipeline = IngestPipeline(
            self.store,
            embedding_model,
            IngestPipelineConfig(
                chunk_chars=settings.chunk_size,
                overlap_chars=settings.chunk_overlap,
                ocr_language=settings.ocr_language,
                embedding_prefix_chars=settings.embedding_prefix_chars,
            ),
        )
        self.orchestrator = ChatOrchestrator(
            self.store,
            SimilarityEngine(embedding_model, prefix_chars=settings.embedding_prefix_chars),
            llm_provider or create_llm_provider(settings),
            top_k=settings.chat_top_k,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )

    async def ingest_upload(
        self,
        raw_bytes: bytes,
        file_name: str,
        document_type: DocumentType,
        source_origin: SourceOrigin,
        mime_type: Optional[str] = None,
    ) -> IngestResult:
        return await self.pipeline.ingest(raw_bytes, file_name, document_type, source_origin, mime_type)

    async def extract_text(self, raw_bytes: bytes, file_name: str, mime_type: Optional[str] = None) -> OCRResult:
        return await self.pipeline.extract_text(raw_bytes, file_name, mime_type)

    async def answer(
        self,
        message: str,
        mode: DocumentType,
        history: Sequence[ChatTurn] = (),
        contract_text: Optional[str] = None,
    ) -> ChatAnswer:
        return await self.orchestrator.answer(message, mode, history=history, contract_text=contract_text)

    def counts(self) -> Dict[DocumentType, int]:
        return self.store.counts()

    def clear(self, document_type: Optional[DocumentType] = None) -> None:
        self.store.clear(document_type)
        AUDIT_LOGGER.info(
            {"event": "clear", "document_type": document_type.value if document_type else "all"}
        )
        LOGGER.info("Cleared %s documents", document_type.value if document_type else "all")

    async def preload(self, directory: Optional[Path] = None) -> List[IngestOutcome]:
        """Load every law file shipped with the backend into the law corpus."""

        target = Path(directory or self.settings.backend_laws_dir)
        with traced_duration("preload.laws", logger=LOGGER, directory=str(target)):
            outcomes = await self.pipeline.ingest_directory(
                target, DocumentType.LAW, SourceOrigin.PRELOADED_BACKEND
            )
        failed = [outcome.file_name for outcome in outcomes if not outcome.ok]
        if failed:
            LOGGER.warning("Failed to preload %s law files: %s", len(failed), ", ".join(failed))
        return outcomes


@lru_cache()
def get_rag_service() -> RAGService:
    """FastAPI dependency returning the shared :class:`RAGService` instance."""

    return RAGService(get_settings())


def reset_rag_service() -> None:
    get_rag_service.cache_clear()  # type: ignore[attr-defined]


__all__ = ["RAGService", "get_rag_service", "reset_rag_service"]
