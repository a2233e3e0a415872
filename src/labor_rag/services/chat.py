"""Grounded question answering over one corpus."""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from labor_rag.errors import ProviderError
from labor_rag.ingest.models import DocumentType
from labor_rag.logging_config import AUDIT_LOGGER_NAME
from labor_rag.prompt_builder import build_prompt, reference_label
from labor_rag.providers.base import LLMProvider
from labor_rag.telemetry import emit_exception, emit_inference_request, emit_inference_result
from labor_rag.vectorstore.corpus import CorpusStore
from labor_rag.vectorstore.similarity import ScoredChunk, SimilarityEngine

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

NOT_LOADED_MESSAGES = {
    DocumentType.LAW: "لم تُحمّل قوانين بعد. يرجى رفعها من لوحة الإدارة.",
    DocumentType.CONTRACT: "لم يتم رفع عقد للتحليل بعد. ارفع العقد أولاً.",
}
NO_RESULTS_MESSAGE = "لم أجد معلومات ذات صلة في الوثائق المحملة. حاول صياغة السؤال بطريقة مختلفة."
UNKNOWN_FILE_NAME = "غير معروف"
PREVIEW_CHARS = 400


@dataclass(slots=True)
class ChatTurn:
    role: str
    content: str


@dataclass(slots=True)
class Source:
    """One cited chunk, labelled the same way as in the prompt."""

    type: DocumentType
    file_name: str
    content_preview: str
    ref: str


@dataclass(slots=True)
class ChatAnswer:
    text: str
    sources: List[Source] = field(default_factory=list)


def _preview(content: str) -> str:
    if len(content) <= PREVIEW_CHARS:
        return content
    return content[:PREVIEW_CHARS] + "..."


def _to_sources(results: Sequence[ScoredChunk]) -> List[Source]:
    sources: List[Source] = []
    for index, item in enumerate(results, start=1):
        metadata = item.chunk.metadata
        sources.append(
            Source(
                type=metadata.document_type,
                file_name=metadata.file_name or UNKNOWN_FILE_NAME,
                content_preview=_preview(item.chunk.content),
                ref=reference_label(index),
            )
        )
    return sources


class ChatOrchestrator:
    """Retrieve the best chunks for a question and ask the LLM to answer from them."""

    def __init__(
        self,
        store: CorpusStore,
        engine: SimilarityEngine,
        llm_provider: LLMProvider,
        *,
        top_k: int = 6,
        max_tokens: int = 1000,
        temperature: float = 0.2,
    ) -> None:
        self.store = store
        self.engine = engine
        self.llm_provider = llm_provider
        self.top_k = top_k
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def answer(
        self,
        message: str,
        mode: DocumentType,
        history: Sequence[ChatTurn] = (),
        contract_text: Optional[str] = None,
    ) -> ChatAnswer:
        """Answer *message* from the corpus selected by *mode*.

        *history* is accepted for client compatibility and does not influence
        retrieval or the prompt.
        """

        req_id = uuid.uuid4().hex
        corpus = self.store.all(mode)
        if not corpus:
            LOGGER.info("Chat request %s against empty %s corpus", req_id, mode.value)
            return self._canned(req_id, mode, message, NOT_LOADED_MESSAGES[mode])

        results = await self.engine.search(message, corpus, self.top_k)
        if not results:
            return self._canned(req_id, mode, message, NO_RESULTS_MESSAGE)

        sources = _to_sources(results)
        prompt = build_prompt(message, results, contract_text=contract_text)
        emit_inference_request(
            req_id=req_id,
            mode=mode.value,
            prompt_preview=prompt,
            prompt_len=len(prompt),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            sources=[f"{source.ref} {source.file_name}" for source in sources],
        )

        started = time.perf_counter()
        try:
            text = await self.llm_provider.generate(
                prompt, max_tokens=self.max_tokens, temperature=self.temperature
            )
        except ProviderError as error:
            emit_exception(module=f"{__name__}.llm", error=error, req_id=req_id)
            raise
        except Exception as error:
            emit_exception(module=f"{__name__}.llm", error=error, req_id=req_id)
            raise ProviderError(
                f"Completion provider {self.llm_provider.name} failed: {error}",
                provider=self.llm_provider.name,
                cause=error,
            ) from error

        emit_inference_result(
            req_id=req_id,
            mode=mode.value,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            model_used=self.llm_provider.name,
            answer_preview=text,
            fallback=False,
        )
        self._audit(req_id, mode, message, sources)
        return ChatAnswer(text=text, sources=sources)

    def _canned(self, req_id: str, mode: DocumentType, message: str, text: str) -> ChatAnswer:
        emit_inference_result(
            req_id=req_id,
            mode=mode.value,
            duration_ms=0.0,
            model_used="none",
            answer_preview=text,
            fallback=True,
        )
        self._audit(req_id, mode, message, [])
        return ChatAnswer(text=text, sources=[])

    @staticmethod
    def _audit(req_id: str, mode: DocumentType, message: str, sources: Sequence[Source]) -> None:
        AUDIT_LOGGER.info(
            {
                "event": "query",
                "req_id": req_id,
                "mode": mode.value,
                "question": message,
                "sources": [f"{source.ref} {source.file_name}" for source in sources],
            }
        )


__all__ = [
    "ChatAnswer",
    "ChatOrchestrator",
    "ChatTurn",
    "NOT_LOADED_MESSAGES",
    "NO_RESULTS_MESSAGE",
    "Source",
]
