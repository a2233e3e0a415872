"""Turn uploaded bytes into embedded chunks in the corpus store."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from labor_rag.embeddings import EmbeddingModel
from labor_rag.errors import EmptyExtractionError
from labor_rag.logging_config import AUDIT_LOGGER_NAME
from labor_rag.telemetry import emit_exception, emit_ingest_event
from labor_rag.vectorstore.corpus import CorpusStore
from labor_rag.vectorstore.similarity import ensure_embeddings

from .chunking import ChunkingConfig, SemanticTextChunker
from .extractors import DocumentExtractor, ExtractionResult
from .format_detection import DocumentFormat, DocumentFormatDetector
from .language import LanguageDetector
from .models import DocumentType, IngestOutcome, IngestResult, SourceOrigin
from .normalization import collapse_whitespace, normalize_text

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

PRELOAD_SUFFIXES = (".pdf", ".docx")
OCR_MIN_CHARS = 10


@dataclass(slots=True)
class IngestPipelineConfig:
    chunk_chars: int = 1000
    overlap_chars: int = 200
    ocr_language: str = "ara+eng"
    embedding_prefix_chars: int = 1000


@dataclass(slots=True)
class OCRResult:
    text: str
    ocr_performed: bool

    @property
    def snippet(self) -> str:
        return self.text[:400] + ("..." if len(self.text) > 400 else "")


class IngestPipeline:
    """Extract, normalise, chunk, embed and store uploaded documents."""

    def __init__(
        self,
        store: CorpusStore,
        embedding_model: EmbeddingModel,
        config: Optional[IngestPipelineConfig] = None,
        *,
        extractor: Optional[DocumentExtractor] = None,
    ) -> None:
        self.config = config or IngestPipelineConfig()
        self.store = store
        self.embedding_model = embedding_model
        self.extractor = extractor or DocumentExtractor(ocr_language=self.config.ocr_language)
        self.chunker = SemanticTextChunker(
            ChunkingConfig(chunk_chars=self.config.chunk_chars, overlap_chars=self.config.overlap_chars)
        )
        self.language_detector = LanguageDetector()

    async def ingest(
        self,
        raw_bytes: bytes,
        file_name: str,
        document_type: DocumentType,
        source_origin: SourceOrigin,
        mime_type: Optional[str] = None,
    ) -> IngestResult:
        """Process one document and append its chunks to the matching corpus."""

        started = time.perf_counter()
        emit_ingest_event(
            "ingest.file.start",
            file_name=file_name,
            document_type=document_type.value,
            size_bytes=len(raw_bytes),
        )
        try:
            result = await self._ingest(raw_bytes, file_name, document_type, source_origin, mime_type)
        except Exception as error:
            emit_ingest_event(
                "ingest.file.error",
                file_name=file_name,
                document_type=document_type.value,
                size_bytes=len(raw_bytes),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                error=error,
            )
            raise

        emit_ingest_event(
            "ingest.file.complete",
            file_name=file_name,
            document_type=document_type.value,
            size_bytes=len(raw_bytes),
            duration_ms=(time.perf_counter() - started) * 1000.0,
            language=result.language,
            chunks=result.chunk_count,
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest",
                "file_name": file_name,
                "document_type": document_type.value,
                "source": source_origin.value,
                "chunk_count": result.chunk_count,
                "total_chunks": result.total_chunks,
            }
        )
        return result

    async def _ingest(
        self,
        raw_bytes: bytes,
        file_name: str,
        document_type: DocumentType,
        source_origin: SourceOrigin,
        mime_type: Optional[str],
    ) -> IngestResult:
        document_format = DocumentFormatDetector.detect(file_name, mime_type)
        file_id = str(uuid.uuid4())
        LOGGER.info("Processing file %s (%s) with id %s", file_name, document_format.value, file_id)

        extraction = await self._extract(raw_bytes, document_format, file_name)
        text = normalize_text(extraction.text)
        if not text:
            raise EmptyExtractionError(f"No text could be extracted from {file_name}")

        language = self.language_detector.detect(text)
        chunks = self.chunker.chunk_document(
            text,
            file_id=file_id,
            file_name=file_name,
            document_type=document_type,
            source_origin=source_origin,
            language=language,
        )
        await ensure_embeddings(chunks, self.embedding_model, self.config.embedding_prefix_chars)
        total = self.store.append(document_type, chunks)
        LOGGER.info("Generated %s chunks for file %s (%s total)", len(chunks), file_name, total)
        return IngestResult(
            file_name=file_name,
            document_type=document_type,
            chunk_count=len(chunks),
            total_chunks=total,
            language=language,
        )

    async def _extract(self, raw_bytes: bytes, document_format: DocumentFormat, file_name: str) -> ExtractionResult:
        result = await asyncio.to_thread(self.extractor.extract, raw_bytes, document_format, file_name)
        if result.ocr_performed:
            LOGGER.info("OCR performed on %s", file_name)
        return result

    async def extract_text(self, raw_bytes: bytes, file_name: str, mime_type: Optional[str] = None) -> OCRResult:
        """Recover plain text from a scan or document without ingesting it."""

        document_format = DocumentFormatDetector.detect(file_name, mime_type)
        extraction = await self._extract(raw_bytes, document_format, file_name)
        text = collapse_whitespace(extraction.text)
        if len(text) < OCR_MIN_CHARS:
            raise EmptyExtractionError(f"No legible text found in {file_name}")
        return OCRResult(text=text, ocr_performed=extraction.ocr_performed)

    async def ingest_directory(
        self,
        directory: Path,
        document_type: DocumentType = DocumentType.LAW,
        source_origin: SourceOrigin = SourceOrigin.PRELOADED_BACKEND,
    ) -> List[IngestOutcome]:
        """Ingest every PDF/DOCX file in *directory*; failures are per file."""

        if not directory.is_dir():
            LOGGER.info("Preload directory %s does not exist; skipping", directory)
            return []

        files = sorted(path for path in directory.iterdir() if path.suffix.lower() in PRELOAD_SUFFIXES)
        LOGGER.info("Found %s %s files in %s", len(files), document_type.value, directory)
        outcomes: List[IngestOutcome] = []
        for path in files:
            try:
                raw_bytes = await asyncio.to_thread(path.read_bytes)
                result = await self.ingest(raw_bytes, path.name, document_type, source_origin)
            except Exception as error:
                LOGGER.error("Error loading %s: %s", path.name, error)
                emit_exception(module=f"{__name__}.ingest_directory", error=error, suggestion=f"check {path.name}")
                outcomes.append(IngestOutcome(file_name=path.name, error=error))
                continue
            LOGGER.info("Loaded %s chunks from %s", result.chunk_count, path.name)
            outcomes.append(IngestOutcome(file_name=path.name, result=result))
        LOGGER.info("Total %s chunks loaded: %s", document_type.value, self.store.count(document_type))
        return outcomes
