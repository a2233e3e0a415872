import io
import json
import logging

import pytest
from docx import Document

from labor_rag.embeddings import EmbeddingModel
from labor_rag.errors import EmptyExtractionError, UnsupportedFormatError
from labor_rag.ingest.extractors import DocumentExtractor
from labor_rag.ingest.models import DocumentType, SourceOrigin
from labor_rag.ingest.pipeline import IngestPipeline, IngestPipelineConfig
from labor_rag.logging_config import AUDIT_LOGGER_NAME
from labor_rag.providers import MockEmbeddingProvider
from labor_rag.vectorstore import CorpusStore, SimilarityEngine

LAW_TEXT = (
    "Article 74: The employment contract ends if both parties agree to terminate it.\n\n"
    "Article 75: Either party may terminate an open-ended contract with a written notice "
    "of at least sixty days when the wage is paid monthly.\n\n"
) * 20


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def provider():
    return MockEmbeddingProvider()


@pytest.fixture
def store():
    return CorpusStore()


@pytest.fixture
def pipeline(store, provider):
    return IngestPipeline(store, EmbeddingModel(provider), IngestPipelineConfig(chunk_chars=500, overlap_chars=100))


@pytest.mark.anyio
async def test_text_upload_is_chunked_embedded_and_stored(pipeline, store, provider):
    result = await pipeline.ingest(LAW_TEXT.encode("utf-8"), "labor.txt", DocumentType.LAW, SourceOrigin.ADMIN_UPLOAD)

    stored = store.all(DocumentType.LAW)
    assert result.chunk_count == len(stored) > 1
    assert result.total_chunks == store.count(DocumentType.LAW)
    assert result.document_type is DocumentType.LAW
    assert store.count(DocumentType.CONTRACT) == 0
    assert all(chunk.embedding is not None for chunk in stored)
    assert all(chunk.metadata.file_name == "labor.txt" for chunk in stored)
    assert all(chunk.metadata.source_origin is SourceOrigin.ADMIN_UPLOAD for chunk in stored)
    assert len(provider.calls) == 1


@pytest.mark.anyio
async def test_total_chunks_accumulates_across_uploads(pipeline):
    first = await pipeline.ingest(b"Contract clause one. " * 10, "a.txt", DocumentType.CONTRACT, SourceOrigin.USER_UPLOAD)
    second = await pipeline.ingest(b"Contract clause two. " * 10, "b.txt", DocumentType.CONTRACT, SourceOrigin.USER_UPLOAD)

    assert second.total_chunks == first.total_chunks + second.chunk_count


@pytest.mark.anyio
async def test_search_reuses_cached_chunk_embeddings(pipeline, store, provider):
    await pipeline.ingest(LAW_TEXT.encode("utf-8"), "labor.txt", DocumentType.LAW, SourceOrigin.ADMIN_UPLOAD)
    engine = SimilarityEngine(EmbeddingModel(provider))

    results = await engine.search("written notice sixty days", store.all(DocumentType.LAW), top_k=3)

    assert len(results) == 3
    assert provider.calls[-1] == ["written notice sixty days"]
    assert len(provider.calls) == 2


@pytest.mark.anyio
async def test_docx_upload_is_supported(pipeline, store):
    data = _docx_bytes("عقد عمل محدد المدة", "مدة العقد سنتان تبدأ من تاريخ المباشرة")

    result = await pipeline.ingest(data, "contract.docx", DocumentType.CONTRACT, SourceOrigin.USER_UPLOAD)

    assert result.chunk_count == 1
    assert "مدة العقد سنتان" in store.all(DocumentType.CONTRACT)[0].content


@pytest.mark.anyio
async def test_unsupported_format_leaves_store_untouched(pipeline, store):
    with pytest.raises(UnsupportedFormatError):
        await pipeline.ingest(b"a,b,c", "table.xlsx", DocumentType.LAW, SourceOrigin.ADMIN_UPLOAD)

    assert store.count(DocumentType.LAW) == 0


@pytest.mark.anyio
async def test_empty_extraction_is_rejected(pipeline, store, provider):
    with pytest.raises(EmptyExtractionError):
        await pipeline.ingest(b" \n\n\t ", "blank.txt", DocumentType.CONTRACT, SourceOrigin.USER_UPLOAD)

    assert store.count(DocumentType.CONTRACT) == 0
    assert provider.calls == []


@pytest.mark.anyio
async def test_ingest_writes_audit_record(pipeline, caplog):
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    audit_logger.addHandler(caplog.handler)
    try:
        await pipeline.ingest(b"Working hours are eight per day.", "hours.txt", DocumentType.LAW, SourceOrigin.ADMIN_UPLOAD)
    finally:
        audit_logger.removeHandler(caplog.handler)

    records = [record.msg for record in caplog.records if record.name == AUDIT_LOGGER_NAME]
    assert records and records[-1]["event"] == "ingest"
    assert records[-1]["file_name"] == "hours.txt"
    assert records[-1]["source"] == "upload/admin"
    json.dumps(records[-1])


@pytest.mark.anyio
async def test_extract_text_collapses_whitespace(pipeline, store):
    result = await pipeline.extract_text("الراتب   الأساسي\n\n خمسة آلاف ريال".encode("utf-8"), "scan.txt")

    assert result.text == "الراتب الأساسي خمسة آلاف ريال"
    assert result.snippet == result.text
    assert result.ocr_performed is False
    assert store.counts() == {DocumentType.LAW: 0, DocumentType.CONTRACT: 0}


@pytest.mark.anyio
async def test_extract_text_rejects_illegible_input(pipeline):
    with pytest.raises(EmptyExtractionError):
        await pipeline.extract_text(b"  ab  ", "scan.txt")


@pytest.mark.anyio
async def test_snippet_is_truncated(pipeline):
    result = await pipeline.extract_text(("word " * 200).encode("utf-8"), "long.txt")

    assert len(result.snippet) == 403
    assert result.snippet.endswith("...")


@pytest.mark.anyio
async def test_directory_preload_isolates_failures(pipeline, store, tmp_path):
    (tmp_path / "labor-law.docx").write_bytes(_docx_bytes("Article 1: This law applies to every worker."))
    (tmp_path / "broken.docx").write_bytes(b"not a zip archive")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    outcomes = await pipeline.ingest_directory(tmp_path)

    assert [outcome.file_name for outcome in outcomes] == ["broken.docx", "labor-law.docx"]
    assert isinstance(outcomes[0].error, EmptyExtractionError)
    assert outcomes[1].ok and outcomes[1].result.chunk_count == 1
    assert store.count(DocumentType.LAW) == 1
    assert store.all(DocumentType.LAW)[0].metadata.source_origin is SourceOrigin.PRELOADED_BACKEND


class _ExplodingOnDraftExtractor(DocumentExtractor):
    def extract(self, data, document_format, file_name=""):
        if file_name.startswith("draft"):
            raise KeyError("word/document.xml")
        return super().extract(data, document_format, file_name)


@pytest.mark.anyio
async def test_directory_preload_survives_unexpected_extractor_errors(store, provider, tmp_path):
    pipeline = IngestPipeline(store, EmbeddingModel(provider), extractor=_ExplodingOnDraftExtractor())
    (tmp_path / "draft.docx").write_bytes(_docx_bytes("Unfinished amendment."))
    (tmp_path / "labor-law.docx").write_bytes(_docx_bytes("Article 2: Wages are paid monthly."))

    outcomes = await pipeline.ingest_directory(tmp_path)

    assert [outcome.ok for outcome in outcomes] == [False, True]
    assert isinstance(outcomes[0].error, KeyError)
    assert store.count(DocumentType.LAW) == 1


@pytest.mark.anyio
async def test_missing_preload_directory_is_skipped(pipeline, tmp_path):
    assert await pipeline.ingest_directory(tmp_path / "missing") == []
