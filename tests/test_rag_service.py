import dataclasses
import io
import logging

import pytest
from docx import Document

from labor_rag.ingest.models import DocumentType, SourceOrigin
from labor_rag.logging_config import AUDIT_LOGGER_NAME
from labor_rag.services.rag import RAGService, get_rag_service, reset_rag_service


def _docx(text: str) -> bytes:
    document = Document()
    document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.mark.anyio
async def test_ingest_and_answer_share_one_store(rag_service, llm_provider):
    result = await rag_service.ingest_upload(
        "Annual leave is twenty-one days.".encode("utf-8"),
        "law.txt",
        DocumentType.LAW,
        SourceOrigin.ADMIN_UPLOAD,
    )

    answer = await rag_service.answer("How long is annual leave?", DocumentType.LAW)

    assert result.total_chunks == rag_service.counts()[DocumentType.LAW] == 1
    assert answer.sources[0].file_name == "law.txt"
    assert len(llm_provider.prompts) == 1


@pytest.mark.anyio
async def test_settings_drive_chunking(settings, embedding_provider, llm_provider):
    small = dataclasses.replace(settings, chunk_size=100, chunk_overlap=20)
    service = RAGService(small, embedding_provider=embedding_provider, llm_provider=llm_provider)

    result = await service.ingest_upload(
        ("clause " * 60).encode("utf-8"), "contract.txt", DocumentType.CONTRACT, SourceOrigin.USER_UPLOAD
    )

    assert result.chunk_count > 1
    assert all(len(chunk.content) <= 100 for chunk in service.store.all(DocumentType.CONTRACT))


@pytest.mark.anyio
async def test_preload_reads_backend_laws_dir(rag_service, settings, tmp_path):
    laws = tmp_path / "backend_laws"
    laws.mkdir()
    (laws / "nitaqat.docx").write_bytes(_docx("Saudization quotas apply to private employers."))
    (laws / "corrupt.docx").write_bytes(b"")

    outcomes = await rag_service.preload()

    assert {outcome.file_name: outcome.ok for outcome in outcomes} == {"corrupt.docx": False, "nitaqat.docx": True}
    assert rag_service.counts() == {DocumentType.LAW: 1, DocumentType.CONTRACT: 0}


@pytest.mark.anyio
async def test_clear_is_audited(rag_service, caplog):
    await rag_service.ingest_upload(b"Contract text here.", "c.txt", DocumentType.CONTRACT, SourceOrigin.USER_UPLOAD)
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)
    audit_logger.addHandler(caplog.handler)
    try:
        rag_service.clear(DocumentType.CONTRACT)
    finally:
        audit_logger.removeHandler(caplog.handler)

    assert rag_service.counts()[DocumentType.CONTRACT] == 0
    assert any(
        isinstance(record.msg, dict) and record.msg.get("event") == "clear" for record in caplog.records
    )


def test_get_rag_service_is_cached_until_reset():
    reset_rag_service()
    try:
        first = get_rag_service()
        assert get_rag_service() is first
        reset_rag_service()
        assert get_rag_service() is not first
    finally:
        reset_rag_service()
