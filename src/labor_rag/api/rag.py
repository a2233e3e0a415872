"""API router exposing upload, OCR, chat and corpus management endpoints."""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from labor_rag.errors import (
    EmptyDocumentError,
    EmptyExtractionError,
    ProviderError,
    UnsupportedFormatError,
    UploadTooLargeError,
    ValidationError,
)
from labor_rag.ingest.models import DocumentType, IngestResult, SourceOrigin
from labor_rag.services.chat import ChatTurn, Source
from labor_rag.services.rag import RAGService, get_rag_service
from labor_rag.storage import temporary_upload
from labor_rag.telemetry import emit_exception

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["rag"])

NO_FILE_MESSAGE = "No file uploaded"
NO_LEGIBLE_TEXT_MESSAGE = "لم يتم استخراج نص واضح من الملف."

_CLIENT_ERRORS = (UnsupportedFormatError, EmptyExtractionError, EmptyDocumentError, ValidationError)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UploadLawResponse(_CamelModel):
    """Response body returned after a law document was ingested."""

    success: bool = True
    message: str
    chunks: int
    type: DocumentType = DocumentType.LAW
    total_chunks: int = Field(..., alias="totalChunks")


class UploadContractResponse(_CamelModel):
    """Response body returned after a contract was ingested."""

    success: bool = True
    message: str
    chunks: int
    total_chunks: int = Field(..., alias="totalChunks")


class OCRResponse(_CamelModel):
    success: bool = True
    message: str
    text_snippet: str = Field(..., alias="textSnippet")
    text: str


class ChatHistoryTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Request body accepted by the chat endpoint."""

    message: Optional[str] = Field(None, description="Question to answer from the selected corpus.")
    history: list[ChatHistoryTurn] = Field(default_factory=list, description="Previous turns, currently unused.")
    mode: DocumentType = Field(DocumentType.LAW, description="Corpus to search: law or contract.")
    contract_text: Optional[str] = Field(None, description="Contract excerpt appended to the prompt.")


class ChatSource(_CamelModel):
    type: DocumentType
    file_name: str = Field(..., alias="fileName")
    content: str
    ref: str


class ChatResponse(BaseModel):
    response: str
    sources: list[ChatSource]


class DocumentCountsResponse(_CamelModel):
    law_documents: int = Field(..., alias="lawDocuments")
    contract_documents: int = Field(..., alias="contractDocuments")


class ClearRequest(BaseModel):
    type: Optional[DocumentType] = None


class ClearResponse(BaseModel):
    message: str


def _error_status(error: Exception) -> int:
    if isinstance(error, UploadTooLargeError):
        return 413
    if isinstance(error, _CLIENT_ERRORS):
        return 400
    if isinstance(error, ProviderError):
        return 502
    return 500


def _upload_error(error: Exception, *, module: str) -> JSONResponse:
    status_code = _error_status(error)
    if status_code >= 500:
        emit_exception(module=module, error=error)
    else:
        LOGGER.info("Rejected upload: %s", error)
    return JSONResponse(status_code=status_code, content={"success": False, "error": str(error)})


def _no_file() -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": NO_FILE_MESSAGE})


async def _ingest_document(
    document: UploadFile,
    rag_service: RAGService,
    document_type: DocumentType,
    source_origin: SourceOrigin,
) -> IngestResult:
    settings = rag_service.settings
    async with temporary_upload(document, settings.uploads_dir, settings.max_file_size_bytes) as spooled:
        return await rag_service.ingest_upload(
            await spooled.read_bytes(),
            spooled.file_name,
            document_type,
            source_origin,
            spooled.content_type,
        )


def _serialise_sources(sources: list[Source]) -> list[ChatSource]:
    return [
        ChatSource(type=source.type, file_name=source.file_name, content=source.content_preview, ref=source.ref)
        for source in sources
    ]


def _history_turns(history: list[ChatHistoryTurn]) -> list[ChatTurn]:
    return [ChatTurn(role=turn.role, content=turn.content) for turn in history]


@router.post("/admin/upload-law", response_model=UploadLawResponse)
async def upload_law(
    document: Optional[UploadFile] = File(None),
    rag_service: RAGService = Depends(get_rag_service),
) -> UploadLawResponse | JSONResponse:
    """Add a law document to the law corpus."""

    if document is None:
        return _no_file()
    try:
        result = await _ingest_document(document, rag_service, DocumentType.LAW, SourceOrigin.ADMIN_UPLOAD)
    except Exception as error:
        return _upload_error(error, module=f"{__name__}.upload_law")
    return UploadLawResponse(
        message=f"تم تحميل قانون: {result.file_name}",
        chunks=result.chunk_count,
        total_chunks=result.total_chunks,
    )


@router.post("/upload-contract", response_model=UploadContractResponse)
async def upload_contract(
    document: Optional[UploadFile] = File(None),
    rag_service: RAGService = Depends(get_rag_service),
) -> UploadContractResponse | JSONResponse:
    """Add a user contract to the contract corpus."""

    if document is None:
        return _no_file()
    try:
        result = await _ingest_document(
            document, rag_service, DocumentType.CONTRACT, SourceOrigin.USER_UPLOAD
        )
    except Exception as error:
        return _upload_error(error, module=f"{__name__}.upload_contract")
    return UploadContractResponse(
        message=f"تم تحميل وتحليل العقد: {result.file_name}",
        chunks=result.chunk_count,
        total_chunks=result.total_chunks,
    )


@router.post("/ocr/upload", response_model=OCRResponse)
async def ocr_upload(
    document: Optional[UploadFile] = File(None),
    rag_service: RAGService = Depends(get_rag_service),
) -> OCRResponse | JSONResponse:
    """Return the text recovered from a scan or document without storing it."""

    if document is None:
        return _no_file()
    settings = rag_service.settings
    try:
        async with temporary_upload(document, settings.uploads_dir, settings.max_file_size_bytes) as spooled:
            result = await rag_service.extract_text(await spooled.read_bytes(), spooled.file_name, spooled.content_type)
    except EmptyExtractionError:
        return JSONResponse(content={"success": False, "error": NO_LEGIBLE_TEXT_MESSAGE})
    except Exception as error:
        return _upload_error(error, module=f"{__name__}.ocr_upload")
    return OCRResponse(message="تم استخراج النص بنجاح", text_snippet=result.snippet, text=result.text)


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: Optional[ChatRequest] = None,
    rag_service: RAGService = Depends(get_rag_service),
) -> ChatResponse | JSONResponse:
    """Answer a question from the law or contract corpus."""

    if request is None or not (request.message or "").strip():
        return JSONResponse(status_code=400, content={"error": "Message is required"})

    try:
        answer = await rag_service.answer(
            request.message,
            request.mode,
            history=_history_turns(request.history),
            contract_text=request.contract_text,
        )
    except Exception as error:
        emit_exception(module=f"{__name__}.chat", error=error)
        return JSONResponse(status_code=500, content={"error": "Chat failed", "details": str(error)})
    return ChatResponse(response=answer.text, sources=_serialise_sources(answer.sources))


@router.get("/documents", response_model=DocumentCountsResponse)
async def document_counts(rag_service: RAGService = Depends(get_rag_service)) -> DocumentCountsResponse:
    counts = rag_service.counts()
    return DocumentCountsResponse(
        law_documents=counts[DocumentType.LAW],
        contract_documents=counts[DocumentType.CONTRACT],
    )


@router.delete("/documents", response_model=ClearResponse)
async def clear_documents(
    request: Optional[ClearRequest] = None,
    rag_service: RAGService = Depends(get_rag_service),
) -> ClearResponse:
    """Empty one corpus, or both when no type is given."""

    document_type = request.type if request is not None else None
    rag_service.clear(document_type)
    label = document_type.value if document_type is not None else "جميع"
    return ClearResponse(message=f"تم حذف {label} الوثائق بنجاح")
