"""Data models used by the ingestion pipeline and the retrieval layer."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class DocumentType(str, Enum):
    """Corpus a document belongs to."""

    LAW = "law"
    CONTRACT = "contract"


class SourceOrigin(str, Enum):
    """Where a document entered the system."""

    PRELOADED_BACKEND = "backend_laws"
    ADMIN_UPLOAD = "upload/admin"
    USER_UPLOAD = "upload/user"


@dataclass(slots=True)
class ChunkMetadata:
    """Metadata attached to an individual chunk."""

    document_type: DocumentType
    file_name: str
    source_origin: SourceOrigin
    file_id: str
    chunk_index: int
    char_start: int
    char_end: int
    language: Optional[str] = None


@dataclass(slots=True)
class DocumentChunk:
    """Container that pairs chunk text with metadata and its cached embedding."""

    content: str
    metadata: ChunkMetadata
    embedding: Optional[List[float]] = None


@dataclass(slots=True)
class IngestResult:
    """Outcome of ingesting a single document."""

    file_name: str
    document_type: DocumentType
    chunk_count: int
    total_chunks: int
    language: Optional[str] = None


@dataclass(slots=True)
class IngestOutcome:
    """Per-file result of a batch ingestion; exactly one of the fields is set."""

    file_name: str
    result: Optional[IngestResult] = None
    error: Optional[Exception] = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None
