"""Exception taxonomy shared by the ingestion and chat workflows."""
from __future__ import annotations


class LaborRAGError(RuntimeError):
    """Base class for all errors raised by the service."""


class UnsupportedFormatError(LaborRAGError):
    """Raised when a file extension or MIME type has no extractor."""


class EmptyExtractionError(LaborRAGError):
    """Raised when no usable text could be recovered from a document."""


class EmptyDocumentError(LaborRAGError):
    """Raised when the chunker receives empty or whitespace-only text."""


class ValidationError(LaborRAGError):
    """Raised when a required request field is missing or malformed."""


class UploadTooLargeError(LaborRAGError):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, message: str, *, limit_bytes: int) -> None:
        super().__init__(message)
        self.limit_bytes = limit_bytes


class ProviderError(LaborRAGError):
    """Raised when an embedding or completion provider call fails."""

    def __init__(self, message: str, *, provider: str = "unknown", cause: Exception | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.__cause__ = cause


__all__ = [
    "EmptyDocumentError",
    "EmptyExtractionError",
    "LaborRAGError",
    "ProviderError",
    "UnsupportedFormatError",
    "UploadTooLargeError",
    "ValidationError",
]
