"""Map uploaded file names and MIME types onto the formats we can extract."""
from __future__ import annotations

import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional

from labor_rag.errors import UnsupportedFormatError


class DocumentFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    IMAGE = "image"


_FORMATS_BY_MIME = {
    "application/pdf": DocumentFormat.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
    "text/plain": DocumentFormat.TXT,
    "image/png": DocumentFormat.IMAGE,
    "image/jpeg": DocumentFormat.IMAGE,
}

_FORMATS_BY_SUFFIX = {
    ".pdf": DocumentFormat.PDF,
    ".docx": DocumentFormat.DOCX,
    ".txt": DocumentFormat.TXT,
    ".png": DocumentFormat.IMAGE,
    ".jpg": DocumentFormat.IMAGE,
    ".jpeg": DocumentFormat.IMAGE,
}


class DocumentFormatDetector:
    @staticmethod
    def detect(file_name: str, mime_type: Optional[str] = None) -> DocumentFormat:
        """Resolve the format of ``file_name``.

        An explicit MIME type wins, then the type guessed from the name, then
        the bare suffix. Browsers often send ``application/octet-stream``,
        which is not in the table and so falls through to the name checks.
        """

        for candidate in (mime_type, mimetypes.guess_type(file_name)[0]):
            if candidate in _FORMATS_BY_MIME:
                return _FORMATS_BY_MIME[candidate]

        document_format = _FORMATS_BY_SUFFIX.get(Path(file_name).suffix.lower())
        if document_format is None:
            raise UnsupportedFormatError(f"Unsupported file format: {file_name}")
        return document_format
