"""Text normalisation utilities."""
from __future__ import annotations

import re
import unicodedata

_HORIZONTAL_SPACE_RE = re.compile(r"[ \t\u00a0]+")
_MULTIPLE_NEWLINES_RE = re.compile(r"\n{3,}")
_TRAILING_SPACE_RE = re.compile(r" +\n")
_ZERO_WIDTH_RE = re.compile(r"[\u200b\u200c\u200d\ufeff]")
_ANY_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Normalise Unicode and whitespace while keeping paragraph structure.

    pdfminer separates pages with form feeds; those become paragraph breaks so
    the chunker can split on them.
    """

    normalized = unicodedata.normalize("NFC", text)
    normalized = normalized.replace("\r\n", "\n").replace("\r", "\n").replace("\x0c", "\n\n")
    normalized = _ZERO_WIDTH_RE.sub("", normalized)
    normalized = _HORIZONTAL_SPACE_RE.sub(" ", normalized)
    normalized = _TRAILING_SPACE_RE.sub("\n", normalized)
    normalized = _MULTIPLE_NEWLINES_RE.sub("\n\n", normalized)
    return normalized.strip()


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run, newlines included, to a single space."""

    return _ANY_WHITESPACE_RE.sub(" ", text).strip()
