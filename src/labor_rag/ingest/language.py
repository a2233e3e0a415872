"""Tag extracted documents with their language."""
from __future__ import annotations

import logging
from typing import Optional

from langdetect import DetectorFactory, LangDetectException, detect

LOGGER = logging.getLogger(__name__)

# Deterministic results across runs.
DetectorFactory.seed = 0

# langdetect is slow on whole statutes; a prefix is enough to tag a document.
SAMPLE_CHARS = 5000


class LanguageDetector:
    """Best-effort language tagging; ``None`` when the text gives no signal."""

    def __init__(self, sample_chars: int = SAMPLE_CHARS) -> None:
        self.sample_chars = sample_chars

    def detect(self, text: str) -> Optional[str]:
        sample = text[: self.sample_chars].strip()
        if not sample:
            return None
        try:
            return detect(sample)
        except LangDetectException:
            LOGGER.info("No language detected for %s characters of text", len(text))
            return None
