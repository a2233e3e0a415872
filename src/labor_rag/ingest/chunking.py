"""Chunking utilities for breaking text into embedding-friendly units."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from labor_rag.errors import EmptyDocumentError

from .models import ChunkMetadata, DocumentChunk, DocumentType, SourceOrigin

LOGGER = logging.getLogger(__name__)

# Highest priority first; hard slicing is the implicit last resort.
DEFAULT_SEPARATORS: Tuple[str, ...] = ("\n\n", "\n", " ")


@dataclass(slots=True)
class ChunkingConfig:
    chunk_chars: int = 1000
    overlap_chars: int = 200
    separators: Tuple[str, ...] = DEFAULT_SEPARATORS

    def __post_init__(self) -> None:
        if self.chunk_chars <= 0:
            raise ValueError("chunk_chars must be a positive integer")
        if self.overlap_chars < 0:
            raise ValueError("overlap_chars must be a non-negative integer")
        if self.overlap_chars >= self.chunk_chars:
            raise ValueError("overlap_chars must be smaller than chunk_chars")


class SemanticTextChunker:
    """Split document text into overlapping chunks along semantic boundaries.

    Each window spans at most ``chunk_chars`` characters. The window is cut at
    the last paragraph break inside it, else the last line break, else the
    last space, else at the hard limit. The next window starts exactly
    ``overlap_chars`` characters before the end of the previous chunk, so
    neighbouring chunks always share that much text.
    """

    def __init__(self, config: Optional[ChunkingConfig] = None) -> None:
        self.config = config or ChunkingConfig()

    def split(self, text: str) -> List[str]:
        return [chunk for chunk, _, _ in self.iter_spans(text)]

    def chunk_document(
        self,
        text: str,
        *,
        file_id: str,
        file_name: str,
        document_type: DocumentType,
        source_origin: SourceOrigin,
        language: str | None = None,
    ) -> List[DocumentChunk]:
        chunks: List[DocumentChunk] = []
        for chunk_index, (chunk_text, start, end) in enumerate(self.iter_spans(text)):
            metadata = ChunkMetadata(
                document_type=document_type,
                file_name=file_name,
                source_origin=source_origin,
                file_id=file_id,
                chunk_index=chunk_index,
                char_start=start,
                char_end=end,
                language=language,
            )
            LOGGER.debug("Chunk %s of %s offsets %s-%s", chunk_index, file_name, start, end)
            chunks.append(DocumentChunk(content=chunk_text, metadata=metadata))
        return chunks

    def iter_spans(self, text: str) -> Iterator[Tuple[str, int, int]]:
        """Yield ``(chunk, start, end)`` tuples covering *text*."""

        if not text or not text.strip():
            raise EmptyDocumentError("Cannot chunk an empty document")
        return self._iter_spans(text)

    def _iter_spans(self, text: str) -> Iterator[Tuple[str, int, int]]:
        overlap_chars = self.config.overlap_chars
        text_length = len(text)
        start = len(text) - len(text.lstrip())
        previous_end = start
        while start < text_length:
            # Every chunk must reach past the previous one and leave room for the overlap.
            floor = max(previous_end, start + overlap_chars)
            chunk_end = self._find_break(text, start, floor)
            raw_chunk = text[start:chunk_end]
            final_end = start + len(raw_chunk.rstrip())
            if final_end > max(start, previous_end):
                yield text[start:final_end], start, final_end
                previous_end = final_end
            if chunk_end >= text_length:
                break
            next_start = final_end - overlap_chars
            if next_start <= start:
                next_start = chunk_end
            start = next_start

    def _find_break(self, text: str, start: int, floor: int) -> int:
        tentative_end = start + self.config.chunk_chars
        if tentative_end >= len(text):
            return len(text)
        segment = text[start:tentative_end]
        for separator in self.config.separators:
            position = segment.rfind(separator)
            if position == -1:
                continue
            # Earlier occurrences only end sooner, so the last one decides.
            if start + len(segment[:position].rstrip()) > floor:
                return start + position + len(separator)
        return tentative_end


def split_text(text: str, chunk_size: int = 1000, overlap: int = 200, separators: Sequence[str] = DEFAULT_SEPARATORS) -> List[str]:
    """Convenience wrapper returning chunk strings for *text*."""

    chunker = SemanticTextChunker(
        ChunkingConfig(chunk_chars=chunk_size, overlap_chars=overlap, separators=tuple(separators))
    )
    return chunker.split(text)
