"""Two independent in-memory corpora (law and contract chunks)."""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, Optional, Tuple

from labor_rag.ingest.models import DocumentChunk, DocumentType
from labor_rag.telemetry import emit_corpus_event

LOGGER = logging.getLogger(__name__)


class _Corpus:
    """Append-only chunk sequence published as an immutable tuple.

    Writers serialise on ``_lock`` and swap the tuple reference; readers grab
    the current reference without locking and keep a consistent snapshot.
    """

    def __init__(self) -> None:
        self._chunks: Tuple[DocumentChunk, ...] = ()
        self._lock = threading.Lock()

    def snapshot(self) -> Tuple[DocumentChunk, ...]:
        return self._chunks

    def append(self, chunks: Iterable[DocumentChunk]) -> int:
        new_chunks = tuple(chunks)
        with self._lock:
            self._chunks = self._chunks + new_chunks
            return len(self._chunks)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._chunks)
            self._chunks = ()
            return removed


class CorpusStore:
    """Owns the law and contract corpora for the lifetime of the process."""

    def __init__(self) -> None:
        self._corpora: Dict[DocumentType, _Corpus] = {doc_type: _Corpus() for doc_type in DocumentType}

    def append(self, document_type: DocumentType, chunks: Iterable[DocumentChunk]) -> int:
        """Append *chunks* to one corpus and return its new size."""

        new_chunks = tuple(chunks)
        for chunk in new_chunks:
            if chunk.metadata.document_type is not document_type:
                raise ValueError(
                    f"Chunk from {chunk.metadata.file_name} is tagged "
                    f"{chunk.metadata.document_type.value}, not {document_type.value}"
                )
        total = self._corpora[document_type].append(new_chunks)
        emit_corpus_event("corpus.append", corpus=document_type.value, count=len(new_chunks), total=total)
        return total

    def clear(self, document_type: Optional[DocumentType] = None) -> None:
        """Empty one corpus, or both when *document_type* is ``None``."""

        targets = [document_type] if document_type is not None else list(DocumentType)
        for target in targets:
            removed = self._corpora[target].clear()
            emit_corpus_event("corpus.clear", corpus=target.value, count=removed, total=0)

    def count(self, document_type: DocumentType) -> int:
        return len(self._corpora[document_type].snapshot())

    def all(self, document_type: DocumentType) -> Tuple[DocumentChunk, ...]:
        return self._corpora[document_type].snapshot()

    def counts(self) -> Dict[DocumentType, int]:
        return {doc_type: self.count(doc_type) for doc_type in DocumentType}
