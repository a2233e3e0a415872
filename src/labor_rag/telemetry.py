"""Structured lifecycle events for ingestion, retrieval and inference.

Every event is a dict logged through the standard :mod:`logging` module and
rendered by :class:`labor_rag.logging_config.MinimalJSONFormatter`. The common
fields are ``step`` and ``module``; ``req_id``, ``duration_ms`` and
``details`` appear when they are known.
"""

from __future__ import annotations

import logging
import os
import platform
import socket
import time
import traceback
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

LOGGER = logging.getLogger("labor_rag.telemetry")

PREVIEW_LIMIT = 120

# Settings echoed at startup. OPENAI_API_KEY is reported only as present or absent.
_STARTUP_SETTINGS = (
    "LLM_PROVIDER",
    "OPENAI_MODEL",
    "EMBEDDING_PROVIDER",
    "OPENAI_EMBEDDING_MODEL",
    "EMBEDDING_PREFIX_CHARS",
    "CHUNK_SIZE",
    "CHUNK_OVERLAP",
    "CHAT_TOP_K",
    "LLM_MAX_TOKENS",
    "LLM_TEMPERATURE",
    "MAX_FILE_SIZE_MB",
    "BACKEND_LAWS_DIR",
    "OCR_LANG",
    "PORT",
)


def _preview(text: str) -> str:
    return text[:PREVIEW_LIMIT]


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    req_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    target = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": target.name}
    optional = {
        "req_id": req_id,
        "duration_ms": None if duration_ms is None else round(duration_ms, 3),
        "details": details,
    }
    event.update((key, value) for key, value in optional.items() if value is not None)
    event.update(extra or {})
    event.update(payload)

    exc_info = None
    if isinstance(exc, BaseException):
        event["exc"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        exc_info = (type(exc), exc, exc.__traceback__)
    elif exc:
        event["exc"] = str(exc)

    target.log(getattr(logging, level.upper(), logging.INFO), event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    log_event(
        LOGGER,
        "app.startup",
        details={
            "env": {key: os.environ[key] for key in _STARTUP_SETTINGS if key in os.environ},
            "openai_key_loaded": bool(os.environ.get("OPENAI_API_KEY")),
            "python": platform.python_version(),
            "platform": platform.platform(),
        },
        pid=os.getpid(),
        hostname=socket.gethostname(),
        cwd=os.getcwd(),
    )


def emit_inference_request(
    *,
    req_id: str,
    mode: str,
    prompt_preview: str,
    prompt_len: int,
    temperature: float,
    max_tokens: int | None,
    sources: Iterable[str],
) -> None:
    log_event(
        LOGGER,
        "inference.request",
        req_id=req_id,
        details={
            "mode": mode,
            "sources": list(sources),
            "prompt_len": prompt_len,
            "prompt_preview": _preview(prompt_preview),
            "temperature": temperature,
            "max_tokens": max_tokens,
        },
    )


def emit_inference_result(
    *,
    req_id: str,
    mode: str,
    duration_ms: float,
    model_used: str,
    answer_preview: str,
    fallback: bool,
) -> None:
    log_event(
        LOGGER,
        "inference.result",
        req_id=req_id,
        duration_ms=duration_ms,
        details={
            "mode": mode,
            "model_used": model_used,
            "fallback": fallback,
            "answer_preview": _preview(answer_preview),
        },
    )


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, errors: list[str] | None = None
) -> None:
    per_item = round(duration_ms / count, 3) if count else None
    log_event(
        LOGGER,
        "embeddings.compute",
        level="error" if errors else "info",
        duration_ms=duration_ms,
        details={"model": model, "count": count, "per_item_ms": per_item, "errors": list(errors or ())},
    )


def emit_corpus_event(step: str, *, corpus: str, count: int, total: int) -> None:
    log_event(LOGGER, step, details={"corpus": corpus, "count": count, "total": total})


def emit_retriever_event(
    *,
    query: str,
    top_k: int,
    corpus_size: int,
    results: list[dict[str, Any]],
    embedded_on_demand: int,
    duration_ms: float,
) -> None:
    log_event(
        LOGGER,
        "retriever.search",
        duration_ms=duration_ms,
        details={
            "query_preview": _preview(query),
            "corpus_size": corpus_size,
            "top_k": top_k,
            "results": results,
            "embedded_on_demand": embedded_on_demand,
        },
    )


def emit_ingest_event(
    step: str,
    *,
    file_name: str,
    document_type: str,
    size_bytes: int | None = None,
    duration_ms: float | None = None,
    language: str | None = None,
    chunks: int | None = None,
    error: BaseException | None = None,
) -> None:
    details = {"file": file_name, "document_type": document_type}
    # Only the fields known at this stage of ingestion.
    details.update(
        (key, value)
        for key, value in (("size_bytes", size_bytes), ("language", language), ("chunks", chunks))
        if value is not None
    )
    log_event(
        LOGGER,
        step,
        level="error" if error else "info",
        duration_ms=duration_ms,
        details=details,
        exc=error,
    )


def emit_exception(
    *,
    module: str,
    error: BaseException,
    req_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details: dict[str, Any] = {"module": module, "error_type": type(error).__name__}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(LOGGER, "exception", level="error", req_id=req_id, details=details, exc=error)


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    """Log ``<step>.start``, then ``<step>.complete`` or ``<step>.error`` with the elapsed time."""

    started = time.perf_counter()
    log_event(logger, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger, f"{step}.error", level="error", duration_ms=_elapsed_ms(started), details=fields, exc=error)
        raise
    log_event(logger, f"{step}.complete", duration_ms=_elapsed_ms(started), details=fields)


__all__ = [
    "emit_app_startup_event",
    "emit_corpus_event",
    "emit_embeddings_event",
    "emit_exception",
    "emit_inference_request",
    "emit_inference_result",
    "emit_ingest_event",
    "emit_retriever_event",
    "log_event",
    "traced_duration",
]
