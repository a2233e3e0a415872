"""Environment-driven configuration for the service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://127.0.0.1:5500,http://localhost:5500,http://localhost:3000"
DEFAULT_LOCAL_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

# Chunks are embedded over this many leading characters only.
EMBEDDING_PREFIX_CHARS = 1000

EMBEDDING_BACKENDS = ("openai", "local", "mock")
LLM_BACKENDS = ("openai", "mock")


def _str_from_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _backend_from_env(name: str, default: str, allowed: Tuple[str, ...]) -> str:
    backend = _str_from_env(name, default).lower()
    if backend not in allowed:
        LOGGER.warning("Unsupported %s backend %r; using %s", name, backend, default)
        return default
    return backend


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved once per process."""

    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    openai_embedding_model: str = "text-embedding-3-small"
    openai_base_url: Optional[str] = None
    embedding_provider: str = "mock"
    llm_provider: str = "mock"
    local_embedding_model: str = DEFAULT_LOCAL_EMBEDDING_MODEL
    port: int = 3001
    max_file_size_mb: int = 20
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: tuple(DEFAULT_CORS_ORIGINS.split(",")))
    uploads_dir: str = "uploads"
    backend_laws_dir: str = "backend_laws"
    chunk_size: int = 1000
    chunk_overlap: int = 200
    embedding_prefix_chars: int = EMBEDDING_PREFIX_CHARS
    chat_top_k: int = 6
    llm_max_tokens: int = 1000
    llm_temperature: float = 0.2
    provider_max_retries: int = 3
    provider_timeout: float = 60.0
    ocr_language: str = "ara+eng"
    log_dir: str = "logs"

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        api_key = _str_from_env("OPENAI_API_KEY", "")
        default_backend = "openai" if api_key else "mock"
        if not api_key:
            implicit = [name for name in ("EMBEDDING_PROVIDER", "LLM_PROVIDER") if not os.getenv(name, "").strip()]
            if implicit:
                LOGGER.warning(
                    "OPENAI_API_KEY is not set; %s falling back to the mock backend", " and ".join(implicit)
                )
        origins = _str_from_env("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        return cls(
            openai_api_key=api_key,
            openai_model=_str_from_env("OPENAI_MODEL", cls.openai_model),
            openai_embedding_model=_str_from_env("OPENAI_EMBEDDING_MODEL", cls.openai_embedding_model),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            embedding_provider=_backend_from_env("EMBEDDING_PROVIDER", default_backend, EMBEDDING_BACKENDS),
            llm_provider=_backend_from_env("LLM_PROVIDER", default_backend, LLM_BACKENDS),
            local_embedding_model=_str_from_env("LOCAL_EMBEDDING_MODEL", DEFAULT_LOCAL_EMBEDDING_MODEL),
            port=_int_from_env("PORT", cls.port),
            max_file_size_mb=_int_from_env("MAX_FILE_SIZE_MB", cls.max_file_size_mb),
            cors_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
            uploads_dir=_str_from_env("UPLOADS_DIR", cls.uploads_dir),
            backend_laws_dir=_str_from_env("BACKEND_LAWS_DIR", cls.backend_laws_dir),
            chunk_size=_int_from_env("CHUNK_SIZE", cls.chunk_size),
            chunk_overlap=_int_from_env("CHUNK_OVERLAP", cls.chunk_overlap),
            embedding_prefix_chars=_int_from_env("EMBEDDING_PREFIX_CHARS", EMBEDDING_PREFIX_CHARS),
            chat_top_k=_int_from_env("CHAT_TOP_K", cls.chat_top_k),
            llm_max_tokens=_int_from_env("LLM_MAX_TOKENS", cls.llm_max_tokens),
            llm_temperature=_float_from_env("LLM_TEMPERATURE", cls.llm_temperature),
            provider_max_retries=max(1, _int_from_env("PROVIDER_MAX_RETRIES", cls.provider_max_retries)),
            provider_timeout=_float_from_env("PROVIDER_TIMEOUT", cls.provider_timeout),
            ocr_language=_str_from_env("OCR_LANG", cls.ocr_language),
            log_dir=_str_from_env("LOG_DIR", cls.log_dir),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings, reading ``.env`` on first use."""

    load_dotenv()
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]


__all__ = ["EMBEDDING_PREFIX_CHARS", "Settings", "get_settings", "reset_settings_cache"]
