"""JSON logging for the service and the ingestion audit trail."""

from __future__ import annotations

import json
import logging
import logging.config
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

AUDIT_LOGGER_NAME = "labor_rag.ingest.audit"
AUDIT_LOG_FILE = "ingest_audit.log"

# Attributes every LogRecord carries; anything else was passed via ``extra``.
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _utc_timestamp(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class MinimalJSONFormatter(logging.Formatter):
    """Render each record as one JSON line.

    Dict messages are merged into the top-level object, which is how the
    telemetry and audit events are logged. Plain messages land under
    ``message``.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        entry: dict[str, Any] = {
            "ts": _utc_timestamp(record.created),
            "level": record.levelname,
            "module": record.name,
        }
        if isinstance(record.msg, Mapping):
            entry.update(record.msg)
        else:
            message = record.getMessage()
            if message:
                entry["message"] = message

        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _dict_config(log_path: Path, level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": MinimalJSONFormatter}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "json"},
            "audit_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": str(log_path / AUDIT_LOG_FILE),
                "maxBytes": 5 * 1024 * 1024,
                "backupCount": 3,
                "encoding": "utf-8",
                "formatter": "json",
            },
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            AUDIT_LOGGER_NAME: {"level": "INFO", "handlers": ["audit_file"], "propagate": False},
        },
    }


def configure_logging(log_dir: str | Path = "logs", level: str = "INFO") -> None:
    """Send JSON logs to stdout and audit events to ``<log_dir>/ingest_audit.log``."""

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(_dict_config(log_path, level))


__all__ = ["AUDIT_LOGGER_NAME", "MinimalJSONFormatter", "configure_logging"]
