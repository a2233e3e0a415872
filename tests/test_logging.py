import json
import logging

from labor_rag.logging_config import AUDIT_LOGGER_NAME, MinimalJSONFormatter, configure_logging
from labor_rag.telemetry import log_event


def _record(msg, **extra):
    record = logging.LogRecord("labor_rag.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_merges_dict_messages():
    payload = json.loads(MinimalJSONFormatter().format(_record({"event": "ingest", "chunks": 3})))

    assert payload["event"] == "ingest"
    assert payload["chunks"] == 3
    assert payload["level"] == "INFO"
    assert payload["module"] == "labor_rag.test"
    assert payload["ts"].endswith("Z")


def test_formatter_keeps_arabic_and_extra_fields():
    payload = json.loads(MinimalJSONFormatter().format(_record("تم تحميل قانون", req_id="abc")))

    assert payload["message"] == "تم تحميل قانون"
    assert payload["req_id"] == "abc"


def test_audit_records_go_to_their_own_file(tmp_path):
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    try:
        configure_logging(tmp_path)
        logging.getLogger(AUDIT_LOGGER_NAME).info({"event": "clear", "document_type": "all"})
        for handler in logging.getLogger(AUDIT_LOGGER_NAME).handlers:
            handler.flush()
    finally:
        for handler in logging.getLogger(AUDIT_LOGGER_NAME).handlers:
            handler.close()
        logging.getLogger(AUDIT_LOGGER_NAME).handlers.clear()
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)

    lines = (tmp_path / "ingest_audit.log").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["event"] == "clear"


def test_log_event_builds_structured_payload(caplog):
    logger = logging.getLogger("labor_rag.test.events")
    caplog.set_level(logging.INFO, logger="labor_rag.test.events")

    log_event(logger, "retriever.search", req_id="r1", duration_ms=12.3456, details={"top_k": 6})

    event = caplog.records[-1].msg
    assert event["step"] == "retriever.search"
    assert event["req_id"] == "r1"
    assert event["details"] == {"top_k": 6}
