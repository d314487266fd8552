import json
import logging

from tracker.logging_config import StructuredJsonFormatter, get_logger, log_with_context, request_id_var


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_entry_separates_identifiers_from_measurements():
    logger = get_logger("db")
    capture = _Capture()
    logger.addHandler(capture)
    token = request_id_var.set("req-1")
    try:
        log_with_context(logger, "WARNING", "Slow list",
                         context={"student_id": "s1"}, extra_data={"duration_ms": 12.5})
        entry = json.loads(StructuredJsonFormatter().format(capture.records[-1]))
    finally:
        request_id_var.reset(token)
        logger.removeHandler(capture)

    assert entry["level"] == "WARNING"
    assert entry["channel"] == "db"
    assert entry["message"] == "Slow list"
    assert entry["context"] == {"request_id": "req-1", "student_id": "s1"}
    assert entry["extra"] == {"duration_ms": 12.5}
    assert entry["timestamp"].endswith("Z")
    assert "exception" not in entry


def test_entry_from_foreign_logger_uses_app_channel():
    record = logging.LogRecord("uvicorn.error", logging.ERROR, __file__, 1, "boom", None, None)

    entry = json.loads(StructuredJsonFormatter().format(record))

    assert entry["channel"] == "app"
    assert entry["context"] == {"request_id": ""}
    assert entry["extra"] == {}
