"""
Unit tests for app/logging_config.py
"""

import json
import logging

from app.logging_config import JSONFormatter, LogContext, configure_structured_logging


def _make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="app.services.catalog_service",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Deleted record %s",
        args=(1,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        output = json.loads(JSONFormatter().format(_make_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "app.services.catalog_service"
        assert output["message"] == "Deleted record 1"
        assert output["timestamp"].endswith("Z")
        assert output["source"]["line"] == 10

    def test_context_fields(self):
        record = _make_record(record_id=1, event_kind="Deleted", topic="catalog.changes")

        output = json.loads(JSONFormatter().format(record))

        assert output["record_id"] == 1
        assert output["event_kind"] == "Deleted"
        assert output["topic"] == "catalog.changes"

    def test_extra_fields_merged(self):
        record = _make_record(extra_fields={"listeners": 3})

        output = json.loads(JSONFormatter().format(record))

        assert output["listeners"] == 3


class TestConfigureLogging:
    def test_json_handler_installed(self):
        configure_structured_logging(level="DEBUG", enable_json=True)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

        configure_structured_logging(level="INFO", enable_json=False)

    def test_log_context_sets_attributes(self):
        captured = []

        class Capture(logging.Handler):
            def emit(self, record):
                captured.append(record)

        logger = logging.getLogger("test.log_context")
        handler = Capture()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            with LogContext(record_id=7, operation="update"):
                logger.info("inside")
            logger.info("outside")
        finally:
            logger.removeHandler(handler)

        assert captured[0].record_id == 7
        assert captured[0].operation == "update"
        assert not hasattr(captured[1], "record_id")
