"""
Tests for structured logging helpers
"""

import json
import logging
import sys

import pytest

from config.app_config import LoggingConfig
from utils.logging_config import (
    ErrorTracker,
    StructuredFormatter,
    log_execution_time,
    log_model_usage,
    setup_logging,
)


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def recorded():
    logger = logging.getLogger("tests.recorded")
    handler = RecordingHandler()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield logger, handler.records
    logger.removeHandler(handler)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(**extra):
    record = logging.LogRecord("chatbot.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_basic_fields(self):
        entry = json.loads(StructuredFormatter().format(_record()))

        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "chatbot.test"
        assert entry["service"] == "portfolio-assistant"
        assert entry["timestamp"].endswith("+00:00")
        assert "fields" not in entry

    def test_extra_fields_are_nested(self):
        entry = json.loads(StructuredFormatter().format(_record(intent="skills", message_length=12)))

        assert entry["fields"] == {"intent": "skills", "message_length": 12}

    def test_exception_details(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad value"


class TestHelpers:
    def test_execution_time_success(self, recorded):
        logger, records = recorded

        with log_execution_time(logger, "ai_response", model="gpt-3.5-turbo"):
            pass

        assert records[-1].status == "success"
        assert records[-1].operation == "ai_response"
        assert records[-1].duration_ms >= 0

    def test_execution_time_failure_reraises(self, recorded):
        logger, records = recorded

        with pytest.raises(RuntimeError):
            with log_execution_time(logger, "ai_response"):
                raise RuntimeError("provider down")

        assert records[-1].levelno == logging.WARNING
        assert records[-1].error_type == "RuntimeError"

    def test_model_usage_defaults_to_zero(self, recorded):
        logger, records = recorded

        log_model_usage(logger, "gpt-3.5-turbo", {"total_tokens": 42})
        log_model_usage(logger, "gpt-3.5-turbo", None)

        assert records[0].tokens_used == 42
        assert records[0].input_tokens == 0
        assert records[1].tokens_used == 0


class TestErrorTracker:
    def test_counts_by_type_and_context(self, recorded):
        logger, records = recorded
        tracker = ErrorTracker(logger)

        assert tracker.track_error(ValueError("a"), context="sqlite_store.save") == 1
        assert tracker.track_error(ValueError("b"), context="sqlite_store.save") == 2
        tracker.track_error(RuntimeError("c"), context="ai_service.generate_response")

        summary = tracker.get_error_summary()

        assert summary["total_errors"] == 3
        assert summary["unique_errors"] == 2
        assert summary["by_context"] == {"sqlite_store.save": 2, "ai_service.generate_response": 1}
        assert records[-1].context == "ai_service.generate_response"

    def test_reset(self, recorded):
        tracker = ErrorTracker(recorded[0])
        tracker.track_error(ValueError("a"), context="x")

        tracker.reset()

        assert tracker.get_error_summary()["total_errors"] == 0


class TestSetupLogging:
    def test_file_logging(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "app.log"
        config = LoggingConfig(level="INFO", enable_file_logging=True, log_file=str(log_file))

        root = setup_logging(config)
        logging.getLogger("chatbot.test").info("written", extra={"intent": "greeting"})
        for handler in root.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert entry["message"] == "written"
        assert entry["fields"] == {"intent": "greeting"}

    def test_console_only(self, restore_root_logger):
        root = setup_logging(LoggingConfig(level="WARNING"), debug=True)

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, StructuredFormatter)
