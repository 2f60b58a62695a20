"""Tests for logging utilities."""

import json
import logging
import sys

import pytest

from sounddecoder.utils.logging import (
    ColoredFormatter,
    JSONFormatter,
    LoggerAdapter,
    create_logger_with_context,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def _record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord("session", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_fields(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "session"
        assert "timestamp" in data
        assert "context" not in data

    def test_context(self):
        data = json.loads(JSONFormatter().format(_record(context={"session_id": "abc"})))
        assert data["context"] == {"session_id": "abc"}

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestColoredFormatter:
    def test_levelname_restored(self):
        record = _record(level=logging.WARNING)
        output = ColoredFormatter("%(levelname)s %(message)s").format(record)
        assert "\033[33m" in output
        assert record.levelname == "WARNING"


class TestLoggerAdapter:
    def test_prefix_and_context(self, caplog):
        logger = create_logger_with_context("sd.test", {"session_id": "3f9a"})
        assert isinstance(logger, LoggerAdapter)
        with caplog.at_level(logging.INFO, logger="sd.test"):
            logger.info("File accepted")
        record = caplog.records[-1]
        assert record.getMessage() == "[session_id=3f9a] File accepted"
        assert record.context == {"session_id": "3f9a"}

    def test_call_context_merged(self, caplog):
        logger = create_logger_with_context("sd.test", {"session_id": "3f9a"})
        with caplog.at_level(logging.INFO, logger="sd.test"):
            logger.info("Loaded", extra={"context": {"asset": "a.wav"}})
        assert caplog.records[-1].context == {"session_id": "3f9a", "asset": "a.wav"}


class TestSetupLogging:
    def test_text_console(self, restore_root_logger):
        setup_logging(level="DEBUG", log_format="text", colored=False)
        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_file_is_json(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "sd.log"
        setup_logging(level="INFO", log_file=str(log_file), console_enabled=False)
        logging.getLogger("sd.file").info("written")
        for handler in restore_root_logger.handlers:
            handler.flush()
        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "written"
