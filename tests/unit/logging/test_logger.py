# tests/unit/logging/test_logger.py — v2
"""Tests for logging/logger.py — logger factory and formatters."""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler

from healthfacts.logging.context import clear_context, set_domain_context, set_source_context
from healthfacts.logging.logger import (
    ROOT_LOGGER,
    JsonFormatter,
    TextFormatter,
    get_logger,
    setup_from_settings,
    setup_logging,
)


def _record(msg: str = "Hello", **kwargs) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )
    for key, value in kwargs.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_source_context("/data/Bloodwork/a.txt", generation=3)
        set_domain_context("biomarker")
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["context"] == {
            "source": "/data/Bloodwork/a.txt",
            "domain": "biomarker",
            "sync_generation": 3,
        }

    def test_extra_data(self):
        parsed = json.loads(JsonFormatter().format(_record(data={"key": "albumin"})))
        assert parsed["data"] == {"key": "albumin"}

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="", lineno=0,
                msg="failed", args=(), exc_info=sys.exc_info(),
            )
        parsed = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in parsed["exception"]


class TestTextFormatter:
    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "[INFO    ]" in output
        assert "Hello text" in output

    def test_context_shown(self):
        set_source_context("/data/Body Scan/dexa.txt")
        set_domain_context("body_comp")
        output = TextFormatter().format(_record())
        assert "[body_comp]" in output
        assert "(dexa.txt)" in output


class TestSetupLogging:
    def teardown_method(self):
        logging.getLogger(ROOT_LOGGER).handlers.clear()

    def test_level_and_formatter(self):
        logger = setup_logging(level="DEBUG", log_format="text")
        assert logger.name == ROOT_LOGGER
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, TextFormatter)

    def test_no_duplicate_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "healthfacts.log"
        logger = setup_logging(log_file=log_file, rotation="1MB", retention=3)
        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024 * 1024
        assert file_handlers[0].backupCount == 3
        get_logger("test").warning("written")
        for h in logger.handlers:
            h.flush()
        assert "written" in log_file.read_text()
        for h in file_handlers:
            h.close()

    def test_from_settings(self, settings):
        logger = setup_from_settings(settings)
        assert isinstance(logger.handlers[0].formatter, TextFormatter)


class TestGetLogger:
    def test_namespaced(self):
        assert get_logger("cache").name == "healthfacts.cache"
