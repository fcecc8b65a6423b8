"""Tests for the logging setup."""

import json
import logging

import pytest

from core.logging_config import (
    ColoredConsoleFormatter,
    ComponentFilter,
    LoggingConfig,
    StructuredFormatter,
    log_error_with_context,
)


def make_record(message="hello", level=logging.INFO, name="telemetry.ingestor", **attrs):
    record = logging.LogRecord(name, level, __file__, 10, message, None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def flush(root):
    for handler in root.handlers:
        handler.flush()


class TestFormatters:

    def test_structured_formatter_emits_json_with_context(self):
        record = make_record("Log stream failed", logging.WARNING,
                             extra_data={"reason": "reset", "episode": 2})
        ComponentFilter("http://localhost:43123").filter(record)
        entry = json.loads(StructuredFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "telemetry.ingestor"
        assert entry["component"] == "telemetry"
        assert entry["daemon_url"] == "http://localhost:43123"
        assert entry["message"] == "Log stream failed"
        assert entry["reason"] == "reset"
        assert entry["episode"] == 2

    def test_colored_formatter_keeps_level_name(self):
        record = make_record("Connection lost", logging.ERROR, name="core.connection_supervisor")
        ComponentFilter().filter(record)
        line = ColoredConsoleFormatter().format(record)

        assert "ERROR" in line
        assert "core: Connection lost" in line
        assert record.levelname == "ERROR"


class TestLoggingConfig:

    def test_file_handlers_split_errors(self, tmp_path, restore_root_logger):
        LoggingConfig(log_level="INFO", log_dir=str(tmp_path), enable_console_logging=False).configure()
        logger = logging.getLogger("tests.logging")

        logger.debug("chatter")
        logger.info("routine")
        log_error_with_context(logger, RuntimeError("boom"), "stopping supervisor")
        flush(restore_root_logger)

        main_log = (tmp_path / "control_surface.log").read_text(encoding="utf-8")
        error_log = (tmp_path / "errors.log").read_text(encoding="utf-8")
        assert "chatter" not in main_log
        assert "routine" in main_log
        assert "Error in stopping supervisor: boom" in main_log
        assert "routine" not in error_log
        assert "Error in stopping supervisor: boom" in error_log

    def test_transport_log_keeps_debug_from_transport_loggers(self, tmp_path, restore_root_logger):
        LoggingConfig(log_level="WARNING", log_dir=str(tmp_path), enable_console_logging=False).configure()

        logging.getLogger("daemon.sse").debug("Channel opened: http://localhost:43123/logs")
        logging.getLogger("control.settings").debug("not transport")
        flush(restore_root_logger)

        transport_log = (tmp_path / "transport.log").read_text(encoding="utf-8")
        assert "Channel opened" in transport_log
        assert "not transport" not in transport_log
        assert "Channel opened" not in (tmp_path / "control_surface.log").read_text(encoding="utf-8")

    def test_third_party_loggers_are_quieted(self, restore_root_logger):
        LoggingConfig(enable_file_logging=False, enable_console_logging=False).configure()
        assert logging.getLogger("aiohttp").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING
