"""Unit tests for logging configuration module."""

import logging
from unittest.mock import patch

import pytest

from codemode_runtime.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    SANDBOX_LOGGER,
    SIMPLE_FORMAT,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_handlers():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLoggingLogLevels:
    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("error", logging.ERROR),
        ],
    )
    def test_setup_logging_with_different_levels(self, log_level, expected_level):
        setup_logging(log_level=log_level, enable_file=False)

        root_logger = logging.getLogger()
        console_handler = next(
            (h for h in root_logger.handlers if isinstance(h, logging.StreamHandler)),
            None,
        )

        assert console_handler is not None
        assert console_handler.level == expected_level
        assert root_logger.level == logging.DEBUG


class TestSetupLoggingFormats:
    @pytest.mark.parametrize(
        "log_format,expected",
        [("simple", SIMPLE_FORMAT), ("detailed", DETAILED_FORMAT), ("json", JSON_FORMAT), ("unknown", DETAILED_FORMAT)],
    )
    def test_formats(self, log_format, expected):
        setup_logging(log_level="INFO", log_format=log_format, enable_file=False)

        handler = logging.getLogger().handlers[0]
        assert handler.formatter._fmt == expected


class TestModuleLevelsAndHandlers:
    def test_module_levels_are_applied(self):
        setup_logging(log_level="INFO", enable_file=False)

        for module_name, level in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(module_name).level == logging.getLevelName(level)

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging(enable_file=False)
        setup_logging(enable_file=False)

        assert len(logging.getLogger().handlers) == 1

    def test_file_logging_writes_to_the_configured_directory(self, tmp_path):
        with patch("codemode_runtime.core.logging_config.ENABLE_FILE_LOGGING", True), patch(
            "codemode_runtime.core.logging_config.LOG_FILE_DIR", str(tmp_path)
        ):
            setup_logging(log_level="INFO", enable_file=True)

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert (tmp_path / "codemode_runtime.log").exists()
        file_handlers[0].close()


def test_get_logger_returns_named_logger():
    assert get_logger("codemode_runtime.executor").name == "codemode_runtime.executor"


def test_sandbox_output_level_is_tunable():
    with patch("codemode_runtime.core.logging_config.SANDBOX_LOG_LEVEL", "WARNING"):
        setup_logging(log_level="INFO", enable_file=False)

    assert logging.getLogger(SANDBOX_LOGGER).level == logging.WARNING
    assert logging.getLogger("codemode_runtime.executor").level == logging.DEBUG


def test_json_lines_carry_the_process_and_task():
    setup_logging(log_level="DEBUG", log_format="json", enable_file=False)
    handler = logging.getLogger().handlers[0]
    record = logging.LogRecord(SANDBOX_LOGGER, logging.DEBUG, __file__, 1, "Sandbox code-1 started", None, None)

    assert handler.filter(record)
    line = handler.format(record)

    assert '"logger": "codemode_runtime.executor.runtime"' in line
    assert f'"pid": {record.process}' in line
    assert '"message": "Sandbox code-1 started"' in line
