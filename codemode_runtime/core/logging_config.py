"""
Logging Configuration Module.

Centralized logging setup for the codemode runtime. The interesting loggers are:

- ``codemode_runtime.executor.executor``: one line per execution state
  transition, failures at INFO;
- ``codemode_runtime.executor.runtime``: sandbox lifecycle and the captured
  ``print`` output of programs, at DEBUG (tuned with ``SANDBOX_LOG_LEVEL``);
- ``codemode_runtime.bridge``: capability calls and tool service failures;
- ``codemode_runtime.agent``: generated programs.

Lines can be rendered in a simple, detailed or JSON layout; the JSON layout
carries the process id so sandbox host logs of concurrent workers can be told
apart.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional

SANDBOX_LOGGER = "codemode_runtime.executor.runtime"
LOG_FILE_NAME = "codemode_runtime.log"


def _truthy(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _get_logging_config() -> Dict[str, object]:
    """Read logging options from the settings model, falling back to the environment.

    The settings import is deferred so this module can be imported while the
    configuration module itself is still initializing.
    """
    try:
        from codemode_runtime.core.config import settings

        log_level = settings.log_level
    except Exception:
        log_level = os.getenv("CODEMODE_LOG_LEVEL", "INFO")
    return {
        "log_level": log_level.upper(),
        "log_format": os.getenv("LOG_FORMAT", "detailed"),
        "log_file_dir": os.getenv("LOG_FILE_DIR", "logs"),
        "enable_file_logging": _truthy(os.getenv("ENABLE_FILE_LOGGING", "false")),
        "sandbox_log_level": os.getenv("SANDBOX_LOG_LEVEL", "DEBUG").upper(),
    }


_config = _get_logging_config()
LOG_LEVEL = _config["log_level"]
LOG_FORMAT = _config["log_format"]
LOG_FILE_DIR = _config["log_file_dir"]
ENABLE_FILE_LOGGING = _config["enable_file_logging"]
SANDBOX_LOG_LEVEL = _config["sandbox_log_level"]


SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"pid": %(process)d, "task": "%(taskName)s", "line": "%(filename)s:%(lineno)d", '
    '"message": "%(message)s"}'
)

_FORMATS = {"simple": SIMPLE_FORMAT, "detailed": DETAILED_FORMAT, "json": JSON_FORMAT}


MODULE_LOG_LEVELS = {
    "codemode_runtime.catalog": "INFO",
    "codemode_runtime.surface": "INFO",
    "codemode_runtime.bridge": "DEBUG",
    "codemode_runtime.executor": "DEBUG",
    "codemode_runtime.agent": "DEBUG",
    "codemode_runtime.server": "INFO",
    # Third-party libraries (reduce noise)
    "pydantic_ai": "INFO",
    "logfire": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "asyncio": "WARNING",
    "uvicorn": "INFO",
    "uvicorn.access": "WARNING",
}


class _TaskNameDefault(logging.Filter):
    """Fill ``taskName`` on interpreters whose records lack it (before 3.12)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "taskName", None) is None:
            record.taskName = "-"
        return True


def _format_string(fmt: str) -> str:
    return _FORMATS.get(fmt, DETAILED_FORMAT)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: bool = True,
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Override default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Override default format (simple, detailed, json)
        enable_file: Whether to enable file logging (also requires ENABLE_FILE_LOGGING)
    """
    level = (log_level or LOG_LEVEL).upper()
    fmt = log_format or LOG_FORMAT

    formatter = logging.Formatter(_format_string(fmt), datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers do the filtering

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers = [logging.StreamHandler()]
    handlers[0].setLevel(level)

    file_logging = enable_file and ENABLE_FILE_LOGGING
    if file_logging:
        Path(LOG_FILE_DIR).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(Path(LOG_FILE_DIR) / LOG_FILE_NAME)
        file_handler.setLevel(logging.DEBUG)  # sandbox output always reaches the file
        handlers.append(file_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(_TaskNameDefault())
        root_logger.addHandler(handler)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(module_name).setLevel(module_level)
    logging.getLogger(SANDBOX_LOGGER).setLevel(SANDBOX_LOG_LEVEL)

    root_logger.info(
        f"Logging configured: level={level}, format={fmt}, file_logging={file_logging}, sandbox={SANDBOX_LOG_LEVEL}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The module name (typically __name__)

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name)
