"""
Centralized logging configuration for the signal engine.

Console output is colored by level, file output is optional and rotated.
Environment overrides:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
- LOG_FILE: path of a log file (default: none)
- LOG_JSON: "true" for one-JSON-object-per-line records
- LOG_CONSOLE: "false" to silence the console handler
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s"
HUMAN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "module": "%(module)s", '
    '"function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)
JSON_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps the level name in ANSI colors."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        result = super().format(record)

        # Other handlers share the record
        record.levelname = levelname
        return result


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


def setup_logging(
    name: Optional[str] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: Optional[bool] = None,
    json_format: Optional[bool] = None,
    rotation: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure a logger (the root logger when ``name`` is None).

    Args:
        name: Logger name
        level: Log level name; falls back to LOG_LEVEL, then INFO
        log_file: Log file path; falls back to LOG_FILE, then no file
        console: Enable console output; falls back to LOG_CONSOLE
        json_format: Structured output; falls back to LOG_JSON
        rotation: Rotate the log file at ``max_bytes``
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logging(name="signal_engine", level="DEBUG")
        >>> logger.debug("Pipeline started")
    """
    logger = logging.getLogger(name)

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if log_file is None:
        log_file = os.getenv("LOG_FILE")
    if console is None:
        console = _env_flag("LOG_CONSOLE", True)
    if json_format is None:
        json_format = _env_flag("LOG_JSON", False)

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    # Re-configuration replaces handlers instead of stacking them
    logger.handlers.clear()

    log_format = JSON_FORMAT if json_format else HUMAN_FORMAT
    date_format = JSON_DATE_FORMAT if json_format else HUMAN_DATE_FORMAT

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        if json_format:
            console_handler.setFormatter(logging.Formatter(log_format, date_format))
        else:
            console_handler.setFormatter(ColoredFormatter(log_format, date_format))
        logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        if rotation:
            file_handler: logging.Handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        else:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")

        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(log_format, date_format))
        logger.addHandler(file_handler)

    if name is not None:
        logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, configuring the root logger on first use."""
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    message: str = "An exception occurred",
    level: int = logging.ERROR,
) -> None:
    """Log an exception with its traceback."""
    logger.log(level, f"{message}: {exc}", exc_info=True)
