"""
Logging configuration for netmeta.

Everything logs under the ``netmeta`` logger. Console output goes to stderr;
an optional rotating file carries one record per line with the peer or
router the record is about, taken from ``extra={"peer": ...}``.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from netmeta.config import LogConfig
from netmeta.errors import ConfigurationError

PACKAGE_LOGGER = "netmeta"

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(peer)-15s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

class PeerContextFormatter(logging.Formatter):
    """Formatter that always has a ``peer`` field to print."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "peer"):
            record.peer = "-"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Set up the package logger.

    Args:
        level: Logging level name
        log_file: Rotating log file path, or None for console only
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep
        enable_console: Log to stderr

    Returns:
        The ``netmeta`` logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ConfigurationError(f"Unknown log level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(PeerContextFormatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def configure_logging(config: LogConfig | None = None, debug: bool = False) -> logging.Logger:
    """Apply a LogConfig; ``debug`` overrides its level."""
    config = config or LogConfig()
    return setup_logging(
        level="DEBUG" if debug else config.level,
        log_file=config.file or None,
    )


@dataclass
class TrackedError:
    """Most recent occurrence of one error type."""
    error_type: str
    message: str
    timestamp: datetime
    context: dict[str, Any]


class ErrorTracker:
    """Count errors by type and remember the latest of each.

    Counts only grow until ``reset_counts``; the metrics exporter turns them
    into Prometheus counters.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)
        self._counts: dict[str, int] = {}
        self._last: dict[str, TrackedError] = {}
        self._lock = threading.Lock()

    def log_error(
        self,
        error_type: str,
        message: str,
        exception: Exception | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """
        Log an error and count it under ``error_type``.

        Args:
            error_type: Error category (e.g. 'session_refresh', 'withdraw_failed')
            message: Human readable message
            exception: Exception to attach a traceback for
            context: Extra fields; a ``peer`` key is passed to the formatter
        """
        context = dict(context or {})
        with self._lock:
            self._counts[error_type] = self._counts.get(error_type, 0) + 1
            self._last[error_type] = TrackedError(
                error_type=error_type,
                message=message,
                timestamp=datetime.now(),
                context=context,
            )

        extra = {"peer": context["peer"]} if "peer" in context else None
        self.logger.error(f"{error_type}: {message}", exc_info=exception, extra=extra)

    def get_error_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def last_error(self, error_type: str) -> TrackedError | None:
        with self._lock:
            return self._last.get(error_type)

    def reset_counts(self) -> None:
        with self._lock:
            self._counts.clear()
            self._last.clear()
