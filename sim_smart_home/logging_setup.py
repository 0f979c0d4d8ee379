"""
Centralized logging: console, optional rotating JSON file, and an in-memory
ring buffer the dashboard polls as its event log.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

CONSOLE_FORMAT = "%(levelname)s:\t%(name)s - %(message)s"
ROOT_LOGGER_NAME = "sim_smart_home"


class RingBufferHandler(logging.Handler):
    """In-memory ring buffer for log entries that the UI can poll."""

    def __init__(self, maxlen: int = 500) -> None:
        super().__init__()
        self._buffer: deque[dict[str, Any]] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self.format(record),
        }
        self._buffer.append(entry)

    def get_logs(self, limit: int | None = None) -> list[dict[str, Any]]:
        entries = list(self._buffer)
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def clear(self) -> None:
        self._buffer.clear()


_ring_buffer_handler = RingBufferHandler()
_configured = False


def get_ring_buffer() -> RingBufferHandler:
    return _ring_buffer_handler


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Configure the package logger once per process.

    Args:
        level: Log level name; defaults to ``LOG_LEVEL`` or INFO.
        log_file: Path of a JSON log file rotated at midnight; defaults to
            ``SIM_HOME_LOG_FILE`` (no file logging when unset).
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    if level_name not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        level_name = "INFO"

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name))

    console_formatter = logging.Formatter(CONSOLE_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    log_file = log_file or os.environ.get("SIM_HOME_LOG_FILE")
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            path, when="midnight", interval=1, backupCount=7, encoding="utf-8"
        )
        file_handler.setFormatter(
            jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(module)s %(lineno)d")
        )
        logger.addHandler(file_handler)

    _ring_buffer_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_ring_buffer_handler)
    _configured = True
