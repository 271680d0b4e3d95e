"""
Logging for the ebook generation workers.

AppLogger writes to Python logging and records each message in a bounded
LogBuffer. The worker runner reads the buffer's error and warning counts when
it shuts down.
"""

import logging
import sys
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Dict, Optional


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LogEntry:
    """One recorded message with its source and metadata."""

    def __init__(
        self,
        level: LogLevel,
        message: str,
        source: str,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.timestamp = datetime.now(timezone.utc)
        self.level = level
        self.message = message
        self.source = source
        self.metadata = metadata or {}


class LogBuffer:
    """
    Bounded, thread-safe record of recent log entries.

    The error and warning counters keep counting after old entries fall out
    of the buffer.
    """

    def __init__(self, max_size: int = 1000):
        self._entries: deque = deque(maxlen=max_size)
        self._lock = Lock()
        self._error_count = 0
        self._warning_count = 0

    def add(self, entry: LogEntry):
        with self._lock:
            self._entries.append(entry)
            if entry.level in (LogLevel.ERROR, LogLevel.CRITICAL):
                self._error_count += 1
            elif entry.level is LogLevel.WARNING:
                self._warning_count += 1

    def get_stats(self) -> Dict[str, Any]:
        """Entry counts per level and per source, plus the running counters."""
        with self._lock:
            by_level: Dict[str, int] = {}
            by_source: Dict[str, int] = {}
            for entry in self._entries:
                by_level[entry.level.value] = by_level.get(entry.level.value, 0) + 1
                by_source[entry.source] = by_source.get(entry.source, 0) + 1

            return {
                "total": len(self._entries),
                "by_level": by_level,
                "by_source": by_source,
                "error_count": self._error_count,
                "warning_count": self._warning_count,
            }

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._error_count = 0
            self._warning_count = 0


_log_buffer = LogBuffer()


def get_log_buffer() -> LogBuffer:
    return _log_buffer


class AppLogger:
    """
    Logger for one component. Keyword arguments become metadata:
        logger.info("Page completed", document_id=doc_id, page_index=3)
    """

    def __init__(self, source: str):
        self.source = source
        self._logger = logging.getLogger(f"ebookgen.{source}")

    def _log(self, level: LogLevel, message: str, metadata: Dict[str, Any]):
        _log_buffer.add(LogEntry(level, message, self.source, metadata))

        suffix = f" | {metadata}" if metadata else ""
        self._logger.log(getattr(logging, level.name), f"{message}{suffix}")

    def debug(self, message: str, **metadata):
        self._log(LogLevel.DEBUG, message, metadata)

    def info(self, message: str, **metadata):
        self._log(LogLevel.INFO, message, metadata)

    def warning(self, message: str, **metadata):
        self._log(LogLevel.WARNING, message, metadata)

    def error(self, message: str, **metadata):
        self._log(LogLevel.ERROR, message, metadata)

    def critical(self, message: str, **metadata):
        self._log(LogLevel.CRITICAL, message, metadata)


def configure_logging(level: str = "INFO"):
    """Configure root logging for a worker or CLI process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    # httpx logs every generation request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


store_logger = AppLogger("job_store")
worker_logger = AppLogger("worker_pool")
generator_logger = AppLogger("page_writer")
