"""In-memory log console.

Keeps the most recent log records so clients can show what the engine has
been doing (saves, skipped fixes, store failures) without shell access.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone

from astate.core.time_utils import format_clock_ms, to_local_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LogEntry:
    timestamp: datetime
    level: str
    message: str
    category: str


class LogBuffer(logging.Handler):
    """Bounded handler holding the newest `max_entries` records."""

    def __init__(self, max_entries: int = 1000, tz_name: str | None = None):
        super().__init__()
        self.tz_name = tz_name
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._entries_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        entry = LogEntry(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
            level=record.levelname,
            message=record.getMessage(),
            # "astate.engine.session" -> "session"
            category=record.name.rsplit(".", 1)[-1],
        )
        with self._entries_lock:
            self._entries.append(entry)

    def entries(self) -> list[LogEntry]:
        """Newest first."""
        with self._entries_lock:
            return list(reversed(self._entries))

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()
        logger.info("Logs cleared")

    def export(self) -> str:
        """Oldest first, one '[HH:MM:SS.mmm] [LEVEL] [category] message' line per entry."""
        with self._entries_lock:
            entries = list(self._entries)
        return "\n".join(
            f"[{format_clock_ms(to_local_datetime(e.timestamp, self.tz_name))}] "
            f"[{e.level}] [{e.category}] {e.message}"
            for e in entries
        )


log_buffer: LogBuffer | None = None


def configure_logging(level: str = "INFO", buffer_size: int = 1000, tz_name: str | None = None) -> LogBuffer:
    """Set up console logging for the `astate` loggers and attach the log buffer.

    Safe to call more than once; the existing buffer is reused.
    """
    global log_buffer
    root = logging.getLogger("astate")
    root.setLevel(level.upper())
    if log_buffer is None:
        log_buffer = LogBuffer(buffer_size, tz_name)
        root.addHandler(log_buffer)
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("[%(levelname)s] [%(name)s] %(message)s"))
        root.addHandler(console)
        logger.info("Logging initialized")
    return log_buffer
