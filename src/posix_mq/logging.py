"""Queue audit log.

Every queue handle records what it did — opens, closes, unlinks,
sends, receives, and every failure — in a structured, in-memory log.
Think of it as ``dmesg`` for message queues: when something goes wrong
you can ask the log which queue was touched, in what order, and which
call the kernel refused.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source, queue).
- **Logger** — a bounded, append-only buffer with filtering and clearing.

Design choices:
    - **IntEnum for levels** so they compare naturally with ``<``.
    - **Frozen dataclass for entries** — log records are immutable.
    - **Bounded buffer** — a long-running producer sends forever, so
      the oldest entries are dropped once ``capacity`` is reached, like
      the kernel ring buffer.
"""

from collections import deque
from dataclasses import dataclass
from enum import IntEnum
from threading import Lock

from posix_mq.config import load_config


class LogLevel(IntEnum):
    """Severity levels for log entries."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The component that generated the event (e.g. "queue").
        queue: The queue name the event concerns, if any.

    """

    level: LogLevel
    message: str
    source: str
    queue: str = ""

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message`` with the queue name if set."""
        where = f"{self.source} {self.queue}" if self.queue else self.source
        return f"[{self.level.name}] {where}: {self.message}"


class Logger:
    """Bounded, append-only log buffer with filtering.

    Safe to share between threads: several handles in one process may
    log concurrently.
    """

    DEFAULT_CAPACITY = 1024

    def __init__(self, *, capacity: int = DEFAULT_CAPACITY) -> None:
        """Create an empty logger holding at most *capacity* entries."""
        if capacity < 1:
            msg = f"Log capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        """Return the maximum number of retained entries."""
        return self._entries.maxlen or 0

    @property
    def entries(self) -> list[LogEntry]:
        """Return all retained entries in chronological order."""
        with self._lock:
            return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        queue: str = "",
    ) -> None:
        """Append a new entry, evicting the oldest if the buffer is full.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Component that generated the event.
            queue: Queue name the event concerns.

        """
        entry = LogEntry(level=level, message=message, source=source, queue=queue)
        with self._lock:
            self._entries.append(entry)

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        queue: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.
            queue: If set, only return entries about this queue.

        Returns:
            A filtered list of log entries.

        """
        result = self.entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        if queue is not None:
            result = [e for e in result if e.queue == queue]
        return result

    def dmesg(self) -> list[str]:
        """Return every entry formatted as a single line."""
        return [str(e) for e in self.entries]

    def clear(self) -> None:
        """Remove all log entries."""
        with self._lock:
            self._entries.clear()


_shared: Logger | None = None
_shared_lock = Lock()


def get_logger() -> Logger:
    """Return the process-wide audit log, creating it on first use."""
    global _shared  # noqa: PLW0603
    with _shared_lock:
        if _shared is None:
            _shared = Logger(capacity=load_config().log_capacity)
        return _shared
