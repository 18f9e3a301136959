"""Tests for the queue audit log.

The log records structured entries for queue events: an audit trail
of which queue was touched, by what operation, and what failed.
"""

import pytest

from posix_mq.errors import PosixMqError
from posix_mq.logging import LogEntry, Logger, LogLevel, get_logger
from posix_mq.message import Message
from posix_mq.queue import Queue
from posix_mq.simulated import SimulatedKernel


class TestLogLevel:
    """Verify log level ordering."""

    def test_levels_are_ordered(self) -> None:
        """DEBUG < INFO < WARNING < ERROR."""
        assert LogLevel.DEBUG < LogLevel.INFO
        assert LogLevel.INFO < LogLevel.WARNING
        assert LogLevel.WARNING < LogLevel.ERROR


class TestLogEntry:
    """Verify log entry structure."""

    def test_entry_has_fields(self) -> None:
        """A log entry should store level, message, source, and queue."""
        entry = LogEntry(level=LogLevel.INFO, message="opened", source="queue", queue="/jobs")
        assert entry.level is LogLevel.INFO
        assert entry.message == "opened"
        assert entry.source == "queue"
        assert entry.queue == "/jobs"

    def test_entry_str_includes_queue(self) -> None:
        """String form should show level, source, queue, and message."""
        entry = LogEntry(level=LogLevel.WARNING, message="full", source="queue", queue="/jobs")
        assert str(entry) == "[WARNING] queue /jobs: full"

    def test_entry_str_without_queue(self) -> None:
        """Entries without a queue name omit it."""
        entry = LogEntry(level=LogLevel.ERROR, message="boom", source="cli")
        assert str(entry) == "[ERROR] cli: boom"


class TestLogger:
    """Verify the bounded logger."""

    def test_log_stores_entries(self) -> None:
        """Logged entries should be retrievable."""
        logger = Logger()
        logger.log(LogLevel.INFO, "created", source="queue")
        assert len(logger.entries) == 1
        assert logger.entries[0].message == "created"

    def test_entries_are_ordered(self) -> None:
        """Entries should be in chronological order."""
        logger = Logger()
        logger.log(LogLevel.INFO, "first", source="test")
        logger.log(LogLevel.INFO, "second", source="test")
        assert [e.message for e in logger.entries] == ["first", "second"]

    def test_oldest_entries_are_dropped(self) -> None:
        """Past capacity, the oldest entries make room for new ones."""
        capacity = 3
        logger = Logger(capacity=capacity)
        for i in range(5):
            logger.log(LogLevel.INFO, f"event {i}", source="test")
        assert logger.capacity == capacity
        assert [e.message for e in logger.entries] == ["event 2", "event 3", "event 4"]

    def test_capacity_must_be_positive(self) -> None:
        """A zero-capacity log is rejected."""
        with pytest.raises(ValueError, match="positive"):
            Logger(capacity=0)

    def test_filter_by_level(self) -> None:
        """Filtering should return only entries at or above the level."""
        logger = Logger()
        logger.log(LogLevel.DEBUG, "debug msg", source="test")
        logger.log(LogLevel.INFO, "info msg", source="test")
        logger.log(LogLevel.ERROR, "error msg", source="test")
        warnings_and_above = logger.filter(min_level=LogLevel.WARNING)
        assert len(warnings_and_above) == 1
        assert warnings_and_above[0].level is LogLevel.ERROR

    def test_filter_by_source_and_queue(self) -> None:
        """Filters combine: source and queue must both match."""
        logger = Logger()
        logger.log(LogLevel.INFO, "a", source="queue", queue="/a")
        logger.log(LogLevel.INFO, "b", source="queue", queue="/b")
        logger.log(LogLevel.INFO, "c", source="cli", queue="/a")
        matches = logger.filter(source="queue", queue="/a")
        assert [e.message for e in matches] == ["a"]

    def test_dmesg_formats_lines(self) -> None:
        """Dmesg returns one formatted line per entry."""
        logger = Logger()
        logger.log(LogLevel.INFO, "created", source="queue", queue="/a")
        assert logger.dmesg() == ["[INFO] queue /a: created"]

    def test_clear(self) -> None:
        """Clearing should remove all entries."""
        logger = Logger()
        logger.log(LogLevel.INFO, "test", source="test")
        logger.clear()
        assert len(logger.entries) == 0

    def test_shared_logger_is_reused(self) -> None:
        """The process-wide log is created once."""
        assert get_logger() is get_logger()


class TestQueueLogging:
    """Verify that queue handles log their operations."""

    def test_create_is_logged(self, kernel: SimulatedKernel, logger: Logger) -> None:
        """Creating a queue produces an INFO entry naming the queue."""
        Queue.create("/logged", adapter=kernel, logger=logger)
        info = logger.filter(min_level=LogLevel.INFO, queue="/logged")
        assert any(e.message.startswith("create") for e in info)

    def test_send_and_receive_are_debug(self, kernel: SimulatedKernel, logger: Logger) -> None:
        """Messaging is logged at DEBUG level."""
        with Queue.create("/chatty", adapter=kernel, logger=logger) as queue:
            queue.send(Message(b"hi", 2))
            queue.receive()
        debug = [e.message for e in logger.entries if e.level is LogLevel.DEBUG]
        assert debug == ["send: 2 bytes, priority 2", "receive: 2 bytes, priority 2"]

    def test_foreign_failure_is_logged(self, kernel: SimulatedKernel, logger: Logger) -> None:
        """A kernel refusal is recorded at ERROR level before raising."""
        with pytest.raises(PosixMqError, match="could not be found"):
            Queue.open("/missing", adapter=kernel, logger=logger)
        errors = logger.filter(min_level=LogLevel.ERROR)
        assert len(errors) == 1
        assert "open failed" in errors[0].message

    def test_local_failure_is_logged(self, kernel: SimulatedKernel, logger: Logger) -> None:
        """A malformed name is recorded at ERROR level."""
        with pytest.raises(PosixMqError, match="must start with"):
            Queue.open("bad", adapter=kernel, logger=logger)
        assert logger.filter(min_level=LogLevel.ERROR, queue="bad")
