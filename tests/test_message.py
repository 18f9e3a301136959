"""Tests for messages and queue attribute snapshots."""

import dataclasses
import os

import pytest

from posix_mq.attributes import (
    CREATE_EXCLUSIVE_FLAGS,
    CREATE_FLAGS,
    DEFAULT_MODE,
    OPEN_FLAGS,
    QueueAttributes,
)
from posix_mq.errors import PosixMqError
from posix_mq.message import Message

PAYLOAD_PRIORITY = 3
DEFAULT_PENDING = 10
DEFAULT_SIZE = 8192


class TestMessage:
    """Verify the immutable message value."""

    def test_fields(self) -> None:
        """A message stores its payload and priority."""
        message = Message(b"hello", PAYLOAD_PRIORITY)
        assert message.data == b"hello"
        assert message.priority == PAYLOAD_PRIORITY

    def test_default_priority_is_zero(self) -> None:
        """Priority defaults to 0."""
        assert Message(b"x").priority == 0

    def test_len_is_payload_length(self) -> None:
        """len() reports the payload size."""
        assert len(Message(b"12345")) == len(b"12345")

    def test_bytearray_is_frozen_to_bytes(self) -> None:
        """Mutable buffers are copied into bytes."""
        buffer = bytearray(b"abc")
        message = Message(buffer)  # pyright: ignore[reportArgumentType]
        buffer[0] = ord("z")
        assert message.data == b"abc"
        assert isinstance(message.data, bytes)

    def test_memoryview_is_copied_to_bytes(self) -> None:
        """Any bytes-like buffer is accepted and stored as bytes."""
        message = Message(memoryview(b"view"))  # pyright: ignore[reportArgumentType]
        assert message.data == b"view"
        assert isinstance(message.data, bytes)

    @pytest.mark.parametrize("payload", [5, "text", None, [1, 2]])
    def test_non_bytes_payload_is_type_error(self, payload: object) -> None:
        """Ints, strings, and other non-buffers are rejected."""
        with pytest.raises(TypeError, match="must be bytes-like"):
            Message(payload)  # type: ignore[arg-type]

    def test_is_immutable(self) -> None:
        """Messages cannot be modified after construction."""
        message = Message(b"x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            message.priority = 1  # type: ignore[misc]

    def test_equality(self) -> None:
        """Messages with equal fields are equal."""
        assert Message(b"a", 1) == Message(b"a", 1)
        assert Message(b"a", 1) != Message(b"a", 2)

    def test_negative_priority_is_local_error(self) -> None:
        """Priorities below zero are rejected before any send."""
        with pytest.raises(PosixMqError, match="must not be negative") as info:
            Message(b"x", -1)
        assert info.value.foreign_cause is None

    def test_non_int_priority_is_type_error(self) -> None:
        """Priority must be an int."""
        with pytest.raises(TypeError):
            Message(b"x", 1.5)  # type: ignore[arg-type]

    def test_empty_payload_is_allowed(self) -> None:
        """Zero-length messages are valid."""
        assert len(Message(b"")) == 0


class TestQueueAttributes:
    """Verify the attribute snapshot."""

    def test_fields(self) -> None:
        """Attributes store limits and the current count."""
        attributes = QueueAttributes(
            max_pending=DEFAULT_PENDING,
            max_message_size=DEFAULT_SIZE,
            current_count=1,
        )
        assert attributes.max_pending == DEFAULT_PENDING
        assert attributes.max_message_size == DEFAULT_SIZE
        assert attributes.current_count == 1

    def test_current_count_defaults_to_zero(self) -> None:
        """A snapshot without a count means an empty queue."""
        assert QueueAttributes(max_pending=1, max_message_size=1).current_count == 0

    @pytest.mark.parametrize(("pending", "size"), [(0, 1), (1, 0), (-1, 10)])
    def test_limits_must_be_positive(self, pending: int, size: int) -> None:
        """The kernel never reports non-positive limits."""
        with pytest.raises(ValueError, match="positive"):
            QueueAttributes(max_pending=pending, max_message_size=size)

    def test_negative_count_rejected(self) -> None:
        """A snapshot cannot hold fewer than zero messages."""
        with pytest.raises(ValueError, match="negative"):
            QueueAttributes(max_pending=1, max_message_size=1, current_count=-1)


class TestOpenConstants:
    """Verify the flags and mode used to open queues."""

    def test_default_mode_is_owner_read_write(self) -> None:
        """New queues are 0600."""
        assert DEFAULT_MODE == 0o600

    def test_flag_sets(self) -> None:
        """Create-exclusive adds O_EXCL to create, which adds O_CREAT to open."""
        assert OPEN_FLAGS == os.O_RDWR
        assert CREATE_FLAGS == OPEN_FLAGS | os.O_CREAT
        assert CREATE_EXCLUSIVE_FLAGS == CREATE_FLAGS | os.O_EXCL
