"""Queue handles — one open session against a named message queue.

A ``Queue`` is what callers hold.  It owns exactly one descriptor from
the moment it is created until ``close`` releases it, and it caches the
queue's limits so that oversized messages are rejected locally, before
the kernel is ever asked.

Lifecycle::

    create / open / open_or_create      close
    ──────────────────────────────► OPEN ──────► CLOSED

``delete`` is orthogonal: it unlinks the *name*, not the session.  A
handle may delete its queue and keep sending and receiving on its
descriptor; new opens by that name fail until somebody recreates it.

Blocking and interruption:
    ``send`` blocks while the queue is full and ``receive`` blocks while
    it is empty.  The only way out is a signal, which surfaces as
    ``QueueErrorKind.QUEUE_CALL_INTERRUPTED``.  The handle never retries
    on its own: the caller decides whether an interrupted call should
    be repeated.

Queue limits:
    Queues are always created with the kernel's default limits
    (``/proc/sys/fs/mqueue/msg_default`` and ``msgsize_default`` on
    Linux).  Choosing limits at creation time is not supported yet.

A handle is not thread-safe.  Share a queue between threads by giving
each its own handle (several handles may open the same name).
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable
from enum import StrEnum
from types import TracebackType
from typing import TypeVar

from posix_mq.adapter import QueueAdapter, get_default_adapter
from posix_mq.attributes import (
    CREATE_EXCLUSIVE_FLAGS,
    CREATE_FLAGS,
    DEFAULT_MODE,
    OPEN_FLAGS,
    QueueAttributes,
)
from posix_mq.errors import PosixMqError, QueueErrorKind, mapped_errors
from posix_mq.logging import Logger, LogLevel, get_logger
from posix_mq.message import Message

NAME_SEPARATOR = "/"
MAX_NAME_LENGTH = 255

_SOURCE = "queue"

R = TypeVar("R")


class QueueState(StrEnum):
    """Whether a handle still owns its descriptor."""

    OPEN = "open"
    CLOSED = "closed"


def validate_name(name: str) -> None:
    """Check that *name* is a well-formed queue name.

    A valid name is a slash followed by one to 254 characters, none of
    which is another slash or a NUL (for example ``/jobs``).

    Raises:
        TypeError: If *name* is not a string.
        PosixMqError: If the name is malformed.

    """
    if not isinstance(name, str):
        msg = f"Queue name must be a str, not {type(name).__name__}"
        raise TypeError(msg)
    if not name.startswith(NAME_SEPARATOR):
        msg = f"Queue name must start with '{NAME_SEPARATOR}'"
        raise PosixMqError(msg)
    if len(name) == 1:
        msg = "Queue name must be a slash followed by one or more characters"
        raise PosixMqError(msg)
    if len(name) > MAX_NAME_LENGTH:
        msg = f"Queue name must not exceed {MAX_NAME_LENGTH} characters"
        raise PosixMqError(msg)
    if name.count(NAME_SEPARATOR) > 1:
        msg = "Queue name can not contain more than one slash"
        raise PosixMqError(msg)
    if "\x00" in name:
        # C strings end at the first NUL
        msg = "Queue name must not contain NUL characters"
        raise PosixMqError(msg)


def _checked_name(name: str, logger: Logger) -> str:
    """Validate *name*, logging the rejection before re-raising."""
    try:
        validate_name(name)
    except PosixMqError as exc:
        logger.log(LogLevel.ERROR, str(exc), source=_SOURCE, queue=name)
        raise
    return name


def _foreign(call: Callable[[], R], *, action: str, name: str, logger: Logger) -> R:
    """Run an adapter call, translating and logging any failure."""
    try:
        with mapped_errors():
            return call()
    except PosixMqError as exc:
        logger.log(
            LogLevel.ERROR,
            f"{action} failed: {exc} (errno {exc.errno})",
            source=_SOURCE,
            queue=name,
        )
        raise


class Queue:
    """A handle on one open POSIX message queue.

    Build handles with ``create``, ``open`` or ``open_or_create``; the
    constructor only wraps a descriptor that is already open.
    Handles are context managers and close themselves on exit.
    """

    def __init__(
        self,
        *,
        name: str,
        descriptor: int,
        attributes: QueueAttributes,
        adapter: QueueAdapter,
        logger: Logger,
    ) -> None:
        """Wrap an open descriptor (use the class methods instead)."""
        self._name = name
        self._descriptor = descriptor
        self._attributes = attributes
        self._adapter = adapter
        self._logger = logger
        self._state = QueueState.OPEN

    # ── Opening ─────────────────────────────────────────────────────

    @classmethod
    def create(
        cls,
        name: str,
        *,
        adapter: QueueAdapter | None = None,
        logger: Logger | None = None,
    ) -> Queue:
        """Create a new queue, failing if the name is already taken.

        The queue is readable and writable by the current user only
        (mode 0600); on Linux the owner may change this by editing the
        file under ``/dev/mqueue``.  Limits are the kernel defaults.

        Args:
            name: Queue name, e.g. ``/jobs``.
            adapter: Primitives to use (default: the shared adapter).
            logger: Audit log to write to (default: the shared log).

        Raises:
            PosixMqError: ``QUEUE_ALREADY_EXISTS`` if the name is bound,
                any other mapped kind on kernel failure, or a local
                error if the name is malformed.

        """
        logger = logger or get_logger()
        _checked_name(name, logger)
        adapter = adapter or get_default_adapter()
        return cls._attach(
            name,
            lambda: adapter.open_with_attributes(name, CREATE_EXCLUSIVE_FLAGS, DEFAULT_MODE, None),
            action="create",
            adapter=adapter,
            logger=logger,
        )

    @classmethod
    def open(
        cls,
        name: str,
        *,
        adapter: QueueAdapter | None = None,
        logger: Logger | None = None,
    ) -> Queue:
        """Open an existing queue for reading and writing.

        Raises:
            PosixMqError: ``QUEUE_NOT_FOUND`` if no queue has this name.

        """
        logger = logger or get_logger()
        _checked_name(name, logger)
        adapter = adapter or get_default_adapter()
        return cls._attach(
            name,
            lambda: adapter.open(name, OPEN_FLAGS),
            action="open",
            adapter=adapter,
            logger=logger,
        )

    @classmethod
    def open_or_create(
        cls,
        name: str,
        *,
        adapter: QueueAdapter | None = None,
        logger: Logger | None = None,
    ) -> Queue:
        """Open a queue, creating it with the default settings if missing.

        The create-or-attach decision is a single ``O_CREAT`` open, so two
        processes racing on the same name both end up on one queue.
        """
        logger = logger or get_logger()
        _checked_name(name, logger)
        adapter = adapter or get_default_adapter()
        return cls._attach(
            name,
            lambda: adapter.open_with_attributes(name, CREATE_FLAGS, DEFAULT_MODE, None),
            action="open_or_create",
            adapter=adapter,
            logger=logger,
        )

    @classmethod
    def unlink(
        cls,
        name: str,
        *,
        adapter: QueueAdapter | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Unlink a queue by name without opening it.

        Only the right to remove the name is needed, not read or write
        access to the queue.

        Raises:
            PosixMqError: ``QUEUE_NOT_FOUND`` if no queue has this name, or
                a local error if the name is malformed.

        """
        logger = logger or get_logger()
        _checked_name(name, logger)
        adapter = adapter or get_default_adapter()
        _foreign(lambda: adapter.unlink(name), action="unlink", name=name, logger=logger)
        logger.log(LogLevel.INFO, "unlink: name unlinked", source=_SOURCE, queue=name)

    @classmethod
    def _attach(
        cls,
        name: str,
        opener: Callable[[], int],
        *,
        action: str,
        adapter: QueueAdapter,
        logger: Logger,
    ) -> Queue:
        descriptor = _foreign(opener, action=action, name=name, logger=logger)
        try:
            attributes = _foreign(
                lambda: adapter.get_attributes(descriptor),
                action="getattr",
                name=name,
                logger=logger,
            )
        except PosixMqError:
            # Don't leak the descriptor; the getattr error is the one to report.
            with contextlib.suppress(OSError):
                adapter.close(descriptor)
            raise
        logger.log(
            LogLevel.INFO,
            f"{action}: descriptor {descriptor}, max_pending={attributes.max_pending}, "
            f"max_message_size={attributes.max_message_size}",
            source=_SOURCE,
            queue=name,
        )
        return cls(
            name=name,
            descriptor=descriptor,
            attributes=attributes,
            adapter=adapter,
            logger=logger,
        )

    # ── Properties ──────────────────────────────────────────────────

    @property
    def name(self) -> str:
        """Return the queue name."""
        return self._name

    @property
    def descriptor(self) -> int:
        """Return the queue descriptor (meaningless once closed)."""
        return self._descriptor

    @property
    def attributes(self) -> QueueAttributes:
        """Return the attributes captured when the handle was opened."""
        return self._attributes

    @property
    def max_pending(self) -> int:
        """Return the maximum number of messages the queue holds."""
        return self._attributes.max_pending

    @property
    def max_message_size(self) -> int:
        """Return the maximum payload size in bytes."""
        return self._attributes.max_message_size

    @property
    def state(self) -> QueueState:
        """Return whether the handle is open or closed."""
        return self._state

    @property
    def is_open(self) -> bool:
        """Return True until ``close`` has been called."""
        return self._state is QueueState.OPEN

    # ── Messaging ───────────────────────────────────────────────────

    def send(self, message: Message) -> None:
        """Send a message, blocking while the queue is full.

        Raises:
            TypeError: If *message* is not a ``Message``.
            PosixMqError: A local error if the payload is larger than
                ``max_message_size`` (nothing is sent), or the mapped
                kind if the kernel rejects the call.

        """
        if not isinstance(message, Message):
            msg = f"Expected a Message, not {type(message).__name__}"
            raise TypeError(msg)
        self._require_open("send")
        size = len(message.data)
        if size > self.max_message_size:
            msg = (
                f"Message size ({size}) exceeds maximum for queue "
                f"'{self._name}' ({self.max_message_size})"
            )
            self._logger.log(LogLevel.ERROR, msg, source=_SOURCE, queue=self._name)
            raise PosixMqError(msg)
        self._call(
            lambda: self._adapter.send(self._descriptor, message.data, message.priority),
            "send",
        )
        self._log(LogLevel.DEBUG, f"send: {size} bytes, priority {message.priority}")

    def receive(self) -> Message:
        """Receive the next message, blocking while the queue is empty.

        Messages come out highest priority first, oldest first within a
        priority.  The returned priority is the one the message was sent
        with.
        """
        self._require_open("receive")
        data, priority = self._call(
            lambda: self._adapter.receive(self._descriptor, self.max_message_size),
            "receive",
        )
        self._log(LogLevel.DEBUG, f"receive: {len(data)} bytes, priority {priority}")
        return Message(data, priority)

    def refresh_attributes(self) -> QueueAttributes:
        """Return a fresh attribute snapshot (the cached one is unchanged)."""
        self._require_open("getattr")
        return self._call(lambda: self._adapter.get_attributes(self._descriptor), "getattr")

    # ── Teardown ────────────────────────────────────────────────────

    def delete(self) -> None:
        """Unlink the queue name from the system.

        Existing descriptors (including this one) keep working; the
        queue is freed once they are all closed.  Calling this twice is
        an error (``QUEUE_NOT_FOUND``) unless the name was recreated.
        """
        self._call(lambda: self._adapter.unlink(self._name), "delete")
        self._log(LogLevel.INFO, "delete: name unlinked")

    def close(self) -> None:
        """Close the descriptor.

        Raises:
            PosixMqError: ``INVALID_QUEUE_DESCRIPTOR`` if the handle is
                already closed.

        """
        self._require_open("close")
        try:
            self._call(lambda: self._adapter.close(self._descriptor), "close")
        finally:
            # A failed close still leaves the descriptor unusable.
            self._state = QueueState.CLOSED
        self._log(LogLevel.INFO, f"close: descriptor {self._descriptor} released")

    def __enter__(self) -> Queue:
        """Return the handle itself."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the handle unless it was already closed."""
        if self.is_open:
            self.close()

    def __repr__(self) -> str:
        """Show the name, descriptor, and state."""
        return f"Queue(name={self._name!r}, descriptor={self._descriptor}, state={self._state})"

    # ── Helpers ─────────────────────────────────────────────────────

    def _require_open(self, action: str) -> None:
        if self._state is QueueState.CLOSED:
            error = PosixMqError.from_foreign(QueueErrorKind.INVALID_QUEUE_DESCRIPTOR)
            self._log(LogLevel.ERROR, f"{action} failed: handle is closed")
            raise error

    def _call(self, call: Callable[[], R], action: str) -> R:
        return _foreign(call, action=action, name=self._name, logger=self._logger)

    def _log(self, level: LogLevel, message: str) -> None:
        self._logger.log(level, message, source=_SOURCE, queue=self._name)
