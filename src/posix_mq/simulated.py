"""Simulated kernel — POSIX message queues in process memory.

``SimulatedKernel`` implements the same primitives as the native
adapter, with the same observable behaviour, but keeps every queue in a
Python dict.  It lets the ``Queue`` handle be exercised on machines
without ``/dev/mqueue`` and makes failure modes (full descriptor
tables, interrupted calls) easy to provoke.

What it models:

- **Names** — a namespace mapping ``/name`` to queue storage.
  ``unlink`` removes the name, but the storage lives on until the last
  descriptor referring to it is closed (like an unlinked open file).
- **Descriptors** — a table that always hands out the lowest free
  number starting at 3, mimicking Unix fd allocation.
- **Ordering** — a heap keyed by (-priority, arrival) so higher
  priorities come out first and equal priorities stay FIFO.
- **Blocking** — ``send`` waits while the queue is full, ``receive``
  waits while it is empty.  ``interrupt()`` plays the part of a signal:
  every blocked caller wakes up and fails with ``EINTR``.

Errors are raised as ``OSError`` with the errno the real kernel uses,
so the handle's error translation is exercised unchanged.
"""

import errno
import heapq
import itertools
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from posix_mq.attributes import (
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_MAX_PENDING,
    QueueAttributes,
)

MQ_PRIO_MAX = 32768
NAME_MAX = 255


def _fail(code: int, func: str) -> OSError:
    """Build the OSError a failing kernel call would raise."""
    return OSError(code, f"{func}: {os.strerror(code)}")


@dataclass
class SimulatedQueue:
    """Kernel-side storage for one named queue.

    Mutable: messages come and go, and the open count changes as
    descriptors are opened and closed.
    """

    name: str
    mode: int
    max_pending: int
    max_message_size: int
    messages: list[tuple[int, int, bytes]] = field(default_factory=lambda: [])  # noqa: PIE807
    """Heap of (-priority, arrival sequence, payload)."""

    open_count: int = 0
    unlinked: bool = False


@dataclass(frozen=True)
class OpenQueueDescription:
    """What a descriptor points at: a queue and the access mode."""

    queue: SimulatedQueue
    flags: int

    @property
    def readable(self) -> bool:
        """Return True if the descriptor was opened for reading."""
        return (self.flags & os.O_ACCMODE) in {os.O_RDONLY, os.O_RDWR}

    @property
    def writable(self) -> bool:
        """Return True if the descriptor was opened for writing."""
        return (self.flags & os.O_ACCMODE) in {os.O_WRONLY, os.O_RDWR}


class SimulatedKernel:
    """An in-memory implementation of the queue adapter primitives.

    One lock guards all state; a condition variable on that lock wakes
    blocked senders and receivers whenever anything changes.
    """

    FIRST_DESCRIPTOR = 3

    def __init__(
        self,
        *,
        max_pending: int = DEFAULT_MAX_PENDING,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
        max_queues: int = 256,
        max_descriptors: int = 1024,
    ) -> None:
        """Create an empty kernel.

        Args:
            max_pending: Default message capacity for new queues.
            max_message_size: Default payload limit for new queues.
            max_queues: How many names may exist at once (``ENOSPC`` beyond).
            max_descriptors: Size of the descriptor table (``EMFILE`` beyond).

        """
        self._defaults = QueueAttributes(
            max_pending=max_pending,
            max_message_size=max_message_size,
        )
        self._max_queues = max_queues
        self._max_descriptors = max_descriptors
        self._names: dict[str, SimulatedQueue] = {}
        self._descriptors: dict[int, OpenQueueDescription] = {}
        self._arrivals = itertools.count()
        self._interrupts = 0
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)

    # ── Introspection ───────────────────────────────────────────────

    @property
    def defaults(self) -> QueueAttributes:
        """Return the limits given to queues created without attributes."""
        return self._defaults

    def queue_names(self) -> list[str]:
        """Return the names currently bound, sorted."""
        with self._lock:
            return sorted(self._names)

    def pending(self, name: str) -> int:
        """Return the number of messages on the queue bound to *name*.

        Raises:
            KeyError: If no queue is bound to *name*.

        """
        with self._lock:
            return len(self._names[name].messages)

    def open_descriptors(self) -> list[int]:
        """Return the descriptors currently open, sorted."""
        with self._lock:
            return sorted(self._descriptors)

    def interrupt(self) -> None:
        """Wake every blocked ``send``/``receive`` with ``EINTR``."""
        with self._changed:
            self._interrupts += 1
            self._changed.notify_all()

    # ── Primitives ──────────────────────────────────────────────────

    def open(self, name: str, flags: int) -> int:
        """Open an existing queue (creating it only if ``O_CREAT`` is set)."""
        return self.open_with_attributes(name, flags, 0, None)

    def open_with_attributes(
        self,
        name: str,
        flags: int,
        mode: int,
        attributes: QueueAttributes | None,
    ) -> int:
        """Open a queue; create-or-attach is decided under the lock."""
        self._check_name(name, "mq_open")
        with self._lock:
            queue = self._names.get(name)
            if queue is not None and flags & os.O_CREAT and flags & os.O_EXCL:
                raise _fail(errno.EEXIST, "mq_open")
            if queue is None:
                if not flags & os.O_CREAT:
                    raise _fail(errno.ENOENT, "mq_open")
                if len(self._names) >= self._max_queues:
                    raise _fail(errno.ENOSPC, "mq_open")
                if len(self._descriptors) >= self._max_descriptors:
                    raise _fail(errno.EMFILE, "mq_open")
                limits = attributes or self._defaults
                queue = SimulatedQueue(
                    name=name,
                    mode=mode,
                    max_pending=limits.max_pending,
                    max_message_size=limits.max_message_size,
                )
                self._names[name] = queue
            return self._allocate(OpenQueueDescription(queue=queue, flags=flags))

    def close(self, descriptor: int) -> None:
        """Release *descriptor*; free the storage of unlinked queues."""
        with self._changed:
            description = self._descriptors.pop(descriptor, None)
            if description is None:
                raise _fail(errno.EBADF, "mq_close")
            description.queue.open_count -= 1
            self._changed.notify_all()

    def unlink(self, name: str) -> None:
        """Remove *name* from the namespace."""
        self._check_name(name, "mq_unlink")
        with self._lock:
            queue = self._names.pop(name, None)
            if queue is None:
                raise _fail(errno.ENOENT, "mq_unlink")
            queue.unlinked = True

    def send(self, descriptor: int, data: bytes, priority: int) -> None:
        """Enqueue *data*, blocking while the queue is full."""
        with self._changed:
            description = self._lookup(descriptor, "mq_send")
            if not description.writable:
                raise _fail(errno.EBADF, "mq_send")
            queue = description.queue
            if len(data) > queue.max_message_size:
                raise _fail(errno.EMSGSIZE, "mq_send")
            if not 0 <= priority < MQ_PRIO_MAX:
                raise _fail(errno.EINVAL, "mq_send")
            self._wait_until(lambda: len(queue.messages) < queue.max_pending, "mq_send")
            heapq.heappush(queue.messages, (-priority, next(self._arrivals), bytes(data)))
            self._changed.notify_all()

    def receive(self, descriptor: int, buffer_size: int) -> tuple[bytes, int]:
        """Dequeue the next message, blocking while the queue is empty."""
        with self._changed:
            description = self._lookup(descriptor, "mq_receive")
            if not description.readable:
                raise _fail(errno.EBADF, "mq_receive")
            queue = description.queue
            if buffer_size < queue.max_message_size:
                raise _fail(errno.EMSGSIZE, "mq_receive")
            self._wait_until(lambda: bool(queue.messages), "mq_receive")
            neg_priority, _arrival, data = heapq.heappop(queue.messages)
            self._changed.notify_all()
            return data, -neg_priority

    def get_attributes(self, descriptor: int) -> QueueAttributes:
        """Return the queue's limits and current message count."""
        with self._lock:
            queue = self._lookup(descriptor, "mq_getattr").queue
            return QueueAttributes(
                max_pending=queue.max_pending,
                max_message_size=queue.max_message_size,
                current_count=len(queue.messages),
            )

    # ── Internals (call with the lock held) ─────────────────────────

    def _check_name(self, name: str, func: str) -> None:
        if len(name) > NAME_MAX:
            raise _fail(errno.ENAMETOOLONG, func)
        if len(name) < 2 or not name.startswith("/") or "/" in name[1:]:  # noqa: PLR2004
            raise _fail(errno.EINVAL, func)

    def _allocate(self, description: OpenQueueDescription) -> int:
        if len(self._descriptors) >= self._max_descriptors:
            raise _fail(errno.EMFILE, "mq_open")
        descriptor = self.FIRST_DESCRIPTOR
        while descriptor in self._descriptors:
            descriptor += 1
        self._descriptors[descriptor] = description
        description.queue.open_count += 1
        return descriptor

    def _lookup(self, descriptor: int, func: str) -> OpenQueueDescription:
        description = self._descriptors.get(descriptor)
        if description is None:
            raise _fail(errno.EBADF, func)
        return description

    def _wait_until(self, ready: Callable[[], bool], func: str) -> None:
        interrupts = self._interrupts
        while not ready():
            self._changed.wait()
            if self._interrupts != interrupts:
                raise _fail(errno.EINTR, func)
