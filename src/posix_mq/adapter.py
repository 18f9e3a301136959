"""The queue adapter — the boundary between handles and the kernel.

A ``Queue`` never calls ``mq_open`` itself.  It talks to a
``QueueAdapter``: a small capability interface with one method per
primitive.  Two implementations exist:

- ``NativeAdapter`` (``posix_mq.native``) — the real librt functions.
- ``SimulatedKernel`` (``posix_mq.simulated``) — an in-memory kernel
  with the same semantics, for tests and machines without mqueue.

The contract is deliberately thin: every method reports failure by
raising ``OSError`` with the raw ``errno``.  Translating that number
into something meaningful is the handle's job (see ``posix_mq.errors``).

Loading librt is not free, so the default adapter is built lazily on
first use and then shared by every handle in the process.
"""

from threading import Lock
from typing import Protocol, runtime_checkable

from posix_mq.attributes import QueueAttributes
from posix_mq.config import Backend, MqConfig, load_config
from posix_mq.native import NativeAdapter
from posix_mq.simulated import SimulatedKernel


@runtime_checkable
class QueueAdapter(Protocol):
    """The primitive operations on POSIX message queues.

    Every method raises ``OSError`` (with ``errno`` set) on failure.
    """

    def open(self, name: str, flags: int) -> int:
        """Open an existing queue and return its descriptor."""
        ...

    def open_with_attributes(
        self,
        name: str,
        flags: int,
        mode: int,
        attributes: QueueAttributes | None,
    ) -> int:
        """Open a queue, creating it if ``O_CREAT`` is set in *flags*.

        ``attributes=None`` asks for the kernel's default limits.
        """
        ...

    def close(self, descriptor: int) -> None:
        """Close a queue descriptor."""
        ...

    def unlink(self, name: str) -> None:
        """Remove a queue name from the namespace."""
        ...

    def send(self, descriptor: int, data: bytes, priority: int) -> None:
        """Enqueue a message, blocking while the queue is full."""
        ...

    def receive(self, descriptor: int, buffer_size: int) -> tuple[bytes, int]:
        """Dequeue the oldest highest-priority message, blocking while empty.

        Returns:
            The payload (only the bytes received) and its priority.

        """
        ...

    def get_attributes(self, descriptor: int) -> QueueAttributes:
        """Return a snapshot of the queue's attributes."""
        ...


_default: QueueAdapter | None = None
_default_lock = Lock()


def build_adapter(config: MqConfig) -> QueueAdapter:
    """Create the adapter selected by *config*."""
    match config.backend:
        case Backend.NATIVE:
            return NativeAdapter(library=config.library)
        case Backend.SIMULATED:
            return SimulatedKernel()


def get_default_adapter() -> QueueAdapter:
    """Return the process-wide adapter, building it on first use."""
    global _default  # noqa: PLW0603
    with _default_lock:
        if _default is None:
            _default = build_adapter(load_config())
        return _default


def set_default_adapter(adapter: QueueAdapter | None) -> None:
    """Replace the process-wide adapter.

    Passing None forgets the current adapter so the next
    ``get_default_adapter`` call rebuilds it from the environment.
    """
    global _default  # noqa: PLW0603
    with _default_lock:
        _default = adapter
