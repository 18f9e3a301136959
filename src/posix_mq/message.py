"""Messages — the unit of exchange on a message queue.

A message is a whole payload plus a priority.  The kernel never splits
or merges messages: one ``send`` is exactly one ``receive``.  Higher
priorities are delivered first; equal priorities keep send order.
"""

from dataclasses import dataclass

from posix_mq.errors import PosixMqError


@dataclass(frozen=True)
class Message:
    """An immutable queue message.

    Attributes:
        data: The opaque payload bytes.
        priority: Delivery priority (>= 0).  The upper bound is the
            kernel's ``MQ_PRIO_MAX``.

    """

    data: bytes
    priority: int = 0

    def __post_init__(self) -> None:
        """Freeze the payload as bytes and reject bad payloads or priorities."""
        if isinstance(self.data, bytearray | memoryview):
            # stored immutably
            object.__setattr__(self, "data", bytes(self.data))
        elif not isinstance(self.data, bytes):
            msg = f"Message data must be bytes-like, not {type(self.data).__name__}"
            raise TypeError(msg)
        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            msg = f"Message priority must be an int, not {type(self.priority).__name__}"
            raise TypeError(msg)
        if self.priority < 0:
            msg = f"Message priority must not be negative ({self.priority})"
            raise PosixMqError(msg)

    def __len__(self) -> int:
        """Return the payload length in bytes."""
        return len(self.data)
