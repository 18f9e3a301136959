"""Queue attributes and open-flag constants.

``mq_getattr(3)`` fills a ``struct mq_attr`` with four fields.  Only
three of them matter to callers: how many messages the queue can hold,
how big each one may be, and how many are waiting right now.  We keep
them in a frozen snapshot: the values are read once and never updated,
so ``current_count`` in particular goes stale immediately.
"""

import os
from dataclasses import dataclass

DEFAULT_MODE = 0o600
"""Owner read/write, no access for anyone else."""

OPEN_FLAGS = os.O_RDWR
CREATE_FLAGS = os.O_RDWR | os.O_CREAT
CREATE_EXCLUSIVE_FLAGS = os.O_RDWR | os.O_CREAT | os.O_EXCL

# Linux defaults (/proc/sys/fs/mqueue/msg_default and msgsize_default)
DEFAULT_MAX_PENDING = 10
DEFAULT_MAX_MESSAGE_SIZE = 8192


@dataclass(frozen=True)
class QueueAttributes:
    """A snapshot of a queue's limits and occupancy.

    Attributes:
        max_pending: Maximum number of messages on the queue.
        max_message_size: Maximum payload length in bytes.
        current_count: Messages enqueued when the snapshot was taken.

    """

    max_pending: int
    max_message_size: int
    current_count: int = 0

    def __post_init__(self) -> None:
        """Reject limits the kernel could never report."""
        if self.max_pending < 1 or self.max_message_size < 1:
            msg = (
                f"Queue limits must be positive "
                f"(max_pending={self.max_pending}, max_message_size={self.max_message_size})"
            )
            raise ValueError(msg)
        if self.current_count < 0:
            msg = f"Current message count must not be negative ({self.current_count})"
            raise ValueError(msg)
