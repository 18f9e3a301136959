"""Error translation — from raw errno values to queue error kinds.

Every call into the message queue library can fail, and the kernel
reports *why* through a small integer (``errno``).  Those numbers are
precise but opaque: ``17`` means nothing until you look it up.  This
module maps them onto a closed set of named kinds.

There are two shapes of failure:

- **Foreign errors** — the kernel refused a call.  The exception
  carries a ``QueueErrorKind`` (and the raw errno, for bug reports).
- **Local errors** — the handle refused a call before it ever reached
  the kernel (bad name, oversized message).  These carry only a message.

Design choices:
    - **StrEnum for kinds** so they print readably in logs and tests.
    - **A visible catch-all** — unmapped errnos become
      ``UNKNOWN_FOREIGN_ERROR`` rather than being folded into a
      neighbouring kind, so gaps in the table show up in bug reports.
"""

from __future__ import annotations

import errno as errno_codes
from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum


class QueueErrorKind(StrEnum):
    """The closed taxonomy of foreign queue failures."""

    PERMISSION_DENIED = "permission_denied"
    INVALID_QUEUE_DESCRIPTOR = "invalid_queue_descriptor"
    QUEUE_CALL_INTERRUPTED = "queue_call_interrupted"
    QUEUE_ALREADY_EXISTS = "queue_already_exists"
    QUEUE_NOT_FOUND = "queue_not_found"
    INSUFFICIENT_MEMORY = "insufficient_memory"
    INSUFFICIENT_SPACE = "insufficient_space"

    # Rare on modern systems
    PROCESS_FILE_DESCRIPTOR_LIMIT_REACHED = "process_file_descriptor_limit_reached"
    SYSTEM_FILE_DESCRIPTOR_LIMIT_REACHED = "system_file_descriptor_limit_reached"

    UNKNOWN_FOREIGN_ERROR = "unknown_foreign_error"

    @property
    def description(self) -> str:
        """Return a human-readable description of this kind."""
        return _DESCRIPTIONS[self]


_DESCRIPTIONS: dict[QueueErrorKind, str] = {
    QueueErrorKind.PERMISSION_DENIED: "permission to the specified queue was denied",
    QueueErrorKind.INVALID_QUEUE_DESCRIPTOR: "the internal queue descriptor was invalid",
    QueueErrorKind.QUEUE_CALL_INTERRUPTED: "queue method interrupted by signal",
    QueueErrorKind.QUEUE_ALREADY_EXISTS: "the specified queue already exists",
    QueueErrorKind.QUEUE_NOT_FOUND: "the specified queue could not be found",
    QueueErrorKind.INSUFFICIENT_MEMORY: "insufficient memory to call queue method",
    QueueErrorKind.INSUFFICIENT_SPACE: "insufficient space to call queue method",
    QueueErrorKind.PROCESS_FILE_DESCRIPTOR_LIMIT_REACHED: (
        "maximum number of process file descriptors reached"
    ),
    QueueErrorKind.SYSTEM_FILE_DESCRIPTOR_LIMIT_REACHED: (
        "maximum number of system file descriptors reached"
    ),
    QueueErrorKind.UNKNOWN_FOREIGN_ERROR: "unknown foreign error occurred: please report a bug!",
}

# Looked up in the man pages referenced by mq_overview(7).
ERRNO_KINDS: dict[int, QueueErrorKind] = {
    errno_codes.ENOENT: QueueErrorKind.QUEUE_NOT_FOUND,
    errno_codes.EINTR: QueueErrorKind.QUEUE_CALL_INTERRUPTED,
    errno_codes.EBADF: QueueErrorKind.INVALID_QUEUE_DESCRIPTOR,
    errno_codes.ENOMEM: QueueErrorKind.INSUFFICIENT_MEMORY,
    errno_codes.EACCES: QueueErrorKind.PERMISSION_DENIED,
    errno_codes.EEXIST: QueueErrorKind.QUEUE_ALREADY_EXISTS,
    errno_codes.ENFILE: QueueErrorKind.SYSTEM_FILE_DESCRIPTOR_LIMIT_REACHED,
    errno_codes.EMFILE: QueueErrorKind.PROCESS_FILE_DESCRIPTOR_LIMIT_REACHED,
    errno_codes.ENOSPC: QueueErrorKind.INSUFFICIENT_SPACE,
}


def kind_from_errno(code: int | None) -> QueueErrorKind:
    """Map a raw errno to its queue error kind.

    Args:
        code: The errno reported by the failed call (may be None when
            the OSError was raised without one).

    Returns:
        The matching kind, or ``UNKNOWN_FOREIGN_ERROR`` if the code is
        not part of the table.

    """
    if code is None:
        return QueueErrorKind.UNKNOWN_FOREIGN_ERROR
    return ERRNO_KINDS.get(code, QueueErrorKind.UNKNOWN_FOREIGN_ERROR)


class PosixMqError(Exception):
    """Raise when a message queue operation fails.

    ``foreign_cause`` is None for local validation errors and holds the
    translated kind when the kernel rejected the call.
    """

    def __init__(
        self,
        message: str,
        *,
        foreign_cause: QueueErrorKind | None = None,
        errno: int | None = None,
    ) -> None:
        """Create an error with a message and an optional foreign cause."""
        super().__init__(message)
        self.foreign_cause = foreign_cause
        self.errno = errno

    @classmethod
    def from_foreign(cls, kind: QueueErrorKind, *, errno: int | None = None) -> PosixMqError:
        """Build a foreign-cause error whose message is the kind's description."""
        return cls(kind.description, foreign_cause=kind, errno=errno)

    @property
    def is_foreign(self) -> bool:
        """Return True if the kernel (not the handle) rejected the call."""
        return self.foreign_cause is not None

    @property
    def retryable(self) -> bool:
        """Return True if repeating the call may succeed (signal interruption)."""
        return self.foreign_cause is QueueErrorKind.QUEUE_CALL_INTERRUPTED


@contextmanager
def mapped_errors() -> Iterator[None]:
    """Translate ``OSError`` raised inside the block into ``PosixMqError``.

    Raises:
        PosixMqError: With the kind matching the OSError's errno.

    """
    try:
        yield
    except OSError as exc:
        raise PosixMqError.from_foreign(kind_from_errno(exc.errno), errno=exc.errno) from exc
