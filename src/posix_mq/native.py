"""Native bindings — the librt message queue functions via ctypes.

This is the lowest layer: seven C functions, described to ctypes with
their exact signatures, and a ``Structure`` mirroring ``struct mq_attr``.
Each wrapper turns the C convention (return ``-1`` and set ``errno``)
into the Python one (raise ``OSError``).

Note that this is a low-level interface and should usually not be
used directly.  Use ``posix_mq.Queue`` instead.
"""

import ctypes
import ctypes.util
import os
from ctypes import (
    CFUNCTYPE,
    POINTER,
    Structure,
    c_char_p,
    c_int,
    c_long,
    c_size_t,
    c_ssize_t,
    c_uint,
    c_void_p,
)

from posix_mq.attributes import QueueAttributes
from posix_mq.errors import PosixMqError

mqd_t = c_int
mode_t = c_uint

_FAILURE = -1


class MqAttr(Structure):
    """Mirror of ``struct mq_attr`` (field order matches the C definition)."""

    _fields_ = (
        ("mq_flags", c_long),  # ignored by mq_open
        ("mq_maxmsg", c_long),
        ("mq_msgsize", c_long),
        ("mq_curmsgs", c_long),
        ("__reserved", c_long * 4),
    )

    @classmethod
    def from_attributes(cls, attributes: QueueAttributes) -> "MqAttr":
        """Build a C struct from a Python snapshot."""
        return cls(
            mq_flags=0,
            mq_maxmsg=attributes.max_pending,
            mq_msgsize=attributes.max_message_size,
            mq_curmsgs=0,
        )

    def to_attributes(self) -> QueueAttributes:
        """Convert the C struct into a Python snapshot."""
        return QueueAttributes(
            max_pending=self.mq_maxmsg,
            max_message_size=self.mq_msgsize,
            current_count=self.mq_curmsgs,
        )


# mq_open is variadic, so each calling form gets its own prototype.
_mq_open = CFUNCTYPE(mqd_t, c_char_p, c_int, use_errno=True)
_mq_open_attr = CFUNCTYPE(mqd_t, c_char_p, c_int, mode_t, POINTER(MqAttr), use_errno=True)
_mq_close = CFUNCTYPE(c_int, mqd_t, use_errno=True)
_mq_unlink = CFUNCTYPE(c_int, c_char_p, use_errno=True)
_mq_send = CFUNCTYPE(c_int, mqd_t, c_char_p, c_size_t, c_uint, use_errno=True)
_mq_receive = CFUNCTYPE(c_ssize_t, mqd_t, c_void_p, c_size_t, POINTER(c_uint), use_errno=True)
_mq_getattr = CFUNCTYPE(c_int, mqd_t, POINTER(MqAttr), use_errno=True)


def _load_library(library: str) -> ctypes.CDLL:
    """Locate and load the library exporting ``mq_open``.

    glibc 2.34+ folds librt into libc, so when *library* cannot be
    found the symbols of the running process are tried instead.

    Raises:
        PosixMqError: If no loaded library exports the queue functions.

    """
    path = ctypes.util.find_library(library)
    lib = ctypes.CDLL(path, use_errno=True)
    if not hasattr(lib, "mq_open"):
        msg = f"POSIX message queues are not available (no mq_open in library '{library}')"
        raise PosixMqError(msg)
    return lib


def _check(result: int, func: str) -> int:
    """Raise ``OSError`` from ``errno`` if *result* signals failure."""
    if result == _FAILURE:
        code = ctypes.get_errno()
        raise OSError(code, f"{func}: {os.strerror(code)}")
    return result


class NativeAdapter:
    """Queue primitives backed by the operating system's librt."""

    def __init__(self, *, library: str = "rt") -> None:
        """Load *library* and bind the message queue functions.

        Raises:
            PosixMqError: If the library or its queue functions are missing.

        """
        try:
            lib = _load_library(library)
        except OSError as exc:
            msg = f"POSIX message queues are not available ({exc})"
            raise PosixMqError(msg) from exc
        self._library = library
        self._open = _mq_open(("mq_open", lib))
        self._open_attr = _mq_open_attr(("mq_open", lib))
        self._close = _mq_close(("mq_close", lib))
        self._unlink = _mq_unlink(("mq_unlink", lib))
        self._send = _mq_send(("mq_send", lib))
        self._receive = _mq_receive(("mq_receive", lib))
        self._getattr = _mq_getattr(("mq_getattr", lib))

    @property
    def library(self) -> str:
        """Return the library name this adapter was loaded from."""
        return self._library

    def open(self, name: str, flags: int) -> int:
        """Call ``mq_open(name, flags)``."""
        return _check(self._open(os.fsencode(name), flags), "mq_open")

    def open_with_attributes(
        self,
        name: str,
        flags: int,
        mode: int,
        attributes: QueueAttributes | None,
    ) -> int:
        """Call ``mq_open(name, flags, mode, attr)``; None means kernel defaults."""
        attr = None if attributes is None else ctypes.pointer(MqAttr.from_attributes(attributes))
        return _check(self._open_attr(os.fsencode(name), flags, mode, attr), "mq_open")

    def close(self, descriptor: int) -> None:
        """Call ``mq_close(descriptor)``."""
        _check(self._close(descriptor), "mq_close")

    def unlink(self, name: str) -> None:
        """Call ``mq_unlink(name)``."""
        _check(self._unlink(os.fsencode(name)), "mq_unlink")

    def send(self, descriptor: int, data: bytes, priority: int) -> None:
        """Call ``mq_send``; blocks while the queue is full."""
        _check(self._send(descriptor, data, len(data), priority), "mq_send")

    def receive(self, descriptor: int, buffer_size: int) -> tuple[bytes, int]:
        """Call ``mq_receive``; blocks while the queue is empty."""
        buffer = ctypes.create_string_buffer(buffer_size)
        priority = c_uint(0)
        size = _check(
            self._receive(descriptor, buffer, buffer_size, ctypes.byref(priority)),
            "mq_receive",
        )
        return buffer.raw[:size], priority.value

    def get_attributes(self, descriptor: int) -> QueueAttributes:
        """Call ``mq_getattr``."""
        attr = MqAttr()
        _check(self._getattr(descriptor, ctypes.byref(attr)), "mq_getattr")
        return attr.to_attributes()
