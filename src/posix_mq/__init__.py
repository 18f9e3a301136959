"""POSIX message queues for Python.

Re-exports the public API so callers can write::

    from posix_mq import Message, Queue

    with Queue.create("/jobs") as queue:
        queue.send(Message(b"hello", priority=1))
        print(queue.receive().data)
        queue.delete()

The low-level bindings (``posix_mq.native``) and the in-memory kernel
(``posix_mq.simulated``) are importable directly but rarely needed.
"""

from posix_mq.adapter import (
    QueueAdapter,
    build_adapter,
    get_default_adapter,
    set_default_adapter,
)
from posix_mq.attributes import QueueAttributes
from posix_mq.config import Backend, MqConfig, load_config
from posix_mq.errors import PosixMqError, QueueErrorKind, kind_from_errno, mapped_errors
from posix_mq.logging import LogEntry, Logger, LogLevel, get_logger
from posix_mq.message import Message
from posix_mq.native import NativeAdapter
from posix_mq.queue import Queue, QueueState, validate_name
from posix_mq.simulated import SimulatedKernel

__all__ = [
    "Backend",
    "LogEntry",
    "LogLevel",
    "Logger",
    "Message",
    "MqConfig",
    "NativeAdapter",
    "PosixMqError",
    "Queue",
    "QueueAdapter",
    "QueueAttributes",
    "QueueErrorKind",
    "QueueState",
    "SimulatedKernel",
    "build_adapter",
    "get_default_adapter",
    "get_logger",
    "kind_from_errno",
    "load_config",
    "mapped_errors",
    "set_default_adapter",
    "validate_name",
]
