"""Command-line tool for poking at message queues.

Usage::

    posix-mq create /jobs
    posix-mq send /jobs "hello" --priority 5
    posix-mq receive /jobs
    posix-mq info /jobs
    posix-mq unlink /jobs

``receive`` blocks until a message arrives (Ctrl-C to give up).
Add ``--log`` before the command to print the audit log afterwards.
"""

import argparse
import sys
from collections.abc import Sequence
from typing import TextIO

from posix_mq.adapter import QueueAdapter
from posix_mq.config import load_config
from posix_mq.errors import PosixMqError
from posix_mq.logging import Logger
from posix_mq.message import Message
from posix_mq.queue import Queue


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``posix-mq``."""
    parser = argparse.ArgumentParser(prog="posix-mq", description="POSIX message queue tool")
    parser.add_argument("--log", action="store_true", help="print the audit log when done")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="create a new queue")
    create.add_argument("name", help="queue name, e.g. /jobs")

    send = commands.add_parser("send", help="send one message")
    send.add_argument("name", help="queue name")
    send.add_argument("data", help="message payload (UTF-8)")
    send.add_argument("--priority", type=int, default=0, help="message priority")
    send.add_argument("--create", action="store_true", help="create the queue if missing")

    receive = commands.add_parser("receive", help="receive one message (blocks)")
    receive.add_argument("name", help="queue name")
    receive.add_argument("--hex", action="store_true", help="print the payload as hex")

    info = commands.add_parser("info", help="show queue attributes")
    info.add_argument("name", help="queue name")

    unlink = commands.add_parser("unlink", help="delete a queue name")
    unlink.add_argument("name", help="queue name")
    return parser


def _run(
    args: argparse.Namespace,
    adapter: QueueAdapter | None,
    logger: Logger,
    out: TextIO,
) -> None:
    match args.command:
        case "create":
            with Queue.create(args.name, adapter=adapter, logger=logger) as queue:
                out.write(f"created {queue.name} (max_pending={queue.max_pending}, ")
                out.write(f"max_message_size={queue.max_message_size})\n")
        case "send":
            opener = Queue.open_or_create if args.create else Queue.open
            with opener(args.name, adapter=adapter, logger=logger) as queue:
                queue.send(Message(args.data.encode(), args.priority))
        case "receive":
            with Queue.open(args.name, adapter=adapter, logger=logger) as queue:
                message = queue.receive()
            payload = message.data.hex() if args.hex else message.data.decode(errors="replace")
            out.write(f"[{message.priority}] {payload}\n")
        case "info":
            with Queue.open(args.name, adapter=adapter, logger=logger) as queue:
                attributes = queue.refresh_attributes()
            out.write(f"name:             {args.name}\n")
            out.write(f"max_pending:      {attributes.max_pending}\n")
            out.write(f"max_message_size: {attributes.max_message_size}\n")
            out.write(f"current_count:    {attributes.current_count}\n")
        case "unlink":
            Queue.unlink(args.name, adapter=adapter, logger=logger)


def main(
    argv: Sequence[str] | None = None,
    *,
    adapter: QueueAdapter | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Run the tool and return its exit status.

    Args:
        argv: Arguments (default: ``sys.argv[1:]``).
        adapter: Primitives to use (default: the shared adapter).
        stdout: Where results go (default: ``sys.stdout``).
        stderr: Where errors go (default: ``sys.stderr``).

    Returns:
        0 on success, 1 if a queue operation failed.

    """
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    args = build_parser().parse_args(argv)
    logger = Logger(capacity=load_config().log_capacity)
    status = 0
    try:
        _run(args, adapter, logger, out)
    except PosixMqError as exc:
        err.write(f"error: {exc}\n")
        status = 1
    if args.log:
        for line in logger.dmesg():
            out.write(f"{line}\n")
    return status


if __name__ == "__main__":
    sys.exit(main())
