"""Command line entry point.

Runs a command under a CaptureSession and prints the lines captured so far
every ``--interval`` seconds, then everything left once the child exits.

Usage:
    outcapture [--interval S] [--timeout S] [--tag-stderr] -- CMD [ARGS...]

Exit status mirrors the child; 127 if it could not start, 124 on timeout,
128+N if it was killed by signal N.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import BinaryIO, Sequence

from .capture.session import CaptureSession
from .capture.types import Stream
from .config import get_config
from .errors import StartFailure

__all__ = ["main", "follow"]

logger = logging.getLogger(__name__)

EXIT_START_FAILURE = 127
EXIT_TIMEOUT = 124
STDERR_TAG = b"[stderr] "


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="outcapture",
        description="Run a command and print its output as it is captured",
    )
    parser.add_argument(
        "--interval", type=float, default=config.poll_interval,
        help="Seconds between snapshots",
    )
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Terminate the command after this many seconds",
    )
    parser.add_argument(
        "--tag-stderr", action="store_true",
        help="Prefix lines captured from stderr with [stderr]",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run")
    args = parser.parse_args(argv)
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    if not args.command:
        parser.error("no command given")
    return args


def follow(
    session: CaptureSession,
    out: BinaryIO,
    interval: float,
    timeout: float | None = None,
    tag_stderr: bool = False,
) -> None:
    """Print new lines from ``session`` until it completes.

    Terminates the child once ``timeout`` seconds have passed.
    """
    printed = 0
    deadline = None if timeout is None else time.monotonic() + timeout

    while True:
        finished = session.wait_completion(interval)
        lines, origin = session.snapshot(include_origin=True)
        for line, stream in zip(lines[printed:], (origin or [])[printed:]):
            if tag_stderr and stream is Stream.STDERR:
                out.write(STDERR_TAG)
            out.write(line)
        out.flush()
        printed = len(lines)
        if finished:
            return
        if deadline is not None and time.monotonic() >= deadline:
            if not session.terminate_requested:
                logger.info(f"Timed out after {timeout}s, terminating pid={session.pid}")
                session.terminate()


def _exit_status(session: CaptureSession) -> int:
    if isinstance(session.error, StartFailure):
        return EXIT_START_FAILURE
    if session.terminate_requested and session.returncode != 0:
        return EXIT_TIMEOUT
    returncode = session.returncode or 0
    return 128 - returncode if returncode < 0 else returncode


def _setup_logging() -> None:
    config = get_config()
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # Debug mode: log to a temp file
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Third-party loggers stay at WARNING
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers)
    logging.getLogger("outcapture").setLevel(log_level)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = _parse_args(argv)
    _setup_logging()

    session = CaptureSession()
    session.start(args.command[0], *args.command[1:])
    follow(
        session,
        sys.stdout.buffer,
        interval=args.interval,
        timeout=args.timeout,
        tag_stderr=args.tag_stderr,
    )

    if session.error is not None:
        logger.info(f"{session.error}")
    return _exit_status(session)


def run() -> None:
    sys.exit(main())
