"""Shared, append-only log of captured lines.

The log holds three pieces of state behind a single lock:

- ``lines``: completed lines, terminator included, in completion order
- ``origin``: the Stream each line came from, index-aligned with ``lines``
- ``pending``: at most one partial fragment per stream

The lock is held only for a single append/hold/flush or a copy, never while
a reader is blocked on I/O.
"""

from __future__ import annotations

import threading

from .types import LINE_TERMINATOR, Stream

__all__ = ["LineLog"]


class LineLog:
    """Thread-safe line log shared by the stream readers and observers.

    Example:
        log = LineLog()
        log.hold(Stream.STDOUT, b"hel")
        log.append(Stream.STDOUT, b"lo\\n")
        log.snapshot(include_origin=True)
        # ([b"hello\\n"], [Stream.STDOUT])
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._lines: list[bytes] = []
        self._origin: list[Stream] = []
        self._pending: dict[Stream, bytes | None] = {s: None for s in Stream}
        self._sealed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def append(self, stream: Stream, tail: bytes) -> bytes:
        """Publish a completed line for ``stream``.

        Any pending fragment for the stream is prepended and cleared.

        Args:
            stream: Origin of the line
            tail: Bytes read up to and including the terminator

        Returns:
            The line as stored
        """
        with self._lock:
            self._check_open()
            head = self._pending[stream]
            line = head + tail if head else tail
            self._pending[stream] = None
            self._lines.append(line)
            self._origin.append(stream)
            return line

    def hold(self, stream: Stream, fragment: bytes) -> None:
        """Keep a terminator-less fragment until its line completes."""
        if not fragment:
            return
        with self._lock:
            self._check_open()
            head = self._pending[stream]
            self._pending[stream] = head + fragment if head else fragment

    def flush(self, stream: Stream) -> bytes | None:
        """Emit the pending fragment of ``stream`` as a final line.

        Returns:
            The flushed line, or None if nothing was pending
        """
        with self._lock:
            self._check_open()
            fragment = self._pending[stream]
            self._pending[stream] = None
            if not fragment:
                return None
            self._lines.append(fragment)
            self._origin.append(stream)
            return fragment

    def pending(self, stream: Stream) -> bytes | None:
        with self._lock:
            return self._pending[stream]

    def seal(self) -> None:
        """Freeze the log; later mutations raise RuntimeError."""
        with self._lock:
            self._sealed = True

    def snapshot(
        self, include_origin: bool = False
    ) -> tuple[list[bytes], list[Stream] | None]:
        """Copy the lines (and optionally origins) atomically.

        Returns:
            Tuple of (lines, origin); origin is None unless requested
        """
        with self._lock:
            lines = list(self._lines)
            origin = list(self._origin) if include_origin else None
        return lines, origin

    def _check_open(self) -> None:
        if self._sealed:
            raise RuntimeError("line log is sealed")

    @staticmethod
    def is_complete(chunk: bytes) -> bool:
        """Whether ``chunk`` ends with the line terminator."""
        return chunk.endswith(LINE_TERMINATOR)
