"""Per-stream line reader.

A StreamReader drains one binary stream on its own thread, segments it on
``b"\\n"`` and publishes each completed line to the shared LineLog tagged with
its Stream. Lines are assembled per stream so bytes written to stdout and
stderr can never be spliced into the same line.
"""

from __future__ import annotations

import io
import logging
import threading
from typing import BinaryIO

from ..config import DEFAULT_READ_BUFFER_SIZE
from ..errors import StreamReadFailure
from .line_log import LineLog
from .types import LINE_TERMINATOR, Stream

__all__ = ["StreamReader", "DEFAULT_READ_BUFFER_SIZE"]

logger = logging.getLogger(__name__)


class StreamReader:
    """Read one output stream line by line into a LineLog.

    Attributes:
        stream: Which output stream this reader consumes
        lines_read: Number of lines published so far
        failure: StreamReadFailure if the reader ended before end-of-stream
    """

    def __init__(
        self,
        source: BinaryIO,
        stream: Stream,
        log: LineLog,
        buffer_size: int = DEFAULT_READ_BUFFER_SIZE,
    ) -> None:
        self.stream = stream
        self.lines_read = 0
        self.failure: StreamReadFailure | None = None
        self._log = log
        self._buffer_size = buffer_size
        self._reader = _buffered(source, buffer_size)
        self._thread: threading.Thread | None = None

    def start(self) -> threading.Thread:
        """Run the reader on a new daemon thread."""
        if self._thread is not None:
            raise RuntimeError(f"{self.stream.value} reader already started")
        self._thread = threading.Thread(
            target=self.run,
            name=f"outcapture-{self.stream.value}",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the reader thread; returns True once it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run(self) -> None:
        """Read until end-of-stream, then flush any trailing fragment."""
        logger.debug(f"{self.stream.value} reader started")
        try:
            self._read_lines()
        except (OSError, ValueError) as e:
            self.failure = StreamReadFailure(self.stream, e)
            logger.warning(f"{self.stream.value} reader stopped early: {e}")
        finally:
            if self._log.flush(self.stream) is not None:
                self.lines_read += 1
            self._close()
        logger.debug(
            f"{self.stream.value} reader finished lines={self.lines_read}"
        )

    def _read_lines(self) -> None:
        while True:
            data = self._reader.read1(self._buffer_size)
            if not data:
                return
            self._publish(data)

    def _publish(self, data: bytes) -> None:
        """Append every terminated piece of ``data``, hold the remainder."""
        start = 0
        while True:
            end = data.find(LINE_TERMINATOR, start) + 1
            if not end:
                break
            self._log.append(self.stream, data[start:end])
            self.lines_read += 1
            start = end
        self._log.hold(self.stream, data[start:])

    def _close(self) -> None:
        try:
            self._reader.close()
        except (OSError, ValueError) as e:
            logger.debug(f"{self.stream.value} close failed: {e}")


def _buffered(source: BinaryIO, buffer_size: int) -> BinaryIO:
    """Give unbuffered sources a read buffer of ``buffer_size`` bytes.

    Subprocess pipes are already buffered (Popen ``bufsize``) and in-memory
    streams need none, so both are used as-is.
    """
    if isinstance(source, io.RawIOBase):
        return io.BufferedReader(source, buffer_size=buffer_size)  # type: ignore[return-value]
    return source
