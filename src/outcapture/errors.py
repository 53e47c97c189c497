"""Capture session exceptions.

Every failure a session can end with is a ``CaptureError``. The session stores
the terminal one on ``CaptureSession.error`` and ``launch()`` raises it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .capture.types import Stream

__all__ = [
    "CaptureError",
    "StartFailure",
    "WaitFailure",
    "StreamReadFailure",
    "SessionStateError",
    "CaptureAborted",
]


class CaptureError(Exception):
    """Base exception for capture sessions."""
    pass


class StartFailure(CaptureError):
    """The child process could not be spawned.

    Attributes:
        executable: Path or name that was launched
        cause: Underlying OS error
    """

    def __init__(self, executable: str, cause: BaseException) -> None:
        self.executable = executable
        self.cause = cause
        super().__init__(f"failed to start {executable!r}: {cause}")


class WaitFailure(CaptureError):
    """The child exited with a failure status or was terminated.

    Attributes:
        executable: Path or name that was launched
        returncode: Exit status (negative signal number on POSIX)
    """

    def __init__(self, executable: str, returncode: int) -> None:
        self.executable = executable
        self.returncode = returncode
        if returncode < 0:
            detail = f"terminated by signal {-returncode}"
        else:
            detail = f"exited with status {returncode}"
        super().__init__(f"{executable!r} {detail}")


class StreamReadFailure(CaptureError):
    """Reading one of the output streams failed before end-of-stream.

    Attributes:
        stream: The stream whose reader ended early
        cause: Underlying I/O error
    """

    def __init__(self, stream: Stream, cause: BaseException) -> None:
        self.stream = stream
        self.cause = cause
        super().__init__(f"error reading {stream.value}: {cause}")


class SessionStateError(CaptureError):
    """A session operation was called in the wrong lifecycle state."""
    pass


class CaptureAborted(CaptureError):
    """The session was interrupted by an unexpected exception.

    Attributes:
        executable: Path or name that was launched
        cause: The exception that ended the session
    """

    def __init__(self, executable: str, cause: BaseException) -> None:
        self.executable = executable
        self.cause = cause
        super().__init__(f"capture of {executable!r} aborted: {cause!r}")
