"""Capture type definitions."""

from __future__ import annotations

from enum import Enum

__all__ = [
    "Stream",
    "SessionState",
    "LINE_TERMINATOR",
]

LINE_TERMINATOR = b"\n"


class Stream(str, Enum):
    """Origin tag of a captured line."""

    STDOUT = "stdout"
    STDERR = "stderr"

    @property
    def is_stderr(self) -> bool:
        return self is Stream.STDERR


class SessionState(str, Enum):
    """Lifecycle of a capture session.

    - CREATED: nothing launched yet
    - STARTED: child spawned, readers not yet running
    - READERS_DRAINING: both readers consuming their pipes
    - EXITED: both readers reached end-of-stream, waiting on the child
    - COMPLETED: terminal, reached on success and failure alike
    """

    CREATED = "created"
    STARTED = "started"
    READERS_DRAINING = "readers_draining"
    EXITED = "exited"
    COMPLETED = "completed"
