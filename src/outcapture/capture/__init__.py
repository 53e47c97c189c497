"""Incremental capture of a child process's stdout and stderr."""

from __future__ import annotations

from .line_log import LineLog
from .session import CaptureSession, new_capture_session
from .stream_reader import StreamReader
from .types import LINE_TERMINATOR, SessionState, Stream

__all__ = [
    "CaptureSession",
    "LineLog",
    "LINE_TERMINATOR",
    "SessionState",
    "Stream",
    "StreamReader",
    "new_capture_session",
]
