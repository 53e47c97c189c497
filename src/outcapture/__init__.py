"""outcapture - capture a child process's output while it is still running.

Environment variables:
    OUTCAP_READ_BUFFER_SIZE: stream reader buffer size (default 8 MiB)
    OUTCAP_TERM_TIMEOUT: graceful termination wait (default 2.0s)
    OUTCAP_KILL_TIMEOUT: forced kill wait (default 1.0s)
    OUTCAP_POLL_INTERVAL: CLI snapshot interval (default 1.0s)
    OUTCAP_LOG_DEBUG: debug logging to a temp file (default false)

Usage:
    outcapture -- make test
"""

__version__ = "0.1.0"

from .capture import CaptureSession, SessionState, Stream, new_capture_session
from .errors import (
    CaptureAborted,
    CaptureError,
    SessionStateError,
    StartFailure,
    StreamReadFailure,
    WaitFailure,
)

__all__ = [
    "__version__",
    "CaptureAborted",
    "CaptureError",
    "CaptureSession",
    "SessionState",
    "SessionStateError",
    "StartFailure",
    "Stream",
    "StreamReadFailure",
    "WaitFailure",
    "new_capture_session",
]
