"""Capture session: launch a process and expose its output while it runs.

Lifecycle:
    CREATED -> STARTED -> READERS_DRAINING -> EXITED -> COMPLETED

Both stream readers must reach end-of-stream before the child is reaped;
waiting first can lose output still sitting in the pipes. COMPLETED is
reached on every path and the completion event fires exactly once after it.

Lines from one stream keep their emission order. Lines from stdout and stderr
interleave in whatever order the reader threads append them, so the combined
log is not a chronological record across streams.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from collections.abc import Mapping
from pathlib import Path

from ..config import get_config
from ..errors import (
    CaptureAborted,
    CaptureError,
    SessionStateError,
    StartFailure,
    WaitFailure,
)
from ..runtime.process_runner import ProcessRunner, ProcessSpec
from .line_log import LineLog
from .stream_reader import StreamReader
from .types import SessionState, Stream

__all__ = ["CaptureSession", "new_capture_session"]

logger = logging.getLogger(__name__)


class CaptureSession:
    """Run one child process and capture stdout/stderr line by line.

    ``launch()`` blocks for the lifetime of the child, so it usually runs on
    its own thread (see ``start()``). Any other thread may call
    ``snapshot()`` / ``combined_bytes()`` at any time to see the lines
    captured so far.

    Example:
        session = CaptureSession()
        session.start("make", "test")
        while not session.wait_completion(timeout=1.0):
            print(session.combined_text())
        if session.error:
            print(f"failed: {session.error}")

    Attributes:
        runner: Spawns and terminates the child
        read_buffer_size: Buffer size of each stream pipe
        cwd: Working directory of the child (None = inherit)
        env: Environment of the child (None = inherit)
        pid: Child pid once started
        returncode: Exit status once reaped
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        read_buffer_size: int | None = None,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        config = get_config()
        self.runner = runner or ProcessRunner(
            term_timeout=config.term_timeout,
            kill_timeout=config.kill_timeout,
        )
        self.read_buffer_size = (
            read_buffer_size if read_buffer_size is not None else config.read_buffer_size
        )
        self.cwd = cwd
        self.env = env
        self.pid: int | None = None
        self.returncode: int | None = None

        self._log = LineLog()
        self._completed = threading.Event()
        self._lock = threading.Lock()
        self._claimed = False
        self._state = SessionState.CREATED
        self._error: CaptureError | None = None
        self._process: subprocess.Popen[bytes] | None = None
        self._terminate_requested = False

    def __repr__(self) -> str:
        return (
            f"CaptureSession(state={self._state.value}, "
            f"pid={self.pid}, "
            f"lines={len(self._log)}, "
            f"returncode={self.returncode})"
        )

    # -- lifecycle ----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def done(self) -> bool:
        """Whether the session reached COMPLETED."""
        return self._completed.is_set()

    @property
    def error(self) -> CaptureError | None:
        """Terminal error, or None on success. Meaningful once ``done``."""
        return self._error

    @property
    def terminate_requested(self) -> bool:
        return self._terminate_requested

    def wait_completion(self, timeout: float | None = None) -> bool:
        """Block until COMPLETED; returns False if ``timeout`` elapsed first."""
        return self._completed.wait(timeout)

    def launch(self, executable: str, *args: str) -> None:
        """Run ``executable`` with ``args`` and capture its output.

        Blocks until both streams are drained and the child has exited.

        Raises:
            SessionStateError: The session was already launched
            StartFailure: The child could not be spawned
            WaitFailure: The child exited with a failure status
            StreamReadFailure: A stream failed and the child otherwise succeeded
            CaptureAborted: An unexpected exception interrupted the capture
        """
        self._claim()
        self._execute(executable, *args)

    def start(self, executable: str, *args: str) -> threading.Thread:
        """Run ``launch()`` on a background daemon thread.

        The outcome is reported through ``wait_completion()`` and ``error``.

        Raises:
            SessionStateError: The session was already launched
        """
        self._claim()
        thread = threading.Thread(
            target=self._execute_in_background,
            args=(executable, *args),
            name=f"outcapture-session-{executable}",
            daemon=True,
        )
        thread.start()
        return thread

    def terminate(self) -> bool:
        """Ask the running child to exit (graceful, then forced).

        Capture continues until the pipes close; the session then completes
        with the resulting WaitFailure. A request made before the child has
        spawned is applied as soon as it has.

        Returns:
            True if a running child was signalled
        """
        if self._completed.is_set():
            return False
        self._terminate_requested = True
        process = self._process
        if process is None:
            return False
        return self.runner.terminate(process)

    # -- observers ----------------------------------------------------------

    def snapshot(
        self, include_origin: bool = False
    ) -> tuple[list[bytes], list[Stream] | None]:
        """Copy the lines captured so far (and their origins if requested).

        Never waits on the child. Lines already returned are never changed
        or removed by later captures.
        """
        return self._log.snapshot(include_origin)

    def combined_bytes(self) -> bytes:
        """All lines captured so far, concatenated in log order."""
        lines, _ = self._log.snapshot()
        return b"".join(lines)

    def combined_text(self, encoding: str = "utf-8", errors: str = "replace") -> str:
        return self.combined_bytes().decode(encoding, errors)

    def lines_for(self, stream: Stream) -> list[bytes]:
        """Lines captured so far from ``stream`` only, in emission order."""
        lines, origin = self._log.snapshot(include_origin=True)
        return [line for line, tag in zip(lines, origin or ()) if tag is stream]

    # -- internals ----------------------------------------------------------

    def _claim(self) -> None:
        with self._lock:
            if self._claimed:
                raise SessionStateError("capture session can only be launched once")
            self._claimed = True

    def _set_state(self, state: SessionState) -> None:
        logger.debug(f"Session pid={self.pid} {self._state.value} -> {state.value}")
        self._state = state

    def _execute_in_background(self, executable: str, *args: str) -> None:
        try:
            self._execute(executable, *args)
        except CaptureError as e:
            # Kept on self.error for observers.
            logger.debug(f"Background session ended with error: {e}")

    def _execute(self, executable: str, *args: str) -> None:
        try:
            self._run(executable, list(args))
        except CaptureError as e:
            self._error = e
            raise
        except Exception as e:
            self._error = CaptureAborted(executable, e)
            logger.exception(f"Capture of {executable!r} aborted")
            raise self._error from e
        except BaseException as e:
            self._error = CaptureAborted(executable, e)
            raise
        finally:
            self._log.seal()
            self._set_state(SessionState.COMPLETED)
            self._completed.set()

    def _run(self, executable: str, args: list[str]) -> None:
        spec = ProcessSpec(
            argv=[executable, *args],
            cwd=self.cwd,
            env=self.env,
            bufsize=self.read_buffer_size,
        )
        try:
            process = self.runner.spawn(spec)
        except Exception as e:
            logger.debug(f"Failed to start {executable!r}: {e}")
            raise StartFailure(executable, e) from e

        self._process = process
        self.pid = process.pid
        self._set_state(SessionState.STARTED)
        if self._terminate_requested:
            self.runner.terminate(process)

        try:
            self._drain(executable, process)
        except BaseException:
            # No-op when the child was already reaped.
            self.runner.terminate(process)
            raise

    def _drain(self, executable: str, process: subprocess.Popen[bytes]) -> None:
        if process.stdout is None or process.stderr is None:
            raise CaptureError(f"{executable!r} was started without output pipes")
        readers = [
            StreamReader(process.stdout, Stream.STDOUT, self._log, self.read_buffer_size),
            StreamReader(process.stderr, Stream.STDERR, self._log, self.read_buffer_size),
        ]
        for reader in readers:
            reader.start()
        self._set_state(SessionState.READERS_DRAINING)

        # The child must not be reaped before both pipes are drained.
        for reader in readers:
            reader.join()
        self._set_state(SessionState.EXITED)

        self.returncode = process.wait()
        logger.debug(
            f"Subprocess completed pid={process.pid} "
            f"returncode={self.returncode} lines={len(self._log)}"
        )
        if self.returncode != 0:
            raise WaitFailure(executable, self.returncode)
        for reader in readers:
            if reader.failure is not None:
                raise reader.failure


def new_capture_session(
    runner: ProcessRunner | None = None,
    read_buffer_size: int | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> CaptureSession:
    """Create an empty capture session."""
    return CaptureSession(
        runner=runner,
        read_buffer_size=read_buffer_size,
        cwd=cwd,
        env=env,
    )
