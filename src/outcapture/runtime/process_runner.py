"""Process runner with subprocess isolation and reliable termination.

outcapture runtime module

This module provides:
- Cross-platform subprocess isolation (new session/process group)
- Separate stdout/stderr pipes for the capture readers
- Reliable termination with graceful shutdown (SIGTERM -> timeout -> SIGKILL)

Key design points:
- POSIX: start_new_session=True to create new process group
- Windows: CREATE_NEW_PROCESS_GROUP for signal isolation
- Termination signals the process group, not just the main process
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

__all__ = [
    "ProcessRunner",
    "ProcessSpec",
    "IS_WINDOWS",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# Default timeouts
DEFAULT_TERM_TIMEOUT = 2.0  # seconds to wait after SIGTERM
DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process (None = inherit)
        env: Environment variables (None = inherit parent)
        bufsize: Read buffer size of the stdout/stderr pipes
    """

    argv: list[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    bufsize: int = -1

    @property
    def executable(self) -> str:
        return self.argv[0] if self.argv else ""


@dataclass
class ProcessRunner:
    """Cross-platform process runner with isolation and reliable termination.

    Example:
        runner = ProcessRunner()
        process = runner.spawn(ProcessSpec(argv=["my-cli", "--json"]))
        ...
        runner.terminate(process)
    """

    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT

    def spawn(self, spec: ProcessSpec) -> subprocess.Popen[bytes]:
        """Start the subprocess with both output streams piped.

        stdin is DEVNULL so the child never inherits the caller's stdin.

        Raises:
            OSError: The executable is missing or not runnable
            ValueError: Invalid arguments (e.g. empty argv)
        """
        if not spec.argv:
            raise ValueError("argv must not be empty")

        process = subprocess.Popen(
            spec.argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=spec.cwd,
            bufsize=spec.bufsize,
            **self._build_subprocess_kwargs(spec),
        )
        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.argv[0]} cwd={spec.cwd}"
        )
        return process

    def _build_subprocess_kwargs(self, spec: ProcessSpec) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs."""
        kwargs: dict[str, Any] = {}

        if spec.env is not None:
            kwargs["env"] = dict(spec.env)

        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            # POSIX: start_new_session (equivalent to setsid)
            kwargs["start_new_session"] = True

        return kwargs

    def terminate(self, process: subprocess.Popen[bytes]) -> bool:
        """Terminate subprocess gracefully, then forcefully if needed.

        Termination strategy:
        1. Send SIGTERM (or CTRL_BREAK_EVENT on Windows)
        2. Wait up to term_timeout for graceful exit
        3. If still running, send SIGKILL (or kill() on Windows)
        4. Wait up to kill_timeout for forced exit

        Popen caches the exit status, so the owner's own wait() still sees it.

        Returns:
            True if the process was still running and got signalled
        """
        if process.poll() is not None:
            return False

        pid = process.pid
        logger.debug(f"Terminating subprocess pid={pid}")

        try:
            if IS_WINDOWS:
                self._windows_terminate(process)
            else:
                self._posix_send(process, signal.SIGTERM)

            try:
                process.wait(timeout=self.term_timeout)
                logger.debug(
                    f"Subprocess terminated gracefully pid={pid} "
                    f"returncode={process.returncode}"
                )
                return True
            except subprocess.TimeoutExpired:
                pass

            logger.debug(f"Force killing subprocess pid={pid}")
            if IS_WINDOWS:
                process.kill()
            else:
                self._posix_send(process, signal.SIGKILL)

            try:
                process.wait(timeout=self.kill_timeout)
                logger.debug(
                    f"Subprocess killed pid={pid} "
                    f"returncode={process.returncode}"
                )
            except subprocess.TimeoutExpired:
                logger.warning(f"Subprocess did not exit after kill pid={pid}")

        except ProcessLookupError:
            logger.debug(f"Subprocess already exited pid={pid}")
        return True

    def _posix_send(
        self,
        process: subprocess.Popen[bytes],
        sig: signal.Signals,
    ) -> None:
        """Send ``sig`` to the process group on POSIX systems."""
        try:
            # Process group ID equals pid due to start_new_session
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, sig)
            logger.debug(f"Sent {sig.name} to process group pgid={pgid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to send_signal: {e}")
            process.send_signal(sig)

    def _windows_terminate(self, process: subprocess.Popen[bytes]) -> None:
        """Send CTRL_BREAK_EVENT on Windows."""
        try:
            # Works because we used CREATE_NEW_PROCESS_GROUP
            os.kill(process.pid, signal.CTRL_BREAK_EVENT)
            logger.debug(f"Sent CTRL_BREAK_EVENT to pid={process.pid}")
        except (ProcessLookupError, OSError) as e:
            logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
            process.terminate()
