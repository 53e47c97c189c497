"""Async façade over CaptureSession.

The session itself is thread-based; this module lets async code run one
without blocking the event loop, with an optional timeout and cancel-safe
cleanup:

- the session runs on its own background thread (``CaptureSession.start``)
- the caller awaits completion on an anyio worker thread
- on timeout or cancellation the child is terminated and the session is
  awaited to completion inside a shielded scope, so the pipes are always
  drained and the child reaped
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

import anyio

from .capture.session import CaptureSession

__all__ = ["capture", "wait_completion"]

logger = logging.getLogger(__name__)


async def wait_completion(session: CaptureSession) -> None:
    """Await session completion without blocking the event loop.

    Cancelling the caller abandons the worker thread; the session keeps
    running.
    """
    await anyio.to_thread.run_sync(session.wait_completion, abandon_on_cancel=True)


async def capture(
    executable: str,
    *args: str,
    timeout: float | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    session: CaptureSession | None = None,
) -> CaptureSession:
    """Run a process to completion and return its finished session.

    The child's failure is not raised; inspect ``session.error``. A timeout
    terminates the child, which normally ends as a WaitFailure with all
    output captured up to that point.

    Args:
        executable: Program to run
        *args: Program arguments
        timeout: Seconds before the child is terminated (None = no limit)
        cwd: Working directory of the child
        env: Environment of the child
        session: Pre-built session to use instead of a new one

    Returns:
        The completed CaptureSession
    """
    if session is None:
        session = CaptureSession(cwd=cwd, env=env)
    session.start(executable, *args)

    try:
        with anyio.move_on_after(timeout) as scope:
            await wait_completion(session)
        if scope.cancelled_caught:
            logger.info(f"Timed out after {timeout}s, terminating {executable!r}")
    finally:
        if not session.done:
            # Shield cleanup from cancellation so the child is always reaped
            with anyio.CancelScope(shield=True):
                await anyio.to_thread.run_sync(session.terminate)
                await anyio.to_thread.run_sync(session.wait_completion)

    return session
