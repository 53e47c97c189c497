"""CLI tests.

Covers argument handling, incremental printing and exit status mapping.
"""

from __future__ import annotations

import io
import sys

import pytest

from outcapture import app
from outcapture.app import EXIT_START_FAILURE, EXIT_TIMEOUT, follow, main
from outcapture.capture.session import CaptureSession
from outcapture.runtime.process_runner import IS_WINDOWS


class _Stdout:
    """Stand-in for sys.stdout exposing a bytes buffer."""

    def __init__(self) -> None:
        self.buffer = io.BytesIO()


class _Sys:
    """Proxy for the sys module as seen by app, with a fixed stdout.

    Patching sys.stdout itself during fixture setup is undone by pytest's
    output capture when the test body starts, so app's reference to sys is
    replaced instead.
    """

    def __init__(self, stdout: _Stdout) -> None:
        self.stdout = stdout

    def __getattr__(self, name: str):
        return getattr(sys, name)


@pytest.fixture
def stdout(monkeypatch: pytest.MonkeyPatch) -> io.BytesIO:
    fake = _Stdout()
    monkeypatch.setattr(app, "sys", _Sys(fake))
    return fake.buffer


class TestFollow:
    """Incremental printing."""

    def test_prints_all_lines(self, fake_child: list[str]):
        """Every captured line is written once, in log order."""
        session = CaptureSession()
        session.start(*fake_child, r"out:a\n", "sleep:0.2", r"out:b\n", "out:c")
        out = io.BytesIO()

        follow(session, out, interval=0.05)

        assert out.getvalue() == b"a\nb\nc"

    def test_tags_stderr(self, fake_child: list[str]):
        """--tag-stderr marks lines from stderr."""
        session = CaptureSession()
        session.start(*fake_child, r"err:oops\n")
        out = io.BytesIO()

        follow(session, out, interval=0.05, tag_stderr=True)

        assert out.getvalue() == b"[stderr] oops\n"


class TestMain:
    """Exit status and argument handling."""

    def test_success(self, fake_child: list[str], stdout: io.BytesIO):
        """Exit status 0 and the output is printed."""
        assert main(["--interval", "0.05", "--", *fake_child, r"out:hi\n"]) == 0
        assert stdout.getvalue() == b"hi\n"

    def test_child_exit_code(self, fake_child: list[str], stdout: io.BytesIO):
        """The child's exit status is passed through."""
        assert main(["--interval", "0.05", *fake_child, r"out:x\n", "exit:7"]) == 7
        assert stdout.getvalue() == b"x\n"

    def test_start_failure(self, tmp_path, stdout: io.BytesIO):
        """A missing command exits with 127."""
        assert main(["--interval", "0.05", str(tmp_path / "missing")]) == EXIT_START_FAILURE
        assert stdout.getvalue() == b""

    def test_timeout(self, fake_child: list[str], stdout: io.BytesIO):
        """A command running past --timeout is terminated, exit 124."""
        code = main([
            "--interval", "0.05", "--timeout", "0.5",
            *fake_child, r"out:started\n", "sleep:30",
        ])

        assert code == EXIT_TIMEOUT
        assert stdout.getvalue() == b"started\n"

    def test_no_command(self, capsys: pytest.CaptureFixture[str]):
        """A missing command is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--interval", "1"])
        assert exc_info.value.code == 2

    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX-specific test")
    def test_killed_by_signal(self, stdout: io.BytesIO):
        """A child killed by signal N exits with 128+N."""
        assert main(["--interval", "0.05", "sh", "-c", "kill -9 $$"]) == 128 + 9
