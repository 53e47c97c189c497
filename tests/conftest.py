"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

FAKE_CHILD = Path(__file__).parent / "fixtures" / "fake_child.py"

_OUTCAP_VARS = (
    "OUTCAP_READ_BUFFER_SIZE",
    "OUTCAP_TERM_TIMEOUT",
    "OUTCAP_KILL_TIMEOUT",
    "OUTCAP_POLL_INTERVAL",
    "OUTCAP_LOG_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch: pytest.MonkeyPatch):
    """Run every test against the default configuration."""
    from outcapture.config import reload_config

    for name in _OUTCAP_VARS:
        monkeypatch.delenv(name, raising=False)
    reload_config()
    yield
    reload_config()


@pytest.fixture
def fake_child() -> list[str]:
    """argv prefix that runs the fake child; append steps to it."""
    return [sys.executable, str(FAKE_CHILD)]

