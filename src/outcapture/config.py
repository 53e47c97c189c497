"""outcapture environment configuration.

Environment variables:
    OUTCAP_READ_BUFFER_SIZE: stream reader buffer size in bytes
        - default 8388608 (8 MiB)
        - clamped to 4096..268435456; invalid values use the default

    OUTCAP_TERM_TIMEOUT: seconds to wait after a graceful termination request
        - default 2.0

    OUTCAP_KILL_TIMEOUT: seconds to wait after a forced kill
        - default 1.0

    OUTCAP_POLL_INTERVAL: CLI snapshot interval in seconds
        - default 1.0, clamped to 0.01..60

    OUTCAP_LOG_DEBUG: debug logging
        - true/1/yes = on (debug log written to a temp file)
        - false/0/no = off (default, INFO to stderr)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_READ_BUFFER_SIZE = 8 * 1024 * 1024
MIN_READ_BUFFER_SIZE = 4096
MAX_READ_BUFFER_SIZE = 256 * 1024 * 1024

DEFAULT_TERM_TIMEOUT = 2.0
DEFAULT_KILL_TIMEOUT = 1.0
DEFAULT_POLL_INTERVAL = 1.0


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_float(
    value: str | None,
    default: float,
    low: float,
    high: float,
) -> float:
    """Parse a float, clamped to [low, high]; invalid values give ``default``."""
    if not value:
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    return max(low, min(number, high))


def _parse_buffer_size(value: str | None) -> int:
    if not value:
        return DEFAULT_READ_BUFFER_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_READ_BUFFER_SIZE
    return max(MIN_READ_BUFFER_SIZE, min(size, MAX_READ_BUFFER_SIZE))


@dataclass
class Config:
    """outcapture configuration.

    Attributes:
        read_buffer_size: Buffer size of each stream reader
        term_timeout: Wait after a graceful termination request
        kill_timeout: Wait after a forced kill
        poll_interval: CLI snapshot interval
        log_debug: Debug logging to a temp file
        log_file: Log file path (set automatically when log_debug=True)
    """

    read_buffer_size: int = DEFAULT_READ_BUFFER_SIZE
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    log_debug: bool = False
    log_file: str | None = None


def _generate_log_file_path() -> str:
    """Log file path under the system temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "outcapture"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"outcapture_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("OUTCAP_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        read_buffer_size=_parse_buffer_size(os.environ.get("OUTCAP_READ_BUFFER_SIZE")),
        term_timeout=_parse_float(
            os.environ.get("OUTCAP_TERM_TIMEOUT"), DEFAULT_TERM_TIMEOUT, 0.0, 600.0
        ),
        kill_timeout=_parse_float(
            os.environ.get("OUTCAP_KILL_TIMEOUT"), DEFAULT_KILL_TIMEOUT, 0.0, 600.0
        ),
        poll_interval=_parse_float(
            os.environ.get("OUTCAP_POLL_INTERVAL"), DEFAULT_POLL_INTERVAL, 0.01, 60.0
        ),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global configuration instance (lazily loaded)
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration (used by tests)."""
    global _config
    _config = load_config()
    return _config
