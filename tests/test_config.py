"""Config module tests.

Covers OUTCAP_* environment parsing and the global configuration instance.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

from outcapture.config import (
    DEFAULT_READ_BUFFER_SIZE,
    MAX_READ_BUFFER_SIZE,
    MIN_READ_BUFFER_SIZE,
    Config,
    get_config,
    load_config,
    reload_config,
)


class TestReadBufferSize:
    """OUTCAP_READ_BUFFER_SIZE parsing."""

    def test_default(self):
        """Unset means 8 MiB."""
        assert load_config().read_buffer_size == DEFAULT_READ_BUFFER_SIZE == 8 * 1024 * 1024

    def test_explicit_value(self):
        """A valid integer is used as-is."""
        with mock.patch.dict(os.environ, {"OUTCAP_READ_BUFFER_SIZE": "65536"}):
            assert load_config().read_buffer_size == 65536

    def test_clamped(self):
        """Values are clamped to the allowed range."""
        with mock.patch.dict(os.environ, {"OUTCAP_READ_BUFFER_SIZE": "1"}):
            assert load_config().read_buffer_size == MIN_READ_BUFFER_SIZE
        with mock.patch.dict(os.environ, {"OUTCAP_READ_BUFFER_SIZE": str(10**12)}):
            assert load_config().read_buffer_size == MAX_READ_BUFFER_SIZE

    def test_invalid(self):
        """Garbage falls back to the default."""
        with mock.patch.dict(os.environ, {"OUTCAP_READ_BUFFER_SIZE": "lots"}):
            assert load_config().read_buffer_size == DEFAULT_READ_BUFFER_SIZE


class TestTimeouts:
    """Termination and poll timing."""

    def test_defaults(self):
        """Defaults match the runner's."""
        config = load_config()
        assert config.term_timeout == 2.0
        assert config.kill_timeout == 1.0
        assert config.poll_interval == 1.0

    def test_explicit_values(self):
        """Float values are parsed."""
        env = {
            "OUTCAP_TERM_TIMEOUT": "0.5",
            "OUTCAP_KILL_TIMEOUT": "0.25",
            "OUTCAP_POLL_INTERVAL": "0.1",
        }
        with mock.patch.dict(os.environ, env):
            config = load_config()
        assert config.term_timeout == 0.5
        assert config.kill_timeout == 0.25
        assert config.poll_interval == 0.1

    def test_invalid_and_out_of_range(self):
        """Invalid values use defaults, out-of-range ones are clamped."""
        env = {
            "OUTCAP_TERM_TIMEOUT": "soon",
            "OUTCAP_KILL_TIMEOUT": "-3",
            "OUTCAP_POLL_INTERVAL": "0",
        }
        with mock.patch.dict(os.environ, env):
            config = load_config()
        assert config.term_timeout == 2.0
        assert config.kill_timeout == 0.0
        assert config.poll_interval == 0.01


class TestLogDebug:
    """OUTCAP_LOG_DEBUG handling."""

    def test_off_by_default(self):
        """No log file unless requested."""
        config = load_config()
        assert config.log_debug is False
        assert config.log_file is None

    def test_on_sets_log_file(self):
        """Debug mode picks a log file in the temp directory."""
        for value in ("true", "1", "yes", "ON"):
            with mock.patch.dict(os.environ, {"OUTCAP_LOG_DEBUG": value}):
                config = load_config()
            assert config.log_debug is True
            assert config.log_file is not None
            assert Path(config.log_file).parent.name == "outcapture"


class TestGlobalConfig:
    """Cached configuration instance."""

    def test_get_config_is_cached(self):
        """get_config returns the same instance until reloaded."""
        assert get_config() is get_config()

    def test_reload_picks_up_environment(self):
        """reload_config re-reads the environment."""
        with mock.patch.dict(os.environ, {"OUTCAP_POLL_INTERVAL": "2.5"}):
            config = reload_config()
        assert config.poll_interval == 2.5
        assert get_config() is config
        assert isinstance(config, Config)
