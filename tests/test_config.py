"""
Tests for the configuration management system.

This module tests the loading and validation of settings from
environment variables, and that sensitive values stay out of reprs.
"""

import os
from pathlib import Path

import pytest
from unittest.mock import patch

from realtime_client.config.settings import (
    DEFAULT_MODEL,
    DEFAULT_REALTIME_URL,
    ApiSettings,
    ConnectionSettings,
    LoggingSettings,
    Settings,
)


def test_api_settings_from_environment():
    """Test loading API settings from environment variables."""
    env = {
        "OPENAI_API_KEY": "sk-env",
        "OPENAI_REALTIME_MODEL": "test-model",
        "OPENAI_REALTIME_URL": "wss://example.test/realtime",
    }
    with patch.dict(os.environ, env, clear=True):
        api = ApiSettings()

    assert api.api_key == "sk-env"
    assert api.model == "test-model"
    assert api.realtime_url == "wss://example.test/realtime"


def test_api_settings_defaults():
    """Test API settings defaults when nothing is set."""
    with patch.dict(os.environ, {}, clear=True):
        api = ApiSettings()

    assert api.api_key == ""
    assert api.model == DEFAULT_MODEL
    assert api.realtime_url == DEFAULT_REALTIME_URL


def test_api_key_is_not_in_repr():
    """Test that the API key is not exposed in string representations."""
    with patch.dict(os.environ, {"OPENAI_API_KEY": "secret_api_key"}, clear=True):
        settings = Settings()

    assert "secret_api_key" not in repr(settings)
    assert "secret_api_key" not in str(settings.api)


def test_connection_defaults():
    """Test the default reconnection policy."""
    with patch.dict(os.environ, {}, clear=True):
        connection = ConnectionSettings()

    assert connection.auto_reconnect is True
    assert connection.max_reconnect_attempts == 5
    assert connection.base_reconnect_delay == 1.0
    assert connection.max_reconnect_delay == 30.0
    assert connection.connect_timeout == 10.0
    assert connection.auth_mode == "headers"


def test_connection_settings_from_environment():
    """Test loading connection settings from environment variables."""
    env = {
        "REALTIME_AUTO_RECONNECT": "no",
        "REALTIME_MAX_RECONNECT_ATTEMPTS": "7",
        "REALTIME_RECONNECT_BASE_DELAY": "0.5",
        "REALTIME_RECONNECT_MAX_DELAY": "12",
        "REALTIME_AUTH_MODE": "SubProtocol",
    }
    with patch.dict(os.environ, env, clear=True):
        connection = ConnectionSettings()

    assert connection.auto_reconnect is False
    assert connection.max_reconnect_attempts == 7
    assert connection.base_reconnect_delay == 0.5
    assert connection.max_reconnect_delay == 12.0
    assert connection.auth_mode == "subprotocol"


@pytest.mark.parametrize("raw, expected", [
    ("true", True), ("1", True), ("YES", True), ("on", True),
    ("false", False), ("0", False), ("off", False), ("whatever", False),
])
def test_boolean_parsing(raw, expected):
    """Test the accepted spellings of boolean environment values."""
    with patch.dict(os.environ, {"REALTIME_AUTO_RECONNECT": raw}, clear=True):
        assert ConnectionSettings().auto_reconnect is expected


def test_invalid_values_fall_back_to_defaults(capsys):
    """Test that unparseable values warn and use the defaults."""
    env = {
        "REALTIME_MAX_RECONNECT_ATTEMPTS": "many",
        "REALTIME_CONNECT_TIMEOUT": "soon",
        "REALTIME_AUTH_MODE": "carrier-pigeon",
    }
    with patch.dict(os.environ, env, clear=True):
        connection = ConnectionSettings()

    assert connection.max_reconnect_attempts == 5
    assert connection.connect_timeout == 10.0
    assert connection.auth_mode == "headers"
    assert "WARNING" in capsys.readouterr().out


def test_negative_attempts_clamped():
    """Test that a negative attempt ceiling becomes zero."""
    with patch.dict(os.environ, {"REALTIME_MAX_RECONNECT_ATTEMPTS": "-3"}, clear=True):
        assert ConnectionSettings().max_reconnect_attempts == 0


def test_logging_settings():
    """Test loading logging settings from environment variables."""
    env = {"LOG_LEVEL": "debug", "REALTIME_DEBUG": "true", "REALTIME_FILTER_DELTAS": "1"}
    with patch.dict(os.environ, env, clear=True):
        logging_settings = LoggingSettings()

    assert logging_settings.level == "DEBUG"
    assert logging_settings.debug_events is True
    assert logging_settings.filter_deltas is True
    assert logging_settings.file_enabled is False


def test_invalid_log_level_uses_info():
    """Test that an unknown log level falls back to INFO."""
    with patch.dict(os.environ, {"LOG_LEVEL": "LOUD"}, clear=True):
        assert LoggingSettings().level == "INFO"


def test_session_log_path():
    """Test the per-session log file path."""
    settings = Settings(logs_dir=Path("/tmp/realtime-logs"))
    assert settings.get_session_log_path("abc") == Path("/tmp/realtime-logs/sessions/abc.log")


def test_mixed_case_auth_mode_reaches_client(monkeypatch):
    """Test that a mixed-case auth mode from the environment builds a working client."""
    from realtime_client.config import settings
    from realtime_client.domain.session.config import AuthMode
    from realtime_client.services.api_client import RealtimeClient

    # Load connection settings from a mis-cased environment value
    with patch.dict(os.environ, {"REALTIME_AUTH_MODE": "SubProtocol"}, clear=True):
        monkeypatch.setattr(settings, "connection", ConnectionSettings())

    client = RealtimeClient(api_key="sk-test", realtime_url=DEFAULT_REALTIME_URL)

    assert client.connection.auth_mode is AuthMode.SUBPROTOCOL
