"""
Client settings and configuration.

This module provides a centralized configuration management system using Pydantic.
It loads settings from environment variables, .env files, or falls back to defaults.
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file
load_dotenv()

# Base directories
ROOT_DIR = Path(__file__).parent.parent.parent
LOG_DIR = Path(os.environ.get("LOG_DIR", ROOT_DIR / "logs"))

DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_API_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-realtime-preview"

_TRUE_VALUES = {"true", "1", "yes", "y", "on"}


def _env_str(name: str, default: str) -> Any:
    return lambda: os.environ.get(name, default)


def _env_bool(name: str, default: bool) -> Any:
    def factory() -> bool:
        raw = os.environ.get(name)
        if raw is None:
            return default
        return raw.strip().lower() in _TRUE_VALUES
    return factory


def _env_number(name: str, default: Any, cast: type) -> Any:
    def factory():
        raw = os.environ.get(name)
        if raw is None:
            return default
        try:
            return cast(raw)
        except ValueError:
            print(f"WARNING: Invalid value '{raw}' for {name}. Using {default}.")
            return default
    return factory


class ApiSettings(BaseModel):
    """Realtime API endpoint and credential settings."""

    api_key: str = Field(
        default_factory=_env_str("OPENAI_API_KEY", ""),
        description="API key used to authenticate the socket and HTTP calls",
        repr=False,
    )

    model: str = Field(
        default_factory=_env_str("OPENAI_REALTIME_MODEL", DEFAULT_MODEL),
        description="Realtime model identifier"
    )

    realtime_url: str = Field(
        default_factory=_env_str("OPENAI_REALTIME_URL", DEFAULT_REALTIME_URL),
        description="Websocket endpoint of the realtime API"
    )

    base_url: str = Field(
        default_factory=_env_str("OPENAI_API_BASE_URL", DEFAULT_API_BASE_URL),
        description="HTTP base URL used for ephemeral credential issuance"
    )


class ConnectionSettings(BaseModel):
    """Connection lifecycle and reconnection policy settings."""

    # Defaults are read from the environment and go through the validators
    model_config = ConfigDict(validate_default=True)

    auto_reconnect: bool = Field(
        default_factory=_env_bool("REALTIME_AUTO_RECONNECT", True),
        description="Reconnect automatically after the socket drops"
    )

    max_reconnect_attempts: int = Field(
        default_factory=_env_number("REALTIME_MAX_RECONNECT_ATTEMPTS", 5, int),
        description="Number of reconnect attempts before giving up"
    )

    base_reconnect_delay: float = Field(
        default_factory=_env_number("REALTIME_RECONNECT_BASE_DELAY", 1.0, float),
        description="Initial backoff delay in seconds"
    )

    max_reconnect_delay: float = Field(
        default_factory=_env_number("REALTIME_RECONNECT_MAX_DELAY", 30.0, float),
        description="Upper bound of the backoff delay in seconds"
    )

    connect_timeout: float = Field(
        default_factory=_env_number("REALTIME_CONNECT_TIMEOUT", 10.0, float),
        description="Timeout for the websocket handshake in seconds"
    )

    auth_mode: str = Field(
        default_factory=_env_str("REALTIME_AUTH_MODE", "headers"),
        description="How credentials are attached: 'headers' or 'subprotocol'"
    )

    @field_validator("max_reconnect_attempts")
    @classmethod
    def validate_max_attempts(cls, v):
        """Validate that the attempt ceiling is not negative."""
        if v < 0:
            print(f"WARNING: Invalid reconnect attempt count {v}. Using 0.")
            return 0
        return v

    @field_validator("auth_mode")
    @classmethod
    def validate_auth_mode(cls, v):
        """Validate that the auth mode is known."""
        valid_modes = ["headers", "subprotocol"]
        if v.lower() not in valid_modes:
            print(f"WARNING: Invalid auth mode '{v}'. Using 'headers'.")
            return "headers"
        return v.lower()


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(validate_default=True)

    level: str = Field(
        default_factory=_env_str("LOG_LEVEL", "INFO"),
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    console_enabled: bool = Field(
        default_factory=_env_bool("LOG_CONSOLE_ENABLED", True),
        description="Whether to log to console"
    )

    file_enabled: bool = Field(
        default_factory=_env_bool("LOG_FILE_ENABLED", False),
        description="Whether to log to file"
    )

    debug_events: bool = Field(
        default_factory=_env_bool("REALTIME_DEBUG", False),
        description="Log every frame sent and received"
    )

    filter_deltas: bool = Field(
        default_factory=_env_bool("REALTIME_FILTER_DELTAS", False),
        description="Skip '.delta' frames when logging frames"
    )

    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )

    detailed_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        description="Detailed log format string for file logging"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate that log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            print(f"WARNING: Invalid log level '{v}'. Using INFO.")
            return "INFO"
        return v.upper()


class Settings(BaseModel):
    """Main client settings."""

    app_name: str = Field(
        default="Realtime Socket Client",
        description="Application name"
    )

    app_version: str = Field(
        default="0.3.0",
        description="Application version"
    )

    # Sub-configurations
    api: ApiSettings = Field(default_factory=ApiSettings)
    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Paths
    root_dir: Path = ROOT_DIR
    logs_dir: Path = LOG_DIR

    def get_session_log_path(self, session_id: str) -> Path:
        """Get path for session-specific log file."""
        return self.logs_dir / "sessions" / f"{session_id}.log"
