"""
Error handling utilities for the realtime socket client.

This module provides the exception hierarchy used across the client,
together with helpers for converting foreign exceptions and logging
errors without exposing sensitive information.
"""

import sys
import traceback
from enum import Enum
from typing import Any, Dict, Optional, Type

from realtime_client.config.logging_config import get_logger

logger = get_logger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AppError(Exception):
    """Base exception class for client errors."""

    default_code: Optional[str] = None
    default_severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        severity: Optional[ErrorSeverity] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize the error.

        Args:
            message: Human-readable error message
            severity: Error severity level
            error_code: Optional error code for categorization
            details: Additional error details
            cause: Original exception that caused this error
        """
        self.message = message
        self.severity = severity or self.default_severity
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause

        if cause and str(cause) not in message:
            full_message = f"{message}: {str(cause)}"
        else:
            full_message = message

        super().__init__(full_message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the error to a dictionary representation.

        Returns:
            Dict[str, Any]: Dictionary representation of the error
        """
        error_dict = {
            "message": self.message,
            "severity": self.severity.value,
        }

        if self.error_code:
            error_dict["code"] = self.error_code

        if self.details:
            safe_details = {k: v for k, v in self.details.items()
                            if not _is_sensitive_key(k)}

            if safe_details:
                error_dict["details"] = safe_details

        return error_dict

    def log(self, include_traceback: bool = True) -> None:
        """
        Log the error with appropriate level.

        Args:
            include_traceback: Whether to include the traceback in the log
        """
        log_method = getattr(logger, self.severity.value.lower(), logger.error)

        log_message = f"{self.__class__.__name__}: {self.message}"
        if self.error_code:
            log_message = f"{log_message} [Code: {self.error_code}]"

        log_method(log_message)

        if self.details:
            safe_details = {k: v for k, v in self.details.items()
                            if not _is_sensitive_key(k)}
            if safe_details:
                log_method(f"Error details: {safe_details}")

        if include_traceback and self.severity.value in ("error", "critical"):
            if self.cause:
                log_method(f"Caused by: {type(self.cause).__name__}: {str(self.cause)}")
                if self.cause.__traceback__:
                    log_method("".join(traceback.format_tb(self.cause.__traceback__)))
            elif sys.exc_info()[2] is not None:
                log_method("".join(traceback.format_tb(sys.exc_info()[2])))


class ConfigurationError(AppError):
    """Invalid client configuration, raised before any connection attempt."""

    default_code = "CONFIG_ERROR"
    default_severity = ErrorSeverity.CRITICAL


class NotConnectedError(AppError):
    """A mutating call was made while the connection is not established."""

    default_code = "NOT_CONNECTED"

    def __init__(self, operation: Optional[str] = None, **kwargs: Any):
        message = "Not connected"
        if operation:
            message = f"Cannot {operation}: not connected"
        super().__init__(message, **kwargs)


class TransportError(AppError):
    """The underlying socket failed to open or dropped."""

    default_code = "TRANSPORT_ERROR"
    default_severity = ErrorSeverity.WARNING


class ReconnectExhaustedError(AppError):
    """Every reconnection attempt of the current cycle has failed."""

    default_code = "RECONNECT_EXHAUSTED"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, attempts: int, **kwargs: Any):
        self.attempts = attempts
        kwargs.setdefault("details", {"attempts": attempts})
        super().__init__("Failed to reconnect after maximum attempts", **kwargs)


class ProtocolError(AppError):
    """An `error` event reported by the server."""

    default_code = "PROTOCOL_ERROR"

    @classmethod
    def from_event(cls, message: Dict[str, Any]) -> "ProtocolError":
        """Build an error from a raw server `error` event."""
        error = message.get("error") or {}
        details = {
            "type": error.get("type"),
            "param": error.get("param"),
            "event_id": error.get("event_id"),
        }
        return cls(
            error.get("message") or "Unknown server error",
            error_code=error.get("code") or None,
            details={k: v for k, v in details.items() if v is not None},
        )


class ApiError(AppError):
    """Error related to the HTTP side of the API (credential issuance)."""

    default_code = "API_ERROR"


def handle_exception(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    error_class: Type[AppError] = AppError,
    log_exception: bool = True
) -> AppError:
    """
    Convert any exception to an application error.

    Args:
        exception: The exception to handle
        context: Additional context information
        error_class: The specific AppError class to use
        log_exception: Whether to log the exception

    Returns:
        AppError: The application error instance
    """
    if isinstance(exception, AppError):
        if context:
            for key, value in context.items():
                exception.details.setdefault(key, value)

        if log_exception:
            exception.log()

        return exception

    details = dict(context or {})
    details["exception_type"] = type(exception).__name__

    app_error = error_class(
        message=str(exception) or f"An {type(exception).__name__} occurred",
        cause=exception,
        details=details
    )

    if log_exception:
        app_error.log()

    return app_error


def _is_sensitive_key(key: str) -> bool:
    """
    Check if a key might contain sensitive information.

    Args:
        key: The key to check

    Returns:
        bool: True if the key might contain sensitive information
    """
    sensitive_patterns = [
        "password", "secret", "key", "token", "auth", "cred",
        "private", "security", "cert", "signature"
    ]

    lowercase_key = key.lower()
    return any(pattern in lowercase_key for pattern in sensitive_patterns)
