"""
Utility modules for the realtime socket client.

This package contains utility modules for common functionality,
including error handling, async operations and frame helpers.
"""

from realtime_client.utils.error_handling import (
    ErrorSeverity,
    AppError,
    ApiError,
    ConfigurationError,
    NotConnectedError,
    ProtocolError,
    ReconnectExhaustedError,
    TransportError,
    handle_exception
)

from realtime_client.utils.async_helpers import (
    TaskManager,
    run_with_timeout,
    wait_for_event
)

from realtime_client.utils.event_utils import (
    decode_audio,
    encode_audio,
    is_delta_event,
    new_event_id,
    trim_debug_event
)

__all__ = [
    # Error handling
    "ErrorSeverity",
    "AppError",
    "ApiError",
    "ConfigurationError",
    "NotConnectedError",
    "ProtocolError",
    "ReconnectExhaustedError",
    "TransportError",
    "handle_exception",

    # Async utilities
    "TaskManager",
    "run_with_timeout",
    "wait_for_event",

    # Frame helpers
    "decode_audio",
    "encode_audio",
    "is_delta_event",
    "new_event_id",
    "trim_debug_event"
]
