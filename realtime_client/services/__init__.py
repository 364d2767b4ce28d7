"""
Services module for the realtime API.

This package contains the websocket connection manager, the protocol
facade built on top of it and the HTTP credential helpers.
"""

from realtime_client.services.api_client import RealtimeClient
from realtime_client.services.connection import (
    ConnectionManager,
    ConnectionState,
    compute_backoff_delay,
)
from realtime_client.services.tokens import (
    create_session_with_ephemeral_token,
    create_transcription_session_with_ephemeral_token,
)

__all__ = [
    "RealtimeClient",
    "ConnectionManager",
    "ConnectionState",
    "compute_backoff_delay",
    "create_session_with_ephemeral_token",
    "create_transcription_session_with_ephemeral_token",
]
