"""
Realtime Socket Client Package.

This package provides a stateful client for the realtime voice/text API:
connection management with reconnection and resync, an ordered
conversation transcript, and typed event subscriptions.
"""

__version__ = "0.3.0"
__description__ = "Stateful websocket client for the realtime voice/text API"

from realtime_client.domain.conversation.items import ConversationItem, ContentPart
from realtime_client.domain.conversation.transcription import Transcription
from realtime_client.domain.session.config import AuthMode, BackendVariant, SessionConfig
from realtime_client.events.event_interface import Event, EventBus, EventType, parse_event
from realtime_client.services.api_client import RealtimeClient
from realtime_client.services.connection import ConnectionManager, ConnectionState
from realtime_client.utils.error_handling import (
    AppError,
    ConfigurationError,
    NotConnectedError,
    ProtocolError,
    ReconnectExhaustedError,
    TransportError,
)

__all__ = [
    "RealtimeClient",
    "ConnectionManager",
    "ConnectionState",
    "ConversationItem",
    "ContentPart",
    "Transcription",
    "AuthMode",
    "BackendVariant",
    "SessionConfig",
    "Event",
    "EventBus",
    "EventType",
    "parse_event",
    "AppError",
    "ConfigurationError",
    "NotConnectedError",
    "ProtocolError",
    "ReconnectExhaustedError",
    "TransportError",
]
