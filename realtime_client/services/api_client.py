"""
API client for the realtime API.

This module provides `RealtimeClient`, the protocol facade: it sends the
outbound instructions, keeps the local session configuration and
conversation transcript in step with the inbound events, and republishes
every event to subscribers.
"""

import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from realtime_client.config import settings
from realtime_client.config.logging_config import get_logger
from realtime_client.domain.conversation.items import ConversationItem
from realtime_client.domain.conversation.transcription import Transcription
from realtime_client.domain.session.config import AuthMode, BackendVariant, SessionConfig
from realtime_client.events.event_interface import (
    CloseEvent,
    ConnectedEvent,
    ErrorEvent,
    Event,
    EventBus,
    EventKey,
    EventType,
    parse_event,
)
from realtime_client.services.connection import (
    ConnectionManager,
    ConnectionState,
    Connector,
    build_realtime_url,
)
from realtime_client.utils.async_helpers import wait_for_event
from realtime_client.utils.error_handling import (
    ConfigurationError,
    NotConnectedError,
    ProtocolError,
    ReconnectExhaustedError,
)
from realtime_client.utils.event_utils import encode_audio, new_event_id

logger = get_logger(__name__)

ItemInput = Union[ConversationItem, Mapping[str, Any]]


class RealtimeClient:
    """
    Client for the realtime API over a single websocket.

    This class handles:
    - Sending outbound instructions, each stamped with a fresh event_id
    - Applying inbound events to the session configuration and transcript
    - Publishing every inbound event to subscribers
    - Pushing local state back to the server after a reconnect
    """

    def __init__(
        self,
        session_config: Optional[Union[SessionConfig, Mapping[str, Any]]] = None,
        api_key: Optional[str] = None,
        realtime_url: Optional[str] = None,
        model: Optional[str] = None,
        auto_reconnect: Optional[bool] = None,
        debug: Optional[bool] = None,
        filter_deltas: Optional[bool] = None,
        auth_mode: Optional[Union[AuthMode, str]] = None,
        connector: Optional[Connector] = None,
        max_reconnect_attempts: Optional[int] = None,
        base_reconnect_delay: Optional[float] = None,
        max_reconnect_delay: Optional[float] = None,
        connect_timeout: Optional[float] = None,
    ):
        """
        Initialize the client.

        Unset arguments fall back to the environment-driven settings.

        Raises:
            ConfigurationError: if the key is missing, the auth mode is
                unknown, or the voice is not offered by the backend the URL
                points at
        """
        self.api_key = api_key if api_key is not None else settings.api.api_key
        if not self.api_key:
            raise ConfigurationError("An API key is required (set OPENAI_API_KEY)")

        self.model = model or settings.api.model
        self.realtime_url = realtime_url or settings.api.realtime_url
        self.backend = BackendVariant.from_url(self.realtime_url)

        if isinstance(session_config, SessionConfig):
            self._session_config = session_config
        else:
            self._session_config = SessionConfig.build(session_config)
        self.backend.validate_voice(self._session_config.voice)

        self.events = EventBus()
        self.transcription = Transcription()

        def pick(value, default):
            return default if value is None else value

        conn = settings.connection
        mode = pick(auth_mode, conn.auth_mode)
        try:
            mode = AuthMode(mode.lower() if isinstance(mode, str) else mode)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown auth mode '{mode}' (expected 'headers' or 'subprotocol')",
                cause=e
            ) from e

        self.connection = ConnectionManager(
            build_realtime_url(self.realtime_url, self.model),
            self.api_key,
            on_open=self._on_open,
            on_message=self._on_message,
            on_close=self._on_close,
            on_error=self._on_reconnect_exhausted,
            auto_reconnect=pick(auto_reconnect, conn.auto_reconnect),
            max_reconnect_attempts=pick(max_reconnect_attempts, conn.max_reconnect_attempts),
            base_reconnect_delay=pick(base_reconnect_delay, conn.base_reconnect_delay),
            max_reconnect_delay=pick(max_reconnect_delay, conn.max_reconnect_delay),
            connect_timeout=pick(connect_timeout, conn.connect_timeout),
            auth_mode=mode,
            connector=connector,
            debug=pick(debug, settings.logging.debug_events),
            filter_deltas=pick(filter_deltas, settings.logging.filter_deltas),
        )

    # Connection lifecycle

    async def connect(self) -> bool:
        """
        Connect to the realtime API.

        Returns:
            bool: True if the connection was established
        """
        return await self.connection.connect()

    async def disconnect(self, reconnect: bool = False) -> bool:
        """
        Disconnect from the realtime API.

        Args:
            reconnect: Schedule a reconnect instead of stopping

        Returns:
            bool: True if a reconnect was scheduled
        """
        return await self.connection.disconnect(reconnect=reconnect)

    async def shutdown(self) -> None:
        """Disconnect and cancel all background work."""
        await self.connection.shutdown()

    async def __aenter__(self) -> "RealtimeClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    @property
    def is_connected(self) -> bool:
        return self.connection.is_connected

    @property
    def connection_state(self) -> ConnectionState:
        return self.connection.state

    @property
    def session_config(self) -> SessionConfig:
        """Last session configuration confirmed by the server (or the initial one)."""
        return self._session_config

    def get_conversation_items(self) -> List[ConversationItem]:
        """Copies of the transcript items in conversation order."""
        return self.transcription.get_ordered_items()

    def get_item(self, item_id: str) -> Optional[ConversationItem]:
        return self.transcription.get_item(item_id)

    # Subscriptions

    def on(self, event_type: EventKey, handler: Callable[[Any], Any]) -> None:
        self.events.on(event_type, handler)

    def once(self, event_type: EventKey, handler: Callable[[Any], Any]) -> None:
        self.events.once(event_type, handler)

    def off(self, event_type: EventKey, handler: Optional[Callable[[Any], Any]] = None) -> None:
        self.events.off(event_type, handler)

    def on_any(self, handler: Callable[[Any], Any]) -> None:
        self.events.on_any(handler)

    async def wait_for_event(self, event_type: EventKey, timeout: Optional[float] = 10.0) -> Optional[Event]:
        """
        Wait for the next event of a given type.

        Args:
            event_type: Payload class, EventType or event type string
            timeout: Maximum time to wait in seconds, None to wait forever

        Returns:
            Optional[Event]: The event if received, None if timed out
        """
        received = asyncio.Event()
        captured: List[Event] = []

        def handler(event: Event) -> None:
            captured.append(event)
            received.set()

        self.events.once(event_type, handler)
        try:
            if not await wait_for_event(received, timeout):
                logger.warning(f"Timeout waiting for event: {event_type}")
                return None
            return captured[0]
        finally:
            self.events.off(event_type, handler)

    # Outbound instructions

    async def update_session(self, overrides: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """
        Send the stored session configuration merged with `overrides`.

        The stored configuration only changes once the server confirms
        with `session.updated`.

        Returns:
            Optional[str]: event_id of the frame, None if sending failed
        """
        self._require_connected("update session")
        session = self._session_config.merged(overrides)
        return await self._send("session.update", session=session.to_payload())

    async def append_input_audio(self, audio: Union[str, bytes]) -> Optional[str]:
        """
        Append audio to the server's input buffer.

        Args:
            audio: base64 text, or raw PCM bytes to be encoded

        Returns:
            Optional[str]: event_id, or None when nothing was sent
        """
        self._require_connected("append input audio")
        if not audio:
            return None
        return await self._send("input_audio_buffer.append", audio=encode_audio(audio))

    async def commit_input_audio(self) -> Optional[str]:
        self._require_connected("commit input audio")
        return await self._send("input_audio_buffer.commit")

    async def clear_input_audio(self) -> Optional[str]:
        self._require_connected("clear input audio")
        return await self._send("input_audio_buffer.clear")

    async def create_conversation_item(
        self,
        item: ItemInput,
        previous_item_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Insert an item into the server-side conversation.

        Args:
            item: Item to create; an id is optional for new items
            previous_item_id: Item to insert after, None for the start

        Returns:
            Optional[str]: event_id of the frame, None if sending failed
        """
        self._require_connected("create conversation item")
        if isinstance(item, ConversationItem):
            item_data = item.to_dict()
        else:
            item_data = dict(item)
        return await self._send(
            "conversation.item.create",
            previous_item_id=previous_item_id,
            item=item_data
        )

    async def retrieve_conversation_item(self, item_id: str) -> Optional[str]:
        self._require_connected("retrieve conversation item")
        return await self._send("conversation.item.retrieve", item_id=item_id)

    async def truncate_conversation_item(
        self,
        item_id: str,
        content_index: int,
        audio_end_ms: int
    ) -> Optional[str]:
        """Cut an assistant audio item at `audio_end_ms` of the given content part."""
        self._require_connected("truncate conversation item")
        return await self._send(
            "conversation.item.truncate",
            item_id=item_id,
            content_index=content_index,
            audio_end_ms=audio_end_ms
        )

    async def delete_conversation_item(self, item_id: str) -> Optional[str]:
        self._require_connected("delete conversation item")
        return await self._send("conversation.item.delete", item_id=item_id)

    async def create_response(self, config: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """
        Ask the model to respond.

        Args:
            config: Per-response overrides (modalities, instructions, ...)
        """
        self._require_connected("create response")
        return await self._send("response.create", response=dict(config or {}))

    async def cancel_response(self, response_id: Optional[str] = None) -> Optional[str]:
        self._require_connected("cancel response")
        fields = {"response_id": response_id} if response_id else {}
        return await self._send("response.cancel", **fields)

    async def update_transcription_session(self, config: Mapping[str, Any]) -> Optional[str]:
        self._require_connected("update transcription session")
        return await self._send("transcription_session.update", session=dict(config))

    # Inbound events

    def receive(self, event_type: str, message: Dict[str, Any]) -> Event:
        """
        Apply an inbound event to local state, then publish it.

        State changes happen first so subscribers see the updated
        transcript and session configuration.

        Args:
            event_type: The event's `type` tag
            message: The decoded frame

        Returns:
            Event: The published payload
        """
        try:
            self._apply_event(event_type, message)
        except Exception as e:
            logger.error(f"Error applying {event_type} to client state: {e}", exc_info=True)

        try:
            event = parse_event(message)
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            logger.error(f"Error parsing {event_type} payload: {e}", exc_info=True)
            event = Event(type=event_type, event_id=message.get("event_id"), raw=message)

        self.events.emit(event)
        return event

    def _apply_event(self, event_type: str, message: Dict[str, Any]) -> None:
        if event_type == EventType.ERROR:
            ProtocolError.from_event(message).log(include_traceback=False)

        elif event_type == EventType.SESSION_UPDATED:
            self._session_config = SessionConfig.from_session(message.get("session") or {})
            logger.debug("Session configuration updated by server")

        elif event_type == EventType.CONVERSATION_ITEM_CREATED:
            self.transcription.add_item(message["item"], message.get("previous_item_id"))

        elif event_type == EventType.INPUT_AUDIO_TRANSCRIPTION_COMPLETED:
            self.transcription.add_transcript_to_item(message["item_id"], message.get("transcript", ""))

        elif event_type == EventType.CONVERSATION_ITEM_DELETED:
            self.transcription.remove_item(message["item_id"])

        elif event_type == EventType.RESPONSE_OUTPUT_ITEM_ADDED:
            if "previous_item_id" in message:
                previous_item_id = message["previous_item_id"]
            else:
                previous_item_id = self.transcription.last_item_id
            self.transcription.add_item(message["item"], previous_item_id)

        elif event_type == EventType.RESPONSE_OUTPUT_ITEM_DONE:
            item = message["item"]
            self.transcription.update_item(item["id"], item)

    # Connection callbacks

    def _on_message(self, message: Dict[str, Any]) -> None:
        self.receive(message.get("type", ""), message)

    async def _on_open(self, resync: bool) -> None:
        await self.update_session({})

        if not resync:
            self.events.emit(ConnectedEvent())
            return

        previous_item_id = None
        items = self.transcription.get_ordered_items()
        for item in items:
            await self.create_conversation_item(item, previous_item_id)
            previous_item_id = item.id
        logger.info(f"Resynchronized session and {len(items)} conversation items")

    def _on_close(self, error: bool) -> None:
        self.events.emit(CloseEvent(error=error))

    def _on_reconnect_exhausted(self, error: ReconnectExhaustedError) -> None:
        self.events.emit(ErrorEvent(error={
            "message": error.message,
            "type": "reconnect_exhausted",
            "code": error.error_code,
        }))

    # Helpers

    def _require_connected(self, operation: str) -> None:
        if not self.connection.is_connected:
            raise NotConnectedError(operation)

    async def _send(self, event_type: str, **fields: Any) -> Optional[str]:
        event_id = new_event_id()
        message = {"event_id": event_id, "type": event_type}
        message.update(fields)
        if await self.connection.send(message):
            return event_id
        return None
