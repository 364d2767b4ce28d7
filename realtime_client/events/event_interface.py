"""
Event interface for the realtime API.

This module defines the closed set of events a client publishes: one
payload class per protocol event type, plus the client's own `connected`
and `close` notifications. `parse_event` turns a raw server frame into the
matching payload and `EventBus` delivers payloads to listeners.

Listeners may subscribe by payload class, which keeps the payload type
visible to static checkers:

    bus.on(SessionUpdatedEvent, handle_session)   # handle_session(e: SessionUpdatedEvent)
    bus.on("response.audio.delta", play_chunk)
"""

import asyncio
import inspect
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import (
    Any, Callable, ClassVar, Dict, List, Optional, Set, Type, TypeVar, Union,
)

from realtime_client.config.logging_config import get_logger
from realtime_client.domain.conversation.items import ConversationItem
from realtime_client.utils.error_handling import ProtocolError
from realtime_client.utils.event_utils import decode_audio

logger = get_logger(__name__)


class EventType(str, Enum):
    """Types of events that can be emitted by the event bus."""

    # Client notifications
    CONNECTED = "connected"
    CLOSE = "close"
    ERROR = "error"

    # Session events
    SESSION_CREATED = "session.created"
    SESSION_UPDATED = "session.updated"
    TRANSCRIPTION_SESSION_UPDATED = "transcription_session.updated"

    # Conversation events
    CONVERSATION_CREATED = "conversation.created"
    CONVERSATION_ITEM_CREATED = "conversation.item.created"
    CONVERSATION_ITEM_RETRIEVED = "conversation.item.retrieved"
    CONVERSATION_ITEM_TRUNCATED = "conversation.item.truncated"
    CONVERSATION_ITEM_DELETED = "conversation.item.deleted"

    # Input transcription events
    INPUT_AUDIO_TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
    INPUT_AUDIO_TRANSCRIPTION_DELTA = "conversation.item.input_audio_transcription.delta"
    INPUT_AUDIO_TRANSCRIPTION_FAILED = "conversation.item.input_audio_transcription.failed"

    # Audio buffer events
    INPUT_AUDIO_BUFFER_COMMITTED = "input_audio_buffer.committed"
    INPUT_AUDIO_BUFFER_CLEARED = "input_audio_buffer.cleared"
    INPUT_AUDIO_BUFFER_SPEECH_STARTED = "input_audio_buffer.speech_started"
    INPUT_AUDIO_BUFFER_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"

    # Response events
    RESPONSE_CREATED = "response.created"
    RESPONSE_DONE = "response.done"
    RESPONSE_OUTPUT_ITEM_ADDED = "response.output_item.added"
    RESPONSE_OUTPUT_ITEM_DONE = "response.output_item.done"
    RESPONSE_CONTENT_PART_ADDED = "response.content_part.added"
    RESPONSE_CONTENT_PART_DONE = "response.content_part.done"
    RESPONSE_TEXT_DELTA = "response.text.delta"
    RESPONSE_TEXT_DONE = "response.text.done"
    RESPONSE_AUDIO_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
    RESPONSE_AUDIO_TRANSCRIPT_DONE = "response.audio_transcript.done"
    RESPONSE_AUDIO_DELTA = "response.audio.delta"
    RESPONSE_AUDIO_DONE = "response.audio.done"
    RESPONSE_FUNCTION_CALL_ARGUMENTS_DELTA = "response.function_call_arguments.delta"
    RESPONSE_FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"

    # Limits
    RATE_LIMITS_UPDATED = "rate_limits.updated"

    @classmethod
    def from_string(cls, event_type_str: str) -> Optional["EventType"]:
        """Look up a known event type, returning None for unknown strings."""
        try:
            return cls(event_type_str)
        except ValueError:
            return None


@dataclass
class Event:
    """Base class for every published event; unknown server events use it directly."""

    TYPE: ClassVar[Optional[EventType]] = None

    type: str = ""
    event_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        if not self.type and self.TYPE is not None:
            self.type = self.TYPE.value
        item = getattr(self, "item", None)
        if isinstance(item, dict) and item.get("id"):
            self.item = ConversationItem.from_dict(item)

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> "Event":
        """Create a payload from a raw frame, ignoring keys the class does not model."""
        names = {f.name for f in fields(cls)} - {"raw"}
        kwargs = {name: message[name] for name in names if name in message}
        return cls(raw=message, **kwargs)


@dataclass
class ConnectedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.CONNECTED


@dataclass
class CloseEvent(Event):
    """The connection is gone for good; `error` tells whether a failure caused it."""

    TYPE: ClassVar[EventType] = EventType.CLOSE

    error: bool = False


@dataclass
class ErrorEvent(Event):
    """Error reported by the server, or raised by the client for fatal conditions."""

    TYPE: ClassVar[EventType] = EventType.ERROR

    error: Dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return self.error.get("message", "")

    def to_exception(self) -> ProtocolError:
        return ProtocolError.from_event({"error": self.error})


@dataclass
class SessionCreatedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.SESSION_CREATED

    session: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionUpdatedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.SESSION_UPDATED

    session: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TranscriptionSessionUpdatedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.TRANSCRIPTION_SESSION_UPDATED

    session: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConversationCreatedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.CONVERSATION_CREATED

    conversation: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConversationItemCreatedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.CONVERSATION_ITEM_CREATED

    previous_item_id: Optional[str] = None
    item: Optional[ConversationItem] = None


@dataclass
class ConversationItemRetrievedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.CONVERSATION_ITEM_RETRIEVED

    item: Optional[ConversationItem] = None


@dataclass
class ConversationItemTruncatedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.CONVERSATION_ITEM_TRUNCATED

    item_id: str = ""
    content_index: int = 0
    audio_end_ms: int = 0


@dataclass
class ConversationItemDeletedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.CONVERSATION_ITEM_DELETED

    item_id: str = ""


@dataclass
class InputAudioTranscriptionCompletedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.INPUT_AUDIO_TRANSCRIPTION_COMPLETED

    item_id: str = ""
    content_index: int = 0
    transcript: str = ""
    logprobs: Optional[List[Dict[str, Any]]] = None


@dataclass
class InputAudioTranscriptionDeltaEvent(Event):
    TYPE: ClassVar[EventType] = EventType.INPUT_AUDIO_TRANSCRIPTION_DELTA

    item_id: str = ""
    content_index: int = 0
    delta: str = ""
    logprobs: Optional[List[Dict[str, Any]]] = None


@dataclass
class InputAudioTranscriptionFailedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.INPUT_AUDIO_TRANSCRIPTION_FAILED

    item_id: str = ""
    content_index: int = 0
    error: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InputAudioBufferCommittedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.INPUT_AUDIO_BUFFER_COMMITTED

    previous_item_id: Optional[str] = None
    item_id: str = ""


@dataclass
class InputAudioBufferClearedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.INPUT_AUDIO_BUFFER_CLEARED


@dataclass
class SpeechStartedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.INPUT_AUDIO_BUFFER_SPEECH_STARTED

    audio_start_ms: int = 0
    item_id: str = ""


@dataclass
class SpeechStoppedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.INPUT_AUDIO_BUFFER_SPEECH_STOPPED

    audio_end_ms: int = 0
    item_id: str = ""


@dataclass
class ResponseCreatedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_CREATED

    response: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResponseDoneEvent(Event):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_DONE

    response: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResponseOutputItemAddedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_OUTPUT_ITEM_ADDED

    response_id: str = ""
    output_index: int = 0
    item: Optional[ConversationItem] = None


@dataclass
class ResponseOutputItemDoneEvent(Event):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_OUTPUT_ITEM_DONE

    response_id: str = ""
    output_index: int = 0
    item: Optional[ConversationItem] = None


@dataclass
class _ContentEvent(Event):
    """Fields shared by events streaming one content part of a response item."""

    response_id: str = ""
    item_id: str = ""
    output_index: int = 0
    content_index: int = 0


@dataclass
class ResponseContentPartAddedEvent(_ContentEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_CONTENT_PART_ADDED

    part: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResponseContentPartDoneEvent(_ContentEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_CONTENT_PART_DONE

    part: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResponseTextDeltaEvent(_ContentEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_TEXT_DELTA

    delta: str = ""


@dataclass
class ResponseTextDoneEvent(_ContentEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_TEXT_DONE

    text: str = ""


@dataclass
class ResponseAudioTranscriptDeltaEvent(_ContentEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_AUDIO_TRANSCRIPT_DELTA

    delta: str = ""


@dataclass
class ResponseAudioTranscriptDoneEvent(_ContentEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_AUDIO_TRANSCRIPT_DONE

    transcript: str = ""


@dataclass
class ResponseAudioDeltaEvent(_ContentEvent):
    """A chunk of output audio; `delta` is base64 text."""

    TYPE: ClassVar[EventType] = EventType.RESPONSE_AUDIO_DELTA

    delta: str = ""

    @property
    def audio_bytes(self) -> bytes:
        return decode_audio(self.delta)


@dataclass
class ResponseAudioDoneEvent(_ContentEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_AUDIO_DONE


@dataclass
class _FunctionCallEvent(Event):
    response_id: str = ""
    item_id: str = ""
    output_index: int = 0
    call_id: str = ""
    name: str = ""


@dataclass
class ResponseFunctionCallArgumentsDeltaEvent(_FunctionCallEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_FUNCTION_CALL_ARGUMENTS_DELTA

    delta: str = ""


@dataclass
class ResponseFunctionCallArgumentsDoneEvent(_FunctionCallEvent):
    TYPE: ClassVar[EventType] = EventType.RESPONSE_FUNCTION_CALL_ARGUMENTS_DONE

    arguments: str = ""


@dataclass
class RateLimitsUpdatedEvent(Event):
    TYPE: ClassVar[EventType] = EventType.RATE_LIMITS_UPDATED

    rate_limits: List[Dict[str, Any]] = field(default_factory=list)


EVENT_CLASSES: Dict[str, Type[Event]] = {
    cls.TYPE.value: cls
    for cls in (
        ConnectedEvent, CloseEvent, ErrorEvent,
        SessionCreatedEvent, SessionUpdatedEvent, TranscriptionSessionUpdatedEvent,
        ConversationCreatedEvent, ConversationItemCreatedEvent,
        ConversationItemRetrievedEvent, ConversationItemTruncatedEvent,
        ConversationItemDeletedEvent,
        InputAudioTranscriptionCompletedEvent, InputAudioTranscriptionDeltaEvent,
        InputAudioTranscriptionFailedEvent,
        InputAudioBufferCommittedEvent, InputAudioBufferClearedEvent,
        SpeechStartedEvent, SpeechStoppedEvent,
        ResponseCreatedEvent, ResponseDoneEvent,
        ResponseOutputItemAddedEvent, ResponseOutputItemDoneEvent,
        ResponseContentPartAddedEvent, ResponseContentPartDoneEvent,
        ResponseTextDeltaEvent, ResponseTextDoneEvent,
        ResponseAudioTranscriptDeltaEvent, ResponseAudioTranscriptDoneEvent,
        ResponseAudioDeltaEvent, ResponseAudioDoneEvent,
        ResponseFunctionCallArgumentsDeltaEvent, ResponseFunctionCallArgumentsDoneEvent,
        RateLimitsUpdatedEvent,
    )
}


def parse_event(message: Dict[str, Any]) -> Event:
    """Turn a raw frame into its payload class; unknown types yield a plain Event."""
    event_type = message.get("type") or ""
    event_class = EVENT_CLASSES.get(event_type)
    if event_class is None:
        return Event(type=event_type, event_id=message.get("event_id"), raw=message)
    return event_class.from_message(message)


E = TypeVar("E", bound=Event)

# Type for event handlers
EventHandler = Callable[[Any], Any]
EventKey = Union[EventType, str, Type[Event]]


def _event_key(key: EventKey) -> str:
    if isinstance(key, type) and issubclass(key, Event):
        if key.TYPE is None:
            raise ValueError(f"{key.__name__} has no event type")
        return key.TYPE.value
    if isinstance(key, EventType):
        return key.value
    return str(key)


class EventBus:
    """
    Publish/subscribe registry for one client.

    Handlers run synchronously in registration order. A handler that
    raises is logged and skipped; the remaining handlers still receive the
    event. Coroutine handlers are scheduled on the running loop.
    """

    def __init__(self):
        """Initialize the event bus."""
        # Dict of event type -> list of handlers
        self._handlers: Dict[str, List[EventHandler]] = {}
        # List of handlers for all events
        self._global_handlers: List[EventHandler] = []
        # once() wrappers, keyed by the wrapper, pointing at the user handler
        self._once_wrappers: Dict[EventHandler, EventHandler] = {}
        # Keep references to scheduled coroutine handlers
        self._pending: Set[asyncio.Task] = set()

    def on(self, event_type: Union[Type[E], EventType, str], handler: Callable[[E], Any]) -> None:
        """
        Register a handler for a specific event type.

        Args:
            event_type: Payload class, EventType or raw event type string
            handler: The handler function to call when the event occurs
        """
        key = _event_key(event_type)
        handlers = self._handlers.setdefault(key, [])

        if handler not in handlers:
            handlers.append(handler)
            logger.debug(f"Registered handler for event type: {key}")

    def once(self, event_type: Union[Type[E], EventType, str], handler: Callable[[E], Any]) -> None:
        """Register a handler that is removed after its first delivery."""
        key = _event_key(event_type)

        def wrapper(event):
            self._remove(key, wrapper)
            return handler(event)

        self._once_wrappers[wrapper] = handler
        self.on(key, wrapper)

    def on_any(self, handler: EventHandler) -> None:
        """
        Register a handler for all event types.

        Args:
            handler: The handler function to call for any event
        """
        if handler not in self._global_handlers:
            self._global_handlers.append(handler)
            logger.debug("Registered global event handler")

    def off(self, event_type: EventKey, handler: Optional[EventHandler] = None) -> None:
        """
        Remove a handler for a specific event type.

        Args:
            event_type: The type of event
            handler: The handler to remove. If None, removes all handlers for the event type.
        """
        key = _event_key(event_type)
        handlers = self._handlers.get(key)
        if not handlers:
            return

        if handler is None:
            for registered in handlers:
                self._once_wrappers.pop(registered, None)
            self._handlers[key] = []
            logger.debug(f"Removed all handlers for event type: {key}")
            return

        for registered in list(handlers):
            if registered == handler or self._once_wrappers.get(registered) == handler:
                self._remove(key, registered)
                logger.debug(f"Removed handler for event type: {key}")

    def off_any(self, handler: Optional[EventHandler] = None) -> None:
        """
        Remove a global handler.

        Args:
            handler: The handler to remove. If None, removes all global handlers.
        """
        if handler is None:
            self._global_handlers = []
            logger.debug("Removed all global handlers")
        elif handler in self._global_handlers:
            self._global_handlers.remove(handler)
            logger.debug("Removed global handler")

    def listener_count(self, event_type: EventKey) -> int:
        return len(self._handlers.get(_event_key(event_type), []))

    def emit(self, event: Event) -> None:
        """
        Deliver an event to its handlers, then to the global handlers.

        Args:
            event: The payload to deliver
        """
        handlers = list(self._handlers.get(_event_key(event.type), []))
        for handler in handlers + list(self._global_handlers):
            self._call_handler(handler, event)

    def _remove(self, key: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(key, [])
        if handler in handlers:
            handlers.remove(handler)
        self._once_wrappers.pop(handler, None)

    def _call_handler(self, handler: EventHandler, event: Event) -> None:
        """
        Call an event handler, handling both sync and async handlers.

        Args:
            handler: The handler to call
            event: The event to pass to the handler
        """
        try:
            result = handler(event)
        except Exception as e:
            logger.error(f"Error in event handler for {event.type}: {e}", exc_info=True)
            return

        if inspect.isawaitable(result):
            self._schedule(result, event)

    def _schedule(self, awaitable: Any, event: Event) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Cannot run async handler for {event.type}: no event loop")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(self._call_async_handler(awaitable, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _call_async_handler(self, awaitable: Any, event: Event) -> None:
        """
        Await an async event handler.

        Args:
            awaitable: The awaitable returned by the handler
            event: The event being delivered
        """
        try:
            await awaitable
        except Exception as e:
            logger.error(f"Error in async event handler for {event.type}: {e}", exc_info=True)
