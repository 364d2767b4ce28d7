"""
Conversation item value types.

A conversation item is one turn of the transcript: a message, a function
call or a function call output. Items arrive from the server as JSON
records and are replayed back to it verbatim on reconnect, so both types
here round-trip through `from_dict` / `to_dict`.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class ItemType(str, Enum):
    """Kinds of conversation item."""

    MESSAGE = "message"
    FUNCTION_CALL = "function_call"
    FUNCTION_CALL_OUTPUT = "function_call_output"


class ItemRole(str, Enum):
    """Speaker of a message item."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ItemStatus(str, Enum):
    """Server-side status of an item."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Content kinds whose spoken form is carried in `transcript` rather than `text`
AUDIO_CONTENT_TYPES = frozenset({"input_audio", "audio"})


@dataclass
class ContentPart:
    """One piece of an item's content (text, audio or a transcript)."""

    type: str
    text: Optional[str] = None
    audio: Optional[str] = None
    transcript: Optional[str] = None
    id: Optional[str] = None

    @property
    def is_audio(self) -> bool:
        return self.type in AUDIO_CONTENT_TYPES

    @property
    def is_empty(self) -> bool:
        """True when the part carries neither text nor a transcript."""
        return self.text is None and self.transcript is None

    def attach_transcript(self, transcript: str) -> None:
        if self.is_audio:
            self.transcript = transcript
        else:
            self.text = transcript

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        for name in ("id", "text", "audio", "transcript"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentPart":
        return cls(
            type=data.get("type", "text"),
            text=data.get("text"),
            audio=data.get("audio"),
            transcript=data.get("transcript"),
            id=data.get("id"),
        )


@dataclass
class ConversationItem:
    """A single conversation turn as tracked by the transcript."""

    id: str
    type: str = ItemType.MESSAGE.value
    role: Optional[str] = None
    content: List[ContentPart] = field(default_factory=list)
    status: Optional[str] = None
    call_id: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[str] = None
    output: Optional[str] = None

    def copy(self) -> "ConversationItem":
        """Structural copy; the returned item shares no mutable state."""
        return replace(self, content=[replace(part) for part in self.content])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation, omitting unset fields."""
        data: Dict[str, Any] = {"id": self.id, "type": self.type}
        for name in ("role", "status", "call_id", "name", "arguments", "output"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.content or self.type == ItemType.MESSAGE.value:
            data["content"] = [part.to_dict() for part in self.content]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationItem":
        """Create an item from a server or caller supplied record."""
        if not data.get("id"):
            raise ValueError("Conversation item is missing an id")
        return cls(
            id=data["id"],
            type=data.get("type", ItemType.MESSAGE.value),
            role=data.get("role"),
            content=[
                ContentPart.from_dict(part)
                for part in data.get("content") or []
                if isinstance(part, dict)
            ],
            status=data.get("status"),
            call_id=data.get("call_id"),
            name=data.get("name"),
            arguments=data.get("arguments"),
            output=data.get("output"),
        )
