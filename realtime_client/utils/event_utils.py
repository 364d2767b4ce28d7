"""
Helpers for protocol frames: correlation ids, debug trimming and the
base64 encoding used for audio payloads.
"""

import base64
import copy
import uuid
from typing import Any, Dict, Optional, Union

MAX_DEBUG_DELTA_LENGTH = 200


def new_event_id() -> str:
    """Generate a unique correlation id for an outbound frame."""
    return f"evt_{uuid.uuid4().hex}"


def is_delta_event(message: Optional[Dict[str, Any]]) -> bool:
    """Whether a frame is one of the high-volume streaming `.delta` events."""
    if not isinstance(message, dict):
        return False
    return ".delta" in str(message.get("type", ""))


def trim_debug_event(
    message: Optional[Dict[str, Any]],
    max_length: int = MAX_DEBUG_DELTA_LENGTH
) -> Optional[Dict[str, Any]]:
    """
    Return a copy of a frame that is safe to dump into a debug log.

    Long `delta` strings are cut to `max_length` characters and audio
    payloads on outbound appends are replaced by their size.
    """
    if not message:
        return message

    trimmed = copy.deepcopy(message)

    delta = trimmed.get("delta")
    if isinstance(delta, str) and len(delta) > max_length:
        trimmed["delta"] = delta[:max_length] + "... (truncated)"

    audio = trimmed.get("audio")
    if isinstance(audio, str) and len(audio) > max_length:
        trimmed["audio"] = f"({len(audio)} base64 chars)"

    return trimmed


def encode_audio(audio: Union[bytes, bytearray, memoryview, str]) -> str:
    """Encode raw audio bytes as base64 text; strings pass through untouched."""
    if isinstance(audio, str):
        return audio
    return base64.b64encode(bytes(audio)).decode("ascii")


def decode_audio(audio_base64: str) -> bytes:
    """Decode a base64 audio payload from an audio delta event."""
    return base64.b64decode(audio_base64)
