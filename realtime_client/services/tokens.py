"""
Ephemeral credential issuance.

A server holding the real API key mints a short-lived client secret bound
to a session configuration; the browser or device then opens the realtime
socket with that secret instead of the key. Both calls are one-shot HTTP
POSTs with no connection state.
"""

import json
from typing import Any, Dict, Mapping, Optional, Union

import aiohttp

from realtime_client.config import settings
from realtime_client.config.logging_config import get_logger
from realtime_client.domain.session.config import SessionConfig
from realtime_client.utils.error_handling import ApiError, handle_exception

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


async def create_session_with_ephemeral_token(
    model: Optional[str] = None,
    session_config: Optional[Union[SessionConfig, Mapping[str, Any]]] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> Dict[str, Any]:
    """
    Create a realtime session and return it with its `client_secret`.

    Args:
        model: Realtime model, defaults to the configured one
        session_config: Session settings to bind to the credential
        api_key: Long-lived API key, defaults to OPENAI_API_KEY
        base_url: HTTP API base URL
        session: Optional shared HTTP session

    Returns:
        Dict[str, Any]: The session record, including `client_secret`

    Raises:
        ApiError: if the request fails or the server rejects it
    """
    if isinstance(session_config, SessionConfig):
        config = session_config.to_payload()
    else:
        config = dict(session_config or {})

    body = {"model": model or settings.api.model}
    body.update(config)
    return await _post_json("realtime/sessions", body, api_key, base_url, session)


async def create_transcription_session_with_ephemeral_token(
    transcription_config: Optional[Mapping[str, Any]] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> Dict[str, Any]:
    """Create a transcription-only session and return it with its `client_secret`."""
    body = dict(transcription_config or {})
    return await _post_json("realtime/transcription_sessions", body, api_key, base_url, session)


async def _post_json(
    path: str,
    body: Dict[str, Any],
    api_key: Optional[str],
    base_url: Optional[str],
    session: Optional[aiohttp.ClientSession],
) -> Dict[str, Any]:
    key = api_key or settings.api.api_key
    if not key:
        raise ApiError("An API key is required to issue ephemeral credentials")

    url = f"{(base_url or settings.api.base_url).rstrip('/')}/{path}"
    headers = {
        "Authorization": f"Bearer {key}",
        "Content-Type": "application/json",
    }

    owns_session = session is None
    if owns_session:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=DEFAULT_TIMEOUT))

    try:
        logger.info(f"Requesting ephemeral credential from {url}")
        async with session.post(url, json=body, headers=headers) as response:
            text = await response.text()
            if response.status >= 400:
                raise ApiError(
                    f"Credential request failed with status {response.status}",
                    details={"status": response.status, "body": text[:500], "url": url},
                )
            try:
                return json.loads(text)
            except ValueError as e:
                raise ApiError("Credential response is not valid JSON", cause=e) from e
    except aiohttp.ClientError as e:
        raise handle_exception(e, context={"url": url}, error_class=ApiError) from e
    finally:
        if owns_session:
            await session.close()
