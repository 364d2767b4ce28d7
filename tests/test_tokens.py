"""
Tests for ephemeral credential issuance.
"""

import json

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock

from realtime_client.domain.session.config import SessionConfig
from realtime_client.services.tokens import (
    create_session_with_ephemeral_token,
    create_transcription_session_with_ephemeral_token,
)
from realtime_client.utils.error_handling import ApiError

BASE_URL = "https://api.test/v1"


def mock_http_session(status=200, body=None):
    """aiohttp-like session whose post() yields a canned response."""
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=body if isinstance(body, str) else json.dumps(body or {}))

    session = MagicMock()
    session.post.return_value.__aenter__.return_value = response
    session.post.return_value.__aexit__.return_value = False
    return session


@pytest.mark.asyncio
async def test_create_session_posts_model_and_config():
    """Test issuing a realtime session credential."""
    secret = {"id": "sess_1", "client_secret": {"value": "ek_123", "expires_at": 1700000000}}
    session = mock_http_session(body=secret)

    result = await create_session_with_ephemeral_token(
        model="gpt-4o-realtime-preview",
        session_config={"voice": "alloy", "modalities": ["text"]},
        api_key="sk-test",
        base_url=BASE_URL,
        session=session,
    )

    assert result["client_secret"]["value"] == "ek_123"
    args, kwargs = session.post.call_args
    assert args[0] == "https://api.test/v1/realtime/sessions"
    assert kwargs["json"] == {"model": "gpt-4o-realtime-preview", "voice": "alloy", "modalities": ["text"]}
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    session.close.assert_not_called()


@pytest.mark.asyncio
async def test_create_session_accepts_session_config():
    """Test issuing a credential from a SessionConfig."""
    session = mock_http_session(body={"client_secret": {"value": "ek"}})

    await create_session_with_ephemeral_token(
        model="m",
        session_config=SessionConfig.build({"voice": "coral"}),
        api_key="sk-test",
        base_url=BASE_URL,
        session=session,
    )

    body = session.post.call_args.kwargs["json"]
    assert body["model"] == "m"
    assert body["voice"] == "coral"
    assert body["turn_detection"]["type"] == "server_vad"


@pytest.mark.asyncio
async def test_create_transcription_session():
    """Test issuing a transcription session credential."""
    session = mock_http_session(body={"client_secret": {"value": "ek_t"}})

    result = await create_transcription_session_with_ephemeral_token(
        {"input_audio_format": "pcm16"},
        api_key="sk-test",
        base_url=BASE_URL + "/",
        session=session,
    )

    assert result["client_secret"]["value"] == "ek_t"
    args, kwargs = session.post.call_args
    assert args[0] == "https://api.test/v1/realtime/transcription_sessions"
    assert kwargs["json"] == {"input_audio_format": "pcm16"}


@pytest.mark.asyncio
async def test_error_status_raises_api_error():
    """Test that an error status raises ApiError with the body."""
    session = mock_http_session(status=401, body='{"error": {"message": "bad key"}}')

    with pytest.raises(ApiError) as excinfo:
        await create_session_with_ephemeral_token(
            model="m", api_key="sk-bad", base_url=BASE_URL, session=session
        )

    assert excinfo.value.details["status"] == 401
    assert "bad key" in excinfo.value.details["body"]


@pytest.mark.asyncio
async def test_invalid_json_raises_api_error():
    """Test that a non-JSON body raises ApiError."""
    session = mock_http_session(body="<html>gateway</html>")

    with pytest.raises(ApiError):
        await create_session_with_ephemeral_token(
            model="m", api_key="sk-test", base_url=BASE_URL, session=session
        )


@pytest.mark.asyncio
async def test_network_errors_are_wrapped():
    """Test that aiohttp errors are wrapped in ApiError."""
    session = MagicMock()
    session.post.side_effect = aiohttp.ClientConnectionError("no route to host")

    with pytest.raises(ApiError) as excinfo:
        await create_transcription_session_with_ephemeral_token(
            {}, api_key="sk-test", base_url=BASE_URL, session=session
        )

    assert isinstance(excinfo.value.cause, aiohttp.ClientConnectionError)


@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch):
    """Test that issuing a credential requires an API key."""
    from realtime_client.config import settings

    monkeypatch.setattr(settings.api, "api_key", "")

    with pytest.raises(ApiError):
        await create_session_with_ephemeral_token(model="m", base_url=BASE_URL, session=MagicMock())
