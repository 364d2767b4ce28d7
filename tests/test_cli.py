"""
Tests for the command-line driver.
"""

import pytest
from unittest.mock import AsyncMock, patch

from realtime_client.domain.conversation.items import ConversationItem
from realtime_client.presentation import cli


def test_format_message_item():
    """Test rendering a message item with text and transcript parts."""
    item = ConversationItem.from_dict({
        "id": "a",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "audio", "transcript": "Hello"}, {"type": "text", "text": "there"}],
    })

    assert cli.format_item(item) == "[assistant] Hello there"


def test_format_function_items():
    """Test rendering function call and function output items."""
    call = ConversationItem.from_dict({
        "id": "f", "type": "function_call", "name": "lookup", "arguments": '{"q": 1}',
    })
    output = ConversationItem.from_dict({
        "id": "o", "type": "function_call_output", "output": "42",
    })

    assert cli.format_item(call) == '[function_call] lookup({"q": 1})'
    assert cli.format_item(output) == "[function_call_output] 42"


def test_parse_arguments():
    """Test parsing command-line arguments."""
    args = cli.parse_arguments(["Hello", "--text-only", "--voice", "alloy", "--timeout", "5"])

    assert args.prompt == "Hello"
    assert args.text_only is True
    assert args.voice == "alloy"
    assert args.timeout == 5.0
    assert args.debug is False


@pytest.mark.asyncio
async def test_run_fails_cleanly_without_connection():
    """Test that a failed connect exits with 1 and still shuts down."""
    args = cli.parse_arguments(["--voice", "alloy"])

    with patch.object(cli, "RealtimeClient") as client_class:
        client = client_class.return_value
        client.connect = AsyncMock(return_value=False)
        client.shutdown = AsyncMock()

        assert await cli.run_async_main(args) == 1

    assert client_class.call_args.kwargs["session_config"] == {"voice": "alloy"}
    client.shutdown.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_rejects_invalid_voice(monkeypatch):
    """Test that an invalid voice exits with 1 before connecting."""
    monkeypatch.setattr(cli.settings.api, "api_key", "sk-test")
    args = cli.parse_arguments(["--voice", "not-a-voice"])

    assert await cli.run_async_main(args) == 1
