"""
Shared fixtures for the client test suite.
"""

import pytest
import pytest_asyncio

from realtime_client.services.api_client import RealtimeClient
from tests.helpers import FakeConnector

OPENAI_URL = "wss://api.openai.com/v1/realtime"
AZURE_URL = "wss://example.openai.azure.com/openai/realtime?api-version=2024-10-01-preview"


@pytest.fixture
def connector():
    """Fake websocket connector recording every dial."""
    return FakeConnector()


@pytest.fixture
def make_client(connector):
    """Factory for clients wired to the fake connector with fast backoff."""
    def factory(**overrides):
        options = dict(
            api_key="test-key",
            realtime_url=OPENAI_URL,
            model="gpt-4o-realtime-preview",
            connector=connector,
            auto_reconnect=True,
            max_reconnect_attempts=3,
            base_reconnect_delay=0.01,
            max_reconnect_delay=0.04,
            connect_timeout=1.0,
            debug=False,
        )
        options.update(overrides)
        return RealtimeClient(**options)

    return factory


@pytest.fixture
def client(make_client):
    """A client that has not been connected."""
    return make_client()


@pytest_asyncio.fixture
async def connected_client(client, connector):
    """A connected client whose opening frames have been cleared."""
    assert await client.connect()
    connector.last.sent.clear()
    yield client
    await client.shutdown()
