"""
In-memory websocket doubles for exercising the client without a network.
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Tuple

_CLOSE = object()
_DROP = object()


class FakeWebSocket:
    """Queue-backed socket: frames fed by the test are yielded to the reader."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    def feed(self, message: Any) -> None:
        """Queue a frame for the client; dicts are JSON-encoded."""
        if isinstance(message, dict):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def drop(self) -> None:
        """Simulate the peer vanishing."""
        self._incoming.put_nowait(_DROP)

    def close_by_peer(self) -> None:
        """Simulate a clean close initiated by the server."""
        self._incoming.put_nowait(_CLOSE)

    async def send(self, data: str) -> None:
        if self.closed:
            raise OSError("socket is closed")
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(_CLOSE)

    def sent_types(self) -> List[str]:
        return [message["type"] for message in self.sent]

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        item = await self._incoming.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if item is _DROP:
            self.closed = True
            raise OSError("connection reset by peer")
        return item


class FakeConnector:
    """Stands in for `websockets.asyncio.client.connect`."""

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.sockets: List[FakeWebSocket] = []
        self.failures = 0
        self.fail_forever = False

    async def __call__(self, url: str, **kwargs: Any) -> FakeWebSocket:
        self.calls.append((url, kwargs))
        if self.fail_forever or self.failures > 0:
            self.failures = max(0, self.failures - 1)
            raise OSError("connection refused")
        ws = FakeWebSocket()
        self.sockets.append(ws)
        return ws

    @property
    def last(self) -> FakeWebSocket:
        return self.sockets[-1]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll `predicate` until it holds, failing the test after `timeout` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)
