"""
Websocket connection lifecycle for the realtime API.

`ConnectionManager` owns the socket and drives the connection state
machine:

    DISCONNECTED -> CONNECTING -> CONNECTED
         ^              |             |
         |              v             v (transport lost, auto-reconnect)
         +------ RECONNECT_SCHEDULED <+

Retries back off exponentially. A connection regained after at least one
failed attempt is reported to `on_open` with `resync=True` so the owner can
push its local state back to the server.
"""

import asyncio
import inspect
import json
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, WebSocketException

from realtime_client.config.logging_config import get_logger
from realtime_client.domain.session.config import AuthMode, BackendVariant
from realtime_client.utils.async_helpers import TaskManager, run_with_timeout
from realtime_client.utils.error_handling import ReconnectExhaustedError, TransportError
from realtime_client.utils.event_utils import is_delta_event, trim_debug_event

logger = get_logger(__name__)

Connector = Callable[..., Awaitable[Any]]


class ConnectionState(str, Enum):
    """Lifecycle states of the websocket connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECT_SCHEDULED = "reconnect_scheduled"


def compute_backoff_delay(attempts: int, base: float, maximum: float) -> float:
    """
    Delay before the next reconnect attempt.

    Args:
        attempts: Failed attempts so far in the current cycle
        base: Delay for the first retry in seconds
        maximum: Upper bound in seconds

    Returns:
        float: min(base * 2**attempts, maximum)
    """
    return min(base * (2 ** attempts), maximum)


def build_realtime_url(realtime_url: str, model: str) -> str:
    """Websocket URL for `model`, upgrading an http(s) scheme to ws(s)."""
    url = realtime_url
    if url.startswith("https://"):
        url = "wss://" + url[len("https://"):]
    elif url.startswith("http://"):
        url = "ws://" + url[len("http://"):]
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}model={model}"


class ConnectionManager:
    """
    Owns the websocket and its reconnection policy.

    Callbacks:
        on_open(resync): awaited once the socket is open
        on_message(message): called for every decoded frame, in arrival order
        on_close(error): the connection is gone and no retry is scheduled
        on_error(exc): every reconnect attempt of the cycle has failed
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        on_open: Callable[[bool], Awaitable[None]],
        on_message: Callable[[Dict[str, Any]], Any],
        on_close: Optional[Callable[[bool], Any]] = None,
        on_error: Optional[Callable[[ReconnectExhaustedError], Any]] = None,
        auto_reconnect: bool = True,
        max_reconnect_attempts: int = 5,
        base_reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
        connect_timeout: float = 10.0,
        auth_mode: AuthMode = AuthMode.HEADERS,
        connector: Optional[Connector] = None,
        debug: bool = False,
        filter_deltas: bool = False,
    ):
        self.url = url
        self.api_key = api_key
        self.backend = BackendVariant.from_url(url)
        self.auth_mode = AuthMode(auth_mode)

        self.auto_reconnect = auto_reconnect
        self.max_reconnect_attempts = max_reconnect_attempts
        self.base_reconnect_delay = base_reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self.connect_timeout = connect_timeout

        self.debug = debug
        self.filter_deltas = filter_deltas

        self._on_open = on_open
        self._on_message = on_message
        self._on_close = on_close
        self._on_error = on_error
        self._connector = connector or ws_connect

        self.state = ConnectionState.DISCONNECTED
        self.attempts = 0

        self._ws: Optional[Any] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._retry_task: Optional[asyncio.Task] = None
        self.task_manager = TaskManager("connection")

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED and self._ws is not None

    def dial_arguments(self) -> Tuple[str, Dict[str, Any]]:
        """URL and connector keyword arguments carrying the credentials."""
        if self.auth_mode is AuthMode.SUBPROTOCOL:
            url = self.backend.auth_url(self.url, self.api_key)
            return url, {"subprotocols": self.backend.auth_subprotocols(self.api_key)}
        return self.url, {"additional_headers": self.backend.auth_headers(self.api_key)}

    async def connect(self) -> bool:
        """
        Open the websocket.

        Returns:
            bool: True if the socket is open when the call returns
        """
        if self.state is ConnectionState.CONNECTED:
            logger.warning("Already connected to the realtime API")
            return True
        if self.state is ConnectionState.CONNECTING:
            logger.debug("Connection attempt already in progress")
            return False

        self._cancel_retry()
        self.state = ConnectionState.CONNECTING
        url, kwargs = self.dial_arguments()
        logger.info(f"Connecting to realtime API at {self.url}")

        try:
            ws = await run_with_timeout(
                self._connector(url, max_size=None, **kwargs),
                self.connect_timeout,
                "websocket handshake"
            )
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            TransportError("Failed to open websocket", cause=e).log(include_traceback=False)
            if self.state is ConnectionState.CONNECTING:
                await self._on_transport_lost(error=True)
            return False

        if self.state is not ConnectionState.CONNECTING:
            # disconnect() was called while the handshake was in flight
            await self._close_socket(ws)
            return False

        self._ws = ws
        self.state = ConnectionState.CONNECTED
        resync = self.attempts > 0
        logger.info("Connected to realtime API" + (" (resyncing)" if resync else ""))

        try:
            await self._on_open(resync)
        except Exception as e:
            logger.error(f"Error in connection open handler: {e}", exc_info=True)

        self.attempts = 0
        self._reader_task = self.task_manager.create_task(
            self._read_loop(ws),
            "realtime_reader"
        )
        return True

    async def disconnect(self, reconnect: bool = False) -> bool:
        """
        Close the socket, optionally scheduling a reconnect.

        Args:
            reconnect: Schedule a retry with backoff instead of stopping

        Returns:
            bool: True if a retry was scheduled
        """
        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close_socket(ws)

        self.task_manager.cancel(self._reader_task)
        self._reader_task = None

        if not reconnect:
            self.attempts = 0
            self._cancel_retry()
            if self.state is not ConnectionState.DISCONNECTED:
                logger.info("Disconnected from realtime API")
            self.state = ConnectionState.DISCONNECTED
            return False

        self._cancel_retry()

        if self.attempts >= self.max_reconnect_attempts:
            self.state = ConnectionState.DISCONNECTED
            error = ReconnectExhaustedError(self.attempts)
            error.log(include_traceback=False)
            await self._notify(self._on_error, error)
            return False

        delay = compute_backoff_delay(
            self.attempts,
            self.base_reconnect_delay,
            self.max_reconnect_delay
        )
        self.attempts += 1
        self.state = ConnectionState.RECONNECT_SCHEDULED
        logger.info(
            f"Reconnecting in {delay:.1f}s "
            f"(attempt {self.attempts}/{self.max_reconnect_attempts})"
        )
        self._retry_task = self.task_manager.create_task(
            self._retry_after(delay),
            "realtime_reconnect"
        )
        return True

    async def send(self, message: Dict[str, Any]) -> bool:
        """
        Write one JSON frame.

        Returns:
            bool: True if the frame was handed to the socket
        """
        ws = self._ws
        if ws is None or self.state is not ConnectionState.CONNECTED:
            logger.error(f"Cannot send {message.get('type')}: not connected")
            return False

        try:
            await ws.send(json.dumps(message))
        except (OSError, WebSocketException) as e:
            # The reader loop notices the dead socket and drives reconnection
            logger.error(f"Error sending event {message.get('type')}: {e}")
            return False

        self._log_frame("sent", message)
        return True

    async def shutdown(self) -> None:
        """Disconnect and wait for background tasks to finish."""
        await self.disconnect()
        await self.task_manager.cancel_all()

    async def _retry_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._retry_task = None
        await self.connect()

    async def _read_loop(self, ws: Any) -> None:
        """
        Handle incoming frames until the socket closes.

        Args:
            ws: The socket this loop belongs to
        """
        error = False
        try:
            async for raw in ws:
                await self._handle_frame(raw)
        except ConnectionClosedOK as e:
            logger.info(f"WebSocket connection closed normally: {e}")
        except ConnectionClosedError as e:
            logger.warning(f"WebSocket connection closed unexpectedly: {e}")
            error = True
        except (OSError, WebSocketException) as e:
            logger.error(f"Error in message receiver: {e}")
            error = True

        if self._ws is not ws:
            # Closed on purpose by disconnect()
            return

        await self._on_transport_lost(error)

    async def _handle_frame(self, raw: Any) -> None:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Error decoding JSON message: {e}")
            return

        if not isinstance(message, dict):
            logger.warning(f"Ignoring non-object frame: {type(message).__name__}")
            return

        self._log_frame("received", message)

        try:
            result = self._on_message(message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Error processing message {message.get('type')}: {e}", exc_info=True)

    async def _on_transport_lost(self, error: bool) -> None:
        if not await self.disconnect(reconnect=self.auto_reconnect):
            await self._notify(self._on_close, error)

    async def _close_socket(self, ws: Any) -> None:
        try:
            await ws.close()
        except (OSError, WebSocketException) as e:
            logger.warning(f"Error closing WebSocket connection: {e}")

    def _cancel_retry(self) -> None:
        self.task_manager.cancel(self._retry_task)
        self._retry_task = None

    async def _notify(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Error in connection callback: {e}", exc_info=True)

    def _log_frame(self, direction: str, message: Dict[str, Any]) -> None:
        if not self.debug:
            return
        if self.filter_deltas and is_delta_event(message):
            return
        logger.info(f"{direction}: {json.dumps(trim_debug_event(message))}")
