"""WebSocket push transport.

Long-lived, full-duplex channel. The server may push notifications at
any time; every inbound frame is delivered as one "message" event.

Ready state follows the underlying ``websockets`` connection state,
which uses the same 0-3 codes as ReadyState.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from ..conn import MessageEvent, OpenOptions, ReadyState
from .base import BaseSocket

logger = logging.getLogger(__name__)


class WebSocketSocket(BaseSocket):
    """Socket over a ``websockets`` client connection.

    Starts in CONNECTING; ``connect()`` moves it to OPEN (firing "open")
    or, on failure, to CLOSED (firing "close").
    """

    def __init__(
        self,
        url: str,
        options: OpenOptions | None = None,
        ping_interval: float | None = 30,
        ping_timeout: float | None = 10,
    ) -> None:
        super().__init__(options)
        self.url = url
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._ws: Any = None  # websockets ClientConnection
        self._reader_task: asyncio.Task[None] | None = None
        self._connect_task: asyncio.Task[None] | None = None

    @property
    def ready_state(self) -> ReadyState:
        if self._ws is not None and self._ready_state == ReadyState.OPEN:
            return ReadyState(int(self._ws.state))
        return self._ready_state

    async def connect(self) -> None:
        """Open the WebSocket connection and start reading.

        Raises:
            ConnectionError: If the connection cannot be established
        """
        if self._ready_state != ReadyState.CONNECTING:
            return

        try:
            self._ws = await websockets.connect(
                self.url,
                ping_interval=self._ping_interval,
                ping_timeout=self._ping_timeout,
                max_size=None,
            )
        except Exception as e:
            logger.warning(f"WebSocket connection to {self.url} failed: {e}")
            self._set_state(ReadyState.CLOSED)
            raise ConnectionError(f"Failed to connect: {e}") from e

        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info(f"WebSocket connected to {self.url}")
        self._set_state(ReadyState.OPEN)

    def start(self) -> None:
        """Schedule ``connect()`` on the running loop."""
        if self._connect_task is None:
            self._connect_task = asyncio.get_running_loop().create_task(self._connect_quietly())

    async def _connect_quietly(self) -> None:
        # Failure is reported through the "close" event
        with contextlib.suppress(ConnectionError):
            await self.connect()

    async def _read_loop(self) -> None:
        """Background task delivering inbound frames."""
        try:
            async for data in self._ws:
                self._dispatch("message", MessageEvent(data=data))
        except ConnectionClosed as e:
            logger.info(f"WebSocket closed: {e}")
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"WebSocket receive error: {e}")
        finally:
            self._set_state(ReadyState.CLOSED)

    async def send(self, data: str) -> None:
        """Send one text frame."""
        if self._ws is None:
            raise ConnectionError("WebSocket not connected")
        await self._ws.send(data)

    async def close(self, code: int | None = None, reason: str | None = None) -> None:
        """Close the connection and wait for the reader to finish."""
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._connect_task

        if self._ws is None:
            self._set_state(ReadyState.CLOSED)
            return

        if self._ready_state == ReadyState.OPEN:
            self._ready_state = ReadyState.CLOSING

        await self._ws.close(code=code or 1000, reason=reason or "")

        if self._reader_task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
            self._reader_task = None

        self._set_state(ReadyState.CLOSED)


def create_websocket(
    url: str,
    *,
    secret: str | None = None,
    timeout: float | None = None,
) -> WebSocketSocket:
    """Create a WebSocket socket and start connecting.

    Must be called with a running event loop. The socket is returned in
    CONNECTING state; ``open()`` waits for it.

    Args:
        url: Server URL, e.g. ``ws://localhost:6800/jsonrpc``
        secret: Preconfigured RPC secret
        timeout: Preconfigured default request timeout (seconds)
    """
    options = OpenOptions().merged(secret=secret, timeout=timeout)
    socket = WebSocketSocket(url, options)
    socket.start()
    return socket
