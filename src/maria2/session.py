"""Connection session: correlation and dispatch over one Socket.

A Connection owns:
- the pending-request table (correlation id -> Future)
- the notification registry
- the secret and default timeout from OpenOptions

Requests fail fast when the socket is not open; nothing is queued.
Every pending entry is removed exactly once, by whichever of response,
timeout, send failure or close gets there first. The others find the
entry gone and do nothing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from .conn import (
    Disposable,
    MessageEvent,
    OpenOptions,
    ReadyState,
    SendRequestOptions,
    Socket,
)
from .errors import (
    ConnectionClosedError,
    NotOpenError,
    RemoteError,
    SocketClosedError,
    SocketClosingError,
    TransportSendError,
    UnroutedServerError,
)
from .protocol import (
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcResponse,
    encode_request,
    parse_message,
    with_secret,
)
from .registry import NotificationRegistry
from .utils import random_uuid, use_timeout

logger = logging.getLogger(__name__)

L = TypeVar("L", bound=Callable[..., Any])


class Connection:
    """An open session over a Socket.

    Created by ``open()``; do not construct directly unless the socket
    is already open.
    """

    def __init__(self, socket: Socket, options: OpenOptions) -> None:
        self._socket = socket
        self._options = options
        self._pending: dict[str, asyncio.Future[Any]] = {}
        self._registry = NotificationRegistry()

        socket.add_event_listener("message", self._handle_message)
        socket.add_event_listener("close", self._handle_close, once=True)

    @property
    def timeout(self) -> float:
        """Default request timeout in seconds."""
        return self._options.timeout

    @property
    def pending_ids(self) -> list[str]:
        """Correlation ids of requests still awaiting a response."""
        return list(self._pending)

    def get_socket(self) -> Socket:
        return self._socket

    def get_secret(self) -> str | None:
        return self._options.secret

    async def send_request(self, options: SendRequestOptions | str, *params: Any) -> Any:
        """Send a request and wait for its result.

        Args:
            options: Request options, or just the method name
            *params: Positional parameters

        Returns:
            The `result` member of the matching response

        Raises:
            NotOpenError: If the socket is not open
            TransportSendError: If the socket fails to send
            RequestTimeoutError: If no response arrives in time
            RemoteError: If the server answers with an error
            ConnectionClosedError: If the socket closes first
        """
        if isinstance(options, str):
            options = SendRequestOptions(method=options)

        request_id = random_uuid()

        if self._socket.ready_state != ReadyState.OPEN:
            raise NotOpenError()

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            secret = self._options.secret
            if secret is not None and options.secret:
                params = tuple(with_secret(params, secret))

            body = encode_request(request_id, options.method, params)

            async def exchange() -> Any:
                try:
                    await self._socket.send(body)
                except Exception as e:
                    raise TransportSendError(f"Failed to send {options.method}: {e}") from e
                return await future

            # The deadline covers the send too; an HTTP send waits for the whole POST
            timeout = options.timeout
            if timeout is False:
                return await exchange()
            if timeout is None or timeout is True:
                timeout = self._options.timeout

            return await use_timeout(
                exchange(), float(timeout), lambda: self._pending.pop(request_id, None)
            )
        finally:
            self._pending.pop(request_id, None)

    def on_notification(self, method: str, listener: L) -> Disposable[L]:
        """Subscribe `listener` to notifications named `method`."""
        return self._registry.subscribe(method, listener)

    # Inbound dispatch

    def _handle_message(self, event: MessageEvent) -> None:
        message = parse_message(event.data)
        if message is None:
            return

        if isinstance(message, JsonRpcNotification):
            if not self._registry.dispatch(message.method, message.args()):
                logger.debug(f"No listeners for notification {message.method}")
            return

        if message.id is not None:
            self._resolve(message)
        elif message.error is not None:
            self._report_server_error(message.error)

    def _resolve(self, message: JsonRpcResponse) -> None:
        future = self._pending.pop(str(message.id), None)
        if future is None:
            logger.debug(f"Dropping response for unknown request: {message.id}")
            return
        if future.done():
            return

        if message.error is not None:
            error = message.error
            future.set_exception(RemoteError(code=error.code, message=error.message, data=error.data))
        else:
            future.set_result(message.result)

    def _report_server_error(self, error: JsonRpcError) -> None:
        handler = self._options.on_server_error
        if handler is None:
            logger.debug("Dropping server error without id: no handler registered")
            return

        try:
            handler(UnroutedServerError(code=error.code, message=error.message, data=error.data))
        except Exception:
            logger.exception("Error in server error handler")

    def _handle_close(self, event: MessageEvent) -> None:
        pending, self._pending = self._pending, {}
        if pending:
            logger.info(f"Socket closed with {len(pending)} pending request(s)")
        for future in pending.values():
            if not future.done():
                future.set_exception(ConnectionClosedError())
        self._registry.clear()
        self._socket.remove_event_listener("message", self._handle_message)


async def open(
    socket: Socket,
    options: OpenOptions | None = None,
    *,
    secret: str | None = None,
    timeout: float | None = None,
    on_server_error: Callable[[Exception], Any] | None = None,
) -> Connection:
    """Open a session over `socket`.

    Waits for a connecting socket to open. Options preconfigured on the
    socket (``socket.options``) are the base; `options` and keyword
    arguments override them.

    Raises:
        SocketClosingError: If the socket is closing
        SocketClosedError: If the socket is closed, or closes while connecting
    """
    base = getattr(socket, "options", None) or OpenOptions()
    if options is not None:
        base = base.merged(
            secret=options.secret,
            on_server_error=options.on_server_error,
            timeout=options.timeout,
        )
    resolved = base.merged(secret=secret, timeout=timeout, on_server_error=on_server_error)

    state = socket.ready_state
    if state == ReadyState.CONNECTING:
        await _wait_open(socket)
    elif state == ReadyState.CLOSING:
        raise SocketClosingError()
    elif state == ReadyState.CLOSED:
        raise SocketClosedError()

    logger.debug(f"Session opened over {type(socket).__name__}")
    return Connection(socket, resolved)


async def _wait_open(socket: Socket) -> None:
    waiter: asyncio.Future[bool] = asyncio.get_running_loop().create_future()

    def on_open(event: MessageEvent) -> None:
        if not waiter.done():
            waiter.set_result(True)

    def on_close(event: MessageEvent) -> None:
        if not waiter.done():
            waiter.set_result(False)

    socket.add_event_listener("open", on_open, once=True)
    socket.add_event_listener("close", on_close, once=True)
    try:
        opened = await waiter
    finally:
        socket.remove_event_listener("open", on_open)
        socket.remove_event_listener("close", on_close)

    if not opened:
        raise SocketClosedError()


async def close(conn: Connection, code: int | None = None, reason: str | None = None) -> None:
    """Close the socket underneath `conn`."""
    await conn.get_socket().close(code, reason)
