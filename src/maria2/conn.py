"""Transport capability contract and session interface.

Architecture:
- Socket is the PROTOCOL every transport satisfies (push or request/reply)
- Conn is the PROTOCOL of the session handed to callers by ``open()``
- Option dataclasses carry per-session and per-request configuration

A Socket owns its listener table; nothing here is process-wide state.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Generic, Literal, Protocol, TypeVar, runtime_checkable

L = TypeVar("L", bound=Callable[..., Any])

EventType = Literal["open", "message", "close"]


class ReadyState(IntEnum):
    """Ready state of a socket, aligned with WebSocket readyState codes."""

    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3


@dataclass
class MessageEvent:
    """Inbound transport event.

    `data` is a text frame, a binary frame, or a list of body chunks.
    """

    data: Any = None


EventListener = Callable[[MessageEvent], Any]


@runtime_checkable
class Socket(Protocol):
    """Protocol for transports a session can run over.

    All transports must provide:
    - ready_state: One of ReadyState
    - send: Transmit one text payload (may raise)
    - close: Close the transport
    - add_event_listener/remove_event_listener: "open", "message", "close"
    """

    @property
    def ready_state(self) -> ReadyState:
        """Current ready state."""
        ...

    async def send(self, data: str) -> None:
        """Transmit one text payload.

        Raises:
            Exception: Any transport-level failure
        """
        ...

    async def close(self, code: int | None = None, reason: str | None = None) -> None:
        """Close the transport."""
        ...

    def add_event_listener(
        self, type: EventType, listener: EventListener, once: bool = False
    ) -> None:
        """Register a listener; ``once=True`` removes it after the first event."""
        ...

    def remove_event_listener(self, type: EventType, listener: EventListener) -> None:
        """Unregister a listener. Unknown listeners are ignored."""
        ...


@dataclass
class OpenOptions:
    """Configuration for a session.

    A transport may carry preconfigured options (``socket.options``);
    options passed to ``open()`` take precedence field by field.
    """

    secret: str | None = None
    on_server_error: Callable[[Exception], Any] | None = None

    # Timeout for each request (seconds)
    timeout: float = 5.0

    def merged(self, **overrides: Any) -> OpenOptions:
        """Return a copy with every non-None override applied."""
        values = {
            "secret": self.secret,
            "on_server_error": self.on_server_error,
            "timeout": self.timeout,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return OpenOptions(**values)


@dataclass
class SendRequestOptions:
    """Per-request options.

    `timeout` is a number of seconds, ``False`` to wait indefinitely, or
    ``None`` to use the session default.
    """

    method: str
    secret: bool = True
    timeout: float | bool | None = None


@dataclass
class Disposable(Generic[L]):
    """Handle returned by a subscription.

    ``dispose()`` unsubscribes once and returns the listener; calling it
    again is a no-op that returns the same listener.
    """

    dispose: Callable[[], L] = field(repr=False)


@runtime_checkable
class Conn(Protocol):
    """Protocol of an open session."""

    def send_request(
        self, options: SendRequestOptions | str, *params: Any
    ) -> Awaitable[Any]:
        """Send a request and resolve with its result."""
        ...

    def on_notification(self, method: str, listener: L) -> Disposable[L]:
        """Subscribe to server notifications of `method`."""
        ...

    def get_secret(self) -> str | None:
        ...

    def get_socket(self) -> Socket:
        ...
