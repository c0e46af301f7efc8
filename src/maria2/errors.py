"""Exceptions raised by the maria2 connection engine.

Every error tied to a request rejects only that request's awaitable.
Nothing in here terminates a session.
"""

from __future__ import annotations

from typing import Any


class Maria2Error(Exception):
    """Base class for all maria2 errors."""


class NotOpenError(Maria2Error):
    """A request was attempted while the transport was not open."""

    def __init__(self, message: str = "Socket is not open") -> None:
        super().__init__(message)


class OpenPreconditionError(Maria2Error):
    """A session was opened over a transport that is closing or closed."""


class SocketClosingError(OpenPreconditionError):
    def __init__(self, message: str = "Socket is closing") -> None:
        super().__init__(message)


class SocketClosedError(OpenPreconditionError):
    def __init__(self, message: str = "Socket is closed") -> None:
        super().__init__(message)


class TransportSendError(Maria2Error):
    """The transport failed while sending a request."""


class ConnectionClosedError(Maria2Error):
    """The transport closed while the request was still pending."""

    def __init__(self, message: str = "Connection closed before a response arrived") -> None:
        super().__init__(message)


class RequestTimeoutError(Maria2Error, TimeoutError):
    """No response arrived before the request deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"[maria2 error] Timeout of {timeout}s exceeded")
        self.timeout = timeout


class RemoteError(Maria2Error):
    """JSON-RPC error reported by the server for a specific request."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class UnroutedServerError(RemoteError):
    """Server error that carries no correlation id.

    Only ever handed to a session-level ``on_server_error`` callback.
    """
