"""Transports a session can run over.

- websocket: Push transport (persistent, server may push notifications)
- http: Request/reply transport (one POST per request)
- mock: In-memory transport for tests
"""

from .base import BaseSocket
from .http import HTTPSocket, create_http
from .mock import MockSocket, create_mock
from .websocket import WebSocketSocket, create_websocket

__all__ = [
    "BaseSocket",
    "HTTPSocket",
    "MockSocket",
    "WebSocketSocket",
    "create_http",
    "create_mock",
    "create_websocket",
]
