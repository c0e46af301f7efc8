"""maria2 - asyncio JSON-RPC client for aria2.

Multiplexes concurrent requests over one transport session:
- websocket: Persistent push transport with server notifications
- http: One POST per request
- mock: In-memory transport for testing

Two layers:
- open()/Connection: Transport-agnostic correlation and dispatch engine
- Aria2Client/connect(): Typed aria2.* and system.* methods
"""

from .client import Aria2API, Aria2Client, SystemAPI, connect
from .config import ClientConfig
from .conn import (
    Conn,
    Disposable,
    MessageEvent,
    OpenOptions,
    ReadyState,
    SendRequestOptions,
    Socket,
)
from .errors import (
    ConnectionClosedError,
    Maria2Error,
    NotOpenError,
    OpenPreconditionError,
    RemoteError,
    RequestTimeoutError,
    SocketClosedError,
    SocketClosingError,
    TransportSendError,
    UnroutedServerError,
)
from .session import Connection, close, open
from .transport import (
    BaseSocket,
    HTTPSocket,
    MockSocket,
    WebSocketSocket,
    create_http,
    create_mock,
    create_websocket,
)
from .types import GlobalStat, MulticallItem, SessionInfo, VersionInfo

__all__ = [
    # Session engine
    "open",
    "close",
    "Connection",
    "Conn",
    "Disposable",
    "OpenOptions",
    "SendRequestOptions",
    # Transports
    "Socket",
    "ReadyState",
    "MessageEvent",
    "BaseSocket",
    "WebSocketSocket",
    "HTTPSocket",
    "MockSocket",
    "create_websocket",
    "create_http",
    "create_mock",
    # Typed client
    "Aria2Client",
    "Aria2API",
    "SystemAPI",
    "connect",
    "ClientConfig",
    # Types
    "VersionInfo",
    "SessionInfo",
    "GlobalStat",
    "MulticallItem",
    # Errors
    "Maria2Error",
    "NotOpenError",
    "OpenPreconditionError",
    "SocketClosingError",
    "SocketClosedError",
    "TransportSendError",
    "ConnectionClosedError",
    "RequestTimeoutError",
    "RemoteError",
    "UnroutedServerError",
]
