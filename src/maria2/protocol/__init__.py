"""JSON-RPC wire format."""

from .envelope import (
    TOKEN_PREFIX,
    InboundMessage,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    encode_request,
    parse_message,
    with_secret,
)

__all__ = [
    "TOKEN_PREFIX",
    "InboundMessage",
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "encode_request",
    "parse_message",
    "with_secret",
]
