"""JSON-RPC 2.0 envelope codec.

Outbound requests are always positional:
    {"jsonrpc": "2.0", "id": "<uuid>", "method": "aria2.tellActive", "params": [...]}

Inbound payloads are classified as one of:
- Notification: has a `method` (no id expected)
- Response: has `result` or `error`, plus the `id` of a request
- Bare error: has `error` but neither `id` nor `method`

Anything else is dropped by returning None.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..utils import decode_message_data

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "token:"


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: str
    method: str
    params: list[Any] = Field(default_factory=list)


class JsonRpcNotification(BaseModel):
    """JSON-RPC 2.0 notification pushed by the server."""

    jsonrpc: str = "2.0"
    method: str
    params: Any | None = None

    def args(self) -> tuple[Any, ...]:
        """Positional arguments for subscribers."""
        if self.params is None:
            return ()
        if isinstance(self.params, list):
            return tuple(self.params)
        return (self.params,)


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    model_config = ConfigDict(extra="allow")

    code: int = -32603
    message: str = "Unknown error"
    data: Any | None = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response, or a bare error when `id` is None."""

    jsonrpc: str = "2.0"
    id: str | int | None = None
    result: Any | None = None
    error: JsonRpcError | None = None

    @property
    def is_bare_error(self) -> bool:
        return self.id is None and self.error is not None


InboundMessage = JsonRpcResponse | JsonRpcNotification


def with_secret(params: list[Any] | tuple[Any, ...], secret: str) -> list[Any]:
    """Prepend the ``token:<secret>`` authorization parameter."""
    return [f"{TOKEN_PREFIX}{secret}", *params]


def encode_request(request_id: str, method: str, params: list[Any] | tuple[Any, ...]) -> str:
    """Serialize an outbound request envelope."""
    return JsonRpcRequest(id=request_id, method=method, params=list(params)).model_dump_json()


def parse_message(data: Any) -> InboundMessage | None:
    """Decode and classify an inbound payload.

    Returns None for malformed JSON, non-object payloads, and payloads
    matching no known shape.
    """
    try:
        body = json.loads(decode_message_data(data))
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        logger.debug(f"Dropping undecodable message: {e}")
        return None

    if not isinstance(body, dict):
        logger.debug(f"Dropping non-object message: {type(body).__name__}")
        return None

    try:
        if body.get("method") is not None:
            return JsonRpcNotification.model_validate(body)

        if "result" in body or body.get("error") is not None:
            return JsonRpcResponse.model_validate(body)
    except ValidationError as e:
        logger.debug(f"Dropping invalid envelope: {e}")
        return None

    logger.debug(f"Dropping unrecognized message with keys {sorted(body)}")
    return None
