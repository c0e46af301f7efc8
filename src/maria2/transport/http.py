"""HTTP request/reply transport.

Every send is one POST; the reply body becomes exactly one "message"
event. There is no push channel, so notifications never arrive over
HTTP.
"""

from __future__ import annotations

import logging

import httpx

from ..conn import MessageEvent, OpenOptions, ReadyState
from ..utils import decode_message_data
from .base import BaseSocket

logger = logging.getLogger(__name__)


class HTTPSocket(BaseSocket):
    """Socket that POSTs each payload to a JSON-RPC endpoint.

    Always OPEN until ``close()`` is called.
    """

    def __init__(
        self,
        url: str,
        options: OpenOptions | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(options)
        self.url = url
        self._ready_state = ReadyState.OPEN
        self._owns_client = client is None
        self._http_client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def send(self, data: str) -> None:
        """POST `data` and deliver the reply as a "message" event.

        Raises:
            ConnectionError: If the socket is closed
            httpx.HTTPError: On connection-level failures
        """
        if self._ready_state != ReadyState.OPEN:
            raise ConnectionError("HTTP socket is closed")

        async with self._http_client.stream(
            "POST",
            self.url,
            content=data.encode("utf-8"),
            headers={"content-type": "application/json"},
        ) as response:
            chunks = [chunk async for chunk in response.aiter_bytes()]

        if response.is_error:
            # aria2 reports RPC errors with 4xx codes and a JSON-RPC body
            logger.debug(f"POST {self.url} returned {response.status_code}")

        self._dispatch("message", MessageEvent(data=decode_message_data(chunks)))

    async def close(self, code: int | None = None, reason: str | None = None) -> None:
        """Mark the socket closed and release the HTTP client."""
        if self._ready_state == ReadyState.CLOSED:
            return
        self._set_state(ReadyState.CLOSED)
        if self._owns_client:
            await self._http_client.aclose()


def create_http(
    url: str,
    *,
    secret: str | None = None,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
) -> HTTPSocket:
    """Create an HTTP socket.

    Args:
        url: Endpoint URL, e.g. ``http://localhost:6800/jsonrpc``
        secret: Preconfigured RPC secret
        timeout: Preconfigured default request timeout (seconds)
        client: Optional httpx client to reuse (not closed by the socket)
    """
    options = OpenOptions().merged(secret=secret, timeout=timeout)
    return HTTPSocket(url, options, client=client)
