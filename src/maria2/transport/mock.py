"""Mock socket for testing.

Records sent payloads and lets tests drive ready-state transitions and
inbound messages. No actual I/O - everything is in-memory.

Usage:
    socket = MockSocket()
    socket.set_reply(lambda request: {"id": request["id"], "result": "OK"})

    conn = await open(socket, secret="abc")
    assert await conn.send_request("aria2.getVersion") == "OK"
    assert socket.sent_messages[0]["params"] == ["token:abc"]
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

from ..conn import MessageEvent, OpenOptions, ReadyState
from .base import BaseSocket

Reply = Callable[[dict[str, Any]], Any]


class MockSocket(BaseSocket):
    """In-memory socket.

    Args:
        ready_state: Initial ready state
        options: Preconfigured open options
        push: Deliver auto-replies on a later loop iteration (push
            transport) instead of inside ``send()`` (request/reply)
    """

    def __init__(
        self,
        ready_state: ReadyState = ReadyState.OPEN,
        options: OpenOptions | None = None,
        push: bool = True,
    ) -> None:
        super().__init__(options)
        self._ready_state = ready_state
        self._push = push
        self._reply: Reply | None = None
        self._send_error: Exception | None = None
        self.sent: list[str] = []
        self.close_calls: list[tuple[int | None, str | None]] = []

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        """Sent payloads decoded from JSON."""
        return [json.loads(data) for data in self.sent]

    def set_reply(self, reply: Reply | None) -> None:
        """Answer every sent request with ``reply(request)``.

        A reply of None sends nothing back.
        """
        self._reply = reply

    def fail_sends(self, error: Exception | None) -> None:
        """Make ``send()`` raise `error` (None to stop failing)."""
        self._send_error = error

    def set_ready_state(self, state: ReadyState) -> None:
        """Move to `state`, firing "open"/"close" as a real socket would."""
        self._set_state(state)

    def inject(self, message: dict[str, Any] | str | bytes | list[Any]) -> None:
        """Deliver an inbound message immediately."""
        data = json.dumps(message) if isinstance(message, dict) else message
        self._dispatch("message", MessageEvent(data=data))

    async def send(self, data: str) -> None:
        if self._send_error is not None:
            raise self._send_error
        self.sent.append(data)

        if self._reply is None:
            return
        reply = self._reply(json.loads(data))
        if reply is None:
            return
        if self._push:
            asyncio.get_running_loop().call_soon(self.inject, reply)
        else:
            self.inject(reply)

    async def close(self, code: int | None = None, reason: str | None = None) -> None:
        self.close_calls.append((code, reason))
        self._set_state(ReadyState.CLOSED)


def create_mock(ready_state: ReadyState = ReadyState.OPEN, **options: Any) -> MockSocket:
    """Create a mock socket, optionally with preconfigured open options."""
    return MockSocket(ready_state, OpenOptions(**options) if options else None)
