"""Unit tests for the connection session.

Covers:
- Open sequence over connecting/open/closing/closed sockets
- Request correlation, secret injection and fail-fast behavior
- Timeout guard and response/timeout races
- Notification fan-out and bare server errors
- Socket close while requests are pending
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import ANY

import pytest

from maria2 import (
    Connection,
    ConnectionClosedError,
    MockSocket,
    NotOpenError,
    ReadyState,
    RemoteError,
    RequestTimeoutError,
    SendRequestOptions,
    SocketClosedError,
    SocketClosingError,
    TransportSendError,
    UnroutedServerError,
    close,
    create_mock,
    open,
)


async def wait_sent(socket: MockSocket, count: int = 1) -> list[dict[str, Any]]:
    """Yield to the loop until `count` payloads were sent."""
    for _ in range(100):
        if len(socket.sent) >= count:
            break
        await asyncio.sleep(0)
    return socket.sent_messages


def echo(result: Any):
    return lambda request: {"id": request["id"], "result": result}


# =============================================================================
# Open sequence
# =============================================================================


class TestOpen:
    """Tests for open() and close()."""

    @pytest.mark.asyncio
    async def test_open_on_open_socket(self) -> None:
        """An already open socket yields a session immediately."""
        socket = MockSocket()
        conn = await open(socket)

        assert isinstance(conn, Connection)
        assert conn.get_socket() is socket
        assert conn.get_secret() is None
        assert conn.timeout == 5.0

    @pytest.mark.asyncio
    async def test_open_waits_for_connecting_socket(self) -> None:
        """A connecting socket is awaited until its open event."""
        socket = MockSocket(ReadyState.CONNECTING)
        task = asyncio.create_task(open(socket))
        await asyncio.sleep(0)

        assert not task.done()

        socket.set_ready_state(ReadyState.OPEN)
        conn = await task

        assert conn.get_socket() is socket

    @pytest.mark.asyncio
    async def test_open_fails_when_connecting_socket_closes(self) -> None:
        """A connecting socket that closes instead of opening fails the open."""
        socket = MockSocket(ReadyState.CONNECTING)
        task = asyncio.create_task(open(socket))
        await asyncio.sleep(0)

        socket.set_ready_state(ReadyState.CLOSED)

        with pytest.raises(SocketClosedError):
            await task

    @pytest.mark.asyncio
    async def test_open_closing_socket_raises(self) -> None:
        with pytest.raises(SocketClosingError, match="Socket is closing"):
            await open(MockSocket(ReadyState.CLOSING))

    @pytest.mark.asyncio
    async def test_open_closed_socket_raises(self) -> None:
        with pytest.raises(SocketClosedError, match="Socket is closed"):
            await open(MockSocket(ReadyState.CLOSED))

    @pytest.mark.asyncio
    async def test_open_uses_preconfigured_options(self) -> None:
        """Options carried by the socket apply unless overridden."""
        conn = await open(create_mock(secret="pre", timeout=1.5))

        assert conn.get_secret() == "pre"
        assert conn.timeout == 1.5

    @pytest.mark.asyncio
    async def test_open_keyword_overrides_preconfigured(self) -> None:
        conn = await open(create_mock(secret="pre", timeout=1.5), secret="mine")

        assert conn.get_secret() == "mine"
        assert conn.timeout == 1.5

    @pytest.mark.asyncio
    async def test_close_forwards_code_and_reason(self) -> None:
        socket = MockSocket()
        conn = await open(socket)

        await close(conn, 1000, "bye")

        assert socket.close_calls == [(1000, "bye")]
        assert socket.ready_state == ReadyState.CLOSED


# =============================================================================
# Requests
# =============================================================================


class TestSendRequest:
    """Tests for request correlation."""

    @pytest.fixture
    def socket(self) -> MockSocket:
        return MockSocket()

    @pytest.mark.asyncio
    async def test_secret_prepended_and_result_resolved(self, socket: MockSocket) -> None:
        """A default request carries token:<secret> as its first param."""
        socket.set_reply(echo([]))
        conn = await open(socket, secret="abc")

        result = await conn.send_request(SendRequestOptions(method="aria2.tellActive"))

        assert result == []
        assert socket.sent_messages == [
            {
                "jsonrpc": "2.0",
                "id": ANY,
                "method": "aria2.tellActive",
                "params": ["token:abc"],
            }
        ]

    @pytest.mark.asyncio
    async def test_secret_follows_by_params(self, socket: MockSocket) -> None:
        socket.set_reply(echo("0001"))
        conn = await open(socket, secret="abc")

        await conn.send_request("aria2.addUri", ["http://example.com/a"], {"dir": "/tmp"})

        assert socket.sent_messages[0]["params"] == [
            "token:abc",
            ["http://example.com/a"],
            {"dir": "/tmp"},
        ]

    @pytest.mark.asyncio
    async def test_secret_disabled_per_request(self, socket: MockSocket) -> None:
        socket.set_reply(echo(["aria2.addUri"]))
        conn = await open(socket, secret="abc")

        await conn.send_request(SendRequestOptions(method="system.listMethods", secret=False))

        assert socket.sent_messages[0]["params"] == []

    @pytest.mark.asyncio
    async def test_no_secret_configured(self, socket: MockSocket) -> None:
        socket.set_reply(echo("OK"))
        conn = await open(socket)

        await conn.send_request("aria2.pause", "gid1")

        assert socket.sent_messages[0]["params"] == ["gid1"]

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, socket: MockSocket) -> None:
        socket.set_reply(echo("OK"))
        conn = await open(socket)

        await asyncio.gather(*(conn.send_request("aria2.getVersion") for _ in range(5)))

        ids = [message["id"] for message in socket.sent_messages]
        assert len(set(ids)) == 5

    @pytest.mark.asyncio
    async def test_out_of_order_responses(self, socket: MockSocket) -> None:
        """Each response resolves only the request with its id."""
        conn = await open(socket)
        first = asyncio.create_task(conn.send_request("aria2.tellStatus", "a"))
        second = asyncio.create_task(conn.send_request("aria2.tellStatus", "b"))
        sent = await wait_sent(socket, 2)

        socket.inject({"id": sent[1]["id"], "result": "status-b"})

        assert await second == "status-b"
        assert not first.done()
        assert conn.pending_ids == [sent[0]["id"]]

        socket.inject({"id": sent[0]["id"], "result": "status-a"})

        assert await first == "status-a"
        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_duplicate_response_is_dropped(self, socket: MockSocket) -> None:
        """Only the first response for an id is applied."""
        conn = await open(socket)
        task = asyncio.create_task(conn.send_request("aria2.getVersion"))
        sent = await wait_sent(socket)

        socket.inject({"id": sent[0]["id"], "result": "first"})
        socket.inject({"id": sent[0]["id"], "result": "second"})

        assert await task == "first"
        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_null_result_resolves(self, socket: MockSocket) -> None:
        socket.set_reply(echo(None))
        conn = await open(socket)

        assert await conn.send_request("aria2.saveSession") is None

    @pytest.mark.asyncio
    async def test_remote_error_rejects(self, socket: MockSocket) -> None:
        socket.set_reply(
            lambda request: {"id": request["id"], "error": {"code": 1, "message": "Unauthorized"}}
        )
        conn = await open(socket, secret="wrong")

        with pytest.raises(RemoteError) as exc_info:
            await conn.send_request("aria2.tellActive")

        assert exc_info.value.code == 1
        assert exc_info.value.message == "Unauthorized"
        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_request_on_closed_socket_fails_fast(self, socket: MockSocket) -> None:
        """No payload is sent when the socket is not open."""
        conn = await open(socket)
        await socket.close()

        with pytest.raises(NotOpenError):
            await conn.send_request("aria2.tellActive")

        assert socket.sent == []
        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_request_on_closing_socket_fails_fast(self, socket: MockSocket) -> None:
        conn = await open(socket)
        socket.set_ready_state(ReadyState.CLOSING)

        with pytest.raises(NotOpenError):
            await conn.send_request("aria2.tellActive")

        assert socket.sent == []

    @pytest.mark.asyncio
    async def test_send_failure_rejects_and_cleans_up(self, socket: MockSocket) -> None:
        conn = await open(socket)
        socket.fail_sends(OSError("broken pipe"))

        with pytest.raises(TransportSendError, match="broken pipe"):
            await conn.send_request("aria2.tellActive")

        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_request_reply_delivery_inside_send(self) -> None:
        """A reply delivered during send() still resolves the request."""
        socket = MockSocket(push=False)
        socket.set_reply(echo("inline"))
        conn = await open(socket)

        assert await conn.send_request("aria2.getVersion") == "inline"


# =============================================================================
# Timeouts
# =============================================================================


class TestTimeout:
    """Tests for the per-request timeout guard."""

    @pytest.mark.asyncio
    async def test_timeout_rejects_and_removes_entry(self) -> None:
        socket = MockSocket()
        conn = await open(socket)

        with pytest.raises(RequestTimeoutError, match="Timeout of 0.01s exceeded"):
            await conn.send_request(SendRequestOptions(method="aria2.tellActive", timeout=0.01))

        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_timeout_is_builtin_timeout_error(self) -> None:
        conn = await open(MockSocket())

        with pytest.raises(TimeoutError):
            await conn.send_request(SendRequestOptions(method="aria2.tellActive", timeout=0.01))

    @pytest.mark.asyncio
    async def test_session_default_timeout(self) -> None:
        conn = await open(MockSocket(), timeout=0.01)

        with pytest.raises(RequestTimeoutError):
            await conn.send_request("aria2.tellActive")

    @pytest.mark.asyncio
    async def test_late_response_after_timeout_is_inert(self) -> None:
        socket = MockSocket()
        conn = await open(socket)

        with pytest.raises(RequestTimeoutError):
            await conn.send_request(SendRequestOptions(method="aria2.tellActive", timeout=0.01))

        socket.inject({"id": socket.sent_messages[0]["id"], "result": []})

        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_timeout_false_waits_indefinitely(self) -> None:
        socket = MockSocket()
        conn = await open(socket, timeout=0.01)
        task = asyncio.create_task(
            conn.send_request(SendRequestOptions(method="aria2.tellActive", timeout=False))
        )
        sent = await wait_sent(socket)
        await asyncio.sleep(0.05)

        assert not task.done()

        socket.inject({"id": sent[0]["id"], "result": ["late"]})

        assert await task == ["late"]

    @pytest.mark.asyncio
    async def test_response_before_timeout_wins(self) -> None:
        socket = MockSocket()
        socket.set_reply(echo("fast"))
        conn = await open(socket)

        result = await conn.send_request(SendRequestOptions(method="aria2.getVersion", timeout=1))

        assert result == "fast"
        assert conn.pending_ids == []


# =============================================================================
# Notifications and server errors
# =============================================================================


class TestInboundDispatch:
    """Tests for notification fan-out and unrouted errors."""

    @pytest.mark.asyncio
    async def test_notification_delivered_once(self) -> None:
        socket = MockSocket()
        conn = await open(socket)
        calls: list[tuple[Any, ...]] = []
        conn.on_notification("onDownloadComplete", lambda *args: calls.append(args))

        socket.inject({"method": "onDownloadComplete", "params": ["gid1"]})

        assert calls == [("gid1",)]
        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_notification_without_listeners_is_dropped(self) -> None:
        socket = MockSocket()
        await open(socket)

        socket.inject({"method": "aria2.onDownloadStart", "params": [{"gid": "1"}]})

    @pytest.mark.asyncio
    async def test_notification_listener_failure_isolated(self) -> None:
        socket = MockSocket()
        conn = await open(socket)
        calls: list[str] = []

        def broken(event: dict[str, Any]) -> None:
            raise RuntimeError("listener bug")

        conn.on_notification("aria2.onDownloadStop", broken)
        conn.on_notification("aria2.onDownloadStop", lambda event: calls.append(event["gid"]))

        socket.inject({"method": "aria2.onDownloadStop", "params": [{"gid": "abc"}]})

        assert calls == ["abc"]

    @pytest.mark.asyncio
    async def test_disposed_listener_not_called(self) -> None:
        socket = MockSocket()
        conn = await open(socket)
        calls: list[str] = []

        def listener(event: dict[str, Any]) -> None:
            calls.append(event["gid"])

        handle = conn.on_notification("aria2.onDownloadStart", listener)
        assert handle.dispose() is listener
        assert handle.dispose() is listener

        socket.inject({"method": "aria2.onDownloadStart", "params": [{"gid": "1"}]})

        assert calls == []

    @pytest.mark.asyncio
    async def test_bare_error_routed_to_handler(self) -> None:
        socket = MockSocket()
        errors: list[Exception] = []
        await open(socket, on_server_error=errors.append)

        socket.inject({"error": {"code": -32700, "message": "Parse error."}})

        assert len(errors) == 1
        assert isinstance(errors[0], UnroutedServerError)
        assert errors[0].code == -32700

    @pytest.mark.asyncio
    async def test_bare_error_without_handler_dropped(self) -> None:
        socket = MockSocket()
        conn = await open(socket)

        socket.inject({"error": {"code": -32700, "message": "Parse error."}})

        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_server_error_handler_failure_isolated(self) -> None:
        socket = MockSocket()

        def handler(error: Exception) -> None:
            raise RuntimeError("handler bug")

        await open(socket, on_server_error=handler)

        socket.inject({"error": {"code": 1, "message": "x"}})

    @pytest.mark.asyncio
    async def test_malformed_payloads_dropped(self) -> None:
        socket = MockSocket()
        socket.set_reply(echo("OK"))
        conn = await open(socket)

        socket.inject("not json")
        socket.inject("[1, 2]")
        socket.inject({"id": "unknown", "result": 1})
        socket.inject({"jsonrpc": "2.0"})

        assert await conn.send_request("aria2.getVersion") == "OK"


# =============================================================================
# Socket close
# =============================================================================


class TestSocketClose:
    """Tests for session teardown when the socket closes."""

    @pytest.mark.asyncio
    async def test_pending_requests_fail_on_close(self) -> None:
        socket = MockSocket()
        conn = await open(socket)
        task = asyncio.create_task(
            conn.send_request(SendRequestOptions(method="aria2.tellActive", timeout=False))
        )
        await wait_sent(socket)

        await socket.close()

        with pytest.raises(ConnectionClosedError):
            await task
        assert conn.pending_ids == []

    @pytest.mark.asyncio
    async def test_subscriptions_cleared_on_close(self) -> None:
        socket = MockSocket()
        conn = await open(socket)
        calls: list[Any] = []
        conn.on_notification("aria2.onDownloadStart", calls.append)

        await socket.close()
        socket.inject({"method": "aria2.onDownloadStart", "params": [{"gid": "1"}]})

        assert calls == []
