"""Typed aria2 client.

One explicit method per remote call; every call goes through
``Connection.send_request``. aria2.* methods carry the RPC secret,
system.* methods never do.

Usage:
    async with await connect("ws://localhost:6800/jsonrpc", secret="s3cret") as client:
        gid = await client.aria2.add_uri(["https://example.com/file.iso"])
        client.aria2.on_download_complete(lambda event: print(event["gid"]))
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar
from urllib.parse import urlparse

from .conn import Disposable, SendRequestOptions
from .protocol import with_secret
from .session import Connection, open
from .transport import create_http, create_websocket
from .types import GlobalStat, MulticallItem, SessionInfo, VersionInfo

logger = logging.getLogger(__name__)

L = TypeVar("L", bound=Callable[..., Any])

Position = Literal["POS_SET", "POS_CUR", "POS_END"]


def _optional(*pairs: tuple[Any, Any]) -> list[Any]:
    """Build trailing optional positional params.

    Each pair is ``(value, placeholder)``. Trailing unset values are
    dropped; an unset value followed by a set one becomes its placeholder.
    """
    values = [value for value, _ in pairs]
    while values and values[-1] is None:
        values.pop()
    return [pairs[i][1] if value is None else value for i, value in enumerate(values)]


@dataclass
class Aria2API:
    """aria2.* methods and notifications."""

    _client: Aria2Client

    async def _call(self, method: str, *params: Any) -> Any:
        return await self._client.conn.send_request(SendRequestOptions(method=method), *params)

    # Adding downloads

    async def add_uri(
        self,
        uris: list[str],
        options: dict[str, Any] | None = None,
        position: int | None = None,
    ) -> str:
        """Add a download from HTTP/FTP/SFTP/BitTorrent URIs. Returns the GID."""
        return await self._call("aria2.addUri", uris, *_optional((options, {}), (position, None)))

    async def add_torrent(
        self,
        torrent: bytes | str,
        uris: list[str] | None = None,
        options: dict[str, Any] | None = None,
        position: int | None = None,
    ) -> str:
        """Add a BitTorrent download.

        `torrent` is the raw .torrent content, or already base64-encoded text.
        """
        if isinstance(torrent, bytes):
            torrent = base64.b64encode(torrent).decode("ascii")
        return await self._call(
            "aria2.addTorrent",
            torrent,
            *_optional((uris, []), (options, {}), (position, None)),
        )

    async def add_metalink(
        self,
        metalink: bytes | str,
        options: dict[str, Any] | None = None,
        position: int | None = None,
    ) -> list[str]:
        """Add a Metalink download. Returns the GIDs."""
        if isinstance(metalink, bytes):
            metalink = base64.b64encode(metalink).decode("ascii")
        return await self._call(
            "aria2.addMetalink", metalink, *_optional((options, {}), (position, None))
        )

    # Download control

    async def remove(self, gid: str) -> str:
        return await self._call("aria2.remove", gid)

    async def force_remove(self, gid: str) -> str:
        return await self._call("aria2.forceRemove", gid)

    async def pause(self, gid: str) -> str:
        return await self._call("aria2.pause", gid)

    async def pause_all(self) -> str:
        return await self._call("aria2.pauseAll")

    async def force_pause(self, gid: str) -> str:
        return await self._call("aria2.forcePause", gid)

    async def force_pause_all(self) -> str:
        return await self._call("aria2.forcePauseAll")

    async def unpause(self, gid: str) -> str:
        return await self._call("aria2.unpause", gid)

    async def unpause_all(self) -> str:
        return await self._call("aria2.unpauseAll")

    # Status

    async def tell_status(self, gid: str, keys: list[str] | None = None) -> dict[str, Any]:
        return await self._call("aria2.tellStatus", gid, *_optional((keys, [])))

    async def get_uris(self, gid: str) -> list[dict[str, Any]]:
        return await self._call("aria2.getUris", gid)

    async def get_files(self, gid: str) -> list[dict[str, Any]]:
        return await self._call("aria2.getFiles", gid)

    async def get_peers(self, gid: str) -> list[dict[str, Any]]:
        return await self._call("aria2.getPeers", gid)

    async def get_servers(self, gid: str) -> list[dict[str, Any]]:
        return await self._call("aria2.getServers", gid)

    async def tell_active(self, keys: list[str] | None = None) -> list[dict[str, Any]]:
        return await self._call("aria2.tellActive", *_optional((keys, [])))

    async def tell_waiting(
        self, offset: int, num: int, keys: list[str] | None = None
    ) -> list[dict[str, Any]]:
        return await self._call("aria2.tellWaiting", offset, num, *_optional((keys, [])))

    async def tell_stopped(
        self, offset: int, num: int, keys: list[str] | None = None
    ) -> list[dict[str, Any]]:
        return await self._call("aria2.tellStopped", offset, num, *_optional((keys, [])))

    async def change_position(self, gid: str, pos: int, how: Position) -> int:
        return await self._call("aria2.changePosition", gid, pos, how)

    async def change_uri(
        self,
        gid: str,
        file_index: int,
        del_uris: list[str],
        add_uris: list[str],
        position: int | None = None,
    ) -> list[int]:
        """Remove `del_uris` from and add `add_uris` to one file of a download.

        Returns [number of URIs deleted, number of URIs added].
        """
        return await self._call(
            "aria2.changeUri", gid, file_index, del_uris, add_uris, *_optional((position, None))
        )

    # Options

    async def get_option(self, gid: str) -> dict[str, str]:
        return await self._call("aria2.getOption", gid)

    async def change_option(self, gid: str, options: dict[str, Any]) -> str:
        return await self._call("aria2.changeOption", gid, options)

    async def get_global_option(self) -> dict[str, str]:
        return await self._call("aria2.getGlobalOption")

    async def change_global_option(self, options: dict[str, Any]) -> str:
        return await self._call("aria2.changeGlobalOption", options)

    # Server

    async def get_global_stat(self) -> GlobalStat:
        return GlobalStat.model_validate(await self._call("aria2.getGlobalStat"))

    async def purge_download_result(self) -> str:
        return await self._call("aria2.purgeDownloadResult")

    async def remove_download_result(self, gid: str) -> str:
        return await self._call("aria2.removeDownloadResult", gid)

    async def get_version(self) -> VersionInfo:
        return VersionInfo.model_validate(await self._call("aria2.getVersion"))

    async def get_session_info(self) -> SessionInfo:
        return SessionInfo.model_validate(await self._call("aria2.getSessionInfo"))

    async def shutdown(self) -> str:
        return await self._call("aria2.shutdown")

    async def force_shutdown(self) -> str:
        return await self._call("aria2.forceShutdown")

    async def save_session(self) -> str:
        return await self._call("aria2.saveSession")

    # Notifications. Listeners receive the event object, e.g. {"gid": "..."}.

    def when(self, method: str, listener: L) -> Disposable[L]:
        """Subscribe to an arbitrary notification method."""
        return self._client.conn.on_notification(method, listener)

    def on_download_start(self, listener: L) -> Disposable[L]:
        return self.when("aria2.onDownloadStart", listener)

    def on_download_pause(self, listener: L) -> Disposable[L]:
        return self.when("aria2.onDownloadPause", listener)

    def on_download_stop(self, listener: L) -> Disposable[L]:
        return self.when("aria2.onDownloadStop", listener)

    def on_download_complete(self, listener: L) -> Disposable[L]:
        return self.when("aria2.onDownloadComplete", listener)

    def on_download_error(self, listener: L) -> Disposable[L]:
        return self.when("aria2.onDownloadError", listener)

    def on_bt_download_complete(self, listener: L) -> Disposable[L]:
        return self.when("aria2.onBtDownloadComplete", listener)


@dataclass
class SystemAPI:
    """system.* methods. These never carry the session-level secret."""

    _client: Aria2Client

    async def multicall(self, *calls: MulticallItem | dict[str, Any]) -> list[Any]:
        """Run several calls in one request.

        Each result is wrapped in a one-element list, or is an error
        object for a failed sub-call. When the session has a secret it
        is injected into every sub-call's params.
        """
        conn = self._client.conn
        secret = conn.get_secret()

        items: list[dict[str, Any]] = []
        for call in calls:
            if isinstance(call, MulticallItem):
                item = call.model_dump(by_alias=True)
            else:
                item = dict(call)
                item["params"] = list(item.get("params", []))
            if secret is not None:
                item["params"] = with_secret(item["params"], secret)
            items.append(item)

        return await conn.send_request(
            SendRequestOptions(method="system.multicall", secret=False), items
        )

    async def list_methods(self) -> list[str]:
        return await self._client.conn.send_request(
            SendRequestOptions(method="system.listMethods", secret=False)
        )

    async def list_notifications(self) -> list[str]:
        return await self._client.conn.send_request(
            SendRequestOptions(method="system.listNotifications", secret=False)
        )


class Aria2Client:
    """aria2 client over an open Connection."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn
        self.aria2 = Aria2API(self)
        self.system = SystemAPI(self)

    async def close(self, code: int | None = None, reason: str | None = None) -> None:
        await self.conn.get_socket().close(code, reason)

    async def __aenter__(self) -> Aria2Client:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


async def connect(
    url: str,
    *,
    secret: str | None = None,
    timeout: float | None = None,
    on_server_error: Callable[[Exception], Any] | None = None,
) -> Aria2Client:
    """Open a client for `url`.

    ws:// and wss:// use the WebSocket transport; http:// and https:// use
    one POST per request (no notifications).

    Raises:
        ValueError: If the URL scheme is not supported
    """
    scheme = urlparse(url).scheme
    if scheme in ("ws", "wss"):
        socket = create_websocket(url)
    elif scheme in ("http", "https"):
        socket = create_http(url)
    else:
        raise ValueError(f"Unsupported URL scheme: {scheme!r}")

    logger.debug(f"Connecting to {url} over {type(socket).__name__}")
    conn = await open(socket, secret=secret, timeout=timeout, on_server_error=on_server_error)
    return Aria2Client(conn)
