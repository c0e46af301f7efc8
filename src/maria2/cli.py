"""maria2 command line.

Usage:
    maria2 call aria2.tellActive                  # Call a method, print JSON result
    maria2 call aria2.addUri '["https://x/y.iso"]'
    maria2 call system.listMethods --no-secret
    maria2 version                                # Show aria2 version
    maria2 --url ws://localhost:6800/jsonrpc listen   # Print notifications

Connection settings default to MARIA2_URL / MARIA2_SECRET / MARIA2_TIMEOUT.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click

from .client import connect
from .config import ClientConfig
from .conn import SendRequestOptions
from .errors import Maria2Error

logger = logging.getLogger(__name__)

NOTIFICATIONS = [
    "aria2.onDownloadStart",
    "aria2.onDownloadPause",
    "aria2.onDownloadStop",
    "aria2.onDownloadComplete",
    "aria2.onDownloadError",
    "aria2.onBtDownloadComplete",
]


def parse_param(value: str) -> Any:
    """Decode a CLI parameter as JSON, falling back to the raw string."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


@click.group()
@click.option("--url", default=None, help="RPC endpoint (ws://, wss://, http:// or https://)")
@click.option("--secret", default=None, help="RPC secret")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (logs go to stderr)",
)
@click.pass_context
def main(
    ctx: click.Context,
    url: str | None,
    secret: str | None,
    timeout: float | None,
    log_level: str,
) -> None:
    """maria2 - aria2 JSON-RPC client."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = ClientConfig.from_env()
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    ctx.obj = config.merged(url=url, secret=secret, timeout=timeout)


@main.command()
@click.argument("method")
@click.argument("params", nargs=-1)
@click.option("--no-secret", is_flag=True, help="Do not send the RPC secret")
@click.pass_obj
def call(config: ClientConfig, method: str, params: tuple[str, ...], no_secret: bool) -> None:
    """Call METHOD with JSON-encoded PARAMS and print the result."""
    parsed = [parse_param(p) for p in params]
    try:
        result = asyncio.run(_call(config, method, parsed, not no_secret))
    except (Maria2Error, ConnectionError) as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(result, indent=2))


async def _call(config: ClientConfig, method: str, params: list[Any], use_secret: bool) -> Any:
    client = await connect(config.url, secret=config.secret, timeout=config.timeout)
    try:
        return await client.conn.send_request(
            SendRequestOptions(method=method, secret=use_secret), *params
        )
    finally:
        await client.close()


@main.command()
@click.pass_obj
def version(config: ClientConfig) -> None:
    """Show the aria2 version and enabled features."""
    try:
        info = asyncio.run(_version(config))
    except (Maria2Error, ConnectionError) as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"aria2 {info.version}")
    for feature in info.enabled_features:
        click.echo(f"  {feature}")


async def _version(config: ClientConfig) -> Any:
    client = await connect(config.url, secret=config.secret, timeout=config.timeout)
    try:
        return await client.aria2.get_version()
    finally:
        await client.close()


@main.command()
@click.option(
    "--event",
    "events",
    multiple=True,
    type=click.Choice(NOTIFICATIONS),
    help="Notification to print (repeatable, default all)",
)
@click.pass_obj
def listen(config: ClientConfig, events: tuple[str, ...]) -> None:
    """Print notifications as JSON lines until the connection closes."""
    if not config.is_websocket:
        raise click.UsageError("listen requires a ws:// or wss:// --url")
    try:
        asyncio.run(_listen(config, list(events) or NOTIFICATIONS))
    except KeyboardInterrupt:
        pass
    except (Maria2Error, ConnectionError) as e:
        raise click.ClickException(str(e)) from e


async def _listen(config: ClientConfig, events: list[str]) -> None:
    client = await connect(config.url, secret=config.secret, timeout=config.timeout)
    closed = asyncio.Event()
    client.conn.get_socket().add_event_listener("close", lambda event: closed.set(), once=True)

    for name in events:

        def printer(*params: Any, name: str = name) -> None:
            click.echo(json.dumps({"method": name, "params": list(params)}))

        client.aria2.when(name, printer)

    logger.info(f"Listening for {len(events)} notification type(s) on {config.url}")
    try:
        await closed.wait()
    finally:
        await client.close()
