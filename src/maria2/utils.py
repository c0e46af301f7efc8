"""Small helpers shared by the session engine and the transports."""

from __future__ import annotations

import asyncio
import functools
import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from .errors import RequestTimeoutError

T = TypeVar("T")
R = TypeVar("R")


def once(fn: Callable[..., R]) -> Callable[..., R]:
    """Wrap `fn` so only the first call runs it.

    Later calls return the first call's result without invoking `fn`.
    """
    triggered = False
    result: Any = None

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> R:
        nonlocal triggered, result
        if not triggered:
            triggered = True
            result = fn(*args, **kwargs)
        return result

    return wrapper


def random_uuid() -> str:
    """Generate a correlation id."""
    return str(uuid.uuid4())


async def use_timeout(
    awaitable: Awaitable[T],
    timeout: float,
    on_timeout: Callable[[], Any] | None = None,
) -> T:
    """Race `awaitable` against a `timeout` second deadline.

    If the deadline wins, `on_timeout` runs before RequestTimeoutError
    is raised. The awaitable is cancelled in that case.

    Raises:
        RequestTimeoutError: If the deadline passes first
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except TimeoutError as e:
        if on_timeout is not None:
            on_timeout()
        raise RequestTimeoutError(timeout) from e


def decode_message_data(data: str | bytes | bytearray | Iterable[str | bytes]) -> str:
    """Turn an inbound message payload into text.

    Accepts a single text frame, a single binary frame, or a sequence of
    chunks (as collected from a streamed HTTP body).
    """
    if isinstance(data, str):
        return data
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data).decode("utf-8")

    # Join as bytes so multi-byte characters split across chunks survive
    buf = b"".join(
        chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk) for chunk in data
    )
    return buf.decode("utf-8")
