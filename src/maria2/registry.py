"""Per-session notification subscriptions.

Listeners are kept per method name in insertion order. A listener may
be a plain function or a coroutine function; coroutine listeners are
scheduled as tasks on the running loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from .conn import Disposable
from .utils import once

logger = logging.getLogger(__name__)

L = TypeVar("L", bound=Callable[..., Any])


class NotificationRegistry:
    """Mapping of method name to an ordered set of listeners."""

    def __init__(self) -> None:
        # dict used as an insertion-ordered set
        self._listeners: dict[str, dict[Callable[..., Any], None]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, method: str, listener: L) -> Disposable[L]:
        """Add `listener` for `method`.

        Returns:
            Disposable whose ``dispose()`` removes the listener once
        """
        bucket = self._listeners.setdefault(method, {})
        bucket[listener] = None

        def dispose() -> L:
            bucket = self._listeners.get(method)
            if bucket is not None:
                bucket.pop(listener, None)
                if not bucket:
                    del self._listeners[method]
            return listener

        return Disposable(dispose=once(dispose))

    def listeners(self, method: str) -> list[Callable[..., Any]]:
        """Snapshot of the listeners currently registered for `method`."""
        return list(self._listeners.get(method, ()))

    def dispatch(self, method: str, args: tuple[Any, ...]) -> int:
        """Invoke every listener for `method` with `args`.

        A failing listener is logged and does not stop delivery to the
        others.

        Returns:
            Number of listeners invoked
        """
        listeners = self.listeners(method)
        for listener in listeners:
            try:
                result = listener(*args)
            except Exception:
                logger.exception(f"Error in notification listener for {method}")
                continue

            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(lambda t, m=method: self._on_task_done(t, m))

        return len(listeners)

    def _on_task_done(self, task: asyncio.Task[Any], method: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Error in async notification listener for {method}: {exc!r}")

    def clear(self) -> None:
        """Drop every subscription."""
        self._listeners.clear()

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._listeners.values())
