"""Base class for sockets with per-instance event listeners."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from ..conn import EventListener, EventType, MessageEvent, OpenOptions, ReadyState

logger = logging.getLogger(__name__)


class BaseSocket(ABC):
    """Common listener bookkeeping for transports.

    Provides:
    - ready_state storage
    - add/remove of "open", "message" and "close" listeners
    - dispatch with once-listeners removed before they run

    Subclasses implement send() and close().
    """

    def __init__(self, options: OpenOptions | None = None) -> None:
        self.options = options
        self._ready_state = ReadyState.CONNECTING
        self._listeners: dict[str, list[tuple[EventListener, bool]]] = {}

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    def add_event_listener(
        self, type: EventType, listener: EventListener, once: bool = False
    ) -> None:
        self._listeners.setdefault(type, []).append((listener, once))

    def remove_event_listener(self, type: EventType, listener: EventListener) -> None:
        entries = self._listeners.get(type)
        if not entries:
            return
        self._listeners[type] = [entry for entry in entries if entry[0] is not listener]

    def _dispatch(self, type: EventType, event: MessageEvent | None = None) -> None:
        """Deliver `event` to every listener of `type`."""
        event = event or MessageEvent()
        entries = self._listeners.get(type, [])
        if not entries:
            return

        self._listeners[type] = [entry for entry in entries if not entry[1]]
        for listener, _ in entries:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Error in {type} listener")

    def _set_state(self, state: ReadyState) -> None:
        if state == self._ready_state:
            return
        logger.debug(f"{self.__class__.__name__} {self._ready_state.name} -> {state.name}")
        self._ready_state = state
        if state == ReadyState.OPEN:
            self._dispatch("open")
        elif state == ReadyState.CLOSED:
            self._dispatch("close")

    @abstractmethod
    async def send(self, data: str) -> None:
        """Transmit one text payload."""
        ...

    @abstractmethod
    async def close(self, code: int | None = None, reason: str | None = None) -> None:
        """Close the transport."""
        ...
