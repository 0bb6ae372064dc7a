"""Routing lifecycle events.

The router emits a ``RouteEvent`` before matching (``ROUTING``) and after
a route was found, right before it runs (``ROUTE_MATCHED``). Any object
with an ``emit`` method can receive them; ``RouteEventBus`` is a small
in-process implementation with per-name listeners.

Free-threading safety:
    - RouteEvent is a frozen dataclass (immutable, safe to share)
    - RouteEventBus uses a Lock to protect the listener table
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from waypoint._internal.invoke import invoke

ROUTING = "waypoint.routing"
ROUTE_MATCHED = "waypoint.route_matched"

type Listener = Callable[[RouteEvent], Any]


@dataclass(frozen=True, slots=True)
class RouteEvent:
    """A routing lifecycle notification.

    ``route`` is ``None`` for ``ROUTING`` events, which fire before
    matching.
    """

    type: str
    event: Any
    router: Any = None
    route: Any = None


@runtime_checkable
class EventEmitter(Protocol):
    """What the router needs from an event emitter."""

    def emit(self, event: RouteEvent) -> Any: ...


class RouteEventBus:
    """Named-listener emitter.

    Usage::

        bus = RouteEventBus()
        bus.on(ROUTE_MATCHED, lambda e: print(e.route))
        router = Router(emitter=bus)
    """

    __slots__ = ("_listeners", "_lock")

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._lock = threading.Lock()

    def on(self, name: str, listener: Listener) -> RouteEventBus:
        with self._lock:
            self._listeners.setdefault(name, []).append(listener)
        return self

    def off(self, name: str, listener: Listener) -> RouteEventBus:
        with self._lock:
            listeners = self._listeners.get(name, [])
            if listener in listeners:
                listeners.remove(listener)
        return self

    def listeners(self, name: str) -> list[Listener]:
        with self._lock:
            return list(self._listeners.get(name, ()))

    async def emit(self, event: RouteEvent) -> None:
        """Call every listener registered for ``event.type``, in order."""
        for listener in self.listeners(event.type):
            await invoke(listener, event)
