"""Typed observer channel between the engine and the UI layer."""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock

from core.types import EventKind, GestureEvent

EventHandler = Callable[[GestureEvent], None]


class EventBus:
    """Per-kind handler registry.

    Handlers run synchronously, in subscription order, on the thread that
    processes the frame. Exceptions raised by a handler propagate to the
    caller of ``emit``.

    Usage:
        >>> bus = EventBus()
        >>> unsubscribe = bus.subscribe(EventKind.GRAB, lambda ev: print(ev))
        >>> bus.emit(GestureEvent(EventKind.GRAB, timestamp_ms=0.0))
        >>> unsubscribe()
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind | None, list[EventHandler]] = {}
        self._lock = Lock()

    def subscribe(self, kind: EventKind | None, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for one kind, or for every kind when kind is None.

        Returns:
            A callable that removes the handler again.
        """
        with self._lock:
            self._handlers.setdefault(kind, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(kind, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def handler_count(self, kind: EventKind | None = None) -> int:
        with self._lock:
            return len(self._handlers.get(kind, []))

    def emit(self, event: GestureEvent) -> None:
        with self._lock:
            handlers = [*self._handlers.get(event.kind, []), *self._handlers.get(None, [])]
        for handler in handlers:
            handler(event)
