"""Typed publish/subscribe channel used for every device event.

Devices expose one :class:`EventChannel` per event kind (reading changed,
state changed, ...).  Handlers are plain callables invoked synchronously,
in subscription order, on the thread that emits the event.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

__all__ = ["EventChannel"]

T = TypeVar("T")

Handler = Callable[[object, T], None]


class EventChannel(Generic[T]):
    """An ordered list of ``(sender, payload)`` handlers.

    Subscribing the same handler twice is a no-op so a re-link never
    produces duplicate deliveries.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._handlers: list[Handler[T]] = []

    def subscribe(self, handler: Handler[T]) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: Handler[T]) -> None:
        """Remove *handler*; unknown handlers are ignored."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, sender: object, payload: T) -> None:
        """Deliver *payload* to every handler.

        Iterates over a copy so handlers may (un)subscribe while running.
        Exceptions raised by a handler propagate to the emitter.
        """
        for handler in list(self._handlers):
            handler(sender, payload)

    def clear(self) -> None:
        self._handlers.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"EventChannel({self.name!r}, subscribers={len(self._handlers)})"
