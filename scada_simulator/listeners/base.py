"""Event listener abstraction.

A listener receives every :class:`SystemEvent` published on the system
event bus, synchronously and in publication order.  Concrete listeners
implement ``open``, ``handle``, ``flush`` and ``close``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from scada_simulator.models import SystemEvent, SystemEventType

__all__ = ["EventListener"]


class EventListener(ABC):
    """Abstract base class for all event listeners.

    Parameters:
        event_types:
            Only deliver events of these types.  ``None`` (default)
            delivers everything.
    """

    def __init__(self, *, event_types: list[str] | None = None) -> None:
        self.event_types = {SystemEventType(t) for t in event_types} if event_types else None

    def accepts(self, event: SystemEvent) -> bool:
        return self.event_types is None or event.event_type in self.event_types

    def open(self) -> None:
        """Acquire resources.  Called once when attached to a bus."""

    @abstractmethod
    def handle(self, event: SystemEvent) -> None:
        """Process one event.  Must not block the ticking thread for long."""

    def flush(self) -> None:
        """Flush any internal buffers."""

    def close(self) -> None:
        """Release resources."""
