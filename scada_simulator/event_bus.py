"""System event bus - one ordered stream for every notable occurrence.

Device events, user actions and faults are wrapped into
:class:`SystemEvent` records, written to the ``scada_simulator.events``
logger as one text line each, kept in a bounded history and fanned out
to every attached :class:`EventListener`.
"""

from __future__ import annotations

import collections
import logging
import threading
from collections.abc import Callable
from typing import Any

from scada_simulator.listeners.base import EventListener
from scada_simulator.listeners.callback import CallbackListener
from scada_simulator.models import SystemEvent, SystemEventType

__all__ = ["SystemEventBus"]

logger = logging.getLogger("scada_simulator.event_bus")
event_logger = logging.getLogger("scada_simulator.events")

_LOG_LEVELS = {
    SystemEventType.ERROR: logging.ERROR,
    SystemEventType.WARNING: logging.WARNING,
    SystemEventType.ALERT: logging.WARNING,
}


class SystemEventBus:
    """Publishes :class:`SystemEvent` records in a single total order.

    Publishing is serialised by a re-entrant lock, so events published
    from an operator thread interleave cleanly with those from the
    ticking thread, and a listener may itself publish.

    Parameters:
        history_size: Number of most recent events kept in :attr:`history`.
    """

    def __init__(self, *, history_size: int = 1000) -> None:
        self._history: collections.deque[SystemEvent] = collections.deque(maxlen=history_size)
        self._listeners: list[EventListener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Listener management
    # ------------------------------------------------------------------

    def add_listener(self, listener: EventListener | Callable[[SystemEvent], Any]) -> EventListener:
        """Attach a listener (or any callable accepting a ``SystemEvent``)."""
        if not isinstance(listener, EventListener):
            listener = CallbackListener(listener)
        listener.open()
        with self._lock:
            self._listeners.append(listener)
        return listener

    def remove_listener(self, listener: EventListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self) -> list[EventListener]:
        with self._lock:
            return list(self._listeners)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(
        self,
        source: str,
        message: str,
        event_type: SystemEventType = SystemEventType.INFO,
    ) -> SystemEvent:
        """Create, log and distribute one event; returns it."""
        return self.publish_event(SystemEvent(source=source, message=message, event_type=event_type))

    def publish_event(self, event: SystemEvent) -> SystemEvent:
        with self._lock:
            self._history.append(event)
            event_logger.log(_LOG_LEVELS.get(event.event_type, logging.INFO), "%s", event.to_line())
            for listener in list(self._listeners):
                if not listener.accepts(event):
                    continue
                try:
                    listener.handle(event)
                except Exception:
                    logger.exception("%s failed to handle event from %s", type(listener).__name__, event.source)
        return event

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def history(self, event_type: SystemEventType | None = None) -> list[SystemEvent]:
        """Return retained events, oldest first, optionally filtered by type."""
        with self._lock:
            events = list(self._history)
        if event_type is None:
            return events
        return [e for e in events if e.event_type == event_type]

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    def close(self) -> None:
        """Flush and close every listener."""
        with self._lock:
            listeners = list(self._listeners)
            self._listeners.clear()
        for listener in listeners:
            try:
                listener.flush()
            except Exception:
                logger.exception("%s failed to flush", type(listener).__name__)
            try:
                listener.close()
            except Exception:
                logger.exception("%s failed to close", type(listener).__name__)
