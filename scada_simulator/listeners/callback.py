"""Callback listener - delegates events to a user-provided Python callable.

This allows any custom logic (a UI model, a test collector) to follow
the event stream without subclassing :class:`EventListener`::

    bus.add_listener(lambda event: print(event.message))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from scada_simulator.listeners.base import EventListener
from scada_simulator.models import SystemEvent

__all__ = ["CallbackListener"]


class CallbackListener(EventListener):
    """Wraps a user-supplied function as a listener.

    Parameters:
        callback: ``(event: SystemEvent) -> None``.  Runs on the ticking
            thread, so it should hand off slow work.
        **kwargs: Forwarded to :class:`EventListener`.
    """

    def __init__(self, callback: Callable[[SystemEvent], Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._callback = callback

    def handle(self, event: SystemEvent) -> None:
        self._callback(event)
