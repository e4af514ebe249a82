"""Pluggable system-event listeners.

Import any listener you need directly from this package::

    from scada_simulator.listeners import ConsoleListener, FileListener
"""

from __future__ import annotations

from scada_simulator.listeners.base import EventListener
from scada_simulator.listeners.callback import CallbackListener
from scada_simulator.listeners.console import ConsoleListener
from scada_simulator.listeners.factory import create_listener, register_listener
from scada_simulator.listeners.file import FileListener

__all__ = [
    "CallbackListener",
    "ConsoleListener",
    "EventListener",
    "FileListener",
    "create_listener",
    "register_listener",
]
