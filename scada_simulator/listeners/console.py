"""Console listener - prints system events to stdout.

Useful for debugging, demos, and watching the plant from a terminal.
"""

from __future__ import annotations

import sys
from typing import IO, Any

from scada_simulator.listeners.base import EventListener
from scada_simulator.models import SystemEvent

__all__ = ["ConsoleListener"]


class ConsoleListener(EventListener):
    """Writes system events to the console (stdout by default).

    Parameters:
        fmt: Output format - ``"text"`` (one log line per event) or
             ``"json"`` (one JSON object per event).
        stream: Writable file-like object (defaults to ``sys.stdout``).
        **kwargs: Forwarded to :class:`EventListener`.
    """

    def __init__(self, *, fmt: str = "text", stream: IO[str] | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if fmt not in ("text", "json"):
            raise ValueError(f"Unknown console format: {fmt}")
        self._fmt = fmt
        self._stream = stream or sys.stdout

    def handle(self, event: SystemEvent) -> None:
        if self._fmt == "json":
            self._stream.write(event.to_json() + "\n")
        else:
            self._stream.write(event.to_line() + "\n")
        self._stream.flush()

    def flush(self) -> None:
        self._stream.flush()
