"""File listener - appends system events to a log file.

The file is opened in append mode, one event per line, either as the
plain text log line or as JSON Lines.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Any

from scada_simulator.listeners.base import EventListener
from scada_simulator.models import SystemEvent

__all__ = ["FileListener"]

logger = logging.getLogger("scada_simulator.listeners.file")


class FileListener(EventListener):
    """Append-only event log.

    Parameters:
        path: Log file (parent directories are created automatically).
        format: ``"text"`` or ``"jsonl"``.
        **kwargs: Forwarded to :class:`EventListener`.
    """

    def __init__(self, *, path: str | Path = "./logs/events.log", format: str = "text", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._path = Path(path)
        self._format = format.lower()
        if self._format not in ("text", "jsonl"):
            raise ValueError(f"Unknown file format: {format}")
        self._file: IO[str] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        self._ensure_open()

    def handle(self, event: SystemEvent) -> None:
        fh = self._ensure_open()
        line = event.to_json() if self._format == "jsonl" else event.to_line()
        fh.write(line + "\n")
        fh.flush()

    def flush(self) -> None:
        if self._file is not None and not self._file.closed:
            self._file.flush()

    def close(self) -> None:
        if self._file is not None and not self._file.closed:
            self._file.close()
        self._file = None

    def _ensure_open(self) -> IO[str]:
        if self._file is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "a", encoding="utf-8")  # noqa: SIM115
            logger.info("FileListener appending %s events to %s", self._format, self._path)
        return self._file
