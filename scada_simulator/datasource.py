"""Looping, file-backed data source that stands in for device hardware.

Every simulated device reads one record per tick from a delimited text
file.  When the file is exhausted the source rewinds to its first data
record, so from the caller's point of view the stream never ends.

Example CSV::

    timestamp,phValue,status
    2024-01-01 00:00:00,7.12,normal
    2024-01-01 00:00:01,7.15,normal
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO

from scada_simulator.errors import DataSourceNotFoundError

__all__ = ["SimulatedDataSource"]

logger = logging.getLogger("scada_simulator.datasource")


class SimulatedDataSource:
    """Sequential line reader over a delimited file.

    Parameters:
        path:
            File to read.  Must exist, otherwise
            :class:`DataSourceNotFoundError` is raised.
        has_header:
            Whether the first line is a header that must never be
            returned.  ``None`` (default) means "yes for ``.csv`` files".
        encoding:
            Text encoding of the file.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        has_header: bool | None = None,
        encoding: str = "utf-8",
    ) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise DataSourceNotFoundError(self.path)

        self.has_header = self.path.suffix.lower() == ".csv" if has_header is None else has_header
        self._encoding = encoding
        self._at_end = False
        # Binary mode keeps tell() a plain byte offset that seek() accepts back.
        self._fh: IO[bytes] | None = self.path.open("rb")
        self._skip_header()
        logger.debug("Opened data source %s (header=%s)", self.path, self.has_header)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def at_end(self) -> bool:
        """``True`` once the last data record has been returned."""
        return self._at_end

    def is_at_end(self) -> bool:
        return self._at_end

    def read_line(self) -> str | None:
        """Return the next data record without its line terminator.

        If the source was already at its end it is rewound first, so the
        first data record is returned again.  Blank lines are skipped.
        ``None`` is only returned when the file holds no data records at all.
        """
        fh = self._require_open()
        if self._at_end:
            self.reset()

        self._skip_blank_lines(fh)
        raw = fh.readline()
        if not raw:
            self._at_end = True
            return None
        self._at_end = self._skip_blank_lines(fh)
        return raw.decode(self._encoding).rstrip("\r\n")

    def reset(self) -> None:
        """Rewind to the first data record (after the header)."""
        fh = self._require_open()
        fh.seek(0)
        self._skip_header()
        self._at_end = False

    # ------------------------------------------------------------------
    # Writing (append-only, independent of the read cursor)
    # ------------------------------------------------------------------

    def write_line(self, data: str) -> None:
        """Append *data* as a new line at the end of the file."""
        with self.path.open("a", encoding=self._encoding) as out:
            out.write(data + "\n")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._fh is not None and not self._fh.closed:
            self._fh.close()
        self._fh = None

    @property
    def closed(self) -> bool:
        return self._fh is None

    def __enter__(self) -> SimulatedDataSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        # Best-effort cleanup; the interpreter may already be tearing down.
        fh = getattr(self, "_fh", None)
        if fh is not None and not fh.closed:
            fh.close()

    def __repr__(self) -> str:
        return f"SimulatedDataSource({str(self.path)!r}, at_end={self._at_end})"

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_open(self) -> IO[bytes]:
        if self._fh is None:
            raise ValueError(f"Data source {self.path} is closed")
        return self._fh

    def _skip_header(self) -> None:
        if self.has_header and self._fh is not None:
            self._fh.readline()

    @staticmethod
    def _skip_blank_lines(fh: IO[bytes]) -> bool:
        """Advance past blank lines; ``True`` if that reaches end of file."""
        while True:
            offset = fh.tell()
            line = fh.readline()
            if not line:
                return True
            if line.strip():
                fh.seek(offset)
                return False
