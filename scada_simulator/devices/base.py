"""Device abstraction layer.

Provides:
- ``Device``       - lifecycle state machine and telemetry contract shared
                     by every simulated device.
- ``Controllable`` - optional second interface for devices that can be
                     switched and tuned (pumps, dosers).
- ``Sensor``       - the shared "read one record, clamp, classify, notify"
                     update algorithm used by every sensor.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

from scada_simulator.channels import EventChannel
from scada_simulator.datasource import SimulatedDataSource
from scada_simulator.errors import DeviceFaultError, RecordParseError
from scada_simulator.models import TIMESTAMP_FORMAT, DeviceKind, DeviceStatus

__all__ = [
    "Controllable",
    "Device",
    "Sensor",
    "clamp",
    "parse_bool",
    "parse_float",
    "split_record",
]

logger = logging.getLogger("scada_simulator.devices")

DataSourceArg = SimulatedDataSource | str | Path | None


# -----------------------------------------------------------------------
# Record parsing helpers
# -----------------------------------------------------------------------


def split_record(record: str, delimiter: str = ",") -> list[str]:
    return [field.strip() for field in record.split(delimiter)]


def parse_float(fields: list[str], index: int) -> float:
    """Return ``fields[index]`` as a finite float or raise :class:`RecordParseError`."""
    try:
        value = float(fields[index])
    except (IndexError, ValueError) as err:
        raise RecordParseError(f"field {index} is not a number: {fields!r}") from err
    if not math.isfinite(value):
        raise RecordParseError(f"field {index} is not finite: {fields[index]!r}")
    return value


def parse_bool(fields: list[str], index: int) -> bool:
    """Accept ``true``/``false`` in any case, like the recorded data files."""
    try:
        token = fields[index].lower()
    except IndexError as err:
        raise RecordParseError(f"missing boolean field {index}: {fields!r}") from err
    if token == "true":
        return True
    if token == "false":
        return False
    raise RecordParseError(f"field {index} is not a boolean: {fields[index]!r}")


def clamp(value: float, low: float | None, high: float | None) -> float:
    if low is not None:
        value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


# -----------------------------------------------------------------------
# Device ABC
# -----------------------------------------------------------------------


class Device(ABC):
    """Base class for every simulated device.

    State machine::

        Offline --initialize()--> Online --start()--> Online (running)
        running --stop()--> Offline (not running)

    ``update()`` does nothing while the device is not running.  Concrete
    devices implement :meth:`update` and :meth:`_device_telemetry`.

    Parameters:
        name: Unique (case-insensitive) device name.
        data_source: A :class:`SimulatedDataSource`, a path to open one
            from, or ``None`` for devices without simulated input.
    """

    kind: ClassVar[DeviceKind]

    def __init__(self, name: str, data_source: DataSourceArg = None) -> None:
        self.name = name
        self.status = DeviceStatus.OFFLINE
        self.last_update: datetime | None = None
        self.is_running = False
        if data_source is None or isinstance(data_source, SimulatedDataSource):
            self.data_source = data_source
        else:
            self.data_source = SimulatedDataSource(data_source)

    @property
    def device_type(self) -> str:
        return self.kind.value

    # -- lifecycle --

    def initialize(self) -> None:
        """Bring the device online without starting the polling loop."""
        self.status = DeviceStatus.ONLINE
        self.last_update = datetime.now()

    def start(self) -> None:
        self.is_running = True
        self.status = DeviceStatus.ONLINE

    def stop(self) -> None:
        self.is_running = False
        self.status = DeviceStatus.OFFLINE

    @abstractmethod
    def update(self) -> None:
        """Pull and process one simulated record (called once per tick).

        Unexpected failures, including exceptions raised by event
        subscribers, leave the device in ``Error`` and surface as
        :class:`DeviceFaultError` so the scheduler can report them.
        """

    def mark_fault(self) -> None:
        """Put the device into the ``Error`` state after a failed tick."""
        self.status = DeviceStatus.ERROR

    def close(self) -> None:
        """Release the data source, if any."""
        if self.data_source is not None:
            self.data_source.close()

    # -- telemetry --

    def get_telemetry(self) -> dict[str, Any]:
        """Flat snapshot of the device for external consumers.  Never raises."""
        telemetry: dict[str, Any] = {
            "name": self.name,
            "type": self.device_type,
            "status": self.status.value,
            "isRunning": self.is_running,
            "lastUpdate": self.last_update.strftime(TIMESTAMP_FORMAT) if self.last_update else None,
        }
        try:
            telemetry.update(self._device_telemetry())
        except Exception:
            logger.exception("Telemetry for %s failed", self.name)
        return telemetry

    def _device_telemetry(self) -> dict[str, Any]:
        return {}

    # -- internal --

    def _next_record(self) -> str | None:
        """Read one record from the data source (looping at end of file)."""
        if self.data_source is None:
            return None
        return self.data_source.read_line()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, status={self.status.value})"


# -----------------------------------------------------------------------
# Controllable interface
# -----------------------------------------------------------------------


class Controllable(ABC):
    """Capabilities of a device that can be switched and configured."""

    @property
    @abstractmethod
    def is_on(self) -> bool:
        """Whether the actuator is currently energised / active."""

    @abstractmethod
    def turn_on(self) -> None: ...

    @abstractmethod
    def turn_off(self) -> None: ...

    @abstractmethod
    def set_config(self, name: str, value: Any) -> None:
        """Set a named configuration parameter (names are case-insensitive)."""

    @abstractmethod
    def get_config(self, name: str) -> Any | None:
        """Return a named configuration value, or ``None`` if unknown."""


# -----------------------------------------------------------------------
# Sensor
# -----------------------------------------------------------------------


class Sensor(Device):
    """A device that measures one quantity per tick.

    Subclasses declare the valid range, the change epsilon and the field
    index of the reading, and implement :meth:`classify`.

    Attributes:
        on_reading_change: Fired with the new reading whenever it moves by
            more than ``change_epsilon``.
    """

    unit: ClassVar[str] = ""
    min_value: ClassVar[float | None] = None
    max_value: ClassVar[float | None] = None
    initial_reading: ClassVar[float] = 0.0
    change_epsilon: ClassVar[float] = 0.01
    value_field: ClassVar[int] = 1
    delimiter: ClassVar[str] = ","

    def __init__(self, name: str, data_source: DataSourceArg = None) -> None:
        super().__init__(name, data_source)
        self.current_reading = self.initial_reading
        self.previous_reading = self.initial_reading
        self.on_reading_change: EventChannel[float] = EventChannel(f"{name}.reading")

    @abstractmethod
    def classify(self, value: float) -> DeviceStatus:
        """Map a (clamped) reading to a status via the threshold table."""

    def clamp(self, value: float) -> float:
        return clamp(value, self.min_value, self.max_value)

    def update(self) -> None:
        if not self.is_running:
            return

        try:
            record = self._next_record()
            if not record:
                return

            try:
                value = parse_float(split_record(record, self.delimiter), self.value_field)
            except RecordParseError as err:
                logger.debug("%s skipped record: %s", self.name, err)
                return

            value = self.clamp(value)
            self.previous_reading = self.current_reading
            self.current_reading = value
            self.last_update = datetime.now()
            self.status = self.classify(value)
            self._after_reading(value)

            if abs(self.current_reading - self.previous_reading) > self.change_epsilon:
                self.on_reading_change.emit(self, self.current_reading)
        except Exception as exc:
            self.status = DeviceStatus.ERROR
            raise DeviceFaultError(self.name, exc) from exc

    def _after_reading(self, value: float) -> None:
        """Hook run after the status is recomputed, before change events."""

    def _device_telemetry(self) -> dict[str, Any]:
        return {"reading": self.current_reading, "unit": self.unit}
