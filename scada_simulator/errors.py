"""Exception types raised by the device runtime.

Each error also derives from the closest built-in exception so callers can
catch either the specific type or the generic one (``FileNotFoundError``,
``ValueError``, ...).
"""

from __future__ import annotations

__all__ = [
    "DataSourceNotFoundError",
    "DeviceAlreadyExistsError",
    "DeviceFaultError",
    "RecordParseError",
    "SetpointOutOfRangeError",
    "SimulatorError",
]


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class DataSourceNotFoundError(SimulatorError, FileNotFoundError):
    """The simulation file backing a device does not exist."""

    def __init__(self, path: object) -> None:
        super().__init__(f"Simulation file not found: {path}")
        self.path = path


class SetpointOutOfRangeError(SimulatorError, ValueError):
    """A setpoint was requested outside its allowed bounds."""

    def __init__(self, name: str, value: float, low: float, high: float) -> None:
        super().__init__(f"{name} must be between {low} and {high}%, got {value}")
        self.name = name
        self.value = value
        self.low = low
        self.high = high


class DeviceAlreadyExistsError(SimulatorError, KeyError):
    """A device with the same (case-insensitive) name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Device with name '{self.name}' already exists"


class RecordParseError(SimulatorError, ValueError):
    """A field of a simulated data record could not be parsed."""


class DeviceFaultError(SimulatorError, RuntimeError):
    """Unexpected failure while a device processed a tick.

    The original exception is kept as ``__cause__``.
    """

    def __init__(self, device_name: str, cause: BaseException) -> None:
        super().__init__(f"Device fault in {device_name}: {cause}")
        self.device_name = device_name
        self.__cause__ = cause
