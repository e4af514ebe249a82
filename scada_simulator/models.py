"""Common data models for the SCADA device simulator.

Defines the device status/kind enumerations, the ``SystemEvent`` record
that every event listener receives and the ``DeviceCommand`` used to
drive devices through the plant controller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

try:
    from enum import StrEnum
except ImportError:  # Python < 3.11
    from enum import Enum

    class StrEnum(str, Enum):  # type: ignore[no-redef]
        """Minimal backport of ``enum.StrEnum`` for Python 3.10."""

from pydantic import BaseModel, Field

__all__ = [
    "DeviceCommand",
    "DeviceKind",
    "DeviceStatus",
    "SystemEvent",
    "SystemEventType",
]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class DeviceStatus(StrEnum):
    """Lifecycle / health states shared by every device."""

    OFFLINE = "Offline"
    ONLINE = "Online"
    WARNING = "Warning"
    CRITICAL = "Critical"
    ERROR = "Error"
    MAINTENANCE = "Maintenance"


class DeviceKind(StrEnum):
    """Device type tags understood by the plant builder."""

    PH_SENSOR = "ph_sensor"
    PRESSURE_SENSOR = "pressure_sensor"
    TEMPERATURE_SENSOR = "temperature_sensor"
    TURBIDITY_SENSOR = "turbidity_sensor"
    STORAGE_SENSOR = "storage_sensor"
    INTAKE_PUMP = "intake_pump"
    CHLORINE_PUMP = "chlorine_pump"
    CHEMICAL_DOSER = "chemical_doser"


class SystemEventType(StrEnum):
    """Categories of events published on the system event bus."""

    INFO = "Info"
    DATA_UPDATE = "DataUpdate"
    STATE_CHANGE = "StateChange"
    WARNING = "Warning"
    ALERT = "Alert"
    ERROR = "Error"
    USER_ACTION = "UserAction"
    AUTOMATIC_ACTION = "AutomaticAction"


class SystemEvent(BaseModel):
    """A single notable occurrence anywhere in the device runtime.

    Attributes:
        timestamp: Local time the event was created.
        source: Device or subsystem name, e.g. ``"Main pH Sensor"``.
        message: Human-readable description.
        event_type: One of :class:`SystemEventType`.
    """

    model_config = {"frozen": True}

    timestamp: datetime = Field(default_factory=datetime.now)
    source: str
    message: str
    event_type: SystemEventType = SystemEventType.INFO

    def to_line(self) -> str:
        """Render the event as one log line."""
        return (
            f"[{self.timestamp.strftime(TIMESTAMP_FORMAT)}] "
            f"[{self.event_type.value}] [{self.source}] {self.message}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a plain ``dict`` representation (JSON-safe types)."""
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        """Return a compact JSON string."""
        return self.model_dump_json()


class DeviceCommand(BaseModel):
    """Command to be executed on a named device.

    ``command`` is one of ``turn_on``, ``turn_off``, ``set_config``,
    ``activate`` or ``deactivate``; ``parameters`` carries the positional
    arguments (e.g. ``["flowrate", 50.0]`` for ``set_config``).
    """

    device_name: str
    command: str
    parameters: list[Any] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] {self.device_name}: {self.command}"
