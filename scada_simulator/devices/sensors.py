"""Water-treatment sensors driven by recorded CSV data.

Each sensor reads ``timestamp, value, ...`` records, clamps the value to
its valid range and maps it to a status through a fixed threshold table.

=============  ============  ===========================  ===========================
Sensor         Valid range   Warning                      Critical
=============  ============  ===========================  ===========================
pH             5.0 - 9.0     < 6.5 or > 8.5               < 6.0 or > 9.0 (see below)
Pressure       0 - 5.0 bar   [1.5, 2.0) or (2.6, 3.0)     < 1.5 or >= 3.0
Turbidity      0 - 10 NTU    > alert threshold            > 9.0 NTU
Storage        unclamped     [950, 1000] L                > 1000 L
Temperature    18 - 24 °C    [22, 23) °C                  >= 23 °C
=============  ============  ===========================  ===========================
"""

from __future__ import annotations

from typing import Any, ClassVar

from scada_simulator.channels import EventChannel
from scada_simulator.devices.base import DataSourceArg, Sensor
from scada_simulator.models import DeviceKind, DeviceStatus

__all__ = [
    "PHSensor",
    "PressureSensor",
    "StorageSensor",
    "TemperatureSensor",
    "TurbiditySensor",
]


class PHSensor(Sensor):
    """pH probe.  Record layout: ``timestamp, phValue, status``.

    The Warning band is tested before the Critical band, and readings are
    clamped to [5.0, 9.0] first, so ``Critical`` is never produced.  The
    chemical doser subscribes to :attr:`on_reading_change`.
    """

    kind = DeviceKind.PH_SENSOR
    unit = "pH"
    min_value = 5.0
    max_value = 9.0
    initial_reading = 7.0

    LOWER_SAFE: ClassVar[float] = 6.5
    UPPER_SAFE: ClassVar[float] = 8.5
    LOWER_CRITICAL: ClassVar[float] = 6.0
    UPPER_CRITICAL: ClassVar[float] = 9.0

    def classify(self, value: float) -> DeviceStatus:
        if value < self.LOWER_SAFE or value > self.UPPER_SAFE:
            return DeviceStatus.WARNING
        if value < self.LOWER_CRITICAL or value > self.UPPER_CRITICAL:
            return DeviceStatus.CRITICAL
        return DeviceStatus.ONLINE

    @classmethod
    def is_safe(cls, value: float) -> bool:
        return cls.LOWER_SAFE <= value <= cls.UPPER_SAFE

    def _device_telemetry(self) -> dict[str, Any]:
        return {"phReading": self.current_reading}


class PressureSensor(Sensor):
    """Pipeline / filter pressure.  Record layout: ``timestamp, pressure, location, status``."""

    kind = DeviceKind.PRESSURE_SENSOR
    unit = "bar"
    min_value = 0.0
    max_value = 5.0
    initial_reading = 2.3

    MIN_SAFE: ClassVar[float] = 1.5
    NORMAL_LOW: ClassVar[float] = 2.0
    NORMAL_HIGH: ClassVar[float] = 2.6
    CRITICAL_HIGH: ClassVar[float] = 3.0

    def classify(self, value: float) -> DeviceStatus:
        if value < self.MIN_SAFE:
            return DeviceStatus.CRITICAL
        if value < self.NORMAL_LOW:
            return DeviceStatus.WARNING
        if value <= self.NORMAL_HIGH:
            return DeviceStatus.ONLINE
        if value < self.CRITICAL_HIGH:
            return DeviceStatus.WARNING
        return DeviceStatus.CRITICAL

    def status_description(self) -> str:
        """Operator-facing summary of the current pressure."""
        reading = self.current_reading
        if reading < self.MIN_SAFE:
            return "CRITICAL LOW: Check for leaks or pump failure"
        if reading < self.NORMAL_LOW:
            return "Low Pressure"
        if reading <= self.NORMAL_HIGH:
            return "Normal Pressure"
        if reading < self.CRITICAL_HIGH:
            return "Elevated Pressure"
        return "CRITICAL HIGH: Possible blockage"

    def _device_telemetry(self) -> dict[str, Any]:
        return {
            "pressureReading": self.current_reading,
            "pressureUnit": self.unit,
            "pressureStatus": self.status_description(),
        }


class TurbiditySensor(Sensor):
    """Filtration turbidity in NTU.  Record layout: ``timestamp, turbidity, status``.

    Besides the level-style status, the sensor raises edge-triggered
    events: :attr:`on_threshold_alert` when turbidity rises above
    :attr:`alert_threshold` and :attr:`on_threshold_cleared` when it
    falls back to or below it.

    As with the pH sensor the Warning test runs first, so ``Critical``
    (> 9.0 NTU) is only reachable with an alert threshold of 9.0 or more.
    """

    kind = DeviceKind.TURBIDITY_SENSOR
    unit = "NTU"
    min_value = 0.0
    max_value = 10.0
    initial_reading = 0.0

    DEFAULT_ALERT_THRESHOLD: ClassVar[float] = 5.0
    CRITICAL_FRACTION: ClassVar[float] = 0.9

    def __init__(
        self,
        name: str,
        data_source: DataSourceArg = None,
        alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
    ) -> None:
        super().__init__(name, data_source)
        self.alert_threshold = alert_threshold
        self.is_alert_active = False
        self.on_threshold_alert: EventChannel[float] = EventChannel(f"{name}.alert")
        self.on_threshold_cleared: EventChannel[float] = EventChannel(f"{name}.cleared")

    @property
    def critical_threshold(self) -> float:
        return self.max_value * self.CRITICAL_FRACTION

    def classify(self, value: float) -> DeviceStatus:
        if value > self.alert_threshold:
            return DeviceStatus.WARNING
        if value > self.critical_threshold:
            return DeviceStatus.CRITICAL
        return DeviceStatus.ONLINE

    def _after_reading(self, value: float) -> None:
        was_active = self.is_alert_active
        self.is_alert_active = value > self.alert_threshold
        if self.is_alert_active and not was_active:
            self.on_threshold_alert.emit(self, value)
        elif was_active and not self.is_alert_active:
            self.on_threshold_cleared.emit(self, value)

    def _device_telemetry(self) -> dict[str, Any]:
        return {
            "turbidity": self.current_reading,
            "alertThreshold": self.alert_threshold,
            "isAlertActive": self.is_alert_active,
        }


class StorageSensor(Sensor):
    """Treated-water storage level in litres (not clamped)."""

    kind = DeviceKind.STORAGE_SENSOR
    unit = "L"
    initial_reading = 2000.0

    WARNING_LEVEL: ClassVar[float] = 950.0
    CAPACITY: ClassVar[float] = 1000.0

    def classify(self, value: float) -> DeviceStatus:
        if value > self.CAPACITY:
            return DeviceStatus.CRITICAL
        if value >= self.WARNING_LEVEL:
            return DeviceStatus.WARNING
        return DeviceStatus.ONLINE

    def _device_telemetry(self) -> dict[str, Any]:
        return {"storageLevel": self.current_reading, "storageUnit": self.unit}


class TemperatureSensor(Sensor):
    """Water temperature, clamped to 18-24 °C."""

    kind = DeviceKind.TEMPERATURE_SENSOR
    unit = "°C"
    min_value = 18.0
    max_value = 24.0
    initial_reading = 18.0

    WARNING_TEMP: ClassVar[float] = 22.0
    CRITICAL_TEMP: ClassVar[float] = 23.0

    def classify(self, value: float) -> DeviceStatus:
        if value >= self.CRITICAL_TEMP:
            return DeviceStatus.CRITICAL
        if value >= self.WARNING_TEMP:
            return DeviceStatus.WARNING
        return DeviceStatus.ONLINE

    def _device_telemetry(self) -> dict[str, Any]:
        return {"temperature": self.current_reading, "temperatureUnit": self.unit}
