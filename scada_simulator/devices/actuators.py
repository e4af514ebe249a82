"""Controllable devices: pumps and the chemical doser.

Pumps are switched on/off and carry one bounded setpoint (flow rate or
dosing rate, 0-100 %).  They also read their own simulation file so the
recorded data can drive them; operator calls and recorded records go
through the same setters and raise the same events.

The chemical doser has no data file.  It observes one pH sensor and
switches itself on while the pH is outside the safe band.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Any, ClassVar

from scada_simulator.channels import EventChannel
from scada_simulator.devices.base import (
    Controllable,
    DataSourceArg,
    Device,
    clamp,
    parse_bool,
    parse_float,
    split_record,
)
from scada_simulator.devices.sensors import PHSensor
from scada_simulator.errors import DeviceFaultError, RecordParseError, SetpointOutOfRangeError
from scada_simulator.models import DeviceKind, DeviceStatus

__all__ = ["ChemicalDoser", "ChlorinePump", "IntakePump", "Pump"]

logger = logging.getLogger("scada_simulator.devices.actuators")

_STATUS_HINTS = {
    "warning": DeviceStatus.WARNING,
    "critical": DeviceStatus.ERROR,
    "error": DeviceStatus.ERROR,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# -----------------------------------------------------------------------
# Pump base
# -----------------------------------------------------------------------


class Pump(Device, Controllable):
    """On/off pump with a single percentage setpoint.

    Subclasses set :attr:`setpoint_key` (telemetry / config name),
    :attr:`setpoint_label` (log text) and implement :meth:`_apply_record`.

    Attributes:
        on_state_change: Fired with the new on/off state on every transition.
        on_setpoint_change: Fired with the new setpoint when it moves by more
            than :attr:`SETPOINT_EPSILON`, and with ``0.0`` on every
            :meth:`turn_off`.
    """

    MIN_SETPOINT: ClassVar[float] = 0.0
    MAX_SETPOINT: ClassVar[float] = 100.0
    SETPOINT_EPSILON: ClassVar[float] = 0.1

    setpoint_key: ClassVar[str] = "setpoint"
    setpoint_label: ClassVar[str] = "Setpoint"
    min_fields: ClassVar[int] = 3
    status_field: ClassVar[int] = 4

    def __init__(self, name: str, data_source: DataSourceArg = None) -> None:
        super().__init__(name, data_source)
        self._is_on = False
        self.setpoint = 0.0
        self.on_state_change: EventChannel[bool] = EventChannel(f"{name}.state")
        self.on_setpoint_change: EventChannel[float] = EventChannel(f"{name}.{self.setpoint_key}")

    @property
    def is_on(self) -> bool:
        return self._is_on

    # -- control surface --

    def turn_on(self) -> None:
        """Switch on and resume polling the simulation file."""
        self.is_running = True
        self._set_power(True)

    def turn_off(self) -> None:
        """Switch off, zero the setpoint and stop polling.

        A zero-setpoint event is always fired, even if the pump was off.
        """
        self._set_power(False, force_zero_event=True)
        self.is_running = False

    def set_setpoint(self, value: float) -> None:
        """Set the setpoint; raises :class:`SetpointOutOfRangeError` outside 0-100."""
        if not self.MIN_SETPOINT <= value <= self.MAX_SETPOINT:
            raise SetpointOutOfRangeError(self.setpoint_label, value, self.MIN_SETPOINT, self.MAX_SETPOINT)
        self._apply_setpoint(value)

    def set_config(self, name: str, value: Any) -> None:
        key = name.lower()
        if key == self.setpoint_key.lower():
            if _is_number(value):
                self.set_setpoint(float(value))
            else:
                logger.warning("%s: %s expects a number, got %r", self.name, name, value)
        elif key in ("ison", "on"):
            if value is True:
                self.turn_on()
            elif value is False:
                self.turn_off()
            else:
                logger.warning("%s: %s expects a bool, got %r", self.name, name, value)
        else:
            logger.warning("%s: unknown config parameter: %s", self.name, name)

    def get_config(self, name: str) -> Any | None:
        key = name.lower()
        if key == self.setpoint_key.lower():
            return self.setpoint
        if key in ("ison", "on"):
            return self._is_on
        return None

    # -- simulation --

    def update(self) -> None:
        if not self.is_running:
            return

        try:
            record = self._next_record()
            if not record:
                return
            fields = split_record(record)
            if len(fields) < self.min_fields:
                logger.debug("%s skipped short record: %r", self.name, record)
                return
            self._apply_record(fields)
            self.last_update = datetime.now()
        except Exception as exc:
            self.status = DeviceStatus.ERROR
            raise DeviceFaultError(self.name, exc) from exc

    @abstractmethod
    def _apply_record(self, fields: list[str]) -> None:
        """Apply one parsed simulation record."""

    def _apply_simulated_state(
        self,
        fields: list[str],
        *,
        state_field: int,
        setpoint_field: int,
        setpoint_of: Callable[[float], float] = float,
    ) -> None:
        """Apply the on/off flag first, then (if on) the setpoint, then the status hint."""
        running = self._try_parse(parse_bool, fields, state_field)
        if running is not None:
            self._set_power(running)

        if self._is_on:
            raw = self._try_parse(parse_float, fields, setpoint_field)
            if raw is not None:
                self._apply_setpoint(clamp(setpoint_of(raw), self.MIN_SETPOINT, self.MAX_SETPOINT))

        if len(fields) > self.status_field:
            hint = _STATUS_HINTS.get(fields[self.status_field].lower())
            if hint is not None:
                self.status = hint

    # -- shared setters --

    def _set_power(self, on: bool, *, force_zero_event: bool = False) -> None:
        changed = on != self._is_on
        self._is_on = on
        if on:
            self.status = DeviceStatus.ONLINE
        else:
            self.status = DeviceStatus.OFFLINE

        if changed:
            logger.info("%s turned %s", self.name, "ON" if on else "OFF")
            self.on_state_change.emit(self, on)

        if not on:
            had_setpoint = self.setpoint != 0.0
            self.setpoint = 0.0
            if changed or had_setpoint or force_zero_event:
                self.on_setpoint_change.emit(self, 0.0)

    def _apply_setpoint(self, value: float) -> None:
        previous = self.setpoint
        self.setpoint = value
        self.last_update = datetime.now()

        if value > 0 and self._is_on:
            self.status = DeviceStatus.ONLINE
        elif not self._is_on:
            self.status = DeviceStatus.OFFLINE

        if abs(value - previous) > self.SETPOINT_EPSILON:
            self.on_setpoint_change.emit(self, value)

    def _try_parse(
        self,
        parser: Callable[[list[str], int], Any],
        fields: list[str],
        index: int,
    ) -> Any | None:
        try:
            return parser(fields, index)
        except RecordParseError as err:
            logger.debug("%s ignored field: %s", self.name, err)
            return None

    def _device_telemetry(self) -> dict[str, Any]:
        return {"isOn": self._is_on, self.setpoint_key: self.setpoint}


class IntakePump(Pump):
    """Raw-water intake pump.

    Record layout: ``timestamp, flowRate, isRunning, pressure, status``.
    """

    kind = DeviceKind.INTAKE_PUMP
    setpoint_key = "flowRate"
    setpoint_label = "Flow rate"
    min_fields = 3

    @property
    def flow_rate(self) -> float:
        return self.setpoint

    @property
    def on_flow_rate_change(self) -> EventChannel[float]:
        return self.on_setpoint_change

    def set_flow_rate(self, flow_rate: float) -> None:
        self.set_setpoint(flow_rate)

    def _apply_record(self, fields: list[str]) -> None:
        self._apply_simulated_state(fields, state_field=2, setpoint_of=float, setpoint_field=1)


class ChlorinePump(Pump):
    """Chlorine dosing pump that also monitors the residual chlorine level.

    Record layout: ``timestamp, chlorineLevel, dosingRate, isRunning, status``
    where ``dosingRate`` is recorded as a 0-1 fraction.
    """

    kind = DeviceKind.CHLORINE_PUMP
    setpoint_key = "dosingRate"
    setpoint_label = "Dosing rate"
    min_fields = 4
    CHLORINE_EPSILON: ClassVar[float] = 0.01

    def __init__(self, name: str, data_source: DataSourceArg = None) -> None:
        super().__init__(name, data_source)
        self.chlorine_level = 0.0
        self.on_chlorine_level_change: EventChannel[float] = EventChannel(f"{name}.chlorine")

    @property
    def dosing_rate(self) -> float:
        return self.setpoint

    @property
    def on_dosing_rate_change(self) -> EventChannel[float]:
        return self.on_setpoint_change

    def set_dosing_rate(self, dosing_rate: float) -> None:
        self.set_setpoint(dosing_rate)

    def get_config(self, name: str) -> Any | None:
        if name.lower() == "chlorinelevel":
            return self.chlorine_level
        return super().get_config(name)

    def _apply_record(self, fields: list[str]) -> None:
        level = self._try_parse(parse_float, fields, 1)
        if level is not None and abs(level - self.chlorine_level) > self.CHLORINE_EPSILON:
            self.chlorine_level = level
            self.on_chlorine_level_change.emit(self, level)

        self._apply_simulated_state(fields, state_field=3, setpoint_of=lambda raw: raw * 100.0, setpoint_field=2)

    def _device_telemetry(self) -> dict[str, Any]:
        telemetry = super()._device_telemetry()
        telemetry["chlorineLevel"] = self.chlorine_level
        return telemetry


# -----------------------------------------------------------------------
# Chemical doser
# -----------------------------------------------------------------------


class ChemicalDoser(Device, Controllable):
    """Doser that activates automatically while pH is outside [6.5, 8.5].

    Manual :meth:`activate` / :meth:`deactivate` are idempotent and fire
    the same :attr:`on_state_change` event as automatic switching; the
    event carries no cause.  :meth:`turn_off` deactivates the doser and
    suspends automatic switching until :meth:`turn_on`.
    """

    kind = DeviceKind.CHEMICAL_DOSER

    LOWER_PH: ClassVar[float] = PHSensor.LOWER_SAFE
    UPPER_PH: ClassVar[float] = PHSensor.UPPER_SAFE

    def __init__(self, name: str, ph_sensor: PHSensor | None = None) -> None:
        super().__init__(name)
        self.is_active = False
        self.automatic = True
        self.ph_sensor: PHSensor | None = None
        self.on_state_change: EventChannel[bool] = EventChannel(f"{name}.state")
        if ph_sensor is not None:
            self.link_ph_sensor(ph_sensor)

    @property
    def is_on(self) -> bool:
        return self.is_active

    def link_ph_sensor(self, sensor: PHSensor | None) -> None:
        """Observe *sensor*, dropping the link to any previous sensor first."""
        if self.ph_sensor is not None:
            self.ph_sensor.on_reading_change.unsubscribe(self._on_ph_reading)
        self.ph_sensor = sensor
        if sensor is not None:
            sensor.on_reading_change.subscribe(self._on_ph_reading)

    def _on_ph_reading(self, _sender: object, ph: float) -> None:
        if not self.automatic:
            return
        if ph < self.LOWER_PH or ph > self.UPPER_PH:
            if not self.is_active:
                self.activate()
        elif self.is_active:
            self.deactivate()

    def activate(self) -> None:
        if self.is_active:
            return
        self.is_active = True
        self.status = DeviceStatus.ONLINE
        logger.info("%s ACTIVATED", self.name)
        self.on_state_change.emit(self, True)

    def deactivate(self) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.status = DeviceStatus.ONLINE
        logger.info("%s DEACTIVATED", self.name)
        self.on_state_change.emit(self, False)

    def turn_on(self) -> None:
        self.automatic = True
        self.is_running = True
        self.status = DeviceStatus.ONLINE

    def turn_off(self) -> None:
        self.automatic = False
        self.deactivate()
        self.is_running = False
        self.status = DeviceStatus.OFFLINE

    def set_config(self, name: str, value: Any) -> None:
        key = name.lower()
        if key in ("active", "isactive") and value is True:
            self.activate()
        elif key in ("active", "isactive") and value is False:
            self.deactivate()
        elif key == "automatic" and isinstance(value, bool):
            self.automatic = value
        else:
            logger.warning("%s: unknown or invalid config parameter: %s=%r", self.name, name, value)

    def get_config(self, name: str) -> Any | None:
        key = name.lower()
        if key in ("active", "isactive"):
            return self.is_active
        if key == "automatic":
            return self.automatic
        return None

    def update(self) -> None:
        if not self.is_running:
            return
        self.last_update = datetime.now()

    def _device_telemetry(self) -> dict[str, Any]:
        return {
            "isActive": self.is_active,
            "automatic": self.automatic,
            "phSensor": self.ph_sensor.name if self.ph_sensor is not None else None,
        }
