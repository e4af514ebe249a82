"""Plant controller - top-level orchestrator that wires devices, the
scheduler and the system event bus together.

The controller builds the device graph from a :class:`PlantConfig`,
republishes every device event on the bus and offers the operator
control surface (pumps on/off, setpoints, manual doser switching).
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from scada_simulator.channels import EventChannel
from scada_simulator.config import DeviceSpec, PlantConfig, default_plant_config, load_plant_config
from scada_simulator.devices.actuators import ChemicalDoser, ChlorinePump, IntakePump, Pump
from scada_simulator.devices.base import Controllable, Device, Sensor
from scada_simulator.devices.sensors import (
    PHSensor,
    PressureSensor,
    StorageSensor,
    TemperatureSensor,
    TurbiditySensor,
)
from scada_simulator.event_bus import SystemEventBus
from scada_simulator.listeners.factory import create_listener
from scada_simulator.models import (
    TIMESTAMP_FORMAT,
    DeviceCommand,
    DeviceKind,
    DeviceStatus,
    SystemEventType,
)
from scada_simulator.registry import DeviceRegistry
from scada_simulator.scheduler import DeviceScheduler

__all__ = ["PlantController", "build_device"]

logger = logging.getLogger("scada_simulator.plant")

SOURCE = "PlantController"
USER = "UserAction"

D = TypeVar("D", bound=Device)

_SENSOR_CLASSES: dict[DeviceKind, type[Sensor]] = {
    DeviceKind.PH_SENSOR: PHSensor,
    DeviceKind.PRESSURE_SENSOR: PressureSensor,
    DeviceKind.TEMPERATURE_SENSOR: TemperatureSensor,
    DeviceKind.STORAGE_SENSOR: StorageSensor,
}

_PUMP_CLASSES: dict[DeviceKind, type[Pump]] = {
    DeviceKind.INTAKE_PUMP: IntakePump,
    DeviceKind.CHLORINE_PUMP: ChlorinePump,
}


def build_device(spec: DeviceSpec, config: PlantConfig) -> Device:
    """Construct one device from its spec (links are resolved by the caller).

    Raises :class:`DataSourceNotFoundError` if the data file is missing.
    """
    if spec.kind == DeviceKind.CHEMICAL_DOSER:
        return ChemicalDoser(spec.name)

    if spec.data_file is None:
        raise ValueError(f"Device '{spec.name}' ({spec.kind.value}) needs a data_file")
    path = config.resolve(spec.data_file)

    if spec.kind == DeviceKind.TURBIDITY_SENSOR:
        threshold = spec.alert_threshold if spec.alert_threshold is not None else TurbiditySensor.DEFAULT_ALERT_THRESHOLD
        return TurbiditySensor(spec.name, path, alert_threshold=threshold)
    if spec.kind in _SENSOR_CLASSES:
        return _SENSOR_CLASSES[spec.kind](spec.name, path)
    if spec.kind in _PUMP_CLASSES:
        return _PUMP_CLASSES[spec.kind](spec.name, path)
    raise ValueError(f"Unsupported device kind: {spec.kind}")


class PlantController:
    """High-level API for running the simulated treatment plant.

    Example::

        plant = PlantController.from_data_dir("./data")
        plant.event_bus.add_listener(lambda e: print(e.to_line()))
        plant.start()
        plant.set_flow_rate(60)
        ...
        plant.shutdown()

    Parameters:
        config:
            Plant layout and runtime settings.  Devices are built by
            :meth:`build`.
    """

    def __init__(self, config: PlantConfig | None = None) -> None:
        self.config = config or PlantConfig()
        self.event_bus = SystemEventBus(history_size=self.config.history_size)
        self.registry = DeviceRegistry()
        self.scheduler = DeviceScheduler(
            self.registry,
            interval_ms=self.config.update_interval_ms,
            event_bus=self.event_bus,
        )
        self.is_running = False
        self._subscriptions: list[tuple[EventChannel[Any], Callable[[object, Any], None]]] = []
        self._local = threading.local()

    # ------------------------------------------------------------------
    # Alternative constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: str | Path) -> PlantController:
        plant = cls(load_plant_config(path))
        plant.build()
        return plant

    @classmethod
    def from_data_dir(cls, data_dir: str | Path, *, interval_ms: int = 1000) -> PlantController:
        """Build the standard plant reading its files from *data_dir*."""
        config = default_plant_config(data_dir)
        config.update_interval_ms = interval_ms
        plant = cls(config)
        plant.build()
        return plant

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def build(self) -> None:
        """Create every configured device and listener and initialize them."""
        try:
            self._publish(SOURCE, "Initializing system...")
            for listener_cfg in self.config.listener_configs:
                self.event_bus.add_listener(create_listener(listener_cfg))

            for spec in self.config.devices:
                self.registry.add(build_device(spec, self.config))

            for spec in self.config.devices:
                if spec.kind == DeviceKind.CHEMICAL_DOSER and spec.ph_sensor:
                    doser = self._require(spec.name, ChemicalDoser)
                    doser.link_ph_sensor(self._require(spec.ph_sensor, PHSensor))

            for device in self.registry:
                self._watch(device)
            self.scheduler.initialize_all()
            self._publish("EventSubscription", "All device events subscribed")
            self._publish(SOURCE, "System initialized successfully")
        except Exception as exc:
            self._publish(SOURCE, f"Initialization error: {exc}", SystemEventType.ERROR)
            raise

    def add_device(self, device: Device) -> None:
        """Register an extra device and republish its events on the bus."""
        self.registry.add(device)
        self._watch(device)

    def _connect(self, channel: EventChannel[Any], handler: Callable[[object, Any], None]) -> None:
        channel.subscribe(handler)
        self._subscriptions.append((channel, handler))

    def _watch(self, device: Device) -> None:
        if isinstance(device, Sensor):
            self._connect(device.on_reading_change, self._on_reading_change)
        if isinstance(device, TurbiditySensor):
            self._connect(device.on_threshold_alert, self._on_turbidity_alert)
            self._connect(device.on_threshold_cleared, self._on_turbidity_cleared)
        if isinstance(device, Pump):
            self._connect(device.on_state_change, self._on_pump_state)
            self._connect(device.on_setpoint_change, self._on_pump_setpoint)
        if isinstance(device, ChlorinePump):
            self._connect(device.on_chlorine_level_change, self._on_chlorine_level)
        if isinstance(device, ChemicalDoser):
            self._connect(device.on_state_change, self._on_doser_state)

    def _unwatch_all(self) -> None:
        for channel, handler in self._subscriptions:
            channel.unsubscribe(handler)
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Device event handlers
    # ------------------------------------------------------------------

    def _on_reading_change(self, sender: Any, value: float) -> None:
        self._publish(sender.name, f"Reading changed: {value:.2f} {sender.unit}", SystemEventType.DATA_UPDATE)
        if sender.status in (DeviceStatus.WARNING, DeviceStatus.CRITICAL):
            self._publish(
                sender.name,
                f"OUT OF RANGE: {value:.2f} {sender.unit} ({sender.status.value})",
                SystemEventType.WARNING,
            )

    def _on_turbidity_alert(self, sender: Any, value: float) -> None:
        self._publish(
            sender.name,
            f"ALERT: Turbidity threshold exceeded! Value: {value:.2f} NTU (threshold: {sender.alert_threshold} NTU)",
            SystemEventType.ALERT,
        )

    def _on_turbidity_cleared(self, sender: Any, value: float) -> None:
        self._publish(sender.name, f"ALERT CLEARED: Turbidity back to normal. Value: {value:.2f} NTU")

    def _on_pump_state(self, sender: Any, is_on: bool) -> None:
        self._publish(sender.name, f"State changed: {'ON' if is_on else 'OFF'}", SystemEventType.STATE_CHANGE)

    def _on_pump_setpoint(self, sender: Any, value: float) -> None:
        self._publish(sender.name, f"{sender.setpoint_label} changed: {value:.1f}%", SystemEventType.DATA_UPDATE)

    def _on_chlorine_level(self, sender: Any, value: float) -> None:
        self._publish(sender.name, f"Chlorine level changed: {value:.2f}", SystemEventType.DATA_UPDATE)

    def _on_doser_state(self, sender: Any, is_active: bool) -> None:
        state = "ACTIVE" if is_active else "INACTIVE"
        if getattr(self._local, "operator", False):
            self._publish(sender.name, f"State changed: {state}", SystemEventType.STATE_CHANGE)
            return
        ph = sender.ph_sensor.current_reading if sender.ph_sensor is not None else None
        detail = f" (pH {ph:.2f})" if ph is not None else ""
        self._publish(sender.name, f"Automatically {state}{detail}", SystemEventType.AUTOMATIC_ACTION)

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def turn_on(self, device_name: str) -> None:
        device = self._require(device_name, Device)
        if not isinstance(device, Controllable):
            raise TypeError(f"Device '{device_name}' cannot be switched")
        with self._as_operator():
            device.turn_on()
        self._publish(USER, f"{device.name} turned ON", SystemEventType.USER_ACTION)

    def turn_off(self, device_name: str) -> None:
        device = self._require(device_name, Device)
        if not isinstance(device, Controllable):
            raise TypeError(f"Device '{device_name}' cannot be switched")
        with self._as_operator():
            device.turn_off()
        self._publish(USER, f"{device.name} turned OFF", SystemEventType.USER_ACTION)

    def set_flow_rate(self, flow_rate: float, device_name: str | None = None) -> None:
        """Set an intake pump's flow rate; raises ``SetpointOutOfRangeError`` outside 0-100."""
        pump = self._require(device_name, IntakePump)
        self._set_setpoint(pump, flow_rate)

    def set_dosing_rate(self, dosing_rate: float, device_name: str | None = None) -> None:
        pump = self._require(device_name, ChlorinePump)
        self._set_setpoint(pump, dosing_rate)

    def activate_doser(self, device_name: str | None = None) -> None:
        doser = self._require(device_name, ChemicalDoser)
        with self._as_operator():
            doser.activate()
        self._publish(USER, f"{doser.name} manually ACTIVATED", SystemEventType.USER_ACTION)

    def deactivate_doser(self, device_name: str | None = None) -> None:
        doser = self._require(device_name, ChemicalDoser)
        with self._as_operator():
            doser.deactivate()
        self._publish(USER, f"{doser.name} manually DEACTIVATED", SystemEventType.USER_ACTION)

    def set_config(self, device_name: str, key: str, value: Any) -> None:
        device = self._require(device_name, Device)
        if not isinstance(device, Controllable):
            raise TypeError(f"Device '{device_name}' is not configurable")
        with self._as_operator():
            device.set_config(key, value)
        self._publish(USER, f"{device.name} config {key} set to {value!r}", SystemEventType.USER_ACTION)

    def execute(self, command: DeviceCommand) -> None:
        """Dispatch a :class:`DeviceCommand` to the control surface."""
        logger.debug("Executing %s", command)
        action = command.command.lower()
        if action == "turn_on":
            self.turn_on(command.device_name)
        elif action == "turn_off":
            self.turn_off(command.device_name)
        elif action == "activate":
            self.activate_doser(command.device_name)
        elif action == "deactivate":
            self.deactivate_doser(command.device_name)
        elif action == "set_config":
            if len(command.parameters) != 2:
                raise ValueError("set_config expects [name, value] parameters")
            key, value = command.parameters
            self.set_config(command.device_name, str(key), value)
        else:
            raise ValueError(f"Unknown command: {command.command}")

    def _set_setpoint(self, pump: Pump, value: float) -> None:
        try:
            with self._as_operator():
                pump.set_setpoint(value)
        except ValueError as exc:
            self._publish(USER, f"Error setting {pump.setpoint_label.lower()}: {exc}", SystemEventType.ERROR)
            raise
        self._publish(USER, f"{pump.name} {pump.setpoint_label.lower()} set to {value:.1f}%", SystemEventType.USER_ACTION)

    # ------------------------------------------------------------------
    # System control
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.is_running:
            return
        self.scheduler.start_all()
        self.is_running = True
        self._publish(SOURCE, "System STARTED")

    def stop(self) -> None:
        if not self.is_running:
            return
        self.scheduler.stop_all()
        self.is_running = False
        self._publish(SOURCE, "System STOPPED")

    def run(self, duration_s: float | None = None) -> None:
        """Blocking run on the calling thread; see :meth:`DeviceScheduler.run`."""
        self.is_running = True
        self._publish(SOURCE, "System STARTED")
        try:
            self.scheduler.run(duration_s=duration_s)
        finally:
            self.is_running = False
            self._publish(SOURCE, "System STOPPED")

    def shutdown(self) -> None:
        """Stop, drop every event subscription and close data sources and listeners."""
        self.stop()
        self._unwatch_all()
        for device in self.registry:
            if isinstance(device, ChemicalDoser):
                device.link_ph_sensor(None)
            device.close()
        self._publish(SOURCE, "System SHUTDOWN")
        self.event_bus.close()

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def get_system_telemetry(self) -> dict[str, Any]:
        """Plant-wide snapshot: running flag, timestamp and one entry per device."""
        return {
            "isRunning": self.is_running,
            "timestamp": datetime.now().strftime(TIMESTAMP_FORMAT),
            "tickCount": self.scheduler.tick_count,
            "devices": {device.name: device.get_telemetry() for device in self.registry},
        }

    def telemetry_report(self) -> str:
        lines = ["", "=== SYSTEM TELEMETRY ==="]
        for device in self.registry:
            lines.append("")
            lines.append(f"{device.name}:")
            for key, value in device.get_telemetry().items():
                lines.append(f"  {key}: {value}")
        lines.append("========================")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require(self, name: str | None, cls: type[D]) -> D:
        """Look up a device by name (or the first of *cls* when *name* is None)."""
        if name is None:
            for device in self.registry:
                if isinstance(device, cls):
                    return device
            raise KeyError(f"No {cls.__name__} registered")
        device = self.registry.get(name)
        if device is None:
            raise KeyError(f"No device named '{name}'")
        if not isinstance(device, cls):
            raise TypeError(f"Device '{name}' is a {type(device).__name__}, not a {cls.__name__}")
        return device

    @contextlib.contextmanager
    def _as_operator(self) -> Iterator[None]:
        """Run an operator action between ticks.

        Device events raised inside the block (on this thread) are tagged
        as operator-initiated.
        """
        previous = getattr(self._local, "operator", False)
        with self.scheduler.exclusive():
            self._local.operator = True
            try:
                yield
            finally:
                self._local.operator = previous

    def _publish(self, source: str, message: str, event_type: SystemEventType = SystemEventType.INFO) -> None:
        # Tick lock before bus lock, the same order the ticking thread takes them.
        with self.scheduler.exclusive():
            self.event_bus.publish(source, message, event_type)

