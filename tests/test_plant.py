"""Tests for scada_simulator.plant - PlantController wiring and control surface."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from scada_simulator.config import DeviceSpec, PlantConfig, default_plant_config
from scada_simulator.devices.actuators import ChemicalDoser, ChlorinePump, IntakePump
from scada_simulator.devices.sensors import PHSensor, TurbiditySensor
from scada_simulator.errors import DataSourceNotFoundError, SetpointOutOfRangeError
from scada_simulator.models import DeviceCommand, DeviceKind, DeviceStatus, SystemEvent, SystemEventType
from scada_simulator.plant import PlantController, build_device

# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------


def _messages(plant: PlantController, event_type: SystemEventType | None = None) -> list[str]:
    return [e.message for e in plant.event_bus.history(event_type)]


def _started(plant: PlantController) -> PlantController:
    plant.scheduler.start_devices()
    return plant


# -----------------------------------------------------------------------
# Build
# -----------------------------------------------------------------------


class TestBuild:
    def test_from_data_dir_builds_standard_plant(self, plant_data_dir: Path) -> None:
        plant = PlantController.from_data_dir(plant_data_dir, interval_ms=100)
        try:
            assert len(plant.registry) == 8
            assert plant.scheduler.interval_ms == 100
            assert all(d.status == DeviceStatus.ONLINE for d in plant.registry)
            doser = plant.registry.get("Chemical Doser")
            assert isinstance(doser, ChemicalDoser)
            assert doser.ph_sensor is plant.registry.get("Main pH Sensor")
            assert _messages(plant)[:1] == ["Initializing system..."]
            assert "System initialized successfully" in _messages(plant)
        finally:
            plant.shutdown()

    def test_missing_data_file_raises_and_publishes_error(self, tmp_path: Path) -> None:
        plant = PlantController(default_plant_config(tmp_path))
        with pytest.raises(DataSourceNotFoundError):
            plant.build()
        errors = _messages(plant, SystemEventType.ERROR)
        assert len(errors) == 1
        assert errors[0].startswith("Initialization error")

    def test_build_device_requires_data_file(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="needs a data_file"):
            build_device(DeviceSpec(name="pH", kind=DeviceKind.PH_SENSOR), PlantConfig(data_dir=tmp_path))

    def test_build_device_turbidity_threshold(self, plant_data_dir: Path) -> None:
        spec = DeviceSpec(
            name="Filter",
            kind=DeviceKind.TURBIDITY_SENSOR,
            data_file="TurbiditySensor_simulation.csv",
            alert_threshold=3.0,
        )
        device = build_device(spec, PlantConfig(data_dir=plant_data_dir))
        assert isinstance(device, TurbiditySensor)
        assert device.alert_threshold == 3.0
        device.close()

    def test_doser_link_to_unknown_sensor(self, plant_data_dir: Path) -> None:
        cfg = PlantConfig(
            data_dir=plant_data_dir,
            devices=[DeviceSpec(name="Doser", kind=DeviceKind.CHEMICAL_DOSER, ph_sensor="ghost")],
        )
        with pytest.raises(KeyError):
            PlantController(cfg).build()

    def test_listeners_from_config(self, plant_data_dir: Path, tmp_path: Path) -> None:
        log_path = tmp_path / "events.log"
        cfg = default_plant_config(plant_data_dir)
        cfg.listener_configs = [{"type": "file", "path": str(log_path)}]
        plant = PlantController(cfg)
        plant.build()
        plant.shutdown()
        text = log_path.read_text()
        assert "System initialized successfully" in text
        assert "System SHUTDOWN" in text


# -----------------------------------------------------------------------
# Device events republished on the bus
# -----------------------------------------------------------------------


class TestEventRepublishing:
    def test_tick_publishes_reading_changes(self, plant_data_dir: Path) -> None:
        plant = _started(PlantController.from_data_dir(plant_data_dir))
        plant.event_bus.clear_history()
        plant.scheduler.tick()
        sources = {e.source for e in plant.event_bus.history(SystemEventType.DATA_UPDATE)}
        assert {"Temperature Sensor", "Water Storage", "Filtration Sensor"} <= sources
        # pressure starts at 2.3, the first record
        assert "Pressure Sensor" not in sources
        plant.shutdown()

    def test_out_of_range_reading_publishes_warning(self, plant_data_dir: Path) -> None:
        plant = _started(PlantController.from_data_dir(plant_data_dir))
        plant.scheduler.tick()
        plant.scheduler.tick()  # pH 9.0, pressure 3.2, temperature 22.4, storage 960
        warnings = plant.event_bus.history(SystemEventType.WARNING)
        assert {"Main pH Sensor", "Pressure Sensor", "Temperature Sensor", "Water Storage"} <= {
            e.source for e in warnings
        }
        assert all(e.message.startswith("OUT OF RANGE") for e in warnings)
        plant.shutdown()

    def test_turbidity_alert(self, plant_data_dir: Path) -> None:
        plant = _started(PlantController.from_data_dir(plant_data_dir))
        plant.scheduler.tick()
        plant.scheduler.tick()
        alerts = plant.event_bus.history(SystemEventType.ALERT)
        assert [e.source for e in alerts] == ["Filtration Sensor"]
        assert "6.50 NTU" in alerts[0].message
        plant.scheduler.tick()  # wraps to 1.5
        assert any(m.startswith("ALERT CLEARED") for m in _messages(plant, SystemEventType.INFO))
        plant.shutdown()

    def test_automatic_doser_action(self, plant_data_dir: Path) -> None:
        plant = _started(PlantController.from_data_dir(plant_data_dir))
        plant.scheduler.tick()
        plant.scheduler.tick()  # pH 9.0
        automatic = plant.event_bus.history(SystemEventType.AUTOMATIC_ACTION)
        assert len(automatic) == 1
        assert automatic[0].source == "Chemical Doser"
        assert automatic[0].message.startswith("Automatically ACTIVE")
        plant.scheduler.tick()  # pH 7.2
        assert plant.event_bus.history(SystemEventType.AUTOMATIC_ACTION)[-1].message.startswith(
            "Automatically INACTIVE"
        )
        plant.shutdown()

    def test_pump_events(self, plant_data_dir: Path) -> None:
        plant = _started(PlantController.from_data_dir(plant_data_dir))
        plant.scheduler.tick()
        states = plant.event_bus.history(SystemEventType.STATE_CHANGE)
        assert {e.source for e in states} == {"Main Intake Pump", "Chlorine Pump"}
        data = _messages(plant, SystemEventType.DATA_UPDATE)
        assert "Flow rate changed: 50.0%" in data
        assert "Dosing rate changed: 40.0%" in data
        assert "Chlorine level changed: 1.50" in data
        plant.shutdown()

    def test_device_fault_published(self, plant_data_dir: Path) -> None:
        plant = _started(PlantController.from_data_dir(plant_data_dir))
        sensor = plant.registry.get("Main pH Sensor")

        def boom(_sender: object, _value: float) -> None:
            raise RuntimeError("display panel crashed")

        sensor.on_reading_change.subscribe(boom)
        plant.scheduler.tick()  # pH 7.0, unchanged
        assert plant.event_bus.history(SystemEventType.ERROR) == []
        plant.scheduler.tick()  # pH 9.0 reaches the failing subscriber
        errors = plant.event_bus.history(SystemEventType.ERROR)
        assert [e.source for e in errors] == ["Main pH Sensor"]
        assert errors[0].message == "Device fault: display panel crashed"
        assert sensor.status == DeviceStatus.ERROR
        assert plant.scheduler.last_fault is not None
        assert plant.scheduler.last_fault.device_name == "Main pH Sensor"
        assert plant.registry.get("Water Storage").current_reading == 960.0
        plant.shutdown()


# -----------------------------------------------------------------------
# Control surface
# -----------------------------------------------------------------------


class TestControlSurface:
    @pytest.fixture
    def plant(self, plant_data_dir: Path):
        plant = PlantController.from_data_dir(plant_data_dir)
        yield plant
        plant.shutdown()

    def test_set_flow_rate(self, plant: PlantController) -> None:
        plant.turn_on("main intake pump")
        plant.set_flow_rate(60)
        pump = plant.registry.get("Main Intake Pump")
        assert isinstance(pump, IntakePump)
        assert pump.flow_rate == 60.0
        assert "Main Intake Pump flow rate set to 60.0%" in _messages(plant, SystemEventType.USER_ACTION)

    def test_invalid_flow_rate(self, plant: PlantController) -> None:
        with pytest.raises(SetpointOutOfRangeError):
            plant.set_flow_rate(150)
        errors = plant.event_bus.history(SystemEventType.ERROR)
        assert errors[-1].source == "UserAction"
        assert errors[-1].message.startswith("Error setting flow rate")

    def test_set_dosing_rate(self, plant: PlantController) -> None:
        plant.turn_on("Chlorine Pump")
        plant.set_dosing_rate(35)
        pump = plant.registry.get("Chlorine Pump")
        assert isinstance(pump, ChlorinePump)
        assert pump.dosing_rate == 35.0

    def test_turn_off_publishes_state_and_zero(self, plant: PlantController) -> None:
        plant.turn_on("Main Intake Pump")
        plant.set_flow_rate(40)
        plant.event_bus.clear_history()
        plant.turn_off("Main Intake Pump")
        messages = _messages(plant)
        assert "State changed: OFF" in messages
        assert "Flow rate changed: 0.0%" in messages
        assert "Main Intake Pump turned OFF" in messages

    def test_manual_doser_is_state_change_not_automatic(self, plant: PlantController) -> None:
        plant.event_bus.clear_history()
        plant.activate_doser()
        plant.deactivate_doser("Chemical Doser")
        assert _messages(plant, SystemEventType.STATE_CHANGE) == ["State changed: ACTIVE", "State changed: INACTIVE"]
        assert plant.event_bus.history(SystemEventType.AUTOMATIC_ACTION) == []
        assert _messages(plant, SystemEventType.USER_ACTION) == [
            "Chemical Doser manually ACTIVATED",
            "Chemical Doser manually DEACTIVATED",
        ]

    def test_sensor_cannot_be_switched(self, plant: PlantController) -> None:
        with pytest.raises(TypeError):
            plant.turn_on("Main pH Sensor")

    def test_unknown_device(self, plant: PlantController) -> None:
        with pytest.raises(KeyError):
            plant.turn_off("Ghost Pump")

    def test_wrong_device_type(self, plant: PlantController) -> None:
        with pytest.raises(TypeError):
            plant.set_flow_rate(10, device_name="Chlorine Pump")

    def test_execute_commands(self, plant: PlantController) -> None:
        plant.execute(DeviceCommand(device_name="Main Intake Pump", command="TURN_ON"))
        plant.execute(DeviceCommand(device_name="Main Intake Pump", command="set_config", parameters=["flowRate", 25]))
        plant.execute(DeviceCommand(device_name="Chemical Doser", command="activate"))
        assert plant.registry.get("Main Intake Pump").get_config("flowRate") == 25.0
        assert plant.registry.get("Chemical Doser").is_active is True

    def test_execute_unknown_command(self, plant: PlantController) -> None:
        with pytest.raises(ValueError, match="Unknown command"):
            plant.execute(DeviceCommand(device_name="Main Intake Pump", command="explode"))

    def test_execute_bad_set_config(self, plant: PlantController) -> None:
        with pytest.raises(ValueError):
            plant.execute(DeviceCommand(device_name="Main Intake Pump", command="set_config", parameters=["x"]))


# -----------------------------------------------------------------------
# Running and telemetry
# -----------------------------------------------------------------------


class TestRunAndTelemetry:
    def test_run_for_duration(self, plant_data_dir: Path) -> None:
        plant = PlantController.from_data_dir(plant_data_dir, interval_ms=20)
        plant.run(duration_s=0.1)
        assert plant.is_running is False
        assert plant.scheduler.tick_count >= 1
        messages = _messages(plant)
        assert messages.index("System STARTED") < messages.index("System STOPPED")
        plant.shutdown()

    def test_start_stop_background(self, plant_data_dir: Path) -> None:
        plant = PlantController.from_data_dir(plant_data_dir, interval_ms=20)
        plant.start()
        assert plant.is_running is True
        plant.stop()
        assert plant.is_running is False
        assert all(not d.is_running for d in plant.registry)
        plant.shutdown()

    def test_shutdown_unsubscribes_everything(self, plant_data_dir: Path) -> None:
        plant = PlantController.from_data_dir(plant_data_dir)
        sensor = plant.registry.get("Main pH Sensor")
        assert isinstance(sensor, PHSensor)
        plant.shutdown()
        assert sensor.on_reading_change.subscriber_count == 0
        assert sensor.data_source is not None and sensor.data_source.closed
        assert _messages(plant)[-1] == "System SHUTDOWN"

    def test_system_telemetry(self, plant_data_dir: Path) -> None:
        plant = PlantController.from_data_dir(plant_data_dir)
        telemetry = plant.get_system_telemetry()
        assert telemetry["isRunning"] is False
        assert set(telemetry["devices"]) == set(plant.registry.names)
        assert telemetry["devices"]["Pressure Sensor"]["pressureStatus"] == "Normal Pressure"
        report = plant.telemetry_report()
        assert "=== SYSTEM TELEMETRY ===" in report
        assert "Chemical Doser:" in report
        plant.shutdown()

    def test_add_device_is_watched(self, plant_data_dir: Path) -> None:
        plant = PlantController.from_data_dir(plant_data_dir)
        extra = ChemicalDoser("Backup Doser")
        plant.add_device(extra)
        plant.activate_doser("Backup Doser")
        assert any(e.source == "Backup Doser" for e in plant.event_bus.history(SystemEventType.STATE_CHANGE))
        plant.shutdown()

    def test_listener_may_call_control_surface_while_ticking(self, plant_data_dir: Path) -> None:
        plant = PlantController.from_data_dir(plant_data_dir, interval_ms=10)
        reactions: list[float] = []

        def on_event(event: SystemEvent) -> None:
            if event.message.endswith("manually ACTIVATED"):
                plant.set_flow_rate(10)
                reactions.append(10.0)

        plant.event_bus.add_listener(on_event)
        plant.start()

        def operator() -> None:
            for _ in range(20):
                plant.activate_doser()
                plant.deactivate_doser()

        worker = threading.Thread(target=operator, daemon=True)
        worker.start()
        worker.join(timeout=5.0)
        assert not worker.is_alive()
        assert len(reactions) == 20
        assert plant.scheduler.tick_count > 0
        plant.shutdown()
