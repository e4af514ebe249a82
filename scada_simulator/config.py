"""Configuration loader for the plant YAML format.

Parses YAML files with the following top-level sections::

    plant:        # scheduler / runtime settings
    devices:      # device definitions (kind, data file, links)
    listeners:    # list of event listener configs

Example:

.. code-block:: yaml

    plant:
      data_dir: ./data
      update_interval_ms: 1000

    devices:
      - name: Main pH Sensor
        kind: ph_sensor
        data_file: pHSensor_simulation.csv
      - name: Chemical Doser
        kind: chemical_doser
        ph_sensor: Main pH Sensor

    listeners:
      - type: console
        fmt: text
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from scada_simulator.models import DeviceKind

__all__ = [
    "DeviceSpec",
    "PlantConfig",
    "default_plant_config",
    "load_plant_config",
]

logger = logging.getLogger("scada_simulator.config")


class DeviceSpec(BaseModel):
    """Definition of one device in the plant.

    Attributes:
        name: Unique (case-insensitive) device name.
        kind: One of :class:`DeviceKind`.
        data_file: Simulation file, relative to ``PlantConfig.data_dir``
            unless absolute.  Not used by the chemical doser.
        alert_threshold: Turbidity alert threshold in NTU (turbidity only).
        ph_sensor: Name of the pH sensor a chemical doser observes.
    """

    name: str
    kind: DeviceKind
    data_file: str | None = None
    alert_threshold: float | None = None
    ph_sensor: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: Any) -> Any:
        return value.lower().strip() if isinstance(value, str) else value


class PlantConfig(BaseModel):
    """Parsed representation of the full YAML configuration.

    Attributes:
        data_dir: Base directory for relative ``data_file`` paths.
        update_interval_ms: Scheduler tick interval.
        duration_s: Optional run duration (seconds).
        log_level: Logging level string.
        history_size: Events retained by the event bus.
        devices: Device definitions, in registration order.
        listener_configs: Raw dicts passed to the listener factory.
    """

    data_dir: Path = Path("./data")
    update_interval_ms: int = Field(default=1000, gt=0)
    duration_s: float | None = None
    log_level: str = "INFO"
    history_size: int = Field(default=1000, gt=0)
    devices: list[DeviceSpec] = Field(default_factory=list)
    listener_configs: list[dict[str, Any]] = Field(default_factory=list)

    def resolve(self, data_file: str) -> Path:
        path = Path(data_file)
        return path if path.is_absolute() else self.data_dir / path


def load_plant_config(path: str | Path) -> PlantConfig:
    """Load and validate a YAML configuration file.

    Relative ``data_dir`` values are resolved against the directory that
    contains the config file.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    # --- plant section ---
    plant_section = raw.get("plant", {}) or {}
    data_dir = Path(plant_section.get("data_dir", "."))
    if not data_dir.is_absolute():
        data_dir = path.parent / data_dir

    config = PlantConfig(
        data_dir=data_dir,
        update_interval_ms=int(plant_section.get("update_interval_ms", 1000)),
        duration_s=plant_section.get("duration_s"),
        log_level=str(plant_section.get("log_level", "INFO")).upper(),
        history_size=int(plant_section.get("history_size", 1000)),
        devices=raw.get("devices", []) or [],
        listener_configs=raw.get("listeners", []) or [],
    )

    logger.info(
        "Loaded config: %d devices, %d listeners, %d ms interval",
        len(config.devices),
        len(config.listener_configs),
        config.update_interval_ms,
    )
    return config


# Standard plant layout: (name, kind, data file)
_DEFAULT_DEVICES: list[tuple[str, DeviceKind, str | None]] = [
    ("Main pH Sensor", DeviceKind.PH_SENSOR, "pHSensor_simulation.csv"),
    ("Pressure Sensor", DeviceKind.PRESSURE_SENSOR, "PressureSensor_simulation.csv"),
    ("Temperature Sensor", DeviceKind.TEMPERATURE_SENSOR, "TempSensor_simulation.csv"),
    ("Water Storage", DeviceKind.STORAGE_SENSOR, "StorageSensor_simulation.csv"),
    ("Filtration Sensor", DeviceKind.TURBIDITY_SENSOR, "TurbiditySensor_simulation.csv"),
    ("Main Intake Pump", DeviceKind.INTAKE_PUMP, "IntakePump_simulation.csv"),
    ("Chlorine Pump", DeviceKind.CHLORINE_PUMP, "ChlorinePump_simulation.csv"),
    ("Chemical Doser", DeviceKind.CHEMICAL_DOSER, None),
]


def default_plant_config(data_dir: str | Path = "./data") -> PlantConfig:
    """Return the standard seven-device plant plus the pH-linked chemical doser."""
    devices = [
        DeviceSpec(
            name=name,
            kind=kind,
            data_file=data_file,
            alert_threshold=5.0 if kind == DeviceKind.TURBIDITY_SENSOR else None,
            ph_sensor="Main pH Sensor" if kind == DeviceKind.CHEMICAL_DOSER else None,
        )
        for name, kind, data_file in _DEFAULT_DEVICES
    ]
    return PlantConfig(data_dir=Path(data_dir), devices=devices)
