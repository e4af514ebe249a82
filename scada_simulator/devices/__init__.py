"""Simulated field devices.

Import any device you need directly from this package::

    from scada_simulator.devices import PHSensor, ChemicalDoser
"""

from __future__ import annotations

from scada_simulator.devices.actuators import ChemicalDoser, ChlorinePump, IntakePump, Pump
from scada_simulator.devices.base import Controllable, Device, Sensor
from scada_simulator.devices.sensors import (
    PHSensor,
    PressureSensor,
    StorageSensor,
    TemperatureSensor,
    TurbiditySensor,
)

__all__ = [
    "ChemicalDoser",
    "ChlorinePump",
    "Controllable",
    "Device",
    "IntakePump",
    "PHSensor",
    "PressureSensor",
    "Pump",
    "Sensor",
    "StorageSensor",
    "TemperatureSensor",
    "TurbiditySensor",
]
