"""SCADA device simulator - a small water-treatment control network
(sensors, pumps, a chemical doser) driven by recorded CSV data.

Quick start::

    from scada_simulator import PlantController

    plant = PlantController.from_data_dir("./data", interval_ms=500)
    plant.event_bus.add_listener(lambda event: print(event.to_line()))
    plant.run(duration_s=10)
"""

from __future__ import annotations

from scada_simulator.datasource import SimulatedDataSource
from scada_simulator.event_bus import SystemEventBus
from scada_simulator.models import DeviceCommand, DeviceKind, DeviceStatus, SystemEvent, SystemEventType
from scada_simulator.plant import PlantController
from scada_simulator.registry import DeviceRegistry
from scada_simulator.scheduler import DeviceScheduler

__all__ = [
    "DeviceCommand",
    "DeviceKind",
    "DeviceRegistry",
    "DeviceScheduler",
    "DeviceStatus",
    "PlantController",
    "SimulatedDataSource",
    "SystemEvent",
    "SystemEventBus",
    "SystemEventType",
]

__version__ = "0.1.0"
