#!/usr/bin/env python3
"""Operator control example -- run the standard plant in the background and
drive it from the main thread like an operator panel would.

Shows:
- following the system event stream with a callback
- switching pumps and changing setpoints while the scheduler ticks
- sending a DeviceCommand
- filtering the event history (automatic doser actions)

Usage::

    python examples/scenarios/operator_control_example.py
"""

from __future__ import annotations

import time
from pathlib import Path


def main() -> None:
    from scada_simulator import DeviceCommand, PlantController, SystemEvent, SystemEventType

    print("=== Operator Control Example ===\n")

    data_dir = Path(__file__).parent.parent / "data"
    plant = PlantController.from_data_dir(data_dir, interval_ms=250)

    def on_event(event: SystemEvent) -> None:
        if event.event_type != SystemEventType.DATA_UPDATE:
            print(f"  {event.to_line()}")

    plant.event_bus.add_listener(on_event)
    plant.start()

    try:
        time.sleep(2)
        print("\n  -> operator: intake pump ON at 60 %\n")
        plant.turn_on("Main Intake Pump")
        plant.set_flow_rate(60)
        time.sleep(2)

        print("\n  -> operator: invalid flow rate (150 %)\n")
        try:
            plant.set_flow_rate(150)
        except ValueError as exc:
            print(f"  rejected: {exc}")

        print("\n  -> operator: chlorine pump OFF via DeviceCommand\n")
        plant.execute(DeviceCommand(device_name="Chlorine Pump", command="turn_off"))
        time.sleep(3)
    finally:
        plant.stop()

    automatic = plant.event_bus.history(SystemEventType.AUTOMATIC_ACTION)
    print(f"\n  Automatic doser actions: {len(automatic)}")
    for event in automatic:
        print(f"    {event.to_line()}")

    print(plant.telemetry_report())
    plant.shutdown()


if __name__ == "__main__":
    main()
