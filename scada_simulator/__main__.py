"""CLI entry point for the SCADA device simulator.

Usage::

    scada-simulator run --data-dir ./data --duration 10
    scada-simulator run --config plant.yaml
    scada-simulator list-devices
    scada-simulator init-config --output plant.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap

# ---------------------------------------------------------------------------
# Device kinds for list-devices display: kind -> (class, record layout)
# ---------------------------------------------------------------------------
_DEVICE_LAYOUTS: dict[str, tuple[str, str]] = {
    "ph_sensor": ("PHSensor", "timestamp,phValue,status"),
    "pressure_sensor": ("PressureSensor", "timestamp,pressure,location,status"),
    "temperature_sensor": ("TemperatureSensor", "timestamp,temperature,status"),
    "storage_sensor": ("StorageSensor", "timestamp,level,status"),
    "turbidity_sensor": ("TurbiditySensor", "timestamp,turbidity,status"),
    "intake_pump": ("IntakePump", "timestamp,flowRate,isRunning,pressure,status"),
    "chlorine_pump": ("ChlorinePump", "timestamp,chlorineLevel,dosingRate,isRunning,status"),
    "chemical_doser": ("ChemicalDoser", "(no data file - follows a pH sensor)"),
}

# ---------------------------------------------------------------------------
# Sample YAML config template for init-config
# ---------------------------------------------------------------------------
_SAMPLE_CONFIG = """\
# SCADA device simulator configuration

plant:
  data_dir: ./data                    # relative to this file
  update_interval_ms: 1000            # scheduler tick interval
  # duration_s: 60                    # optional: auto-stop after N seconds
  # log_level: INFO                   # DEBUG, INFO, WARNING, ERROR
  # history_size: 1000                # events kept by the event bus

devices:
  - name: Main pH Sensor
    kind: ph_sensor
    data_file: pHSensor_simulation.csv

  - name: Pressure Sensor
    kind: pressure_sensor
    data_file: PressureSensor_simulation.csv

  - name: Temperature Sensor
    kind: temperature_sensor
    data_file: TempSensor_simulation.csv

  - name: Water Storage
    kind: storage_sensor
    data_file: StorageSensor_simulation.csv

  - name: Filtration Sensor
    kind: turbidity_sensor
    data_file: TurbiditySensor_simulation.csv
    alert_threshold: 5.0              # NTU

  - name: Main Intake Pump
    kind: intake_pump
    data_file: IntakePump_simulation.csv

  - name: Chlorine Pump
    kind: chlorine_pump
    data_file: ChlorinePump_simulation.csv

  - name: Chemical Doser
    kind: chemical_doser
    ph_sensor: Main pH Sensor         # activates while pH is outside 6.5-8.5

# Listeners receive every system event, in order.
listeners:
  - type: console
    fmt: text                         # text or json

  # - type: file
  #   path: ./logs/events.log
  #   format: text                    # text or jsonl
  #   event_types: [Warning, Alert, Error]
"""


# ======================================================================
# Main entry point
# ======================================================================


def main(argv: list[str] | None = None) -> None:
    epilog = textwrap.dedent("""\
        examples:
          scada-simulator run --data-dir ./data --duration 10
          scada-simulator run --config plant.yaml --interval-ms 500
          scada-simulator list-devices
          scada-simulator init-config --output plant.yaml
    """)

    parser = argparse.ArgumentParser(
        prog="scada-simulator",
        description="Simulate a small water-treatment control network from recorded data.",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", title="commands")

    # -- run ---------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Run the plant (tick every device and print system events).",
    )
    source = run_parser.add_mutually_exclusive_group()
    source.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML plant config.",
    )
    source.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory holding the standard simulation CSV files (default: ./data).",
    )
    run_parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Tick interval in milliseconds (default: 1000 or the config value).",
    )
    run_parser.add_argument(
        "--duration",
        "-d",
        type=float,
        default=None,
        help="Run duration in seconds (default: indefinite, Ctrl-C to stop).",
    )
    run_parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO or the config value).",
    )
    run_parser.add_argument(
        "--format",
        type=str,
        default="text",
        choices=["text", "json", "none"],
        help="Console event output when the config defines no listeners (default: text).",
    )
    run_parser.add_argument(
        "--no-report",
        action="store_true",
        help="Do not print the telemetry report on exit.",
    )

    # -- list-devices ------------------------------------------------------
    subparsers.add_parser(
        "list-devices",
        help="List the supported device kinds and their record layouts.",
    )

    # -- init-config -------------------------------------------------------
    init_parser = subparsers.add_parser(
        "init-config",
        help="Generate a sample YAML configuration file.",
    )
    init_parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write config to this file instead of stdout.",
    )

    # A bare flag as first argument (e.g. `scada-simulator --data-dir ./data`)
    # means "run".
    _known_commands = {"run", "list-devices", "init-config"}
    raw_args = argv if argv is not None else sys.argv[1:]
    if raw_args and raw_args[0] not in _known_commands and raw_args[0] not in ("-h", "--help"):
        raw_args = ["run", *list(raw_args)]

    args = parser.parse_args(raw_args)

    if args.command is None:
        parser.print_help()
        return

    # -- Dispatch ----------------------------------------------------------
    if args.command == "run":
        _cmd_run(args)
    elif args.command == "list-devices":
        _cmd_list_devices()
    elif args.command == "init-config":
        _cmd_init_config(args.output)
    else:
        parser.print_help()


# ======================================================================
# Command implementations
# ======================================================================


def _cmd_run(args: argparse.Namespace) -> None:
    """Build the plant and run it until the duration elapses or Ctrl-C."""
    from scada_simulator.config import default_plant_config, load_plant_config
    from scada_simulator.errors import DataSourceNotFoundError
    from scada_simulator.listeners.console import ConsoleListener
    from scada_simulator.plant import PlantController

    if args.config:
        cfg = load_plant_config(args.config)
    else:
        cfg = default_plant_config(args.data_dir or "./data")

    if args.interval_ms is not None:
        cfg.update_interval_ms = args.interval_ms
    log_level = args.log_level or cfg.log_level

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )

    plant = PlantController(cfg)
    if not cfg.listener_configs and args.format != "none":
        plant.event_bus.add_listener(ConsoleListener(fmt=args.format))

    try:
        plant.build()
    except DataSourceNotFoundError as exc:
        plant.shutdown()
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    duration = args.duration if args.duration is not None else cfg.duration_s
    try:
        plant.run(duration_s=duration)
    finally:
        if not args.no_report:
            print(plant.telemetry_report())
        plant.shutdown()


# -- list-devices -----------------------------------------------------------


def _cmd_list_devices() -> None:
    print(f"\n{'Kind':<20} {'Class':<18} {'Record layout'}")
    print("-" * 80)
    for kind, (class_name, layout) in _DEVICE_LAYOUTS.items():
        print(f"{kind:<20} {class_name:<18} {layout}")
    print()


# -- init-config ------------------------------------------------------------


def _cmd_init_config(output_path: str | None) -> None:
    if output_path:
        from pathlib import Path

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(_SAMPLE_CONFIG)
        print(f"Sample config written to {output_path}")
    else:
        print(_SAMPLE_CONFIG)


# ======================================================================
if __name__ == "__main__":
    main()
