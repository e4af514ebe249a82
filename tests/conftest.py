"""Shared fixtures - simulation data files written into ``tmp_path``."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

# file name -> (header, rows) for the standard plant
STANDARD_FILES: dict[str, tuple[str, list[str]]] = {
    "pHSensor_simulation.csv": (
        "timestamp,phValue,status",
        ["2024-01-01 00:00:00,7.0,normal", "2024-01-01 00:00:01,9.0,warning", "2024-01-01 00:00:02,7.2,normal"],
    ),
    "PressureSensor_simulation.csv": (
        "timestamp,pressure,location,status",
        ["2024-01-01 00:00:00,2.3,Main Line,normal", "2024-01-01 00:00:01,3.2,Main Line,critical"],
    ),
    "TempSensor_simulation.csv": (
        "timestamp,temperature,status",
        ["2024-01-01 00:00:00,19.5,normal", "2024-01-01 00:00:01,22.4,warning"],
    ),
    "StorageSensor_simulation.csv": (
        "timestamp,level,status",
        ["2024-01-01 00:00:00,800,normal", "2024-01-01 00:00:01,960,warning"],
    ),
    "TurbiditySensor_simulation.csv": (
        "timestamp,turbidity,status",
        ["2024-01-01 00:00:00,1.5,normal", "2024-01-01 00:00:01,6.5,warning"],
    ),
    "IntakePump_simulation.csv": (
        "timestamp,flowRate,isRunning,pressure,status",
        ["2024-01-01 00:00:00,50.0,true,2.2,normal", "2024-01-01 00:00:01,70.0,true,2.4,normal"],
    ),
    "ChlorinePump_simulation.csv": (
        "timestamp,chlorineLevel,dosingRate,isRunning,status",
        ["2024-01-01 00:00:00,1.5,0.4,true,normal", "2024-01-01 00:00:01,1.6,0.5,true,normal"],
    ),
}


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Return ``write(name, header, rows) -> Path`` writing into ``tmp_path``."""

    def _write(name: str, header: str | None, rows: list[str]) -> Path:
        path = tmp_path / name
        lines = ([header] if header is not None else []) + rows
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def plant_data_dir(tmp_path: Path) -> Path:
    """A data directory holding every file of the standard plant."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    for name, (header, rows) in STANDARD_FILES.items():
        (data_dir / name).write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
    return data_dir
