"""Tests for built-in listeners and the listener factory."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from scada_simulator.listeners.callback import CallbackListener
from scada_simulator.listeners.console import ConsoleListener
from scada_simulator.listeners.factory import _LISTENER_REGISTRY, create_listener, register_listener
from scada_simulator.listeners.file import FileListener
from scada_simulator.models import SystemEvent, SystemEventType

# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------


def _event(message: str = "Reading changed: 7.40 pH", event_type: SystemEventType = SystemEventType.DATA_UPDATE):
    return SystemEvent(source="Main pH Sensor", message=message, event_type=event_type)


# -----------------------------------------------------------------------
# ConsoleListener
# -----------------------------------------------------------------------


class TestConsoleListener:
    def test_text_format(self) -> None:
        buf = io.StringIO()
        listener = ConsoleListener(fmt="text", stream=buf)
        listener.handle(_event())
        output = buf.getvalue()
        assert "[DataUpdate] [Main pH Sensor] Reading changed: 7.40 pH" in output
        assert output.endswith("\n")

    def test_json_format(self) -> None:
        buf = io.StringIO()
        ConsoleListener(fmt="json", stream=buf).handle(_event())
        payload = json.loads(buf.getvalue())
        assert payload["source"] == "Main pH Sensor"
        assert payload["event_type"] == "DataUpdate"

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="Unknown console format"):
            ConsoleListener(fmt="xml")

    def test_defaults_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        ConsoleListener().handle(_event("hello"))
        assert "hello" in capsys.readouterr().out


# -----------------------------------------------------------------------
# FileListener
# -----------------------------------------------------------------------


class TestFileListener:
    def test_text_lines_appended(self, tmp_path: Path) -> None:
        path = tmp_path / "logs" / "events.log"
        listener = FileListener(path=path)
        listener.open()
        listener.handle(_event("one"))
        listener.handle(_event("two"))
        listener.close()
        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert lines[1].endswith("[Main pH Sensor] two")

    def test_jsonl(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        listener = FileListener(path=path, format="jsonl")
        listener.handle(_event("one", SystemEventType.ALERT))
        listener.close()
        record = json.loads(path.read_text().splitlines()[0])
        assert record["message"] == "one"
        assert record["event_type"] == "Alert"

    def test_appends_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "events.log"
        for message in ("first", "second"):
            listener = FileListener(path=path)
            listener.handle(_event(message))
            listener.close()
        assert len(path.read_text().splitlines()) == 2

    def test_unknown_format(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            FileListener(path=tmp_path / "x", format="parquet")


# -----------------------------------------------------------------------
# CallbackListener and filtering
# -----------------------------------------------------------------------


class TestCallbackListener:
    def test_delegates(self) -> None:
        seen: list[SystemEvent] = []
        listener = CallbackListener(seen.append)
        event = _event()
        listener.handle(event)
        assert seen == [event]

    def test_accepts_filter(self) -> None:
        listener = CallbackListener(lambda e: None, event_types=["Warning"])
        assert listener.accepts(_event(event_type=SystemEventType.WARNING))
        assert not listener.accepts(_event(event_type=SystemEventType.INFO))

    def test_invalid_event_type(self) -> None:
        with pytest.raises(ValueError):
            CallbackListener(lambda e: None, event_types=["Bogus"])


# -----------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------


class TestFactory:
    def test_create_console(self) -> None:
        listener = create_listener({"type": "console", "fmt": "json"})
        assert isinstance(listener, ConsoleListener)

    def test_create_file(self, tmp_path: Path) -> None:
        listener = create_listener({"type": "FILE", "path": str(tmp_path / "e.log"), "format": "jsonl"})
        assert isinstance(listener, FileListener)
        assert listener.path == tmp_path / "e.log"

    def test_config_dict_not_mutated(self) -> None:
        config = {"type": "console"}
        create_listener(config)
        assert config == {"type": "console"}

    def test_missing_type(self) -> None:
        with pytest.raises(ValueError, match="'type'"):
            create_listener({"fmt": "text"})

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown listener type"):
            create_listener({"type": "pager"})

    def test_register_custom_listener(self) -> None:
        register_listener("Echo", "scada_simulator.listeners.console", "ConsoleListener")
        try:
            assert isinstance(create_listener({"type": "echo"}), ConsoleListener)
        finally:
            _LISTENER_REGISTRY.pop("echo", None)
