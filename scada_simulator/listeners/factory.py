"""Listener factory - creates listener instances from configuration dicts.

Used by the config-driven (YAML) mode to attach listeners declaratively::

    listeners:
      - type: console
        fmt: text
      - type: file
        path: ./logs/events.log
        format: jsonl
        event_types: [Warning, Alert, Error]
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from scada_simulator.listeners.base import EventListener

__all__ = ["create_listener", "register_listener"]

logger = logging.getLogger("scada_simulator.listeners.factory")

# Registry of type names -> (module_path, class_name)
_LISTENER_REGISTRY: dict[str, tuple[str, str]] = {
    "console": ("scada_simulator.listeners.console", "ConsoleListener"),
    "file": ("scada_simulator.listeners.file", "FileListener"),
    "callback": ("scada_simulator.listeners.callback", "CallbackListener"),
}


def create_listener(config: dict[str, Any]) -> EventListener:
    """Create a listener instance from a configuration dict.

    The dict must contain a ``"type"`` key matching a registered listener
    name.  All other keys are forwarded as keyword arguments to the
    listener constructor.

    Returns:
        A constructed :class:`EventListener` (not yet opened).
    """
    config = dict(config)  # shallow copy
    listener_type = config.pop("type", None)

    if listener_type is None:
        raise ValueError("Listener config must include a 'type' key")

    listener_type = listener_type.lower().strip()

    if listener_type not in _LISTENER_REGISTRY:
        raise ValueError(
            f"Unknown listener type '{listener_type}'.  "
            f"Available: {sorted(_LISTENER_REGISTRY)}"
        )

    module_path, class_name = _LISTENER_REGISTRY[listener_type]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)

    logger.debug("Creating %s with config: %s", class_name, config)
    return cls(**config)


def register_listener(name: str, module_path: str, class_name: str) -> None:
    """Register a custom listener type for config-driven instantiation.

    Example::

        from scada_simulator.listeners.factory import register_listener
        register_listener("historian", "mypackage.listeners", "HistorianListener")
    """
    _LISTENER_REGISTRY[name.lower().strip()] = (module_path, class_name)
