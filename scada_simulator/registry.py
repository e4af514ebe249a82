"""Name-keyed collection of devices.

Names are compared case-insensitively; registration order is preserved
and is the order in which the scheduler ticks devices.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator

from scada_simulator.devices.base import Device
from scada_simulator.errors import DeviceAlreadyExistsError

__all__ = ["DeviceRegistry"]

logger = logging.getLogger("scada_simulator.registry")


class DeviceRegistry:
    """Owns every registered device.

    All methods are safe to call from a thread other than the ticking
    thread; :meth:`get_all` returns an independent snapshot.
    """

    def __init__(self, devices: list[Device] | None = None) -> None:
        # { "main ph sensor": PHSensor(...) }
        self._devices: dict[str, Device] = {}
        self._lock = threading.Lock()
        for device in devices or []:
            self.add(device)

    @staticmethod
    def _key(name: str) -> str:
        return name.casefold()

    def add(self, device: Device) -> None:
        """Register *device*; raises :class:`DeviceAlreadyExistsError` on a name clash."""
        if device is None:
            raise TypeError("device must not be None")
        key = self._key(device.name)
        with self._lock:
            if key in self._devices:
                raise DeviceAlreadyExistsError(device.name)
            self._devices[key] = device
        logger.info("Device added to registry: %s", device.name)

    def remove(self, name: str) -> Device | None:
        """Unregister *name*.  Unknown names are ignored."""
        with self._lock:
            device = self._devices.pop(self._key(name), None)
        if device is not None:
            logger.info("Device removed from registry: %s", name)
        return device

    def get(self, name: str) -> Device | None:
        with self._lock:
            return self._devices.get(self._key(name))

    def get_all(self) -> list[Device]:
        """Return a snapshot list; mutating it does not affect the registry."""
        with self._lock:
            return list(self._devices.values())

    @property
    def names(self) -> list[str]:
        return [device.name for device in self.get_all()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[Device]:
        return iter(self.get_all())

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)
