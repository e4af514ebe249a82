"""Device scheduler - ticks every registered device once per interval.

All ``update()`` calls of one tick run sequentially on the same thread,
which gives a total order over every state change and event emitted in a
control cycle.  A failing device is marked ``Error`` and the tick moves
on to the next device.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Iterator

from scada_simulator.devices.base import Device
from scada_simulator.errors import DeviceFaultError
from scada_simulator.event_bus import SystemEventBus
from scada_simulator.models import SystemEventType
from scada_simulator.registry import DeviceRegistry

__all__ = ["DeviceScheduler"]

logger = logging.getLogger("scada_simulator.scheduler")


class DeviceScheduler:
    """Drives a :class:`DeviceRegistry` at a fixed tick interval.

    Example::

        scheduler = DeviceScheduler(registry, interval_ms=1000)
        scheduler.start_all()      # background ticking thread
        ...
        scheduler.stop_all()

    Parameters:
        registry:
            Devices to drive.  The registry is snapshotted at the start of
            every tick, so devices added while running join the next tick.
        interval_ms:
            Tick interval in milliseconds.
        event_bus:
            Optional bus that receives an ``Error`` event for every device
            fault caught at the tick boundary.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        *,
        interval_ms: int = 1000,
        event_bus: SystemEventBus | None = None,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.registry = registry
        self.interval_ms = interval_ms
        self.event_bus = event_bus
        self.tick_count = 0
        self.last_fault: DeviceFaultError | None = None

        self._tick_lock = threading.RLock()
        self._thread: threading.Thread | None = None
        self._stop_requested = threading.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wakeup: asyncio.Event | None = None

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def is_ticking(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Device lifecycle
    # ------------------------------------------------------------------

    def initialize_all(self) -> None:
        for device in self.registry.get_all():
            device.initialize()
        logger.info("All devices initialized")

    def start_devices(self) -> None:
        for device in self.registry.get_all():
            device.start()
        logger.info("All devices started")

    def stop_devices(self) -> None:
        for device in self.registry.get_all():
            device.stop()
        logger.info("All devices stopped")

    def start_all(self) -> None:
        """Initialize and start every device, then tick on a background thread."""
        if self.is_ticking:
            logger.warning("Scheduler already running")
            return
        self.initialize_all()
        self.start_devices()

        self._stop_requested.clear()
        self._thread = threading.Thread(target=self._thread_main, name="device-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started: %d devices, %d ms interval", len(self.registry), self.interval_ms)

    def stop_all(self) -> None:
        """Stop ticking (the current tick finishes first) and stop every device."""
        self._request_stop()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval_s + 5.0)
            if thread.is_alive():
                logger.warning("Scheduler thread did not stop within timeout")
        self._thread = None
        self.stop_devices()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Update every registered device exactly once."""
        with self._tick_lock:
            for device in self.registry.get_all():
                self._update_device(device)
            self.tick_count += 1
        if self.tick_count % 100 == 0:
            logger.debug("Tick %d completed", self.tick_count)

    @contextlib.contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold ticks off while the block runs.

        Operator actions issued from another thread use this so they never
        interleave with a device's ``update()``.  Re-entrant, so it is safe
        to use from an event handler running inside a tick.
        """
        with self._tick_lock:
            yield

    def _update_device(self, device: Device) -> None:
        try:
            device.update()
        except Exception as exc:
            fault = exc if isinstance(exc, DeviceFaultError) else DeviceFaultError(device.name, exc)
            self.last_fault = fault
            device.mark_fault()
            logger.exception("Error updating %s", device.name)
            if self.event_bus is not None:
                self.event_bus.publish(device.name, f"Device fault: {fault.__cause__}", SystemEventType.ERROR)

    # ------------------------------------------------------------------
    # Run loops
    # ------------------------------------------------------------------

    def run(self, duration_s: float | None = None) -> None:
        """Blocking entry point: start devices, tick until *duration_s* or Ctrl-C.

        Works inside environments that already have a running event loop
        (Jupyter, IPython) by ticking on a dedicated thread.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None and loop.is_running():
            exc: list[BaseException | None] = [None]

            def _target() -> None:
                try:
                    asyncio.run(self.run_async(duration_s=duration_s))
                except BaseException as e:
                    exc[0] = e

            t = threading.Thread(target=_target, daemon=True)
            t.start()
            t.join()
            if exc[0] is not None:
                raise exc[0]
        else:
            try:
                asyncio.run(self.run_async(duration_s=duration_s))
            except KeyboardInterrupt:
                logger.info("Interrupted by user")
                self.stop_devices()

    async def run_async(self, duration_s: float | None = None) -> None:
        """Async entry point: start devices, tick in this loop, then stop devices."""
        self.initialize_all()
        self.start_devices()
        self._stop_requested.clear()
        try:
            await self._tick_loop(duration_s)
        finally:
            self.stop_devices()

    def _thread_main(self) -> None:
        try:
            asyncio.run(self._tick_loop(None))
        except Exception:
            logger.exception("Scheduler loop crashed")

    async def _tick_loop(self, duration_s: float | None) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._wakeup = asyncio.Event()
        start_time = loop.time()

        try:
            while not self._stop_requested.is_set():
                if duration_s is not None and loop.time() - start_time >= duration_s:
                    logger.info("Duration reached (%.1fs) - stopping", duration_s)
                    break

                tick_start = loop.time()
                self.tick()

                sleep_time = max(0.0, self.interval_s - (loop.time() - tick_start))
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._wakeup.wait(), timeout=sleep_time)
        except asyncio.CancelledError:
            logger.info("Scheduler cancelled")
        finally:
            self._loop = None
            self._wakeup = None

    def _request_stop(self) -> None:
        self._stop_requested.set()
        loop, wakeup = self._loop, self._wakeup
        if loop is not None and wakeup is not None:
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(wakeup.set)
