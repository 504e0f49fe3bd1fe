"""Public entry points for driving the fan controller from other programs.

Status bars, daemons and scripts should use `Client` and the names exported
here. Setup errors derive from `DeviceSetupError`; everything raised by this
package derives from `UsbfanctlError`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence

from usbfanctl.core.control import compute_duty_cycle
from usbfanctl.core.errors import (
    DeviceNotFoundError,
    DeviceSetupError,
    InterfaceConfigurationError,
    NoAccessibleDeviceError,
    NoEndpointsError,
    ProtocolError,
    SensorError,
    TransportError,
    TransportTimeoutError,
    UsbfanctlError,
)
from usbfanctl.core.model import (
    DEFAULT_FANS,
    TARGET_DEVICE,
    DeviceDescriptor,
    DeviceIdentity,
    Endpoint,
    FanReading,
    Outcome,
)
from usbfanctl.core.sensors import TemperatureSensor
from usbfanctl.core.service import FanService, ReadyDevice
from usbfanctl.transports.base import UsbBus

__all__ = [
    "UsbfanctlError",
    "DeviceSetupError",
    "DeviceNotFoundError",
    "NoAccessibleDeviceError",
    "NoEndpointsError",
    "InterfaceConfigurationError",
    "TransportError",
    "TransportTimeoutError",
    "ProtocolError",
    "SensorError",
    "DEFAULT_FANS",
    "TARGET_DEVICE",
    "DeviceDescriptor",
    "DeviceIdentity",
    "Endpoint",
    "FanReading",
    "Outcome",
    "ReadyDevice",
    "compute_duty_cycle",
    "Client",
]


class Client:
    """Public client for the fan controller.

    A `Client` wraps device discovery, session setup, and the control loop
    behind a stable API intended for third-party tools (daemons, status bars,
    scripts). Pass `bus` and `sensor` to substitute the USB stack or the
    temperature source.
    """

    def __init__(
        self,
        *,
        bus: UsbBus | None = None,
        sensor: TemperatureSensor | None = None,
        fans: Sequence[int] = DEFAULT_FANS,
    ) -> None:
        self._service = FanService(bus=bus, sensor=sensor, fans=fans)
        self._stop_event = threading.Event()

    def list_devices(self) -> list[DeviceDescriptor]:
        return self._service.list_devices()

    def list_endpoints(self) -> list[Endpoint]:
        return self._service.list_endpoints()

    def read_speeds(self, fans: Sequence[int] | None = None) -> dict[int, int | None]:
        return self._service.read_speeds(fans)

    def set_speed(self, duty: int, fans: Sequence[int] | None = None) -> list[Outcome]:
        return self._service.set_speed(duty, fans)

    def run(
        self,
        *,
        on_reading: Callable[[FanReading], None] | None = None,
        interval_s: float = 0.0,
        max_iterations: int | None = None,
    ) -> int:
        self._stop_event.clear()
        return self._service.run(
            on_reading=on_reading,
            stop_event=self._stop_event,
            interval_s=interval_s,
            max_iterations=max_iterations,
        )

    def stop(self) -> None:
        """Ask a running `run()` call to return after its current iteration."""
        self._stop_event.set()
