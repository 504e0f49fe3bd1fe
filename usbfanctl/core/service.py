"""Service layer used by CLI and the public API."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from usbfanctl.core.configurator import configure
from usbfanctl.core.control import ControlLoop
from usbfanctl.core.endpoints import list_endpoints, select_pair
from usbfanctl.core.errors import ProtocolError, TransportError
from usbfanctl.core.link import FanLink
from usbfanctl.core.model import (
    DEFAULT_FANS,
    TARGET_DEVICE,
    DeviceDescriptor,
    DeviceIdentity,
    Endpoint,
    FanReading,
    Outcome,
)
from usbfanctl.core.sensors import PsutilTemperatureSensor, TemperatureSensor
from usbfanctl.core.session import DeviceSession
from usbfanctl.transports.base import UsbBus
from usbfanctl.transports.pyusb import PyUSBBus

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadyDevice:
    session: DeviceSession
    endpoints: tuple[Endpoint, ...]
    endpoint_in: Endpoint
    endpoint_out: Endpoint
    link: FanLink
    outcomes: tuple[Outcome, ...]

    @property
    def has_kernel_driver(self) -> bool:
        return self.session.driver_detached


class FanService:
    def __init__(
        self,
        *,
        bus: UsbBus | None = None,
        sensor: TemperatureSensor | None = None,
        identity: DeviceIdentity = TARGET_DEVICE,
        fans: Sequence[int] = DEFAULT_FANS,
    ) -> None:
        self.bus = bus or PyUSBBus()
        self.sensor = sensor or PsutilTemperatureSensor()
        self.identity = identity
        self.fans = tuple(fans)

    def list_devices(self) -> list[DeviceDescriptor]:
        descriptors: list[DeviceDescriptor] = []
        for device in self.bus.devices():
            try:
                descriptors.append(device.descriptor())
            except TransportError as exc:
                LOGGER.debug("Skipping device with unreadable descriptor: %s", exc)
        return descriptors

    def list_endpoints(self) -> list[Endpoint]:
        with DeviceSession.open(self.bus, self.identity) as session:
            return list_endpoints(session.device)

    @contextmanager
    def open_device(
        self,
        *,
        on_driver_checked: Callable[[bool], None] | None = None,
    ) -> Iterator[ReadyDevice]:
        """Open, claim and configure the controller for the duration of the block.

        ``on_driver_checked`` receives whether a kernel driver was detached, before
        any later setup step can fail. Setup failures after the device was opened
        still release what was acquired before the error propagates.
        """
        with DeviceSession.open(self.bus, self.identity) as session:
            outcomes = [session.detach_conflicting_driver()]
            if on_driver_checked is not None:
                on_driver_checked(session.driver_detached)

            endpoints = list_endpoints(session.device)
            endpoint_in, endpoint_out = select_pair(endpoints)
            LOGGER.info("Using endpoints in=0x%02x out=0x%02x", endpoint_in.address, endpoint_out.address)

            # Interface and setting come from the first endpoint, which the
            # inbound/outbound pair shares on this device.
            outcomes.extend(configure(session, endpoint_in))

            link = FanLink(session.handle, endpoint_in.address, endpoint_out.address)
            outcomes.append(link.set_idle())

            yield ReadyDevice(
                session=session,
                endpoints=tuple(endpoints),
                endpoint_in=endpoint_in,
                endpoint_out=endpoint_out,
                link=link,
                outcomes=tuple(outcomes),
            )

    def run(
        self,
        *,
        on_ready: Callable[[ReadyDevice], None] | None = None,
        on_driver_checked: Callable[[bool], None] | None = None,
        on_reading: Callable[[FanReading], None] | None = None,
        stop_event: threading.Event | None = None,
        interval_s: float = 0.0,
        max_iterations: int | None = None,
    ) -> int:
        with self.open_device(on_driver_checked=on_driver_checked) as ready:
            if on_ready is not None:
                on_ready(ready)
            loop = ControlLoop(
                ready.link,
                self.sensor,
                fans=self.fans,
                on_reading=on_reading,
                stop_event=stop_event,
                interval_s=interval_s,
            )
            return loop.run(max_iterations=max_iterations)

    def read_speeds(self, fans: Sequence[int] | None = None) -> dict[int, int | None]:
        speeds: dict[int, int | None] = {}
        with self.open_device() as ready:
            for fan in fans or self.fans:
                try:
                    rpm = ready.link.get_speed(fan)
                except (TransportError, ProtocolError) as exc:
                    LOGGER.debug("No reading for fan %d: %s", fan, exc)
                    rpm = 0
                speeds[fan] = rpm or None
        return speeds

    def set_speed(self, duty: int, fans: Sequence[int] | None = None) -> list[Outcome]:
        with self.open_device() as ready:
            return [ready.link.set_speed(fan, duty) for fan in fans or self.fans]
