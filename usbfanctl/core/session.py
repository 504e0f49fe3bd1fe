"""Device session lifecycle: discovery, kernel driver handling, and teardown."""

from __future__ import annotations

import logging
from types import TracebackType

from usbfanctl.core.errors import DeviceNotFoundError, NoAccessibleDeviceError, TransportError
from usbfanctl.core.model import DeviceIdentity, Outcome
from usbfanctl.transports.base import UsbBus, UsbDevice, UsbHandle

LOGGER = logging.getLogger(__name__)

DRIVER_INTERFACE = 0


class DeviceSession:
    """An open handle to the fan controller.

    Use as a context manager so the claimed interface is released, any
    detached kernel driver is reattached and the handle is closed on every
    exit path.
    """

    def __init__(self, device: UsbDevice, handle: UsbHandle) -> None:
        self.device = device
        self.handle = handle
        self.driver_detached = False
        self.driver_interface = DRIVER_INTERFACE
        self.claimed_interface: int | None = None
        self._closed = False

    @classmethod
    def open(cls, bus: UsbBus, identity: DeviceIdentity) -> DeviceSession:
        matched = 0
        try:
            for device in bus.devices():
                try:
                    descriptor = device.descriptor()
                except TransportError as exc:
                    LOGGER.debug("Skipping device with unreadable descriptor: %s", exc)
                    continue
                if not descriptor.matches(identity):
                    continue

                matched += 1
                try:
                    handle = device.open()
                except TransportError as exc:
                    LOGGER.warning("Could not open %s at bus %s address %s: %s",
                                   identity, descriptor.bus, descriptor.address, exc)
                    continue
                LOGGER.info("Opened %s at bus %s address %s", identity, descriptor.bus, descriptor.address)
                return cls(device, handle)
        except TransportError as exc:
            raise DeviceNotFoundError(f"Could not enumerate USB devices: {exc}") from exc

        if matched:
            raise NoAccessibleDeviceError(
                f"Found {matched} device(s) matching {identity} but none could be opened. "
                "Check permissions (udev rules) or run as root."
            )
        raise DeviceNotFoundError(f"Did not find USB device {identity}")

    def detach_conflicting_driver(self, interface: int = DRIVER_INTERFACE) -> Outcome:
        step = f"detach kernel driver (interface {interface})"
        try:
            active = self.handle.kernel_driver_active(interface)
        except TransportError as exc:
            LOGGER.debug("Kernel driver query failed, assuming none: %s", exc)
            return Outcome.tolerated(step, exc)
        if not active:
            return Outcome.success(step)

        try:
            self.handle.detach_kernel_driver(interface)
        except TransportError as exc:
            LOGGER.warning("Could not detach kernel driver: %s", exc)
            return Outcome.tolerated(step, exc)
        self.driver_detached = True
        self.driver_interface = interface
        LOGGER.info("Detached kernel driver from interface %d", interface)
        return Outcome.success(step)

    def claim_interface(self, interface: int) -> Outcome:
        step = f"claim interface {interface}"
        try:
            self.handle.claim_interface(interface)
        except TransportError as exc:
            return Outcome.tolerated(step, exc)
        self.claimed_interface = interface
        return Outcome.success(step)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self.claimed_interface is not None:
            try:
                self.handle.release_interface(self.claimed_interface)
            except TransportError as exc:
                LOGGER.warning("Could not release interface %d: %s", self.claimed_interface, exc)
            self.claimed_interface = None

        if self.driver_detached:
            try:
                self.handle.attach_kernel_driver(self.driver_interface)
            except TransportError as exc:
                LOGGER.warning("Could not reattach kernel driver: %s", exc)
            else:
                LOGGER.info("Reattached kernel driver to interface %d", self.driver_interface)

        try:
            self.handle.close()
        except TransportError as exc:
            LOGGER.warning("Could not close device handle: %s", exc)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> DeviceSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
