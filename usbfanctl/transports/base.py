"""USB bus interfaces.

The session, resolver, and control loop only talk to these protocols, so a
fake bus can stand in for real hardware.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from usbfanctl.core.model import ConfigDescriptor, DeviceDescriptor


class UsbHandle(Protocol):
    def kernel_driver_active(self, interface: int) -> bool:
        """Return whether a kernel driver is bound to the interface."""

    def detach_kernel_driver(self, interface: int) -> None:
        """Unbind the kernel driver from the interface."""

    def attach_kernel_driver(self, interface: int) -> None:
        """Rebind the kernel driver to the interface."""

    def set_configuration(self, config: int) -> None:
        """Activate a configuration by its bConfigurationValue."""

    def claim_interface(self, interface: int) -> None:
        """Claim the interface for exclusive access."""

    def release_interface(self, interface: int) -> None:
        """Release a previously claimed interface."""

    def set_alternate_setting(self, interface: int, setting: int) -> None:
        """Select an alternate setting on a claimed interface."""

    def write_control(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        data: bytes,
        *,
        timeout_ms: int,
    ) -> int:
        """Perform a host-to-device control transfer and return bytes written."""

    def write_interrupt(self, endpoint: int, data: bytes, *, timeout_ms: int) -> int:
        """Write an interrupt frame and return bytes written."""

    def read_interrupt(self, endpoint: int, size: int, *, timeout_ms: int) -> bytes:
        """Read up to ``size`` bytes from an interrupt endpoint."""

    def close(self) -> None:
        """Close the handle and free its libusb resources."""


class UsbDevice(Protocol):
    def descriptor(self) -> DeviceDescriptor:
        """Read the device descriptor."""

    def config_descriptor(self, index: int) -> ConfigDescriptor:
        """Read the configuration descriptor at ``index`` (0-based)."""

    def open(self) -> UsbHandle:
        """Open a handle to the device."""


class UsbBus(Protocol):
    def devices(self) -> Iterable[UsbDevice]:
        """Enumerate every device visible on the bus."""
