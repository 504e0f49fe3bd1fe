"""USB bus implementation using pyusb (libusb backend)."""

from __future__ import annotations

from collections.abc import Iterator

import usb.core
import usb.util

from usbfanctl.core.errors import TransportError, TransportTimeoutError
from usbfanctl.core.model import ConfigDescriptor, DeviceDescriptor, InterfaceDescriptor


def _translate(action: str, exc: Exception) -> TransportError:
    if isinstance(exc, usb.core.USBTimeoutError):
        return TransportTimeoutError(f"{action} timed out")
    return TransportError(f"{action} failed: {exc}")


class PyUSBHandle:
    def __init__(self, device: usb.core.Device) -> None:
        self._device = device

    def kernel_driver_active(self, interface: int) -> bool:
        try:
            return bool(self._device.is_kernel_driver_active(interface))
        except (usb.core.USBError, NotImplementedError) as exc:
            raise _translate("kernel driver query", exc) from exc

    def detach_kernel_driver(self, interface: int) -> None:
        try:
            self._device.detach_kernel_driver(interface)
        except (usb.core.USBError, NotImplementedError) as exc:
            raise _translate("kernel driver detach", exc) from exc

    def attach_kernel_driver(self, interface: int) -> None:
        try:
            self._device.attach_kernel_driver(interface)
        except (usb.core.USBError, NotImplementedError) as exc:
            raise _translate("kernel driver attach", exc) from exc

    def set_configuration(self, config: int) -> None:
        try:
            self._device.set_configuration(config)
        except usb.core.USBError as exc:
            raise _translate("set configuration", exc) from exc

    def claim_interface(self, interface: int) -> None:
        try:
            usb.util.claim_interface(self._device, interface)
        except usb.core.USBError as exc:
            raise _translate("claim interface", exc) from exc

    def release_interface(self, interface: int) -> None:
        try:
            usb.util.release_interface(self._device, interface)
        except usb.core.USBError as exc:
            raise _translate("release interface", exc) from exc

    def set_alternate_setting(self, interface: int, setting: int) -> None:
        try:
            self._device.set_interface_altsetting(interface=interface, alternate_setting=setting)
        except usb.core.USBError as exc:
            raise _translate("set alternate setting", exc) from exc

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
        try:
            return self._device.ctrl_transfer(
                request_type, request, value, index, data, timeout=timeout_ms
            )
        except usb.core.USBError as exc:
            raise _translate("control transfer", exc) from exc

    def write_interrupt(self, endpoint: int, data: bytes, *, timeout_ms: int) -> int:
        try:
            return self._device.write(endpoint, data, timeout=timeout_ms)
        except usb.core.USBError as exc:
            raise _translate(f"interrupt write to 0x{endpoint:02x}", exc) from exc

    def read_interrupt(self, endpoint: int, size: int, *, timeout_ms: int) -> bytes:
        try:
            return bytes(self._device.read(endpoint, size, timeout=timeout_ms))
        except usb.core.USBError as exc:
            raise _translate(f"interrupt read from 0x{endpoint:02x}", exc) from exc

    def close(self) -> None:
        try:
            usb.util.dispose_resources(self._device)
        except usb.core.USBError as exc:
            raise _translate("close device", exc) from exc


class PyUSBDevice:
    def __init__(self, device: usb.core.Device) -> None:
        self._device = device

    def descriptor(self) -> DeviceDescriptor:
        return DeviceDescriptor(
            vendor_id=self._device.idVendor,
            product_id=self._device.idProduct,
            num_configurations=self._device.bNumConfigurations,
            bus=self._device.bus,
            address=self._device.address,
        )

    def config_descriptor(self, index: int) -> ConfigDescriptor:
        try:
            config = self._device[index]
        except (usb.core.USBError, IndexError) as exc:
            raise TransportError(f"Could not read configuration descriptor {index}: {exc}") from exc
        interfaces = tuple(
            InterfaceDescriptor(
                number=intf.bInterfaceNumber,
                setting=intf.bAlternateSetting,
                endpoints=tuple(ep.bEndpointAddress for ep in intf),
            )
            for intf in config
        )
        return ConfigDescriptor(number=config.bConfigurationValue, interfaces=interfaces)

    def open(self) -> PyUSBHandle:
        # pyusb opens handles lazily on first I/O; force it here so devices
        # that cannot be opened are rejected during discovery.
        try:
            self._device._ctx.managed_open()
        except usb.core.USBError as exc:
            raise _translate("open device", exc) from exc
        return PyUSBHandle(self._device)


class PyUSBBus:
    def devices(self) -> Iterator[PyUSBDevice]:
        try:
            found = list(usb.core.find(find_all=True))
        except (usb.core.USBError, usb.core.NoBackendError) as exc:
            raise TransportError(f"USB enumeration failed: {exc}") from exc
        for device in found:
            yield PyUSBDevice(device)
