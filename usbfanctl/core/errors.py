"""Domain-specific errors for usbfanctl."""


class UsbfanctlError(Exception):
    """Base error for usbfanctl."""


class DeviceSetupError(UsbfanctlError):
    """Raised when the fan controller cannot be brought into a usable state."""


class DeviceNotFoundError(DeviceSetupError):
    """Raised when no enumerated device matches the target identity."""


class NoAccessibleDeviceError(DeviceSetupError):
    """Raised when matching devices exist but none could be opened."""


class NoEndpointsError(DeviceSetupError):
    """Raised when the device does not expose a usable endpoint pair."""


class InterfaceConfigurationError(DeviceSetupError):
    """Raised when the interface alternate setting cannot be selected."""


class TransportError(UsbfanctlError):
    """Base USB transport error."""


class TransportTimeoutError(TransportError):
    """Raised when a USB transfer times out."""


class ProtocolError(UsbfanctlError):
    """Raised when a device response frame cannot be decoded."""


class SensorError(UsbfanctlError):
    """Raised when the CPU temperature cannot be read."""
