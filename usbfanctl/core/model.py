"""Core data models used across session, control loop, and CLI."""

from __future__ import annotations

from dataclasses import dataclass

_ENDPOINT_DIR_IN = 0x80


@dataclass(frozen=True)
class DeviceIdentity:
    vendor_id: int
    product_id: int

    def __post_init__(self) -> None:
        for name in ("vendor_id", "product_id"):
            value = getattr(self, name)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"{name} must be a 16-bit unsigned value, got {value!r}")

    def __str__(self) -> str:
        return f"{self.vendor_id:04x}:{self.product_id:04x}"


TARGET_DEVICE = DeviceIdentity(vendor_id=0x264A, product_id=0x226F)
DEFAULT_FANS: tuple[int, ...] = (2, 3)


@dataclass(frozen=True)
class DeviceDescriptor:
    vendor_id: int
    product_id: int
    num_configurations: int
    bus: int | None = None
    address: int | None = None

    def matches(self, identity: DeviceIdentity) -> bool:
        return self.vendor_id == identity.vendor_id and self.product_id == identity.product_id


@dataclass(frozen=True)
class InterfaceDescriptor:
    number: int
    setting: int
    endpoints: tuple[int, ...]


@dataclass(frozen=True)
class ConfigDescriptor:
    number: int
    interfaces: tuple[InterfaceDescriptor, ...]


@dataclass(frozen=True)
class Endpoint:
    config: int
    iface: int
    setting: int
    address: int

    @property
    def is_in(self) -> bool:
        return bool(self.address & _ENDPOINT_DIR_IN)

    def __str__(self) -> str:
        direction = "in" if self.is_in else "out"
        return (
            f"config={self.config} iface={self.iface} setting={self.setting} "
            f"address=0x{self.address:02x} ({direction})"
        )


@dataclass(frozen=True)
class FanReading:
    fan: int
    rpm: int
    duty: int

    def __str__(self) -> str:
        return f"Fan{self.fan}: {self.rpm}rpm/{self.duty}%"


@dataclass(frozen=True)
class Outcome:
    """Result of a setup or actuator step that may be allowed to fail.

    ``fatal`` tells the caller whether a failed step must stop startup.
    """

    step: str
    ok: bool
    error: str | None = None
    fatal: bool = False

    @classmethod
    def success(cls, step: str) -> Outcome:
        return cls(step=step, ok=True)

    @classmethod
    def tolerated(cls, step: str, error: BaseException | str) -> Outcome:
        return cls(step=step, ok=False, error=str(error))

    def __str__(self) -> str:
        if self.ok:
            return f"{self.step}: ok"
        return f"{self.step}: {self.error}"
