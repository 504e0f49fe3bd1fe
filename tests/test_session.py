from __future__ import annotations

import pytest

from fakes import FAN_PID, FAN_VID, FakeBus, FakeDevice, FakeHandle
from usbfanctl.core.errors import DeviceNotFoundError, NoAccessibleDeviceError
from usbfanctl.core.model import DeviceIdentity
from usbfanctl.core.session import DeviceSession

TARGET = DeviceIdentity(FAN_VID, FAN_PID)


def test_open_returns_first_matching_device() -> None:
    other = FakeDevice(0x1234, 0x5678)
    first = FakeDevice(address=2)
    second = FakeDevice(address=3)

    session = DeviceSession.open(FakeBus([other, first, second]), TARGET)

    assert session.device is first
    assert other.opened == 0
    assert second.opened == 0


def test_open_skips_unopenable_and_unreadable_devices() -> None:
    unreadable = FakeDevice(descriptor_error=True)
    locked = FakeDevice(open_error=True)
    usable = FakeDevice()

    session = DeviceSession.open(FakeBus([unreadable, locked, usable]), TARGET)

    assert session.device is usable


def test_open_without_match_raises_not_found() -> None:
    with pytest.raises(DeviceNotFoundError):
        DeviceSession.open(FakeBus([FakeDevice(0x1234, 0x5678)]), TARGET)


def test_open_with_only_locked_matches_raises_no_access() -> None:
    with pytest.raises(NoAccessibleDeviceError):
        DeviceSession.open(FakeBus([FakeDevice(open_error=True)]), TARGET)


def test_enumeration_failure_raises_not_found() -> None:
    with pytest.raises(DeviceNotFoundError):
        DeviceSession.open(FakeBus(error=True), TARGET)


def test_detach_records_driver_and_close_reattaches() -> None:
    handle = FakeHandle(driver_active=True)
    session = DeviceSession.open(FakeBus([FakeDevice(handle=handle)]), TARGET)

    outcome = session.detach_conflicting_driver()
    session.claim_interface(0)
    session.close()

    assert outcome.ok
    assert session.driver_detached
    assert handle.names() == [
        "kernel_driver_active",
        "detach_kernel_driver",
        "claim_interface",
        "release_interface",
        "attach_kernel_driver",
        "close",
    ]


def test_no_driver_means_no_reattach() -> None:
    handle = FakeHandle(driver_active=False)
    session = DeviceSession.open(FakeBus([FakeDevice(handle=handle)]), TARGET)

    assert session.detach_conflicting_driver().ok
    session.close()

    assert not session.driver_detached
    assert "attach_kernel_driver" not in handle.names()
    assert "release_interface" not in handle.names()


def test_driver_query_failure_is_tolerated() -> None:
    handle = FakeHandle(driver_active=None)
    session = DeviceSession.open(FakeBus([FakeDevice(handle=handle)]), TARGET)

    outcome = session.detach_conflicting_driver()

    assert not outcome.ok
    assert not outcome.fatal
    assert not session.driver_detached


def test_context_manager_closes_on_error() -> None:
    handle = FakeHandle(driver_active=True)

    with pytest.raises(RuntimeError):
        with DeviceSession.open(FakeBus([FakeDevice(handle=handle)]), TARGET) as session:
            session.detach_conflicting_driver()
            raise RuntimeError("boom")

    assert session.closed
    assert handle.names()[-2:] == ["attach_kernel_driver", "close"]


def test_close_is_idempotent_and_survives_release_failure() -> None:
    handle = FakeHandle(driver_active=True, fail={"release_interface"})
    session = DeviceSession.open(FakeBus([FakeDevice(handle=handle)]), TARGET)
    session.detach_conflicting_driver()
    session.claim_interface(0)

    session.close()
    session.close()

    assert handle.names().count("release_interface") == 1
    assert handle.names().count("attach_kernel_driver") == 1
    assert handle.names().count("close") == 1


def test_handle_close_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    handle = FakeHandle(fail={"close"})
    session = DeviceSession.open(FakeBus([FakeDevice(handle=handle)]), TARGET)

    session.close()

    assert session.closed
    assert "Could not close device handle" in caplog.text
