from __future__ import annotations

import math
import threading

import pytest

from fakes import FakeHandle, FakeSensor, rpm_frame
from usbfanctl.core.control import ControlLoop, compute_duty_cycle
from usbfanctl.core.link import FanLink
from usbfanctl.core.model import FanReading


def _loop(handle: FakeHandle, sensor: FakeSensor, **kwargs) -> ControlLoop:
    return ControlLoop(FanLink(handle, 0x81, 0x02), sensor, **kwargs)


def _duties(handle: FakeHandle) -> list[int]:
    return [frame[4] for _, frame in handle.writes if frame[0] == 0x32]


@pytest.mark.parametrize("temperature", [0, 1, 9, 44, 45, 63, 89, 90])
def test_duty_cycle_scales_linearly_up_to_90(temperature: int) -> None:
    assert compute_duty_cycle(temperature) == round(100 * temperature / 90)


@pytest.mark.parametrize("temperature", [91, 100, 120, 255])
def test_duty_cycle_clamps_above_90(temperature: int) -> None:
    assert compute_duty_cycle(temperature) == 100


def test_duty_cycle_never_negative() -> None:
    assert compute_duty_cycle(-5) == 0


def test_step_actuates_fans_in_order_and_reports() -> None:
    handle = FakeHandle(responses={2: rpm_frame(1200), 3: rpm_frame(1350)})
    seen: list[FanReading] = []
    loop = _loop(handle, FakeSensor([45.0]), on_reading=seen.append)

    readings = loop.step()

    assert loop.duty == 50
    assert [str(r) for r in readings] == ["Fan2: 1200rpm/50%", "Fan3: 1350rpm/50%"]
    assert seen == readings
    sent = [(frame[0], frame[2]) for _, frame in handle.writes]
    assert sent == [(0x32, 2), (0x33, 2), (0x32, 3), (0x33, 3)]


def test_temperature_is_truncated() -> None:
    loop = _loop(FakeHandle(), FakeSensor([44.9]))
    loop.step()
    assert loop.temperature == 44
    assert loop.duty == 49


def test_sensor_failure_holds_last_value() -> None:
    handle = FakeHandle()
    sensor = FakeSensor([63.0, None, None, None])
    loop = _loop(handle, sensor)

    loop.run(max_iterations=4)

    assert sensor.reads == 4
    assert loop.temperature == 63
    assert _duties(handle) == [70] * 8


def test_non_finite_reading_holds_last_value() -> None:
    handle = FakeHandle()
    loop = _loop(handle, FakeSensor([63.0, math.nan, math.inf]))

    loop.run(max_iterations=3)

    assert loop.temperature == 63
    assert _duties(handle) == [70] * 6


def test_sensor_failing_from_start_uses_zero() -> None:
    handle = FakeHandle()
    loop = _loop(handle, FakeSensor([None]))
    loop.step()
    assert _duties(handle) == [0, 0]


def test_read_timeout_suppresses_report() -> None:
    handle = FakeHandle(responses={3: rpm_frame(800)})
    seen: list[FanReading] = []
    loop = _loop(handle, FakeSensor([30.0]), on_reading=seen.append)

    readings = loop.step()

    assert [r.fan for r in readings] == [3]
    assert [r.fan for r in seen] == [3]


def test_zero_rpm_is_not_reported() -> None:
    handle = FakeHandle(responses={2: rpm_frame(0), 3: rpm_frame(0)})
    assert _loop(handle, FakeSensor([30.0])).step() == []


def test_short_response_is_treated_as_no_reading() -> None:
    handle = FakeHandle(responses={2: b"\x00\x01", 3: rpm_frame(500)})
    readings = _loop(handle, FakeSensor([30.0])).step()
    assert [r.fan for r in readings] == [3]


def test_set_speed_failure_does_not_stop_loop() -> None:
    handle = FakeHandle(fail={"write_interrupt"}, responses={None: rpm_frame(700)})
    loop = _loop(handle, FakeSensor([30.0, 30.0]))
    assert loop.run(max_iterations=2) == 2


def test_run_stops_when_event_is_set() -> None:
    stop_event = threading.Event()
    handle = FakeHandle(responses={2: rpm_frame(1000)})

    def _stop_after_first(reading: FanReading) -> None:
        stop_event.set()

    loop = _loop(handle, FakeSensor([50.0] * 5), on_reading=_stop_after_first, stop_event=stop_event)

    assert loop.run() == 1


def test_run_does_nothing_when_already_stopped() -> None:
    handle = FakeHandle()
    loop = _loop(handle, FakeSensor([50.0]))
    loop.stop()

    assert loop.run() == 0
    assert handle.calls == []
