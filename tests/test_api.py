from __future__ import annotations

from fakes import FakeBus, FakeDevice, FakeHandle, FakeSensor, rpm_frame
from usbfanctl.api import Client, FanReading, compute_duty_cycle


def test_public_client_run_and_stop() -> None:
    handle = FakeHandle(responses={2: rpm_frame(900), 3: rpm_frame(950)})
    client = Client(bus=FakeBus([FakeDevice(handle=handle)]), sensor=FakeSensor([18.0] * 10))
    seen: list[FanReading] = []

    def _collect(reading: FanReading) -> None:
        seen.append(reading)
        if len(seen) == 4:
            client.stop()

    assert client.run(on_reading=_collect) == 2
    assert {r.duty for r in seen} == {compute_duty_cycle(18)}


def test_public_client_queries() -> None:
    handle = FakeHandle(responses={2: rpm_frame(1000)})
    client = Client(bus=FakeBus([FakeDevice(handle=handle)]), sensor=FakeSensor([]), fans=(2,))

    assert client.read_speeds() == {2: 1000}
    assert [o.ok for o in client.set_speed(30)] == [True]
    assert [e.address for e in client.list_endpoints()] == [0x81, 0x02]
    assert client.list_devices()[0].vendor_id == 0x264A
