"""Temperature-driven fan control loop."""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Sequence

from usbfanctl.core.errors import ProtocolError, SensorError, TransportError
from usbfanctl.core.link import FanLink
from usbfanctl.core.model import DEFAULT_FANS, FanReading
from usbfanctl.core.protocol import MAX_DUTY, RPM_UNKNOWN
from usbfanctl.core.sensors import TemperatureSensor

LOGGER = logging.getLogger(__name__)

FULL_SPEED_TEMPERATURE = 90


def compute_duty_cycle(temperature: int) -> int:
    """Scale linearly so that FULL_SPEED_TEMPERATURE and above run the fans at 100%."""
    duty = round(MAX_DUTY * temperature / FULL_SPEED_TEMPERATURE)
    return max(0, min(MAX_DUTY, duty))


class ControlLoop:
    def __init__(
        self,
        link: FanLink,
        sensor: TemperatureSensor,
        *,
        fans: Sequence[int] = DEFAULT_FANS,
        on_reading: Callable[[FanReading], None] | None = None,
        stop_event: threading.Event | None = None,
        interval_s: float = 0.0,
    ) -> None:
        self.link = link
        self.sensor = sensor
        self.fans = tuple(fans)
        self.on_reading = on_reading
        self.stop_event = stop_event or threading.Event()
        self.interval_s = interval_s
        self.temperature = 0
        self.duty = 0

    def sample(self) -> int:
        try:
            value = self.sensor.read_cpu_temperature()
        except SensorError as exc:
            LOGGER.debug("Keeping previous temperature %d: %s", self.temperature, exc)
            return self.temperature
        if math.isfinite(value):
            self.temperature = int(value)
        else:
            LOGGER.debug("Keeping previous temperature %d: sensor returned %s", self.temperature, value)
        return self.temperature

    def step(self) -> list[FanReading]:
        self.sample()
        self.duty = compute_duty_cycle(self.temperature)

        readings: list[FanReading] = []
        for fan in self.fans:
            self.link.set_speed(fan, self.duty)
            try:
                rpm = self.link.get_speed(fan)
            except (TransportError, ProtocolError) as exc:
                LOGGER.debug("No reading for fan %d: %s", fan, exc)
                rpm = RPM_UNKNOWN
            if rpm == RPM_UNKNOWN:
                continue
            reading = FanReading(fan=fan, rpm=rpm, duty=self.duty)
            readings.append(reading)
            if self.on_reading is not None:
                self.on_reading(reading)
        return readings

    def stop(self) -> None:
        self.stop_event.set()

    def run(self, max_iterations: int | None = None) -> int:
        """Repeat step() until stopped or ``max_iterations`` is reached.

        Returns the number of completed iterations.
        """
        iterations = 0
        while not self.stop_event.is_set():
            if max_iterations is not None and iterations >= max_iterations:
                break
            self.step()
            iterations += 1
            if self.interval_s > 0:
                self.stop_event.wait(self.interval_s)
        LOGGER.info("Control loop stopped after %d iteration(s)", iterations)
        return iterations
