"""CPU temperature providers."""

from __future__ import annotations

import logging
import math
from typing import Protocol

import psutil

from usbfanctl.core.errors import SensorError

LOGGER = logging.getLogger(__name__)

# Chip names in preference order, each with the label of its package-level reading.
_CPU_CHIPS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("coretemp", ("Package id 0",)),
    ("k10temp", ("Tctl", "Tdie")),
    ("zenpower", ("Tctl", "Tdie")),
    ("cpu_thermal", ()),
    ("cpu-thermal", ()),
    ("acpitz", ()),
)


def _checked(chip: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise SensorError(f"Temperature chip '{chip}' reported {value}")
    return value


class TemperatureSensor(Protocol):
    def read_cpu_temperature(self) -> float:
        """Return the current CPU temperature in Celsius or raise SensorError."""


class PsutilTemperatureSensor:
    def read_cpu_temperature(self) -> float:
        try:
            readings = psutil.sensors_temperatures()
        except AttributeError as exc:
            raise SensorError("psutil does not expose temperature sensors on this platform") from exc
        except OSError as exc:
            raise SensorError(f"Could not read temperature sensors: {exc}") from exc

        if not readings:
            raise SensorError("No temperature sensors found")

        for chip, labels in _CPU_CHIPS:
            entries = readings.get(chip)
            if not entries:
                continue
            for label in labels:
                for entry in entries:
                    if entry.label == label:
                        return _checked(chip, entry.current)
            return _checked(chip, entries[0].current)

        chip, entries = next(iter(readings.items()))
        if not entries:
            raise SensorError(f"Temperature chip '{chip}' reported no readings")
        LOGGER.debug("No known CPU chip found, falling back to '%s'", chip)
        return _checked(chip, entries[0].current)
