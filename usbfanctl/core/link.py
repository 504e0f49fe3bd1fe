"""Command/response exchange with a configured fan controller."""

from __future__ import annotations

import logging

from usbfanctl.core import protocol
from usbfanctl.core.errors import TransportError
from usbfanctl.core.model import Outcome
from usbfanctl.transports.base import UsbHandle

LOGGER = logging.getLogger(__name__)


class FanLink:
    def __init__(self, handle: UsbHandle, endpoint_in: int, endpoint_out: int) -> None:
        self.handle = handle
        self.endpoint_in = endpoint_in
        self.endpoint_out = endpoint_out

    def set_idle(self) -> Outcome:
        """Send the class SET_IDLE request. Some firmware revisions do not need it."""
        step = "set idle"
        try:
            self.handle.write_control(
                protocol.IDLE_REQUEST_TYPE,
                protocol.IDLE_REQUEST,
                protocol.IDLE_VALUE,
                protocol.IDLE_INDEX,
                b"",
                timeout_ms=protocol.TRANSFER_TIMEOUT_MS,
            )
        except TransportError as exc:
            LOGGER.debug("set idle failed: %s", exc)
            return Outcome.tolerated(step, exc)
        return Outcome.success(step)

    def set_speed(self, fan: int, duty: int) -> Outcome:
        frame = protocol.encode_set_speed(fan, duty)
        step = f"set fan {fan} speed"
        try:
            self.handle.write_interrupt(
                self.endpoint_out, frame, timeout_ms=protocol.TRANSFER_TIMEOUT_MS
            )
        except TransportError as exc:
            LOGGER.warning("set_fan_speed Error: %s", exc)
            return Outcome.tolerated(step, exc)
        return Outcome.success(step)

    def get_speed(self, fan: int) -> int:
        """Query the tachometer of ``fan`` and return its RPM.

        A failed query write is ignored and the response is read regardless.
        Raises TransportError when the response cannot be read.
        """
        query = protocol.encode_get_speed(fan)
        try:
            self.handle.write_interrupt(
                self.endpoint_out, query, timeout_ms=protocol.TRANSFER_TIMEOUT_MS
            )
        except TransportError as exc:
            LOGGER.debug("get speed query for fan %d not sent: %s", fan, exc)

        frame = self.handle.read_interrupt(
            self.endpoint_in,
            protocol.RESPONSE_FRAME_SIZE,
            timeout_ms=protocol.TRANSFER_TIMEOUT_MS,
        )
        return protocol.decode_rpm(frame)
