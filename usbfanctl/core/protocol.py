"""Wire format of the fan controller's command and response frames.

Byte layouts were taken from USB packet captures of the vendor software.
"""

from __future__ import annotations

from usbfanctl.core.errors import ProtocolError

TRANSFER_TIMEOUT_MS = 1000

IDLE_REQUEST_TYPE = 0x21  # class, interface, host-to-device
IDLE_REQUEST = 0x0A
IDLE_VALUE = 0x0000
IDLE_INDEX = 0x0000

FRAME_MARKER = 0x51

SET_SPEED_COMMAND = 0x32
SET_SPEED_MODE_FIXED = 0x01
SET_SPEED_FRAME_SIZE = 192

GET_SPEED_COMMAND = 0x33
GET_SPEED_FRAME_SIZE = 64

RESPONSE_FRAME_SIZE = 64
RPM_LOW_OFFSET = 5
RPM_HIGH_OFFSET = 6

RPM_UNKNOWN = 0
MAX_DUTY = 100


def _check_fan(fan: int) -> None:
    if not 0 <= fan <= 0xFF:
        raise ValueError(f"Fan port must fit in a byte, got {fan!r}")


def encode_set_speed(fan: int, duty: int) -> bytes:
    _check_fan(fan)
    if not 0 <= duty <= MAX_DUTY:
        raise ValueError(f"Duty cycle must be within 0..{MAX_DUTY}, got {duty!r}")
    frame = bytearray(SET_SPEED_FRAME_SIZE)
    frame[0] = SET_SPEED_COMMAND
    frame[1] = FRAME_MARKER
    frame[2] = fan
    frame[3] = SET_SPEED_MODE_FIXED
    frame[4] = duty
    return bytes(frame)


def encode_get_speed(fan: int) -> bytes:
    _check_fan(fan)
    frame = bytearray(GET_SPEED_FRAME_SIZE)
    frame[0] = GET_SPEED_COMMAND
    frame[1] = FRAME_MARKER
    frame[2] = fan
    return bytes(frame)


def decode_rpm(frame: bytes) -> int:
    """Return the little-endian RPM carried at bytes 5-6 of a query response."""
    if len(frame) <= RPM_HIGH_OFFSET:
        raise ProtocolError(
            f"Response frame too short: {len(frame)} bytes, need at least {RPM_HIGH_OFFSET + 1}"
        )
    return (frame[RPM_HIGH_OFFSET] << 8) | frame[RPM_LOW_OFFSET]
