"""Endpoint discovery over the device descriptor tree."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from usbfanctl.core.errors import NoEndpointsError, TransportError
from usbfanctl.core.model import Endpoint
from usbfanctl.transports.base import UsbDevice

LOGGER = logging.getLogger(__name__)


def list_endpoints(device: UsbDevice) -> list[Endpoint]:
    """Return every endpoint of every configuration, interface and alt setting.

    Order is configuration ascending, then descriptor order. Callers rely on
    it: the first endpoint is used for reads and the second for writes.
    """
    descriptor = device.descriptor()
    endpoints: list[Endpoint] = []
    for index in range(descriptor.num_configurations):
        try:
            config = device.config_descriptor(index)
        except TransportError as exc:
            LOGGER.debug("Skipping configuration %d: %s", index, exc)
            continue
        for interface in config.interfaces:
            for address in interface.endpoints:
                endpoints.append(
                    Endpoint(
                        config=config.number,
                        iface=interface.number,
                        setting=interface.setting,
                        address=address,
                    )
                )
    return endpoints


def select_pair(endpoints: Sequence[Endpoint]) -> tuple[Endpoint, Endpoint]:
    if not endpoints:
        raise NoEndpointsError("No configurable endpoint found on device")
    if len(endpoints) < 2:
        raise NoEndpointsError(
            f"Device exposes a single endpoint (0x{endpoints[0].address:02x}); "
            "an inbound/outbound pair is required"
        )
    return endpoints[0], endpoints[1]
