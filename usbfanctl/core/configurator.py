"""Bring the claimed interface into a state where transfers are valid."""

from __future__ import annotations

import logging

from usbfanctl.core.errors import InterfaceConfigurationError, TransportError
from usbfanctl.core.model import Endpoint, Outcome
from usbfanctl.core.session import DeviceSession

LOGGER = logging.getLogger(__name__)


def configure(session: DeviceSession, endpoint: Endpoint) -> tuple[Outcome, ...]:
    """Activate the endpoint's configuration, claim its interface and select its alt setting.

    Some devices reject activating a configuration that is already active, so
    the first two steps only log on failure. The alt setting is required.
    """
    outcomes: list[Outcome] = []

    step = f"set configuration {endpoint.config}"
    try:
        session.handle.set_configuration(endpoint.config)
        outcomes.append(Outcome.success(step))
    except TransportError as exc:
        outcomes.append(Outcome.tolerated(step, exc))

    outcomes.append(session.claim_interface(endpoint.iface))

    for outcome in outcomes:
        if not outcome.ok:
            LOGGER.warning("%s", outcome)

    try:
        session.handle.set_alternate_setting(endpoint.iface, endpoint.setting)
    except TransportError as exc:
        raise InterfaceConfigurationError(
            f"Could not select alternate setting {endpoint.setting} on interface {endpoint.iface}: {exc}"
        ) from exc
    outcomes.append(Outcome.success(f"set alternate setting {endpoint.setting}"))
    return tuple(outcomes)
