"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import signal
import threading

import typer

from usbfanctl.core.errors import UsbfanctlError
from usbfanctl.core.model import TARGET_DEVICE
from usbfanctl.core.service import FanService

app = typer.Typer(help="Temperature-driven control of a USB fan controller")


def _build_service() -> FanService:
    return FanService()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", envvar="USBFANCTL_VERBOSE", help="Enable debug logging"
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("run")
def run_loop(
    interval: float = typer.Option(
        0.0, "--interval", min=0.0, envvar="USBFANCTL_INTERVAL", help="Seconds to wait between iterations"
    ),
    iterations: int | None = typer.Option(
        None, "--iterations", min=1, help="Stop after this many iterations (default: run forever)"
    ),
) -> None:
    """Drive the fans from the CPU temperature until terminated."""
    stop_event = threading.Event()

    def _report_driver(detached: bool) -> None:
        typer.echo(f"has kernel driver? {str(detached).lower()}")

    def _on_sigterm(signum: int, frame: object) -> None:
        stop_event.set()

    previous = signal.signal(signal.SIGTERM, _on_sigterm)
    try:
        service = _build_service()
        service.run(
            on_driver_checked=_report_driver,
            on_reading=lambda reading: typer.echo(str(reading)),
            stop_event=stop_event,
            interval_s=interval,
            max_iterations=iterations,
        )
    except UsbfanctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        typer.echo("Interrupted", err=True)
    finally:
        signal.signal(signal.SIGTERM, previous)


@app.command("devices")
def list_devices() -> None:
    """List USB devices visible on the bus and mark the fan controller."""
    try:
        service = _build_service()
        devices = service.list_devices()
        if not devices:
            typer.echo("No USB devices found")
            return

        for device in devices:
            marker = " <- fan controller" if device.matches(TARGET_DEVICE) else ""
            typer.echo(
                f"{device.vendor_id:04x}:{device.product_id:04x} "
                f"bus {device.bus} address {device.address}{marker}"
            )
    except UsbfanctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("endpoints")
def list_endpoints() -> None:
    """List every endpoint advertised by the fan controller."""
    try:
        service = _build_service()
        endpoints = service.list_endpoints()
        if not endpoints:
            typer.echo("No endpoints found", err=True)
            raise typer.Exit(code=1)
        for index, endpoint in enumerate(endpoints):
            typer.echo(f"[{index}] {endpoint}")
    except UsbfanctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("speed")
def read_speed(
    fan: list[int] | None = typer.Option(None, "--fan", help="Fan port (repeatable, default: all)"),
) -> None:
    """Query the tachometer of each fan once."""
    try:
        service = _build_service()
        speeds = service.read_speeds(fan or None)
        for port, rpm in speeds.items():
            if rpm is None:
                typer.echo(f"Fan{port}: no reading")
            else:
                typer.echo(f"Fan{port}: {rpm}rpm")
    except UsbfanctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set")
def set_speed(
    duty: int = typer.Argument(..., min=0, max=100, help="Duty cycle percentage"),
    fan: list[int] | None = typer.Option(None, "--fan", help="Fan port (repeatable, default: all)"),
) -> None:
    """Send one fixed duty cycle command to the fans."""
    try:
        service = _build_service()
        outcomes = service.set_speed(duty, fan or None)
        failed = [outcome for outcome in outcomes if not outcome.ok]
        for outcome in outcomes:
            typer.echo(str(outcome))
        if failed:
            raise typer.Exit(code=1)
    except UsbfanctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
