from __future__ import annotations

import json
from enum import Enum
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from tasmotactl.cli.common import (
    build_database,
    load_inventory_or_exit,
    load_settings_or_exit,
    resolve_target,
    run_or_exit,
)
from tasmotactl.config import Settings, operation_options_from_settings
from tasmotactl.core import CommandResponse, TasmotaDevice
from tasmotactl.models import DeviceConfig, PowerState
from tasmotactl.services import DeviceStatus, get_device_status


class PowerAction(str, Enum):
    ON = "on"
    OFF = "off"
    TOGGLE = "toggle"
    BLINK = "blink"
    BLINKOFF = "blinkoff"


def _target_config(target: str) -> tuple[Settings, DeviceConfig]:
    settings = load_settings_or_exit()
    inventory = load_inventory_or_exit(build_database(settings))
    return settings, resolve_target(settings, inventory, target)


async def fetch_status(config: DeviceConfig, settings: Settings) -> DeviceStatus:
    async with TasmotaDevice(config) as device:
        options = operation_options_from_settings(settings)
        return await get_device_status(device, options)


async def apply_power(
    config: DeviceConfig, settings: Settings, action: PowerAction, relay: int
) -> PowerState:
    options = operation_options_from_settings(settings)
    async with TasmotaDevice(config) as device:
        if action is PowerAction.ON:
            return await device.turn_on(relay, options)
        if action is PowerAction.OFF:
            return await device.turn_off(relay, options)
        if action is PowerAction.TOGGLE:
            return await device.toggle(relay, options)
        if action is PowerAction.BLINK:
            return await device.blink(relay, options)
        return await device.blink_off(relay, options)


async def run_command(
    config: DeviceConfig, settings: Settings, command: str
) -> CommandResponse:
    async with TasmotaDevice(config) as device:
        options = operation_options_from_settings(settings)
        return await device.send_command(command, options)


def status(target: str = typer.Argument(..., help="Device name or host")) -> None:
    """Show identity, power and energy readings of one device."""
    settings, config = _target_config(target)
    summary = run_or_exit(fetch_status(config, settings))

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Name", summary.device_name)
    table.add_row("Host", config.host)
    table.add_row("Hostname", summary.hostname or "")
    table.add_row("MAC Address", summary.mac_address or "")
    table.add_row("Firmware", summary.firmware_version)
    table.add_row("Power", "ON" if summary.power_state else "OFF")
    table.add_row("Uptime", f"{summary.uptime}s")
    signal = f"{summary.wifi_signal} dBm"
    if not summary.wifi_signal_reported:
        signal += " (not reported)"
    table.add_row("WiFi Signal", signal)
    if summary.energy_monitoring:
        table.add_row("Power Draw", f"{summary.energy_consumption:g} W")
        table.add_row("Voltage", f"{summary.voltage:g} V")
        table.add_row("Current", f"{summary.current:g} A")
        table.add_row("Energy Today", f"{summary.energy_today:g} kWh")
        table.add_row("Energy Total", f"{summary.total_energy:g} kWh")
    else:
        table.add_row("Energy", "not supported")

    Console().print(table)


def power(
    target: str = typer.Argument(..., help="Device name or host"),
    action: PowerAction = typer.Argument(
        ..., help="on, off, toggle, blink or blinkoff"
    ),
    relay: Annotated[
        int, typer.Option("--relay", "-r", min=1, max=8, help="Relay number")
    ] = 1,
) -> None:
    """Switch a relay."""
    settings, config = _target_config(target)
    state = run_or_exit(apply_power(config, settings, action, relay))

    style = "green" if state == "ON" else "red"
    Console().print(f"Relay {relay}: [{style}]{state}[/{style}]")


def command(
    target: str = typer.Argument(..., help="Device name or host"),
    parts: list[str] = typer.Argument(
        ..., metavar="COMMAND...", help="Tasmota command"
    ),
) -> None:
    """Send a raw Tasmota command and print the JSON reply."""
    settings, config = _target_config(target)
    response = run_or_exit(run_command(config, settings, " ".join(parts)))

    if not response.success:
        message = (
            response.error.get_user_friendly_message()
            if response.error
            else "Command failed"
        )
        typer.echo(f"Error: {message}", err=True)
        raise typer.Exit(1)

    Console().print_json(json.dumps(response.data))


def register(app: typer.Typer) -> None:
    app.command()(status)
    app.command()(power)
    app.command()(command)
