from __future__ import annotations

import asyncio
from collections.abc import Callable

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
from tasmotactl.config import Settings, sdk_options_from_settings
from tasmotactl.core import BulkOperationResult, DeviceRegistry
from tasmotactl.models import DeviceConfig


async def ping_devices(
    configs: dict[str, DeviceConfig], settings: Settings
) -> BulkOperationResult[bool]:
    async with DeviceRegistry(sdk_options_from_settings(settings)) as registry:
        for name, config in configs.items():
            registry.add_device(config, name)
        return await registry.ping_all_devices()


async def watch_devices(
    configs: dict[str, DeviceConfig],
    settings: Settings,
    interval: int,
    on_change: Callable[[str, bool], None],
) -> None:
    """Report online/offline changes every ``interval`` ms until cancelled."""
    async with DeviceRegistry(sdk_options_from_settings(settings)) as registry:
        for name, config in configs.items():
            registry.add_device(config, name)
        registry.on("device-online", lambda name: on_change(name, True))
        registry.on("device-offline", lambda name: on_change(name, False))

        await registry.check_health()
        for name in registry.offline_devices():
            on_change(name, False)

        registry.start_health_check(interval)
        await asyncio.Event().wait()


def _print_change(console: Console, configs: dict[str, DeviceConfig]):
    def on_change(name: str, online: bool) -> None:
        state = "[green]online[/green]" if online else "[red]offline[/red]"
        console.print(f"{name} ({configs[name].host}): {state}")

    return on_change


def ping(
    targets: list[str] | None = typer.Argument(
        None, help="Device names or hosts. Pings the whole inventory if omitted."
    ),
    watch: bool = typer.Option(
        False,
        "--watch",
        "-w",
        help="Keep checking at the configured health-check interval",
    ),
) -> None:
    """Check which devices answer."""
    settings = load_settings_or_exit()
    db = build_database(settings)
    inventory = load_inventory_or_exit(db)

    names = list(dict.fromkeys(targets or sorted(inventory.devices)))
    if not names:
        typer.echo("No devices to ping. Add some with 'tasmotactl devices add'.")
        raise typer.Exit(1)

    configs = {name: resolve_target(settings, inventory, name) for name in names}
    console = Console()

    if watch:
        interval = settings.health_check.interval
        console.print(
            f"Watching {len(configs)} device(s) every {interval / 1000:g}s. "
            "Press Ctrl+C to stop."
        )
        try:
            run_or_exit(
                watch_devices(
                    configs, settings, interval, _print_change(console, configs)
                )
            )
        except KeyboardInterrupt:
            console.print("Stopped.")
        return

    result = run_or_exit(ping_devices(configs, settings))

    online = {item.device_id: item.result for item in result.successful}
    failed = {item.device_id: item.error for item in result.failed}

    table = Table()
    table.add_column("Device", style="cyan")
    table.add_column("Host")
    table.add_column("Status")
    for name in names:
        if online.get(name):
            state = "[green]online[/green]"
        elif name in failed:
            state = f"[red]error[/red] {failed[name].get_user_friendly_message()}"
        else:
            state = "[red]offline[/red]"
        table.add_row(name, configs[name].host, state)

    console.print(table)
    up = sum(1 for value in online.values() if value)
    console.print(f"\n{up}/{result.total_devices} device(s) online")


def register(app: typer.Typer) -> None:
    app.command()(ping)
