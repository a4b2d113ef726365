from __future__ import annotations

import logging
from collections.abc import Callable

import typer
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from tasmotactl.cli.common import (
    build_database,
    load_inventory_or_exit,
    load_settings_or_exit,
    run_or_exit,
)
from tasmotactl.config import discovery_options_from_settings
from tasmotactl.core import DeviceDiscovery, DiscoveryOptions, ScanProgress
from tasmotactl.core.discovery import detect_local_network
from tasmotactl.models import DiscoveryDevice, DiscoveryResult
from tasmotactl.utils.redaction import Redactor

logger = logging.getLogger(__name__)


async def run_scan(
    options: DiscoveryOptions,
    on_progress: Callable[[ScanProgress], None] | None = None,
) -> DiscoveryResult:
    discovery = DeviceDiscovery()
    if on_progress is not None:
        discovery.on("scan-progress", on_progress)
    return await discovery.discover(options)


def _ip_sort_key(device: DiscoveryDevice) -> tuple[int, ...]:
    return tuple(int(octet) for octet in device.ip_address.split("."))


def scan(
    network: str | None = typer.Argument(
        None,
        help="Network base address, e.g. 192.168.1.0. Detected if omitted.",
    ),
    start: int | None = typer.Option(None, "--start", help="First host octet"),
    end: int | None = typer.Option(None, "--end", help="Last host octet"),
    timeout: int | None = typer.Option(
        None, "--timeout", help="Per-address timeout in milliseconds"
    ),
    concurrency: int | None = typer.Option(
        None, "--concurrency", help="Addresses probed at once (max 100)"
    ),
    save: bool = typer.Option(False, help="Save scan results to data directory"),
    redact: bool = typer.Option(
        False,
        "--redact",
        help="Redact sensitive values in output",
    ),
) -> None:
    """Find Tasmota devices by probing every address in a /24 network."""
    console = Console()

    settings = load_settings_or_exit()
    db = build_database(settings)

    if network is None:
        network = settings.discovery.default_network or detect_local_network()
        console.print(f"Using network: {network}")

    try:
        options = discovery_options_from_settings(
            settings,
            network,
            start_ip=start,
            end_ip=end,
            timeout=timeout,
            concurrency=concurrency,
        )
    except ValueError as exc:
        typer.echo(f"Invalid scan options: {exc}", err=True)
        raise typer.Exit(1) from exc

    logger.info(
        "Discovery settings: network=%s, range=%d-%d, timeout=%dms",
        network,
        options.start_ip,
        options.end_ip,
        options.timeout,
    )

    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("Scanning...", total=None)

        def on_progress(update: ScanProgress) -> None:
            progress.update(
                task,
                total=update.total,
                completed=update.scanned,
                description=f"Scanning {update.current}",
            )

        result = run_or_exit(run_scan(options, on_progress))

    if not result.devices:
        console.print(f"No Tasmota devices found ({result.total_scanned} scanned).")
        return

    inventory = load_inventory_or_exit(db)
    host_to_name = {entry.host: name for name, entry in inventory.devices.items()}

    redactor = Redactor(enabled=redact)
    table = Table()
    table.add_column("IP", style="cyan")
    table.add_column("Hostname", style="green")
    table.add_column("Name", style="yellow")
    table.add_column("Friendly Name")
    table.add_column("MAC Address")
    table.add_column("Module")
    table.add_column("Version")

    for device in sorted(result.devices, key=_ip_sort_key):
        table.add_row(
            redactor.ip(device.ip_address),
            redactor.hostname(device.hostname),
            host_to_name.get(device.ip_address)
            or host_to_name.get(device.hostname, ""),
            device.friendly_name,
            redactor.mac(device.mac_address),
            device.module,
            device.version,
        )

    console.print(table)
    console.print(
        f"\n[green]Found {result.total_found} device(s)[/green] "
        f"in {result.duration / 1000:.1f}s ({result.total_scanned} scanned)"
    )
    if result.errors:
        console.print(
            f"[yellow]{len(result.errors)} address(es) returned errors[/yellow]"
        )

    if save:
        db.save_scan(result.devices, network)
        console.print(f"[green]✓[/green] Saved scan to {db.current_scan_path}")


def register(app: typer.Typer) -> None:
    app.command()(scan)

