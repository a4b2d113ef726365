from __future__ import annotations

import typer
from rich.console import Console

from tasmotactl.cli.common import (
    build_database,
    load_inventory_or_exit,
    load_settings_or_exit,
    resolve_config_path_or_exit,
)


def register(app: typer.Typer) -> None:
    @app.command()
    def info() -> None:
        """Show tasmotactl data directory info and stats."""
        settings = load_settings_or_exit()
        db = build_database(settings)
        inventory = load_inventory_or_exit(db)
        try:
            current_scan = db.load_current_scan()
        except ValueError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1) from exc

        config_path, config_exists = resolve_config_path_or_exit(allow_missing=True)

        console = Console()

        console.print("[bold]tasmotactl Info[/bold]\n")
        console.print(f"Data directory: {db.path}")
        console.print(f"Device inventory: {db.devices_path}")
        console.print(f"Config file: {config_path if config_exists else 'defaults'}")

        console.print("\n[bold]Configuration[/bold]")
        network = settings.discovery.default_network or "auto-detect"
        console.print(f"Default network: {network}")
        console.print(f"Port: {settings.devices.port}")
        console.print(f"Timeout: {settings.devices.timeout}ms")
        auth = "yes" if settings.devices.password else "no"
        console.print(f"Credentials configured: {auth}")

        console.print("\n[bold]Statistics[/bold]")
        console.print(f"Named devices: {len(inventory.devices)}")

        if current_scan:
            console.print(f"Last scan: {current_scan.scan_timestamp}")
            console.print(f"Devices found: {len(current_scan.devices)}")
            console.print(f"Scan network: {current_scan.network}")
        else:
            console.print("No scans recorded yet")
