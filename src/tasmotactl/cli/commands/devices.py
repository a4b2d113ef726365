from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from tasmotactl.cli.common import (
    build_database,
    load_inventory_or_exit,
    load_settings_or_exit,
)

app = typer.Typer(no_args_is_help=True, help="Manage the named device inventory.")


@app.command("list")
def list_devices() -> None:
    """List named devices."""
    settings = load_settings_or_exit()
    db = build_database(settings)
    inventory = load_inventory_or_exit(db)

    console = Console()

    if not inventory.devices:
        console.print("No devices defined.")
        console.print(
            f"Use 'tasmotactl devices add' to name a device or edit {db.devices_path}"
        )
        return

    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("Host", style="green")
    table.add_column("Port", justify="right")
    table.add_column("Notes")

    for name, device in sorted(inventory.devices.items()):
        table.add_row(name, device.host, str(device.port), device.notes or "")

    console.print(table)


@app.command("add")
def add_device(
    name: str = typer.Argument(..., help="Device name"),
    host: str = typer.Argument(..., help="IP address, hostname or URL"),
    port: int = typer.Option(80, "--port", min=1, max=65535, help="HTTP port"),
    notes: str | None = typer.Option(None, "--notes", help="Optional notes"),
) -> None:
    """Add or update a named device."""
    settings = load_settings_or_exit()
    db = build_database(settings)
    load_inventory_or_exit(db)

    try:
        db.add_device(name, host, port, notes)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc

    console = Console()
    console.print(f"[green]✓[/green] Mapped '{name}' → '{host}'")


@app.command("remove")
def remove_device(name: str = typer.Argument(..., help="Device name")) -> None:
    """Remove a named device."""
    settings = load_settings_or_exit()
    db = build_database(settings)
    load_inventory_or_exit(db)

    console = Console()
    if db.remove_device(name):
        console.print(f"[green]✓[/green] Removed device '{name}'")
    else:
        console.print(f"[yellow]![/yellow] Device '{name}' not found")
        raise typer.Exit(1)
