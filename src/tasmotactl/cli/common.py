from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from pydantic import ValidationError

from tasmotactl.config import (
    Settings,
    data_dir_from_settings,
    get_settings,
    resolve_config_path,
)
from tasmotactl.errors import TasmotaError
from tasmotactl.models import DeviceConfig, DeviceInventory, is_valid_host
from tasmotactl.storage import Database

T = TypeVar("T")


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def build_database(settings: Settings, data_dir: Path | None = None) -> Database:
    path = data_dir or data_dir_from_settings(settings)
    return Database(path)


def load_inventory_or_exit(db: Database) -> DeviceInventory:
    try:
        return db.load_devices()
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_target(
    settings: Settings, inventory: DeviceInventory, target: str
) -> DeviceConfig:
    """Build a device config from an inventory name or a bare host."""
    entry = inventory.devices.get(target)
    if entry is not None:
        host, port = entry.host, entry.port
    elif is_valid_host(target):
        host, port = target, settings.devices.port
    else:
        typer.echo(f"Unknown device or invalid host: {target}", err=True)
        raise typer.Exit(1)

    try:
        return DeviceConfig(
            host=host,
            port=port,
            timeout=settings.devices.timeout,
            username=settings.devices.username,
            password=settings.devices.password,
        )
    except ValidationError as exc:
        typer.echo(f"Invalid device entry '{target}' ({host}): {exc}", err=True)
        raise typer.Exit(1) from exc


def run_or_exit(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` and turn SDK failures into a message and exit code 1."""
    try:
        return asyncio.run(coro)
    except TasmotaError as exc:
        typer.echo(f"Error: {exc.get_user_friendly_message()}", err=True)
        raise typer.Exit(1) from exc
