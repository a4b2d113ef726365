from __future__ import annotations

import json
import tomllib
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from tasmotactl.config.paths import current_scan_file, devices_file, scans_dir
from tasmotactl.models import (
    DeviceInventory,
    DiscoveryDevice,
    InventoryDevice,
    ScanRecord,
    is_valid_host,
)


def _toml_string(value: str) -> str:
    return json.dumps(value)


def _render_devices_toml(inventory: DeviceInventory) -> str:
    lines = [
        "# tasmotactl device inventory",
        "# Maps friendly names to Tasmota hosts",
        "",
        "[devices]",
    ]

    for name, device in sorted(inventory.devices.items()):
        fields = [f"host = {_toml_string(device.host)}"]
        if device.port != 80:
            fields.append(f"port = {device.port}")
        if device.notes:
            fields.append(f"notes = {_toml_string(device.notes)}")
        lines.append(f"{_toml_string(name)} = {{ {', '.join(fields)} }}")

    lines.append("")
    return "\n".join(lines)


class Database:
    """Named devices in ``devices.toml`` and the last scan in ``scans/``."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._scans_dir = scans_dir(data_dir)
        self._devices_path = devices_file(data_dir)
        self._current_scan_path = current_scan_file(data_dir)

    @property
    def path(self) -> Path:
        return self._data_dir

    @property
    def devices_path(self) -> Path:
        return self._devices_path

    @property
    def current_scan_path(self) -> Path:
        return self._current_scan_path

    def ensure_dirs(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._scans_dir.mkdir(parents=True, exist_ok=True)

    def load_devices(self) -> DeviceInventory:
        if not self._devices_path.exists():
            return DeviceInventory()

        try:
            with self._devices_path.open("rb") as handle:
                data = tomllib.load(handle) or {}
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(
                f"Invalid TOML in devices file: {self._devices_path}\n{exc}"
            ) from exc

        try:
            return DeviceInventory.model_validate({"devices": data.get("devices", {})})
        except ValidationError as exc:
            raise ValueError(
                f"Invalid devices file: {self._devices_path}\n{exc}"
            ) from exc

    def save_devices(self, inventory: DeviceInventory) -> None:
        self.ensure_dirs()
        self._devices_path.write_text(_render_devices_toml(inventory))

    def add_device(
        self, name: str, host: str, port: int = 80, notes: str | None = None
    ) -> InventoryDevice:
        if not is_valid_host(host):
            raise ValueError(f"Invalid host: {host}")
        inventory = self.load_devices()
        device = InventoryDevice(host=host.strip(), port=port, notes=notes)
        inventory.devices[name] = device
        self.save_devices(inventory)
        return device

    def remove_device(self, name: str) -> bool:
        inventory = self.load_devices()
        if name in inventory.devices:
            del inventory.devices[name]
            self.save_devices(inventory)
            return True
        return False

    def save_scan(self, devices: list[DiscoveryDevice], network: str) -> ScanRecord:
        scan = ScanRecord(
            scan_timestamp=datetime.now(timezone.utc),
            network=network,
            devices=devices,
        )

        self._scans_dir.mkdir(parents=True, exist_ok=True)
        with self._current_scan_path.open("w") as handle:
            json.dump(scan.model_dump(mode="json"), handle, indent=2)
        return scan

    def load_current_scan(self) -> ScanRecord | None:
        if not self._current_scan_path.exists():
            return None

        try:
            with self._current_scan_path.open("r") as handle:
                data = json.load(handle)
            return ScanRecord.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ValueError(
                f"Invalid scan file: {self._current_scan_path}\n{exc}"
            ) from exc

    def init(self, force: bool = False) -> bool:
        """Create the data directory. Returns True when anything was written."""
        existed = self._devices_path.exists()
        self.ensure_dirs()
        if existed and not force:
            return False
        self.save_devices(DeviceInventory())
        return True
