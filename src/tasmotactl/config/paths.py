"""Where tasmotactl keeps its config file, device inventory and scans."""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "tasmotactl"
CONFIG_FILENAME = "config.toml"

DEVICES_FILENAME = "devices.toml"
SCANS_DIRNAME = "scans"
CURRENT_SCAN_FILENAME = "current.json"


def _xdg_dir(env_var: str, fallback: Path) -> Path:
    # XDG base directories must be absolute; anything else is ignored.
    value = os.environ.get(env_var, "")
    if value and Path(value).is_absolute():
        return Path(value)
    return fallback


def default_config_path() -> Path:
    config_home = _xdg_dir("XDG_CONFIG_HOME", Path.home() / ".config")
    return config_home / APP_NAME / CONFIG_FILENAME


def default_data_dir() -> Path:
    data_home = _xdg_dir("XDG_DATA_HOME", Path.home() / ".local" / "share")
    return data_home / APP_NAME


def expand_path(value: str) -> Path:
    """Expand ``~`` and ``$VARS`` in a path taken from config or the env."""
    return Path(os.path.expandvars(os.path.expanduser(value)))


def devices_file(data_dir: Path) -> Path:
    return data_dir / DEVICES_FILENAME


def scans_dir(data_dir: Path) -> Path:
    return data_dir / SCANS_DIRNAME


def current_scan_file(data_dir: Path) -> Path:
    return scans_dir(data_dir) / CURRENT_SCAN_FILENAME
