from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from tasmotactl.core import DiscoveryOptions, OperationOptions, SDKOptions

from .paths import default_config_path, default_data_dir, expand_path

CONFIG_ENV_VAR = "TASMOTACTL_CONFIG"
USERNAME_ENV_VAR = "TASMOTA_USERNAME"
PASSWORD_ENV_VAR = "TASMOTA_PASSWORD"


class DatabaseConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    path: str = Field(default_factory=lambda: str(default_data_dir()))


class DeviceSettings(BaseModel):
    """Connection defaults for every device. Durations are milliseconds."""

    model_config = {"frozen": True, "extra": "forbid"}

    port: int = Field(default=80, ge=1, le=65535)
    timeout: int = Field(default=5000, ge=1000, le=30000)
    username: str | None = None
    password: str | None = None
    retries: int = Field(default=3, ge=0, le=5)
    retry_delay: int = Field(default=1000, ge=100, le=10000)


class DiscoverySettings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    default_network: str | None = None
    start_ip: int = Field(default=1, ge=0, le=255)
    end_ip: int = Field(default=254, ge=0, le=255)
    timeout: int = Field(default=3000, ge=1000, le=30000)
    concurrency: int = Field(default=50, ge=1, le=100)


class HealthCheckSettings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    interval: int = Field(default=60000, ge=1000)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    devices: DeviceSettings = Field(default_factory=DeviceSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    health_check: HealthCheckSettings = Field(default_factory=HealthCheckSettings)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def apply_env_overrides(settings: Settings) -> Settings:
    """Let ``TASMOTA_USERNAME``/``TASMOTA_PASSWORD`` replace file credentials."""
    overrides = {}
    if username := os.environ.get(USERNAME_ENV_VAR):
        overrides["username"] = username
    if password := os.environ.get(PASSWORD_ENV_VAR):
        overrides["password"] = password
    if not overrides:
        return settings
    devices = settings.devices.model_copy(update=overrides)
    return settings.model_copy(update={"devices": devices})


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    settings = load_settings(path) if exists else Settings()
    return apply_env_overrides(settings)


def data_dir_from_settings(settings: Settings) -> Path:
    return expand_path(settings.database.path)


def sdk_options_from_settings(settings: Settings) -> SDKOptions:
    return SDKOptions(
        default_timeout=settings.devices.timeout,
        retry_attempts=settings.devices.retries,
        retry_delay=settings.devices.retry_delay,
        discovery_timeout=settings.discovery.timeout,
        username=settings.devices.username,
        password=settings.devices.password,
    )


def operation_options_from_settings(settings: Settings) -> OperationOptions:
    return OperationOptions(
        timeout=settings.devices.timeout,
        retries=settings.devices.retries or 1,
        retry_delay=settings.devices.retry_delay,
    )


def discovery_options_from_settings(
    settings: Settings, network: str | None = None, **overrides: int | None
) -> DiscoveryOptions:
    values = {
        "network": network or settings.discovery.default_network,
        "start_ip": settings.discovery.start_ip,
        "end_ip": settings.discovery.end_ip,
        "port": settings.devices.port,
        "timeout": settings.discovery.timeout,
        "concurrency": settings.discovery.concurrency,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return DiscoveryOptions.model_validate(values)


def _toml_string(value: str) -> str:
    return json.dumps(value)


def render_settings_toml(settings: Settings) -> str:
    devices = settings.devices
    discovery = settings.discovery
    lines = [
        "# tasmotactl configuration",
        "# Durations are in milliseconds.",
        "",
        "[database]",
        f"path = {_toml_string(settings.database.path)}",
        "",
        "[devices]",
        f"port = {devices.port}",
        f"timeout = {devices.timeout}",
        f"retries = {devices.retries}",
        f"retry_delay = {devices.retry_delay}",
    ]
    if devices.username is not None:
        lines.append(f"username = {_toml_string(devices.username)}")
    else:
        lines.append('# username = "admin"')
    if devices.password is not None:
        lines.append(f"password = {_toml_string(devices.password)}")
    else:
        lines.append("# password is usually set with TASMOTA_PASSWORD instead")
    lines += ["", "[discovery]"]
    if discovery.default_network is not None:
        lines.append(f"default_network = {_toml_string(discovery.default_network)}")
    else:
        lines.append('# default_network = "192.168.1.0" (detected when unset)')
    lines += [
        f"start_ip = {discovery.start_ip}",
        f"end_ip = {discovery.end_ip}",
        f"timeout = {discovery.timeout}",
        f"concurrency = {discovery.concurrency}",
        "",
        "[health_check]",
        f"interval = {settings.health_check.interval}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
