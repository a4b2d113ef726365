from __future__ import annotations

from .paths import (
    APP_NAME,
    CONFIG_FILENAME,
    current_scan_file,
    default_config_path,
    default_data_dir,
    devices_file,
    expand_path,
    scans_dir,
)
from .settings import (
    CONFIG_ENV_VAR,
    PASSWORD_ENV_VAR,
    USERNAME_ENV_VAR,
    DatabaseConfig,
    DeviceSettings,
    DiscoverySettings,
    HealthCheckSettings,
    Settings,
    apply_env_overrides,
    data_dir_from_settings,
    discovery_options_from_settings,
    get_settings,
    load_settings,
    operation_options_from_settings,
    render_settings_toml,
    resolve_config_path,
    sdk_options_from_settings,
    write_settings,
)

__all__ = [
    "APP_NAME",
    "CONFIG_ENV_VAR",
    "CONFIG_FILENAME",
    "PASSWORD_ENV_VAR",
    "USERNAME_ENV_VAR",
    "DatabaseConfig",
    "DeviceSettings",
    "DiscoverySettings",
    "HealthCheckSettings",
    "Settings",
    "apply_env_overrides",
    "current_scan_file",
    "data_dir_from_settings",
    "default_config_path",
    "default_data_dir",
    "devices_file",
    "discovery_options_from_settings",
    "expand_path",
    "get_settings",
    "load_settings",
    "operation_options_from_settings",
    "render_settings_toml",
    "resolve_config_path",
    "scans_dir",
    "sdk_options_from_settings",
    "write_settings",
]
