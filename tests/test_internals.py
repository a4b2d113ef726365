"""Tests for configuration and local storage."""

from __future__ import annotations

import pytest

from tasmotactl.config import (
    DeviceSettings,
    DiscoverySettings,
    Settings,
    default_config_path,
    default_data_dir,
    discovery_options_from_settings,
    expand_path,
    get_settings,
    load_settings,
    render_settings_toml,
    sdk_options_from_settings,
    write_settings,
)
from tasmotactl.models import DiscoveryDevice
from tasmotactl.storage import Database


def test_default_paths_follow_xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", "relative/data")
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    assert default_config_path() == tmp_path / "cfg" / "tasmotactl" / "config.toml"
    assert default_data_dir() == (
        tmp_path / "home" / ".local" / "share" / "tasmotactl"
    )


def test_expand_path(monkeypatch):
    monkeypatch.setenv("PLUGS", "/srv/plugs")
    assert str(expand_path("$PLUGS/data")) == "/srv/plugs/data"


def test_config_roundtrip(tmp_path):
    path = tmp_path / "config.toml"
    settings = Settings(
        devices=DeviceSettings(port=8080, timeout=2000, username="admin"),
        discovery=DiscoverySettings(default_network="10.0.0.0", concurrency=20),
    )
    write_settings(settings, path)

    loaded = load_settings(path)
    assert loaded == settings


def test_default_config_renders_and_loads(tmp_path):
    path = tmp_path / "config.toml"
    write_settings(Settings(), path)

    assert "[health_check]" in path.read_text()
    assert load_settings(path) == Settings()


def test_invalid_config_is_reported(tmp_path):
    bad_toml = tmp_path / "bad.toml"
    bad_toml.write_text("[devices\n")
    with pytest.raises(ValueError, match="Invalid TOML"):
        load_settings(bad_toml)

    bad_value = tmp_path / "value.toml"
    bad_value.write_text("[devices]\nport = 0\n")
    with pytest.raises(ValueError, match="Invalid config file"):
        load_settings(bad_value)


def test_get_settings_reads_env_path_and_credentials(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    write_settings(Settings(devices=DeviceSettings(username="file-user")), path)
    monkeypatch.setenv("TASMOTACTL_CONFIG", str(path))
    monkeypatch.setenv("TASMOTA_PASSWORD", "from-env")

    settings = get_settings()

    assert settings.devices.username == "file-user"
    assert settings.devices.password == "from-env"


def test_missing_env_config_path_is_an_error(tmp_path, monkeypatch):
    monkeypatch.setenv("TASMOTACTL_CONFIG", str(tmp_path / "missing.toml"))
    with pytest.raises(FileNotFoundError):
        get_settings()


def test_settings_convert_to_sdk_options():
    settings = Settings(
        devices=DeviceSettings(timeout=4000, retries=2, username="u", password="p")
    )

    options = sdk_options_from_settings(settings)
    assert options.default_timeout == 4000
    assert options.retry_attempts == 2
    assert options.password == "p"

    discovery = discovery_options_from_settings(
        settings, "192.168.7.0", end_ip=20, timeout=None
    )
    assert discovery.network == "192.168.7.0"
    assert discovery.end_ip == 20
    assert discovery.timeout == 3000


def test_rendered_config_omits_unset_credentials():
    text = render_settings_toml(Settings())
    assert "\nusername =" not in text
    assert "\npassword =" not in text


def test_device_inventory_crud(tmp_path):
    db = Database(tmp_path)

    db.add_device("desk", "192.168.1.50", notes="Under the desk")
    db.add_device("garden", "garden-plug.local", port=8080)
    inventory = db.load_devices()
    assert inventory.devices["desk"].host == "192.168.1.50"
    assert inventory.devices["desk"].notes == "Under the desk"
    assert inventory.devices["garden"].port == 8080

    assert db.remove_device("desk") is True
    assert db.remove_device("desk") is False
    assert list(db.load_devices().devices) == ["garden"]


def test_inventory_rejects_invalid_host(tmp_path):
    with pytest.raises(ValueError, match="Invalid host"):
        Database(tmp_path).add_device("bad", "not a host")


def test_scan_roundtrip(tmp_path):
    db = Database(tmp_path)
    devices = [
        DiscoveryDevice(
            hostname="tasmota-1A2B3C-2876",
            ip_address="192.168.1.50",
            mac_address="A4:CF:12:1A:2B:3C",
            friendly_name="Desk Lamp",
            version="13.2.0(tasmota)",
            module="Module 1",
            fallback_topic="tasmota_1A2B3C",
            full_topic="tasmota_1A2B3C",
        )
    ]

    assert db.load_current_scan() is None
    db.save_scan(devices, network="192.168.1.0")

    scan = db.load_current_scan()
    assert scan is not None
    assert scan.network == "192.168.1.0"
    assert scan.devices == devices


def test_init_creates_layout_once(tmp_path):
    db = Database(tmp_path / "data")

    assert db.init() is True
    assert db.devices_path.exists()
    assert db.current_scan_path.parent.is_dir()
    assert db.init() is False
