"""Tests for the command-line interface."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest
from typer.testing import CliRunner

import tasmotactl.cli.commands.control as control_cmd
import tasmotactl.cli.commands.ping as ping_cmd
import tasmotactl.cli.commands.scan as scan_cmd
from tasmotactl.cli.app import app
from tasmotactl.config import (
    DatabaseConfig,
    DeviceSettings,
    DiscoverySettings,
    HealthCheckSettings,
    Settings,
    get_settings,
    write_settings,
)
from tasmotactl.core import BulkOperationResult, CommandResponse, TasmotaDevice
from tasmotactl.core import registry as registry_module
from tasmotactl.core.registry import BulkSuccess
from tasmotactl.errors import TasmotaError
from tasmotactl.models import DeviceConfig, DiscoveryDevice, DiscoveryResult
from tasmotactl.services import DeviceStatus
from tasmotactl.storage import Database

# Wide enough that rich tables never truncate cells.
runner = CliRunner(env={"COLUMNS": "200"})


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    data_dir = tmp_path / "data"
    config_path = tmp_path / "config.toml"
    write_settings(
        Settings(
            database=DatabaseConfig(path=str(data_dir)),
            devices=DeviceSettings(username="admin", password="s3cret"),
            discovery=DiscoverySettings(default_network="192.168.1.0"),
            health_check=HealthCheckSettings(interval=15000),
        ),
        config_path,
    )
    monkeypatch.setenv("TASMOTACTL_CONFIG", str(config_path))
    get_settings.cache_clear()
    return data_dir


def test_devices_add_list_remove(data_dir):
    result = runner.invoke(app, ["devices", "add", "desk", "192.168.1.50"])
    assert result.exit_code == 0
    assert Database(data_dir).load_devices().devices["desk"].host == "192.168.1.50"

    result = runner.invoke(app, ["devices", "list"])
    assert result.exit_code == 0
    assert "desk" in result.stdout

    result = runner.invoke(app, ["devices", "remove", "desk"])
    assert result.exit_code == 0

    result = runner.invoke(app, ["devices", "remove", "desk"])
    assert result.exit_code == 1


def test_devices_add_rejects_invalid_host(data_dir):
    result = runner.invoke(app, ["devices", "add", "bad", "not a host"])
    assert result.exit_code == 1
    assert "Invalid host" in result.output


def test_scan_shows_inventory_name_and_saves(data_dir, monkeypatch):
    Database(data_dir).add_device("desk", "192.168.1.50")
    seen = {}

    async def fake_run_scan(options, on_progress=None):
        seen["options"] = options
        device = DiscoveryDevice(
            hostname="tasmota-1A2B3C-2876",
            ip_address="192.168.1.50",
            mac_address="A4:CF:12:1A:2B:3C",
            friendly_name="Desk Lamp",
            version="13.2.0",
            module="Module 1",
            fallback_topic="tasmota_1A2B3C",
            full_topic="tasmota_1A2B3C",
        )
        return DiscoveryResult(
            devices=[device], total_scanned=20, total_found=1, duration=800, errors=[]
        )

    monkeypatch.setattr(scan_cmd, "run_scan", fake_run_scan)

    result = runner.invoke(app, ["scan", "--end", "20", "--save"])

    assert result.exit_code == 0
    assert "desk" in result.stdout
    assert seen["options"].network == "192.168.1.0"
    assert seen["options"].end_ip == 20
    scan = Database(data_dir).load_current_scan()
    assert scan is not None
    assert scan.devices[0].hostname == "tasmota-1A2B3C-2876"


def test_scan_failure_prints_friendly_message(data_dir, monkeypatch):
    async def failing_scan(options, on_progress=None):
        raise TasmotaError.validation_error("Discovery scan is already in progress")

    monkeypatch.setattr(scan_cmd, "run_scan", failing_scan)

    result = runner.invoke(app, ["scan", "10.0.0.0"])

    assert result.exit_code == 1
    assert "Invalid input data: Discovery scan is already in progress" in result.output


def test_power_resolves_inventory_names(data_dir, monkeypatch):
    Database(data_dir).add_device("desk", "192.168.1.50", port=8080)
    calls = []

    async def fake_apply_power(config, settings, action, relay):
        calls.append((config, action, relay))
        return "ON"

    monkeypatch.setattr(control_cmd, "apply_power", fake_apply_power)

    result = runner.invoke(app, ["power", "desk", "on", "--relay", "2"])

    assert result.exit_code == 0
    assert "Relay 2: ON" in result.stdout
    config, action, relay = calls[0]
    assert config.host == "192.168.1.50"
    assert config.port == 8080
    assert config.password == "s3cret"
    assert action is control_cmd.PowerAction.ON
    assert relay == 2


def test_power_failure_exits_with_message(data_dir, monkeypatch):
    async def unreachable(config, settings, action, relay):
        raise TasmotaError.timeout_error(config.host, "Power ON")

    monkeypatch.setattr(control_cmd, "apply_power", unreachable)

    result = runner.invoke(app, ["power", "192.168.1.77", "on"])

    assert result.exit_code == 1
    assert "Request timed out to 192.168.1.77" in result.output


def test_unknown_target_is_rejected(data_dir):
    result = runner.invoke(app, ["status", "no such plug"])
    assert result.exit_code == 1
    assert "Unknown device or invalid host" in result.output


def test_invalid_inventory_host_is_reported(data_dir):
    devices_path = Database(data_dir).devices_path
    devices_path.parent.mkdir(parents=True, exist_ok=True)
    devices_path.write_text('[devices]\nbroken = { host = "not a host" }\n')

    result = runner.invoke(app, ["status", "broken"])

    assert result.exit_code == 1
    assert "Invalid device entry 'broken'" in result.output
    assert "Traceback" not in result.output


def test_status_prints_summary(data_dir, monkeypatch):
    async def fake_status(config, settings):
        return DeviceStatus(
            device_id="tasmota-1A2B3C-2876",
            device_name="Desk Lamp",
            ip_address=config.host,
            mac_address="A4:CF:12:1A:2B:3C",
            hostname="tasmota-1A2B3C-2876",
            firmware_version="13.2.0",
            status="online",
            power_state=True,
            energy_monitoring=False,
            energy_consumption=0.0,
            total_energy=0.0,
            energy_today=0.0,
            energy_yesterday=0.0,
            voltage=230.0,
            current=0.0,
            apparent_power=0.0,
            reactive_power=0.0,
            power_factor=0.95,
            wifi_signal=-50,
            wifi_signal_reported=False,
            uptime=120,
            last_seen=datetime.now(timezone.utc),
        )

    monkeypatch.setattr(control_cmd, "fetch_status", fake_status)

    result = runner.invoke(app, ["status", "192.168.1.50"])

    assert result.exit_code == 0
    assert "Desk Lamp" in result.stdout
    assert "not reported" in result.stdout


def test_command_prints_json_or_fails(data_dir, monkeypatch):
    replies = {
        "Dimmer 40": CommandResponse(success=True, data={"Dimmer": 40}),
        "Bogus": CommandResponse(
            success=False,
            error=TasmotaError.command_failed("Bogus", "192.168.1.50"),
        ),
    }

    async def fake_run_command(config, settings, command):
        return replies[command]

    monkeypatch.setattr(control_cmd, "run_command", fake_run_command)

    ok = runner.invoke(app, ["command", "192.168.1.50", "Dimmer", "40"])
    assert ok.exit_code == 0
    assert '"Dimmer": 40' in ok.stdout

    bad = runner.invoke(app, ["command", "192.168.1.50", "Bogus"])
    assert bad.exit_code == 1
    assert "Command failed (Bogus)" in bad.output


def test_ping_defaults_to_whole_inventory(data_dir, monkeypatch):
    db = Database(data_dir)
    db.add_device("desk", "192.168.1.50")
    db.add_device("hall", "192.168.1.51")
    pinged = {}

    async def fake_ping(configs, settings):
        pinged.update(configs)
        return BulkOperationResult(
            successful=[BulkSuccess("desk", True), BulkSuccess("hall", False)],
            total_devices=2,
        )

    monkeypatch.setattr(ping_cmd, "ping_devices", fake_ping)

    result = runner.invoke(app, ["ping"])

    assert result.exit_code == 0
    assert sorted(pinged) == ["desk", "hall"]
    assert "1/2 device(s) online" in result.stdout


def test_ping_pings_repeated_targets_once(data_dir, monkeypatch):
    Database(data_dir).add_device("desk", "192.168.1.50")
    pinged = []

    async def fake_ping(configs, settings):
        pinged.append(list(configs))
        return BulkOperationResult(
            successful=[BulkSuccess("desk", True)], total_devices=1
        )

    monkeypatch.setattr(ping_cmd, "ping_devices", fake_ping)

    result = runner.invoke(app, ["ping", "desk", "desk"])

    assert result.exit_code == 0
    assert pinged == [["desk"]]
    assert "1/1 device(s) online" in result.stdout


def test_ping_watch_uses_health_check_interval(data_dir, monkeypatch):
    Database(data_dir).add_device("desk", "192.168.1.50")
    seen = {}

    async def fake_watch(configs, settings, interval, on_change):
        seen["interval"] = interval
        on_change("desk", True)
        on_change("desk", False)

    monkeypatch.setattr(ping_cmd, "watch_devices", fake_watch)

    result = runner.invoke(app, ["ping", "--watch"])

    assert result.exit_code == 0
    assert seen["interval"] == 15000
    assert "every 15s" in result.stdout
    assert "desk (192.168.1.50): online" in result.stdout
    assert "desk (192.168.1.50): offline" in result.stdout


def test_watch_devices_reports_initial_state_and_changes(monkeypatch, fake_tasmota):
    fakes = {
        "192.168.1.50": fake_tasmota({"Status": {"Status": {}}}),
        "192.168.1.51": fake_tasmota({"Status": httpx.Response(503)}),
    }
    monkeypatch.setattr(
        registry_module,
        "TasmotaDevice",
        lambda config: TasmotaDevice(config, transport=fakes[config.host].transport()),
    )
    configs = {
        "desk": DeviceConfig(host="192.168.1.50"),
        "hall": DeviceConfig(host="192.168.1.51"),
    }
    changes: list[tuple[str, bool]] = []

    async def run():
        watch = ping_cmd.watch_devices(
            configs, Settings(), 10, lambda name, online: changes.append((name, online))
        )
        with pytest.raises(TimeoutError):
            await asyncio.wait_for(watch, 0.2)

    asyncio.run(run())

    assert changes == [("desk", True), ("hall", False)]
    assert len(fakes["192.168.1.50"].requests) > 1


def test_config_show_masks_password(data_dir):
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert "s3cret" not in result.stdout
    assert 'password = "***"' in result.stdout


def test_init_creates_config_and_data_dir(tmp_path, monkeypatch):
    config_path = tmp_path / "new" / "config.toml"
    monkeypatch.setenv("TASMOTACTL_CONFIG", str(config_path))

    result = runner.invoke(app, ["init", "--data-dir", str(tmp_path / "store")])

    assert result.exit_code == 0
    assert config_path.exists()
    assert (tmp_path / "store" / "devices.toml").exists()


def test_info(data_dir):
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert "Named devices: 0" in result.stdout
    assert "No scans recorded yet" in result.stdout
