"""Tests for the device control surface."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from tasmotactl.core import OperationOptions, TasmotaDevice
from tasmotactl.errors import TasmotaError, TasmotaErrorType

FAST = OperationOptions(retries=1)


def _device(fake) -> TasmotaDevice:
    return TasmotaDevice({"host": "192.168.1.50"}, transport=fake.transport())


def _run(device: TasmotaDevice, action):
    async def run():
        async with device:
            return await action(device)

    return asyncio.run(run())


def test_invalid_config_is_a_validation_error():
    with pytest.raises(TasmotaError) as excinfo:
        TasmotaDevice({"host": "192.168.1.50", "port": 70000})
    assert excinfo.value.type is TasmotaErrorType.VALIDATION_ERROR

    with pytest.raises(TasmotaError):
        TasmotaDevice({"host": "999.1.1.1"})


def test_from_ip_uses_defaults():
    device = TasmotaDevice.from_ip("192.168.1.50", timeout=2000)
    config = device.get_config()
    assert config.port == 80
    assert config.timeout == 2000


def test_device_info_is_cached(fake_tasmota, status_payload):
    fake = fake_tasmota({"Status 0": status_payload})
    device = _device(fake)

    async def action(d: TasmotaDevice):
        first = await d.get_device_info(FAST)
        second = await d.get_device_info(FAST)
        await d.get_device_info(FAST, force_refresh=True)
        return first, second

    first, second = _run(device, action)

    assert first == second
    assert first.hostname == "tasmota-1A2B3C-2876"
    assert fake.commands == ["Status 0", "Status 0"]


def test_power_commands_address_the_right_relay(fake_tasmota):
    fake = fake_tasmota(
        {
            "Power ON": {"POWER": "ON"},
            "Power2 OFF": {"POWER2": "OFF"},
            "Power TOGGLE": {"POWER": "OFF"},
            "Power 3": {"POWER": "ON"},
            "Power2 4": {"POWER2": "OFF"},
        }
    )
    device = _device(fake)

    async def action(d: TasmotaDevice):
        return [
            await d.turn_on(options=FAST),
            await d.turn_off(2, FAST),
            await d.toggle(options=FAST),
            await d.blink(options=FAST),
            await d.blink_off(2, FAST),
        ]

    assert _run(device, action) == ["ON", "OFF", "OFF", "ON", "OFF"]
    assert fake.commands == [
        "Power ON",
        "Power2 OFF",
        "Power TOGGLE",
        "Power 3",
        "Power2 4",
    ]


def test_power_state_for_missing_relay_fails(fake_tasmota):
    fake = fake_tasmota({"Power3": {"POWER1": "ON"}})
    device = _device(fake)

    with pytest.raises(TasmotaError) as excinfo:
        _run(device, lambda d: d.get_power_state(3, FAST))

    assert excinfo.value.type is TasmotaErrorType.COMMAND_FAILED
    assert excinfo.value.command == "Power3"


def test_power_status_and_relay_count(fake_tasmota):
    fake = fake_tasmota({"Power": {"POWER1": "ON", "POWER2": "OFF", "POWER3": "ON"}})
    device = _device(fake)

    status = _run(device, lambda d: d.get_power_status(FAST))
    assert status.relay_count == 3
    assert status.relays["2"] == "OFF"


def test_all_relays_use_power0(fake_tasmota):
    fake = fake_tasmota({"Power0 1": {"POWER1": "ON", "POWER2": "ON"}})
    device = _device(fake)

    status = _run(device, lambda d: d.turn_on_all(FAST))
    assert status.relays == {"1": "ON", "2": "ON"}


def test_energy_support(fake_tasmota, energy_payload):
    metered = fake_tasmota({"Status 8": energy_payload})
    plain = fake_tasmota({"Status 8": {"StatusSNS": {"Time": "x"}}})

    assert _run(_device(metered), lambda d: d.supports_energy_monitoring(FAST))
    assert not _run(_device(plain), lambda d: d.supports_energy_monitoring(FAST))

    energy = _run(_device(metered), lambda d: d.get_energy_data(FAST))
    assert energy.today == 0.25


def test_send_command_reports_failures_in_envelope(fake_tasmota):
    fake = fake_tasmota(
        {
            "Dimmer 50": {"Dimmer": 50},
            "Bogus": {"Command": "Unknown"},
            "Broken": httpx.Response(500),
            "Missing": httpx.Response(404),
        }
    )
    device = _device(fake)

    async def action(d: TasmotaDevice):
        return (
            await d.send_command("Dimmer 50", FAST),
            await d.send_command("Bogus", FAST),
            await d.send_command("Broken", FAST),
            await d.send_command("Missing", FAST),
        )

    ok, unknown, broken, missing = _run(device, action)

    assert ok.success is True
    assert ok.data == {"Dimmer": 50}
    assert unknown.success is False
    assert unknown.error.type is TasmotaErrorType.COMMAND_FAILED
    assert unknown.data == {"Command": "Unknown"}
    assert broken.success is False
    assert broken.error.type is TasmotaErrorType.NETWORK_ERROR
    assert broken.to_dict()["error"]["status_code"] == 500
    assert missing.success is False
    assert missing.error.type is TasmotaErrorType.COMMAND_FAILED
    assert missing.error.status_code == 404


def test_backlog(fake_tasmota):
    fake = fake_tasmota({"Backlog Power ON; Delay 10; Power OFF": {"POWER": "OFF"}})
    device = _device(fake)

    response = _run(
        device, lambda d: d.backlog(["Power ON", "Delay 10", "Power OFF"], FAST)
    )
    assert response.success is True

    empty = _run(_device(fake), lambda d: d.backlog([], FAST))
    assert empty.success is True
    assert len(fake.requests) == 1


def test_backlog_rejects_more_than_30_commands(fake_tasmota):
    device = _device(fake_tasmota())

    with pytest.raises(TasmotaError) as excinfo:
        _run(device, lambda d: d.backlog(["Power TOGGLE"] * 31, FAST))

    assert excinfo.value.type is TasmotaErrorType.VALIDATION_ERROR


def test_ping(fake_tasmota, status_payload):
    up = _device(fake_tasmota({"Status": {"Status": status_payload["Status"]}}))
    down = _device(fake_tasmota({"Status": httpx.Response(502)}))

    assert _run(up, lambda d: d.ping(FAST)) is True
    assert _run(down, lambda d: d.ping(FAST)) is False


def test_transient_failures_are_retried(fake_tasmota):
    replies = iter([httpx.Response(503), httpx.Response(200, json={"POWER": "ON"})])
    fake = fake_tasmota({"Power": lambda request: next(replies)})
    device = _device(fake)

    state = _run(
        device,
        lambda d: d.get_power_state(options=OperationOptions(retries=2, retry_delay=1)),
    )

    assert state == "ON"
    assert len(fake.requests) == 2
