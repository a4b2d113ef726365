from __future__ import annotations

import copy
from typing import Any

import httpx
import pytest

from tasmotactl.config import get_settings

STATUS_0: dict[str, Any] = {
    "Status": {
        "Module": 1,
        "DeviceName": "Desk Lamp",
        "FriendlyName": ["Desk Lamp"],
        "Topic": "tasmota_1A2B3C",
        "Power": 1,
    },
    "StatusFWR": {
        "Version": "13.2.0(tasmota)",
        "BuildDateTime": "2023-10-12T12:00:00",
        "Hardware": "ESP8266EX",
        "Core": "2_7_4_9",
    },
    "StatusNET": {
        "Hostname": "tasmota-1A2B3C-2876",
        "IPAddress": "192.168.1.50",
        "Gateway": "192.168.1.1",
        "Subnetmask": "255.255.255.0",
        "Mac": "A4:CF:12:1A:2B:3C",
    },
    "StatusSTS": {
        "Time": "2024-03-01T10:00:00",
        "Uptime": "1T02:03:04",
        "UptimeSec": 93784,
        "POWER": "ON",
        "Wifi": {"AP": 1, "SSId": "home", "RSSI": 76, "Signal": -62},
    },
}

STATUS_8: dict[str, Any] = {
    "StatusSNS": {
        "Time": "2024-03-01T10:00:00",
        "ENERGY": {
            "TotalStartTime": "2023-01-01T00:00:00",
            "Total": 12.345,
            "Yesterday": 0.5,
            "Today": 0.25,
            "Power": 42,
            "ApparentPower": 45,
            "ReactivePower": 10,
            "Factor": 0.93,
            "Voltage": 231,
            "Current": 0.19,
        },
    }
}


class FakeTasmota:
    """Answers ``/cm`` requests from a command -> reply table.

    A reply may be a JSON-able value, an ``httpx.Response`` or a callable
    taking the request. Unknown commands get Tasmota's ``Unknown`` reply.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = dict(responses or {})
        self.requests: list[httpx.Request] = []

    @property
    def commands(self) -> list[str]:
        return [request.url.params["cmnd"] for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.responses.get(request.url.params["cmnd"])
        if callable(reply):
            reply = reply(request)
        if reply is None:
            return httpx.Response(200, json={"Command": "Unknown"})
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=reply)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.delenv("TASMOTACTL_CONFIG", raising=False)
    monkeypatch.delenv("TASMOTA_USERNAME", raising=False)
    monkeypatch.delenv("TASMOTA_PASSWORD", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def status_payload() -> dict[str, Any]:
    return copy.deepcopy(STATUS_0)


@pytest.fixture
def energy_payload() -> dict[str, Any]:
    return copy.deepcopy(STATUS_8)


@pytest.fixture
def fake_tasmota():
    def _make(responses: dict[str, Any] | None = None) -> FakeTasmota:
        return FakeTasmota(responses)

    return _make
