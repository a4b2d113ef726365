"""Device models."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator

PowerState = Literal["ON", "OFF"]

# Values accepted by the Power command: OFF/ON/TOGGLE plus blink (3) and
# blink off (4), in the spellings Tasmota understands.
PowerCommand = Literal[
    "ON",
    "OFF",
    "TOGGLE",
    "on",
    "off",
    "toggle",
    "0",
    "1",
    "2",
    "true",
    "false",
    "3",
    "4",
    "BLINK",
    "BLINKOFF",
]

_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")
_URL = re.compile(r"^https?://[^\s/:?#]+(:\d{1,5})?(/[^\s]*)?$")
_IPV4 = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)


def is_valid_host(value: str) -> bool:
    """Accept an IPv4 address, an RFC 1123 hostname, or an http(s) URL."""
    if _URL.match(value):
        return True
    if _IPV4.match(value):
        return True
    if not value or len(value) > 253:
        return False
    labels = value.rstrip(".").split(".")
    if all(label.isdigit() for label in labels):
        # Looks like a dotted quad but failed the IPv4 check.
        return False
    return all(_HOSTNAME_LABEL.match(label) for label in labels)


class DeviceConfig(BaseModel):
    """Connection settings for one device. Timeouts are milliseconds."""

    model_config = {"frozen": True, "extra": "forbid"}

    host: str
    port: int = Field(default=80, ge=1, le=65535)
    timeout: int = Field(default=5000, ge=1000, le=30000)
    username: str | None = None
    password: str | None = None

    @field_validator("host")
    @classmethod
    def _check_host(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_host(value):
            raise ValueError(f"'{value}' is not an IP address, hostname or URL")
        return value


class DeviceInfo(BaseModel):
    model_config = {"frozen": True}

    hostname: str
    ip_address: str
    mac_address: str
    friendly_name: list[str]
    version: str
    build_date_time: str
    hardware: str
    uptime: str
    uptime_seconds: int
    wifi_signal: int | None = None


class PowerStatus(BaseModel):
    model_config = {"frozen": True}

    relay_count: int
    relays: dict[str, PowerState]


class EnergyData(BaseModel):
    model_config = {"frozen": True}

    total_start_time: str = ""
    total: float = 0.0
    yesterday: float = 0.0
    today: float = 0.0
    power: float = 0.0
    apparent_power: float = 0.0
    reactive_power: float = 0.0
    factor: float = 0.0
    voltage: float = 0.0
    current: float = 0.0


class DiscoveryDevice(BaseModel):
    """Tasmota device found by a network scan."""

    model_config = {"frozen": True, "extra": "forbid"}

    hostname: str
    ip_address: str
    mac_address: str
    friendly_name: str
    version: str
    module: str
    fallback_topic: str
    full_topic: str


class ScanError(BaseModel):
    model_config = {"frozen": True}

    ip: str
    error: str


class DiscoveryResult(BaseModel):
    """Aggregated outcome of one discovery scan. Duration is milliseconds."""

    devices: list[DiscoveryDevice] = Field(default_factory=list)
    total_scanned: int = 0
    total_found: int = 0
    duration: int = 0
    errors: list[ScanError] = Field(default_factory=list)
