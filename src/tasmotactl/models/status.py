"""Schema of the ``Status 0`` payload.

Only the fields the client reads are required; everything else a firmware
version reports is kept as extra data.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class _Block(BaseModel):
    model_config = {"extra": "allow", "populate_by_name": True}


class StatusBlock(_Block):
    module: int = Field(alias="Module")
    device_name: str | None = Field(default=None, alias="DeviceName")
    friendly_name: list[str] = Field(alias="FriendlyName")
    topic: str = Field(alias="Topic")


class FirmwareBlock(_Block):
    version: str = Field(alias="Version")
    build_date_time: str = Field(alias="BuildDateTime")
    hardware: str = Field(alias="Hardware")
    core: str | None = Field(default=None, alias="Core")
    sdk: str | None = Field(default=None, alias="SDK")


class NetworkBlock(_Block):
    hostname: str = Field(alias="Hostname")
    ip_address: str = Field(alias="IPAddress")
    mac: str = Field(alias="Mac")
    gateway: str | None = Field(default=None, alias="Gateway")
    subnetmask: str | None = Field(default=None, alias="Subnetmask")


class WifiBlock(_Block):
    ssid: str | None = Field(default=None, alias="SSId")
    rssi: int | None = Field(default=None, alias="RSSI")
    signal: int | None = Field(default=None, alias="Signal")


class RuntimeBlock(_Block):
    uptime: str = Field(alias="Uptime")
    uptime_sec: int = Field(alias="UptimeSec")
    wifi: WifiBlock | None = Field(default=None, alias="Wifi")


class StatusResponse(_Block):
    status: StatusBlock = Field(alias="Status")
    firmware: FirmwareBlock = Field(alias="StatusFWR")
    network: NetworkBlock = Field(alias="StatusNET")
    runtime: RuntimeBlock = Field(alias="StatusSTS")
