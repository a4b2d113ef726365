from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .device import DiscoveryDevice


class InventoryDevice(BaseModel):
    model_config = {"extra": "forbid"}

    host: str
    port: int = Field(default=80, ge=1, le=65535)
    notes: str | None = None


class DeviceInventory(BaseModel):
    model_config = {"extra": "forbid"}

    devices: dict[str, InventoryDevice] = Field(default_factory=dict)


class ScanRecord(BaseModel):
    model_config = {"extra": "forbid"}

    scan_timestamp: datetime
    network: str
    devices: list[DiscoveryDevice]
