"""Data models for tasmotactl."""

from tasmotactl.models.device import (
    DeviceConfig,
    DeviceInfo,
    DiscoveryDevice,
    DiscoveryResult,
    EnergyData,
    PowerCommand,
    PowerState,
    PowerStatus,
    ScanError,
    is_valid_host,
)
from tasmotactl.models.inventory import DeviceInventory, InventoryDevice, ScanRecord
from tasmotactl.models.status import StatusResponse

__all__ = [
    "DeviceConfig",
    "DeviceInfo",
    "DeviceInventory",
    "DiscoveryDevice",
    "DiscoveryResult",
    "EnergyData",
    "InventoryDevice",
    "PowerCommand",
    "PowerState",
    "PowerStatus",
    "ScanError",
    "ScanRecord",
    "StatusResponse",
    "is_valid_host",
]
