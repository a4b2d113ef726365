"""tasmotactl - async client, network discovery and fleet control for Tasmota plugs."""

from __future__ import annotations

from importlib.metadata import version

from .core import (
    BulkOperationResult,
    CommandResponse,
    DeviceDiscovery,
    DeviceRegistry,
    DiscoveryOptions,
    OperationOptions,
    SDKOptions,
    TasmotaDevice,
    TasmotaHttpClient,
    retry_operation,
)
from .errors import TasmotaError, TasmotaErrorType
from .models import (
    DeviceConfig,
    DeviceInfo,
    DiscoveryDevice,
    DiscoveryResult,
    EnergyData,
    PowerStatus,
)

__all__ = [
    "BulkOperationResult",
    "CommandResponse",
    "DeviceConfig",
    "DeviceDiscovery",
    "DeviceInfo",
    "DeviceRegistry",
    "DiscoveryDevice",
    "DiscoveryOptions",
    "DiscoveryResult",
    "EnergyData",
    "OperationOptions",
    "PowerStatus",
    "SDKOptions",
    "TasmotaDevice",
    "TasmotaError",
    "TasmotaErrorType",
    "TasmotaHttpClient",
    "__version__",
    "retry_operation",
]

__version__ = version("tasmotactl")
