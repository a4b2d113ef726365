from __future__ import annotations

from .device import CommandResponse, OperationOptions, TasmotaDevice
from .discovery import (
    DeviceDiscovery,
    DiscoveryOptions,
    ScanProgress,
    detect_local_network,
)
from .registry import (
    BulkFailure,
    BulkOperationResult,
    BulkSuccess,
    DeviceEntry,
    DeviceRegistry,
    SDKOptions,
    generate_device_id,
)
from .transformers import (
    generate_ip_range,
    is_valid_ip_address,
    normalize_ip_address,
    parse_command_response,
    retry_operation,
    transform_to_device_info,
    transform_to_discovery_device,
    transform_to_energy_data,
    transform_to_power_status,
)
from .transport import TasmotaHttpClient

__all__ = [
    "BulkFailure",
    "BulkOperationResult",
    "BulkSuccess",
    "CommandResponse",
    "DeviceDiscovery",
    "DeviceEntry",
    "DeviceRegistry",
    "DiscoveryOptions",
    "OperationOptions",
    "SDKOptions",
    "ScanProgress",
    "TasmotaDevice",
    "TasmotaHttpClient",
    "detect_local_network",
    "generate_device_id",
    "generate_ip_range",
    "is_valid_ip_address",
    "normalize_ip_address",
    "parse_command_response",
    "retry_operation",
    "transform_to_device_info",
    "transform_to_discovery_device",
    "transform_to_energy_data",
    "transform_to_power_status",
]
