"""Validate raw device JSON into typed records, plus IP and retry helpers."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import ValidationError

from tasmotactl.errors import TasmotaError, TasmotaErrorType
from tasmotactl.models import (
    DeviceInfo,
    DiscoveryDevice,
    EnergyData,
    PowerState,
    PowerStatus,
    StatusResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RELAYS = 8

_IPV4 = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_POWER_STATES: tuple[PowerState, ...] = ("ON", "OFF")


def _parse_status(raw: Any) -> StatusResponse:
    return StatusResponse.model_validate(raw)


def transform_to_device_info(raw: Any) -> DeviceInfo:
    try:
        parsed = _parse_status(raw)
    except ValidationError as exc:
        raise TasmotaError.validation_error(
            "Failed to parse device info from status response", exc
        ) from exc

    wifi = parsed.runtime.wifi
    return DeviceInfo(
        hostname=parsed.network.hostname,
        ip_address=parsed.network.ip_address,
        mac_address=parsed.network.mac,
        friendly_name=list(parsed.status.friendly_name),
        version=parsed.firmware.version,
        build_date_time=parsed.firmware.build_date_time,
        hardware=parsed.firmware.hardware,
        uptime=parsed.runtime.uptime,
        uptime_seconds=parsed.runtime.uptime_sec,
        wifi_signal=wifi.signal if wifi is not None else None,
    )


def _relay_value(data: dict[str, Any], key: str) -> PowerState | None:
    value = data.get(key)
    if value is None:
        return None
    if value not in _POWER_STATES:
        raise ValueError(f"{key} has unexpected value {value!r}")
    return value  # type: ignore[no-any-return]


def transform_to_power_status(raw: Any) -> PowerStatus:
    """Collect ``POWER`` and ``POWER1``..``POWER8`` into a relay map.

    The relay count is the highest relay index seen.
    """
    relays: dict[str, PowerState] = {}
    relay_count = 0
    try:
        if isinstance(raw, dict):
            for index in range(1, MAX_RELAYS + 1):
                keys = ("POWER", "POWER1") if index == 1 else (f"POWER{index}",)
                for key in keys:
                    state = _relay_value(raw, key)
                    if state is not None:
                        relays[str(index)] = state
                        relay_count = max(relay_count, index)
        if relay_count == 0:
            raise ValueError("No power states found in response")
    except ValueError as exc:
        raise TasmotaError.validation_error(
            "Failed to parse power status from response", exc
        ) from exc

    return PowerStatus(relay_count=relay_count, relays=relays)


def _as_float(energy: dict[str, Any], key: str) -> float:
    value = energy.get(key)
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric energy field %s=%r", key, value)
        return 0.0


def transform_to_energy_data(raw: Any) -> EnergyData | None:
    """Read ``StatusSNS.ENERGY``; ``None`` means the device has no meter."""
    if not isinstance(raw, dict):
        return None
    sensors = raw.get("StatusSNS")
    if not isinstance(sensors, dict):
        return None
    energy = sensors.get("ENERGY")
    if not isinstance(energy, dict):
        return None

    start_time = energy.get("TotalStartTime")
    return EnergyData(
        total_start_time="" if start_time is None else str(start_time),
        total=_as_float(energy, "Total"),
        yesterday=_as_float(energy, "Yesterday"),
        today=_as_float(energy, "Today"),
        power=_as_float(energy, "Power"),
        apparent_power=_as_float(energy, "ApparentPower"),
        reactive_power=_as_float(energy, "ReactivePower"),
        factor=_as_float(energy, "Factor"),
        voltage=_as_float(energy, "Voltage"),
        current=_as_float(energy, "Current"),
    )


def transform_to_discovery_device(ip_address: str, raw: Any) -> DiscoveryDevice:
    try:
        parsed = _parse_status(raw)
    except ValidationError as exc:
        raise TasmotaError.validation_error(
            "Failed to parse discovery device info", exc, ip_address
        ) from exc

    names = parsed.status.friendly_name
    return DiscoveryDevice(
        hostname=parsed.network.hostname,
        ip_address=ip_address,
        mac_address=parsed.network.mac,
        friendly_name=names[0] if names and names[0] else parsed.network.hostname,
        version=parsed.firmware.version,
        module=f"Module {parsed.status.module}",
        fallback_topic=parsed.status.topic,
        full_topic=parsed.status.topic,
    )


@dataclass
class ParsedCommand:
    success: bool
    data: Any = None
    error: str | None = None


def parse_command_response(raw: Any) -> ParsedCommand:
    """Detect the failure markers Tasmota puts in an HTTP 200 body."""
    if isinstance(raw, dict):
        problem = raw.get("WARNING") or raw.get("ERROR")
        if problem:
            return ParsedCommand(success=False, error=str(problem))
        if raw.get("Command") == "Unknown":
            return ParsedCommand(success=False, error="Unknown command")
    return ParsedCommand(success=True, data=raw)


def normalize_ip_address(value: str) -> str:
    """Strip scheme, port and path from a user-supplied host string."""
    host = _SCHEME.sub("", value.strip())
    host = host.split("/", 1)[0]
    return host.split(":", 1)[0]


def is_valid_ip_address(ip: str) -> bool:
    return bool(_IPV4.match(ip))


def generate_ip_range(base_ip: str, start: int = 1, end: int = 254) -> list[str]:
    """List the addresses ``start``..``end`` of the /24 containing ``base_ip``."""
    normalized = normalize_ip_address(base_ip)
    if not is_valid_ip_address(normalized):
        raise TasmotaError.validation_error(f"Invalid IP address format: {base_ip}")
    if not (0 <= start <= 255 and 0 <= end <= 255):
        raise TasmotaError.validation_error(
            f"Invalid host range {start}-{end}: octets must be within 0-255"
        )
    network = normalized.rsplit(".", 1)[0]
    return [f"{network}.{octet}" for octet in range(start, end + 1)]


def is_retryable(error: BaseException) -> bool:
    """Everything except a VALIDATION_ERROR is worth another attempt."""
    return not (
        isinstance(error, TasmotaError)
        and error.type is TasmotaErrorType.VALIDATION_ERROR
    )


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: int = 1000,
    backoff_multiplier: float = 2,
    *,
    should_retry: Callable[[BaseException], bool] = is_retryable,
) -> T:
    """Await ``operation`` up to ``max_attempts`` times with exponential backoff.

    Attempt ``n`` failing waits ``delay * backoff_multiplier ** (n - 1)``
    milliseconds before the next one. The last failure is re-raised unchanged.
    """
    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt == attempts or not should_retry(exc):
                raise
            wait_ms = delay * backoff_multiplier ** (attempt - 1)
            logger.debug(
                "Attempt %d/%d failed (%s), retrying in %.0fms",
                attempt,
                attempts,
                exc,
                wait_ms,
            )
            await asyncio.sleep(wait_ms / 1000)
    raise AssertionError("unreachable")
