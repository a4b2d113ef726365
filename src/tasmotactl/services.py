"""Flat device summaries for dashboards and the CLI."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel

from tasmotactl.core import CommandResponse, OperationOptions, TasmotaDevice
from tasmotactl.models import DiscoveryDevice

# Shown when the firmware does not report a signal strength.
PLACEHOLDER_WIFI_SIGNAL = -50
PLACEHOLDER_VOLTAGE = 230.0
PLACEHOLDER_POWER_FACTOR = 0.95
DEFAULT_DEVICE_NAME = "Tasmota Device"


class DeviceStatus(BaseModel):
    device_id: str
    device_name: str
    ip_address: str
    mac_address: str | None
    hostname: str | None
    firmware_version: str
    status: str
    power_state: bool
    energy_monitoring: bool
    energy_consumption: float
    total_energy: float
    energy_today: float
    energy_yesterday: float
    voltage: float
    current: float
    apparent_power: float
    reactive_power: float
    power_factor: float
    wifi_signal: int
    wifi_signal_reported: bool
    uptime: int
    last_seen: datetime


def _fallback_id(ip_address: str) -> str:
    return "device_" + ip_address.replace(".", "_")


async def get_device_status(
    device: TasmotaDevice, options: OperationOptions | None = None
) -> DeviceStatus:
    """Read identity, relay 1 state and energy figures in one summary."""
    info = await device.get_device_info(options, force_refresh=True)
    power = await device.get_power_status(options)
    energy = await device.get_energy_data(options)

    return DeviceStatus(
        device_id=info.hostname or _fallback_id(device.host),
        device_name=(
            info.friendly_name[0] if info.friendly_name else DEFAULT_DEVICE_NAME
        ),
        ip_address=info.ip_address or device.host,
        mac_address=info.mac_address or None,
        hostname=info.hostname or None,
        firmware_version=info.version,
        status="online",
        power_state=power.relays.get("1") == "ON",
        energy_monitoring=energy is not None,
        energy_consumption=energy.power if energy else 0.0,
        total_energy=energy.total if energy else 0.0,
        energy_today=energy.today if energy else 0.0,
        energy_yesterday=energy.yesterday if energy else 0.0,
        voltage=energy.voltage if energy else PLACEHOLDER_VOLTAGE,
        current=energy.current if energy else 0.0,
        apparent_power=energy.apparent_power if energy else 0.0,
        reactive_power=energy.reactive_power if energy else 0.0,
        power_factor=energy.factor if energy else PLACEHOLDER_POWER_FACTOR,
        wifi_signal=(
            info.wifi_signal
            if info.wifi_signal is not None
            else PLACEHOLDER_WIFI_SIGNAL
        ),
        wifi_signal_reported=info.wifi_signal is not None,
        uptime=info.uptime_seconds,
        last_seen=datetime.now(timezone.utc),
    )


def summarize_discovered_device(device: DiscoveryDevice) -> DeviceStatus:
    """Summary of a scan hit.

    A scan only reads ``Status 0``, so power state and energy figures are not
    known here and are reported as off and zero.
    """
    return DeviceStatus(
        device_id=device.hostname or _fallback_id(device.ip_address),
        device_name=device.friendly_name or DEFAULT_DEVICE_NAME,
        ip_address=device.ip_address,
        mac_address=device.mac_address or None,
        hostname=device.hostname or None,
        firmware_version=device.version,
        status="online",
        power_state=False,
        energy_monitoring=False,
        energy_consumption=0.0,
        total_energy=0.0,
        energy_today=0.0,
        energy_yesterday=0.0,
        voltage=PLACEHOLDER_VOLTAGE,
        current=0.0,
        apparent_power=0.0,
        reactive_power=0.0,
        power_factor=PLACEHOLDER_POWER_FACTOR,
        wifi_signal=PLACEHOLDER_WIFI_SIGNAL,
        wifi_signal_reported=False,
        uptime=0,
        last_seen=datetime.now(timezone.utc),
    )


async def set_device_name(
    device: TasmotaDevice, name: str, options: OperationOptions | None = None
) -> CommandResponse:
    """Rename relay 1 (``FriendlyName1``) and the web UI (``DeviceName``)."""
    response = await device.send_command(f"FriendlyName1 {name}", options)
    if not response.success:
        return response
    await device.send_command(f"DeviceName {name}", options)
    return response
