from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from tasmotactl.errors import TasmotaError, TasmotaErrorType
from tasmotactl.events import EventEmitter
from tasmotactl.models import DeviceConfig, DiscoveryDevice, DiscoveryResult, ScanError

from .transformers import (
    generate_ip_range,
    is_valid_ip_address,
    normalize_ip_address,
    transform_to_discovery_device,
)
from .transport import TasmotaHttpClient

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "192.168.1.0"
DEFAULT_PROBE_TIMEOUT = 3000
DEFAULT_CONCURRENCY = 50
MAX_CONCURRENCY = 100

# Answers that mean "nothing Tasmota-like lives here" rather than a failure.
_EXCLUDED_ERRORS = frozenset(
    {
        TasmotaErrorType.DEVICE_NOT_FOUND,
        TasmotaErrorType.TIMEOUT_ERROR,
        TasmotaErrorType.INVALID_RESPONSE,
        TasmotaErrorType.VALIDATION_ERROR,
    }
)


class DiscoveryOptions(BaseModel):
    """Scan parameters. ``timeout`` is the per-probe limit in milliseconds."""

    model_config = {"frozen": True, "extra": "forbid"}

    network: str | None = None
    start_ip: int = Field(default=1, ge=0, le=255)
    end_ip: int = Field(default=254, ge=0, le=255)
    ip_addresses: list[str] | None = None
    port: int = Field(default=80, ge=1, le=65535)
    timeout: int = Field(default=DEFAULT_PROBE_TIMEOUT, ge=1000, le=30000)
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)


@dataclass(frozen=True)
class ScanProgress:
    scanned: int
    total: int
    current: str


def detect_local_network() -> str:
    """Return the base address of the local /24, e.g. ``192.168.1.0``."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            # No packet is sent; connect() only selects the outgoing interface.
            sock.connect(("8.8.8.8", 80))
            local_ip = sock.getsockname()[0]
    except OSError as exc:
        logger.debug("Could not detect local network (%s), using default", exc)
        return DEFAULT_NETWORK
    network = ipaddress.ip_network(f"{local_ip}/24", strict=False)
    logger.debug("Detected local network: %s", network)
    return str(network.network_address)


def _coerce_options(
    options: DiscoveryOptions | Mapping[str, Any] | None,
) -> DiscoveryOptions:
    if isinstance(options, DiscoveryOptions):
        return options
    try:
        return DiscoveryOptions.model_validate(dict(options or {}))
    except ValidationError as exc:
        raise TasmotaError.validation_error("Invalid discovery options", exc) from exc


class DeviceDiscovery(EventEmitter):
    """Finds Tasmota devices by probing IP addresses in bounded batches.

    Events: ``device-found`` (DiscoveryDevice), ``scan-progress``
    (ScanProgress), ``scan-complete`` (DiscoveryResult), ``error``
    (TasmotaError).
    """

    EVENTS = frozenset({"device-found", "scan-progress", "scan-complete", "error"})

    def __init__(self) -> None:
        super().__init__()
        self._scanning = False
        self._abort = asyncio.Event()

    @property
    def is_scan_in_progress(self) -> bool:
        return self._scanning

    def stop_scan(self) -> None:
        """Stop scheduling batches; probes already running are allowed to finish."""
        if self._scanning:
            logger.info("Stopping discovery scan")
            self._abort.set()

    def generate_ip_list(self, options: DiscoveryOptions) -> list[str]:
        if options.ip_addresses is not None:
            return [ip for ip in options.ip_addresses if is_valid_ip_address(ip)]

        base = (options.network or DEFAULT_NETWORK).split("/", 1)[0]
        return generate_ip_range(
            normalize_ip_address(base), options.start_ip, options.end_ip
        )

    async def discover(
        self, options: DiscoveryOptions | Mapping[str, Any] | None = None
    ) -> DiscoveryResult:
        if self._scanning:
            raise TasmotaError.validation_error("Discovery scan is already in progress")

        self._scanning = True
        self._abort.clear()
        started = time.monotonic()
        devices: list[DiscoveryDevice] = []
        errors: list[ScanError] = []
        scanned = 0

        try:
            resolved = _coerce_options(options)
            candidates = self.generate_ip_list(resolved)
            concurrency = min(resolved.concurrency, MAX_CONCURRENCY)
            total = len(candidates)
            logger.info(
                "Scanning %d address(es) (concurrency=%d, timeout=%dms)",
                total,
                concurrency,
                resolved.timeout,
            )

            async def probe(ip: str) -> None:
                nonlocal scanned
                try:
                    self.emit("scan-progress", ScanProgress(scanned, total, ip))
                    device = await self.scan_device(
                        ip, resolved.timeout, port=resolved.port
                    )
                    if device is not None:
                        devices.append(device)
                        logger.info("Found %s at %s", device.hostname, ip)
                        self.emit("device-found", device)
                except TasmotaError as exc:
                    logger.debug("Probe of %s failed: %s", ip, exc)
                    errors.append(ScanError(ip=ip, error=exc.message))
                finally:
                    scanned += 1

            for offset in range(0, total, concurrency):
                if self._abort.is_set():
                    logger.info("Scan aborted after %d of %d", scanned, total)
                    break
                batch = candidates[offset : offset + concurrency]
                await asyncio.gather(*(probe(ip) for ip in batch))

            result = DiscoveryResult(
                devices=devices,
                total_scanned=scanned,
                total_found=len(devices),
                duration=int((time.monotonic() - started) * 1000),
                errors=errors,
            )
            logger.info(
                "Scan complete: %d device(s) found, %d error(s) in %dms",
                result.total_found,
                len(result.errors),
                result.duration,
            )
            self.emit("scan-complete", result)
            return result
        except TasmotaError as exc:
            self.emit("error", exc)
            raise
        except Exception as exc:
            error = TasmotaError.from_unknown(exc)
            self.emit("error", error)
            raise error from exc
        finally:
            self._scanning = False
            self._abort.clear()

    async def discover_by_network(
        self, network: str, options: Mapping[str, Any] | None = None
    ) -> DiscoveryResult:
        return await self.discover({**(options or {}), "network": network})

    async def discover_by_ips(
        self, ip_addresses: list[str], options: Mapping[str, Any] | None = None
    ) -> DiscoveryResult:
        return await self.discover({**(options or {}), "ip_addresses": ip_addresses})

    async def quick_discover(
        self, options: Mapping[str, Any] | None = None
    ) -> DiscoveryResult:
        network = await asyncio.to_thread(detect_local_network)
        return await self.discover_by_network(network, options)

    async def scan_device(
        self, ip: str, timeout: int = DEFAULT_PROBE_TIMEOUT, port: int = 80
    ) -> DiscoveryDevice | None:
        """Probe one address; ``None`` when nothing Tasmota-like answers."""
        if not is_valid_ip_address(ip):
            raise TasmotaError.validation_error(f"Invalid IP address: {ip}")

        config = DeviceConfig(host=ip, port=port, timeout=timeout)
        async with TasmotaHttpClient(config) as client:
            if not await client.ping():
                return None
            try:
                raw = await client.get_status(0)
                return transform_to_discovery_device(ip, raw)
            except TasmotaError as exc:
                if exc.type in _EXCLUDED_ERRORS:
                    logger.debug("Skipping %s: %s", ip, exc)
                    return None
                raise

    async def is_tasmota_device(
        self, ip: str, timeout: int = DEFAULT_PROBE_TIMEOUT
    ) -> bool:
        try:
            return await self.scan_device(ip, timeout) is not None
        except TasmotaError:
            return False
