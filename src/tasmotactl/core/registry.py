from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from tasmotactl.errors import TasmotaError
from tasmotactl.events import EventEmitter
from tasmotactl.models import DeviceConfig, DiscoveryResult, PowerCommand, PowerState

from .device import OperationOptions, TasmotaDevice
from .discovery import DeviceDiscovery, DiscoveryOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HEALTH_CHECK_INTERVAL = 60000
HEALTH_CHECK_OPTIONS = OperationOptions(timeout=3000, retries=1)


class SDKOptions(BaseModel):
    """Registry-wide defaults. Durations are milliseconds."""

    model_config = {"frozen": True, "extra": "forbid"}

    default_timeout: int = Field(default=5000, ge=1000, le=30000)
    retry_attempts: int = Field(default=3, ge=0, le=5)
    retry_delay: int = Field(default=1000, ge=100, le=10000)
    discovery_timeout: int = Field(default=10000, ge=1000, le=30000)
    username: str | None = None
    password: str | None = None


@dataclass
class DeviceEntry:
    id: str
    device: TasmotaDevice
    config: DeviceConfig
    last_seen: datetime
    is_online: bool = False


@dataclass(frozen=True)
class BulkSuccess(Generic[T]):
    device_id: str
    result: T


@dataclass(frozen=True)
class BulkFailure:
    device_id: str
    error: TasmotaError


@dataclass
class BulkOperationResult(Generic[T]):
    successful: list[BulkSuccess[T]] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)
    total_devices: int = 0

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


def generate_device_id(host: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", host).lower()


class DeviceRegistry(EventEmitter):
    """Named collection of devices with fleet-wide operations.

    Events: ``device-added`` (DeviceEntry), ``device-removed`` (id),
    ``device-online`` (id), ``device-offline`` (id), ``discovery-complete``
    (DiscoveryResult), ``error`` (TasmotaError).
    """

    EVENTS = frozenset(
        {
            "device-added",
            "device-removed",
            "device-online",
            "device-offline",
            "discovery-complete",
            "error",
        }
    )

    def __init__(self, options: SDKOptions | None = None) -> None:
        super().__init__()
        self.options = options or SDKOptions()
        self._devices: dict[str, DeviceEntry] = {}
        self._discovery = DeviceDiscovery()
        self._discovery.on("error", lambda error: self.emit("error", error))
        self._health_task: asyncio.Task[None] | None = None

    @property
    def discovery(self) -> DeviceDiscovery:
        return self._discovery

    def add_device(
        self,
        config: DeviceConfig | Mapping[str, Any],
        device_id: str | None = None,
    ) -> str:
        device = TasmotaDevice(config)
        resolved_id = device_id or generate_device_id(device.host)
        if resolved_id in self._devices:
            # The handle never opened a connection; nothing to release.
            raise TasmotaError.validation_error(
                f"Device with ID '{resolved_id}' already exists"
            )

        entry = DeviceEntry(
            id=resolved_id,
            device=device,
            config=device.get_config(),
            last_seen=datetime.now(timezone.utc),
        )
        self._devices[resolved_id] = entry
        logger.info("Added device '%s' (%s)", resolved_id, device.host)
        self.emit("device-added", entry)
        return resolved_id

    async def remove_device(self, device_id: str) -> bool:
        entry = self._devices.pop(device_id, None)
        if entry is None:
            return False
        await entry.device.destroy()
        logger.info("Removed device '%s'", device_id)
        self.emit("device-removed", device_id)
        return True

    def get_device(self, device_id: str) -> TasmotaDevice | None:
        entry = self._devices.get(device_id)
        return entry.device if entry else None

    def get_entry(self, device_id: str) -> DeviceEntry | None:
        return self._devices.get(device_id)

    def has_device(self, device_id: str) -> bool:
        return device_id in self._devices

    def device_ids(self) -> list[str]:
        return list(self._devices)

    def entries(self) -> list[DeviceEntry]:
        return list(self._devices.values())

    def online_devices(self) -> list[str]:
        return [id_ for id_, entry in self._devices.items() if entry.is_online]

    def offline_devices(self) -> list[str]:
        return [id_ for id_, entry in self._devices.items() if not entry.is_online]

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    async def discover_and_add_devices(
        self, options: DiscoveryOptions | Mapping[str, Any] | None = None
    ) -> DiscoveryResult:
        """Scan the network and register every device not already known.

        Probes use ``discovery_timeout`` unless ``options`` sets a timeout.
        Scan failures reach ``error`` listeners through the discovery engine.
        """
        options = self._with_discovery_timeout(options)
        result = await self._discovery.discover(options)
        port = (
            options.port
            if isinstance(options, DiscoveryOptions)
            else options.get("port", 80)
        )
        try:
            for found in result.devices:
                device_id = generate_device_id(found.ip_address)
                if device_id in self._devices:
                    continue
                self.add_device(
                    DeviceConfig(
                        host=found.ip_address,
                        port=port,
                        timeout=self.options.default_timeout,
                        username=self.options.username,
                        password=self.options.password,
                    ),
                    device_id,
                )
        except TasmotaError as exc:
            self.emit("error", exc)
            raise
        except Exception as exc:
            error = TasmotaError.from_unknown(exc)
            self.emit("error", error)
            raise error from exc

        self.emit("discovery-complete", result)
        return result

    def _with_discovery_timeout(
        self, options: DiscoveryOptions | Mapping[str, Any] | None
    ) -> DiscoveryOptions | dict[str, Any]:
        timeout = self.options.discovery_timeout
        if isinstance(options, DiscoveryOptions):
            if "timeout" in options.model_fields_set:
                return options
            return options.model_copy(update={"timeout": timeout})
        merged = dict(options or {})
        if merged.get("timeout") is None:
            merged["timeout"] = timeout
        return merged

    def _default_options(self, options: OperationOptions | None) -> OperationOptions:
        if options is not None:
            return options
        return OperationOptions(
            retries=self.options.retry_attempts or 1,
            retry_delay=self.options.retry_delay,
        )

    async def _execute_bulk(
        self,
        operation: Callable[[TasmotaDevice], Awaitable[T]],
        name: str,
        device_ids: list[str] | None = None,
    ) -> BulkOperationResult[T]:
        if device_ids is None:
            targets = list(self._devices.values())
        else:
            targets = [
                self._devices[id_] for id_ in device_ids if id_ in self._devices
            ]

        outcome: BulkOperationResult[T] = BulkOperationResult(
            total_devices=len(targets)
        )

        async def run(entry: DeviceEntry) -> None:
            try:
                result = await operation(entry.device)
            except Exception as exc:
                error = TasmotaError.from_unknown(exc, entry.config.host, name)
                logger.debug("%s failed on '%s': %s", name, entry.id, error)
                outcome.failed.append(BulkFailure(entry.id, error))
            else:
                outcome.successful.append(BulkSuccess(entry.id, result))

        await asyncio.gather(*(run(entry) for entry in targets))
        return outcome

    async def ping_all_devices(
        self, options: OperationOptions | None = None
    ) -> BulkOperationResult[bool]:
        opts = self._default_options(options)
        return await self._execute_bulk(lambda d: d.ping(opts), "ping")

    async def turn_on_all(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> BulkOperationResult[PowerState]:
        opts = self._default_options(options)
        return await self._execute_bulk(
            lambda d: d.turn_on(relay, opts), f"turn_on({relay})"
        )

    async def turn_off_all(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> BulkOperationResult[PowerState]:
        opts = self._default_options(options)
        return await self._execute_bulk(
            lambda d: d.turn_off(relay, opts), f"turn_off({relay})"
        )

    async def toggle_all(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> BulkOperationResult[PowerState]:
        opts = self._default_options(options)
        return await self._execute_bulk(
            lambda d: d.toggle(relay, opts), f"toggle({relay})"
        )

    async def blink_all(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> BulkOperationResult[PowerState]:
        opts = self._default_options(options)
        return await self._execute_bulk(
            lambda d: d.blink(relay, opts), f"blink({relay})"
        )

    async def blink_off_all(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> BulkOperationResult[PowerState]:
        opts = self._default_options(options)
        return await self._execute_bulk(
            lambda d: d.blink_off(relay, opts), f"blink_off({relay})"
        )

    async def set_power_state_all(
        self,
        state: PowerCommand,
        relay: int = 1,
        options: OperationOptions | None = None,
    ) -> BulkOperationResult[PowerState]:
        opts = self._default_options(options)
        return await self._execute_bulk(
            lambda d: d.set_power_state(state, relay, opts),
            f"set_power_state({state}, {relay})",
        )

    async def _command_data(
        self, device: TasmotaDevice, command: str, options: OperationOptions
    ) -> Any:
        response = await device.send_command(command, options)
        if not response.success and response.error is not None:
            raise response.error
        return response.data

    async def send_command_to_all(
        self, command: str, options: OperationOptions | None = None
    ) -> BulkOperationResult[Any]:
        opts = self._default_options(options)
        return await self._execute_bulk(
            lambda d: self._command_data(d, command, opts), command
        )

    async def send_command_to_devices(
        self,
        device_ids: list[str],
        command: str,
        options: OperationOptions | None = None,
    ) -> BulkOperationResult[Any]:
        opts = self._default_options(options)
        return await self._execute_bulk(
            lambda d: self._command_data(d, command, opts), command, device_ids
        )

    async def check_health(self) -> None:
        """Ping every device once and emit online/offline transitions."""
        entries = list(self._devices.values())

        async def check(entry: DeviceEntry) -> None:
            online = await entry.device.ping(HEALTH_CHECK_OPTIONS)
            if self._devices.get(entry.id) is not entry:
                return
            was_online = entry.is_online
            entry.is_online = online
            entry.last_seen = datetime.now(timezone.utc)
            if online and not was_online:
                logger.info("Device '%s' is online", entry.id)
                self.emit("device-online", entry.id)
            elif was_online and not online:
                logger.warning("Device '%s' went offline", entry.id)
                self.emit("device-offline", entry.id)

        await asyncio.gather(*(check(entry) for entry in entries))

    async def _health_loop(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval / 1000)
            await self.check_health()

    def start_health_check(self, interval: int = DEFAULT_HEALTH_CHECK_INTERVAL) -> None:
        """Ping all devices every ``interval`` ms. Needs a running event loop."""
        self.stop_health_check()
        self._health_task = asyncio.get_running_loop().create_task(
            self._health_loop(interval)
        )
        logger.info("Health check started (every %dms)", interval)

    def stop_health_check(self) -> None:
        task, self._health_task = self._health_task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Health check stopped")

    @property
    def health_check_running(self) -> bool:
        return self._health_task is not None and not self._health_task.done()

    async def clear_devices(self) -> None:
        entries = list(self._devices.values())
        self._devices.clear()
        for entry in entries:
            await entry.device.destroy()

    async def destroy(self) -> None:
        task = self._health_task
        self.stop_health_check()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._discovery.stop_scan()
        await self.clear_devices()
        self._discovery.remove_all_listeners()
        self.remove_all_listeners()

    async def __aenter__(self) -> DeviceRegistry:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.destroy()
