from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from tasmotactl.errors import TasmotaError
from tasmotactl.models import (
    DeviceConfig,
    DeviceInfo,
    EnergyData,
    PowerCommand,
    PowerState,
    PowerStatus,
)

from .transformers import (
    parse_command_response,
    retry_operation,
    transform_to_device_info,
    transform_to_energy_data,
    transform_to_power_status,
)
from .transport import TasmotaHttpClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

INFO_CACHE_SECONDS = 30.0
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY = 1000
MAX_BACKLOG_COMMANDS = 30


@dataclass(frozen=True)
class OperationOptions:
    """Per-call overrides. ``timeout`` and ``retry_delay`` are milliseconds."""

    timeout: int | None = None
    retries: int | None = None
    retry_delay: int | None = None


@dataclass
class CommandResponse:
    success: bool
    data: Any = None
    error: TasmotaError | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error.to_dict() if self.error else None,
        }


def _power_command(relay: int, value: str | None = None) -> str:
    base = "Power" if relay == 1 else f"Power{relay}"
    return base if value is None else f"{base} {value}"


class TasmotaDevice:
    """Control surface for one Tasmota device.

    Owns a single :class:`TasmotaHttpClient`. Every network call goes through
    :func:`retry_operation`; device info is cached for 30 seconds.
    """

    def __init__(
        self,
        config: DeviceConfig | Mapping[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        try:
            self._config = (
                config
                if isinstance(config, DeviceConfig)
                else DeviceConfig.model_validate(dict(config))
            )
        except ValidationError as exc:
            raise TasmotaError.validation_error(
                "Invalid device configuration", exc
            ) from exc
        self._client = TasmotaHttpClient(self._config, transport=transport)
        self._cached_info: DeviceInfo | None = None
        self._info_updated = 0.0

    @classmethod
    def from_ip(cls, ip_address: str, **overrides: Any) -> TasmotaDevice:
        return cls({"host": ip_address, "port": 80, "timeout": 5000, **overrides})

    @classmethod
    def from_hostname(cls, hostname: str, **overrides: Any) -> TasmotaDevice:
        return cls({"host": hostname, "port": 80, "timeout": 5000, **overrides})

    @property
    def host(self) -> str:
        return self._config.host

    def get_config(self) -> DeviceConfig:
        return self._config

    def set_timeout(self, timeout: int) -> None:
        self._client.set_timeout(timeout)

    async def _execute(
        self,
        operation: Callable[[], Awaitable[T]],
        options: OperationOptions | None,
    ) -> T:
        options = options or OperationOptions()
        if options.timeout:
            self._client.set_timeout(options.timeout)
        retries = DEFAULT_RETRIES if options.retries is None else options.retries
        delay = (
            DEFAULT_RETRY_DELAY if options.retry_delay is None else options.retry_delay
        )
        return await retry_operation(operation, retries, delay)

    async def _send(self, command: str, options: OperationOptions | None) -> Any:
        try:
            return await self._execute(
                lambda: self._client.send_command(command), options
            )
        except TasmotaError:
            raise
        except Exception as exc:
            raise TasmotaError.from_unknown(exc, self.host, command) from exc

    async def ping(self, options: OperationOptions | None = None) -> bool:
        try:
            await self._send("Status", options)
        except TasmotaError as exc:
            logger.debug("%s did not answer ping: %s", self.host, exc)
            return False
        return True

    async def get_device_info(
        self,
        options: OperationOptions | None = None,
        force_refresh: bool = False,
    ) -> DeviceInfo:
        now = time.monotonic()
        if (
            not force_refresh
            and self._cached_info is not None
            and now - self._info_updated < INFO_CACHE_SECONDS
        ):
            return self._cached_info

        raw = await self._send("Status 0", options)
        info = transform_to_device_info(raw)
        self._cached_info = info
        self._info_updated = now
        return info

    async def get_power_status(
        self, options: OperationOptions | None = None
    ) -> PowerStatus:
        return transform_to_power_status(await self._send("Power", options))

    def _relay_state(
        self, status: PowerStatus, relay: int, command: str
    ) -> PowerState:
        state = status.relays.get(str(relay))
        if state is None:
            raise TasmotaError.command_failed(
                command,
                self.host,
                original_error=LookupError(f"Relay {relay} not found in response"),
            )
        return state

    async def get_power_state(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> PowerState:
        command = _power_command(relay)
        status = transform_to_power_status(await self._send(command, options))
        return self._relay_state(status, relay, command)

    async def set_power_state(
        self,
        state: PowerCommand,
        relay: int = 1,
        options: OperationOptions | None = None,
    ) -> PowerState:
        command = _power_command(relay, state)
        status = transform_to_power_status(await self._send(command, options))
        return self._relay_state(status, relay, command)

    async def turn_on(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> PowerState:
        return await self.set_power_state("ON", relay, options)

    async def turn_off(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> PowerState:
        return await self.set_power_state("OFF", relay, options)

    async def toggle(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> PowerState:
        return await self.set_power_state("TOGGLE", relay, options)

    async def blink(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> PowerState:
        return await self.set_power_state("3", relay, options)

    async def blink_off(
        self, relay: int = 1, options: OperationOptions | None = None
    ) -> PowerState:
        return await self.set_power_state("4", relay, options)

    async def turn_on_all(self, options: OperationOptions | None = None) -> PowerStatus:
        return transform_to_power_status(await self._send("Power0 1", options))

    async def turn_off_all(
        self, options: OperationOptions | None = None
    ) -> PowerStatus:
        return transform_to_power_status(await self._send("Power0 0", options))

    async def get_energy_data(
        self, options: OperationOptions | None = None
    ) -> EnergyData | None:
        return transform_to_energy_data(await self._send("Status 8", options))

    async def supports_energy_monitoring(
        self, options: OperationOptions | None = None
    ) -> bool:
        return await self.get_energy_data(options) is not None

    async def send_command(
        self, command: str, options: OperationOptions | None = None
    ) -> CommandResponse:
        """Send any command; failures are reported in the envelope, never raised."""
        try:
            raw = await self._send(command, options)
        except TasmotaError as exc:
            return CommandResponse(success=False, error=exc)

        parsed = parse_command_response(raw)
        if not parsed.success:
            error = TasmotaError.command_failed(
                command, self.host, original_error=RuntimeError(parsed.error)
            )
            return CommandResponse(success=False, data=raw, error=error)
        return CommandResponse(success=True, data=parsed.data)

    async def restart(self, options: OperationOptions | None = None) -> CommandResponse:
        return await self.send_command("Restart 1", options)

    async def backlog(
        self, commands: list[str], options: OperationOptions | None = None
    ) -> CommandResponse:
        """Run up to 30 commands in one request."""
        if not commands:
            return CommandResponse(success=True, data={})
        if len(commands) > MAX_BACKLOG_COMMANDS:
            raise TasmotaError.validation_error(
                f"Backlog supports a maximum of {MAX_BACKLOG_COMMANDS} commands",
                device_host=self.host,
            )
        return await self.send_command(f"Backlog {'; '.join(commands)}", options)

    async def clear_backlog(
        self, options: OperationOptions | None = None
    ) -> CommandResponse:
        return await self.send_command("Backlog", options)

    async def get_uptime(self, options: OperationOptions | None = None) -> int:
        info = await self.get_device_info(options)
        return info.uptime_seconds

    async def get_relay_count(self, options: OperationOptions | None = None) -> int:
        status = await self.get_power_status(options)
        return status.relay_count

    def clear_cache(self) -> None:
        self._cached_info = None
        self._info_updated = 0.0

    async def destroy(self) -> None:
        await self._client.destroy()
        self.clear_cache()

    async def __aenter__(self) -> TasmotaDevice:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.destroy()

    def __repr__(self) -> str:
        return f"TasmotaDevice(host={self.host!r}, port={self._config.port})"
