"""HTTP transport for the Tasmota ``/cm`` command endpoint.

Tasmota authenticates web requests with query parameters, not HTTP Basic
Auth::

    GET http://<host>[:<port>]/cm?user=<user>&password=<password>&cmnd=<command>
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any
from urllib.parse import urlsplit

import httpx

from tasmotactl.errors import TasmotaError
from tasmotactl.models import DeviceConfig
from tasmotactl.utils.redaction import redact_url

logger = logging.getLogger(__name__)

USER_AGENT = "tasmotactl"

_NOT_FOUND_MARKERS = (
    "connection refused",
    "errno 111",
    "errno 61",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated",
)


class TasmotaHttpClient:
    """One client per device. Timeouts are milliseconds."""

    def __init__(
        self,
        config: DeviceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._timeout = config.timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._destroyed = False

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def timeout(self) -> int:
        return self._timeout

    def get_config(self) -> DeviceConfig:
        return self._config.model_copy(update={"timeout": self._timeout})

    def set_timeout(self, timeout: int) -> None:
        self._timeout = timeout

    def base_url(self) -> str:
        host = self._config.host
        url = host if host.startswith(("http://", "https://")) else f"http://{host}"
        parts = urlsplit(url)
        if self._config.port != 80 and parts.port is None:
            url = f"{parts.scheme}://{parts.hostname}:{self._config.port}{parts.path}"
        return url.rstrip("/")

    def _auth_params(self) -> dict[str, str]:
        if self._config.username and self._config.password:
            return {"user": self._config.username, "password": self._config.password}
        return {}

    def _get_client(self, command: str) -> httpx.AsyncClient:
        if self._destroyed:
            raise TasmotaError.network_error(
                "Client has been destroyed", None, self.host, command
            )
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            )
        return self._client

    async def send_command(self, command: str, timeout: int | None = None) -> Any:
        """Send ``command`` and return the decoded JSON body."""
        url = f"{self.base_url()}/cm"
        params = {**self._auth_params(), "cmnd": command}
        effective_timeout = timeout or self._timeout
        client = self._get_client(command)
        started = time.monotonic()

        try:
            response = await client.get(
                url, params=params, timeout=effective_timeout / 1000
            )
        except httpx.HTTPError as exc:
            raise self._classify_transport_error(
                exc, command, effective_timeout
            ) from exc
        except Exception as exc:
            raise TasmotaError.from_unknown(exc, self.host, command) from exc

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug(
            "GET %s -> %d in %.0fms",
            redact_url(str(response.request.url)),
            response.status_code,
            elapsed_ms,
        )

        if not response.is_success:
            raise self._classify_status(response, command)

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise TasmotaError.invalid_response(
                f"Response to '{command}' is not valid JSON", self.host, command, exc
            ) from exc

    async def get_status(self, status_type: int | None = None) -> Any:
        command = "Status" if status_type is None else f"Status {status_type}"
        return await self.send_command(command)

    async def ping(self) -> bool:
        try:
            await self.send_command("Status")
        except TasmotaError as exc:
            logger.debug("Ping to %s failed: %s", self.host, exc)
            return False
        return True

    def _classify_transport_error(
        self, exc: httpx.HTTPError, command: str, timeout: int
    ) -> TasmotaError:
        if isinstance(exc, httpx.TimeoutException):
            return TasmotaError.timeout_error(self.host, command, timeout)
        if isinstance(exc, httpx.ConnectError):
            text = str(exc).lower()
            if any(marker in text for marker in _NOT_FOUND_MARKERS):
                return TasmotaError.device_not_found(self.host)
        if isinstance(exc, httpx.TransportError):
            return TasmotaError.network_error(
                "No response received from device", exc, self.host, command
            )
        return TasmotaError.from_unknown(exc, self.host, command)

    def _classify_status(self, response: httpx.Response, command: str) -> TasmotaError:
        status = response.status_code
        if status == 401:
            return TasmotaError.authentication_error(self.host)
        if 400 <= status < 500:
            return TasmotaError.command_failed(command, self.host, status)
        return TasmotaError.network_error(
            f"HTTP {status}: {response.reason_phrase}",
            device_host=self.host,
            command=command,
            status_code=status,
        )

    async def destroy(self) -> None:
        """Close the connection pool. Safe to call more than once."""
        self._destroyed = True
        client, self._client = self._client, None
        if client is not None and not client.is_closed:
            await client.aclose()

    async def __aenter__(self) -> TasmotaHttpClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.destroy()
