"""Classified failures raised by the Tasmota client."""

from __future__ import annotations

from enum import Enum
from typing import Any


class TasmotaErrorType(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    DEVICE_NOT_FOUND = "DEVICE_NOT_FOUND"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    COMMAND_FAILED = "COMMAND_FAILED"
    VALIDATION_ERROR = "VALIDATION_ERROR"


_TIMEOUT_MARKERS = ("timeout", "timed out", "ETIMEDOUT")
_NOT_FOUND_MARKERS = (
    "ENOTFOUND",
    "ECONNREFUSED",
    "Connection refused",
    "Name or service not known",
    "nodename nor servname",
    "Temporary failure in name resolution",
)
_AUTH_MARKERS = ("401", "Unauthorized")


class TasmotaError(Exception):
    """Failure with a machine-readable type and device context.

    Instances are built through the named constructors (one per type) or
    through :meth:`from_unknown`, which classifies an arbitrary exception.
    """

    def __init__(
        self,
        type: TasmotaErrorType,
        message: str,
        *,
        device_host: str | None = None,
        command: str | None = None,
        status_code: int | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.type = TasmotaErrorType(type)
        self.message = message
        self.device_host = device_host
        self.command = command
        self.status_code = status_code
        self.original_error = original_error
        if original_error is not None:
            self.__cause__ = original_error

    def __repr__(self) -> str:
        return f"TasmotaError({self.type.value}, {self.message!r})"

    @classmethod
    def network_error(
        cls,
        message: str,
        original_error: BaseException | None = None,
        device_host: str | None = None,
        command: str | None = None,
        status_code: int | None = None,
    ) -> TasmotaError:
        return cls(
            TasmotaErrorType.NETWORK_ERROR,
            message,
            device_host=device_host,
            command=command,
            status_code=status_code,
            original_error=original_error,
        )

    @classmethod
    def timeout_error(
        cls,
        device_host: str,
        command: str | None = None,
        timeout: int | None = None,
    ) -> TasmotaError:
        suffix = f" after {timeout}ms" if timeout else ""
        return cls(
            TasmotaErrorType.TIMEOUT_ERROR,
            f"Request to {device_host} timed out{suffix}",
            device_host=device_host,
            command=command,
        )

    @classmethod
    def authentication_error(cls, device_host: str) -> TasmotaError:
        return cls(
            TasmotaErrorType.AUTHENTICATION_ERROR,
            f"Authentication failed for device {device_host}",
            device_host=device_host,
            status_code=401,
        )

    @classmethod
    def device_not_found(cls, device_host: str) -> TasmotaError:
        return cls(
            TasmotaErrorType.DEVICE_NOT_FOUND,
            f"Device not found at {device_host}",
            device_host=device_host,
        )

    @classmethod
    def invalid_response(
        cls,
        message: str,
        device_host: str | None = None,
        command: str | None = None,
        original_error: BaseException | None = None,
    ) -> TasmotaError:
        return cls(
            TasmotaErrorType.INVALID_RESPONSE,
            message,
            device_host=device_host,
            command=command,
            original_error=original_error,
        )

    @classmethod
    def command_failed(
        cls,
        command: str,
        device_host: str,
        status_code: int | None = None,
        original_error: BaseException | None = None,
    ) -> TasmotaError:
        return cls(
            TasmotaErrorType.COMMAND_FAILED,
            f"Command '{command}' failed on device {device_host}",
            device_host=device_host,
            command=command,
            status_code=status_code,
            original_error=original_error,
        )

    @classmethod
    def validation_error(
        cls,
        message: str,
        original_error: BaseException | None = None,
        device_host: str | None = None,
    ) -> TasmotaError:
        return cls(
            TasmotaErrorType.VALIDATION_ERROR,
            message,
            device_host=device_host,
            original_error=original_error,
        )

    @classmethod
    def from_unknown(
        cls,
        error: object,
        device_host: str | None = None,
        command: str | None = None,
    ) -> TasmotaError:
        """Classify any caught value as a TasmotaError.

        An existing TasmotaError is returned unchanged. Otherwise the message
        is inspected for timeout, connection-refused/DNS and 401 markers, in
        that order, and anything else becomes a NETWORK_ERROR.
        """
        if isinstance(error, TasmotaError):
            return error

        host = device_host or "unknown"

        if isinstance(error, BaseException):
            text = str(error) or type(error).__name__
            if isinstance(error, TimeoutError) or _contains(text, _TIMEOUT_MARKERS):
                return cls.timeout_error(host, command)
            if isinstance(error, ConnectionRefusedError) or _contains(
                text, _NOT_FOUND_MARKERS
            ):
                return cls.device_not_found(host)
            if _contains(text, _AUTH_MARKERS):
                return cls.authentication_error(host)
            return cls.network_error(text, error, device_host, command)

        return cls.network_error(
            f"Unknown error: {error}", None, device_host, command
        )

    def get_user_friendly_message(self) -> str:
        host = self.device_host
        if self.type is TasmotaErrorType.NETWORK_ERROR:
            target = f" to {host}" if host else ""
            return (
                f"Network connection failed{target}. "
                "Please check your network connection and device availability."
            )
        if self.type is TasmotaErrorType.TIMEOUT_ERROR:
            target = f" to {host}" if host else ""
            return (
                f"Request timed out{target}. "
                "The device may be busy or unreachable."
            )
        if self.type is TasmotaErrorType.AUTHENTICATION_ERROR:
            target = f" for {host}" if host else ""
            return f"Authentication failed{target}. Please check your credentials."
        if self.type is TasmotaErrorType.DEVICE_NOT_FOUND:
            target = f" at {host}" if host else ""
            return (
                f"Device not found{target}. "
                "Please verify the device address and network connectivity."
            )
        if self.type is TasmotaErrorType.INVALID_RESPONSE:
            target = f" {host}" if host else ""
            return (
                f"Received invalid response from device{target}. "
                "The device may not be a Tasmota device or may be running an "
                "incompatible version."
            )
        if self.type is TasmotaErrorType.COMMAND_FAILED:
            command = f" ({self.command})" if self.command else ""
            target = f" on device {host}" if host else ""
            return (
                f"Command failed{command}{target}. "
                "Please check the command and device status."
            )
        return f"Invalid input data: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "device_host": self.device_host,
            "command": self.command,
            "status_code": self.status_code,
        }


def _contains(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(marker.lower() in lowered for marker in markers)
