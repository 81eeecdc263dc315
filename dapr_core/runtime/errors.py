"""
Error model for the Dapr client.

Errors raised by the client itself derive from DaprError and carry a
machine-readable code. Backend-reported failures (non-2xx responses) and,
when fail-fast is disabled, connectivity failures are surfaced as the raw
httpx exceptions instead.
"""

from __future__ import annotations

from typing import Any


class ErrorCode:
    """Error codes for client-side failures."""

    # Construction
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Caller input
    INVALID_ARGUMENT = "INVALID_ARGUMENT"

    # Network/connectivity
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"


class DaprError(Exception):
    """Base error raised by the Dapr client.

    Attributes:
        code: Error code for programmatic handling.
        message: Human-readable message.
        message_debug: Optional detailed message for debugging.
        retryable: Whether the failed call may succeed if issued again.
        cause: Optional underlying exception.
    """

    def __init__(
        self,
        code: str,
        message: str,
        message_debug: str | None = None,
        retryable: bool = False,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.message_debug = message_debug
        self.retryable = retryable
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"message={self.message!r}, "
            f"retryable={self.retryable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary (excludes debug info)."""
        return {
            "code": self.code,
            "message": self.message,
        }


class ConfigurationError(DaprError):
    """The client was constructed with unusable options.

    Raised synchronously while building the client; a client never exists
    in a half-configured state.
    """

    def __init__(self, message: str, value: Any = None):
        super().__init__(code=ErrorCode.CONFIGURATION_ERROR, message=message)
        self.value = value


class ValidationError(DaprError):
    """A caller-supplied argument was empty or otherwise invalid.

    Raised before any network I/O takes place.
    """

    def __init__(self, param_name: str, message: str | None = None):
        super().__init__(
            code=ErrorCode.INVALID_ARGUMENT,
            message=message or f"'{param_name}' must be a non-empty string",
        )
        self.param_name = param_name


class BackendUnavailableError(DaprError):
    """The sidecar could not be reached while fail-fast is enabled.

    Carries the underlying transport exception and remediation text telling
    the developer how to start the sidecar.
    """

    def __init__(
        self,
        code: str,
        message: str,
        remediation: str,
        endpoint: str,
        cause: Exception | None = None,
    ):
        super().__init__(
            code=code,
            message=f"{message} {remediation}",
            message_debug=repr(cause) if cause is not None else None,
            retryable=True,
            cause=cause,
        )
        self.remediation = remediation
        self.endpoint = endpoint
