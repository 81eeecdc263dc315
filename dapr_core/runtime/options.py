"""
Client options and endpoint validation.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from pydantic import BaseModel, Field

from .errors import ConfigurationError

DEFAULT_HTTP_ENDPOINT = "http://localhost:3500"
DEFAULT_REQUEST_TIMEOUT = 5.0


class ClientOptions(BaseModel):
    """Immutable configuration for a DaprClient.

    Attributes:
        endpoint: Base URL of the sidecar HTTP API.
        api_token: Value sent as the dapr-api-token header, if any.
        request_timeout: Per-request deadline in seconds.
        fail_fast: Surface connectivity failures as BackendUnavailableError
            instead of the raw httpx exception.
    """

    endpoint: str = DEFAULT_HTTP_ENDPOINT
    api_token: str | None = None
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    fail_fast: bool = True

    model_config = {"frozen": True}


def validate_endpoint(endpoint: str | None) -> str:
    """Check that an endpoint is an absolute http(s) URI.

    Args:
        endpoint: The configured endpoint.

    Returns:
        The endpoint without a trailing slash.

    Raises:
        ConfigurationError: If the endpoint is not an absolute http/https URI.
    """
    if endpoint is None or not endpoint.strip():
        raise ConfigurationError("Dapr endpoint must not be empty", value=endpoint)

    try:
        parts = urlsplit(endpoint.strip())
        # Accessing port validates it
        parts.port
    except ValueError as e:
        raise ConfigurationError(
            f"Dapr endpoint '{endpoint}' is not a valid absolute URI. "
            "Expected format: http://hostname:port or https://hostname:port",
            value=endpoint,
        ) from e

    if not parts.scheme or not parts.netloc:
        raise ConfigurationError(
            f"Dapr endpoint '{endpoint}' is not a valid absolute URI. "
            "Expected format: http://hostname:port or https://hostname:port",
            value=endpoint,
        )

    if parts.scheme.lower() not in ("http", "https"):
        raise ConfigurationError(
            f"Dapr endpoint '{endpoint}' must use http:// or https:// scheme. "
            f"Found scheme: {parts.scheme}",
            value=endpoint,
        )

    return endpoint.strip().rstrip("/")
