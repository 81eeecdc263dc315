"""
Transport layer for the Dapr client.

This package provides:
- ClientOptions: Immutable client configuration
- ConnectionPool: Shared, recycling httpx connection pool
- HttpTransport: Request execution with fail-fast error normalization
- DaprError and subclasses: Client-side error taxonomy
"""

from .errors import (
    BackendUnavailableError,
    ConfigurationError,
    DaprError,
    ErrorCode,
    ValidationError,
)
from .options import ClientOptions, validate_endpoint
from .pool import ConnectionPool, close_shared_pool, get_shared_pool
from .transport import HttpTransport

__all__ = [
    "BackendUnavailableError",
    "ClientOptions",
    "ConfigurationError",
    "ConnectionPool",
    "DaprError",
    "ErrorCode",
    "HttpTransport",
    "ValidationError",
    "close_shared_pool",
    "get_shared_pool",
    "validate_endpoint",
]
