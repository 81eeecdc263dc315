"""
Async client for the Dapr sidecar HTTP API.

Provides service invocation and state management (single, bulk and
transactional) over a shared, recycling connection pool.
"""

__version__ = "0.1.0"

from .client import DaprClient
from .config import DaprSettings, resolve_options
from .runtime import (
    BackendUnavailableError,
    ClientOptions,
    ConfigurationError,
    ConnectionPool,
    DaprError,
    ValidationError,
    close_shared_pool,
    get_shared_pool,
)
from .state import (
    BulkStateItem,
    ConcurrencyMode,
    ConsistencyMode,
    StateItem,
    StateOperationType,
    StateOptions,
    TransactionOperation,
)

__all__ = [
    "__version__",
    # Client
    "DaprClient",
    "ClientOptions",
    "DaprSettings",
    "resolve_options",
    # Connections
    "ConnectionPool",
    "get_shared_pool",
    "close_shared_pool",
    # Errors
    "DaprError",
    "ConfigurationError",
    "ValidationError",
    "BackendUnavailableError",
    # State
    "BulkStateItem",
    "ConcurrencyMode",
    "ConsistencyMode",
    "StateItem",
    "StateOperationType",
    "StateOptions",
    "TransactionOperation",
]
