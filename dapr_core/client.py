"""
Dapr client.

DaprClient is the public surface for service invocation and state
management. Every identifier is validated before any network I/O; requests
are then delegated to HttpTransport.
"""

from __future__ import annotations

from typing import Any, Iterable
from urllib.parse import quote

from loguru import logger
from pydantic import TypeAdapter

from dapr_core.config import resolve_options
from dapr_core.runtime.errors import ValidationError
from dapr_core.runtime.options import ClientOptions
from dapr_core.runtime.pool import ConnectionPool
from dapr_core.runtime.transport import HttpTransport, decode
from dapr_core.state.models import (
    BulkStateItem,
    ConsistencyMode,
    StateItem,
    StateOptions,
    TransactionOperation,
    concurrency_to_wire,
    consistency_to_wire,
)
from dapr_core.state.wire import (
    BulkGetRequest,
    BulkStateItemResponse,
    DeleteStateRequest,
    SaveStateRequest,
    StateTransactionRequest,
)

API_VERSION = "v1.0"

_BULK_RESPONSE = TypeAdapter(list[BulkStateItemResponse])


def _require(value: str | None, param_name: str) -> str:
    """Reject None, empty and whitespace-only identifiers."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(param_name)
    return value


def _require_items(items: Iterable[Any] | None, param_name: str) -> list[Any]:
    if items is None:
        raise ValidationError(param_name, f"'{param_name}' must not be None")
    # A bare string is iterable but is never a collection of keys
    if isinstance(items, (str, bytes)):
        raise ValidationError(param_name, f"'{param_name}' must be a collection, not a string")
    items = list(items)
    if not items:
        raise ValidationError(param_name, f"'{param_name}' must contain at least one element")
    return items


def _segment(value: str) -> str:
    return quote(value, safe="")


class DaprClient:
    """Async client for the Dapr sidecar HTTP API.

    The client borrows connections from a ConnectionPool shared across the
    process; closing the client never closes the pool.

    Example:
        async with DaprClient() as dapr:
            await dapr.save_state("statestore", "order-1", {"status": "pending"})
            order = await dapr.get_state("statestore", "order-1")
    """

    def __init__(
        self,
        options: ClientOptions | None = None,
        *,
        pool: ConnectionPool | None = None,
    ):
        """Initialize the client.

        Args:
            options: Client options. Resolved from the environment and .env
                file when None.
            pool: Connection pool to use. Defaults to the process-wide pool.

        Raises:
            ConfigurationError: If the endpoint is not an absolute http(s) URI.
        """
        self.options = options or resolve_options()
        self._transport = HttpTransport(self.options, pool=pool)
        self._closed = False

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Release instance state. The shared connection pool stays open."""
        self._closed = True

    async def __aenter__(self) -> "DaprClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # --------------- Service invocation ---------------

    async def invoke_method(
        self,
        app_id: str,
        method_name: str,
        request: Any = None,
        *,
        response_type: Any = Any,
    ) -> Any:
        """Invoke a method on another Dapr application.

        POSTs ``request`` as JSON when given, otherwise issues a GET.

        Args:
            app_id: Target application ID.
            method_name: Method (route) on the target application.
            request: Optional request body.
            response_type: Type to decode the response into.

        Returns:
            The decoded response, or None if the response body is empty.
        """
        _require(app_id, "app_id")
        _require(method_name, "method_name")

        # Method names may contain slashes for nested routes
        method = quote(method_name.lstrip("/"), safe="/")
        path = f"/{API_VERSION}/invoke/{_segment(app_id)}/method/{method}"
        if request is not None:
            response = await self._transport.post(path, request)
        else:
            response = await self._transport.get(path)
        return decode(response.content, response_type)

    # --------------- State management ---------------

    async def save_state(
        self,
        store_name: str,
        key: str,
        value: Any,
        options: StateOptions | None = None,
    ) -> None:
        """Save a single value.

        Args:
            store_name: Name of the state store component.
            key: State key.
            value: Value to save.
            options: Optional concurrency/consistency/etag/TTL options.
        """
        _require(store_name, "store_name")
        _require(key, "key")

        payload = [SaveStateRequest.from_item(key, value, options).to_wire()]
        await self._transport.post(self._state_path(store_name), payload)

    async def get_state(
        self,
        store_name: str,
        key: str,
        *,
        consistency: ConsistencyMode | None = None,
        response_type: Any = Any,
    ) -> Any:
        """Read a single value.

        Args:
            store_name: Name of the state store component.
            key: State key.
            consistency: Optional read consistency.
            response_type: Type to decode the value into.

        Returns:
            The decoded value, or None if the key does not exist.
        """
        value, _ = await self.get_state_and_etag(
            store_name, key, consistency=consistency, response_type=response_type
        )
        return value

    async def get_state_and_etag(
        self,
        store_name: str,
        key: str,
        *,
        consistency: ConsistencyMode | None = None,
        response_type: Any = Any,
    ) -> tuple[Any, str | None]:
        """Read a single value together with its ETag.

        Returns:
            Tuple of (value or None, etag or None).
        """
        _require(store_name, "store_name")
        _require(key, "key")

        params = {"consistency": consistency_to_wire(consistency)}
        response = await self._transport.get(self._state_path(store_name, key), params=params)
        return decode(response.content, response_type), response.headers.get("etag")

    async def delete_state(
        self,
        store_name: str,
        key: str,
        options: StateOptions | None = None,
    ) -> None:
        """Delete a single key.

        Args:
            store_name: Name of the state store component.
            key: State key.
            options: Optional concurrency/consistency/etag options.
        """
        _require(store_name, "store_name")
        _require(key, "key")

        params: dict[str, str | None] = {}
        headers: dict[str, str] = {}
        if options is not None:
            params["concurrency"] = concurrency_to_wire(options.concurrency)
            params["consistency"] = consistency_to_wire(options.consistency)
            if options.etag:
                headers["If-Match"] = options.etag

        await self._transport.delete(
            self._state_path(store_name, key), params=params, headers=headers
        )

    async def save_bulk_state(self, store_name: str, items: Iterable[StateItem]) -> None:
        """Save several values in one request.

        Args:
            store_name: Name of the state store component.
            items: Items to save; must not be empty.
        """
        _require(store_name, "store_name")
        items = _require_items(items, "items")
        for item in items:
            _require(item.key, "key")

        payload = [SaveStateRequest.from_state_item(item).to_wire() for item in items]
        await self._transport.post(self._state_path(store_name), payload)

    async def get_bulk_state(
        self,
        store_name: str,
        keys: Iterable[str],
        *,
        parallelism: int | None = None,
        response_type: Any = Any,
    ) -> list[BulkStateItem]:
        """Read several keys in one request.

        Items the sidecar could not read are returned with ``error`` set
        instead of raising.

        Args:
            store_name: Name of the state store component.
            keys: Keys to read; must not be empty.
            parallelism: Optional number of parallel reads in the sidecar.
            response_type: Type to decode each item's value into.

        Returns:
            One BulkStateItem per item returned by the sidecar.
        """
        _require(store_name, "store_name")
        keys = _require_items(keys, "keys")
        for key in keys:
            _require(key, "key")

        body = BulkGetRequest(keys=keys, parallelism=parallelism).to_wire()
        response = await self._transport.post(self._state_path(store_name, "bulk"), body)

        if not response.content or not response.content.strip():
            return []

        # Decode the envelope first; each item's data is heterogeneous JSON
        # and is validated into response_type separately.
        raw_items = _BULK_RESPONSE.validate_json(response.content)
        adapter = TypeAdapter(response_type)
        items: list[BulkStateItem] = []
        for raw in raw_items:
            value = None
            if raw.data is not None and not raw.error:
                value = adapter.validate_python(raw.data)
            items.append(BulkStateItem(key=raw.key, value=value, etag=raw.etag, error=raw.error))

        failed = sum(1 for item in items if item.has_error)
        if failed:
            logger.debug(f"Bulk get on '{store_name}' returned {failed} item error(s)")
        return items

    async def delete_bulk_state(self, store_name: str, keys: Iterable[str]) -> None:
        """Delete several keys in one request.

        Args:
            store_name: Name of the state store component.
            keys: Keys to delete; must not be empty.
        """
        _require(store_name, "store_name")
        keys = _require_items(keys, "keys")
        for key in keys:
            _require(key, "key")

        payload = [DeleteStateRequest(key=key).to_wire() for key in keys]
        await self._transport.post(self._state_path(store_name), payload)

    async def execute_state_transaction(
        self,
        store_name: str,
        operations: Iterable[TransactionOperation],
        *,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Execute upserts and deletes as one atomic transaction.

        Operations are sent in the order given. Atomicity is provided by the
        state store; stores without transaction support reject the request
        with a non-2xx status.

        Args:
            store_name: Name of the state store component.
            operations: Operations to apply; must not be empty.
            metadata: Optional transaction metadata.
        """
        _require(store_name, "store_name")
        operations = _require_items(operations, "operations")
        for op in operations:
            _require(op.key, "key")

        body = StateTransactionRequest.from_operations(operations, metadata).to_wire()
        await self._transport.post(self._state_path(store_name, "transaction"), body)

    @staticmethod
    def _state_path(store_name: str, suffix: str | None = None) -> str:
        path = f"/{API_VERSION}/state/{_segment(store_name)}"
        if suffix is not None:
            path = f"{path}/{_segment(suffix)}"
        return path
