"""
Wire shapes for the sidecar state API.

Each request model renders itself as the JSON structure the sidecar
expects (``to_wire``). Optional members are omitted rather than sent
as null, except ``value`` on saves, which is always present.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic_core import to_jsonable_python

from .models import (
    StateItem,
    StateOperationType,
    StateOptions,
    TransactionOperation,
    concurrency_to_wire,
    consistency_to_wire,
    operation_to_wire,
)

TTL_METADATA_KEY = "ttlInSeconds"


class WireModel(BaseModel):
    """Request shape rendered with unset (None) members left out."""

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StateOperationOptions(WireModel):
    concurrency: str | None = None
    consistency: str | None = None

    @classmethod
    def from_options(cls, options: StateOptions | None) -> "StateOperationOptions | None":
        """Build wire options, or None when neither mode was specified."""
        if options is None or not options.has_operation_options:
            return None
        return cls(
            concurrency=concurrency_to_wire(options.concurrency),
            consistency=consistency_to_wire(options.consistency),
        )


def ttl_metadata(options: StateOptions | None) -> dict[str, str] | None:
    """Metadata carrying the TTL as a string, or None if no TTL was set."""
    if options is None or options.ttl_seconds is None:
        return None
    return {TTL_METADATA_KEY: str(options.ttl_seconds)}


class SaveStateRequest(WireModel):
    """One element of the save-state array. ``value`` is sent even when None."""

    key: str
    value: Any = Field(default=None, exclude=True)
    etag: str | None = None
    options: StateOperationOptions | None = None
    metadata: dict[str, str] | None = None

    @classmethod
    def from_item(
        cls, key: str, value: Any, options: StateOptions | None = None, etag: str | None = None
    ) -> "SaveStateRequest":
        """Build a save request; an explicit etag wins over ``options.etag``."""
        return cls(
            key=key,
            value=value,
            etag=etag if etag is not None else (options.etag if options else None),
            options=StateOperationOptions.from_options(options),
            metadata=ttl_metadata(options),
        )

    @classmethod
    def from_state_item(cls, item: StateItem) -> "SaveStateRequest":
        return cls.from_item(item.key, item.value, item.options, item.etag)

    def to_wire(self) -> dict[str, Any]:
        data = super().to_wire()
        data["value"] = to_jsonable_python(self.value, by_alias=True)
        return data


class DeleteStateRequest(WireModel):
    """One element of the bulk-delete array (key only, no value)."""

    key: str
    etag: str | None = None


class BulkGetRequest(WireModel):
    keys: list[str]
    parallelism: int | None = None


class BulkStateItemResponse(BaseModel):
    """One entry of the bulk-get response; ``data`` is still untyped JSON."""

    key: str
    data: Any = None
    etag: str | None = None
    error: str | None = None


class TransactionRequest(WireModel):
    key: str
    value: Any = Field(default=None, exclude=True)
    etag: str | None = None

    def to_wire(self, include_value: bool = True) -> dict[str, Any]:
        data = super().to_wire()
        if include_value:
            data["value"] = to_jsonable_python(self.value, by_alias=True)
        return data


class TransactionOperationRequest(WireModel):
    operation: str
    request: TransactionRequest

    @classmethod
    def from_operation(cls, op: TransactionOperation) -> "TransactionOperationRequest":
        return cls(
            operation=operation_to_wire(op.kind),
            request=TransactionRequest(key=op.key, value=op.value, etag=op.etag),
        )

    def to_wire(self) -> dict[str, Any]:
        # Deletes carry no value
        include_value = self.operation == operation_to_wire(StateOperationType.UPSERT)
        return {
            "operation": self.operation,
            "request": self.request.to_wire(include_value=include_value),
        }


class StateTransactionRequest(WireModel):
    """Body of POST /state/{store}/transaction. Operation order is preserved."""

    operations: list[TransactionOperationRequest]
    metadata: dict[str, str] | None = None

    @classmethod
    def from_operations(
        cls,
        operations: list[TransactionOperation],
        metadata: dict[str, str] | None = None,
    ) -> "StateTransactionRequest":
        return cls(
            operations=[TransactionOperationRequest.from_operation(op) for op in operations],
            metadata=metadata or None,
        )

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude={"operations"}, exclude_none=True)
        data["operations"] = [op.to_wire() for op in self.operations]
        return data
