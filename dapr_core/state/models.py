"""
State management value objects.

These are the caller-facing types for state operations:
- ConcurrencyMode / ConsistencyMode: write and read guarantees
- StateOptions: per-operation options (concurrency, consistency, etag, TTL)
- StateItem: one key/value pair for saves
- BulkStateItem: one entry of a bulk read, possibly carrying an error
- TransactionOperation: one upsert or delete inside a transaction

The enum values are the wire vocabulary; the ``*_to_wire`` functions are the
only place they are turned into strings for the sidecar.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

V = TypeVar("V")


class ConcurrencyMode(str, Enum):
    """How concurrent writes to the same key are resolved."""

    FIRST_WRITE = "first-write"
    LAST_WRITE = "last-write"


class ConsistencyMode(str, Enum):
    """Replication consistency requested for a read or write."""

    STRONG = "strong"
    EVENTUAL = "eventual"


class StateOperationType(str, Enum):
    """Kind of operation inside a state transaction."""

    UPSERT = "upsert"
    DELETE = "delete"


def concurrency_to_wire(mode: ConcurrencyMode | str | None) -> str | None:
    """Map a concurrency mode to its wire string ("first-write"/"last-write")."""
    if mode is None:
        return None
    return ConcurrencyMode(mode).value


def consistency_to_wire(mode: ConsistencyMode | str | None) -> str | None:
    """Map a consistency mode to its wire string ("strong"/"eventual")."""
    if mode is None:
        return None
    return ConsistencyMode(mode).value


def operation_to_wire(kind: StateOperationType | str) -> str:
    """Map a transaction operation kind to its wire string ("upsert"/"delete")."""
    return StateOperationType(kind).value


class StateOptions(BaseModel):
    """Options for a single state operation.

    Attributes:
        concurrency: First-write or last-write semantics.
        consistency: Strong or eventual consistency.
        etag: Version token from a previous read, for optimistic concurrency.
        ttl_seconds: Expire the value after this many seconds.
    """

    concurrency: ConcurrencyMode | None = None
    consistency: ConsistencyMode | None = None
    etag: str | None = None
    ttl_seconds: int | None = Field(default=None, gt=0)

    model_config = {"frozen": True}

    @property
    def has_operation_options(self) -> bool:
        """True if concurrency or consistency was specified."""
        return self.concurrency is not None or self.consistency is not None


class StateItem(BaseModel, Generic[V]):
    """A key/value pair to save.

    Attributes:
        key: State key.
        value: Value to store; serialized as JSON.
        etag: Optional version token for optimistic concurrency.
        options: Optional per-item options.
    """

    key: str
    value: V
    etag: str | None = None
    options: StateOptions | None = None


class BulkStateItem(BaseModel, Generic[V]):
    """One entry returned by a bulk state read.

    Attributes:
        key: State key.
        value: Decoded value, or None if the key is absent or failed.
        etag: Version token, if the store returned one.
        error: Per-key error reported by the sidecar.
    """

    key: str
    value: V | None = None
    etag: str | None = None
    error: str | None = None

    @property
    def has_error(self) -> bool:
        return bool(self.error)


class TransactionOperation(BaseModel):
    """One operation inside a state transaction.

    Attributes:
        kind: Upsert or delete.
        key: State key.
        value: Value to write (required for upserts).
        etag: Optional version token.
    """

    kind: StateOperationType
    key: str
    value: Any = None
    etag: str | None = None

    @model_validator(mode="after")
    def _upsert_requires_value(self) -> "TransactionOperation":
        if self.kind == StateOperationType.UPSERT and self.value is None:
            raise ValueError(f"Upsert of '{self.key}' requires a value")
        return self

    @classmethod
    def upsert(cls, key: str, value: Any, etag: str | None = None) -> "TransactionOperation":
        """Create an upsert operation."""
        return cls(kind=StateOperationType.UPSERT, key=key, value=value, etag=etag)

    @classmethod
    def delete(cls, key: str, etag: str | None = None) -> "TransactionOperation":
        """Create a delete operation."""
        return cls(kind=StateOperationType.DELETE, key=key, etag=etag)
