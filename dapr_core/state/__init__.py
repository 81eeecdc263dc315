"""
State management types and wire mapping.
"""

from .models import (
    BulkStateItem,
    ConcurrencyMode,
    ConsistencyMode,
    StateItem,
    StateOperationType,
    StateOptions,
    TransactionOperation,
    concurrency_to_wire,
    consistency_to_wire,
    operation_to_wire,
)

__all__ = [
    "BulkStateItem",
    "ConcurrencyMode",
    "ConsistencyMode",
    "StateItem",
    "StateOperationType",
    "StateOptions",
    "TransactionOperation",
    "concurrency_to_wire",
    "consistency_to_wire",
    "operation_to_wire",
]
