"""Storage adapters for recall keyed memoization."""

from recall.adapters.base import (
    ExpiringStorageAdapter,
    StorageAdapter,
)
from recall.adapters.memory import MemoryAdapter

__all__ = [
    "ExpiringStorageAdapter",
    "MemoryAdapter",
    "StorageAdapter",
]
