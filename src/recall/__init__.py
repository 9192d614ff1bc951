"""recall - Function result memoization with staleness and safe async handling."""

# Adapters
from recall.adapters import (
    ExpiringStorageAdapter,
    MemoryAdapter,
    StorageAdapter,
)
from recall.async_memoize import AsyncMemoizedFunction, memoize_async

# Duration parsing
from recall.duration import parse_duration

# Equality helpers
from recall.equality import are_inputs_equal, is_pending

# Keyed memoizer
from recall.keyed import KeyedMemoizedFunction, clear, memoize_keyed, sweep_expired

# Single-slot memoizer
from recall.memoize import MemoizedFunction, memoize

# Core types
from recall.types import (
    Duration,
    EqualityFn,
    KeyFn,
    StoreEntry,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncMemoizedFunction",
    "Duration",
    "EqualityFn",
    "ExpiringStorageAdapter",
    "KeyFn",
    "KeyedMemoizedFunction",
    "MemoizedFunction",
    "MemoryAdapter",
    "StorageAdapter",
    "StoreEntry",
    "are_inputs_equal",
    "clear",
    "is_pending",
    "memoize",
    "memoize_async",
    "memoize_keyed",
    "parse_duration",
    "sweep_expired",
]
