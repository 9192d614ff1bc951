"""Core types for recall memoization library."""

from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class StoreEntry(Generic[T]):
    """A stored result with its expiry."""

    value: T
    expires_at: int | None  # Unix timestamp ms, None = never


# Compares the new positional arguments against the last ones
EqualityFn = Callable[[Sequence[Any], Sequence[Any]], bool]

# Derives a store key from the positional arguments
KeyFn = Callable[[tuple[Any, ...]], Hashable]

# Duration type alias
Duration = str | int  # "30s", "5m", "2h", "1d" or milliseconds
