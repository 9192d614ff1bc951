"""Base adapter protocols for keyed result stores."""

from collections.abc import Hashable, Iterable
from typing import Protocol, runtime_checkable

from recall.types import StoreEntry


@runtime_checkable
class StorageAdapter(Protocol):
    """Store interface used by the keyed memoizer."""

    def get(self, key: Hashable) -> StoreEntry[object] | None:
        """Get a store entry by key."""
        ...

    def set(self, key: Hashable, entry: StoreEntry[object]) -> None:
        """Store an entry."""
        ...

    def has(self, key: Hashable) -> bool:
        """Check whether an entry exists for key."""
        ...

    def delete(self, key: Hashable) -> None:
        """Delete an entry."""
        ...

    def clear(self) -> None:
        """Clear all entries."""
        ...


@runtime_checkable
class ExpiringStorageAdapter(StorageAdapter, Protocol):
    """Store that can be swept for expired entries."""

    def items(self) -> Iterable[tuple[Hashable, StoreEntry[object]]]:
        """Iterate over (key, entry) pairs."""
        ...
