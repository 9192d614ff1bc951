"""In-memory storage adapter."""

from collections import OrderedDict
from collections.abc import Hashable, Iterator

from recall.types import StoreEntry


class MemoryAdapter:
    """In-memory storage adapter with optional LRU eviction."""

    def __init__(self, max_items: int | None = None) -> None:
        self._cache: OrderedDict[Hashable, StoreEntry[object]] = OrderedDict()
        self._max_items = max_items

    def get(self, key: Hashable) -> StoreEntry[object] | None:
        """Get a store entry by key."""
        entry = self._cache.get(key)
        if entry is not None:
            self._cache.move_to_end(key)  # LRU touch
        return entry

    def set(self, key: Hashable, entry: StoreEntry[object]) -> None:
        """Store an entry."""
        self._cache[key] = entry
        self._cache.move_to_end(key)
        if self._max_items and len(self._cache) > self._max_items:
            self._cache.popitem(last=False)

    def has(self, key: Hashable) -> bool:
        """Check whether an entry exists for key."""
        return key in self._cache

    def delete(self, key: Hashable) -> None:
        """Delete an entry."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all entries."""
        self._cache.clear()

    def items(self) -> Iterator[tuple[Hashable, StoreEntry[object]]]:
        """Iterate over a snapshot of (key, entry) pairs."""
        return iter(list(self._cache.items()))

    def __len__(self) -> int:
        return len(self._cache)
