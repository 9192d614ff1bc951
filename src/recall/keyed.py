"""Keyed memoization.

Caches one result per key, where the key is derived from the positional
arguments. By default the key is the first argument as-is, so calls that
differ only in later arguments share an entry:

    @memoize_keyed(max_age="10m")
    def fetch_profile(user_id: str, verbose: bool = False) -> dict:
        ...

    fetch_profile("42")
    fetch_profile("42", True)  # cache hit, key is "42"

Pass ``cache_key`` to key on more than the first argument.

The default key keeps ``True`` apart from ``1``, treats every NaN as one key
and keys unhashable objects such as lists or dicts by identity.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import math
import weakref
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from recall.adapters.base import ExpiringStorageAdapter, StorageAdapter
from recall.adapters.memory import MemoryAdapter
from recall.duration import now_ms, parse_max_age
from recall.equality import is_pending
from recall.memoize import UNBOUND, BoundMemoized, as_future, describe, invoke
from recall.types import Duration, KeyFn, StoreEntry

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Wrapped function -> its store, without keeping the function alive
_stores: weakref.WeakKeyDictionary[Any, StorageAdapter] = weakref.WeakKeyDictionary()


class IdentityKey:
    """Store key for an unhashable object, matched by identity."""

    __slots__ = ("obj",)

    def __init__(self, obj: Any) -> None:
        self.obj = obj

    def __hash__(self) -> int:
        return id(self.obj)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, IdentityKey) and other.obj is self.obj

    def __repr__(self) -> str:
        return f"IdentityKey({self.obj!r})"


@dataclass(frozen=True, slots=True)
class TypedKey:
    """Store key that keeps bools apart from the ints they hash like."""

    kind: type
    value: Hashable


# Every NaN maps to one key, as NaN arguments count as the same input
NAN_KEY = TypedKey(float, "nan")


def default_cache_key(args: tuple[Any, ...]) -> Hashable:
    """Key on the first positional argument, None when there is none.

    Unhashable objects are keyed by identity.
    """
    if not args:
        return None

    value = args[0]
    if isinstance(value, bool):
        return TypedKey(bool, value)
    if isinstance(value, float) and math.isnan(value):
        return NAN_KEY
    try:
        hash(value)
    except TypeError:
        return IdentityKey(value)
    return value


def is_expired(entry: StoreEntry[Any], now: int) -> bool:
    """Check if entry has passed its expiry."""
    return entry.expires_at is not None and now >= entry.expires_at


def sweep_expired(store: ExpiringStorageAdapter, now: int | None = None) -> int:
    """Delete every expired entry from store. Returns how many were removed."""
    if now is None:
        now = now_ms()

    expired = [key for key, entry in store.items() if is_expired(entry, now)]
    for key in expired:
        store.delete(key)
    return len(expired)


class KeyedMemoizedFunction(Generic[R]):
    """Callable that caches one result per derived key."""

    def __init__(
        self,
        fn: Callable[..., R],
        *,
        cache: StorageAdapter | None = None,
        cache_key: KeyFn | None = None,
        max_age: Duration | None = None,
    ) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self._name = describe(fn)
        self._cache: StorageAdapter = cache if cache is not None else MemoryAdapter()
        self._cache_key = cache_key or default_cache_key
        self._max_age = parse_max_age(max_age)
        self._next_sweep_at: int | None = None

        if self._max_age is not None and not isinstance(
            self._cache, ExpiringStorageAdapter
        ):
            raise TypeError(
                f"max_age needs a store that supports items(), "
                f"got {type(self._cache).__name__}"
            )

        _stores[self] = self._cache

    def __call__(self, *args: Any, **kwargs: Any) -> R:
        return self._invoke(UNBOUND, args, kwargs)

    def call(self, receiver: Any, /, *args: Any, **kwargs: Any) -> R:
        """Call with an explicit receiver, passed as the first argument."""
        return self._invoke(receiver, args, kwargs)

    def __get__(self, obj: Any, owner: type | None = None) -> Any:
        if obj is None:
            return self
        return BoundMemoized(self, obj)

    def __repr__(self) -> str:
        return f"<memoized {self._name}>"

    @property
    def cache(self) -> StorageAdapter:
        """The store holding this function's entries."""
        return self._cache

    def cache_clear(self) -> None:
        """Forget every cached result."""
        self._cache.clear()

    def _invoke(self, receiver: Any, args: tuple[Any, ...], kwargs: dict[str, Any]) -> R:
        key = self._cache_key(args)
        now = now_ms()
        self._sweep_if_due(now)

        if self._cache.has(key):
            entry = self._cache.get(key)
            if entry is not None and not is_expired(entry, now):
                return entry.value  # type: ignore[return-value]
            self._cache.delete(key)

        logger.debug("Cache miss for %s, key %r", self._name, key)
        return self._compute(key, receiver, args, kwargs)

    def _compute(
        self,
        key: Hashable,
        receiver: Any,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        result: Any = invoke(self._fn, receiver, args, kwargs)
        if is_pending(result):
            result = as_future(result, self._name)
        self._store(key, result)
        return result

    def _store(self, key: Hashable, value: Any) -> None:
        expires_at = now_ms() + self._max_age if self._max_age is not None else None
        entry: StoreEntry[object] = StoreEntry(value=value, expires_at=expires_at)
        self._cache.set(key, entry)
        if self._max_age is not None:
            self._schedule_expiry(key, entry, self._max_age)

    def _schedule_expiry(self, key: Hashable, entry: StoreEntry[object], delay: int) -> None:
        # Without a running loop, expiry falls back to lookups and call-driven sweeps
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.call_later(delay / 1000, self._expire, key, entry)

    def _expire(self, key: Hashable, entry: StoreEntry[object]) -> None:
        # The key may have been cleared or replaced since
        if self._cache.has(key) and self._cache.get(key) is entry:
            logger.debug("Expired key %r for %s", key, self._name)
            self._cache.delete(key)

    def _sweep_if_due(self, now: int) -> None:
        if self._max_age is None:
            return
        if self._next_sweep_at is not None and now < self._next_sweep_at:
            return

        self._next_sweep_at = now + max(self._max_age, 1)
        removed = sweep_expired(self._cache, now)  # type: ignore[arg-type]
        if removed:
            logger.debug("Swept %d expired entries for %s", removed, self._name)


def memoize_keyed(
    fn: Callable[..., R] | None = None,
    *,
    cache: StorageAdapter | None = None,
    cache_key: KeyFn | None = None,
    max_age: Duration | None = None,
) -> Any:
    """Memoize a function by a key derived from its arguments.

    Args:
        fn: Function to wrap
        cache: Store for entries (default: a private MemoryAdapter)
        cache_key: Derives the key from the positional arguments
            (default: the first argument)
        max_age: How long an entry stays valid (default: forever)

    Returns:
        A KeyedMemoizedFunction, or a decorator when fn is omitted
    """

    def decorator(fn: Callable[..., R]) -> KeyedMemoizedFunction[R]:
        return KeyedMemoizedFunction(
            fn, cache=cache, cache_key=cache_key, max_age=max_age
        )

    if fn is None:
        return decorator
    return decorator(fn)


def clear(fn: Any) -> None:
    """Clear every cached result of a function from memoize_keyed/memoize_async.

    Raises:
        TypeError: fn was not produced by either factory
    """
    if isinstance(fn, BoundMemoized):
        fn = fn.__func__

    try:
        store = _stores[fn]
    except (KeyError, TypeError):
        raise TypeError(f"{fn!r} is not a memoized function") from None

    store.clear()


__all__ = [
    "NAN_KEY",
    "IdentityKey",
    "KeyedMemoizedFunction",
    "TypedKey",
    "clear",
    "default_cache_key",
    "memoize_keyed",
    "sweep_expired",
]
