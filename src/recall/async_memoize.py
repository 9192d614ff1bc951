"""Keyed memoization for coroutine functions.

The pending result is stored right away, so concurrent callers with the same
key share one future. If that future fails, its entry is dropped and the next
call runs the function again. With ``cache_rejection=True`` the failed future
stays stored and is replayed instead.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Hashable
from typing import Any, TypeVar

from recall.adapters.base import StorageAdapter
from recall.equality import is_pending
from recall.keyed import KeyedMemoizedFunction
from recall.memoize import as_future, has_failed, invoke
from recall.types import Duration, KeyFn

logger = logging.getLogger(__name__)

R = TypeVar("R")


class AsyncMemoizedFunction(KeyedMemoizedFunction[R]):
    """Keyed memoizer that forgets futures which fail."""

    def __init__(
        self,
        fn: Callable[..., R],
        *,
        cache: StorageAdapter | None = None,
        cache_key: KeyFn | None = None,
        max_age: Duration | None = None,
        cache_rejection: bool = False,
    ) -> None:
        super().__init__(fn, cache=cache, cache_key=cache_key, max_age=max_age)
        self._cache_rejection = cache_rejection

    def _compute(
        self,
        key: Hashable,
        receiver: Any,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        result: Any = invoke(self._fn, receiver, args, kwargs)
        if not is_pending(result):
            self._store(key, result)
            return result

        future = as_future(result, self._name)
        self._store(key, future)
        if not self._cache_rejection:
            future.add_done_callback(functools.partial(self._on_settled, key))
        return future

    def _on_settled(self, key: Hashable, future: asyncio.Future[Any]) -> None:
        if not has_failed(future):
            return

        # Only drop the entry if it still holds this future
        entry = self._cache.get(key) if self._cache.has(key) else None
        if entry is not None and entry.value is future:
            logger.debug("Pending result of %s failed, evicting key %r", self._name, key)
            self._cache.delete(key)


def memoize_async(
    fn: Callable[..., R] | None = None,
    *,
    cache: StorageAdapter | None = None,
    cache_key: KeyFn | None = None,
    max_age: Duration | None = None,
    cache_rejection: bool = False,
) -> Any:
    """Memoize a coroutine function by key, without caching failures.

    Usage:
        @memoize_async(max_age="30s")
        async def get_user(id: str) -> User:
            return await fetch_user(id)

        user = await get_user("123")

    Args:
        fn: Function to wrap
        cache: Store for entries (default: a private MemoryAdapter)
        cache_key: Derives the key from the positional arguments
            (default: the first argument)
        max_age: How long an entry stays valid (default: forever)
        cache_rejection: Keep and replay futures that failed

    Returns:
        An AsyncMemoizedFunction, or a decorator when fn is omitted
    """

    def decorator(fn: Callable[..., R]) -> AsyncMemoizedFunction[R]:
        return AsyncMemoizedFunction(
            fn,
            cache=cache,
            cache_key=cache_key,
            max_age=max_age,
            cache_rejection=cache_rejection,
        )

    if fn is None:
        return decorator
    return decorator(fn)


__all__ = ["AsyncMemoizedFunction", "memoize_async"]
