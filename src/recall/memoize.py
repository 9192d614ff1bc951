"""Single-slot memoization.

A memoized function remembers the receiver, arguments and result of its
latest successful call. The cached result is returned while the next call
uses the same receiver and equal arguments, until ``max_age`` elapses.

Usage:
    @memoize(max_age="5s")
    def load_settings(path: str) -> dict:
        ...

Awaitable results are cached as a shared future, so concurrent callers await
the same handle. A future that fails marks the slot stale, unless a later
call has already replaced it.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from recall.duration import now_ms, parse_max_age
from recall.equality import are_inputs_equal, are_keywords_equal, is_pending
from recall.types import Duration, EqualityFn

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Receiver marker for plain calls, distinct from an explicit None receiver
UNBOUND: Any = object()


def describe(fn: Callable[..., Any]) -> str:
    """Readable name of a wrapped callable for log messages."""
    return getattr(fn, "__qualname__", None) or repr(fn)


def as_future(value: Awaitable[Any], name: str) -> asyncio.Future[Any]:
    """Wrap an awaitable so it can be awaited more than once.

    Raises:
        RuntimeError: value is not a future and no event loop is running
    """
    if isinstance(value, asyncio.Future):
        return value

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        if inspect.iscoroutine(value):
            value.close()
        raise RuntimeError(
            f"{name} returned an awaitable outside a running event loop"
        ) from None
    return asyncio.ensure_future(value)


def has_failed(future: asyncio.Future[Any]) -> bool:
    """Whether a settled future was cancelled or raised."""
    return future.cancelled() or future.exception() is not None


def invoke(
    fn: Callable[..., R],
    receiver: Any,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> R:
    """Call fn, passing the receiver first when there is one."""
    if receiver is UNBOUND:
        return fn(*args, **kwargs)
    return fn(receiver, *args, **kwargs)


class BoundMemoized:
    """A memoized function bound to a receiver."""

    __slots__ = ("__func__", "__self__")

    def __init__(self, memoized: Any, receiver: Any) -> None:
        self.__func__ = memoized
        self.__self__ = receiver

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.__func__._invoke(self.__self__, args, kwargs)

    def __repr__(self) -> str:
        return f"<bound {self.__func__!r} of {self.__self__!r}>"


class MemoizedFunction(Generic[R]):
    """Callable that caches the result of its most recent call."""

    def __init__(
        self,
        fn: Callable[..., R],
        *,
        is_equal: EqualityFn | None = None,
        max_age: Duration | None = None,
    ) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self._name = describe(fn)
        self._is_equal = is_equal
        self._max_age = parse_max_age(max_age)

        self._last_receiver: Any = UNBOUND
        self._last_args: tuple[Any, ...] = ()
        self._last_kwargs: dict[str, Any] = {}
        self._last_result: Any = None
        self._called_once = False
        self._stale = False
        self._stale_at: int | None = None

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
    def stale(self) -> bool:
        """Whether the cached result may no longer be returned."""
        if self._stale:
            return True
        return self._stale_at is not None and now_ms() >= self._stale_at

    def cache_clear(self) -> None:
        """Forget the cached call."""
        self._called_once = False
        self._last_receiver = UNBOUND
        self._last_args = ()
        self._last_kwargs = {}
        self._last_result = None
        self._stale = False
        self._stale_at = None

    def _arguments_equal(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> bool:
        if not are_keywords_equal(kwargs, self._last_kwargs):
            return False
        if self._is_equal is not None:
            return bool(self._is_equal(args, self._last_args))
        return are_inputs_equal(args, self._last_args)

    def _invoke(self, receiver: Any, args: tuple[Any, ...], kwargs: dict[str, Any]) -> R:
        if (
            self._called_once
            and not self.stale
            and receiver is self._last_receiver
            and self._arguments_equal(args, kwargs)
        ):
            return self._last_result  # type: ignore[no-any-return]

        logger.debug("Cache miss for %s", self._name)

        # Nothing is committed unless the call returns
        result: Any = invoke(self._fn, receiver, args, kwargs)
        if is_pending(result):
            result = as_future(result, self._name)

        self._last_result = result
        self._last_receiver = receiver
        self._last_args = args
        self._last_kwargs = kwargs
        self._called_once = True
        self._stale = False
        self._stale_at = now_ms() + self._max_age if self._max_age is not None else None

        if isinstance(result, asyncio.Future):
            result.add_done_callback(self._on_settled)

        return result  # type: ignore[no-any-return]

    def _on_settled(self, future: asyncio.Future[Any]) -> None:
        if not has_failed(future):
            return
        # A later call may already hold the slot
        if future is self._last_result:
            logger.debug("Pending result of %s failed, marking stale", self._name)
            self._stale = True


def memoize(
    fn: Callable[..., R] | None = None,
    *,
    is_equal: EqualityFn | None = None,
    max_age: Duration | None = None,
) -> Any:
    """Memoize the latest call of a function.

    Works as ``memoize(fn)``, ``@memoize`` or ``@memoize(max_age="1m")``.

    Args:
        fn: Function to wrap
        is_equal: Replaces the positional argument comparison
        max_age: How long a result stays valid (default: forever)

    Returns:
        A MemoizedFunction, or a decorator when fn is omitted
    """

    def decorator(fn: Callable[..., R]) -> MemoizedFunction[R]:
        return MemoizedFunction(fn, is_equal=is_equal, max_age=max_age)

    if fn is None:
        return decorator
    return decorator(fn)


__all__ = ["BoundMemoized", "MemoizedFunction", "memoize"]
