"""Shared pytest fixtures."""

from collections.abc import Callable

import pytest

from recall import MemoryAdapter


@pytest.fixture
def adapter() -> MemoryAdapter:
    """Create a fresh MemoryAdapter for each test."""
    return MemoryAdapter()


class CallCounter:
    """Wraps a function and counts how often it is called."""

    def __init__(self, fn: Callable[..., object]) -> None:
        self.fn = fn
        self.calls: list[tuple[tuple[object, ...], dict[str, object]]] = []

    @property
    def count(self) -> int:
        return len(self.calls)

    def __call__(self, *args: object, **kwargs: object) -> object:
        self.calls.append((args, kwargs))
        return self.fn(*args, **kwargs)


@pytest.fixture
def counted() -> Callable[[Callable[..., object]], CallCounter]:
    """Factory for call-counting wrappers."""
    return CallCounter
