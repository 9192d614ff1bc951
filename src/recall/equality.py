"""Argument equality and pending-result checks."""

import inspect
import math
from collections.abc import Mapping, Sequence
from typing import Any


# Immutable scalars compare by value, everything else by identity
_VALUE_TYPES = (int, float, complex, str, bytes, type(None))


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _same(new: Any, last: Any) -> bool:
    if new is last:
        return True
    if type(new) is not type(last) or not isinstance(new, _VALUE_TYPES):
        return False
    # Two NaNs count as the same input even though NaN != NaN
    return bool(new == last) or (_is_nan(new) and _is_nan(last))


def are_inputs_equal(new_args: Sequence[Any], last_args: Sequence[Any]) -> bool:
    """Shallow per-position identity check of two argument lists."""
    if len(new_args) != len(last_args):
        return False

    return all(_same(new, last) for new, last in zip(new_args, last_args))


def are_keywords_equal(
    new_kwargs: Mapping[str, Any], last_kwargs: Mapping[str, Any]
) -> bool:
    """Same names, and each value passes the positional identity rule."""
    if new_kwargs.keys() != last_kwargs.keys():
        return False

    return all(_same(value, last_kwargs[name]) for name, value in new_kwargs.items())


def is_pending(value: Any) -> bool:
    """Whether a result is an asynchronous value still to be awaited."""
    return inspect.isawaitable(value)
