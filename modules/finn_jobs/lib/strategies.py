from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")


def first_success(strategies: Iterable[Callable[..., T | None]], *args: Any, **kwargs: Any) -> T | None:
    """
    Call each strategy with the same arguments, in order, and return the first
    truthy result (non-empty string/list/tuple, object). None if all come up empty.

    Strategies are expected to be pure: they only look at their arguments.
    """
    for strategy in strategies:
        result = strategy(*args, **kwargs)
        if result:
            return result
    return None
