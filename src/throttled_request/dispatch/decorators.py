"""Decorator front-end for the dispatcher."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from throttled_request.dispatch.dispatcher import RateLimitedDispatcher

T = TypeVar("T")


def throttled(
    dispatcher: RateLimitedDispatcher,
    on_admit: Callable[[], None] | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator to route every call of an async function through a dispatcher.

    Args:
        dispatcher: Dispatcher that admits the calls
        on_admit: Optional callback invoked each time a call is dispatched

    Returns:
        Decorated function

    Example:
        api = RateLimitedDispatcher("api", max_in_window=5)

        @throttled(api)
        async def fetch_item(item_id):
            return await client.get(f"/items/{item_id}")
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"throttled() requires an async function, got {func!r}")

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await dispatcher.call(func, *args, on_admit=on_admit, **kwargs)

        return wrapper  # type: ignore

    return decorator
