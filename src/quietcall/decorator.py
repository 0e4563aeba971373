"""Decorator API for applying debounce behavior to async functions."""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar, overload

from quietcall.config import DebounceConfig
from quietcall.core import DebouncedFunction

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


@overload
def debounce(
    func: F,
    /,
) -> DebouncedFunction: ...


@overload
def debounce(
    *,
    interval: float = 0.0,
    leading: bool = False,
    trailing: bool = False,
    max_wait: float | None = None,
    delay_between_executions: float | None = None,
    condense_executions: bool = False,
    allow_concurrent_executions: bool = False,
) -> Callable[[F], DebouncedFunction]: ...


def debounce(
    func: F | None = None,
    /,
    *,
    interval: float = 0.0,
    leading: bool = False,
    trailing: bool = False,
    max_wait: float | None = None,
    delay_between_executions: float | None = None,
    condense_executions: bool = False,
    allow_concurrent_executions: bool = False,
) -> DebouncedFunction | Callable[[F], DebouncedFunction]:
    """Decorator that debounces calls to an async function.

    The decorated function returns a future instead of a coroutine: calling it
    admits the call right away, and awaiting the future yields the result of
    the execution the call was merged into.

    Args:
        func: The function to decorate (when used without parentheses).
        interval: Debounce window in seconds.
        leading: Run on the leading edge of a burst.
        trailing: Run on the trailing edge of a burst.
        max_wait: Maximum time in seconds a burst may postpone an execution.
        delay_between_executions: Minimum spacing in seconds between executions.
        condense_executions: Merge calls into a not-yet-started execution.
        allow_concurrent_executions: Let executions overlap.

    Examples:
    ```python
        # With parentheses
        @debounce(interval=0.5, leading=True)
        async def search(query: str) -> list[str]:
            return await index.lookup(query)

        # Without parentheses (trailing edge, no window)
        @debounce
        async def save(doc: dict) -> None:
            await store.put(doc)

        results = await search("py")
        search.flush()
        search.cancel()
    ```
    """
    config = DebounceConfig(
        interval=interval,
        leading=leading,
        trailing=trailing,
        max_wait=max_wait,
        delay_between_executions=delay_between_executions,
        condense_executions=condense_executions,
        allow_concurrent_executions=allow_concurrent_executions,
    )

    def decorator(fn: F) -> DebouncedFunction:
        if not inspect.iscoroutinefunction(fn):
            raise TypeError("@debounce only supports async function.")

        return DebouncedFunction(fn, config)

    if func is not None:
        return decorator(func)

    return decorator
