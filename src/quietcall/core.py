"""DebouncedFunction — main entry point for the library."""

from __future__ import annotations

import functools
import types
from typing import TYPE_CHECKING, Any

from quietcall.config import DebounceConfig
from quietcall.errors import DebouncerClosedError
from quietcall.scheduler import Scheduler

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Awaitable, Callable


class DebouncedFunction:
    """Callable wrapper that coalesces calls to an async function.

    Each call returns an :class:`asyncio.Future` that settles with the result
    (or exception) of the execution the call was merged into.  The wrapper
    must be called from within a running event loop.

    Used as a method, the instance is passed to the wrapped function as its
    first argument.  All instances share one scheduler.
    """

    def __init__(
        self,
        func: Callable[..., Awaitable[Any]],
        config: DebounceConfig | None = None,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._func = func
        self._config = config or DebounceConfig()
        self._scheduler = Scheduler(func, self._config, clock=clock)
        self._closed = False
        functools.update_wrapper(self, func)

    @property
    def config(self) -> DebounceConfig:
        return self._config

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def pending(self) -> int:
        """Number of executions waiting to start."""
        return self._scheduler.pending

    @property
    def running(self) -> int:
        """Number of executions currently in flight."""
        return self._scheduler.running

    @property
    def closed(self) -> bool:
        return self._closed

    def __call__(self, *args: Any, **kwargs: Any) -> asyncio.Future[Any]:
        self._ensure_open()
        return self._scheduler.submit(args, kwargs)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return types.MethodType(self, instance)

    def flush(self) -> None:
        """Start every pending execution now, regardless of timing rules."""
        self._scheduler.flush()

    def cancel(self) -> None:
        """Reject every pending execution with :class:`CallCanceledError`."""
        self._scheduler.cancel()

    async def aclose(self) -> None:
        """Cancel pending executions and wait for in-flight ones to settle."""
        if self._closed:
            return
        self._closed = True
        self._scheduler.cancel()
        await self._scheduler.wait_running()

    async def __aenter__(self) -> DebouncedFunction:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.aclose()

    def _ensure_open(self) -> None:
        if self._closed:
            name = getattr(self, "__name__", "debounced function")
            raise DebouncerClosedError(f"{name} is closed")

    def __repr__(self) -> str:
        return (
            f"DebouncedFunction({getattr(self._func, '__qualname__', self._func)!s}, "
            f"interval={self._config.interval}, "
            f"leading={self._config.leading}, "
            f"trailing={self._config.trailing}, "
            f"closed={self._closed})"
        )


def build(
    func: Callable[..., Awaitable[Any]],
    interval: float = 0.0,
    *,
    leading: bool = False,
    trailing: bool = False,
    max_wait: float | None = None,
    delay_between_executions: float | None = None,
    condense_executions: bool = False,
    allow_concurrent_executions: bool = False,
    clock: Callable[[], float] | None = None,
) -> DebouncedFunction:
    """Wrap *func* in a call-coalescing scheduler.

    Args:
        func: Async callable to debounce.
        interval: Debounce window in seconds.
        leading: Run on the leading edge of a burst.
        trailing: Run on the trailing edge of a burst.  Enabled automatically
            when neither edge is requested.
        max_wait: Maximum time in seconds a burst may postpone an execution.
        delay_between_executions: Minimum spacing in seconds between
            executions.  Disables concurrent executions.
        condense_executions: Merge calls into an execution that has not
            started yet instead of queueing another one.
        allow_concurrent_executions: Let a new execution start while a
            previous one is still running.
        clock: Time source in seconds, defaults to the event loop clock.

    Example::

        async def save(doc):
            ...

        debounced_save = build(save, 0.5, leading=True, trailing=True)
        result = await debounced_save(doc)
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
    return DebouncedFunction(func, config, clock=clock)
