"""quietcall — call-coalescing debounce scheduler for asyncio.

Repeated calls to a debounced async function within a time window are merged
into a bounded set of executions, and every merged call receives the result of
the execution it joined.

Basic usage:

    from quietcall import build

    async def fetch(query: str) -> list[str]:
        ...

    search = build(fetch, 0.3, leading=True, trailing=True)

    first = search("p")
    second = search("py")
    await first   # result of fetch("p"), leading edge
    await second  # result of fetch("py"), trailing edge

Decorator usage:

    from quietcall import debounce

    @debounce(interval=0.5, max_wait=2.0)
    async def save(doc: dict) -> None:
        await store.put(doc)
"""

import logging

from quietcall.config import DebounceConfig
from quietcall.core import DebouncedFunction, build
from quietcall.decorator import debounce
from quietcall.errors import CallCanceledError, DebouncerClosedError, QuietcallError
from quietcall.execution import Execution
from quietcall.scheduler import Scheduler
from quietcall.timer import TimerManager

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CallCanceledError",
    "DebounceConfig",
    "DebouncedFunction",
    "DebouncerClosedError",
    "Execution",
    "QuietcallError",
    "Scheduler",
    "TimerManager",
    "build",
    "debounce",
]

__version__ = "0.1.0"
