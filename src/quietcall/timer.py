"""Single-slot wake-up timer on top of the asyncio event loop."""

from __future__ import annotations

from asyncio import AbstractEventLoop, Handle
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class TimerManager:
    """Owns at most one pending wake-up.

    Scheduling a new wake-up always cancels the previous one, so a scheduler
    never leaves an orphaned timer behind.  A non-positive delay runs the
    callback on the next loop iteration (``call_soon``), anything else uses
    ``call_later``.

    Args:
        loop_factory: Returns the event loop to schedule on.  Called lazily,
            on the first :meth:`schedule`.
    """

    __slots__ = ("_handle", "_loop", "_loop_factory")

    def __init__(self, loop_factory: Callable[[], AbstractEventLoop]) -> None:
        self._loop_factory = loop_factory
        self._loop: AbstractEventLoop | None = None
        self._handle: Handle | None = None

    @property
    def pending(self) -> bool:
        """Whether a wake-up is currently armed."""
        return self._handle is not None

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        """Arm a wake-up *delay* seconds from now, replacing any pending one."""
        self.cancel()

        if self._loop is None:
            self._loop = self._loop_factory()

        if delay <= 0:
            self._handle = self._loop.call_soon(self._fire, callback)
        else:
            self._handle = self._loop.call_later(delay, self._fire, callback)

    def cancel(self) -> None:
        """Drop the pending wake-up, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()

    def __repr__(self) -> str:
        return f"TimerManager(pending={self.pending})"
