"""Execution records: one actual run of the wrapped function."""

from __future__ import annotations

from asyncio import Future
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True, eq=False)
class Execution:
    """One invocation of the wrapped function, shared by every merged call.

    An execution that has not started is still mutable: attaching calls push
    ``last_call_time`` forward and, unless the execution represents the
    leading edge of a burst, replace its arguments with the latest call's.
    A leading execution always runs with the arguments of the call that
    opened the burst.

    Attributes:
        first_call_time: Clock reading of the first call of the burst.
        last_call_time: Clock reading of the most recent attached call.
        is_leading: Whether the execution answers the leading edge.
        args: Positional arguments the function will be called with.
        kwargs: Keyword arguments the function will be called with.
        future: Result handle settled when the execution finishes.
        start_time: When the execution was dispatched, or None.
        finish_time: When the execution settled, or None.
    """

    first_call_time: float
    last_call_time: float
    is_leading: bool
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    future: Future[Any]
    start_time: float | None = field(default=None)
    finish_time: float | None = field(default=None)

    @property
    def started(self) -> bool:
        return self.start_time is not None

    @property
    def finished(self) -> bool:
        return self.finish_time is not None

    def attach(self, now: float, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        """Merge a call made at *now* into this execution."""
        self.last_call_time = now
        if self.start_time is None and not self.is_leading:
            self.args = args
            self.kwargs = kwargs

    def expected_time(self, interval: float, max_wait: float | None = None) -> float:
        """Earliest time this execution wants to start, ignoring its neighbours."""
        if self.is_leading:
            return self.first_call_time

        expected = self.last_call_time + interval
        if max_wait is not None:
            expected = min(expected, self.first_call_time + max_wait)
        return expected

    def resolve(self, value: Any) -> None:
        if not self.future.done():
            self.future.set_result(value)

    def reject(self, exc: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(exc)

    def __repr__(self) -> str:
        if self.finished:
            state = "finished"
        elif self.started:
            state = "running"
        else:
            state = "pending"
        return (
            f"Execution(state={state}, leading={self.is_leading}, "
            f"first_call_time={self.first_call_time}, last_call_time={self.last_call_time})"
        )
