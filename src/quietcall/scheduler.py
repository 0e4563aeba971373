"""Call-coalescing scheduler: admission, dispatch and retirement of executions."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Any

from quietcall.errors import CallCanceledError
from quietcall.execution import Execution
from quietcall.timer import TimerManager

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from quietcall.config import DebounceConfig

logger = logging.getLogger(__name__)


class Scheduler:
    """Merges calls into executions and decides when each execution runs.

    How it works:
        - Every call is admitted into an :class:`Execution`: either the last
          one in the queue, or a new one appended to it.
        - After every admission, timer fire and settlement, a maintenance
          pass walks the queue in order. It retires finished executions that
          can no longer influence timing, dispatches every execution whose
          start time has arrived, and arms the timer for the next one.
        - Executions start strictly in creation order.

    Example::

        interval=0.5, leading=True, trailing=True

        t=0.0 call(1)  -> execution A (leading), dispatched immediately
        t=0.1 call(2)  -> execution B (trailing), due at 0.6
        t=0.3 call(3)  -> merged into B, due at 0.8
        t=0.8 timer    -> B dispatched with (3,)

    Args:
        func: Async callable to run for each execution.
        config: Normalized scheduling configuration.
        clock: Returns the current time in seconds.  Defaults to the running
            loop's ``time()``.

    Complexity:
        Time:   O(n) per maintenance pass, n = queued executions
        Memory: O(n) executions
    """

    __slots__ = ("_clock", "_config", "_func", "_loop", "_queue", "_tasks", "_timer")

    def __init__(
        self,
        func: Callable[..., Awaitable[Any]],
        config: DebounceConfig,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._func = func
        self._config = config
        self._clock = clock
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: list[Execution] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._timer = TimerManager(self._get_loop)

    @property
    def config(self) -> DebounceConfig:
        return self._config

    @property
    def queue(self) -> tuple[Execution, ...]:
        """Snapshot of the executions currently tracked, oldest first."""
        return tuple(self._queue)

    @property
    def pending(self) -> int:
        """Number of executions that have not started yet."""
        return sum(1 for execution in self._queue if not execution.started)

    @property
    def running(self) -> int:
        """Number of executions currently in flight."""
        return len(self._tasks)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return self._get_loop().time()

    def submit(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> asyncio.Future[Any]:
        """Admit a call and return a handle on the execution it was merged into.

        The returned future is a shield over the execution's shared result,
        so cancelling one caller's handle does not cancel it for the others.
        """
        loop = self._get_loop()
        now = self._now()
        execution = self._admit(loop, now, args, kwargs)
        self.maintain()
        return asyncio.shield(execution.future)

    def _admit(
        self,
        loop: asyncio.AbstractEventLoop,
        now: float,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Execution:
        cfg = self._config

        if not self._queue:
            return self._append(loop, now, now, cfg.leading, args, kwargs)

        tail = self._queue[-1]

        if cfg.condense_executions and not tail.started:
            tail.attach(now, args, kwargs)
            logger.debug("Condensed call into pending %r", tail)
            return tail

        if tail.last_call_time + cfg.interval > now:
            if tail.is_leading and cfg.trailing:
                return self._append(loop, tail.first_call_time, now, False, args, kwargs)

            if cfg.max_wait is not None and tail.first_call_time + cfg.max_wait <= now:
                logger.debug("max_wait of %.3fs exceeded, starting a new execution", cfg.max_wait)
                return self._append(loop, now, now, cfg.leading, args, kwargs)

            if tail.started and not tail.is_leading:
                # the trailing run already took older arguments (flush)
                return self._append(loop, now, now, False, args, kwargs)

            tail.attach(now, args, kwargs)
            return tail

        return self._append(loop, now, now, cfg.leading, args, kwargs)

    def _append(
        self,
        loop: asyncio.AbstractEventLoop,
        first_call_time: float,
        now: float,
        is_leading: bool,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Execution:
        execution = Execution(
            first_call_time=first_call_time,
            last_call_time=now,
            is_leading=is_leading,
            args=args,
            kwargs=kwargs,
            future=loop.create_future(),
        )
        self._queue.append(execution)
        logger.debug("Queued %r (queue length %d)", execution, len(self._queue))
        return execution

    def maintain(self) -> None:
        """Run one maintenance pass over the queue and re-arm the timer."""
        if not self._queue:
            self._timer.cancel()
            return

        now = self._now()
        wake_delay: float | None = None
        previous: Execution | None = None

        for execution in list(self._queue):
            if execution.finished:
                if self._can_retire(execution, now):
                    self._queue.remove(execution)
                    logger.debug("Retired %r", execution)
                    continue
            elif not execution.started:
                start_at = self._start_time(execution, previous)
                if start_at > now:
                    if start_at != math.inf:
                        wake_delay = start_at - now
                    break
                self._dispatch(execution, now)
            previous = execution

        if wake_delay is None:
            self._timer.cancel()
        else:
            self._timer.schedule(wake_delay, self.maintain)

    def _can_retire(self, execution: Execution, now: float) -> bool:
        cfg = self._config
        if execution.last_call_time + cfg.interval > now:
            return False
        if cfg.delay_between_executions is None:
            return True
        finish_time = execution.finish_time
        return finish_time is not None and finish_time + cfg.delay_between_executions <= now

    def _start_time(self, execution: Execution, previous: Execution | None) -> float:
        cfg = self._config
        expected = execution.expected_time(cfg.interval, cfg.max_wait)
        if previous is None:
            return expected

        if cfg.allow_concurrent_executions:
            reference = previous.start_time
        else:
            reference = previous.finish_time
        if reference is None:
            return math.inf

        if cfg.delay_between_executions is not None:
            expected = max(expected, reference + cfg.delay_between_executions)
        return expected

    def _dispatch(self, execution: Execution, now: float) -> None:
        execution.start_time = now
        logger.debug("Dispatching %r", execution)
        task = self._get_loop().create_task(self._run(execution))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, execution: Execution) -> None:
        try:
            result = await self._func(*execution.args, **execution.kwargs)
        except asyncio.CancelledError:
            execution.future.cancel()
            raise
        except Exception as exc:
            logger.debug("Execution failed with %r", exc)
            execution.reject(exc)
        except BaseException as exc:
            execution.reject(exc)
            raise
        else:
            execution.resolve(result)
        finally:
            execution.finish_time = self._now()
            self.maintain()

    def flush(self) -> None:
        """Dispatch every execution that has not started, ignoring all gating."""
        if not self._queue:
            return

        now = self._now()
        flushed = 0
        for execution in list(self._queue):
            if not execution.started:
                self._dispatch(execution, now)
                flushed += 1

        logger.debug("Flushed %d pending execution(s)", flushed)
        self.maintain()

    def cancel(self) -> None:
        """Reject and drop every execution that has not started."""
        canceled = [execution for execution in self._queue if not execution.started]
        for execution in canceled:
            self._queue.remove(execution)
            execution.reject(CallCanceledError())

        if canceled:
            logger.debug("Canceled %d pending execution(s)", len(canceled))
        self.maintain()

    async def wait_running(self) -> None:
        """Wait until every in-flight execution has settled."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def __repr__(self) -> str:
        return (
            f"Scheduler(interval={self._config.interval}, "
            f"pending={self.pending}, running={self.running})"
        )
