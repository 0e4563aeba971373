"""Shared fixtures for quietcall tests."""

import asyncio
from dataclasses import dataclass, field

import pytest

# One scenario time unit in seconds: a 500-unit interval is 0.2s.
UNIT = 0.0004


def units(n: float) -> float:
    return n * UNIT


class FakeClock:
    """Manually advanced clock for deterministic scheduler tests."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Timeline:
    """Sleeps until absolute offsets (in units) from its creation."""

    def __init__(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._start = self._loop.time()

    def elapsed(self) -> float:
        return (self._loop.time() - self._start) / UNIT

    async def until(self, n: float) -> None:
        await asyncio.sleep(max(0.0, self._start + units(n) - self._loop.time()))


@dataclass
class Recorder:
    """Async operation echoing its value and recording start/finish offsets."""

    timeline: Timeline
    starts: dict[object, float] = field(default_factory=dict)
    finishes: dict[object, float] = field(default_factory=dict)
    calls: list[object] = field(default_factory=list)

    async def __call__(self, value: object, duration: float = 0) -> object:
        self.calls.append(value)
        self.starts[value] = self.timeline.elapsed()
        if duration:
            await asyncio.sleep(units(duration))
        self.finishes[value] = self.timeline.elapsed()
        return value


class Gate:
    """Async operation that blocks until opened."""

    def __init__(self) -> None:
        self.event = asyncio.Event()
        self.calls: list[object] = []

    async def __call__(self, value: object) -> object:
        self.calls.append(value)
        await self.event.wait()
        return value

    def open(self) -> None:
        self.event.set()


async def _settle(rounds: int = 10) -> None:
    """Let ready tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def timeline():
    return Timeline()


@pytest.fixture
async def recorder(timeline):
    return Recorder(timeline)


@pytest.fixture
def echo():
    async def _echo(value: object) -> object:
        return value

    return _echo


@pytest.fixture
async def gate():
    return Gate()


@pytest.fixture
def settle():
    return _settle
