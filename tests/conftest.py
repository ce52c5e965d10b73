from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import pytest

from chronograph_app.engine import (
    Chronograph,
    ChronographEngine,
    ChronographKind,
    ChronographUpdate,
)


class FakeScheduler:
    """Records armed callbacks; tests fire them by hand."""

    def __init__(self) -> None:
        self.live: Dict[int, Tuple[int, Callable[[], None]]] = {}
        self.armed: List[int] = []
        self._next = 0

    def arm(self, interval_ms: int, callback: Callable[[], None]) -> int:
        self._next += 1
        self.live[self._next] = (interval_ms, callback)
        self.armed.append(interval_ms)
        return self._next

    def disarm(self, handle: Optional[int]) -> None:
        self.live.pop(handle, None)

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            for _interval, callback in list(self.live.values()):
                callback()


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeStore:
    def __init__(self) -> None:
        self.calls: List[Tuple[int, object, ChronographUpdate]] = []
        self.error: Optional[Exception] = None

    def update(self, workspace_id, chronograph_id, update):
        self.calls.append((workspace_id, chronograph_id, update))
        if self.error is not None:
            raise self.error
        return "saved"

    @property
    def last(self) -> ChronographUpdate:
        return self.calls[-1][2]


class FakeNotifier:
    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def notify(self, title: str, body: str) -> None:
        self.messages.append((title, body))


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def make_engine(scheduler, clock, store, notifier):
    def _make(kind=ChronographKind.TIMER, duration=0, name="Tea", **kwargs) -> ChronographEngine:
        chronograph = Chronograph(id=7, name=name, kind=kind, duration=duration, is_favourite=True)
        return ChronographEngine(
            chronograph,
            scheduler,
            store,
            workspace_id=3,
            notifier=notifier,
            clock=clock,
            **kwargs,
        )

    return _make
