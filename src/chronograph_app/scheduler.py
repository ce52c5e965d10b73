"""Планировщик периодических тиков поверх цикла событий Tk."""

from __future__ import annotations

import itertools
import logging
from typing import Callable, Dict, Optional, Protocol


logger = logging.getLogger(__name__)


class TickScheduler(Protocol):
    """Периодический вызов callback с заданным интервалом.

    Повторный `disarm` того же (или неизвестного) handle ничего не делает.
    """

    def arm(self, interval_ms: int, callback: Callable[[], None]) -> int: ...

    def disarm(self, handle: Optional[int]) -> None: ...


class AfterHost(Protocol):
    def after(self, ms: int, func: Callable[[], None]) -> str: ...

    def after_cancel(self, job: str) -> None: ...


class TkTickScheduler:
    """Повторяющийся `after` для любого виджета Tk.

    На каждый handle держим идентификатор ближайшего отложенного вызова;
    после срабатывания следующий вызов планируется только если handle
    ещё жив (callback мог сам его снять).
    """

    def __init__(self, host: AfterHost) -> None:
        self._host = host
        self._jobs: Dict[int, str] = {}
        self._ids = itertools.count(1)

    def arm(self, interval_ms: int, callback: Callable[[], None]) -> int:
        handle = next(self._ids)

        def _fire() -> None:
            try:
                callback()
            finally:
                if handle in self._jobs:
                    self._jobs[handle] = self._host.after(interval_ms, _fire)

        self._jobs[handle] = self._host.after(interval_ms, _fire)
        logger.debug("Armed tick handle %s every %s ms", handle, interval_ms)
        return handle

    def disarm(self, handle: Optional[int]) -> None:
        if handle is None:
            return
        job = self._jobs.pop(handle, None)
        if job is None:
            return
        self._host.after_cancel(job)
        logger.debug("Disarmed tick handle %s", handle)

    @property
    def live_handles(self) -> int:
        """Число активных расписаний (для диагностики и тестов)."""

        return len(self._jobs)
