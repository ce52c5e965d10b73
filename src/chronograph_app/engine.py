"""Машина состояний хронографа: таймер (обратный отсчёт) и секундомер.

Движок хранит состояние одного экземпляра (`EngineState`), управляет
планировщиком тиков и после каждого перехода отправляет полный снимок записи
во внешнее хранилище. Отрисовкой он не занимается: каждая операция
возвращает `EngineSnapshot`, который интерфейс показывает как хочет.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Union

from .digit_editor import FIELD_MAXIMUMS, KeyOutcome, next_value
from .scheduler import TickScheduler
from .time_conversion import TimeFields, clamp_fields, format_fields, from_milliseconds, to_milliseconds


logger = logging.getLogger(__name__)

TIMER_QUANTUM_MS = 1000
STOPWATCH_QUANTUM_MS = 10

COMPLETED_TITLE = "Completed!"


class ChronographKind(str, Enum):
    TIMER = "timer"
    STOPWATCH = "stopwatch"


class ChronographState(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class ChronographStateError(RuntimeError):
    """Операция недопустима в текущем состоянии хронографа."""


@dataclass
class Chronograph:
    """Запись хронографа в том виде, в каком она лежит в хранилище."""

    id: Union[int, str]
    name: str
    kind: ChronographKind
    state: ChronographState = ChronographState.PAUSED
    duration: int = 0
    is_favourite: bool = False

    def __post_init__(self) -> None:
        self.kind = ChronographKind(self.kind)
        self.state = ChronographState(self.state)


@dataclass(frozen=True)
class ChronographUpdate:
    """Полный набор изменяемых полей, отправляемый в хранилище."""

    name: str
    kind: ChronographKind
    state: ChronographState
    duration: int
    is_favourite: bool

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["state"] = self.state.value
        return data


@dataclass
class EngineState:
    running: bool = False
    # Во время завершения таймера может уйти в минус (не больше чем на один тик)
    elapsed_time: int = 0
    base_duration: Optional[TimeFields] = None
    start_reference: Optional[float] = None
    handle: Optional[int] = None
    display: TimeFields = field(default_factory=TimeFields)


@dataclass(frozen=True)
class EngineSnapshot:
    name: str
    kind: ChronographKind
    running: bool
    elapsed_time: int
    fields: TimeFields


class PersistenceSync(Protocol):
    def update(self, workspace_id: int, chronograph_id: Union[int, str], update: ChronographUpdate) -> Any: ...


class NotificationSink(Protocol):
    def notify(self, title: str, body: str) -> None: ...


def _monotonic_ms() -> float:
    return time.perf_counter() * 1000


class ChronographEngine:
    """Таймер и секундомер с общим скелетом переходов.

    Отличия режимов (направление счёта, период тика, завершение) собраны
    в `tick()`; `start`/`pause`/`reset` общие.
    """

    def __init__(
        self,
        chronograph: Chronograph,
        scheduler: TickScheduler,
        persistence: PersistenceSync,
        *,
        workspace_id: int,
        notifier: Optional[NotificationSink] = None,
        notify_on_complete: bool = True,
        clock: Callable[[], float] = _monotonic_ms,
        on_change: Optional[Callable[[EngineSnapshot], None]] = None,
    ) -> None:
        self.chronograph = chronograph
        self._scheduler = scheduler
        self._persistence = persistence
        self._notifier = notifier
        self.notify_on_complete = notify_on_complete
        self._workspace_id = workspace_id
        self._clock = clock
        self.on_change = on_change
        self._closed = False

        base = clamp_fields(from_milliseconds(chronograph.duration), keep_milliseconds=False)
        self.state = EngineState(
            elapsed_time=chronograph.duration,
            base_duration=base if self.is_timer else None,
            display=base,
        )
        # Открытый экземпляр всегда стартует на паузе
        self.chronograph.state = ChronographState.PAUSED

    # ------------------------------------------------------------------ свойства
    @property
    def is_timer(self) -> bool:
        return self.chronograph.kind is ChronographKind.TIMER

    @property
    def running(self) -> bool:
        return self.state.running

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def editable(self) -> bool:
        """Поля можно править руками только у таймера на паузе."""

        return self.is_timer and not self.state.running and not self._closed

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            name=self.chronograph.name,
            kind=self.chronograph.kind,
            running=self.state.running,
            elapsed_time=self.state.elapsed_time,
            fields=self.state.display,
        )

    # ------------------------------------------------------------------ операции
    def start(self) -> EngineSnapshot:
        """Запустить отсчёт и сохранить состояние `active`."""

        self._ensure_open()
        if self.state.running:
            raise ChronographStateError(f"Chronograph {self.chronograph.id} is already running")
        if self.is_timer and self.state.display.total_milliseconds() == 0:
            raise ChronographStateError("Cannot start a timer with zero duration")

        if self.is_timer:
            self.state.handle = self._scheduler.arm(TIMER_QUANTUM_MS, self.tick)
        else:
            self.state.start_reference = self._clock() - self.state.elapsed_time
            self.state.handle = self._scheduler.arm(STOPWATCH_QUANTUM_MS, self.tick)

        self.state.running = True
        self._sync_record(ChronographState.ACTIVE)
        logger.info("Started %s %r at %s ms", self.chronograph.kind.value, self.chronograph.name, self.state.elapsed_time)
        snapshot = self._emit()
        self._persist()
        return snapshot

    def pause(self) -> EngineSnapshot:
        """Остановить отсчёт и сохранить состояние `paused`."""

        self._ensure_open()
        if not self.state.running:
            raise ChronographStateError(f"Chronograph {self.chronograph.id} is not running")

        self._disarm()
        if not self.is_timer and self.state.start_reference is not None:
            self.state.elapsed_time = int(self._clock() - self.state.start_reference)
            self._refresh_display()
        self.state.running = False
        self._sync_record(ChronographState.PAUSED)
        logger.info(
            "Paused %r at %s",
            self.chronograph.name,
            format_fields(self.state.display, with_milliseconds=not self.is_timer),
        )
        snapshot = self._emit()
        self._persist()
        return snapshot

    def toggle(self) -> EngineSnapshot:
        """Одна кнопка Старт/Пауза."""

        return self.pause() if self.state.running else self.start()

    def reset(self) -> EngineSnapshot:
        """Вернуть таймер к заданной длительности, секундомер к нулю.

        Явного сохранения нет: хранилище узнает о сбросе при следующем
        старте, паузе или переименовании.
        """

        self._ensure_open()
        self._disarm()

        if self.is_timer:
            base = self.state.base_duration or TimeFields()
            self.state.elapsed_time = to_milliseconds(base.hours, base.minutes, base.seconds)
            self.state.display = clamp_fields(base, keep_milliseconds=False)
        else:
            self.state.start_reference = None
            self.state.elapsed_time = 0
            self.state.display = TimeFields()

        self.state.running = False
        self._sync_record(ChronographState.PAUSED)
        logger.debug("Reset %r to %s ms", self.chronograph.name, self.state.elapsed_time)
        return self._emit()

    def tick(self) -> EngineSnapshot:
        """Один квант планировщика."""

        if not self.state.running or self._closed:
            logger.debug("Ignoring tick for idle chronograph %s", self.chronograph.id)
            return self.snapshot()

        if not self.is_timer:
            self.state.elapsed_time = int(self._clock() - (self.state.start_reference or 0))
            self._refresh_display()
            return self._emit()

        self.state.elapsed_time -= TIMER_QUANTUM_MS
        self._refresh_display()
        if self.state.elapsed_time <= 0:
            return self._complete()
        return self._emit()

    def edit_field(self, field_name: str, key: str, cursor_end: int) -> KeyOutcome:
        """Обработать нажатие клавиши в поле часов, минут или секунд.

        Новое значение становится и текущим остатком, и базовой
        длительностью, к которой вернётся `reset()`.
        """

        if field_name not in FIELD_MAXIMUMS:
            raise ValueError(f"Unknown time field: {field_name!r}")
        if not self.editable:
            raise ChronographStateError("Only a paused timer can be edited")

        current = getattr(self.state.display, field_name)
        outcome = next_value(f"{current:02d}", cursor_end, key, FIELD_MAXIMUMS[field_name])
        if not outcome.changed:
            return outcome

        fields = replace(self.state.display, milliseconds=0, **{field_name: outcome.value})
        self.state.display = fields
        self.state.base_duration = fields
        self.state.elapsed_time = to_milliseconds(fields.hours, fields.minutes, fields.seconds)
        self.chronograph.duration = self.state.elapsed_time
        self._emit()
        return outcome

    def rename(self, name: str) -> Any:
        """Сохранить новое имя вместе с текущим состоянием."""

        self._ensure_open()
        self.chronograph.name = name
        logger.info("Renamed chronograph %s to %r", self.chronograph.id, name)
        return self._persist()

    def close(self) -> None:
        """Снять расписание; после закрытия экземпляр не принимает операций."""

        if self._closed:
            return
        self._disarm()
        self.state.running = False
        self._closed = True
        logger.debug("Closed chronograph %s", self.chronograph.id)

    # ------------------------------------------------------------------ внутреннее
    def _complete(self) -> EngineSnapshot:
        self._disarm()
        self.state.running = False
        self._sync_record(ChronographState.PAUSED)
        logger.info("Timer %r completed (%s ms)", self.chronograph.name, self.state.elapsed_time)
        snapshot = self._emit()

        if self.notify_on_complete and self._notifier is not None:
            self._notifier.notify(COMPLETED_TITLE, f'"{self.chronograph.name}" is done.')
        # Отрицательный остаток сохраняем как есть
        self._persist()
        return snapshot

    def _emit(self) -> EngineSnapshot:
        snapshot = self.snapshot()
        if self.on_change is not None:
            self.on_change(snapshot)
        return snapshot

    def _disarm(self) -> None:
        if self.state.handle is not None:
            self._scheduler.disarm(self.state.handle)
            self.state.handle = None

    def _refresh_display(self) -> None:
        # Остаток ниже нуля (завершение таймера) на экране показываем нулём
        self.state.display = clamp_fields(from_milliseconds(max(self.state.elapsed_time, 0)))

    def _sync_record(self, state: ChronographState) -> None:
        self.chronograph.state = state
        self.chronograph.duration = self.state.elapsed_time

    def _persist(self) -> Any:
        record = self.chronograph
        update = ChronographUpdate(
            name=record.name,
            kind=record.kind,
            state=ChronographState.ACTIVE if self.state.running else ChronographState.PAUSED,
            duration=self.state.elapsed_time,
            is_favourite=record.is_favourite,
        )
        return self._persistence.update(self._workspace_id, record.id, update)

    def _ensure_open(self) -> None:
        if self._closed:
            raise ChronographStateError(f"Chronograph {self.chronograph.id} is closed")
