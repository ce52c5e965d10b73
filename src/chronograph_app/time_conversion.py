"""Перевод миллисекунд в поля часов/минут/секунд и обратно.

Модуль не хранит состояния: только чистые функции и структура `TimeFields`.
"""

from __future__ import annotations

from dataclasses import dataclass


MS_PER_HOUR = 3_600_000
MS_PER_MINUTE = 60_000
MS_PER_SECOND = 1_000

# Верхние границы отображаемых полей
MAX_HOURS = 99
MAX_MINUTES = 59
MAX_SECONDS = 59
MAX_MILLISECONDS = 99


@dataclass(frozen=True)
class TimeFields:
    """Отображаемое время: часы, минуты, секунды и сотые доли секунды.

    Поле `milliseconds` хранит сотые (0-99) и нужно только для показа
    секундомера; в длительность таймера оно обратно не переводится.
    """

    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    milliseconds: int = 0

    def total_milliseconds(self) -> int:
        return to_milliseconds(self.hours, self.minutes, self.seconds)


def _clamp(value: int, upper: int) -> int:
    return min(max(value, 0), upper)


def from_milliseconds(ms: int) -> TimeFields:
    """Разложить миллисекунды на часы/минуты/секунды/сотые.

    Деление с округлением вниз и цепочкой остатков; значения не ограничиваются
    (100 часов останутся 100 часами). Для отрицательных значений отрицательными
    становятся только часы: -1500 мс -> (-1, 59, 58, 50).
    """

    hours, rest = divmod(int(ms), MS_PER_HOUR)
    minutes, rest = divmod(rest, MS_PER_MINUTE)
    seconds, rest = divmod(rest, MS_PER_SECOND)
    return TimeFields(hours=hours, minutes=minutes, seconds=seconds, milliseconds=rest // 10)


def to_milliseconds(hours: int, minutes: int, seconds: int) -> int:
    """Собрать длительность из часов, минут и секунд (без сотых)."""

    return hours * MS_PER_HOUR + minutes * MS_PER_MINUTE + seconds * MS_PER_SECOND


def clamp_fields(fields: TimeFields, *, keep_milliseconds: bool = True) -> TimeFields:
    """Привести поля к допустимым диапазонам [0, 99] / [0, 59] / [0, 59] / [0, 99]."""

    return TimeFields(
        hours=_clamp(fields.hours, MAX_HOURS),
        minutes=_clamp(fields.minutes, MAX_MINUTES),
        seconds=_clamp(fields.seconds, MAX_SECONDS),
        milliseconds=_clamp(fields.milliseconds, MAX_MILLISECONDS) if keep_milliseconds else 0,
    )


def format_fields(fields: TimeFields, *, with_milliseconds: bool = False) -> str:
    """Строка вида ЧЧ:ММ:СС (и `.сс` для секундомера)."""

    text = f"{fields.hours:02d}:{fields.minutes:02d}:{fields.seconds:02d}"
    if with_milliseconds:
        text += f".{fields.milliseconds:02d}"
    return text
