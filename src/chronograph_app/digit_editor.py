"""Посимвольное редактирование двухзначного поля (часы, минуты или секунды).

Редактор ничего не знает о том, какое именно поле правится: ему достаточно
текущего текста из двух цифр, позиции курсора и верхней границы.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


KEY_BACKSPACE = "Backspace"
KEY_ENTER = "Enter"
KEY_ARROW_LEFT = "ArrowLeft"
KEY_ARROW_RIGHT = "ArrowRight"

# Клавиши, которые пропускаются дальше без изменения значения
PASSTHROUGH_KEYS = frozenset({KEY_ENTER, KEY_ARROW_LEFT, KEY_ARROW_RIGHT})

FIELD_MAXIMUMS = {"hours": 99, "minutes": 59, "seconds": 59}

_LEADING_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class KeyOutcome:
    """Результат обработки нажатия.

    - `value`: новое значение поля;
    - `accepted`: клавиша из разрешённого набора;
    - `suppress_default`: виджет не должен сам обрабатывать нажатие;
    - `changed`: нажатие пересчитало значение (цифра или Backspace).
    """

    value: int
    accepted: bool
    suppress_default: bool
    changed: bool = False


def is_digit_key(key: str) -> bool:
    return len(key) == 1 and "0" <= key <= "9"


def _leading_int(text: str) -> Optional[int]:
    """Число из ведущих цифр строки ("1x" -> 1); None, если строка начинается не с цифры."""

    match = _LEADING_DIGITS.match(text)
    return int(match.group()) if match else None


def _parse(candidate: str, maximum: int) -> int:
    """Число с ограничением [0, maximum]; строка без ведущих цифр даёт maximum."""

    number = _leading_int(candidate)
    if number is None:
        return maximum
    return min(max(number, 0), maximum)


def next_value(current_value: str, cursor_end: int, key: str, maximum: int) -> KeyOutcome:
    """Вычислить новое значение поля после нажатия `key`.

    Цифра при курсоре в позиции 0 заменяет первый символ, в позиции 1
    второй, а в конце поля прежняя последняя цифра сдвигается влево и новая
    дописывается справа. Backspace в позиции 0 ничего не стирает, в позиции 1
    обнуляет первую цифру, в конце вторую.
    """

    text = current_value.zfill(2)
    first, last = text[0], text[-1]

    if is_digit_key(key):
        if cursor_end <= 0:
            candidate = f"{key}{last}"
        elif cursor_end == 1:
            candidate = f"{first}{key}"
        else:
            candidate = f"{last}{key}"
        return KeyOutcome(_parse(candidate, maximum), accepted=True, suppress_default=True, changed=True)

    if key == KEY_BACKSPACE:
        if cursor_end <= 0:
            candidate = current_value
        elif cursor_end == 1:
            candidate = f"0{last}"
        else:
            candidate = f"{first}0"
        return KeyOutcome(_parse(candidate, maximum), accepted=True, suppress_default=True, changed=True)

    # Значение не пересчитывается, поэтому и не ограничивается сверху
    unchanged = _leading_int(current_value)
    if unchanged is None:
        unchanged = maximum
    if key in PASSTHROUGH_KEYS:
        return KeyOutcome(unchanged, accepted=True, suppress_default=False)
    # Любая другая клавиша: гасим нажатие, значение не трогаем
    return KeyOutcome(unchanged, accepted=False, suppress_default=True)
