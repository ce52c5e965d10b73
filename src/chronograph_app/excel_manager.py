"""Хранение хронографов в книге Excel.

Содержит:
- константы имени листа и заголовков;
- загрузку хронографов рабочего пространства;
- добавление нового хронографа;
- обновление записи после старта, паузы, завершения или переименования;
- создание шаблонной книги с нужным листом и заголовками.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

from openpyxl import Workbook, load_workbook

from .engine import Chronograph, ChronographKind, ChronographState, ChronographUpdate


logger = logging.getLogger(__name__)

# Имя листа в книге Excel
CHRONOGRAPHS_SHEET = "Хронографы"
HEADERS = ["Рабочее пространство", "ID", "Название", "Тип", "Состояние", "Длительность, мс", "Избранное"]

COL_WORKSPACE, COL_ID, COL_NAME, COL_KIND, COL_STATE, COL_DURATION, COL_FAVOURITE = range(1, 8)


class ExcelStructureError(RuntimeError):
    """Структура книги Excel не соответствует ожиданиям."""


def _open(path: Path | str):
    workbook_path = Path(path)
    if not workbook_path.exists():
        raise FileNotFoundError(f"Excel file not found: {workbook_path}")

    workbook = load_workbook(workbook_path)
    if CHRONOGRAPHS_SHEET not in workbook:
        raise ExcelStructureError(
            f"Workbook must contain sheet '{CHRONOGRAPHS_SHEET}'. Found: {', '.join(workbook.sheetnames)}"
        )
    return workbook_path, workbook, workbook[CHRONOGRAPHS_SHEET]


def _first_empty_row(sheet, start_row: int, last_col: int) -> int:
    """Найти первую полностью пустую строку (значения None) начиная с `start_row`.

    Учитывается только содержимое ячеек, любые стили/границы игнорируются.
    """

    def row_empty(r: int) -> bool:
        for col in range(1, last_col + 1):
            if sheet.cell(row=r, column=col).value is not None:
                return False
        return True

    last = sheet.max_row
    for r in range(start_row, last + 1):
        if row_empty(r):
            return r
    return last + 1


def _find_row(sheet, workspace_id: int, chronograph_id: Union[int, str]) -> Optional[int]:
    for r in range(2, sheet.max_row + 1):
        workspace = sheet.cell(row=r, column=COL_WORKSPACE).value
        ident = sheet.cell(row=r, column=COL_ID).value
        if workspace is None or ident is None:
            continue
        if str(workspace) == str(workspace_id) and str(ident) == str(chronograph_id):
            return r
    return None


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "да", "yes"}
    return bool(value)


def load_chronographs(path: Path | str, workspace_id: int) -> List[Chronograph]:
    """Прочитать хронографы указанного рабочего пространства."""

    _, workbook, sheet = _open(path)

    items: List[Chronograph] = []
    for idx, row in enumerate(sheet.iter_rows(values_only=True), start=1):
        # Пропускаем строку заголовков
        if idx == 1:
            continue
        workspace, ident, name, kind, state, duration, favourite, *_ = tuple(row) + (None,) * 7
        if ident is None or str(workspace) != str(workspace_id):
            continue
        try:
            items.append(
                Chronograph(
                    id=ident,
                    name="" if name is None else str(name),
                    kind=ChronographKind(str(kind).strip()),
                    state=ChronographState(str(state or "paused").strip()),
                    duration=int(duration or 0),
                    is_favourite=_as_bool(favourite),
                )
            )
        except ValueError as exc:
            raise ExcelStructureError(f"Row {idx} of '{CHRONOGRAPHS_SHEET}' is invalid: {exc}") from exc
    workbook.close()
    return items


def add_chronograph(
    path: Path | str,
    *,
    workspace_id: int,
    name: str,
    kind: ChronographKind | str,
    duration: int = 0,
    is_favourite: bool = False,
) -> Chronograph:
    """Добавить новый хронограф; ID: следующий свободный номер в пространстве."""

    workbook_path, workbook, sheet = _open(path)

    used = [
        int(sheet.cell(row=r, column=COL_ID).value)
        for r in range(2, sheet.max_row + 1)
        if str(sheet.cell(row=r, column=COL_WORKSPACE).value) == str(workspace_id)
        and str(sheet.cell(row=r, column=COL_ID).value).isdigit()
    ]
    chronograph = Chronograph(
        id=max(used, default=0) + 1,
        name=name,
        kind=ChronographKind(kind),
        duration=duration,
        is_favourite=is_favourite,
    )

    target_row = _first_empty_row(sheet, start_row=2, last_col=len(HEADERS))
    sheet.cell(row=target_row, column=COL_WORKSPACE).value = workspace_id
    sheet.cell(row=target_row, column=COL_ID).value = chronograph.id
    _write_update(
        sheet,
        target_row,
        ChronographUpdate(
            name=chronograph.name,
            kind=chronograph.kind,
            state=chronograph.state,
            duration=chronograph.duration,
            is_favourite=chronograph.is_favourite,
        ),
    )
    workbook.save(workbook_path)
    logger.info("Added %s %r with id %s", chronograph.kind.value, name, chronograph.id)
    return chronograph


def _write_update(sheet, row: int, update: ChronographUpdate) -> None:
    data = update.as_dict()
    sheet.cell(row=row, column=COL_NAME).value = data["name"]
    sheet.cell(row=row, column=COL_KIND).value = data["kind"]
    sheet.cell(row=row, column=COL_STATE).value = data["state"]
    sheet.cell(row=row, column=COL_DURATION).value = data["duration"]
    sheet.cell(row=row, column=COL_FAVOURITE).value = data["is_favourite"]


class ExcelChronographStore:
    """Хранилище для движка: каждая запись это строка листа «Хронографы»."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self, workspace_id: int) -> List[Chronograph]:
        return load_chronographs(self.path, workspace_id)

    def update(self, workspace_id: int, chronograph_id: Union[int, str], update: ChronographUpdate) -> Chronograph:
        """Перезаписать все изменяемые поля записи; ошибка уходит вызывающему."""

        workbook_path, workbook, sheet = _open(self.path)
        row = _find_row(sheet, workspace_id, chronograph_id)
        if row is None:
            raise ExcelStructureError(
                f"Chronograph {chronograph_id} not found in workspace {workspace_id}"
            )
        _write_update(sheet, row, update)
        workbook.save(workbook_path)
        logger.debug("Saved chronograph %s: %s", chronograph_id, update.as_dict())
        return Chronograph(id=chronograph_id, **update.as_dict())


def create_template(path: Path | str) -> None:
    """Создать пустую книгу Excel с листом хронографов и заголовками."""

    workbook_path = Path(path)
    wb = Workbook()
    # Удалим дефолтный лист, чтобы контролировать порядок
    default = wb.active
    wb.remove(default)

    ws = wb.create_sheet(CHRONOGRAPHS_SHEET)
    ws.append(HEADERS)  # заголовки

    wb.save(workbook_path)
