"""Графический интерфейс (Tkinter) для таймеров и секундомеров.

Кратко о возможностях:
- список хронографов рабочего пространства из книги Excel;
- у каждого кнопки Старт/Пауза и Сброс;
- ручной ввод часов/минут/секунд у таймера на паузе;
- переименование (Enter в поле имени сохраняет запись);
- уведомление о завершении таймера;
- меню Файл/Помощь и строка состояния с путём к выбранному файлу.
"""

from __future__ import annotations

import logging
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, simpledialog, ttk
from typing import Callable, Optional


# Импорты одинаково работают и при запуске из исходников, и при запуске из пакета
if __package__ in {None, ""}:  # pragma: no cover - запуск как скрипт
    from chronograph_app.config import AppConfig
    from chronograph_app.digit_editor import (
        KEY_ARROW_LEFT,
        KEY_ARROW_RIGHT,
        KEY_BACKSPACE,
        KEY_ENTER,
        is_digit_key,
    )
    from chronograph_app.engine import (
        Chronograph,
        ChronographEngine,
        ChronographKind,
        ChronographStateError,
        EngineSnapshot,
    )
    from chronograph_app.excel_manager import (
        CHRONOGRAPHS_SHEET,
        ExcelChronographStore,
        add_chronograph,
        create_template,
    )
    from chronograph_app.logging_config import setup_logging
    from chronograph_app.scheduler import TkTickScheduler
    from chronograph_app.version import VERSION
else:  # стандартный путь импорта пакета
    from .config import AppConfig
    from .digit_editor import KEY_ARROW_LEFT, KEY_ARROW_RIGHT, KEY_BACKSPACE, KEY_ENTER, is_digit_key
    from .engine import Chronograph, ChronographEngine, ChronographKind, ChronographStateError, EngineSnapshot
    from .excel_manager import CHRONOGRAPHS_SHEET, ExcelChronographStore, add_chronograph, create_template
    from .logging_config import setup_logging
    from .scheduler import TkTickScheduler
    from .version import VERSION


logger = logging.getLogger(__name__)

# Клавиши Tk -> имена клавиш редактора полей
_TK_KEYS = {
    "BackSpace": KEY_BACKSPACE,
    "Return": KEY_ENTER,
    "KP_Enter": KEY_ENTER,
    "Left": KEY_ARROW_LEFT,
    "Right": KEY_ARROW_RIGHT,
}

TIME_FIELDS = ("hours", "minutes", "seconds")


def _editor_key(event: tk.Event) -> str:
    """Перевести событие Tk в имя клавиши для редактора полей."""

    if is_digit_key(event.char or ""):
        return event.char
    return _TK_KEYS.get(event.keysym, event.keysym)


class MessageBoxNotifier:
    """Уведомление о завершении таймера через окно сообщения."""

    def __init__(self, root: tk.Misc) -> None:
        self._root = root

    def notify(self, title: str, body: str) -> None:
        # Откладываем показ, чтобы не блокировать текущий тик
        self._root.bell()
        self._root.after_idle(lambda: messagebox.showinfo(title, body, parent=self._root))


class ChronographPanel(ttk.Frame):
    """Карточка одного хронографа: имя, поля времени и кнопки."""

    def __init__(self, parent: tk.Widget, engine: ChronographEngine, on_error: Callable[[Exception], None]) -> None:
        super().__init__(parent, padding=(8, 6), style="Chronograph.Card.TFrame")
        self.engine = engine
        self._on_error = on_error
        engine.on_change = self.render

        self.name_var = tk.StringVar(value=engine.chronograph.name)
        self.field_vars = {name: tk.StringVar(value="00") for name in TIME_FIELDS}
        self.ms_var = tk.StringVar(value=".00")
        self.toggle_var = tk.StringVar(value="▶")
        self._entry_state: Optional[str] = None

        name_entry = ttk.Entry(self, textvariable=self.name_var, width=28, style="Chronograph.Name.TEntry")
        name_entry.grid(row=0, column=0, columnspan=7, sticky=(tk.W + tk.E), pady=(0, 6))
        name_entry.bind("<Return>", self._on_rename)

        self.entries: dict[str, ttk.Entry] = {}
        for idx, name in enumerate(TIME_FIELDS):
            entry = ttk.Entry(
                self,
                textvariable=self.field_vars[name],
                width=3,
                justify=tk.CENTER,
                style="Chronograph.Digits.TEntry",
                font=("Courier", 24, "bold"),
            )
            entry.grid(row=1, column=idx * 2)
            entry.bind("<KeyPress>", lambda event, field=name: self._on_field_key(event, field))
            self.entries[name] = entry
            if idx < len(TIME_FIELDS) - 1:
                ttk.Label(self, text=":", style="Chronograph.Digits.TLabel").grid(row=1, column=idx * 2 + 1)

        if not engine.is_timer:
            ttk.Label(self, textvariable=self.ms_var, style="Chronograph.Millis.TLabel").grid(row=1, column=6, sticky=tk.S)

        buttons = ttk.Frame(self)
        buttons.grid(row=2, column=0, columnspan=7, pady=(6, 0))
        ttk.Button(buttons, text="⟲", width=3, command=self._on_reset).pack(side=tk.LEFT, padx=4)
        self._toggle_button = ttk.Button(buttons, textvariable=self.toggle_var, width=3, command=self._on_toggle)
        self._toggle_button.pack(side=tk.LEFT, padx=4)

        self.render(engine.snapshot())

    # ------------------------- Отображение -------------------------
    def render(self, snapshot: EngineSnapshot) -> None:
        """Обновить поля и кнопки по снимку состояния движка."""

        fields = snapshot.fields
        for name in TIME_FIELDS:
            self.field_vars[name].set(f"{getattr(fields, name):02d}")
        self.ms_var.set(f".{fields.milliseconds:02d}")
        self.toggle_var.set("⏸" if snapshot.running else "▶")

        self._apply_entry_state("normal" if self.engine.editable else "readonly")

        empty_timer = self.engine.is_timer and fields.total_milliseconds() == 0
        self._toggle_button.configure(state="disabled" if empty_timer and not snapshot.running else "normal")

    def _apply_entry_state(self, state: str) -> None:
        """Переключить поля ввода; секундомер рендерится каждые 10 мс, так что только при смене."""

        if state == self._entry_state:
            return
        for entry in self.entries.values():
            entry.configure(state=state)
        self._entry_state = state

    # ------------------------- Обработчики -------------------------
    def _call(self, action: Callable[[], object]) -> None:
        try:
            action()
        except ChronographStateError as exc:
            logger.warning("%s", exc)
        except Exception as exc:  # pylint: disable=broad-except
            # Состояние уже переключено локально, сообщаем только о сбое сохранения
            self._on_error(exc)

    def _on_toggle(self) -> None:
        self._call(self.engine.toggle)

    def _on_reset(self) -> None:
        self._call(self.engine.reset)

    def _on_rename(self, _event: tk.Event) -> str:
        name = self.name_var.get().strip()
        if name:
            self._call(lambda: self.engine.rename(name))
        else:
            self.name_var.set(self.engine.chronograph.name)
        self.focus_set()
        return "break"

    def _on_field_key(self, event: tk.Event, field: str) -> Optional[str]:
        """Передать нажатие редактору поля; 'break' гасит стандартную обработку."""

        if not self.engine.editable:
            return None

        entry = self.entries[field]
        cursor_end = entry.index("sel.last") if entry.selection_present() else entry.index(tk.INSERT)
        key = _editor_key(event)
        outcome = self.engine.edit_field(field, key, cursor_end)

        if outcome.changed:
            step = 1 if is_digit_key(key) else -1
            entry.icursor(min(max(cursor_end + step, 0), 2))
            entry.selection_clear()
        return "break" if outcome.suppress_default else None


class ChronographApp(tk.Tk):
    """Главное окно приложения: меню, карточки хронографов и строка состояния."""

    def __init__(self) -> None:
        super().__init__()
        self.title("Хронографы")
        self.geometry("420x480")
        self.minsize(360, 240)
        self.configure(background="#f5f5f5")

        # Конфиг и состояние
        self.config_manager = AppConfig.load()
        setup_logging(self.config_manager.log_level, self.config_manager.log_file)
        self.scheduler = TkTickScheduler(self)
        self.notifier = MessageBoxNotifier(self)
        self.store: Optional[ExcelChronographStore] = None
        self.panels: list[ChronographPanel] = []

        self.status_var = tk.StringVar()
        self.notify_var = tk.BooleanVar(value=self.config_manager.notify_on_timer_complete)

        self._configure_styles()
        self._build_menu()
        self._build_layout()
        self.protocol("WM_DELETE_WINDOW", self._on_close)

        if self.config_manager.excel_path:
            try:
                self._open_store(self.config_manager.excel_path)
            except Exception as exc:  # pylint: disable=broad-except
                messagebox.showerror("Ошибка", f"Не удалось загрузить Excel файл:\n{exc}")
                self.config_manager.excel_path = None
                self.config_manager.save()
        self._refresh_status()
        if self.store is None:
            self.after(100, self._prompt_for_excel)

    # ------------------------- Построение UI -------------------------
    def _configure_styles(self) -> None:
        """Настроить тему и стили виджетов ttk."""

        style = ttk.Style(self)
        try:
            style.theme_use("clam")
        except tk.TclError:
            pass

        style.configure("TFrame", background="#f5f5f5")
        style.configure("Chronograph.Card.TFrame", background="#ffffff", relief="groove", borderwidth=1)
        style.configure("Chronograph.Digits.TLabel", font=("Courier", 24, "bold"), background="#ffffff")
        style.configure("Chronograph.Millis.TLabel", font=("Courier", 12), foreground="#777777", background="#ffffff")
        style.configure("Chronograph.Status.TLabel", foreground="#555555", background="#f5f5f5")

    def _build_menu(self) -> None:
        """Создать меню приложения (Файл/Помощь)."""

        menu_bar = tk.Menu(self)

        file_menu = tk.Menu(menu_bar, tearoff=False)
        file_menu.add_command(label="Выбрать файл Excel", command=self._prompt_for_excel)
        file_menu.add_command(label="Создать шаблон...", command=self._create_template)
        file_menu.add_command(label="Обновить", command=self._reload)
        file_menu.add_separator()
        file_menu.add_command(label="Новый таймер", command=lambda: self._add(ChronographKind.TIMER))
        file_menu.add_command(label="Новый секундомер", command=lambda: self._add(ChronographKind.STOPWATCH))
        file_menu.add_separator()
        file_menu.add_checkbutton(
            label="Уведомлять о завершении",
            variable=self.notify_var,
            command=self._toggle_notifications,
        )
        file_menu.add_separator()
        file_menu.add_command(label="Выход", command=self._on_close)
        menu_bar.add_cascade(label="Файл", menu=file_menu)

        help_menu = tk.Menu(menu_bar, tearoff=False)
        help_menu.add_command(label="О приложении", command=self._show_about)
        menu_bar.add_cascade(label="Помощь", menu=help_menu)

        self.config(menu=menu_bar)

    def _build_layout(self) -> None:
        """Построить основную разметку окна (карточки, статус)."""

        self._cards = ttk.Frame(self, style="TFrame")
        self._cards.pack(fill=tk.BOTH, expand=True, padx=16, pady=8)

        status_label = ttk.Label(self, textvariable=self.status_var, anchor=tk.W, style="Chronograph.Status.TLabel")
        status_label.pack(fill=tk.X, side=tk.BOTTOM, padx=16, pady=(0, 8))

    def _show_about(self) -> None:
        messagebox.showinfo("О приложении", f"Chronograph\nВерсия: {VERSION}")

    # ------------------------- Работа с Excel -------------------------
    def _prompt_for_excel(self) -> None:
        """Показать диалог выбора Excel-файла и загрузить хронографы."""

        filename = filedialog.askopenfilename(
            title="Выберите Excel файл",
            filetypes=(("Excel файлы", "*.xlsx"), ("Все файлы", "*.*")),
        )
        if not filename:
            return
        try:
            self._open_store(filename)
        except Exception as exc:  # pylint: disable=broad-except
            messagebox.showerror("Ошибка", f"Не удалось загрузить Excel файл:\n{exc}")
            return

        self.config_manager.excel_path = filename
        self.config_manager.save()
        self._refresh_status()

    def _create_template(self) -> None:
        save_path = filedialog.asksaveasfilename(
            title="Сохранить как",
            defaultextension=".xlsx",
            filetypes=(("Excel", "*.xlsx"), ("All files", "*.*")),
            initialfile="chronographs.xlsx",
        )
        if not save_path:
            return
        try:
            create_template(save_path)
            self._open_store(save_path)
        except Exception as exc:  # pylint: disable=broad-except
            messagebox.showerror("Ошибка", f"Не удалось создать файл:\n{exc}")
            return
        self.config_manager.excel_path = save_path
        self.config_manager.save()
        self._refresh_status()

    def _reload(self) -> None:
        if not self.config_manager.excel_path:
            messagebox.showwarning("Нет файла", "Сначала выберите Excel файл через меню 'Файл'.")
            return
        try:
            self._open_store(self.config_manager.excel_path)
        except Exception as exc:  # pylint: disable=broad-except
            messagebox.showerror("Ошибка", f"Не удалось обновить список:\n{exc}")

    def _open_store(self, path: str) -> None:
        """Загрузить лист хронографов и пересоздать карточки."""

        store = ExcelChronographStore(path)
        chronographs = store.load(self.config_manager.workspace_id)
        self._close_panels()
        self.store = store
        for chronograph in chronographs:
            self._add_panel(chronograph)
        logger.info("Loaded %d chronographs from %s", len(chronographs), path)

    def _add(self, kind: ChronographKind) -> None:
        if self.store is None:
            messagebox.showwarning("Нет файла", "Сначала выберите Excel файл через меню 'Файл'.")
            return
        name = simpledialog.askstring("Новый хронограф", "Название:", parent=self)
        if not name:
            return
        try:
            chronograph = add_chronograph(self.store.path, workspace_id=self.config_manager.workspace_id, name=name, kind=kind)
        except Exception as exc:  # pylint: disable=broad-except
            messagebox.showerror("Ошибка", f"Не удалось записать данные в Excel:\n{exc}")
            return
        self._add_panel(chronograph)

    def _add_panel(self, chronograph: Chronograph) -> None:
        assert self.store is not None
        engine = ChronographEngine(
            chronograph,
            self.scheduler,
            self.store,
            workspace_id=self.config_manager.workspace_id,
            notifier=self.notifier,
            notify_on_complete=self.config_manager.notify_on_timer_complete,
        )
        panel = ChronographPanel(self._cards, engine, on_error=self._show_save_error)
        panel.pack(fill=tk.X, pady=(0, 8))
        self.panels.append(panel)

    def report_callback_exception(self, exc, val, tb) -> None:  # type: ignore[override]
        """Ошибки из тиков (например, сбой сохранения при завершении) показываем пользователю."""

        logger.error("Unhandled error in callback", exc_info=(exc, val, tb))
        messagebox.showerror("Ошибка", str(val))

    def _show_save_error(self, exc: Exception) -> None:
        logger.error("Saving chronograph failed: %s", exc)
        messagebox.showerror("Ошибка", f"Не удалось записать данные в Excel:\n{exc}")

    def _toggle_notifications(self) -> None:
        enabled = bool(self.notify_var.get())
        self.config_manager.notify_on_timer_complete = enabled
        self.config_manager.save()
        for panel in self.panels:
            panel.engine.notify_on_complete = enabled

    def _refresh_status(self) -> None:
        """Обновить строку состояния: путь к файлу (или его отсутствие)."""

        if self.config_manager.excel_path:
            self.status_var.set(f"Файл: {Path(self.config_manager.excel_path).name} (лист '{CHRONOGRAPHS_SHEET}')")
        else:
            self.status_var.set("Файл Excel не выбран")

    # ------------------------- Завершение -------------------------
    def _close_panels(self) -> None:
        # Каждый движок снимает своё расписание, иначе тики продолжатся
        for panel in self.panels:
            panel.engine.close()
            panel.destroy()
        self.panels = []

    def _on_close(self) -> None:
        self._close_panels()
        self.destroy()


def main() -> None:
    """Точка входа: создать и запустить приложение."""

    app = ChronographApp()
    app.mainloop()


if __name__ == "__main__":
    main()
