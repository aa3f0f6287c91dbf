"""Small widget helpers shared by the tabs."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from PySide6.QtWidgets import QComboBox, QLineEdit, QTableWidget, QTableWidgetItem, QWidget

INVALID_STYLE = "border: 1px solid #c0392b;"


def fill_combo(
    combo: QComboBox,
    items: Iterable[tuple[str, Any]],
    *,
    placeholder: str | None = "(Todos)",
) -> None:
    """
    Replace the combo's items, keeping the current selection when it still exists.

    Parameters
    ----------
    items:
        ``(label, data)`` pairs.
    placeholder:
        Leading item whose data is None. Omitted when None.
    """
    current = combo.currentData()
    combo.blockSignals(True)
    combo.clear()
    if placeholder is not None:
        combo.addItem(placeholder, None)
    for label, data in items:
        combo.addItem(label, data)
    select_combo_by_data(combo, current)
    combo.blockSignals(False)


def select_combo_by_data(combo: QComboBox, value: Any) -> None:
    for i in range(combo.count()):
        if combo.itemData(i) == value:
            combo.setCurrentIndex(i)
            return
    combo.setCurrentIndex(0 if combo.count() else -1)


def mark_invalid(widgets: dict[str, QWidget], invalid: Sequence[str]) -> None:
    """Outline the widgets whose field names appear in `invalid`."""
    for name, widget in widgets.items():
        widget.setStyleSheet(INVALID_STYLE if name in invalid else "")


def optional_int(edit: QLineEdit) -> int | None:
    text = edit.text().strip()
    return int(text) if text.isdigit() else None


def fill_table(table: QTableWidget, headers: Sequence[str], rows: Iterable[Sequence[str]]) -> None:
    table.setSortingEnabled(False)
    table.clear()
    table.setColumnCount(len(headers))
    table.setHorizontalHeaderLabels(list(headers))
    data = list(rows)
    table.setRowCount(len(data))
    for r, row in enumerate(data):
        for c, value in enumerate(row):
            table.setItem(r, c, QTableWidgetItem(value))
    table.resizeColumnsToContents()
    table.setSortingEnabled(True)
