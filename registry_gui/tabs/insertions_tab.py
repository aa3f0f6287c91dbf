"""
Insertions tab.

Purpose
-------
- Edit one form per record kind and submit it for a background insert.
- Outline fields rejected by client-side validation.

Notes
-----
- Widget edits are written straight into the controller's current form object.
- When the controller replaces a form (after a successful insert or a reset),
  the panel reloads its widgets from the new object.
"""

from __future__ import annotations

from typing import Any, Callable

from PySide6.QtWidgets import (
    QComboBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from registry_gui.controllers.catalogs import Catalogs
from registry_gui.controllers.insertions import InsertionKind, InsertionsController
from registry_gui.tabs.common import fill_combo, mark_invalid, select_combo_by_data

# (form attribute, label, widget kind). Widget kinds other than "text", "date"
# and "multiline" name the Catalogs attribute that feeds a selector.
_FIELDS: dict[InsertionKind, list[tuple[str, str, str]]] = {
    InsertionKind.PERSON: [
        ("national_id", "RUT:", "text"),
        ("first_name", "Primer nombre:", "text"),
        ("second_name", "Segundo nombre:", "text"),
        ("family_name", "Apellido paterno:", "text"),
        ("second_family_name", "Apellido materno:", "text"),
        ("gender_id", "Género:", "genders"),
        ("nationality_id", "Nacionalidad:", "nationalities"),
        ("birth_date", "Fecha de nacimiento:", "date"),
        ("address", "Dirección:", "text"),
        ("email", "Email:", "text"),
        ("unit_id", "Unidad Vecinal:", "neighborhood_units"),
    ],
    InsertionKind.ORGANIZATION: [
        ("name", "Nombre:", "text"),
        ("address", "Dirección:", "text"),
        ("founded_on", "Fecha de fundación:", "date"),
        ("legal_personality", "Personalidad jurídica:", "text"),
        ("email", "Email:", "text"),
        ("unit_id", "Unidad Vecinal:", "neighborhood_units"),
    ],
    InsertionKind.ACTIVITY: [
        ("name", "Nombre:", "text"),
        ("start_date", "Fecha de inicio:", "date"),
        ("end_date", "Fecha de término:", "date"),
        ("description", "Descripción:", "multiline"),
        ("unit_id", "Unidad Vecinal:", "neighborhood_units"),
    ],
    InsertionKind.MACRO_SECTOR: [
        ("name", "Nombre:", "text"),
    ],
    InsertionKind.NEIGHBORHOOD_UNIT: [
        ("name", "Nombre:", "text"),
        ("macro_sector_id", "Macrosector:", "macro_sectors"),
    ],
    InsertionKind.WORKSHOP: [
        ("name", "Nombre:", "text"),
    ],
}

_FORM_ATTR = {
    InsertionKind.PERSON: "person_form",
    InsertionKind.ORGANIZATION: "organization_form",
    InsertionKind.ACTIVITY: "activity_form",
    InsertionKind.MACRO_SECTOR: "macro_sector_form",
    InsertionKind.NEIGHBORHOOD_UNIT: "unit_form",
    InsertionKind.WORKSHOP: "workshop_form",
}


class _FormPanel(QWidget):
    def __init__(self, kind: InsertionKind, current_form: Callable[[], Any]) -> None:
        super().__init__()
        self._current_form = current_form
        self._bound: Any = None
        self.widgets: dict[str, QWidget] = {}
        self._catalog_fields: dict[str, str] = {}

        form = QFormLayout(self)
        for name, label, widget_kind in _FIELDS[kind]:
            widget: QWidget
            if widget_kind == "multiline":
                edit = QPlainTextEdit()
                edit.setFixedHeight(80)
                edit.textChanged.connect(lambda n=name, e=edit: self._write(n, e.toPlainText()))
                widget = edit
            elif widget_kind in ("text", "date"):
                line = QLineEdit()
                if widget_kind == "date":
                    line.setPlaceholderText("dd/mm/aaaa")
                line.textChanged.connect(lambda v, n=name: self._write(n, v))
                widget = line
            else:
                combo = QComboBox()
                combo.currentIndexChanged.connect(
                    lambda _i, n=name, c=combo: self._write(n, c.currentData())
                )
                self._catalog_fields[name] = widget_kind
                widget = combo
            self.widgets[name] = widget
            form.addRow(label, widget)

    def _write(self, name: str, value: Any) -> None:
        if self._bound is not None:
            setattr(self._bound, name, value)

    def sync(self) -> None:
        """Reload widgets if the controller replaced the form object."""
        current = self._current_form()
        if current is self._bound:
            return
        self._bound = None
        for name, widget in self.widgets.items():
            value = getattr(current, name)
            if isinstance(widget, QPlainTextEdit):
                widget.setPlainText(value)
            elif isinstance(widget, QLineEdit):
                widget.setText(value)
            elif isinstance(widget, QComboBox):
                select_combo_by_data(widget, value)
        self._bound = current

    def load_catalogs(self, catalogs: Catalogs) -> None:
        bound = self._bound
        self._bound = None
        for name, source in self._catalog_fields.items():
            combo = self.widgets[name]
            assert isinstance(combo, QComboBox)
            fill_combo(
                combo,
                ((row.name, row.id) for row in getattr(catalogs, source)),
                placeholder="(Seleccione)",
            )
            if bound is not None:
                select_combo_by_data(combo, getattr(bound, name))
        self._bound = bound


class InsertionsTab(QWidget):
    """
    Insertions tab bound to an InsertionsController.

    Responsibilities
    ----------------
    - Switch between record kinds.
    - Submit the active form and surface validation problems inline.
    """

    def __init__(self, controller: InsertionsController) -> None:
        super().__init__()
        self._c = controller
        self._shown_catalogs: Catalogs | None = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)

        top = QHBoxLayout()
        self.kind_combo = QComboBox()
        for kind in InsertionKind:
            self.kind_combo.addItem(kind.label, kind)
        self.kind_combo.currentIndexChanged.connect(self._kind_changed)
        top.addWidget(QLabel("Registrar:"))
        top.addWidget(self.kind_combo, 1)
        layout.addLayout(top)

        self.panels: dict[InsertionKind, _FormPanel] = {}
        self.stack = QStackedWidget()
        for kind in InsertionKind:
            attr = _FORM_ATTR[kind]
            panel = _FormPanel(kind, lambda a=attr: getattr(self._c, a))
            self.panels[kind] = panel
            self.stack.addWidget(panel)
        layout.addWidget(self.stack)

        self.message_label = QLabel("")
        self.message_label.setWordWrap(True)
        self.message_label.setStyleSheet("color: #c0392b;")
        layout.addWidget(self.message_label)

        buttons = QHBoxLayout()
        self.btn_save = QPushButton("Guardar")
        self.btn_save.clicked.connect(self._c.submit)
        self.btn_reset = QPushButton("Limpiar")
        self.btn_reset.clicked.connect(lambda: self._c.reset_form(self._c.kind))
        buttons.addWidget(self.btn_save)
        buttons.addWidget(self.btn_reset)
        buttons.addStretch(1)
        layout.addLayout(buttons)
        layout.addStretch(1)

    def _kind_changed(self, index: int) -> None:
        self._c.kind = InsertionKind(self.kind_combo.itemData(index))
        self._c.form_errors = ()
        self._c.form_message = None
        self.stack.setCurrentIndex(index)

    def render(self) -> None:
        c = self._c
        for panel in self.panels.values():
            panel.sync()

        if c.catalogs is not self._shown_catalogs:
            self._shown_catalogs = c.catalogs
            for panel in self.panels.values():
                panel.load_catalogs(c.catalogs)

        mark_invalid(self.panels[c.kind].widgets, c.form_errors)
        self.message_label.setText(c.form_message or "")

        busy = c.submitting
        self.btn_save.setEnabled(not busy)
        self.btn_save.setText("Guardando…" if busy else "Guardar")
