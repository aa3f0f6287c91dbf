"""
Queries tab.

Purpose
-------
- Filter persons, organizations, activities and trips.
- Show the current kind's result list in a read-only table.

Notes
-----
- Filter widgets are read into the controller's filters only when a query is
  triggered (execute or kind change).
- Tables are rebuilt only when the controller's result tuple changes.
"""

from __future__ import annotations

from PySide6.QtWidgets import (
    QAbstractItemView,
    QComboBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QStackedWidget,
    QTableWidget,
    QVBoxLayout,
    QWidget,
)

from registry_engine.clock import Clock
from registry_engine.data_models import (
    ActivityFilter,
    OrganizationFilter,
    PersonFilter,
    TripFilter,
)
from registry_engine.formatting import (
    calculate_age,
    format_date,
    format_optional_date,
    parse_date,
    truncate_text,
)
from registry_gui.controllers.catalogs import Catalogs
from registry_gui.controllers.queries import QueriesController, QueryKind
from registry_gui.tabs.common import fill_combo, fill_table, optional_int

_PERSON_HEADERS = [
    "ID",
    "RUT",
    "Nombre",
    "Edad",
    "Género",
    "Nacionalidad",
    "Unidad Vecinal",
    "Dirección",
    "Email",
]
_ORGANIZATION_HEADERS = [
    "ID",
    "Nombre",
    "Dirección",
    "Fundación",
    "Personalidad Jurídica",
    "Email",
    "Unidad Vecinal",
]
_ACTIVITY_HEADERS = ["ID", "Nombre", "Inicio", "Término", "Unidad Vecinal", "Descripción"]
_TRIP_HEADERS = ["ID", "Nombre", "Destino", "Salida", "Regreso", "Unidad Vecinal"]


def _date_edit() -> QLineEdit:
    edit = QLineEdit()
    edit.setPlaceholderText("dd/mm/aaaa")
    return edit


def _text(edit: QLineEdit) -> str:
    return edit.text().strip()


class _PersonFilterPanel(QWidget):
    def __init__(self) -> None:
        super().__init__()
        form = QFormLayout(self)
        self.first_name = QLineEdit()
        self.family_name = QLineEdit()
        self.national_id = QLineEdit()
        self.gender = QComboBox()
        self.nationality = QComboBox()
        self.unit = QComboBox()
        self.macro = QComboBox()
        self.age_min = QLineEdit()
        self.age_max = QLineEdit()

        ages = QHBoxLayout()
        ages.addWidget(self.age_min)
        ages.addWidget(QLabel("a"))
        ages.addWidget(self.age_max)

        form.addRow("Nombre:", self.first_name)
        form.addRow("Apellido:", self.family_name)
        form.addRow("RUT:", self.national_id)
        form.addRow("Género:", self.gender)
        form.addRow("Nacionalidad:", self.nationality)
        form.addRow("Unidad Vecinal:", self.unit)
        form.addRow("Macrosector:", self.macro)
        form.addRow("Edad:", ages)

    def read(self) -> PersonFilter:
        return PersonFilter(
            first_name=_text(self.first_name),
            family_name=_text(self.family_name),
            national_id=_text(self.national_id),
            gender_id=self.gender.currentData(),
            nationality_id=self.nationality.currentData(),
            unit_id=self.unit.currentData(),
            macro_sector_id=self.macro.currentData(),
            age_min=optional_int(self.age_min),
            age_max=optional_int(self.age_max),
        )

    def clear(self) -> None:
        for edit in (self.first_name, self.family_name, self.national_id):
            edit.clear()
        self.age_min.clear()
        self.age_max.clear()
        for combo in (self.gender, self.nationality, self.unit, self.macro):
            combo.setCurrentIndex(0)

    def load_catalogs(self, catalogs: Catalogs) -> None:
        fill_combo(self.gender, ((g.name, g.id) for g in catalogs.genders))
        fill_combo(self.nationality, ((n.name, n.id) for n in catalogs.nationalities))
        fill_combo(self.unit, ((u.name, u.id) for u in catalogs.neighborhood_units))
        fill_combo(self.macro, ((m.name, m.id) for m in catalogs.macro_sectors))


class _OrganizationFilterPanel(QWidget):
    def __init__(self) -> None:
        super().__init__()
        form = QFormLayout(self)
        self.name = QLineEdit()
        self.unit = QComboBox()
        self.macro = QComboBox()
        self.founded_from = _date_edit()
        self.founded_to = _date_edit()
        form.addRow("Nombre:", self.name)
        form.addRow("Unidad Vecinal:", self.unit)
        form.addRow("Macrosector:", self.macro)
        form.addRow("Fundada desde:", self.founded_from)
        form.addRow("Fundada hasta:", self.founded_to)

    def read(self) -> OrganizationFilter:
        return OrganizationFilter(
            name=_text(self.name),
            unit_id=self.unit.currentData(),
            macro_sector_id=self.macro.currentData(),
            founded_from=parse_date(self.founded_from.text()),
            founded_to=parse_date(self.founded_to.text()),
        )

    def clear(self) -> None:
        for edit in (self.name, self.founded_from, self.founded_to):
            edit.clear()
        self.unit.setCurrentIndex(0)
        self.macro.setCurrentIndex(0)

    def load_catalogs(self, catalogs: Catalogs) -> None:
        fill_combo(self.unit, ((u.name, u.id) for u in catalogs.neighborhood_units))
        fill_combo(self.macro, ((m.name, m.id) for m in catalogs.macro_sectors))


class _ActivityFilterPanel(QWidget):
    def __init__(self) -> None:
        super().__init__()
        form = QFormLayout(self)
        self.name = QLineEdit()
        self.unit = QComboBox()
        self.macro = QComboBox()
        self.date_from = _date_edit()
        self.date_to = _date_edit()
        form.addRow("Nombre:", self.name)
        form.addRow("Unidad Vecinal:", self.unit)
        form.addRow("Macrosector:", self.macro)
        form.addRow("Desde:", self.date_from)
        form.addRow("Hasta:", self.date_to)

    def read(self) -> ActivityFilter:
        return ActivityFilter(
            name=_text(self.name),
            unit_id=self.unit.currentData(),
            macro_sector_id=self.macro.currentData(),
            date_from=parse_date(self.date_from.text()),
            date_to=parse_date(self.date_to.text()),
        )

    def clear(self) -> None:
        for edit in (self.name, self.date_from, self.date_to):
            edit.clear()
        self.unit.setCurrentIndex(0)
        self.macro.setCurrentIndex(0)

    def load_catalogs(self, catalogs: Catalogs) -> None:
        fill_combo(self.unit, ((u.name, u.id) for u in catalogs.neighborhood_units))
        fill_combo(self.macro, ((m.name, m.id) for m in catalogs.macro_sectors))


class _TripFilterPanel(QWidget):
    def __init__(self) -> None:
        super().__init__()
        form = QFormLayout(self)
        self.name = QLineEdit()
        self.destination = QLineEdit()
        self.unit = QComboBox()
        self.departure_from = _date_edit()
        self.departure_to = _date_edit()
        form.addRow("Nombre:", self.name)
        form.addRow("Destino:", self.destination)
        form.addRow("Unidad Vecinal:", self.unit)
        form.addRow("Salida desde:", self.departure_from)
        form.addRow("Salida hasta:", self.departure_to)

    def read(self) -> TripFilter:
        return TripFilter(
            name=_text(self.name),
            destination=_text(self.destination),
            unit_id=self.unit.currentData(),
            departure_from=parse_date(self.departure_from.text()),
            departure_to=parse_date(self.departure_to.text()),
        )

    def clear(self) -> None:
        for edit in (self.name, self.destination, self.departure_from, self.departure_to):
            edit.clear()
        self.unit.setCurrentIndex(0)

    def load_catalogs(self, catalogs: Catalogs) -> None:
        fill_combo(self.unit, ((u.name, u.id) for u in catalogs.neighborhood_units))


class QueriesTab(QWidget):
    """
    Queries tab bound to a QueriesController.

    Parameters
    ----------
    controller:
        Owner of filters, results and catalogs.
    clock:
        Reference date for the age column.
    """

    def __init__(self, controller: QueriesController, clock: Clock) -> None:
        super().__init__()
        self._c = controller
        self._clock = clock
        self._shown_catalogs: Catalogs | None = None
        self._shown_rows: tuple[QueryKind, object] | None = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)

        top = QHBoxLayout()
        self.kind_combo = QComboBox()
        for kind in QueryKind:
            self.kind_combo.addItem(kind.label, kind)
        self.kind_combo.currentIndexChanged.connect(self._kind_changed)
        top.addWidget(QLabel("Consultar:"))
        top.addWidget(self.kind_combo, 1)
        layout.addLayout(top)

        box = QGroupBox("Filtros")
        box_layout = QVBoxLayout(box)
        self.panels = {
            QueryKind.PERSONS: _PersonFilterPanel(),
            QueryKind.ORGANIZATIONS: _OrganizationFilterPanel(),
            QueryKind.ACTIVITIES: _ActivityFilterPanel(),
            QueryKind.TRIPS: _TripFilterPanel(),
        }
        self.stack = QStackedWidget()
        for kind in QueryKind:
            self.stack.addWidget(self.panels[kind])
        box_layout.addWidget(self.stack)

        buttons = QHBoxLayout()
        self.btn_execute = QPushButton("Buscar")
        self.btn_execute.clicked.connect(self._execute)
        self.btn_clear = QPushButton("Limpiar filtros")
        self.btn_clear.clicked.connect(self._clear)
        buttons.addWidget(self.btn_execute)
        buttons.addWidget(self.btn_clear)
        buttons.addStretch(1)
        box_layout.addLayout(buttons)
        layout.addWidget(box)

        self.status_label = QLabel("")
        self.status_label.setStyleSheet("color: #666;")
        layout.addWidget(self.status_label)

        self.table = QTableWidget()
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        layout.addWidget(self.table, 1)

    def _sync_filters(self) -> None:
        c = self._c
        c.person_filter = self.panels[QueryKind.PERSONS].read()
        c.organization_filter = self.panels[QueryKind.ORGANIZATIONS].read()
        c.activity_filter = self.panels[QueryKind.ACTIVITIES].read()
        c.trip_filter = self.panels[QueryKind.TRIPS].read()

    def _kind_changed(self, index: int) -> None:
        kind = QueryKind(self.kind_combo.itemData(index))
        self.stack.setCurrentIndex(index)
        self._sync_filters()
        self._c.set_query_kind(kind)

    def _execute(self) -> None:
        self._sync_filters()
        self._c.execute()

    def _clear(self) -> None:
        for panel in self.panels.values():
            panel.clear()
        self._c.clear_filters()

    def render(self) -> None:
        c = self._c
        if c.catalogs is not self._shown_catalogs:
            self._shown_catalogs = c.catalogs
            for panel in self.panels.values():
                panel.load_catalogs(c.catalogs)

        self.btn_execute.setEnabled(not c.loading)
        self.status_label.setText("Cargando…" if c.loading else "")

        kind = c.query_kind
        rows = self._rows_for(kind)
        shown = self._shown_rows
        if shown is not None and shown[0] is kind and shown[1] is rows:
            return
        self._shown_rows = (kind, rows)
        self._fill(kind)

    def _rows_for(self, kind: QueryKind) -> object:
        c = self._c
        if kind is QueryKind.PERSONS:
            return c.persons
        if kind is QueryKind.ORGANIZATIONS:
            return c.organizations
        if kind is QueryKind.ACTIVITIES:
            return c.activities
        return c.trips

    def _fill(self, kind: QueryKind) -> None:
        c = self._c
        if kind is QueryKind.PERSONS:
            today = self._clock.today()
            fill_table(
                self.table,
                _PERSON_HEADERS,
                (
                    (
                        str(p.id),
                        p.national_id,
                        p.full_name,
                        str(calculate_age(p.birth_date, today)),
                        p.gender_name or "",
                        p.nationality_name or "",
                        p.unit_name or "",
                        p.address,
                        p.email or "",
                    )
                    for p in c.persons
                ),
            )
        elif kind is QueryKind.ORGANIZATIONS:
            fill_table(
                self.table,
                _ORGANIZATION_HEADERS,
                (
                    (
                        str(o.id),
                        o.name,
                        o.address,
                        format_date(o.founded_on),
                        o.legal_personality,
                        o.email or "",
                        o.unit_name or "",
                    )
                    for o in c.organizations
                ),
            )
        elif kind is QueryKind.ACTIVITIES:
            fill_table(
                self.table,
                _ACTIVITY_HEADERS,
                (
                    (
                        str(a.id),
                        a.name,
                        format_date(a.start_date),
                        format_optional_date(a.end_date),
                        a.unit_name or "",
                        truncate_text(a.description or "", 60),
                    )
                    for a in c.activities
                ),
            )
        else:
            fill_table(
                self.table,
                _TRIP_HEADERS,
                (
                    (
                        str(t.id),
                        t.name,
                        t.destination,
                        format_date(t.departure_date),
                        format_optional_date(t.return_date),
                        t.unit_name or "",
                    )
                    for t in c.trips
                ),
            )
