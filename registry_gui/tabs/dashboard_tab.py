from __future__ import annotations

from PySide6.QtWidgets import (
    QAbstractItemView,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QTableWidget,
    QVBoxLayout,
    QWidget,
)

from registry_engine.data_models import DashboardStats
from registry_gui.controllers.dashboard import DashboardController
from registry_gui.tabs.common import fill_table


def _card(title: str) -> tuple[QGroupBox, QLabel]:
    box = QGroupBox(title)
    layout = QVBoxLayout(box)
    value = QLabel("-")
    f = value.font()
    f.setPointSize(20)
    f.setBold(True)
    value.setFont(f)
    layout.addWidget(value)
    return box, value


class DashboardTab(QWidget):
    """
    Dashboard tab.

    Responsibilities
    ----------------
    - Show aggregate counts and the per-macro-sector person breakdown.
    - Trigger a background refresh on demand.
    """

    def __init__(self, controller: DashboardController) -> None:
        super().__init__()
        self._c = controller
        self._shown: DashboardStats | None = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)

        top = QHBoxLayout()
        self.btn_refresh = QPushButton("Actualizar")
        self.btn_refresh.clicked.connect(self._c.refresh)
        self.age_label = QLabel("")
        self.age_label.setStyleSheet("color: #666;")
        top.addWidget(self.btn_refresh)
        top.addWidget(self.age_label)
        top.addStretch(1)
        layout.addLayout(top)

        grid = QGridLayout()
        self._values: dict[str, QLabel] = {}
        cards = [
            ("total_persons", "Personas Mayores"),
            ("total_organizations", "Organizaciones"),
            ("total_activities", "Actividades"),
            ("total_trips", "Viajes"),
            ("activities_this_month", "Actividades este mes"),
            ("new_persons_this_month", "Nuevas personas este mes"),
        ]
        for i, (key, title) in enumerate(cards):
            box, value = _card(title)
            self._values[key] = value
            grid.addWidget(box, i // 3, i % 3)
        layout.addLayout(grid)

        sectors = QGroupBox("Personas por macrosector")
        sectors_layout = QVBoxLayout(sectors)
        self.sector_table = QTableWidget()
        self.sector_table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        sectors_layout.addWidget(self.sector_table)
        layout.addWidget(sectors, 1)

    def render(self) -> None:
        self.btn_refresh.setEnabled(not self._c.loading)
        self.age_label.setText(
            "Cargando…" if self._c.loading else self._c.refresh_age_text()
        )

        stats = self._c.stats
        if stats is self._shown:
            return
        self._shown = stats
        if stats is None:
            for label in self._values.values():
                label.setText("-")
            fill_table(self.sector_table, ["Macrosector", "Personas"], [])
            return

        for key, label in self._values.items():
            value = getattr(stats, key)
            label.setText("N/D" if value is None else str(value))
        fill_table(
            self.sector_table,
            ["Macrosector", "Personas"],
            ((name, str(count)) for name, count in stats.persons_by_macro_sector),
        )
