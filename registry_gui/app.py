"""
Community registry GUI app.

Stacked login page and tabbed main area backed by the shared Entity Store.
A QTimer drives `AppController.tick()`; background units of work run on the
global QThreadPool.
"""

from __future__ import annotations

import sys
from typing import Callable

from PySide6.QtCore import QThreadPool, QTimer
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QStackedWidget,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from registry_engine.app_logger import get_logger, setup_logging
from registry_engine.clock import Clock, SystemClock
from registry_engine.entity_store import SharedStore
from registry_gui.controllers.app import AppController, Screen
from registry_gui.controllers.base import NoticeKind
from registry_gui.settings_store import default_profile_path
from registry_gui.tabs.about_tab import AboutTab
from registry_gui.tabs.dashboard_tab import DashboardTab
from registry_gui.tabs.insertions_tab import InsertionsTab
from registry_gui.tabs.login_tab import LoginTab
from registry_gui.tabs.queries_tab import QueriesTab

_log = get_logger("gui")

TICK_INTERVAL_MS = 50

_TAB_SCREENS = [Screen.DASHBOARD, Screen.QUERIES, Screen.INSERTIONS, Screen.ABOUT]

_BANNER_STYLES = {
    NoticeKind.ERROR: "background: #fdecea; color: #c0392b; padding: 6px;",
    NoticeKind.SUCCESS: "background: #eafaf1; color: #1e8449; padding: 6px;",
}


def thread_pool_spawner(job: Callable[[], None]) -> None:
    """Run a background unit of work on the global Qt thread pool."""
    QThreadPool.globalInstance().start(job)


class AppWindow(QWidget):
    """
    Main window for the community registry.

    Responsibilities
    ----------------
    - Switch between the login page and the tabbed main area.
    - Show the dismissible banner.
    - Drive the controller tick and re-render the visible page.
    - Fire a best-effort disconnect on close.
    """

    def __init__(self, controller: AppController, clock: Clock) -> None:
        super().__init__()
        self._c = controller
        self.setWindowTitle("Registro Comunitario")
        self.resize(1180, 720)

        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)

        header = QWidget()
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(8, 8, 8, 8)

        title = QLabel("Registro Comunitario")
        f = title.font()
        f.setPointSize(16)
        f.setBold(True)
        title.setFont(f)

        self.btn_disconnect = QPushButton("Desconectar")
        self.btn_disconnect.clicked.connect(self._disconnect)

        header_layout.addWidget(title)
        header_layout.addStretch(1)
        header_layout.addWidget(self.btn_disconnect)
        root.addWidget(header)

        self.banner = QWidget()
        banner_layout = QHBoxLayout(self.banner)
        banner_layout.setContentsMargins(0, 0, 0, 0)
        self.banner_label = QLabel("")
        self.banner_label.setWordWrap(True)
        btn_dismiss = QPushButton("✕")
        btn_dismiss.setFixedWidth(28)
        btn_dismiss.clicked.connect(self._c.clear_banner)
        banner_layout.addWidget(self.banner_label, 1)
        banner_layout.addWidget(btn_dismiss)
        root.addWidget(self.banner)

        self.pages = QStackedWidget()

        self.login_tab = LoginTab(controller.login)
        self.pages.addWidget(self.login_tab)

        self.tabs = QTabWidget()
        self.dashboard_tab = DashboardTab(controller.dashboard)
        self.tabs.addTab(self.dashboard_tab, "Dashboard")
        self.queries_tab = QueriesTab(controller.queries, clock)
        self.tabs.addTab(self.queries_tab, "Consultas")
        self.insertions_tab = InsertionsTab(controller.insertions)
        self.tabs.addTab(self.insertions_tab, "Inserciones")
        self.about_tab = AboutTab()
        self.tabs.addTab(self.about_tab, "Acerca de")
        self.tabs.currentChanged.connect(self._tab_changed)
        self.pages.addWidget(self.tabs)

        root.addWidget(self.pages, 1)

        self._timer = QTimer(self)
        self._timer.setInterval(TICK_INTERVAL_MS)
        self._timer.timeout.connect(self._tick)
        self._timer.start()
        self._render()

    def _tab_changed(self, index: int) -> None:
        if 0 <= index < len(_TAB_SCREENS):
            self._c.set_screen(_TAB_SCREENS[index])

    def _disconnect(self) -> None:
        self._c.disconnect()
        self._render()

    def _tick(self) -> None:
        self._c.tick()
        self._render()

    def _render(self) -> None:
        c = self._c
        notice = c.banner
        self.banner.setVisible(notice is not None)
        if notice is not None:
            self.banner_label.setText(notice.message)
            self.banner.setStyleSheet(_BANNER_STYLES[notice.kind])

        if c.screen is Screen.LOGIN:
            self.pages.setCurrentWidget(self.login_tab)
            self.btn_disconnect.setVisible(False)
            self.login_tab.render()
            return

        self.pages.setCurrentWidget(self.tabs)
        self.btn_disconnect.setVisible(True)
        index = _TAB_SCREENS.index(c.screen)
        if self.tabs.currentIndex() != index:
            self.tabs.blockSignals(True)
            self.tabs.setCurrentIndex(index)
            self.tabs.blockSignals(False)

        if c.screen is Screen.DASHBOARD:
            self.dashboard_tab.render()
        elif c.screen is Screen.QUERIES:
            self.queries_tab.render()
        elif c.screen is Screen.INSERTIONS:
            self.insertions_tab.render()

    def closeEvent(self, event) -> None:  # type: ignore[override]
        """
        Handle window close with a fire-and-forget disconnect.

        Parameters
        ----------
        event:
            Qt close event.
        """
        try:
            self._timer.stop()
            self._c.shutdown()
        finally:
            super().closeEvent(event)


def main() -> int:
    """
    Run the community registry GUI application.

    Returns
    -------
    int
        Qt application exit code.
    """
    setup_logging()
    app = QApplication(sys.argv)
    clock = SystemClock()
    profile_path = default_profile_path()
    _log.info("Using connection profile %s", profile_path)
    controller = AppController(
        SharedStore(), thread_pool_spawner, profile_path, clock=clock
    )
    w = AppWindow(controller, clock)
    w.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
