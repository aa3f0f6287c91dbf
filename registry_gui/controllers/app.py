"""
Application controller.

Owns the shared store handle, the active screen, the banner and the four view
controllers. The GUI calls `tick()` once per redraw and renders from the state
held here.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from registry_engine.app_logger import get_logger
from registry_engine.clock import Clock, SystemClock
from registry_engine.entity_store import SharedStore

from .base import Notice, NoticeKind, OperationSlot, Spawner
from .dashboard import DashboardController
from .insertions import InsertionsController
from .login import LoginController
from .queries import QueriesController

_log = get_logger("app")


class Screen(str, Enum):
    LOGIN = "login"
    DASHBOARD = "dashboard"
    QUERIES = "queries"
    INSERTIONS = "insertions"
    ABOUT = "about"


class AppController:
    """
    Top-level UI state.

    Parameters
    ----------
    shared:
        The store handle passed to every view controller.
    spawn:
        Runs background units of work.
    profile_path:
        Connection profile location.
    clock:
        Time source for the dashboard refresh age.

    Notes
    -----
    The banner holds at most one notice, either an error or a success message.
    Setting one replaces the other. Changing screens clears it.
    """

    def __init__(
        self,
        shared: SharedStore,
        spawn: Spawner,
        profile_path: Path,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._shared = shared
        self._spawn = spawn
        self.screen = Screen.LOGIN
        self.connected = False
        self.banner: Notice | None = None

        self.login = LoginController(shared, spawn, profile_path)
        self.dashboard = DashboardController(shared, spawn, clock or SystemClock())
        self.queries = QueriesController(shared, spawn)
        self.insertions = InsertionsController(shared, spawn)

    @property
    def error(self) -> str | None:
        if self.banner is not None and self.banner.kind is NoticeKind.ERROR:
            return self.banner.message
        return None

    @property
    def success(self) -> str | None:
        if self.banner is not None and self.banner.kind is NoticeKind.SUCCESS:
            return self.banner.message
        return None

    def show(self, notice: Notice | None) -> None:
        if notice is not None:
            self.banner = notice

    def clear_banner(self) -> None:
        self.banner = None

    def set_screen(self, screen: Screen) -> None:
        if screen is not Screen.LOGIN and not self.connected:
            return
        self.screen = screen
        self.clear_banner()
        if screen is Screen.INSERTIONS:
            self.insertions.ensure_catalogs()

    def set_connected(self) -> None:
        """Enter the main area after a successful connect and start the initial loads."""
        self.connected = True
        self.set_screen(Screen.DASHBOARD)
        self.queries.initialize()
        self.dashboard.refresh()

    def tick(self) -> None:
        """Poll the controllers for the current screen. Never blocks."""
        if self.screen is Screen.LOGIN:
            if self.login.poll():
                self.set_connected()
            return
        self.show(self.dashboard.poll())
        self.show(self.queries.poll())
        self.show(self.insertions.poll())

    def disconnect(self) -> None:
        """Return to the login screen, forget per-connection state and drop the connection."""
        _log.info("Disconnect requested")
        self._fire_and_forget()
        self.connected = False
        self.screen = Screen.LOGIN
        self.clear_banner()
        self.dashboard.reset()
        self.queries.reset()
        self.insertions.reset()

    def shutdown(self) -> None:
        """Best-effort disconnect on exit. Nobody waits for its outcome."""
        if self.connected:
            self._fire_and_forget()
        self.connected = False

    def _fire_and_forget(self) -> None:
        shared = self._shared
        generation = shared.generation

        def work() -> bool:
            return shared.disconnect(generation)

        slot: OperationSlot[bool] = OperationSlot(self._spawn)
        slot.start(work, error_prefix="Error al desconectar")
        slot.cancel()
