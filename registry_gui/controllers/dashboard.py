"""Dashboard view controller."""

from __future__ import annotations

from datetime import datetime

from registry_engine.channel import Success
from registry_engine.clock import Clock
from registry_engine.data_models import DashboardStats
from registry_engine.entity_store import SharedStore

from .base import Notice, OperationSlot, Spawner


class DashboardController:
    """
    Keeps the dashboard's aggregate counts in step with one background refresh.

    Notes
    -----
    On failure the stats are cleared to an empty `DashboardStats` and the error
    is returned as a Notice for the application banner.
    """

    def __init__(self, shared: SharedStore, spawn: Spawner, clock: Clock) -> None:
        self._shared = shared
        self._clock = clock
        self._slot: OperationSlot[DashboardStats] = OperationSlot(spawn)
        self.stats: DashboardStats | None = None
        self.loading = False
        self.last_refresh: datetime | None = None

    def refresh(self) -> None:
        self.loading = True
        self.last_refresh = self._clock.now()
        shared = self._shared

        def work() -> DashboardStats:
            with shared.acquire() as store:
                return store.dashboard_stats()

        self._slot.start(work, error_prefix="Error al cargar estadísticas")

    def reset(self) -> None:
        """Drop a pending refresh and the stats of the previous connection."""
        self._slot.cancel()
        self.stats = None
        self.loading = False
        self.last_refresh = None

    def poll(self) -> Notice | None:
        outcome = self._slot.poll()
        if outcome is None:
            return None
        self.loading = False
        if isinstance(outcome, Success):
            self.stats = outcome.value
            return None
        self.stats = DashboardStats()
        return Notice.error(outcome.message)

    def refresh_age_text(self) -> str:
        """Human-readable time since the last refresh, e.g. ``Actualizado hace 1m 5s``."""
        if self.last_refresh is None:
            return "Sin actualizar"
        elapsed = max(int((self._clock.now() - self.last_refresh).total_seconds()), 0)
        minutes, seconds = divmod(elapsed, 60)
        if minutes:
            return f"Actualizado hace {minutes}m {seconds}s"
        return f"Actualizado hace {seconds}s"
