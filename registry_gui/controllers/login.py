"""Login view controller."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from registry_engine.app_logger import get_logger
from registry_engine.channel import Success
from registry_engine.data_models import DEFAULT_DRIVER, ConnectionConfig
from registry_engine.entity_store import SharedStore
from registry_engine.errors import ConnectionFailureError
from registry_gui.settings_store import load_connection_profile, save_connection_profile

from .base import OperationSlot, Spawner

_log = get_logger("login")

MISSING_FIELDS_MESSAGE = "Por favor complete todos los campos requeridos"


@dataclass(slots=True)
class LoginForm:
    host: str = ""
    port: str = ""
    username: str = ""
    password: str = ""
    database: str = ""
    driver: str = DEFAULT_DRIVER

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> "LoginForm":
        return cls(
            host=config.host,
            port=str(config.port),
            username=config.username,
            password=config.password,
            database=config.database,
            driver=config.driver,
        )

    def to_config(self) -> ConnectionConfig | None:
        """Return the parsed configuration, or None if a required field is invalid."""
        host = self.host.strip()
        username = self.username.strip()
        database = self.database.strip()
        try:
            port = int(self.port.strip())
        except ValueError:
            return None
        if not host or not username or not database or not 1 <= port <= 65535:
            return None
        return ConnectionConfig(
            host=host,
            port=port,
            username=username,
            password=self.password,
            database=database,
            driver=self.driver,
        )


class LoginController:
    """
    Connection form and background connect.

    Attributes
    ----------
    error:
        Inline error shown above the form. Cleared when a new attempt starts.
    connecting:
        True while a connect is in flight.
    """

    def __init__(self, shared: SharedStore, spawn: Spawner, profile_path: Path) -> None:
        self._shared = shared
        self._profile_path = profile_path
        self._slot: OperationSlot[ConnectionConfig] = OperationSlot(spawn)
        self.form = LoginForm.from_config(load_connection_profile(profile_path))
        self.error: str | None = None
        self.connecting = False

    def connect(self) -> bool:
        """
        Start a background connect with the current form values.

        Returns
        -------
        bool
            False if a connect is already in flight or the form is incomplete.
        """
        if self._slot.pending:
            return False
        config = self.form.to_config()
        if config is None:
            self.error = MISSING_FIELDS_MESSAGE
            return False

        self.error = None
        self.connecting = True
        shared = self._shared
        profile_path = self._profile_path

        def work() -> ConnectionConfig:
            with shared.open_session(config) as store:
                if not store.test_connection():
                    store.disconnect()
                    raise ConnectionFailureError("Error al probar la conexión")
            try:
                save_connection_profile(profile_path, config)
            except OSError as exc:
                _log.warning("Could not save connection profile %s: %s", profile_path, exc)
            return config

        self._slot.start(work, error_prefix="Error de conexión")
        return True

    def poll(self) -> bool:
        """
        Absorb a completed connect.

        Returns
        -------
        bool
            True exactly once, on the tick a connect succeeds.
        """
        outcome = self._slot.poll()
        if outcome is None:
            return False
        self.connecting = False
        if isinstance(outcome, Success):
            _log.info("Connected to %s", outcome.value.describe())
            return True
        self.error = outcome.message
        return False
