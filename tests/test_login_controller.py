from __future__ import annotations

import json
from pathlib import Path

from registry_engine.data_models import ConnectionConfig
from registry_engine.entity_store import EntityStore, SharedStore
from registry_gui.controllers.base import inline_spawner
from registry_gui.controllers.login import MISSING_FIELDS_MESSAGE, LoginController


def _login_for(config: ConnectionConfig, shared: SharedStore, profile: Path) -> LoginController:
    controller = LoginController(shared, inline_spawner, profile)
    controller.form.driver = config.driver
    controller.form.database = config.database
    return controller


def test_form_starts_from_defaults_without_profile(tmp_path: Path) -> None:
    controller = LoginController(SharedStore(), inline_spawner, tmp_path / "db_config.json")

    assert controller.form.host == "localhost"
    assert controller.form.port == "5432"
    assert controller.form.username == "postgres"
    assert controller.form.database == "comunidad"
    assert controller.error is None


def test_successful_connect_saves_profile(
    tmp_path: Path, sqlite_config: ConnectionConfig
) -> None:
    store = EntityStore()
    shared = SharedStore(store)
    profile = tmp_path / "db_config.json"
    controller = _login_for(sqlite_config, shared, profile)

    assert controller.connect() is True
    assert controller.connecting
    assert controller.poll() is True

    assert not controller.connecting
    assert controller.error is None
    assert store.connected
    payload = json.loads(profile.read_text(encoding="utf-8"))
    assert payload["database"] == sqlite_config.database
    assert payload["driver"] == "sqlite"
    assert controller.poll() is False
    store.disconnect()


def test_missing_required_fields_are_reported_inline(tmp_path: Path) -> None:
    controller = LoginController(SharedStore(), inline_spawner, tmp_path / "db_config.json")

    controller.form.host = "  "
    assert controller.connect() is False
    assert controller.error == MISSING_FIELDS_MESSAGE

    controller.form.host = "localhost"
    controller.form.port = "70000"
    assert controller.connect() is False
    controller.form.port = "abc"
    assert controller.connect() is False
    assert not controller.connecting


def test_connection_failure_keeps_login_state(tmp_path: Path) -> None:
    store = EntityStore()
    profile = tmp_path / "db_config.json"
    controller = LoginController(SharedStore(store), inline_spawner, profile)
    controller.form.driver = "sqlite"
    controller.form.database = str(tmp_path / "missing" / "registry.sqlite")

    assert controller.connect() is True
    assert controller.poll() is False

    assert controller.error is not None
    assert controller.error.startswith("Error de conexión: Error al conectar con la base de datos")
    assert not store.connected
    assert not profile.exists()
    assert controller.form.database.endswith("registry.sqlite")


class _UnresponsiveStore(EntityStore):
    """Opens a connection that then fails its liveness test."""

    def test_connection(self) -> bool:
        return False


def test_failed_liveness_test_releases_connection(
    tmp_path: Path, sqlite_config: ConnectionConfig
) -> None:
    store = _UnresponsiveStore()
    profile = tmp_path / "db_config.json"
    controller = _login_for(sqlite_config, SharedStore(store), profile)

    assert controller.connect() is True
    assert controller.poll() is False

    assert controller.error == "Error de conexión: Error al probar la conexión"
    assert not store.connected
    assert not profile.exists()
