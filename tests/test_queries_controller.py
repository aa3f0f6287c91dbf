from __future__ import annotations

from conftest import DeferredSpawner, make_person
from registry_engine.data_models import PersonFilter
from registry_engine.entity_store import EntityStore, SharedStore
from registry_gui.controllers.base import NoticeKind, inline_spawner
from registry_gui.controllers.queries import QueriesController, QueryKind


def test_initialize_loads_catalogs_and_persons(
    shared: SharedStore, store: EntityStore, seeded: dict[str, int]
) -> None:
    store.insert_person(make_person(seeded))
    controller = QueriesController(shared, inline_spawner)

    controller.initialize()
    assert controller.loading
    assert controller.poll() is None

    assert not controller.loading
    assert controller.catalogs_loaded
    assert [g.name for g in controller.catalogs.genders] == ["Femenino", "Masculino", "Otro"]
    assert [u.name for u in controller.catalogs.neighborhood_units] == ["UV 1", "UV 2"]
    assert [p.national_id for p in controller.persons] == ["12345678-9"]


def test_set_query_kind_runs_query_for_new_kind(shared: SharedStore) -> None:
    controller = QueriesController(shared, inline_spawner)

    controller.set_query_kind(QueryKind.TRIPS)
    controller.poll()

    assert controller.query_kind is QueryKind.TRIPS
    assert controller.trips == ()
    assert not controller.loading


def test_execute_applies_current_filter(
    shared: SharedStore, store: EntityStore, seeded: dict[str, int]
) -> None:
    store.insert_person(make_person(seeded, national_id="11111111-1"))
    store.insert_person(make_person(seeded, national_id="22222222-2", first_name="Luis"))
    controller = QueriesController(shared, inline_spawner)

    controller.person_filter = PersonFilter(first_name="lu")
    controller.execute()
    controller.poll()

    assert [p.first_name for p in controller.persons] == ["Luis"]

    controller.clear_filters()
    assert controller.person_filter.is_empty()


def test_stale_query_result_is_dropped(
    shared: SharedStore, store: EntityStore, seeded: dict[str, int]
) -> None:
    spawner = DeferredSpawner()
    controller = QueriesController(shared, spawner)
    controller.execute()
    stale_job = spawner.jobs.pop()

    store.insert_person(make_person(seeded))
    controller.execute()
    spawner.run_all()
    controller.poll()
    assert len(controller.persons) == 1

    # The replaced query completes afterwards against a changed table.
    store.insert_person(make_person(seeded, national_id="22222222-2"))
    stale_job()
    assert controller.poll() is None
    assert len(controller.persons) == 1


def test_query_failure_clears_results(
    shared: SharedStore, store: EntityStore, seeded: dict[str, int]
) -> None:
    store.insert_person(make_person(seeded))
    controller = QueriesController(shared, inline_spawner)
    controller.execute()
    controller.poll()
    assert controller.persons

    store.disconnect()
    controller.execute()
    notice = controller.poll()

    assert notice is not None
    assert notice.kind is NoticeKind.ERROR
    assert notice.message == (
        "Error al consultar personas mayores: No hay conexión a la base de datos"
    )
    assert controller.persons == ()
    assert not controller.loading


def test_initialize_without_live_connection_reports_not_connected() -> None:
    controller = QueriesController(SharedStore(EntityStore()), inline_spawner)

    controller.initialize()
    notice = controller.poll()

    assert notice is not None
    assert "No hay conexión a la base de datos" in notice.message
    assert not controller.catalogs_loaded
