from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import create_engine, insert
from sqlalchemy.exc import OperationalError

from conftest import make_person
from registry_engine import schema
from registry_engine.data_models import (
    Activity,
    ActivityFilter,
    ConnectionConfig,
    Organization,
    OrganizationFilter,
    PersonFilter,
    TripFilter,
)
from registry_engine.entity_store import EntityStore, SharedStore
from registry_engine.errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    MalformedInputError,
    NotConnectedError,
)


def _organization(ids: dict[str, int], **overrides: object) -> Organization:
    values: dict[str, object] = {
        "id": None,
        "name": "Club Adulto Mayor",
        "address": "Av. Central 100",
        "unit_id": ids["UV 1"],
        "founded_on": date(1999, 5, 1),
        "legal_personality": "PJ-123",
        "email": None,
    }
    values.update(overrides)
    return Organization(**values)  # type: ignore[arg-type]


def _activity(ids: dict[str, int], name: str, start: date, **overrides: object) -> Activity:
    values: dict[str, object] = {
        "id": None,
        "name": name,
        "unit_id": ids["UV 1"],
        "start_date": start,
        "end_date": None,
        "description": None,
    }
    values.update(overrides)
    return Activity(**values)  # type: ignore[arg-type]


def test_operations_without_connection_raise_not_connected() -> None:
    store = EntityStore()

    assert not store.connected
    assert store.test_connection() is False
    with pytest.raises(NotConnectedError):
        store.list_genders()
    with pytest.raises(NotConnectedError):
        store.dashboard_stats()


def test_insert_without_connection_still_validates_first() -> None:
    store = EntityStore()

    with pytest.raises(MalformedInputError):
        store.insert_macro_sector("  ")
    with pytest.raises(NotConnectedError):
        store.insert_macro_sector("Centro")


def test_connect_failure_is_reported_and_leaves_store_disconnected(tmp_path: Path) -> None:
    store = EntityStore()
    config = ConnectionConfig(driver="sqlite", database=str(tmp_path / "missing" / "x.sqlite"))

    with pytest.raises(ConnectionFailureError) as excinfo:
        store.connect(config)

    assert str(excinfo.value).startswith("Error al conectar con la base de datos")
    assert not store.connected


class _RefusingEngine:
    def __init__(self) -> None:
        self.disposed = False

    def connect(self) -> None:
        raise OperationalError("connect", {}, ConnectionRefusedError("refused"))

    def dispose(self) -> None:
        self.disposed = True


def test_failed_connect_disposes_the_new_engine() -> None:
    engine = _RefusingEngine()
    store = EntityStore(engine_factory=lambda url, **kwargs: engine)

    with pytest.raises(ConnectionFailureError) as excinfo:
        store.connect(ConnectionConfig(driver="sqlite", database="unused.sqlite"))

    assert str(excinfo.value) == "Error al conectar con la base de datos: refused"
    assert engine.disposed
    assert not store.connected


def test_connect_then_genders_are_ordered_by_name(store: EntityStore) -> None:
    assert store.test_connection() is True

    names = [g.name for g in store.list_genders()]

    assert names == ["Femenino", "Masculino", "Otro"]


def test_reconnect_replaces_connection(store: EntityStore, sqlite_config: ConnectionConfig) -> None:
    store.connect(sqlite_config)

    assert store.connected
    assert store.test_connection() is True
    store.disconnect()
    assert not store.connected
    store.disconnect()


def test_neighborhood_units_carry_macro_sector_label(store: EntityStore) -> None:
    units = store.list_neighborhood_units()

    assert [(u.name, u.macro_sector_name) for u in units] == [("UV 1", "Norte"), ("UV 2", "Sur")]


def test_unit_with_dangling_macro_sector_is_still_listed(store: EntityStore) -> None:
    # SQLite does not enforce foreign keys unless asked to.
    store.insert_neighborhood_unit("UV 0", 999)

    units = {u.name: u for u in store.list_neighborhood_units()}

    assert units["UV 0"].macro_sector_id == 999
    assert units["UV 0"].macro_sector_name is None


def test_inserted_person_is_listed_with_monotonic_id(
    store: EntityStore, seeded: dict[str, int]
) -> None:
    first = store.insert_person(make_person(seeded, national_id="11111111-1"))
    second = store.insert_person(
        make_person(seeded, national_id="22222222-2", first_name="Berta", email="b@mail.cl")
    )

    assert second > first

    persons = store.list_persons()
    by_id = {p.id: p for p in persons}
    assert set(by_id) == {first, second}
    assert by_id[second].email == "b@mail.cl"
    assert by_id[second].gender_name == "Femenino"
    assert by_id[second].nationality_name == "Chilena"
    assert by_id[second].unit_name == "UV 1"
    assert by_id[first].birth_date == date(1950, 6, 1)


def test_duplicate_national_id_is_constraint_violation(
    store: EntityStore, seeded: dict[str, int]
) -> None:
    store.insert_person(make_person(seeded))

    with pytest.raises(ConstraintViolationError):
        store.insert_person(make_person(seeded, first_name="Otra"))

    assert len(store.list_persons()) == 1


def test_malformed_person_never_reaches_store(store: EntityStore, seeded: dict[str, int]) -> None:
    with pytest.raises(MalformedInputError) as excinfo:
        store.insert_person(make_person(seeded, national_id="12345678"))
    assert excinfo.value.fields == ("national_id",)

    with pytest.raises(MalformedInputError) as excinfo:
        store.insert_person(make_person(seeded, email="a@b"))
    assert excinfo.value.fields == ("email",)

    assert store.list_persons() == []


def test_blank_organization_name_is_rejected_before_store_call(
    store: EntityStore, seeded: dict[str, int]
) -> None:
    with pytest.raises(MalformedInputError) as excinfo:
        store.insert_organization(_organization(seeded, name="   "))

    assert "name" in excinfo.value.fields
    assert store.list_organizations() == []


def test_activity_end_before_start_is_rejected(store: EntityStore, seeded: dict[str, int]) -> None:
    with pytest.raises(MalformedInputError):
        store.insert_activity(
            _activity(seeded, "Taller", date(2024, 3, 10), end_date=date(2024, 3, 1))
        )

    assert store.list_activities() == []


def test_person_filters(store: EntityStore, seeded: dict[str, int]) -> None:
    ana = store.insert_person(make_person(seeded, national_id="11111111-1"))
    luis = store.insert_person(
        make_person(
            seeded,
            national_id="22222222-K",
            first_name="Luis",
            family_name="Araya",
            gender_id=seeded["Masculino"],
            birth_date=date(1940, 3, 15),
            unit_id=seeded["UV 2"],
        )
    )

    assert [p.id for p in store.list_persons(PersonFilter())] == [luis, ana]
    assert [p.id for p in store.list_persons(PersonFilter(first_name="an"))] == [ana]
    assert [p.id for p in store.list_persons(PersonFilter(family_name="ARA"))] == [luis]
    assert [p.id for p in store.list_persons(PersonFilter(national_id="-k"))] == [luis]
    assert [
        p.id for p in store.list_persons(PersonFilter(gender_id=seeded["Femenino"]))
    ] == [ana]
    assert [
        p.id for p in store.list_persons(PersonFilter(macro_sector_id=seeded["Sur"]))
    ] == [luis]
    # Today is 2024-03-15: Luis turns 84 today, Ana is 73.
    assert [p.id for p in store.list_persons(PersonFilter(age_min=84))] == [luis]
    assert [p.id for p in store.list_persons(PersonFilter(age_max=83))] == [ana]
    assert store.list_persons(PersonFilter(first_name="%")) == []


def test_organization_and_activity_filters(store: EntityStore, seeded: dict[str, int]) -> None:
    club = store.insert_organization(_organization(seeded))
    junta = store.insert_organization(
        _organization(
            seeded, name="Junta Vecinal Sur", unit_id=seeded["UV 2"], founded_on=date(2010, 1, 1)
        )
    )
    assert [o.id for o in store.list_organizations()] == [club, junta]
    assert [
        o.id for o in store.list_organizations(OrganizationFilter(founded_from=date(2005, 1, 1)))
    ] == [junta]
    assert [
        o.id for o in store.list_organizations(OrganizationFilter(macro_sector_id=seeded["Norte"]))
    ] == [club]

    older = store.insert_activity(_activity(seeded, "Yoga", date(2024, 2, 1)))
    newer = store.insert_activity(_activity(seeded, "Baile", date(2024, 3, 5)))
    assert [a.id for a in store.list_activities()] == [newer, older]
    assert [
        a.id for a in store.list_activities(ActivityFilter(date_from=date(2024, 3, 1)))
    ] == [newer]
    assert [a.id for a in store.list_activities(ActivityFilter(name="yo"))] == [older]


def test_trips_are_listed_and_filtered(
    store: EntityStore, seeded: dict[str, int], sqlite_config: ConnectionConfig
) -> None:
    assert store.list_trips() == []

    engine = create_engine(f"sqlite:///{sqlite_config.database}")
    with engine.begin() as conn:
        conn.execute(
            insert(schema.trips),
            [
                {
                    "via_nombre": "Paseo costero",
                    "via_destino": "Valparaíso",
                    "via_fecha_salida": date(2024, 1, 10),
                    "via_fecha_regreso": date(2024, 1, 11),
                    "via_uvid": seeded["UV 1"],
                },
                {
                    "via_nombre": "Termas",
                    "via_destino": "Chillán",
                    "via_fecha_salida": date(2024, 2, 20),
                    "via_fecha_regreso": None,
                    "via_uvid": seeded["UV 2"],
                },
            ],
        )
    engine.dispose()

    trips = store.list_trips()
    assert [t.name for t in trips] == ["Termas", "Paseo costero"]
    assert trips[0].unit_name == "UV 2"
    assert trips[0].return_date is None
    assert [t.name for t in store.list_trips(TripFilter(destination="valpa"))] == ["Paseo costero"]


def test_dashboard_stats(store: EntityStore, seeded: dict[str, int]) -> None:
    store.insert_person(make_person(seeded, national_id="11111111-1"))
    store.insert_person(make_person(seeded, national_id="22222222-2"))
    store.insert_organization(_organization(seeded))
    store.insert_activity(_activity(seeded, "Yoga", date(2024, 2, 1)))
    store.insert_activity(_activity(seeded, "Baile", date(2024, 3, 5)))

    stats = store.dashboard_stats()

    assert stats.total_persons == 2
    assert stats.total_organizations == 1
    assert stats.total_activities == 2
    assert stats.total_trips == 0
    assert stats.persons_by_macro_sector == (("Norte", 2), ("Sur", 0))
    assert stats.activities_this_month == 1
    assert stats.new_persons_this_month is None


def test_lookup_inserts_are_listed(store: EntityStore, seeded: dict[str, int]) -> None:
    store.insert_workshop("Tejido")
    store.insert_workshop("Computación")
    sector = store.insert_macro_sector("Centro")
    store.insert_neighborhood_unit("UV 3", sector)

    assert [w.name for w in store.list_workshops()] == ["Computación", "Tejido"]
    assert [m.name for m in store.list_macro_sectors()] == ["Centro", "Norte", "Sur"]
    assert [n.name for n in store.list_nationalities()] == ["Chilena", "Peruana"]
    with pytest.raises(ConstraintViolationError):
        store.insert_workshop("Tejido")


def test_shared_store_releases_lock_on_error(store: EntityStore) -> None:
    shared = SharedStore(store)

    with pytest.raises(RuntimeError):
        with shared.acquire():
            raise RuntimeError("fail inside")

    with shared.acquire() as s:
        assert s is store


def test_stale_disconnect_leaves_newer_connection_open(
    sqlite_config: ConnectionConfig, seeded: dict[str, int]
) -> None:
    store = EntityStore()
    shared = SharedStore(store)
    with shared.open_session(sqlite_config):
        pass
    first = shared.generation
    with shared.open_session(sqlite_config) as s:
        assert s is store

    assert shared.disconnect(first) is False
    assert store.connected

    assert shared.disconnect(shared.generation) is True
    assert not store.connected


def test_failed_session_keeps_generation(tmp_path: Path) -> None:
    shared = SharedStore()
    config = ConnectionConfig(driver="sqlite", database=str(tmp_path / "missing" / "x.sqlite"))

    with pytest.raises(ConnectionFailureError):
        with shared.open_session(config):
            pass

    assert shared.generation == 0
