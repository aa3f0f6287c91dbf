from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Callable, Iterator

import pytest
from sqlalchemy import create_engine

from registry_engine.clock import FixedClock
from registry_engine.data_models import ConnectionConfig, Person
from registry_engine.entity_store import EntityStore, SharedStore
from registry_engine.schema import create_schema

TODAY = date(2024, 3, 15)


class DeferredSpawner:
    """Collects background jobs so a test decides when (and in what order) they run."""

    def __init__(self) -> None:
        self.jobs: list[Callable[[], None]] = []

    def __call__(self, job: Callable[[], None]) -> None:
        self.jobs.append(job)

    def run_all(self) -> None:
        jobs, self.jobs = self.jobs, []
        for job in jobs:
            job()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def sqlite_config(tmp_path: Path) -> ConnectionConfig:
    db_path = tmp_path / "registry.sqlite"
    engine = create_engine(f"sqlite:///{db_path}")
    create_schema(engine)
    engine.dispose()
    return ConnectionConfig(driver="sqlite", database=str(db_path))


@pytest.fixture
def seeded(sqlite_config: ConnectionConfig, clock: FixedClock) -> Iterator[dict[str, int]]:
    """Create lookup rows and return their ids by name."""
    store = EntityStore(clock=clock)
    store.connect(sqlite_config)
    ids = {
        "Masculino": store.insert_gender("Masculino"),
        "Femenino": store.insert_gender("Femenino"),
        "Otro": store.insert_gender("Otro"),
        "Chilena": store.insert_nationality("Chilena"),
        "Peruana": store.insert_nationality("Peruana"),
        "Norte": store.insert_macro_sector("Norte"),
        "Sur": store.insert_macro_sector("Sur"),
    }
    ids["UV 1"] = store.insert_neighborhood_unit("UV 1", ids["Norte"])
    ids["UV 2"] = store.insert_neighborhood_unit("UV 2", ids["Sur"])
    store.disconnect()
    yield ids


@pytest.fixture
def store(
    sqlite_config: ConnectionConfig, seeded: dict[str, int], clock: FixedClock
) -> Iterator[EntityStore]:
    s = EntityStore(clock=clock)
    s.connect(sqlite_config)
    yield s
    s.disconnect()


@pytest.fixture
def shared(store: EntityStore) -> SharedStore:
    return SharedStore(store)


def make_person(ids: dict[str, int], **overrides: object) -> Person:
    values: dict[str, object] = {
        "id": None,
        "national_id": "12345678-9",
        "first_name": "Ana",
        "second_name": None,
        "family_name": "Rojas",
        "second_family_name": None,
        "gender_id": ids["Femenino"],
        "nationality_id": ids["Chilena"],
        "birth_date": date(1950, 6, 1),
        "address": "Calle 1",
        "email": None,
        "unit_id": ids["UV 1"],
    }
    values.update(overrides)
    return Person(**values)  # type: ignore[arg-type]
