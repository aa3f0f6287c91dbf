"""Lookup catalogs used to populate selection controls."""

from __future__ import annotations

from dataclasses import dataclass, field

from registry_engine.data_models import Gender, MacroSector, Nationality, NeighborhoodUnit
from registry_engine.entity_store import SharedStore


@dataclass(frozen=True, slots=True)
class Catalogs:
    genders: tuple[Gender, ...] = field(default_factory=tuple)
    nationalities: tuple[Nationality, ...] = field(default_factory=tuple)
    neighborhood_units: tuple[NeighborhoodUnit, ...] = field(default_factory=tuple)
    macro_sectors: tuple[MacroSector, ...] = field(default_factory=tuple)


def load_catalogs(shared: SharedStore) -> Catalogs:
    """Fetch every lookup table in one locked session. Runs in the background."""
    with shared.acquire() as store:
        return Catalogs(
            genders=tuple(store.list_genders()),
            nationalities=tuple(store.list_nationalities()),
            neighborhood_units=tuple(store.list_neighborhood_units()),
            macro_sectors=tuple(store.list_macro_sectors()),
        )
