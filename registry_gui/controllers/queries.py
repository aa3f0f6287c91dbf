"""
Queries view controller.

Owns the per-kind filters and result lists, the lookup catalogs that feed the
filter selectors, and two independent operation slots: one for catalogs and
one for the current query.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from registry_engine.channel import Success
from registry_engine.data_models import (
    Activity,
    ActivityFilter,
    Organization,
    OrganizationFilter,
    Person,
    PersonFilter,
    Trip,
    TripFilter,
)
from registry_engine.entity_store import SharedStore
from registry_engine.errors import NotConnectedError

from .base import Notice, OperationSlot, Spawner
from .catalogs import Catalogs, load_catalogs


class QueryKind(str, Enum):
    PERSONS = "persons"
    ORGANIZATIONS = "organizations"
    ACTIVITIES = "activities"
    TRIPS = "trips"

    @property
    def label(self) -> str:
        return _QUERY_LABELS[self]


_QUERY_LABELS = {
    QueryKind.PERSONS: "Personas Mayores",
    QueryKind.ORGANIZATIONS: "Organizaciones",
    QueryKind.ACTIVITIES: "Actividades",
    QueryKind.TRIPS: "Viajes",
}


@dataclass(frozen=True, slots=True)
class PersonsResult:
    rows: tuple[Person, ...]


@dataclass(frozen=True, slots=True)
class OrganizationsResult:
    rows: tuple[Organization, ...]


@dataclass(frozen=True, slots=True)
class ActivitiesResult:
    rows: tuple[Activity, ...]


@dataclass(frozen=True, slots=True)
class TripsResult:
    rows: tuple[Trip, ...]


QueryResult = Union[PersonsResult, OrganizationsResult, ActivitiesResult, TripsResult]

QueryFilter = Union[PersonFilter, OrganizationFilter, ActivityFilter, TripFilter]


class QueriesController:
    """
    Filtered lookups over persons, organizations, activities and trips.

    Notes
    -----
    - A new query while one is pending replaces it; the replaced result is
      never applied.
    - A failed query clears every result list.
    """

    def __init__(self, shared: SharedStore, spawn: Spawner) -> None:
        self._shared = shared
        self._query_slot: OperationSlot[QueryResult] = OperationSlot(spawn)
        self._catalog_slot: OperationSlot[Catalogs] = OperationSlot(spawn)

        self.query_kind = QueryKind.PERSONS
        self.person_filter = PersonFilter()
        self.organization_filter = OrganizationFilter()
        self.activity_filter = ActivityFilter()
        self.trip_filter = TripFilter()

        self.persons: tuple[Person, ...] = ()
        self.organizations: tuple[Organization, ...] = ()
        self.activities: tuple[Activity, ...] = ()
        self.trips: tuple[Trip, ...] = ()

        self.catalogs = Catalogs()
        self.catalogs_loaded = False
        self.loading = False

    def initialize(self) -> None:
        """Load catalogs and the unfiltered person list once a connection exists."""
        self.load_catalogs()
        self.query_kind = QueryKind.PERSONS
        self._run(QueryKind.PERSONS, PersonFilter(), check_connection=True)

    def load_catalogs(self) -> None:
        shared = self._shared
        self._catalog_slot.start(
            lambda: load_catalogs(shared), error_prefix="Error al cargar catálogos"
        )

    def set_query_kind(self, kind: QueryKind) -> None:
        """Switch the active kind and immediately query it with its current filter."""
        if kind == self.query_kind:
            return
        self.query_kind = kind
        self._run(kind, self.current_filter(), check_connection=True)

    def execute(self) -> None:
        self._run(self.query_kind, self.current_filter(), check_connection=False)

    def current_filter(self) -> QueryFilter:
        if self.query_kind is QueryKind.PERSONS:
            return self.person_filter
        if self.query_kind is QueryKind.ORGANIZATIONS:
            return self.organization_filter
        if self.query_kind is QueryKind.ACTIVITIES:
            return self.activity_filter
        return self.trip_filter

    def clear_filters(self) -> None:
        self.person_filter = PersonFilter()
        self.organization_filter = OrganizationFilter()
        self.activity_filter = ActivityFilter()
        self.trip_filter = TripFilter()

    def reset(self) -> None:
        """
        Forget everything read from the previous connection.

        Pending operations are cancelled. Filters are kept; the tab rebuilds
        its selectors once the next catalogs arrive.
        """
        self._query_slot.cancel()
        self._catalog_slot.cancel()
        self._clear_results()
        self.catalogs = Catalogs()
        self.catalogs_loaded = False
        self.loading = False

    def _run(self, kind: QueryKind, query_filter: QueryFilter, *, check_connection: bool) -> None:
        self.loading = True
        shared = self._shared

        def work() -> QueryResult:
            with shared.acquire() as store:
                if check_connection and not store.test_connection():
                    raise NotConnectedError()
                if isinstance(query_filter, PersonFilter):
                    return PersonsResult(tuple(store.list_persons(query_filter)))
                if isinstance(query_filter, OrganizationFilter):
                    return OrganizationsResult(tuple(store.list_organizations(query_filter)))
                if isinstance(query_filter, ActivityFilter):
                    return ActivitiesResult(tuple(store.list_activities(query_filter)))
                return TripsResult(tuple(store.list_trips(query_filter)))

        self._query_slot.start(work, error_prefix=f"Error al consultar {kind.label.lower()}")

    def poll(self) -> Notice | None:
        """Absorb completed catalog and query operations. Returns a banner notice, if any."""
        notice: Notice | None = None

        catalogs = self._catalog_slot.poll()
        if catalogs is not None:
            if isinstance(catalogs, Success):
                self.catalogs = catalogs.value
                self.catalogs_loaded = True
            else:
                notice = Notice.error(catalogs.message)

        outcome = self._query_slot.poll()
        if outcome is not None:
            self.loading = False
            if isinstance(outcome, Success):
                self._absorb(outcome.value)
            else:
                self._clear_results()
                notice = Notice.error(outcome.message)

        return notice

    def _absorb(self, result: QueryResult) -> None:
        if isinstance(result, PersonsResult):
            self.persons = result.rows
        elif isinstance(result, OrganizationsResult):
            self.organizations = result.rows
        elif isinstance(result, ActivitiesResult):
            self.activities = result.rows
        elif isinstance(result, TripsResult):
            self.trips = result.rows
        else:
            raise TypeError(f"Unhandled query result: {type(result).__name__}")

    def _clear_results(self) -> None:
        self.persons = ()
        self.organizations = ()
        self.activities = ()
        self.trips = ()
