"""Data models for the community registry.

This module defines the typed records exchanged between the Entity Store and
the view controllers. Records are flat: foreign references are plain integer
identities, and the optional ``*_name`` attributes are display labels filled in
by list operations through left joins. They are never written back.

Identities are assigned by the store. Records built for insertion carry
``id=None``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date

from sqlalchemy.engine import URL

DEFAULT_DRIVER = "postgresql+psycopg2"


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """
    Parameters needed to reach the backing relational store.

    Attributes
    ----------
    host, port, username, password, database:
        Standard client/server connection parameters.
    driver:
        SQLAlchemy drivername. SQLite drivers use only `database` (a file path),
        which is how local and test databases are opened.
    """

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: str = ""
    database: str = "comunidad"
    driver: str = DEFAULT_DRIVER

    def to_url(self) -> URL:
        """Build the SQLAlchemy URL for this configuration."""
        if self.driver.startswith("sqlite"):
            return URL.create(self.driver, database=self.database or None)
        return URL.create(
            drivername=self.driver,
            username=self.username,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def describe(self) -> str:
        """Return a log-safe description (never includes the password)."""
        if self.driver.startswith("sqlite"):
            return f"{self.driver}:{self.database}"
        return f"{self.username}@{self.host}:{self.port}/{self.database}"


# Lookup / reference rows


@dataclass(frozen=True, slots=True)
class Gender:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Nationality:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class MacroSector:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class NeighborhoodUnit:
    """A neighborhood unit, with its macro-sector label when one is associated."""

    id: int
    name: str
    macro_sector_id: int | None
    macro_sector_name: str | None = None


@dataclass(frozen=True, slots=True)
class Workshop:
    id: int
    name: str


# Core entities


@dataclass(frozen=True, slots=True)
class Person:
    """
    An elderly resident.

    Attributes
    ----------
    national_id:
        Government identity string, ``NNNNNNN(N)-C`` with C a digit or K.
    second_name, second_family_name, email:
        Optional; absent values are ``None``, never an empty string.
    gender_name, nationality_name, unit_name:
        Display labels populated by list operations.
    """

    id: int | None
    national_id: str
    first_name: str
    second_name: str | None
    family_name: str
    second_family_name: str | None
    gender_id: int
    nationality_id: int
    birth_date: date
    address: str
    email: str | None
    unit_id: int
    gender_name: str | None = None
    nationality_name: str | None = None
    unit_name: str | None = None

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.second_name, self.family_name, self.second_family_name]
        return " ".join(p for p in parts if p)


@dataclass(frozen=True, slots=True)
class Organization:
    """A community organization."""

    id: int | None
    name: str
    address: str
    unit_id: int
    founded_on: date
    legal_personality: str
    email: str | None
    unit_name: str | None = None


@dataclass(frozen=True, slots=True)
class Activity:
    """A community activity held in a neighborhood unit."""

    id: int | None
    name: str
    unit_id: int
    start_date: date
    end_date: date | None
    description: str | None
    unit_name: str | None = None


@dataclass(frozen=True, slots=True)
class Trip:
    """A trip organized for residents of a neighborhood unit."""

    id: int | None
    name: str
    destination: str
    departure_date: date
    return_date: date | None
    unit_id: int
    unit_name: str | None = None


# Filters. Every attribute is optional; None or "" means "no constraint".


def _all_blank(obj: object) -> bool:
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if isinstance(value, str):
            if value.strip():
                return False
        elif value is not None:
            return False
    return True


@dataclass(frozen=True, slots=True)
class PersonFilter:
    first_name: str = ""
    family_name: str = ""
    national_id: str = ""
    gender_id: int | None = None
    nationality_id: int | None = None
    unit_id: int | None = None
    macro_sector_id: int | None = None
    age_min: int | None = None
    age_max: int | None = None

    def is_empty(self) -> bool:
        return _all_blank(self)


@dataclass(frozen=True, slots=True)
class OrganizationFilter:
    name: str = ""
    unit_id: int | None = None
    macro_sector_id: int | None = None
    founded_from: date | None = None
    founded_to: date | None = None

    def is_empty(self) -> bool:
        return _all_blank(self)


@dataclass(frozen=True, slots=True)
class ActivityFilter:
    name: str = ""
    unit_id: int | None = None
    macro_sector_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None

    def is_empty(self) -> bool:
        return _all_blank(self)


@dataclass(frozen=True, slots=True)
class TripFilter:
    name: str = ""
    destination: str = ""
    unit_id: int | None = None
    departure_from: date | None = None
    departure_to: date | None = None

    def is_empty(self) -> bool:
        return _all_blank(self)


@dataclass(frozen=True, slots=True)
class DashboardStats:
    """
    Aggregate counts shown on the dashboard. Derived, never persisted.

    Attributes
    ----------
    persons_by_macro_sector:
        ``(sector name, person count)`` pairs sorted by sector name.
    new_persons_this_month:
        ``None`` means the store cannot answer (no registration timestamp).
    """

    total_persons: int = 0
    total_organizations: int = 0
    total_activities: int = 0
    total_trips: int = 0
    persons_by_macro_sector: tuple[tuple[str, int], ...] = field(default_factory=tuple)
    activities_this_month: int = 0
    new_persons_this_month: int | None = None
