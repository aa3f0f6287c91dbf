"""
Entity Store: the single point of interaction with the backing relational store.

This module owns the live connection and translates typed requests into
parameterized statements and result rows back into records from
`registry_engine.data_models`.

Threading
---------
An EntityStore is not safe for concurrent use. The application shares one
instance through `SharedStore`, whose lock serializes every call across all
background units of work.

Transactions
------------
The connection runs in autocommit mode; every statement commits on its own.
A multi-statement call such as `dashboard_stats` is sequenced but not atomic.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Iterator, Sequence

from sqlalchemy import Select, func, insert, select, text
from sqlalchemy.engine import Connection, Engine, create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import schema
from .app_logger import get_logger
from .clock import Clock, SystemClock
from .data_models import (
    Activity,
    ActivityFilter,
    ConnectionConfig,
    DashboardStats,
    Gender,
    MacroSector,
    Nationality,
    NeighborhoodUnit,
    Organization,
    OrganizationFilter,
    Person,
    PersonFilter,
    Trip,
    TripFilter,
    Workshop,
)
from .errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    MalformedInputError,
    NotConnectedError,
    StoreError,
)
from .formatting import years_before
from .validation import require_fields, validate_email, validate_national_id

_log = get_logger("store")

EngineFactory = Callable[..., Engine]


def _db_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    text_ = str(orig) if orig is not None else str(exc)
    return text_.strip().splitlines()[0] if text_.strip() else type(exc).__name__


def _check_email(email: str | None, *, context: str) -> None:
    if email is not None and not validate_email(email):
        raise MalformedInputError(f"{context}: email con formato inválido", fields=["email"])


def _check_date_order(start: date, end: date | None, *, context: str, field: str) -> None:
    if end is not None and end < start:
        raise MalformedInputError(
            f"{context}: la fecha final es anterior a la inicial", fields=[field]
        )


class EntityStore:
    """
    Typed read/insert façade over the registry tables.

    Parameters
    ----------
    clock:
        Source of "today" for age filters and the dashboard month window.
    engine_factory:
        Callable with the signature of `sqlalchemy.create_engine`.

    Notes
    -----
    Holds at most one live connection. Every data operation raises
    NotConnectedError when none is held; store-reported failures surface as
    ConstraintViolationError or StoreError.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        engine_factory: EngineFactory = create_engine,
    ) -> None:
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._engine_factory = engine_factory
        self._engine: Engine | None = None
        self._conn: Connection | None = None

    # Connection lifecycle

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self, config: ConnectionConfig) -> None:
        """
        Open a connection, replacing any connection already held.

        Raises
        ------
        ConnectionFailureError
            If the store is unreachable or rejects the credentials.
        """
        url = config.to_url()
        kwargs: dict[str, Any] = {"isolation_level": "AUTOCOMMIT"}
        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}

        _log.info("Connecting to %s", config.describe())
        engine: Engine | None = None
        try:
            engine = self._engine_factory(url, **kwargs)
            conn = engine.connect()
        except SQLAlchemyError as exc:
            if engine is not None:
                engine.dispose()
            raise ConnectionFailureError(
                f"Error al conectar con la base de datos: {_db_message(exc)}"
            ) from exc

        if self._conn is not None:
            _log.info("Replacing existing connection")
            self._release()

        self._engine = engine
        self._conn = conn
        self._relax_email_constraint()

    def disconnect(self) -> None:
        """Drop the held connection. No-op if none is held."""
        if self._conn is None:
            return
        _log.info("Disconnecting")
        self._release()

    def _release(self) -> None:
        conn, engine = self._conn, self._engine
        self._conn = None
        self._engine = None
        try:
            if conn is not None:
                conn.close()
        except SQLAlchemyError as exc:
            _log.warning("Error closing connection: %s", _db_message(exc))
        finally:
            if engine is not None:
                engine.dispose()

    def _relax_email_constraint(self) -> None:
        conn = self._conn
        if conn is None or conn.dialect.name != "postgresql":
            return
        try:
            for statement in schema.RELAX_EMAIL_CONSTRAINT_SQL:
                conn.execute(text(statement))
        except SQLAlchemyError as exc:
            _log.warning("Could not relax the person email constraint: %s", _db_message(exc))
            return
        _log.debug("Person email constraint relaxed")

    def test_connection(self) -> bool:
        """Return True if a trivial round-trip succeeds. Never raises."""
        if self._conn is None:
            return False
        try:
            self._conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            _log.warning("Connection test failed: %s", _db_message(exc))
            return False
        return True

    # Plumbing

    def _require(self) -> Connection:
        if self._conn is None:
            raise NotConnectedError()
        return self._conn

    @contextmanager
    def _store_errors(self) -> Iterator[Connection]:
        conn = self._require()
        try:
            yield conn
        except IntegrityError as exc:
            raise ConstraintViolationError(_db_message(exc)) from exc
        except SQLAlchemyError as exc:
            raise StoreError(_db_message(exc)) from exc

    def _fetch(self, stmt: Select[Any]) -> Sequence[Any]:
        with self._store_errors() as conn:
            return conn.execute(stmt).all()

    def _insert_returning(self, table: Any, id_column: Any, values: dict[str, Any]) -> int:
        with self._store_errors() as conn:
            stmt = insert(table).values(**values).returning(id_column)
            new_id = conn.execute(stmt).scalar_one()
        _log.info("Inserted %s id=%s", table.name, new_id)
        return int(new_id)

    def _count(self, conn: Connection, table: Any) -> int:
        return int(conn.execute(select(func.count()).select_from(table)).scalar_one())

    # Dashboard

    def dashboard_stats(self) -> DashboardStats:
        """
        Compute dashboard aggregates with sequential, non-atomic queries.

        Notes
        -----
        `new_persons_this_month` is None: the person table has no registration
        timestamp to count from.
        """
        mac, uv, per, act = (
            schema.macro_sectors,
            schema.neighborhood_units,
            schema.persons,
            schema.activities,
        )
        today = self._clock.today()
        month_start = today.replace(day=1)
        if month_start.month == 12:
            next_month = month_start.replace(year=month_start.year + 1, month=1)
        else:
            next_month = month_start.replace(month=month_start.month + 1)

        with self._store_errors() as conn:
            total_persons = self._count(conn, per)
            total_organizations = self._count(conn, schema.organizations)
            total_activities = self._count(conn, act)
            total_trips = self._count(conn, schema.trips)

            by_macro = conn.execute(
                select(mac.c.mac_nombre, func.count(per.c.per_id))
                .select_from(
                    mac.outerjoin(uv, uv.c.uv_macid == mac.c.mac_id).outerjoin(
                        per, per.c.per_uvid == uv.c.uv_id
                    )
                )
                .group_by(mac.c.mac_nombre)
                .order_by(mac.c.mac_nombre)
            ).all()

            activities_this_month = conn.execute(
                select(func.count())
                .select_from(act)
                .where(act.c.act_fecha_ini >= month_start, act.c.act_fecha_ini < next_month)
            ).scalar_one()

        return DashboardStats(
            total_persons=total_persons,
            total_organizations=total_organizations,
            total_activities=total_activities,
            total_trips=total_trips,
            persons_by_macro_sector=tuple((str(name), int(n)) for name, n in by_macro),
            activities_this_month=int(activities_this_month),
            new_persons_this_month=None,
        )

    # Lookups

    def list_genders(self) -> list[Gender]:
        g = schema.genders
        rows = self._fetch(select(g.c.gen_id, g.c.gen_genero).order_by(g.c.gen_genero))
        return [Gender(id=r.gen_id, name=r.gen_genero) for r in rows]

    def list_nationalities(self) -> list[Nationality]:
        n = schema.nationalities
        rows = self._fetch(
            select(n.c.nac_id, n.c.nac_nacionalidad).order_by(n.c.nac_nacionalidad)
        )
        return [Nationality(id=r.nac_id, name=r.nac_nacionalidad) for r in rows]

    def list_macro_sectors(self) -> list[MacroSector]:
        m = schema.macro_sectors
        rows = self._fetch(select(m.c.mac_id, m.c.mac_nombre).order_by(m.c.mac_nombre))
        return [MacroSector(id=r.mac_id, name=r.mac_nombre) for r in rows]

    def list_neighborhood_units(self) -> list[NeighborhoodUnit]:
        """List units ordered by name, labelled with their macro-sector if any."""
        uv, mac = schema.neighborhood_units, schema.macro_sectors
        rows = self._fetch(
            select(uv.c.uv_id, uv.c.uv_nombre, uv.c.uv_macid, mac.c.mac_nombre)
            .select_from(uv.outerjoin(mac, uv.c.uv_macid == mac.c.mac_id))
            .order_by(uv.c.uv_nombre)
        )
        return [
            NeighborhoodUnit(
                id=r.uv_id,
                name=r.uv_nombre,
                macro_sector_id=r.uv_macid,
                macro_sector_name=r.mac_nombre,
            )
            for r in rows
        ]

    def list_workshops(self) -> list[Workshop]:
        t = schema.workshops
        rows = self._fetch(select(t.c.tal_id, t.c.tal_nombre).order_by(t.c.tal_nombre))
        return [Workshop(id=r.tal_id, name=r.tal_nombre) for r in rows]

    # Entity lists

    def list_persons(self, query_filter: PersonFilter | None = None) -> list[Person]:
        """
        List persons ordered by family name, then first name.

        Every non-blank filter field narrows the result; text fields match
        case-insensitive substrings and age bounds are inclusive.
        """
        f = query_filter or PersonFilter()
        p, g, n = schema.persons, schema.genders, schema.nationalities
        uv = schema.neighborhood_units
        stmt = (
            select(p, g.c.gen_genero, n.c.nac_nacionalidad, uv.c.uv_nombre)
            .select_from(
                p.outerjoin(g, p.c.per_genid == g.c.gen_id)
                .outerjoin(n, p.c.per_nacid == n.c.nac_id)
                .outerjoin(uv, p.c.per_uvid == uv.c.uv_id)
            )
            .order_by(p.c.per_priapellido, p.c.per_prinombre, p.c.per_id)
        )
        if f.first_name.strip():
            stmt = stmt.where(p.c.per_prinombre.icontains(f.first_name.strip(), autoescape=True))
        if f.family_name.strip():
            stmt = stmt.where(
                p.c.per_priapellido.icontains(f.family_name.strip(), autoescape=True)
            )
        if f.national_id.strip():
            stmt = stmt.where(p.c.per_rut.icontains(f.national_id.strip(), autoescape=True))
        if f.gender_id is not None:
            stmt = stmt.where(p.c.per_genid == f.gender_id)
        if f.nationality_id is not None:
            stmt = stmt.where(p.c.per_nacid == f.nationality_id)
        if f.unit_id is not None:
            stmt = stmt.where(p.c.per_uvid == f.unit_id)
        if f.macro_sector_id is not None:
            stmt = stmt.where(uv.c.uv_macid == f.macro_sector_id)
        if f.age_min is not None or f.age_max is not None:
            today = self._clock.today()
            if f.age_min is not None:
                stmt = stmt.where(p.c.per_fechadenac <= years_before(today, f.age_min))
            if f.age_max is not None:
                stmt = stmt.where(p.c.per_fechadenac > years_before(today, f.age_max + 1))

        return [
            Person(
                id=r.per_id,
                national_id=r.per_rut,
                first_name=r.per_prinombre,
                second_name=r.per_segnombre,
                family_name=r.per_priapellido,
                second_family_name=r.per_segapellido,
                gender_id=r.per_genid,
                nationality_id=r.per_nacid,
                birth_date=r.per_fechadenac,
                address=r.per_direccion,
                email=r.per_email,
                unit_id=r.per_uvid,
                gender_name=r.gen_genero,
                nationality_name=r.nac_nacionalidad,
                unit_name=r.uv_nombre,
            )
            for r in self._fetch(stmt)
        ]

    def list_organizations(
        self, query_filter: OrganizationFilter | None = None
    ) -> list[Organization]:
        """List organizations ordered by name."""
        f = query_filter or OrganizationFilter()
        o, uv = schema.organizations, schema.neighborhood_units
        stmt = (
            select(o, uv.c.uv_nombre)
            .select_from(o.outerjoin(uv, o.c.org_uvid == uv.c.uv_id))
            .order_by(o.c.org_nombre)
        )
        if f.name.strip():
            stmt = stmt.where(o.c.org_nombre.icontains(f.name.strip(), autoescape=True))
        if f.unit_id is not None:
            stmt = stmt.where(o.c.org_uvid == f.unit_id)
        if f.macro_sector_id is not None:
            stmt = stmt.where(uv.c.uv_macid == f.macro_sector_id)
        if f.founded_from is not None:
            stmt = stmt.where(o.c.org_fechaconst >= f.founded_from)
        if f.founded_to is not None:
            stmt = stmt.where(o.c.org_fechaconst <= f.founded_to)

        return [
            Organization(
                id=r.org_id,
                name=r.org_nombre,
                address=r.org_direccion,
                unit_id=r.org_uvid,
                founded_on=r.org_fechaconst,
                legal_personality=r.org_perjuridica,
                email=r.org_email,
                unit_name=r.uv_nombre,
            )
            for r in self._fetch(stmt)
        ]

    def list_activities(self, query_filter: ActivityFilter | None = None) -> list[Activity]:
        """List activities, most recent start date first."""
        f = query_filter or ActivityFilter()
        a, uv = schema.activities, schema.neighborhood_units
        stmt = (
            select(a, uv.c.uv_nombre)
            .select_from(a.outerjoin(uv, a.c.act_uvid == uv.c.uv_id))
            .order_by(a.c.act_fecha_ini.desc(), a.c.act_id.desc())
        )
        if f.name.strip():
            stmt = stmt.where(a.c.act_nombre.icontains(f.name.strip(), autoescape=True))
        if f.unit_id is not None:
            stmt = stmt.where(a.c.act_uvid == f.unit_id)
        if f.macro_sector_id is not None:
            stmt = stmt.where(uv.c.uv_macid == f.macro_sector_id)
        if f.date_from is not None:
            stmt = stmt.where(a.c.act_fecha_ini >= f.date_from)
        if f.date_to is not None:
            stmt = stmt.where(a.c.act_fecha_ini <= f.date_to)

        return [
            Activity(
                id=r.act_id,
                name=r.act_nombre,
                unit_id=r.act_uvid,
                start_date=r.act_fecha_ini,
                end_date=r.act_fecha_fin,
                description=r.act_descripcion,
                unit_name=r.uv_nombre,
            )
            for r in self._fetch(stmt)
        ]

    def list_trips(self, query_filter: TripFilter | None = None) -> list[Trip]:
        """List trips, most recent departure first."""
        f = query_filter or TripFilter()
        v, uv = schema.trips, schema.neighborhood_units
        stmt = (
            select(v, uv.c.uv_nombre)
            .select_from(v.outerjoin(uv, v.c.via_uvid == uv.c.uv_id))
            .order_by(v.c.via_fecha_salida.desc(), v.c.via_id.desc())
        )
        if f.name.strip():
            stmt = stmt.where(v.c.via_nombre.icontains(f.name.strip(), autoescape=True))
        if f.destination.strip():
            stmt = stmt.where(v.c.via_destino.icontains(f.destination.strip(), autoescape=True))
        if f.unit_id is not None:
            stmt = stmt.where(v.c.via_uvid == f.unit_id)
        if f.departure_from is not None:
            stmt = stmt.where(v.c.via_fecha_salida >= f.departure_from)
        if f.departure_to is not None:
            stmt = stmt.where(v.c.via_fecha_salida <= f.departure_to)

        return [
            Trip(
                id=r.via_id,
                name=r.via_nombre,
                destination=r.via_destino,
                departure_date=r.via_fecha_salida,
                return_date=r.via_fecha_regreso,
                unit_id=r.via_uvid,
                unit_name=r.uv_nombre,
            )
            for r in self._fetch(stmt)
        ]

    # Inserts. Records are validated before the connection is touched.

    def insert_person(self, person: Person) -> int:
        """
        Insert a person and return the store-assigned id.

        Raises
        ------
        MalformedInputError
            If a required field is blank or the national-id/email is malformed.
        ConstraintViolationError
            If the national-id is already registered or a reference is unknown.
        """
        require_fields(
            {
                "national_id": person.national_id,
                "first_name": person.first_name,
                "family_name": person.family_name,
                "address": person.address,
            },
            context="Persona",
        )
        if not validate_national_id(person.national_id.strip()):
            raise MalformedInputError("Persona: RUT con formato inválido", fields=["national_id"])
        _check_email(person.email, context="Persona")

        return self._insert_returning(
            schema.persons,
            schema.persons.c.per_id,
            {
                "per_rut": person.national_id.strip(),
                "per_prinombre": person.first_name.strip(),
                "per_segnombre": person.second_name,
                "per_priapellido": person.family_name.strip(),
                "per_segapellido": person.second_family_name,
                "per_genid": person.gender_id,
                "per_nacid": person.nationality_id,
                "per_fechadenac": person.birth_date,
                "per_direccion": person.address.strip(),
                "per_email": person.email,
                "per_uvid": person.unit_id,
            },
        )

    def insert_organization(self, organization: Organization) -> int:
        require_fields(
            {
                "name": organization.name,
                "address": organization.address,
                "legal_personality": organization.legal_personality,
            },
            context="Organización",
        )
        _check_email(organization.email, context="Organización")

        return self._insert_returning(
            schema.organizations,
            schema.organizations.c.org_id,
            {
                "org_nombre": organization.name.strip(),
                "org_direccion": organization.address.strip(),
                "org_uvid": organization.unit_id,
                "org_fechaconst": organization.founded_on,
                "org_perjuridica": organization.legal_personality.strip(),
                "org_email": organization.email,
            },
        )

    def insert_activity(self, activity: Activity) -> int:
        require_fields({"name": activity.name}, context="Actividad")
        _check_date_order(
            activity.start_date, activity.end_date, context="Actividad", field="end_date"
        )

        return self._insert_returning(
            schema.activities,
            schema.activities.c.act_id,
            {
                "act_nombre": activity.name.strip(),
                "act_uvid": activity.unit_id,
                "act_fecha_ini": activity.start_date,
                "act_fecha_fin": activity.end_date,
                "act_descripcion": activity.description,
            },
        )

    def insert_macro_sector(self, name: str) -> int:
        require_fields({"name": name}, context="Macrosector")
        m = schema.macro_sectors
        return self._insert_returning(m, m.c.mac_id, {"mac_nombre": name.strip()})

    def insert_neighborhood_unit(self, name: str, macro_sector_id: int) -> int:
        require_fields(
            {"name": name, "macro_sector_id": macro_sector_id}, context="Unidad Vecinal"
        )
        uv = schema.neighborhood_units
        return self._insert_returning(
            uv, uv.c.uv_id, {"uv_nombre": name.strip(), "uv_macid": macro_sector_id}
        )

    def insert_workshop(self, name: str) -> int:
        require_fields({"name": name}, context="Taller")
        t = schema.workshops
        return self._insert_returning(t, t.c.tal_id, {"tal_nombre": name.strip()})

    def insert_gender(self, name: str) -> int:
        require_fields({"name": name}, context="Género")
        g = schema.genders
        return self._insert_returning(g, g.c.gen_id, {"gen_genero": name.strip()})

    def insert_nationality(self, name: str) -> int:
        require_fields({"name": name}, context="Nacionalidad")
        n = schema.nationalities
        return self._insert_returning(n, n.c.nac_id, {"nac_nacionalidad": name.strip()})


class SharedStore:
    """
    One EntityStore shared by every controller, serialized by a lock.

    Every background unit of work enters `acquire()` for the duration of its
    store calls. The lock is released on every exit path, including errors.
    A slow call therefore blocks all other store access, liveness tests
    included.

    Attributes
    ----------
    generation:
        Count of connections opened through `open_session()`. A disconnect
        queued under one generation is skipped once a newer connection exists.
    """

    def __init__(self, store: EntityStore | None = None) -> None:
        self._store = store if store is not None else EntityStore()
        self._lock = threading.Lock()
        self.generation = 0

    @contextmanager
    def acquire(self) -> Iterator[EntityStore]:
        with self._lock:
            yield self._store

    @contextmanager
    def open_session(self, config: ConnectionConfig) -> Iterator[EntityStore]:
        """
        Connect under the lock and keep holding it for the caller's checks.

        The generation advances only after the connect succeeds.
        """
        with self._lock:
            self._store.connect(config)
            self.generation += 1
            yield self._store

    def disconnect(self, generation: int) -> bool:
        """
        Drop the connection opened under `generation`.

        Returns
        -------
        bool
            False if a newer connection has replaced it; that one is left open.
        """
        with self._lock:
            if generation != self.generation:
                _log.info(
                    "Skipping disconnect for generation %d, current is %d",
                    generation,
                    self.generation,
                )
                return False
            self._store.disconnect()
            return True
