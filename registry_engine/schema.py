"""Table definitions consumed by the Entity Store.

Notes
-----
Table and column identifiers are the deployment contract with the schema
owner and must not be renamed. The deployed PostgreSQL schema additionally
carries regex format checks on national-id and email columns; those are not
expressible portably and are therefore not declared here.

`create_schema` is for local and test databases only. Deployments are never
migrated from this module.
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Identity,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

macro_sectors = Table(
    "mac_macrosectores",
    metadata,
    Column("mac_id", Integer, Identity(always=True), primary_key=True),
    Column("mac_nombre", String(255), nullable=False, unique=True),
    sqlite_autoincrement=True,
)

neighborhood_units = Table(
    "uv_unidadesvecinales",
    metadata,
    Column("uv_id", Integer, Identity(always=True), primary_key=True),
    Column("uv_nombre", String(255), nullable=False, unique=True),
    Column("uv_macid", Integer, ForeignKey("mac_macrosectores.mac_id"), nullable=False),
    sqlite_autoincrement=True,
)

genders = Table(
    "gen_generos",
    metadata,
    Column("gen_id", Integer, Identity(always=True), primary_key=True),
    Column("gen_genero", String(255), nullable=False, unique=True),
    sqlite_autoincrement=True,
)

nationalities = Table(
    "nac_nacionalidades",
    metadata,
    Column("nac_id", Integer, Identity(always=True), primary_key=True),
    Column("nac_nacionalidad", String(255), nullable=False, unique=True),
    sqlite_autoincrement=True,
)

organizations = Table(
    "org_orgcomunitarias",
    metadata,
    Column("org_id", Integer, Identity(always=True), primary_key=True),
    Column("org_nombre", String(255), nullable=False, unique=True),
    Column("org_direccion", String(255), nullable=False),
    Column("org_uvid", Integer, ForeignKey("uv_unidadesvecinales.uv_id"), nullable=False),
    Column("org_fechaconst", Date, nullable=False),
    Column("org_perjuridica", String(255), nullable=False),
    Column("org_email", String(255), nullable=True),
    sqlite_autoincrement=True,
)

persons = Table(
    "per_personasmayores",
    metadata,
    Column("per_id", Integer, Identity(always=True), primary_key=True),
    Column("per_rut", String(12), nullable=False, unique=True),
    Column("per_prinombre", String(255), nullable=False),
    Column("per_segnombre", String(255), nullable=True),
    Column("per_priapellido", String(255), nullable=False),
    Column("per_segapellido", String(255), nullable=True),
    Column("per_genid", Integer, ForeignKey("gen_generos.gen_id"), nullable=False),
    Column("per_nacid", Integer, ForeignKey("nac_nacionalidades.nac_id"), nullable=False),
    Column("per_fechadenac", Date, nullable=False),
    Column("per_direccion", String(255), nullable=False),
    Column("per_email", String(255), nullable=True),
    Column("per_uvid", Integer, ForeignKey("uv_unidadesvecinales.uv_id"), nullable=False),
    sqlite_autoincrement=True,
)

workshops = Table(
    "tal_talleres",
    metadata,
    Column("tal_id", Integer, Identity(always=True), primary_key=True),
    Column("tal_nombre", String(255), nullable=False, unique=True),
    sqlite_autoincrement=True,
)

activities = Table(
    "act_actividades",
    metadata,
    Column("act_id", Integer, Identity(always=True), primary_key=True),
    Column("act_nombre", String(255), nullable=False),
    Column("act_uvid", Integer, ForeignKey("uv_unidadesvecinales.uv_id"), nullable=False),
    Column("act_fecha_ini", Date, nullable=False),
    Column("act_fecha_fin", Date, nullable=True),
    Column("act_descripcion", Text, nullable=True),
    UniqueConstraint("act_nombre", "act_fecha_ini", "act_uvid", name="uq_act_nombre_fecha_uv"),
    CheckConstraint(
        "act_fecha_fin IS NULL OR act_fecha_fin >= act_fecha_ini", name="chk_act_fechas"
    ),
    sqlite_autoincrement=True,
)

trips = Table(
    "via_viajes",
    metadata,
    Column("via_id", Integer, Identity(always=True), primary_key=True),
    Column("via_nombre", String(255), nullable=False),
    Column("via_destino", String(255), nullable=False),
    Column("via_fecha_salida", Date, nullable=False),
    Column("via_fecha_regreso", Date, nullable=True),
    Column("via_uvid", Integer, ForeignKey("uv_unidadesvecinales.uv_id"), nullable=False),
    UniqueConstraint(
        "via_nombre", "via_fecha_salida", "via_uvid", name="uq_via_nombre_salida_uv"
    ),
    CheckConstraint(
        "via_fecha_regreso IS NULL OR via_fecha_regreso >= via_fecha_salida",
        name="chk_via_fechas",
    ),
    sqlite_autoincrement=True,
)

# Relaxed email check applied to deployments on connect. The deployed
# chk_per_email_formato regex rejects addresses the registry must accept.
RELAX_EMAIL_CONSTRAINT_SQL = (
    "ALTER TABLE per_personasmayores DROP CONSTRAINT IF EXISTS chk_per_email_formato",
    "ALTER TABLE per_personasmayores DROP CONSTRAINT IF EXISTS chk_per_email_formato_temp",
    "ALTER TABLE per_personasmayores ADD CONSTRAINT chk_per_email_formato_temp "
    "CHECK (per_email IS NULL OR (per_email LIKE '%@%.%' AND length(per_email) > 5))",
)


def create_schema(engine: Engine) -> None:
    """Create all registry tables on a local or test database."""
    metadata.create_all(engine)
