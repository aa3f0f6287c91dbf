"""
Editable insertion forms and their conversion into store records.

Forms hold raw widget text. `build_*` functions validate a form and return the
record to insert, or raise MalformedInputError naming every offending field so
the GUI can flag them all at once. Nothing here touches the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from registry_engine.data_models import Activity, Organization, Person
from registry_engine.errors import MalformedInputError
from registry_engine.formatting import parse_date
from registry_engine.validation import (
    format_national_id,
    optional_text,
    validate_email,
    validate_national_id,
)


@dataclass(slots=True)
class PersonForm:
    national_id: str = ""
    first_name: str = ""
    second_name: str = ""
    family_name: str = ""
    second_family_name: str = ""
    gender_id: int | None = None
    nationality_id: int | None = None
    birth_date: str = ""
    address: str = ""
    email: str = ""
    unit_id: int | None = None


@dataclass(slots=True)
class OrganizationForm:
    name: str = ""
    address: str = ""
    founded_on: str = ""
    legal_personality: str = ""
    email: str = ""
    unit_id: int | None = None


@dataclass(slots=True)
class ActivityForm:
    name: str = ""
    start_date: str = ""
    end_date: str = ""
    description: str = ""
    unit_id: int | None = None


@dataclass(slots=True)
class MacroSectorForm:
    name: str = ""


@dataclass(slots=True)
class NeighborhoodUnitForm:
    name: str = ""
    macro_sector_id: int | None = None


@dataclass(slots=True)
class WorkshopForm:
    name: str = ""


class _Problems:
    """Collects offending field names in form order."""

    def __init__(self) -> None:
        self.fields: list[str] = []

    def blank(self, name: str, value: object) -> None:
        if value is None or (isinstance(value, str) and not value.strip()):
            self.fields.append(name)

    def date(self, name: str, text: str, *, required: bool) -> date | None:
        if not text.strip():
            if required:
                self.fields.append(name)
            return None
        parsed = parse_date(text)
        if parsed is None:
            self.fields.append(name)
        return parsed

    def email(self, name: str, text: str) -> str | None:
        value = optional_text(text)
        if value is not None and not validate_email(value):
            self.fields.append(name)
        return value

    def raise_if_any(self, context: str) -> None:
        if self.fields:
            raise MalformedInputError(
                f"{context}: revise los campos: {', '.join(self.fields)}", fields=self.fields
            )


def build_person(form: PersonForm) -> Person:
    p = _Problems()
    national_id = format_national_id(form.national_id)
    if not validate_national_id(national_id):
        p.fields.append("national_id")
    p.blank("first_name", form.first_name)
    p.blank("family_name", form.family_name)
    p.blank("gender_id", form.gender_id)
    p.blank("nationality_id", form.nationality_id)
    birth_date = p.date("birth_date", form.birth_date, required=True)
    p.blank("address", form.address)
    email = p.email("email", form.email)
    p.blank("unit_id", form.unit_id)
    p.raise_if_any("Persona")

    assert birth_date is not None
    assert form.gender_id is not None and form.nationality_id is not None
    assert form.unit_id is not None
    return Person(
        id=None,
        national_id=national_id,
        first_name=form.first_name.strip(),
        second_name=optional_text(form.second_name),
        family_name=form.family_name.strip(),
        second_family_name=optional_text(form.second_family_name),
        gender_id=form.gender_id,
        nationality_id=form.nationality_id,
        birth_date=birth_date,
        address=form.address.strip(),
        email=email,
        unit_id=form.unit_id,
    )


def build_organization(form: OrganizationForm) -> Organization:
    p = _Problems()
    p.blank("name", form.name)
    p.blank("address", form.address)
    founded_on = p.date("founded_on", form.founded_on, required=True)
    p.blank("legal_personality", form.legal_personality)
    email = p.email("email", form.email)
    p.blank("unit_id", form.unit_id)
    p.raise_if_any("Organización")

    assert founded_on is not None and form.unit_id is not None
    return Organization(
        id=None,
        name=form.name.strip(),
        address=form.address.strip(),
        unit_id=form.unit_id,
        founded_on=founded_on,
        legal_personality=form.legal_personality.strip(),
        email=email,
    )


def build_activity(form: ActivityForm) -> Activity:
    p = _Problems()
    p.blank("name", form.name)
    start_date = p.date("start_date", form.start_date, required=True)
    end_date = p.date("end_date", form.end_date, required=False)
    if start_date is not None and end_date is not None and end_date < start_date:
        p.fields.append("end_date")
    p.blank("unit_id", form.unit_id)
    p.raise_if_any("Actividad")

    assert start_date is not None and form.unit_id is not None
    return Activity(
        id=None,
        name=form.name.strip(),
        unit_id=form.unit_id,
        start_date=start_date,
        end_date=end_date,
        description=optional_text(form.description),
    )


def build_macro_sector(form: MacroSectorForm) -> str:
    p = _Problems()
    p.blank("name", form.name)
    p.raise_if_any("Macrosector")
    return form.name.strip()


def build_neighborhood_unit(form: NeighborhoodUnitForm) -> tuple[str, int]:
    p = _Problems()
    p.blank("name", form.name)
    p.blank("macro_sector_id", form.macro_sector_id)
    p.raise_if_any("Unidad Vecinal")
    assert form.macro_sector_id is not None
    return form.name.strip(), form.macro_sector_id


def build_workshop(form: WorkshopForm) -> str:
    p = _Problems()
    p.blank("name", form.name)
    p.raise_if_any("Taller")
    return form.name.strip()
