"""
Insertions view controller.

One form per record kind. Submitting validates the active form on the UI
thread; only a valid record is handed to a background insert. While an insert
is pending, further submissions are rejected rather than raced.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from registry_engine.channel import Success
from registry_engine.entity_store import EntityStore, SharedStore
from registry_engine.errors import MalformedInputError

from .base import Notice, OperationSlot, Spawner
from .catalogs import Catalogs, load_catalogs
from .forms import (
    ActivityForm,
    MacroSectorForm,
    NeighborhoodUnitForm,
    OrganizationForm,
    PersonForm,
    WorkshopForm,
    build_activity,
    build_macro_sector,
    build_neighborhood_unit,
    build_organization,
    build_person,
    build_workshop,
)


class InsertionKind(str, Enum):
    PERSON = "person"
    ORGANIZATION = "organization"
    ACTIVITY = "activity"
    MACRO_SECTOR = "macro_sector"
    NEIGHBORHOOD_UNIT = "neighborhood_unit"
    WORKSHOP = "workshop"

    @property
    def label(self) -> str:
        return _INSERTION_LABELS[self]


_INSERTION_LABELS = {
    InsertionKind.PERSON: "Persona Mayor",
    InsertionKind.ORGANIZATION: "Organización",
    InsertionKind.ACTIVITY: "Actividad",
    InsertionKind.MACRO_SECTOR: "Macrosector",
    InsertionKind.NEIGHBORHOOD_UNIT: "Unidad Vecinal",
    InsertionKind.WORKSHOP: "Taller",
}

# (success message, error prefix) per kind.
_MESSAGES = {
    InsertionKind.PERSON: ("Persona guardada exitosamente", "Error al guardar persona"),
    InsertionKind.ORGANIZATION: (
        "Organización guardada exitosamente",
        "Error al guardar organización",
    ),
    InsertionKind.ACTIVITY: ("Actividad guardada exitosamente", "Error al guardar actividad"),
    InsertionKind.MACRO_SECTOR: (
        "Macrosector guardado exitosamente",
        "Error al guardar macrosector",
    ),
    InsertionKind.NEIGHBORHOOD_UNIT: (
        "Unidad Vecinal guardada exitosamente",
        "Error al guardar unidad vecinal",
    ),
    InsertionKind.WORKSHOP: ("Taller guardado exitosamente", "Error al guardar taller"),
}


class InsertionsController:
    """
    Form state and background inserts for every insertable record kind.

    Attributes
    ----------
    form_errors:
        Field names rejected by the last submission attempt (inline markers).
    """

    def __init__(self, shared: SharedStore, spawn: Spawner) -> None:
        self._shared = shared
        self._insert_slot: OperationSlot[int] = OperationSlot(spawn)
        self._catalog_slot: OperationSlot[Catalogs] = OperationSlot(spawn)
        self._submitted_kind: InsertionKind | None = None

        self.kind = InsertionKind.PERSON
        self.person_form = PersonForm()
        self.organization_form = OrganizationForm()
        self.activity_form = ActivityForm()
        self.macro_sector_form = MacroSectorForm()
        self.unit_form = NeighborhoodUnitForm()
        self.workshop_form = WorkshopForm()

        self.catalogs = Catalogs()
        self.catalogs_loaded = False
        self.loading = False
        self.form_errors: tuple[str, ...] = ()
        self.form_message: str | None = None

    @property
    def submitting(self) -> bool:
        return self._insert_slot.pending

    def ensure_catalogs(self) -> None:
        """Load catalogs on first use."""
        if not self.catalogs_loaded and not self._catalog_slot.pending:
            self.load_catalogs()

    def load_catalogs(self) -> None:
        shared = self._shared
        self._catalog_slot.start(
            lambda: load_catalogs(shared), error_prefix="Error al cargar catálogos"
        )

    def reset_form(self, kind: InsertionKind) -> None:
        if kind is InsertionKind.PERSON:
            self.person_form = PersonForm()
        elif kind is InsertionKind.ORGANIZATION:
            self.organization_form = OrganizationForm()
        elif kind is InsertionKind.ACTIVITY:
            self.activity_form = ActivityForm()
        elif kind is InsertionKind.MACRO_SECTOR:
            self.macro_sector_form = MacroSectorForm()
        elif kind is InsertionKind.NEIGHBORHOOD_UNIT:
            self.unit_form = NeighborhoodUnitForm()
        else:
            self.workshop_form = WorkshopForm()
        if kind is self.kind:
            self.form_errors = ()
            self.form_message = None

    def reset(self) -> None:
        """Drop pending work, catalogs and every form; they hold ids from the old connection."""
        self._insert_slot.cancel()
        self._catalog_slot.cancel()
        self._submitted_kind = None
        for kind in InsertionKind:
            self.reset_form(kind)
        self.catalogs = Catalogs()
        self.catalogs_loaded = False
        self.loading = False
        self.form_errors = ()
        self.form_message = None

    def submit(self) -> bool:
        """
        Validate the active form and start its insert.

        Returns
        -------
        bool
            True if an insert was started. False if a submission is already
            pending or the form failed validation (see `form_errors`).
        """
        if self._insert_slot.pending:
            return False

        kind = self.kind
        try:
            insert = self._prepare(kind)
        except MalformedInputError as exc:
            self.form_errors = exc.fields
            self.form_message = str(exc)
            return False

        self.form_errors = ()
        self.form_message = None
        self.loading = True
        self._submitted_kind = kind
        shared = self._shared

        def work() -> int:
            with shared.acquire() as store:
                return insert(store)

        self._insert_slot.start(work, error_prefix=_MESSAGES[kind][1])
        return True

    def _prepare(self, kind: InsertionKind) -> Callable[[EntityStore], int]:
        if kind is InsertionKind.PERSON:
            person = build_person(self.person_form)
            return lambda store: store.insert_person(person)
        if kind is InsertionKind.ORGANIZATION:
            organization = build_organization(self.organization_form)
            return lambda store: store.insert_organization(organization)
        if kind is InsertionKind.ACTIVITY:
            activity = build_activity(self.activity_form)
            return lambda store: store.insert_activity(activity)
        if kind is InsertionKind.MACRO_SECTOR:
            sector_name = build_macro_sector(self.macro_sector_form)
            return lambda store: store.insert_macro_sector(sector_name)
        if kind is InsertionKind.NEIGHBORHOOD_UNIT:
            unit_name, sector_id = build_neighborhood_unit(self.unit_form)
            return lambda store: store.insert_neighborhood_unit(unit_name, sector_id)
        workshop_name = build_workshop(self.workshop_form)
        return lambda store: store.insert_workshop(workshop_name)

    def poll(self) -> Notice | None:
        """
        Absorb completed catalog loads and inserts.

        A successful insert clears the submitted form and reloads catalogs;
        a failed one leaves the form intact for correction.
        """
        catalogs = self._catalog_slot.poll()
        if catalogs is not None and isinstance(catalogs, Success):
            self.catalogs = catalogs.value
            self.catalogs_loaded = True
        catalog_notice = (
            Notice.error(catalogs.message)
            if catalogs is not None and not isinstance(catalogs, Success)
            else None
        )

        outcome = self._insert_slot.poll()
        if outcome is None:
            return catalog_notice

        self.loading = False
        kind = self._submitted_kind or self.kind
        self._submitted_kind = None
        if isinstance(outcome, Success):
            self.reset_form(kind)
            self.load_catalogs()
            return Notice.success(f"{_MESSAGES[kind][0]} con ID: {outcome.value}")
        return Notice.error(outcome.message)
