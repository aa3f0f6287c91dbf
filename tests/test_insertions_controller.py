from __future__ import annotations

from conftest import DeferredSpawner
from registry_engine.entity_store import EntityStore, SharedStore
from registry_gui.controllers.base import NoticeKind, inline_spawner
from registry_gui.controllers.forms import PersonForm
from registry_gui.controllers.insertions import InsertionKind, InsertionsController


def _fill_person(form: PersonForm, ids: dict[str, int], national_id: str = "12.345.678-k") -> None:
    form.national_id = national_id
    form.first_name = "Ana"
    form.family_name = "Rojas"
    form.gender_id = ids["Femenino"]
    form.nationality_id = ids["Chilena"]
    form.birth_date = "01/06/1950"
    form.address = "Calle 1"
    form.email = "ana@mail.cl"
    form.unit_id = ids["UV 1"]


def test_blank_form_is_rejected_without_store_call(shared: SharedStore, store: EntityStore) -> None:
    controller = InsertionsController(shared, inline_spawner)

    assert controller.submit() is False

    assert "national_id" in controller.form_errors
    assert "first_name" in controller.form_errors
    assert controller.form_message is not None
    assert not controller.loading
    assert store.list_persons() == []


def test_successful_person_insert_clears_form_and_reloads_catalogs(
    shared: SharedStore, store: EntityStore, seeded: dict[str, int]
) -> None:
    controller = InsertionsController(shared, inline_spawner)
    _fill_person(controller.person_form, seeded)

    assert controller.submit() is True
    notice = controller.poll()

    assert notice is not None
    assert notice.kind is NoticeKind.SUCCESS
    person_id = store.list_persons()[0].id
    assert notice.message == f"Persona guardada exitosamente con ID: {person_id}"
    assert controller.person_form == PersonForm()
    assert not controller.loading

    controller.poll()
    assert controller.catalogs_loaded

    stored = store.list_persons()[0]
    assert stored.national_id == "12345678-K"
    assert stored.email == "ana@mail.cl"


def test_store_rejection_keeps_form(
    shared: SharedStore, store: EntityStore, seeded: dict[str, int]
) -> None:
    controller = InsertionsController(shared, inline_spawner)
    _fill_person(controller.person_form, seeded)
    controller.submit()
    controller.poll()

    _fill_person(controller.person_form, seeded)
    controller.submit()
    notice = controller.poll()

    assert notice is not None
    assert notice.kind is NoticeKind.ERROR
    assert notice.message.startswith("Error al guardar persona: ")
    assert controller.person_form.national_id == "12.345.678-k"
    assert len(store.list_persons()) == 1


def test_submit_while_pending_is_rejected(shared: SharedStore, seeded: dict[str, int]) -> None:
    spawner = DeferredSpawner()
    controller = InsertionsController(shared, spawner)
    controller.kind = InsertionKind.WORKSHOP
    controller.workshop_form.name = "Tejido"

    assert controller.submit() is True
    assert controller.submitting
    assert controller.submit() is False
    assert len(spawner.jobs) == 1

    spawner.run_all()
    notice = controller.poll()
    assert notice is not None
    assert notice.message.startswith("Taller guardado exitosamente con ID: ")
    assert controller.workshop_form.name == ""


def test_neighborhood_unit_requires_macro_sector(shared: SharedStore, store: EntityStore) -> None:
    controller = InsertionsController(shared, inline_spawner)
    controller.kind = InsertionKind.NEIGHBORHOOD_UNIT
    controller.unit_form.name = "UV 9"

    assert controller.submit() is False
    assert controller.form_errors == ("macro_sector_id",)
    assert [u.name for u in store.list_neighborhood_units()] == ["UV 1", "UV 2"]


def test_activity_with_end_before_start_is_rejected(
    shared: SharedStore, seeded: dict[str, int]
) -> None:
    controller = InsertionsController(shared, inline_spawner)
    controller.kind = InsertionKind.ACTIVITY
    form = controller.activity_form
    form.name = "Yoga"
    form.start_date = "10/03/2024"
    form.end_date = "01/03/2024"
    form.unit_id = seeded["UV 1"]

    assert controller.submit() is False
    assert controller.form_errors == ("end_date",)


def test_ensure_catalogs_loads_once(shared: SharedStore) -> None:
    spawner = DeferredSpawner()
    controller = InsertionsController(shared, spawner)

    controller.ensure_catalogs()
    controller.ensure_catalogs()
    assert len(spawner.jobs) == 1

    spawner.run_all()
    controller.poll()
    assert controller.catalogs_loaded

    controller.ensure_catalogs()
    assert spawner.jobs == []


def test_reset_drops_catalogs_forms_and_pending_insert(
    shared: SharedStore, seeded: dict[str, int]
) -> None:
    spawner = DeferredSpawner()
    controller = InsertionsController(shared, spawner)
    controller.ensure_catalogs()
    spawner.run_all()
    controller.poll()
    _fill_person(controller.person_form, seeded)
    assert controller.submit() is True

    controller.reset()
    spawner.run_all()

    assert controller.poll() is None
    assert not controller.submitting
    assert not controller.catalogs_loaded
    assert controller.catalogs.genders == ()
    assert controller.person_form == PersonForm()
