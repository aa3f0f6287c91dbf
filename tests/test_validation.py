from __future__ import annotations

import pytest

from registry_engine.errors import MalformedInputError
from registry_engine.validation import (
    format_national_id,
    optional_text,
    require_fields,
    validate_email,
    validate_national_id,
)


@pytest.mark.parametrize("value", ["12345678-9", "1234567-K", "1234567-k", "7654321-0"])
def test_validate_national_id_accepts(value: str) -> None:
    assert validate_national_id(value)


@pytest.mark.parametrize(
    "value",
    ["12345678", "123-45", "12345678-X", "123456789-1", "12345678-99", " 12345678-9", ""],
)
def test_validate_national_id_rejects(value: str) -> None:
    assert not validate_national_id(value)


def test_validate_email() -> None:
    assert validate_email("a@b.co")
    assert validate_email("maria.perez@municipio.cl")
    assert not validate_email("a@b")
    assert not validate_email("noatsign.com")
    assert not validate_email("")


def test_format_national_id_normalizes_user_input() -> None:
    assert format_national_id("12.345.678-k") == "12345678-K"
    assert format_national_id("123456789") == "12345678-9"
    assert format_national_id(" 1234567 k ") == "1234567-K"
    assert format_national_id("1") == "1"


def test_optional_text_maps_blank_to_none() -> None:
    assert optional_text("   ") is None
    assert optional_text(" x ") == "x"


def test_require_fields_names_every_blank_field() -> None:
    with pytest.raises(MalformedInputError) as excinfo:
        require_fields({"name": " ", "address": "ok", "unit_id": None}, context="Organización")

    assert excinfo.value.fields == ("name", "unit_id")
    assert "Organización" in str(excinfo.value)
