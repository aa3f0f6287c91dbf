"""
Client-side input validation.

Everything here is syntax-only and touches neither the store nor the clock.
Validation failures are reported before any store call is made.
"""

from __future__ import annotations

import re
from typing import Mapping

from .errors import MalformedInputError

NATIONAL_ID_PATTERN = re.compile(r"^[0-9]{7,8}-[0-9Kk]$")
EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def validate_national_id(value: str) -> bool:
    """
    Return True if `value` is a well-formed national-id.

    The accepted shape is 7 or 8 digits, a dash, then a check character that is
    a digit or the letter K (either case). The check character is not verified
    against the digits.
    """
    return NATIONAL_ID_PATTERN.fullmatch(value) is not None


def validate_email(value: str) -> bool:
    """Return True if `value` looks like ``local@domain.tld``."""
    return EMAIL_PATTERN.fullmatch(value) is not None


def format_national_id(raw: str) -> str:
    """
    Normalize free-form national-id input as the user types it.

    Keeps digits and K/k, upper-cases K, and places the dash before the last
    character. Input with fewer than two significant characters is returned
    cleaned but without a dash.

    Examples
    --------
    >>> format_national_id("12.345.678-k")
    '12345678-K'
    """
    clean = "".join(c for c in raw if c.isdigit() or c in "Kk")
    if len(clean) < 2:
        return clean.upper()
    return f"{clean[:-1]}-{clean[-1].upper()}"


def optional_text(value: str) -> str | None:
    """Map blank form input to None so absent values are never stored as ''."""
    stripped = value.strip()
    return stripped or None


def require_fields(values: Mapping[str, object], *, context: str) -> None:
    """
    Raise MalformedInputError naming every blank or missing required field.

    Parameters
    ----------
    values:
        Field name to value. ``None`` and whitespace-only strings are blank.
    context:
        Human-readable record kind used in the error message.
    """
    missing = [
        name
        for name, value in values.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise MalformedInputError(
            f"{context}: faltan campos obligatorios: {', '.join(missing)}", fields=missing
        )
