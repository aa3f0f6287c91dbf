"""Date and text helpers shared by the controllers and the GUI."""

from __future__ import annotations

from datetime import date, datetime

DISPLAY_DATE_FORMAT = "%d/%m/%Y"
ISO_DATE_FORMAT = "%Y-%m-%d"


def format_date(value: date) -> str:
    return value.strftime(DISPLAY_DATE_FORMAT)


def format_optional_date(value: date | None) -> str:
    if value is None:
        return "N/A"
    return format_date(value)


def parse_date(text: str) -> date | None:
    """
    Parse a user-entered date.

    Accepts ``dd/mm/YYYY`` first, then ISO ``YYYY-mm-dd``.

    Returns
    -------
    date | None
        The parsed date, or None if neither format matches.
    """
    cleaned = text.strip()
    for fmt in (DISPLAY_DATE_FORMAT, ISO_DATE_FORMAT):
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def calculate_age(birth_date: date, today: date) -> int:
    """
    Return completed years between `birth_date` and `today`.

    The birthday itself counts: someone born 2000-03-15 is 23 on 2024-03-14
    and 24 on 2024-03-15.
    """
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def years_before(today: date, years: int) -> date:
    """Return the same calendar day `years` earlier (Feb 29 maps to Feb 28)."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


def truncate_text(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max(max_len - 3, 0)] + "..."
