"""
Clock abstractions for deterministic behavior.

Notes
-----
Age calculation, dashboard month windows and age filters all depend on "today".
Callers provide a Clock so that tests can pin the reference date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol


class Clock(Protocol):
    """A source of local time."""

    def now(self) -> datetime:
        """
        Return the current local time.

        Returns
        -------
        datetime
            A naive local datetime.
        """
        ...

    def today(self) -> date:
        """Return the current local date."""
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Clock backed by the local system time."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return date.today()


@dataclass(frozen=True, slots=True)
class FixedClock:
    """Clock that always returns a fixed date (useful for tests)."""

    fixed_date: date

    def now(self) -> datetime:
        return datetime(self.fixed_date.year, self.fixed_date.month, self.fixed_date.day)

    def today(self) -> date:
        return self.fixed_date
