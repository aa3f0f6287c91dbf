"""
Domain exceptions for the community registry.

Notes
-----
Engine code never lets a driver or SQLAlchemy exception escape. Every expected
failure mode maps to one of the exceptions below so that callers can tell a
missing connection apart from a store-reported failure.
"""

from __future__ import annotations

from typing import Sequence


class RegistryError(RuntimeError):
    """Base exception for all registry domain failures."""


class NotConnectedError(RegistryError):
    """Raised when a data operation is attempted without a live connection."""

    def __init__(self, message: str = "No hay conexión a la base de datos") -> None:
        super().__init__(message)


class ConnectionFailureError(RegistryError):
    """Raised when the store is unreachable or rejects the credentials."""


class StoreError(RegistryError):
    """Raised for store-reported failures that are not constraint violations."""


class ConstraintViolationError(StoreError):
    """Raised when the store rejects an insert (uniqueness, check or foreign key)."""


class MalformedInputError(RegistryError):
    """
    Raised when client-side validation rejects user input.

    Attributes
    ----------
    fields:
        Names of the offending fields, in form order.
    """

    def __init__(self, message: str, fields: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.fields: tuple[str, ...] = tuple(fields)
