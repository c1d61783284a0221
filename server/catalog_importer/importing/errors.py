"""Errors raised while importing a single catalog row.

Every error here is row-local: the row importer catches it, rolls back the
row's unit of work and reports the row as failed without stopping the batch.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError


class RowImportError(Exception):
    """Base class for row-level import failures."""

    kind = "unexpected"


class ParseError(RowImportError):
    """A numeric column could not be parsed."""

    kind = "parse"


class NotFoundError(RowImportError):
    """Referenced reference data (e.g. a category level) does not exist."""

    kind = "not_found"


class FetchError(RowImportError):
    """The product image could not be downloaded."""

    kind = "fetch"


class ConstraintError(RowImportError):
    """A uniqueness or required-field rule was violated on upsert."""

    kind = "constraint"


class CatalogFileError(ValueError):
    """The import file itself cannot be read (no header, bad encoding)."""


def classify_error(exc: BaseException) -> str:
    """Return the failure kind reported for ``exc``."""
    if isinstance(exc, RowImportError):
        return exc.kind
    if isinstance(exc, IntegrityError):
        return ConstraintError.kind
    return RowImportError.kind
