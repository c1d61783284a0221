"""Translate a raw catalog row into product attributes.

Each importable column maps to one or more product fields through a parser.
The mapping lives in ``FIELD_RULES`` so the whitelist and its transforms can
be inspected and tested without touching the database.
"""
from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, NamedTuple

from .columns import IMPORTABLE_PRODUCT_FIELDS, RELATED_PRODUCT_FIELDS
from .errors import ParseError

SLUG_SEPARATOR = "-"

# Letters NFKD does not decompose to ASCII
_TRANSLITERATIONS = str.maketrans(
    {
        "æ": "ae",
        "Æ": "AE",
        "ø": "o",
        "Ø": "O",
        "ß": "ss",
        "þ": "th",
        "Þ": "TH",
        "ð": "d",
        "Ð": "D",
        "đ": "d",
        "Đ": "D",
        "ł": "l",
        "Ł": "L",
        "œ": "oe",
        "Œ": "OE",
    }
)
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")
_DECIMAL = re.compile(r"[+-]?\d+(\.\d+)?")


def parameterize(value: str | None, separator: str = SLUG_SEPARATOR) -> str:
    """Turn a display name into a URL-safe slug.

    >>> parameterize("Red Chair - Deluxe!!")
    'red-chair-deluxe'
    """
    if not value:
        return ""
    ascii_value = (
        unicodedata.normalize("NFKD", value.translate(_TRANSLITERATIONS))
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    return _NON_ALPHANUMERIC.sub(separator, ascii_value.lower()).strip(separator)


def parse_decimal(value: str | None) -> Decimal | None:
    """Parse a decimal that may use a comma as decimal separator.

    Blank values map to ``None``.

    Raises:
        ParseError: If the cleaned value is not a plain decimal literal
    """
    if value is None or not value.strip():
        return None
    cleaned = value.strip().replace(",", ".")
    if not _DECIMAL.fullmatch(cleaned):
        raise ParseError(f"{value!r} is not a number")
    return Decimal(cleaned)


def _verbatim(value: str | None) -> str | None:
    return value


class FieldRule(NamedTuple):
    """Copy a column into ``field`` after running it through ``parser``."""

    field: str
    parser: Callable[[str | None], Any]


FIELD_RULES: dict[str, tuple[FieldRule, ...]] = {
    "DisplayName": (
        FieldRule("name", _verbatim),
        FieldRule("meta_title", _verbatim),
        FieldRule("slug", parameterize),
    ),
    "Nettopris": (FieldRule("cost_price", parse_decimal),),
    "Bruttopris": (FieldRule("price", parse_decimal),),
    "LangProduktBeskrivelse": (
        FieldRule("description", _verbatim),
        FieldRule("meta_description", _verbatim),
    ),
    "EAN": (FieldRule("sku", _verbatim),),
    "Weight": (FieldRule("weight", parse_decimal),),
}


def map_row(
    row: Mapping[str, str | None],
    importable: Iterable[str] = IMPORTABLE_PRODUCT_FIELDS,
    related: Iterable[str] = RELATED_PRODUCT_FIELDS,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the product attribute mapping for one row.

    Args:
        row: Column name -> raw value, as read from the catalog file
        importable: Columns allowed to be imported at all
        related: Columns handled by other components, never copied here
        now: Availability timestamp, defaults to the current UTC time

    Returns:
        Product field name -> parsed value

    Raises:
        ParseError: If a numeric column is malformed
    """
    copyable = set(importable) - set(related)
    attributes: dict[str, Any] = {}

    for column, value in row.items():
        if column not in copyable:
            continue
        for rule in FIELD_RULES.get(column, ()):
            try:
                attributes[rule.field] = rule.parser(value)
            except ParseError as exc:
                raise ParseError(f"{column}: {exc}") from exc

    attributes["available_on"] = now or datetime.now(timezone.utc)
    attributes["promotable"] = True
    return attributes
