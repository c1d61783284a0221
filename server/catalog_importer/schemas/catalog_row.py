"""Pydantic schema used to sample-check catalog rows before an import."""
from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog_importer.importing.errors import ParseError
from catalog_importer.importing.field_mapper import parameterize, parse_decimal


class CatalogRowSample(BaseModel):
    """The product-defining columns of one catalog row."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    display_name: str = Field(alias="DisplayName", min_length=1)
    cost_price: Decimal | None = Field(default=None, alias="Nettopris")
    price: Decimal | None = Field(default=None, alias="Bruttopris")
    weight: Decimal | None = Field(default=None, alias="Weight")

    @field_validator("display_name")
    @classmethod
    def ensure_sluggable(cls, value: str) -> str:
        if not parameterize(value):
            msg = "DisplayName has no letters or digits to build a slug from"
            raise ValueError(msg)
        return value

    @field_validator("cost_price", "price", "weight", mode="before")
    @classmethod
    def parse_comma_decimal(cls, value: str | None) -> Decimal | None:
        if isinstance(value, Decimal) or value is None:
            return value
        try:
            return parse_decimal(value)
        except ParseError as exc:
            raise ValueError(str(exc)) from exc
