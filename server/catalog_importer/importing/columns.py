"""Column names of the supplier catalog file."""
from __future__ import annotations

IMPORTABLE_PRODUCT_FIELDS = frozenset(
    {
        "EAN",
        "ItemUnit",
        "Nettopris",
        "Bruttopris",
        "LangProduktBeskrivelse",
        "ProduktGruppe",
        "ProduktID",
        "Varetekst1",
        "Varetekst2",
        "Synonyms",
        "ProduktGruppeTekst",
        "Weight",
        "SupName",
        "SupplierURL",
        "ProductURL",
        "PakkeAntal",
        "Billede",
        "Kategori1",
        "Kategori2",
        "Kategori3",
        "Kategori4",
        "Specifications",
        "SupplierProductNumber",
        "DisplayName",
        "Brand",
    }
)

CATEGORY_COLUMNS = ("Kategori1", "Kategori2", "Kategori3", "Kategori4")

IMAGE_COLUMN = "Billede"

# column -> (property name, presentation)
PROPERTY_COLUMNS: dict[str, tuple[str, str]] = {
    "ItemUnit": ("item_unit", "Item Unit"),
    "SupplierURL": ("supplier_url", "Supplier URL"),
    "ProductURL": ("product_url", "Product URL"),
    "PakkeAntal": ("package_count", "Package Count"),
    "Specifications": ("specifications", "Specifications"),
    "Brand": ("brand", "Brand"),
}

# Not copied onto the product by the field mapper
RELATED_PRODUCT_FIELDS = frozenset({*CATEGORY_COLUMNS, IMAGE_COLUMN, *PROPERTY_COLUMNS})


def whitelisted(row: dict) -> dict[str, str | None]:
    """Drop columns that are not part of the importable whitelist."""
    return {key: value for key, value in row.items() if key in IMPORTABLE_PRODUCT_FIELDS}
