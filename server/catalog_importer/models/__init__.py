"""ORM models exposed for external modules."""
from .base import Base
from .catalog import (
    CategoryNode,
    Image,
    ProductCategory,
    ProductProperty,
    PropertyDefinition,
    ShippingCategory,
    TaxCategory,
)
from .import_job import ImportJob, ImportStatus
from .product import Product

__all__ = [
    "Base",
    "CategoryNode",
    "Image",
    "ImportJob",
    "ImportStatus",
    "Product",
    "ProductCategory",
    "ProductProperty",
    "PropertyDefinition",
    "ShippingCategory",
    "TaxCategory",
]
