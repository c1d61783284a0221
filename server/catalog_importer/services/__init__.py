"""Services module for business logic."""
from __future__ import annotations

from .category_repository import CategoryRepository
from .csv_validator import CSVValidator, ValidationResult
from .image_storage import ImageStorage
from .import_service import ImportRepository, ImportRequestError, ImportService
from .product_repository import ProductRepository
from .property_repository import PropertyRepository

__all__ = [
    "CSVValidator",
    "CategoryRepository",
    "ImageStorage",
    "ImportRepository",
    "ImportRequestError",
    "ImportService",
    "ProductRepository",
    "PropertyRepository",
    "ValidationResult",
]
