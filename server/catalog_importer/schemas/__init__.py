"""Public schema exports."""

from .catalog_row import CatalogRowSample
from .import_job import ImportAccepted, ImportJobCreate, ImportJobResponse, ImportProgress, ImportRequest

__all__ = [
    "CatalogRowSample",
    "ImportAccepted",
    "ImportJobCreate",
    "ImportJobResponse",
    "ImportProgress",
    "ImportRequest",
]
