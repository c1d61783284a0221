"""CSV validation service for pre-import checks."""
from __future__ import annotations

import csv
import itertools
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from catalog_importer.importing.columns import IMPORTABLE_PRODUCT_FIELDS
from catalog_importer.schemas.catalog_row import CatalogRowSample


@dataclass
class ValidationResult:
    """Result of CSV validation with error details."""

    is_valid: bool
    errors: list[str]
    total_rows: int = 0
    sample_size: int = 0


class CSVValidator:
    """Validates catalog files before an import record is created.

    Only file-level problems make a file invalid. Row-level problems found in
    the sample are reported as warnings: those rows are rejected one by one
    during the import itself.
    """

    REQUIRED_HEADERS = {"DisplayName"}
    ALLOWED_HEADERS = IMPORTABLE_PRODUCT_FIELDS
    ALLOWED_EXTENSIONS = {".csv", ".txt"}
    SAMPLE_SIZE = 100
    MAX_SAMPLE_WARNINGS = 10
    MAX_FILE_SIZE_MB = 100

    @classmethod
    def validate_file(
        cls,
        file_path: str | Path,
        *,
        encoding: str = "iso-8859-1",
        delimiter: str = ";",
    ) -> ValidationResult:
        """
        Validate a catalog file before enqueueing the import task.

        Performs the following checks:
        1. File extension is .csv or .txt
        2. File exists and is within the size limit
        3. The header names DisplayName (no product can be built without it)
        4. Sample first 100 rows; malformed rows become warnings

        Args:
            file_path: Path to the catalog file
            encoding: Text encoding of the file
            delimiter: Column separator

        Returns:
            ValidationResult with validation status and error details
        """
        errors: list[str] = []
        file_path = Path(file_path)

        if file_path.suffix.lower() not in cls.ALLOWED_EXTENSIONS:
            errors.append(f"Invalid file extension: {file_path.suffix}. Expected .csv or .txt")
            return ValidationResult(is_valid=False, errors=errors)

        if not file_path.exists():
            errors.append(f"File not found: {file_path}")
            return ValidationResult(is_valid=False, errors=errors)

        file_size_mb = file_path.stat().st_size / (1024 * 1024)
        if file_size_mb > cls.MAX_FILE_SIZE_MB:
            errors.append(
                f"File size ({file_size_mb:.2f} MB) exceeds maximum allowed size ({cls.MAX_FILE_SIZE_MB} MB)"
            )
            return ValidationResult(is_valid=False, errors=errors)

        try:
            with open(file_path, "r", encoding=encoding, newline="") as f:
                reader = csv.DictReader(f, delimiter=delimiter)

                if not reader.fieldnames:
                    errors.append("CSV file is empty or has no headers")
                    return ValidationResult(is_valid=False, errors=errors)

                headers = set(reader.fieldnames)
                missing_headers = cls.REQUIRED_HEADERS - headers
                if missing_headers:
                    errors.append(
                        f"Missing required headers: {', '.join(sorted(missing_headers))}. "
                        f"Found: {', '.join(sorted(headers))}"
                    )
                    return ValidationResult(is_valid=False, errors=errors)

                unknown_headers = headers - cls.ALLOWED_HEADERS
                if unknown_headers:
                    errors.append(
                        f"Warning: Unknown headers will be ignored: {', '.join(sorted(unknown_headers))}"
                    )

                sample_warnings, rows_validated = cls._validate_sample_rows(reader, cls.SAMPLE_SIZE)
                errors.extend(sample_warnings)

                remaining_rows = sum(1 for _ in reader)
                return ValidationResult(
                    is_valid=True,
                    errors=errors,
                    total_rows=rows_validated + remaining_rows,
                    sample_size=rows_validated,
                )

        except csv.Error as e:
            errors.append(f"CSV parsing error: {str(e)}")
            return ValidationResult(is_valid=False, errors=errors)
        except UnicodeDecodeError as e:
            errors.append(f"File encoding error: {str(e)}. File must be {encoding} encoded")
            return ValidationResult(is_valid=False, errors=errors)

    @classmethod
    def _validate_sample_rows(cls, reader: csv.DictReader, sample_size: int) -> tuple[list[str], int]:
        """
        Check a sample of rows against CatalogRowSample.

        Args:
            reader: CSV DictReader positioned after the header
            sample_size: Number of rows to check

        Returns:
            Tuple of (warning messages, number of rows checked)
        """
        warnings: list[str] = []
        rows_validated = 0
        truncated = False

        for row_num, row in enumerate(itertools.islice(reader, sample_size), start=1):
            rows_validated = row_num
            if truncated:
                continue

            try:
                CatalogRowSample.model_validate({k: v for k, v in row.items() if k in cls.ALLOWED_HEADERS})
            except ValidationError as e:
                for error in e.errors():
                    field = error["loc"][0] if error["loc"] else "unknown"
                    warnings.append(f"Warning: Row {row_num}, field '{field}': {error['msg']} (row will be rejected)")

                if len(warnings) >= cls.MAX_SAMPLE_WARNINGS:
                    warnings.append(
                        f"Warning: Sample check stopped after {cls.MAX_SAMPLE_WARNINGS} problems."
                    )
                    truncated = True

        return warnings, rows_validated
