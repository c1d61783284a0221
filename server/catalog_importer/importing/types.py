"""Result types produced by the row and batch importers."""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

# DictReader puts fields past the header in a list under the None key
RawRow = dict[Union[str, None], Union[str, list[str], None]]


@dataclass(frozen=True)
class RowImported:
    """A row whose unit of work committed."""

    line_number: int
    slug: str

    ok = True


@dataclass(frozen=True)
class RowFailed:
    """A rejected row, kept with its original column values."""

    line_number: int
    row: RawRow
    error_kind: str
    message: str

    ok = False


RowResult = Union[RowImported, RowFailed]


def _original_fields(row: RawRow, fieldnames: list[str]) -> list[str | None]:
    """Values of ``row`` in file order, as ``csv.DictReader`` split them.

    Fields past the header (DictReader's ``None`` restkey) are written back,
    and the missing tail of a short row (``None`` restval) is left off.
    """
    values: list[str | None] = [row.get(name) for name in fieldnames]
    values.extend(row.get(None) or [])
    while values and values[-1] is None:
        values.pop()
    return values


@dataclass
class BatchReport:
    """Outcome of one batch run."""

    fieldnames: list[str]
    deleted_products: int = 0
    total_rows: int = 0
    imported_rows: int = 0
    failures: list[RowFailed] = field(default_factory=list)

    @property
    def failed_rows(self) -> int:
        return len(self.failures)

    def record(self, result: RowResult) -> None:
        """Account for one row result."""
        self.total_rows += 1
        if isinstance(result, RowFailed):
            self.failures.append(result)
        else:
            self.imported_rows += 1

    def to_csv(self, delimiter: str = ";") -> str:
        """Render failed rows back to the input dialect, header first.

        Args:
            delimiter: Column separator of the original file

        Returns:
            CSV text containing the header and one line per failed row
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
        writer.writerow(self.fieldnames)
        for failure in self.failures:
            writer.writerow(_original_fields(failure.row, self.fieldnames))
        return buffer.getvalue()

    def write_failure_report(self, path: str | Path, *, encoding: str = "iso-8859-1", delimiter: str = ";") -> Path:
        """Write the failure report next to other reports and return its path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_csv(delimiter), encoding=encoding, errors="replace", newline="")
        return path

    def summary(self) -> dict[str, Any]:
        """Counts plus per-failure diagnostics, suitable for logging or JSON."""
        return {
            "deleted_products": self.deleted_products,
            "total_rows": self.total_rows,
            "imported_rows": self.imported_rows,
            "failed_rows": self.failed_rows,
            "failures": [
                {
                    "line_number": failure.line_number,
                    "error_kind": failure.error_kind,
                    "message": failure.message,
                }
                for failure in self.failures
            ],
        }
