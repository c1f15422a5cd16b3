"""Exceptions raised by the extraction engine."""

from __future__ import annotations

from typing import Any, List, Optional


class ExtractionError(Exception):
    """Base class for every error raised while extracting tabular data."""


class UnsupportedFormatError(ExtractionError, ValueError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"File type not supported: {filename!r}")


class SheetNotFoundError(ExtractionError, KeyError):
    def __init__(self, sheet_name: str, available: List[str]):
        self.sheet_name = sheet_name
        self.available = available
        super().__init__(sheet_name)

    def __str__(self) -> str:
        return f"Sheet {self.sheet_name!r} not found (available: {', '.join(self.available)})"


class EmptyTableError(ExtractionError, ValueError):
    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table {table_name!r} has no data rows")


class CoercionError(ExtractionError, ValueError):
    """
    A normalized row could not be turned into the requested record type.

    `serialized` holds the JSON form of the offending row; `errors` the
    structured validation errors reported by pydantic.
    """

    def __init__(
        self,
        serialized: str,
        errors: Optional[List[Any]] = None,
        row_number: Optional[int] = None,
        source: Optional[str] = None,
    ):
        self.serialized = serialized
        self.errors = errors or []
        self.row_number = row_number
        self.source = source

        where = ""
        if source is not None:
            where += f" in {source!r}"
        if row_number is not None:
            where += f" at row {row_number}"
        super().__init__(f"Unable to coerce row{where}: {serialized}")
