"""
Entry points.

parse_records yields typed records lazily; parse_tables materializes a
TabularContainer. Both share the same row sources and normalization, but
differ on emptiness: a source without data rows is an empty record sequence
and an EmptyTableError for tables.
"""

from __future__ import annotations

from typing import BinaryIO, Generic, Iterator, Optional, Type, TypeVar

from .coerce import RecordCoercer
from .config import get_settings
from .logger import get_logger
from .models import TabularContainer
from .normalize import bounded, normalize_row
from .sources import SourceSet, open_sources
from .tables import build_table

logger = get_logger(__name__)

T = TypeVar("T")


def _resolve_limit(limit: Optional[int]) -> int:
    if limit is None:
        return get_settings().ROW_LIMIT
    if limit < 0:
        raise ValueError(f"Row limit must be >= 0, got {limit}")
    return limit


def _iter_records(sources: SourceSet, coercer: RecordCoercer[T], limit: int) -> Iterator[T]:
    try:
        for source in sources:
            rows = source.rows()
            count = 0
            try:
                for raw in bounded(rows, limit):
                    count += 1
                    row = normalize_row(raw, source.columns or [])
                    yield coercer.coerce(row, row_number=count, source=source.name)
            finally:
                rows.close()
            logger.info("Read %d records from %r", count, source.name)
    finally:
        sources.close()


class RecordStream(Generic[T]):
    """
    Lazy records over opened sources.

    Exhausting the stream, or calling close() at any point (also before the
    first record), releases the opened workbook. Usable as a context manager.
    """

    def __init__(self, sources: SourceSet, coercer: RecordCoercer[T], limit: int):
        self._sources = sources
        self._records = _iter_records(sources, coercer, limit)

    def __iter__(self) -> "RecordStream[T]":
        return self

    def __next__(self) -> T:
        return next(self._records)

    def close(self) -> None:
        self._records.close()
        self._sources.close()

    def __enter__(self) -> "RecordStream[T]":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def parse_records(
    stream: BinaryIO,
    filename: str,
    target: Type[T],
    use_header_row: bool = False,
    sheet_name: Optional[str] = None,
    *,
    limit: Optional[int] = None,
) -> RecordStream[T]:
    """
    Lazily parse `stream` into `target` records.

    Format dispatch and sheet lookup happen before this returns, so
    UnsupportedFormatError and SheetNotFoundError are raised immediately.
    A row that does not fit `target` raises CoercionError when it is reached;
    records yielded before it stay valid. The stream is not closed; close
    the returned RecordStream when abandoning it early.
    """
    limit = _resolve_limit(limit)
    coercer = RecordCoercer(target)
    sources = open_sources(stream, filename, use_header_row, sheet_name)
    return RecordStream(sources, coercer, limit)


def parse_tables(
    stream: BinaryIO,
    filename: str,
    use_header_row: bool = False,
    sheet_name: Optional[str] = None,
    *,
    limit: Optional[int] = None,
) -> TabularContainer:
    """Parse `stream` into one table per selected source (text file or sheet)."""
    limit = _resolve_limit(limit)
    container = TabularContainer()

    with open_sources(stream, filename, use_header_row, sheet_name) as sources:
        for source in sources:
            table = build_table(source, limit)
            logger.info(
                "Built table %r: %d columns, %d rows",
                table.name, len(table.columns), len(table.rows),
            )
            container.add_table(table)

    return container
