"""Accumulation of normalized rows into tables."""

from __future__ import annotations

from typing import Optional

from .errors import EmptyTableError
from .logger import get_logger
from .models import Table
from .normalize import bounded, header_span, normalize_row, overflow_cells
from .rules import OVERFLOW_COLUMN_PREFIX
from .sources import RowSource

logger = get_logger(__name__)


def build_table(source: RowSource, limit: Optional[int] = None) -> Table:
    """
    Read `source` into a Table.

    Non-empty cells past the header append positional columns named
    C<ordinal> (never matched against existing names), one per ordinal
    that carries a value; empty gaps do not become columns. A table
    without data rows is rejected with EmptyTableError.
    """
    table = Table(name=source.name)
    span = None
    rows = source.rows()
    try:
        for raw in bounded(rows, limit):
            if span is None:
                table.columns = list(source.columns or [])
                span = header_span(table.columns)

            for ordinal, _ in overflow_cells(raw, table.columns, span):
                column = table.add_column(f"{OVERFLOW_COLUMN_PREFIX}{ordinal}", ordinal)
                logger.warning(
                    "Row %d of %r is wider than its header, added column %r",
                    len(table.rows) + 1, table.name, column.name,
                )

            table.add_row(list(normalize_row(raw, table.columns).values()))
    finally:
        rows.close()

    if not table.columns:
        table.columns = list(source.columns or [])

    if not table.rows:
        raise EmptyTableError(table.name)

    return table
