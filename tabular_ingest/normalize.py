"""
Row normalization.

Responsibilities:
- blank text cells become None
- raw cell sequences are keyed by resolved column names
- cells past the known columns are reported for column growth
- row production is capped at a configured limit
"""

from __future__ import annotations

from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from .models import Column

T = TypeVar("T")


def normalize_cell(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def normalize_row(raw: Sequence[Any], columns: Sequence[Column]) -> Dict[str, Any]:
    """
    Key one raw row by column name.

    Each column reads the cell at its ordinal; cells missing from a short row
    map to None and cells with no column are dropped.
    """
    width = len(raw)
    return {
        col.name: normalize_cell(raw[col.ordinal]) if col.ordinal < width else None
        for col in columns
    }


def header_span(columns: Sequence[Column]) -> int:
    """First ordinal past the resolved header."""
    return max((c.ordinal for c in columns), default=-1) + 1


def overflow_cells(
    raw: Sequence[Any], columns: Sequence[Column], start: Optional[int] = None
) -> List[Tuple[int, Any]]:
    """
    Non-empty cells at or past `start` that no column reads yet.

    `start` defaults to the span of `columns`; callers that grow columns
    pass the span of the original header so ordinals left of it (cells
    under skipped blank headers) never become columns.
    """
    if start is None:
        start = header_span(columns)
    known = {c.ordinal for c in columns}
    cells = []
    for i in range(start, len(raw)):
        if i in known:
            continue
        value = normalize_cell(raw[i])
        if value is not None:
            cells.append((i, value))
    return cells


def bounded(rows: Iterable[T], limit: Optional[int] = None) -> Iterator[T]:
    """Yield at most `limit` rows; 0 or None means no limit."""
    if not limit:
        return iter(rows)
    if limit < 0:
        raise ValueError(f"Row limit must be >= 0, got {limit}")
    return islice(rows, limit)
