"""Header row resolution into stable column identities."""

from __future__ import annotations

from typing import Any, Iterable, List, Set

from .models import Column


def unique_name(name: str, taken: Set[str]) -> str:
    """Return `name`, or the first of `name_1`, `name_2`, ... not in `taken`."""
    candidate = name
    num = 1
    while candidate in taken:
        candidate = f"{name}_{num}"
        num += 1
    return candidate


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_columns(raw_headers: Iterable[Any], skip_blank: bool = False) -> List[Column]:
    """
    Map a header row to columns, deduplicating names in order.

    With `skip_blank`, null or blank header cells produce no column; the
    remaining columns keep the ordinal of their source cell.
    """
    columns: List[Column] = []
    taken: Set[str] = set()

    for ordinal, raw in enumerate(raw_headers):
        if skip_blank and _is_blank(raw):
            continue
        name = unique_name("" if raw is None else str(raw), taken)
        taken.add(name)
        columns.append(Column(name=name, ordinal=ordinal))

    return columns


def positional_columns(count: int) -> List[Column]:
    return [Column(name=str(i), ordinal=i) for i in range(count)]
