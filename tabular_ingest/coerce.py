"""
Typed record coercion.

A normalized row is validated straight into the caller's record type with a
pydantic TypeAdapter, so pydantic models, dataclasses and TypedDicts all
work. Fields match column names exactly (aliases included); lax-mode
validation converts text cells to numbers, booleans and dates.
"""

from __future__ import annotations

from typing import Any, Generic, Mapping, Optional, Type, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_json

from .errors import CoercionError

T = TypeVar("T")


def serialize_row(row: Mapping[str, Any]) -> str:
    return to_json(dict(row), fallback=str).decode("utf-8")


class RecordCoercer(Generic[T]):
    def __init__(self, target: Type[T]):
        self.target = target
        self._adapter: TypeAdapter[T] = TypeAdapter(target)

    def coerce(
        self,
        row: Mapping[str, Any],
        row_number: Optional[int] = None,
        source: Optional[str] = None,
    ) -> T:
        try:
            return self._adapter.validate_python(dict(row))
        except ValidationError as exc:
            raise CoercionError(
                serialize_row(row),
                errors=exc.errors(include_url=False),
                row_number=row_number,
                source=source,
            ) from exc
