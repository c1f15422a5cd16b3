from __future__ import annotations

from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field


class Column(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    ordinal: int = Field(ge=0)


class Table(BaseModel):
    """
    A named table of positional rows.

    Every row holds exactly one value per column. Columns added after rows
    exist are appended at the end and earlier rows are padded with None.
    """

    name: str
    columns: List[Column] = Field(default_factory=list)
    rows: List[List[Any]] = Field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def add_column(self, name: str, ordinal: int) -> Column:
        # Imported here to avoid a cycle: headers builds on Column.
        from .headers import unique_name

        taken: Set[str] = set(self.column_names)
        column = Column(name=unique_name(name, taken), ordinal=ordinal)
        self.columns.append(column)
        for row in self.rows:
            row.append(None)
        return column

    def add_row(self, values: List[Any]) -> None:
        if len(values) != len(self.columns):
            raise ValueError(
                f"Row width {len(values)} does not match {len(self.columns)} columns "
                f"in table {self.name!r}"
            )
        self.rows.append(list(values))

    def records(self) -> List[Dict[str, Any]]:
        names = self.column_names
        return [dict(zip(names, row)) for row in self.rows]


class TabularContainer(BaseModel):
    tables: List[Table] = Field(default_factory=list)

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def add_table(self, table: Table) -> None:
        if table.name in self.table_names:
            raise ValueError(f"Duplicate table name {table.name!r}")
        self.tables.append(table)

    def __getitem__(self, name: str) -> Table:
        for table in self.tables:
            if table.name == name:
                return table
        raise KeyError(name)

    def __len__(self) -> int:
        return len(self.tables)


class ParseSummary(BaseModel):
    tables: int = 0
    rows: int = 0
    columns: Optional[int] = Field(default=None, examples=[None])


class ParseResponse(BaseModel):
    filename: str
    summary: ParseSummary
    container: TabularContainer


class HealthResponse(BaseModel):
    ok: bool = True
