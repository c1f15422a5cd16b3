from datetime import datetime
from typing import Optional

import openpyxl
import pytest
from pydantic import BaseModel

from tabular_ingest.errors import EmptyTableError, SheetNotFoundError
from tabular_ingest.extract import parse_records, parse_tables
from tabular_ingest.rules import ALL_SHEETS


class Member(BaseModel):
    id: int
    name: Optional[str] = None
    joined: Optional[datetime] = None


MEMBERS = [
    ["id", "name", "joined"],
    [1, "Alice", datetime(2024, 1, 5)],
    [2, None, None],
]


def test_records_from_active_sheet(xlsx):
    buf = xlsx({"Members": MEMBERS})
    records = list(parse_records(buf, "members.xlsx", Member, True))
    assert records == [
        Member(id=1, name="Alice", joined=datetime(2024, 1, 5)),
        Member(id=2),
    ]


def test_tables_keep_native_types(xlsx):
    container = parse_tables(xlsx({"Members": MEMBERS}), "members.xlsx", True)
    table = container["Members"]
    assert table.column_names == ["id", "name", "joined"]
    assert table.rows == [[1, "Alice", datetime(2024, 1, 5)], [2, None, None]]


def test_extension_is_case_insensitive(xlsx):
    container = parse_tables(xlsx({"S": [["a"], [1]]}), "BOOK.XLSX", True)
    assert container.table_names == ["S"]


def test_default_is_active_sheet(xlsx):
    buf = xlsx({"First": [["a"], [1]], "Second": [["b"], [2]]}, active="Second")
    container = parse_tables(buf, "book.xlsx", True)
    assert container.table_names == ["Second"]
    assert container["Second"].rows == [[2]]


def test_named_sheet(xlsx):
    buf = xlsx({"First": [["a"], [1]], "Second": [["b"], [2]]})
    records = list(parse_records(buf, "book.xlsx", dict, True, "Second"))
    assert records == [{"b": 2}]


def test_missing_sheet_fails_immediately(xlsx):
    buf = xlsx({"First": [["a"], [1]]})
    with pytest.raises(SheetNotFoundError) as excinfo:
        parse_records(buf, "book.xlsx", dict, True, "Nope")
    assert excinfo.value.available == ["First"]


def test_all_sheets_tables(xlsx):
    buf = xlsx({"First": [["a"], [1]], "Second": [["b", "c"], [2, 3], [4, 5]]})
    container = parse_tables(buf, "book.xlsx", True, ALL_SHEETS)
    assert container.table_names == ["First", "Second"]
    assert container["Second"].rows == [[2, 3], [4, 5]]


def test_all_sheets_records_resolve_each_header(xlsx):
    buf = xlsx({"Jan": [["id", "name"], [1, "A"]], "Feb": [["name", "id"], ["B", 2]]})
    records = list(parse_records(buf, "book.xlsx", Member, True, ALL_SHEETS))
    assert [(m.id, m.name) for m in records] == [(1, "A"), (2, "B")]


def test_all_sheets_limit_applies_per_sheet(xlsx):
    buf = xlsx({"A": [["n"], [1], [2], [3]], "B": [["n"], [4], [5]]})
    container = parse_tables(buf, "book.xlsx", True, ALL_SHEETS, limit=1)
    assert container["A"].rows == [[1]]
    assert container["B"].rows == [[4]]


def test_blank_header_cells_are_skipped(xlsx):
    buf = xlsx({"S": [["id", None, "name"], [1, "dropped", "Al"]]})
    table = parse_tables(buf, "book.xlsx", True).tables[0]
    assert [(c.name, c.ordinal) for c in table.columns] == [("id", 0), ("name", 2)]
    assert table.rows == [[1, "Al"]]


def test_empty_rows_are_skipped(xlsx):
    buf = xlsx({"S": [["a", "b"], [1, 2], [None, None], [3, 4]]})
    table = parse_tables(buf, "book.xlsx", True).tables[0]
    assert table.rows == [[1, 2], [3, 4]]


def test_wide_rows_grow_columns(xlsx):
    buf = xlsx({"S": [["a", "b"], [1, 2], [3, 4, 5]]})
    table = parse_tables(buf, "book.xlsx", True).tables[0]
    assert table.column_names == ["a", "b", "C2"]
    assert table.rows == [[1, 2, None], [3, 4, 5]]


def test_duplicate_workbook_headers(xlsx):
    buf = xlsx({"S": [["x", "x", 3, 3], [1, 2, 3, 4]]})
    table = parse_tables(buf, "book.xlsx", True).tables[0]
    assert table.column_names == ["x", "x_1", "3", "3_1"]


def test_no_header_row(xlsx):
    buf = xlsx({"S": [[1, "a"], [2, "b"]]})
    table = parse_tables(buf, "book.xlsx").tables[0]
    assert table.column_names == ["0", "1"]
    assert table.rows == [[1, "a"], [2, "b"]]


def test_header_only_sheet(xlsx):
    buf = xlsx({"S": [["a", "b"]]})
    assert list(parse_records(buf, "book.xlsx", dict, True)) == []

    buf.seek(0)
    with pytest.raises(EmptyTableError):
        parse_tables(buf, "book.xlsx", True)


def test_limit(xlsx):
    buf = xlsx({"S": [["n"]] + [[i] for i in range(50)]})
    records = list(parse_records(buf, "book.xlsx", dict, True, limit=3))
    assert records == [{"n": 0}, {"n": 1}, {"n": 2}]


def test_stream_left_open(xlsx):
    buf = xlsx({"S": [["n"], [1], [2]]})
    it = parse_records(buf, "book.xlsx", dict, True)
    next(it)
    it.close()
    assert not buf.closed


def test_overflow_gap_does_not_become_column(xlsx):
    buf = xlsx({"S": [["a", "b"], [1, 2, None, "over"], [3, 4]]})
    table = parse_tables(buf, "book.xlsx", True).tables[0]
    assert table.column_names == ["a", "b", "C3"]
    assert table.rows == [[1, 2, "over"], [3, 4, None]]


def test_value_under_blank_header_is_not_grown(xlsx):
    buf = xlsx({"S": [["id", None, "name"], [1, "dropped", "Al", "extra"]]})
    table = parse_tables(buf, "book.xlsx", True).tables[0]
    assert table.column_names == ["id", "name", "C3"]
    assert table.rows == [[1, "Al", "extra"]]


def test_unstarted_records_release_workbook(xlsx, monkeypatch):
    closed = []
    original_close = openpyxl.Workbook.close

    def close(self):
        closed.append(True)
        return original_close(self)

    monkeypatch.setattr(openpyxl.Workbook, "close", close)

    records = parse_records(xlsx({"S": [["n"], [1]]}), "book.xlsx", dict, True)
    records.close()
    assert closed


def test_records_as_context_manager(xlsx):
    with parse_records(xlsx({"S": [["n"], [1], [2]]}), "book.xlsx", dict, True) as records:
        assert next(records) == {"n": 1}
