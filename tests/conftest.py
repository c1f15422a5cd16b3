import io
from datetime import datetime
from typing import Dict, List, Optional

import pytest
import xlwt
from openpyxl import Workbook

from tabular_ingest.config import get_settings


def make_xlsx(sheets: Dict[str, List[list]], active: Optional[str] = None) -> io.BytesIO:
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title=title)
        for row in rows:
            ws.append(row)
    if active is not None:
        wb.active = wb.sheetnames.index(active)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


@pytest.fixture
def xlsx():
    return make_xlsx


@pytest.fixture
def csv_stream():
    def _make(text: str, encoding: str = "utf-8") -> io.BytesIO:
        return io.BytesIO(text.encode(encoding))

    return _make


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_xls(sheets: Dict[str, List[list]]) -> io.BytesIO:
    wb = xlwt.Workbook()
    date_style = xlwt.easyxf(num_format_str="YYYY-MM-DD")
    for title, rows in sheets.items():
        ws = wb.add_sheet(title)
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value is None:
                    continue
                if isinstance(value, datetime):
                    ws.write(r, c, value, date_style)
                else:
                    ws.write(r, c, value)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


@pytest.fixture
def xls():
    return make_xls
