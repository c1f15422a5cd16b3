"""
Row sources.

A row source turns one input (a text stream or one workbook sheet) into raw
cell rows. Column identities are resolved once, from the first row, when
iteration starts; every later row is read on demand.
"""

from __future__ import annotations

import codecs
import io
import os
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Callable, Iterator, List, Optional, Sequence

import openpyxl
import xlrd
from charset_normalizer import from_bytes

from .config import get_settings
from .errors import SheetNotFoundError, UnsupportedFormatError
from .headers import positional_columns, resolve_columns
from .logger import get_logger
from .models import Column
from .normalize import header_span, normalize_cell
from .rules import (
    ALL_SHEETS,
    FALLBACK_ENCODING,
    LEGACY_WORKBOOK_EXTENSIONS,
    LINE_LOOKBACK_BYTES,
    TEXT_EXTENSIONS,
    WORKBOOK_EXTENSIONS,
)
from .tokenizer import split_fields

logger = get_logger(__name__)


def detect_encoding(sample: bytes) -> str:
    """
    Best-effort encoding guess for a text sample via charset-normalizer.

    UTF-8 with a BOM maps to utf-8-sig so the BOM never reaches the first
    header name. A pure ASCII sample decodes as UTF-8.
    """
    if not sample:
        return FALLBACK_ENCODING

    match = from_bytes(sample).best()
    encoding = match.encoding if match is not None else FALLBACK_ENCODING

    normalized = encoding.lower().replace("-", "_")
    if normalized == "ascii":
        encoding = FALLBACK_ENCODING
        normalized = "utf_8"
    if sample.startswith(codecs.BOM_UTF8) and normalized in ("utf_8", "utf8"):
        encoding = "utf-8-sig"

    return encoding


def _read_whole_lines(stream: BinaryIO, start: int, size: int) -> bytes:
    """
    Read up to `size` bytes from `start`, cut back to the last newline when
    the stream continues, so no multi-byte character is split at the end.
    """
    stream.seek(start)
    data = stream.read(size)
    if stream.read(1):
        cut = data.rfind(b"\n")
        if cut >= 0:
            data = data[: cut + 1]
    return data


def _first_non_ascii(stream: BinaryIO, start: int, chunk_size: int) -> Optional[int]:
    stream.seek(start)
    position = start
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return None
        if not chunk.isascii():
            for i, byte in enumerate(chunk):
                if byte > 0x7F:
                    return position + i
        position += len(chunk)


def sniff_encoding(stream: BinaryIO, sample_size: int) -> str:
    """
    Detect the encoding of a seekable byte stream.

    Detection runs on whole lines from the start of the stream. When those
    are pure ASCII, the rest of the stream is scanned for the first
    non-ASCII byte and detection runs again on the lines starting at the
    line that holds it.
    """
    sample = _read_whole_lines(stream, 0, sample_size)
    if not sample.isascii():
        return detect_encoding(sample)

    offset = _first_non_ascii(stream, len(sample), sample_size)
    if offset is None:
        return FALLBACK_ENCODING

    lookback = min(offset, LINE_LOOKBACK_BYTES)
    stream.seek(offset - lookback)
    before = stream.read(lookback)
    line_start = offset - lookback + before.rfind(b"\n") + 1

    logger.debug("First non-ASCII byte of stream at offset %d", offset)
    return detect_encoding(_read_whole_lines(stream, line_start, sample_size))


def _is_empty_row(row: Sequence[Any]) -> bool:
    return all(normalize_cell(c) is None for c in row)


class RowSource(ABC):
    """
    One forward-only stream of raw rows.

    `columns` is None until iteration starts. With `use_header_row` the first
    row names the columns and is not yielded; otherwise columns are named by
    position from the width of the first row, which is yielded as data.
    """

    skip_blank_headers = False

    def __init__(self, name: str, use_header_row: bool = False):
        self.name = name
        self.use_header_row = use_header_row
        self.columns: Optional[List[Column]] = None

    @abstractmethod
    def _raw_rows(self) -> Iterator[List[Any]]:
        raise NotImplementedError

    def rows(self) -> Iterator[List[Any]]:
        if self.columns is not None:
            raise RuntimeError(f"Row source {self.name!r} has already been read")

        raw_rows = self._raw_rows()
        try:
            first = next(raw_rows, None)
            if first is None:
                self.columns = []
                return

            if self.use_header_row:
                self.columns = resolve_columns(first, skip_blank=self.skip_blank_headers)
            else:
                self.columns = positional_columns(len(first))
            logger.debug("Resolved %d columns for %r", len(self.columns), self.name)

            if not self.use_header_row:
                yield first
                yield from raw_rows
                return

            known = {c.ordinal for c in self.columns}
            skipped = [i for i in range(header_span(self.columns)) if i not in known]
            if not skipped:
                yield from raw_rows
                return

            for number, raw in enumerate(raw_rows, start=1):
                dropped = [i for i in skipped if i < len(raw) and normalize_cell(raw[i]) is not None]
                if dropped:
                    logger.debug(
                        "Row %d of %r has values under blank headers at %s, dropped",
                        number, self.name, dropped,
                    )
                yield raw
        finally:
            raw_rows.close()


class TextRowSource(RowSource):
    """Comma-delimited text read line by line from a seekable byte stream."""

    def __init__(
        self,
        stream: BinaryIO,
        name: str,
        use_header_row: bool = False,
        sample_size: Optional[int] = None,
    ):
        super().__init__(name, use_header_row)
        self.stream = stream
        self.sample_size = sample_size or get_settings().ENCODING_SAMPLE_BYTES

    def _raw_rows(self) -> Iterator[List[Any]]:
        encoding = sniff_encoding(self.stream, self.sample_size)
        self.stream.seek(0)
        logger.debug("Decoding %r as %s", self.name, encoding)

        text = io.TextIOWrapper(self.stream, encoding=encoding, errors="replace")
        warned = False
        try:
            for number, line in enumerate(text, start=1):
                line = line.rstrip("\r\n")
                if not line:
                    continue
                if not warned and "\ufffd" in line:
                    logger.warning(
                        "Line %d of %r has bytes not decodable as %s, replaced with U+FFFD",
                        number, self.name, encoding,
                    )
                    warned = True
                yield split_fields(line)
        finally:
            # The caller owns the byte stream; detaching keeps it open.
            text.detach()


class WorkbookRowSource(RowSource):
    """Rows of one openpyxl worksheet (read-only, cached formula values)."""

    skip_blank_headers = True

    def __init__(self, worksheet, use_header_row: bool = False):
        super().__init__(worksheet.title, use_header_row)
        self.worksheet = worksheet

    def _raw_rows(self) -> Iterator[List[Any]]:
        for row in self.worksheet.iter_rows(values_only=True):
            if _is_empty_row(row):
                continue
            yield list(row)


class LegacyWorkbookRowSource(RowSource):
    """Rows of one xlrd sheet from a binary .xls workbook."""

    skip_blank_headers = True

    def __init__(self, sheet, datemode: int, use_header_row: bool = False):
        super().__init__(sheet.name, use_header_row)
        self.sheet = sheet
        self.datemode = datemode

    def _cell_value(self, cell) -> Any:
        if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
            return None
        if cell.ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(cell.value)
        if cell.ctype == xlrd.XL_CELL_DATE:
            return xlrd.xldate.xldate_as_datetime(cell.value, self.datemode)
        if cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
            return int(cell.value)
        return cell.value

    def _raw_rows(self) -> Iterator[List[Any]]:
        for index in range(self.sheet.nrows):
            row = [self._cell_value(c) for c in self.sheet.row(index)]
            if _is_empty_row(row):
                continue
            yield row


class SourceSet:
    """The row sources opened for one file, plus whatever must be released after."""

    def __init__(self, sources: List[RowSource], on_close: Optional[Callable[[], None]] = None):
        self.sources = sources
        self._on_close = on_close

    def __iter__(self) -> Iterator[RowSource]:
        return iter(self.sources)

    def __len__(self) -> int:
        return len(self.sources)

    def close(self) -> None:
        if self._on_close is not None:
            self._on_close()
            self._on_close = None

    def __enter__(self) -> "SourceSet":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _select_sheets(available: List[str], default: str, sheet_name: Optional[str]) -> List[str]:
    if not sheet_name:
        return [default]
    if sheet_name == ALL_SHEETS:
        return list(available)
    if sheet_name not in available:
        raise SheetNotFoundError(sheet_name, available)
    return [sheet_name]


def _open_workbook(stream: BinaryIO, use_header_row: bool, sheet_name: Optional[str]) -> SourceSet:
    stream.seek(0)
    wb = openpyxl.load_workbook(stream, read_only=True, data_only=True)
    try:
        default = wb.active.title if wb.active is not None else wb.sheetnames[0]
        names = _select_sheets(wb.sheetnames, default, sheet_name)
    except Exception:
        wb.close()
        raise

    sources: List[RowSource] = [WorkbookRowSource(wb[name], use_header_row) for name in names]
    return SourceSet(sources, on_close=wb.close)


def _open_legacy_workbook(stream: BinaryIO, use_header_row: bool, sheet_name: Optional[str]) -> SourceSet:
    stream.seek(0)
    book = xlrd.open_workbook(file_contents=stream.read(), on_demand=True)
    try:
        available = book.sheet_names()
        names = _select_sheets(available, available[0], sheet_name)
        sources: List[RowSource] = [
            LegacyWorkbookRowSource(book.sheet_by_name(name), book.datemode, use_header_row)
            for name in names
        ]
    except Exception:
        book.release_resources()
        raise

    return SourceSet(sources, on_close=book.release_resources)


def open_sources(
    stream: BinaryIO,
    filename: str,
    use_header_row: bool = False,
    sheet_name: Optional[str] = None,
) -> SourceSet:
    """
    Pick the row sources for `filename` by extension.

    Text files give one source named after the file stem; workbooks give one
    source per selected sheet (the active sheet by default, every sheet for
    ALL_SHEETS). No data row is read here.
    """
    base = os.path.basename(filename)
    ext = os.path.splitext(base)[1].lower()

    if ext in TEXT_EXTENSIONS:
        logger.info("Opening %s as delimited text", filename)
        name = os.path.splitext(base)[0] or base
        return SourceSet([TextRowSource(stream, name, use_header_row)])

    if ext in WORKBOOK_EXTENSIONS:
        logger.info("Opening %s as workbook (sheet=%r)", filename, sheet_name)
        return _open_workbook(stream, use_header_row, sheet_name)

    if ext in LEGACY_WORKBOOK_EXTENSIONS:
        logger.info("Opening %s as legacy workbook (sheet=%r)", filename, sheet_name)
        return _open_legacy_workbook(stream, use_header_row, sheet_name)

    raise UnsupportedFormatError(filename)
