"""
Fixed extraction rules.

Only one text dialect is supported: comma delimited, double-quote escaped.
"""

DELIMITER = ","
QUOTE = '"'

TEXT_EXTENSIONS = (".csv", ".txt")
WORKBOOK_EXTENSIONS = (".xlsx",)
LEGACY_WORKBOOK_EXTENSIONS = (".xls",)

FALLBACK_ENCODING = "utf-8"

# Selects every sheet of a workbook instead of the active one.
ALL_SHEETS = "*"

# Columns discovered past the header width are named C<ordinal>.
OVERFLOW_COLUMN_PREFIX = "C"

# How far back from a non-ASCII byte to look for the start of its line.
LINE_LOOKBACK_BYTES = 4096
