"""
Field tokenizer for one line of comma-delimited text.

Quoting follows RFC 4180 within a single line: a field that opens with a
double quote may contain the delimiter, and a doubled quote stands for one
literal quote. An unterminated quote swallows the rest of the line.
"""

from __future__ import annotations

from typing import List

from .logger import get_logger
from .rules import DELIMITER, QUOTE

logger = get_logger(__name__)


def split_fields(line: str, delimiter: str = DELIMITER) -> List[str]:
    fields: List[str] = []
    field: List[str] = []
    in_quotes = False
    at_field_start = True
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]

        if in_quotes:
            if ch == QUOTE:
                if i + 1 < n and line[i + 1] == QUOTE:
                    field.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                field.append(ch)
        elif ch == delimiter:
            fields.append("".join(field))
            field = []
            at_field_start = True
            i += 1
            continue
        elif ch == QUOTE:
            if at_field_start:
                in_quotes = True
            elif i + 1 < n and line[i + 1] == QUOTE:
                field.append(QUOTE)
                i += 2
                at_field_start = False
                continue
            else:
                field.append(ch)
        else:
            field.append(ch)

        at_field_start = False
        i += 1

    if in_quotes:
        logger.debug("Unterminated quote, keeping rest of line in last field: %r", line)

    fields.append("".join(field))
    return fields
