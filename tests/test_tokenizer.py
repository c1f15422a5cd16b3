import pytest

from tabular_ingest.tokenizer import split_fields


@pytest.mark.parametrize(
    "line, expected",
    [
        ("a,b,c", ["a", "b", "c"]),
        ('a,"b,c",d', ["a", "b,c", "d"]),
        ('"a""b"', ['a"b']),
        ("a,,c", ["a", "", "c"]),
        ("a,b,", ["a", "b", ""]),
        ("", [""]),
        ("a,  ,c", ["a", "  ", "c"]),
        ('"",x', ["", "x"]),
    ],
)
def test_split_fields(line, expected):
    assert split_fields(line) == expected


def test_unquoted_field_keeps_lone_quote():
    assert split_fields('5" pipe,x') == ['5" pipe', "x"]


def test_unquoted_field_unescapes_doubled_quote():
    assert split_fields('say ""hi"",x') == ['say "hi"', "x"]


def test_text_after_closing_quote_is_kept():
    assert split_fields('"ab"cd,e') == ["abcd", "e"]


def test_unterminated_quote_takes_rest_of_line():
    assert split_fields('a,"b,c,d') == ["a", "b,c,d"]
