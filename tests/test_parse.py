"""Parser shape and error-position tests."""

from decimal import Decimal

import pytest

from plc.ast import (
    Access,
    Assignment,
    Binary,
    Call,
    Char,
    Field,
    Literal,
    Method,
    ReturnStmt,
    Source,
)
from plc.errors import ParseError
from plc.parse import Parser, parse
from plc.tokens import tokenize


def parse_text(text: str) -> Source:
    return parse(tokenize(text))


def test_receiver_chain():
    source = parse_text("LET x = a.b.c(1);")
    expected = Call(Access(Access(None, "a"), "b"), "c", [Literal(1)])
    assert source.fields[0].value == expected
    assert source.fields[0].value.receiver != Call(Access(None, "b"), "c", [])


def test_whole_program_shape():
    source = parse_text(
        "LET CONST x = 1;\nDEF main(): Integer DO\n    RETURN x + 1;\nEND\n"
    )
    assert source == Source(
        [Field("x", None, True, Literal(1))],
        [
            Method(
                "main",
                [],
                [],
                "Integer",
                [ReturnStmt(Binary("+", Access(None, "x"), Literal(1)))],
            )
        ],
    )


def test_literal_values_are_typed():
    source = parse_text("LET a = 1.50; LET b = 'q'; LET c = \"q\"; LET d = 7;")
    values = [f.value.value for f in source.fields]
    assert values[0] == Decimal("1.50")
    assert isinstance(values[1], Char)
    assert not isinstance(values[2], Char)
    assert values[2] == "q"
    assert type(values[3]) is int


def test_for_clauses_are_assignments():
    source = parse_text("DEF main() DO FOR (i = 0; i < 1; i = i + 1) END END")
    loop = source.methods[0].statements[0]
    assert loop.initialization == Assignment(Access(None, "i"), Literal(0))
    assert loop.increment == Assignment(
        Access(None, "i"), Binary("+", Access(None, "i"), Literal(1))
    )


def test_node_offsets():
    text = "DEF main() DO\n    RETURN f(2);\nEND"
    method = parse_text(text).methods[0]
    ret = method.statements[0]
    assert method.offset == 0
    assert ret.offset == text.index("RETURN")
    assert ret.value.offset == text.index("f(")
    assert ret.value.arguments[0].offset == text.index("2")


def test_error_offset_at_token():
    with pytest.raises(ParseError) as info:
        parse_text("LET x = 1 2;")
    assert info.value.offset == 10


def test_error_offset_at_end_of_input():
    with pytest.raises(ParseError) as info:
        parse_text("LET x")
    assert info.value.offset == 5
    assert "end of input" in str(info.value)


def test_empty_input():
    assert parse([]) == Source([], [])
    assert Parser([])._offset() == 0
