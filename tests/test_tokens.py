"""Lexer properties that are awkward to express as .tests cases."""

import pytest

from plc.errors import LexError
from plc.tokens import TK_INT, TK_OP, Token, tokenize, unescape

PROGRAM = """\
LET CONST limit: Integer = -10;
DEF main(): Integer DO
    LET s = "tab\\there \\"quoted\\"";
    LET c = '\\n';
    IF limit <= 0 && s != "" || 1.25 >= -0.5 DO
        print(s.size() + c);
    END
    RETURN x-y;
END
"""


def test_offsets_round_trip():
    for tok in tokenize(PROGRAM):
        piece = PROGRAM[tok.offset : tok.offset + len(tok.text)]
        assert piece == tok.text
        assert tokenize(piece) == [Token(tok.kind, tok.text, 0)]


def test_offsets_are_increasing():
    offsets = [tok.offset for tok in tokenize(PROGRAM)]
    assert offsets == sorted(offsets)
    assert len(set(offsets)) == len(offsets)


def test_whitespace_includes_backspace():
    tokens = tokenize("a\bb\r\nc\td")
    assert [t.text for t in tokens] == ["a", "b", "c", "d"]


def test_sign_binds_only_to_adjacent_digit():
    tokens = tokenize("5 - 3 -3")
    assert [(t.kind, t.text) for t in tokens] == [
        (TK_INT, "5"),
        (TK_OP, "-"),
        (TK_INT, "3"),
        (TK_INT, "-3"),
    ]


def test_token_text_keeps_quotes_and_escapes():
    (tok,) = tokenize('"a\\nb"')
    assert tok.text == '"a\\nb"'
    assert unescape(tok.text[1:-1]) == "a\nb"


@pytest.mark.parametrize(
    "body,expected",
    [
        ("plain", "plain"),
        ("\\b\\n\\r\\t", "\b\n\r\t"),
        ("\\'\\\"\\\\", "'\"\\"),
    ],
)
def test_unescape(body, expected):
    assert unescape(body) == expected


def test_lex_error_carries_offset():
    with pytest.raises(LexError) as info:
        tokenize('LET x = "abc')
    assert info.value.offset == 8
    assert str(info.value) == "unterminated string literal at offset 8"


def test_token_is_immutable():
    tok = tokenize("x")[0]
    with pytest.raises(AttributeError):
        tok.text = "y"
