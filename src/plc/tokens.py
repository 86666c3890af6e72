"""PLC tokenizer: lexes source into a flat token list."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import LexError

logger = logging.getLogger(__name__)


# Token kind constants
TK_IDENT = "IDENTIFIER"
TK_INT = "INTEGER"
TK_DECIMAL = "DECIMAL"
TK_CHAR = "CHARACTER"
TK_STRING = "STRING"
TK_OP = "OPERATOR"

KEYWORDS: set[str] = {
    "LET",
    "CONST",
    "DEF",
    "DO",
    "END",
    "IF",
    "ELSE",
    "FOR",
    "WHILE",
    "RETURN",
    "NIL",
    "TRUE",
    "FALSE",
}

# Two-character operators take priority over their one-character prefixes
MULTI_OPS: list[str] = [
    "&&",
    "||",
    "==",
    "!=",
    "<=",
    ">=",
]

WHITESPACE: str = " \t\n\r\b"

ESCAPE_MAP: dict[str, str] = {
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "'": "'",
    '"': '"',
    "\\": "\\",
}


@dataclass(frozen=True)
class Token:
    """A token with kind, verbatim source text, and starting offset."""

    kind: str
    text: str
    offset: int


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_ident_char(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c) or c == "-"


def _scan_escape(src: str, pos: int) -> int:
    """Validate the escape whose backslash sits at pos. Returns the new pos."""
    if pos + 1 >= len(src):
        raise LexError("unexpected end of input in escape", pos)
    if src[pos + 1] not in ESCAPE_MAP:
        raise LexError("invalid escape: \\" + src[pos + 1], pos)
    return pos + 2


def unescape(body: str) -> str:
    """Resolve escape sequences in the body of a string or character literal."""
    out: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body) and body[i + 1] in ESCAPE_MAP:
            out.append(ESCAPE_MAP[body[i + 1]])
            i += 2
            continue
        out.append(c)
        i += 1
    return "".join(out)


def _scan_number(src: str, pos: int) -> tuple[str, int]:
    """Scan a number starting at pos (sign already checked). Returns (kind, end)."""
    length = len(src)
    start = pos
    if src[pos] == "+" or src[pos] == "-":
        pos += 1
    if src[pos] == "0":
        pos += 1
        if pos < length and _is_digit(src[pos]):
            raise LexError("leading zero in integer literal", start)
    else:
        while pos < length and _is_digit(src[pos]):
            pos += 1
    if pos < length and src[pos] == ".":
        if pos + 1 >= length or not _is_digit(src[pos + 1]):
            raise LexError("expected digit after decimal point", pos + 1)
        pos += 1
        while pos < length and _is_digit(src[pos]):
            pos += 1
        return TK_DECIMAL, pos
    return TK_INT, pos


def _scan_character(src: str, pos: int) -> int:
    start = pos
    pos += 1
    if pos >= len(src) or src[pos] == "\n" or src[pos] == "\r":
        raise LexError("unterminated character literal", start)
    if src[pos] == "'":
        raise LexError("empty character literal", start)
    if src[pos] == "\\":
        pos = _scan_escape(src, pos)
    else:
        pos += 1
    if pos >= len(src) or src[pos] != "'":
        raise LexError("unterminated character literal", start)
    return pos + 1


def _scan_string(src: str, pos: int) -> int:
    start = pos
    pos += 1
    while pos < len(src) and src[pos] != '"':
        if src[pos] == "\n" or src[pos] == "\r":
            raise LexError("unterminated string literal", start)
        if src[pos] == "\\":
            pos = _scan_escape(src, pos)
        else:
            pos += 1
    if pos >= len(src):
        raise LexError("unterminated string literal", start)
    return pos + 1


def tokenize(source: str) -> list[Token]:
    """Tokenize PLC source into a flat list of tokens."""
    tokens: list[Token] = []
    pos = 0
    length = len(source)

    while pos < length:
        c = source[pos]

        if c in WHITESPACE:
            pos += 1
            continue

        start = pos

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_ident_char(source[pos]):
                pos += 1
            tokens.append(Token(TK_IDENT, source[start:pos], start))
            continue

        # Number, optionally signed
        if _is_digit(c) or (
            (c == "+" or c == "-") and pos + 1 < length and _is_digit(source[pos + 1])
        ):
            kind, pos = _scan_number(source, pos)
            tokens.append(Token(kind, source[start:pos], start))
            continue

        if c == "'":
            pos = _scan_character(source, pos)
            tokens.append(Token(TK_CHAR, source[start:pos], start))
            continue

        if c == '"':
            pos = _scan_string(source, pos)
            tokens.append(Token(TK_STRING, source[start:pos], start))
            continue

        # Multi-character operators
        matched = False
        for op in MULTI_OPS:
            if source.startswith(op, pos):
                tokens.append(Token(TK_OP, op, start))
                pos += len(op)
                matched = True
                break
        if matched:
            continue

        # Anything else, non-ASCII letters included, is a one-character operator
        tokens.append(Token(TK_OP, c, start))
        pos += 1

    logger.debug("tokenized %d characters into %d tokens", length, len(tokens))
    return tokens
