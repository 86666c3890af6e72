"""PLC diagnostics: one exception class per pipeline stage."""

from __future__ import annotations


class PlcError(Exception):
    """Base error for lexing, parsing, analysis and evaluation."""

    def __init__(self, msg: str, offset: int | None = None):
        if offset is None or offset < 0:
            super().__init__(msg)
        else:
            super().__init__(msg + " at offset " + str(offset))
        self.msg: str = msg
        self.offset: int | None = offset


class LexError(PlcError):
    """Unexpected character, unterminated literal, or invalid escape."""


class ParseError(PlcError):
    """Grammar violation at a token (or at end of input)."""


class PlcTypeError(PlcError):
    """Static semantic error found by the analyzer."""


class RuntimeFault(PlcError):
    """Fault raised while interpreting (bad operand, division by zero, ...)."""
