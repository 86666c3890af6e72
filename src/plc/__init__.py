"""PLC: a small imperative scripting language.

    text -> tokenize -> parse -> analyze -> run
"""

from __future__ import annotations

import io
from typing import TextIO

from .check import analyze
from .errors import LexError, ParseError, PlcError, PlcTypeError, RuntimeFault
from .parse import parse
from .runtime import RunResult, run
from .tokens import tokenize

__all__ = [
    "LexError",
    "ParseError",
    "PlcError",
    "PlcTypeError",
    "RunResult",
    "RuntimeFault",
    "analyze",
    "execute",
    "parse",
    "run",
    "tokenize",
]


def execute(text: str, *, check: bool = True, out: TextIO | None = None) -> RunResult:
    """Lex, parse, optionally analyze, and run text.

    print output goes to `out` when given; otherwise it is captured and
    returned as `RunResult.stdout`. The first PlcError propagates.
    """
    source = parse(tokenize(text))
    if check:
        analyze(source)
    if out is not None:
        return RunResult(run(source, out=out), "")
    buffer = io.StringIO()
    value = run(source, out=buffer)
    return RunResult(value, buffer.getvalue())
