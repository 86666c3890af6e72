"""plc: run a PLC program from a file or stdin."""

from __future__ import annotations

import logging
import sys

from .check import analyze
from .emit import to_source
from .errors import LexError, ParseError, PlcError, PlcTypeError, RuntimeFault
from .parse import parse
from .runtime import RECURSION_LIMIT, run
from .tokens import tokenize

USAGE: str = """\
plc [OPTIONS] [INPUT]

Runs INPUT (or stdin) and exits with the Integer returned by main().

Options:
  --no-check          Skip static analysis and run the program directly
  --emit              Print the normalized source instead of running it
  --verbose           Log pipeline stages to stderr
  --help              Show this help message
"""

_STAGES: list[tuple[type[PlcError], str]] = [
    (LexError, "lex error"),
    (ParseError, "parse error"),
    (PlcTypeError, "type error"),
    (RuntimeFault, "runtime fault"),
]


def describe_error(e: PlcError) -> str:
    for cls, label in _STAGES:
        if isinstance(e, cls):
            return label + ": " + str(e)
    return "error: " + str(e)


def read_source(input_file: str | None) -> tuple[str, int]:
    """Read source from file or stdin. Returns (source, exit_code) where exit_code 0 means OK."""
    if input_file is not None:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            print("plc: cannot open '" + input_file + "'", file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    try:
        return (raw.decode("utf-8"), 0)
    except ValueError:
        print("plc: invalid utf-8 in input", file=sys.stderr)
        return ("", 1)


def parse_args(argv: list[str]) -> tuple[bool, bool, bool, str | None]:
    """Parse command-line arguments. Returns (check, emit, verbose, input_file)."""
    check = True
    emit = False
    verbose = False
    input_file: str | None = None
    for arg in argv:
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            sys.exit(0)
        elif arg == "--no-check":
            check = False
        elif arg == "--emit":
            emit = True
        elif arg == "--verbose" or arg == "-v":
            verbose = True
        elif arg.startswith("-"):
            print("plc: unknown flag '" + arg + "'", file=sys.stderr)
            sys.exit(2)
        else:
            if input_file is not None:
                print("plc: unexpected argument '" + arg + "'", file=sys.stderr)
                sys.exit(2)
            input_file = arg
    return (check, emit, verbose, input_file)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]
    check, emit, verbose, input_file = parse_args(argv)
    if sys.getrecursionlimit() < RECURSION_LIMIT:
        sys.setrecursionlimit(RECURSION_LIMIT)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    source, err = read_source(input_file)
    if err != 0:
        return err
    try:
        ast = parse(tokenize(source))
        if emit:
            sys.stdout.write(to_source(ast))
            return 0
        if check:
            analyze(ast)
        result = run(ast, out=sys.stdout)
    except PlcError as e:
        print("plc: " + describe_error(e), file=sys.stderr)
        return 1
    value = result.value
    if isinstance(value, bool) or not isinstance(value, int):
        print("plc: main() returned a non-Integer value", file=sys.stderr)
        return 1
    return value & 0xFF


if __name__ == "__main__":
    sys.exit(main())
