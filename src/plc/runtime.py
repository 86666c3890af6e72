"""PLC interpreter: tree-walking evaluator over explicitly passed scopes."""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from decimal import MAX_EMAX, MAX_PREC, MIN_EMIN, Context, Decimal
from typing import Any, TextIO

from .ast import (
    Access,
    Assignment,
    Binary,
    Call,
    Char,
    Declaration,
    Expr,
    ExprStmt,
    Field,
    ForStmt,
    Group,
    IfStmt,
    Literal,
    Method,
    ReturnStmt,
    Source,
    Stmt,
    WhileStmt,
)
from .errors import RuntimeFault
from .scope import Scope

logger = logging.getLogger(__name__)

# Wide enough that +, - and * never round.
_EXACT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)

# Python frame budget for nested PLC calls; each call costs several frames.
RECURSION_LIMIT = 15000


# ============================================================
# VALUES
# ============================================================


class PlcObject:
    """A runtime value: a primitive payload plus the scope its members live in."""

    def __init__(self, value: Any, scope: Scope):
        self.value: Any = value
        self.scope: Scope = scope

    def __repr__(self) -> str:
        return "PlcObject(" + repr(self.value) + ")"

    def get_field(self, name: str, offset: int = -1) -> PlcObject:
        variable = self.scope.lookup_variable(name)
        if variable is None:
            raise RuntimeFault(
                "undefined field '" + name + "' on " + kind_of(self.value), offset
            )
        return variable.value

    def set_field(self, name: str, value: PlcObject, offset: int = -1) -> None:
        variable = self.scope.lookup_variable(name)
        if variable is None:
            raise RuntimeFault(
                "undefined field '" + name + "' on " + kind_of(self.value), offset
            )
        if variable.constant:
            raise RuntimeFault("cannot assign to constant field '" + name + "'", offset)
        variable.value = value

    def call_method(
        self, name: str, arguments: list[PlcObject], offset: int = -1
    ) -> PlcObject:
        """Invoke a member method; the receiver is passed as the first argument."""
        function = self.scope.lookup_function(name, len(arguments) + 1)
        if function is None:
            raise RuntimeFault(
                "undefined method '"
                + name
                + "/"
                + str(len(arguments))
                + "' on "
                + kind_of(self.value),
                offset,
            )
        return function.invoke([self] + arguments)


def create(value: Any) -> PlcObject:
    return PlcObject(value, Scope())


NIL = create(None)


@dataclass
class Returned:
    """Signal handed up from a RETURN to the enclosing method invocation."""

    value: PlcObject


@dataclass
class RunResult:
    value: PlcObject
    stdout: str


def kind_of(value: Any) -> str:
    """Runtime kind name of a payload, spelled like the static type names."""
    # bool before int, Char before str: both are subclasses
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, Decimal):
        return "Decimal"
    if isinstance(value, Char):
        return "Character"
    if isinstance(value, str):
        return "String"
    if value is None:
        return "Nil"
    return type(value).__name__


def text(value: Any) -> str:
    """Textual form used by print and string concatenation."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ============================================================
# ARITHMETIC
# ============================================================


ORDERABLE_KINDS = ("Integer", "Decimal", "Character", "String", "Boolean")
NUMERIC_KINDS = ("Integer", "Decimal")


def _int_divmod_trunc(a: int, b: int) -> tuple[int, int]:
    if b == 0:
        raise ZeroDivisionError
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    r = a - q * b
    return (q, r)


def _round_half_even(num: int, den: int) -> int:
    if den < 0:
        num, den = -num, -den
    q, r = divmod(abs(num), den)
    if 2 * r > den or (2 * r == den and q % 2 == 1):
        q += 1
    return -q if num < 0 else q


def _decimal_divide(a: Decimal, b: Decimal) -> Decimal:
    """a / b rounded half-to-even to the scale of a."""
    if b == 0:
        raise ZeroDivisionError
    ta = a.as_tuple()
    tb = b.as_tuple()
    ma = int("".join(str(d) for d in ta.digits)) * (-1 if ta.sign else 1)
    mb = int("".join(str(d) for d in tb.digits)) * (-1 if tb.sign else 1)
    ea = int(ta.exponent)
    eb = int(tb.exponent)
    # a/b = (ma / (mb * 10**eb)) * 10**ea; keep the 10**ea scale
    if eb < 0:
        q = _round_half_even(ma * 10**-eb, mb)
    else:
        q = _round_half_even(ma, mb * 10**eb)
    return Decimal(str(q) + "E" + str(ea))


def _equal(left: Any, right: Any) -> bool:
    kind = kind_of(left)
    if kind != kind_of(right):
        return False
    # scale is part of a Decimal value: 1.0 != 1.00
    if kind == "Decimal":
        return left == right and left.as_tuple().exponent == right.as_tuple().exponent
    return left == right


def _compare(op: str, left: Any, right: Any, offset: int) -> bool:
    lk = kind_of(left)
    rk = kind_of(right)
    if lk == "Nil" or rk == "Nil":
        raise RuntimeFault("cannot compare nil", offset)
    if lk != rk or lk not in ORDERABLE_KINDS:
        raise RuntimeFault("cannot compare " + lk + " to " + rk, offset)
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


def _arith(op: str, left: Any, right: Any, offset: int) -> Any:
    lk = kind_of(left)
    rk = kind_of(right)
    if lk != rk or lk not in NUMERIC_KINDS:
        raise RuntimeFault(
            "operands of " + op + " must be the same numeric kind, got " + lk + " and " + rk,
            offset,
        )
    if lk == "Integer":
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        try:
            q, _ = _int_divmod_trunc(left, right)
        except ZeroDivisionError:
            raise RuntimeFault("division by zero", offset) from None
        return q
    if op == "+":
        return _EXACT.add(left, right)
    if op == "-":
        return _EXACT.subtract(left, right)
    if op == "*":
        return _EXACT.multiply(left, right)
    try:
        return _decimal_divide(left, right)
    except ZeroDivisionError:
        raise RuntimeFault("division by zero", offset) from None


# ============================================================
# INTERPRETER
# ============================================================


class Interpreter:
    """Evaluates an AST. Every execute/evaluate call names its scope."""

    def __init__(self, parent: Scope | None = None, out: TextIO | None = None):
        self.scope: Scope = Scope(parent)
        self.out: TextIO | None = out
        self.scope.define_function("print", [None], None, self._builtin_print)
        self.scope.define_function("log", [None], None, self._builtin_log)

    # ── Built-ins ─────────────────────────────────────────────

    def _builtin_print(self, arguments: list[PlcObject]) -> PlcObject:
        out = self.out if self.out is not None else sys.stdout
        out.write(text(arguments[0].value) + "\n")
        return NIL

    def _builtin_log(self, arguments: list[PlcObject]) -> PlcObject:
        value = arguments[0].value
        kind = kind_of(value)
        if kind == "Integer":
            value = Decimal(value)
        elif kind != "Decimal":
            raise RuntimeFault("log expects a Decimal, got " + kind)
        if value <= 0:
            raise RuntimeFault("log of non-positive value " + str(value))
        return create(Decimal(repr(math.log(float(value)))))

    # ── Program ───────────────────────────────────────────────

    def run_source(self, source: Source) -> PlcObject:
        for f in source.fields:
            self.define_field(f, self.scope)
        for m in source.methods:
            self.define_method(m, self.scope)
        main = self.scope.lookup_function("main", 0)
        if main is None:
            raise RuntimeFault("missing method main()", source.offset)
        logger.debug("invoking main()")
        return main.invoke([])

    def define_field(self, ast: Field, scope: Scope) -> None:
        if scope.defines_variable(ast.name):
            raise RuntimeFault("field '" + ast.name + "' is already defined", ast.offset)
        value = NIL
        if ast.value is not None:
            value = self.evaluate(ast.value, scope)
        scope.define_variable(ast.name, None, ast.constant, value)

    def define_method(self, ast: Method, scope: Scope) -> None:
        def invoke(arguments: list[PlcObject]) -> PlcObject:
            frame = scope.child()
            for name, argument in zip(ast.parameters, arguments):
                frame.define_variable(name, None, False, argument)
            signal = self.execute_block(ast.statements, frame)
            if signal is not None:
                return signal.value
            return NIL

        scope.define_function(
            ast.name, [None] * len(ast.parameters), None, invoke
        )

    # ── Statements ────────────────────────────────────────────

    def execute_block(self, stmts: list[Stmt], scope: Scope) -> Returned | None:
        for stmt in stmts:
            signal = self.execute(stmt, scope)
            if signal is not None:
                return signal
        return None

    def execute(self, stmt: Stmt, scope: Scope) -> Returned | None:
        """Run one statement; a Returned signal means unwind to the method."""
        if isinstance(stmt, ExprStmt):
            self.evaluate(stmt.expression, scope)
            return None
        if isinstance(stmt, Declaration):
            if scope.defines_variable(stmt.name):
                raise RuntimeFault(
                    "'" + stmt.name + "' is already defined in this scope", stmt.offset
                )
            value = NIL
            if stmt.value is not None:
                value = self.evaluate(stmt.value, scope)
            scope.define_variable(stmt.name, None, False, value)
            return None
        if isinstance(stmt, Assignment):
            self.assign(stmt, scope)
            return None
        if isinstance(stmt, IfStmt):
            if self.condition(stmt.condition, scope):
                return self.execute_block(stmt.then_statements, scope.child())
            return self.execute_block(stmt.else_statements, scope.child())
        if isinstance(stmt, ForStmt):
            if stmt.initialization is not None:
                self.execute(stmt.initialization, scope)
            while self.condition(stmt.condition, scope):
                signal = self.execute_block(stmt.statements, scope.child())
                if signal is not None:
                    return signal
                if stmt.increment is not None:
                    self.execute(stmt.increment, scope)
            return None
        if isinstance(stmt, WhileStmt):
            while self.condition(stmt.condition, scope):
                signal = self.execute_block(stmt.statements, scope.child())
                if signal is not None:
                    return signal
            return None
        if isinstance(stmt, ReturnStmt):
            return Returned(self.evaluate(stmt.value, scope))
        raise RuntimeFault("unhandled statement " + type(stmt).__name__, stmt.offset)

    def assign(self, stmt: Assignment, scope: Scope) -> None:
        receiver = stmt.receiver
        if not isinstance(receiver, Access):
            raise RuntimeFault("assignment target must be a variable or field", stmt.offset)
        if receiver.receiver is not None:
            target = self.evaluate(receiver.receiver, scope)
            target.set_field(receiver.name, self.evaluate(stmt.value, scope), stmt.offset)
            return
        variable = scope.lookup_variable(receiver.name)
        if variable is None:
            raise RuntimeFault("undefined name '" + receiver.name + "'", receiver.offset)
        if variable.constant:
            raise RuntimeFault(
                "cannot assign to constant '" + receiver.name + "'", stmt.offset
            )
        variable.value = self.evaluate(stmt.value, scope)

    def condition(self, expr: Expr, scope: Scope) -> bool:
        value = self.evaluate(expr, scope).value
        if not isinstance(value, bool):
            raise RuntimeFault(
                "condition must be Boolean, got " + kind_of(value), expr.offset
            )
        return value

    # ── Expressions ───────────────────────────────────────────

    def evaluate(self, expr: Expr, scope: Scope) -> PlcObject:
        if isinstance(expr, Literal):
            if expr.value is None:
                return NIL
            return create(expr.value)
        if isinstance(expr, Group):
            return self.evaluate(expr.expression, scope)
        if isinstance(expr, Binary):
            return self.evaluate_binary(expr, scope)
        if isinstance(expr, Access):
            if expr.receiver is not None:
                receiver = self.evaluate(expr.receiver, scope)
                return receiver.get_field(expr.name, expr.offset)
            variable = scope.lookup_variable(expr.name)
            if variable is None:
                raise RuntimeFault("undefined name '" + expr.name + "'", expr.offset)
            return variable.value
        if isinstance(expr, Call):
            if expr.receiver is not None:
                receiver = self.evaluate(expr.receiver, scope)
                arguments = [self.evaluate(a, scope) for a in expr.arguments]
                return receiver.call_method(expr.name, arguments, expr.offset)
            function = scope.lookup_function(expr.name, len(expr.arguments))
            if function is None:
                raise RuntimeFault(
                    "undefined method '"
                    + expr.name
                    + "/"
                    + str(len(expr.arguments))
                    + "'",
                    expr.offset,
                )
            arguments = [self.evaluate(a, scope) for a in expr.arguments]
            try:
                return function.invoke(arguments)
            except RuntimeFault as e:
                # built-ins fault without a position; pin it to the call site
                if e.offset is None or e.offset < 0:
                    raise RuntimeFault(e.msg, expr.offset) from e
                raise
            except RecursionError:
                raise RuntimeFault("maximum call depth exceeded", expr.offset) from None
        raise RuntimeFault("unhandled expression " + type(expr).__name__, expr.offset)

    def evaluate_binary(self, expr: Binary, scope: Scope) -> PlcObject:
        op = expr.operator
        if op == "&&" or op == "||":
            left = self.evaluate(expr.left, scope).value
            if not isinstance(left, bool):
                raise RuntimeFault(op + " expects Boolean operands", expr.left.offset)
            if (op == "&&" and not left) or (op == "||" and left):
                return create(left)
            right = self.evaluate(expr.right, scope).value
            if not isinstance(right, bool):
                raise RuntimeFault(op + " expects Boolean operands", expr.right.offset)
            return create(right)

        left = self.evaluate(expr.left, scope).value
        right = self.evaluate(expr.right, scope).value
        if op == "==":
            return create(_equal(left, right))
        if op == "!=":
            return create(not _equal(left, right))
        if op in ("<", "<=", ">", ">="):
            return create(_compare(op, left, right, expr.offset))
        if op == "+" and (kind_of(left) == "String" or kind_of(right) == "String"):
            return create(text(left) + text(right))
        if op in ("+", "-", "*", "/"):
            return create(_arith(op, left, right, expr.offset))
        raise RuntimeFault("unknown operator '" + op + "'", expr.offset)


# ============================================================
# PUBLIC API
# ============================================================


def run(
    source: Source, scope: Scope | None = None, *, out: TextIO | None = None
) -> PlcObject:
    """Run fields, register methods, invoke main(). Raises RuntimeFault."""
    logger.debug(
        "running %d fields, %d methods", len(source.fields), len(source.methods)
    )
    return Interpreter(scope, out).run_source(source)
