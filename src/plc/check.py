"""PLC analyzer: resolves names and checks types, annotating the AST in place."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

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
from .errors import PlcTypeError
from .scope import Scope, Variable

logger = logging.getLogger(__name__)

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


# ============================================================
# TYPES
# ============================================================


@dataclass(eq=False)
class Type:
    """A static type. Identity is equality; scope holds its members."""

    name: str
    comparable: bool = False
    scope: Scope = field(default_factory=Scope, repr=False)


ANY = Type("Any")
NIL = Type("Nil")
COMPARABLE = Type("Comparable")
BOOLEAN = Type("Boolean")
INTEGER = Type("Integer", comparable=True)
DECIMAL = Type("Decimal", comparable=True)
CHARACTER = Type("Character", comparable=True)
STRING = Type("String", comparable=True)

_TYPES: dict[str, Type] = {
    t.name: t
    for t in (ANY, NIL, COMPARABLE, BOOLEAN, INTEGER, DECIMAL, CHARACTER, STRING)
}

NUMERIC_TYPES: tuple[Type, ...] = (INTEGER, DECIMAL)


def register_type(typ: Type) -> None:
    """Make typ resolvable by name in type annotations."""
    _TYPES[typ.name] = typ


def get_type(name: str, offset: int = -1) -> Type:
    if name not in _TYPES:
        raise PlcTypeError("unknown type '" + name + "'", offset)
    return _TYPES[name]


# ============================================================
# ASSIGNABILITY
# ============================================================


def is_assignable(target: Type, typ: Type) -> bool:
    """Can a value of type `typ` be used where `target` is required?"""
    if target is typ:
        return True
    if target is ANY:
        return True
    if target is COMPARABLE:
        return typ.comparable
    return False


def require_assignable(target: Type, typ: Type, offset: int = -1) -> None:
    if not is_assignable(target, typ):
        raise PlcTypeError(
            "cannot use " + typ.name + " where " + target.name + " is required",
            offset,
        )


def literal_type(value: object, offset: int = -1) -> Type:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        if value < INT32_MIN or value > INT32_MAX:
            raise PlcTypeError("integer literal out of 32-bit range: " + str(value), offset)
        return INTEGER
    if isinstance(value, Decimal):
        return DECIMAL
    if isinstance(value, Char):
        return CHARACTER
    if isinstance(value, str):
        return STRING
    if value is None:
        return NIL
    raise PlcTypeError("unsupported literal " + repr(value), offset)


def _no_op(args: list[object]) -> None:
    return None


# ============================================================
# ANALYZER
# ============================================================


class Analyzer:
    """Single depth-first walk: definitions precede uses.

    Fields and each method are registered in the enclosing scope before any
    body that might refer to them is visited, so recursion resolves.
    """

    def __init__(self, parent: Scope | None = None) -> None:
        self.scope: Scope = Scope(parent)
        self.scope.define_function("print", [ANY], NIL, _no_op)
        self.scope.define_function("log", [DECIMAL], DECIMAL, _no_op)
        self.method_return: Type | None = None

    # ── Program ───────────────────────────────────────────────

    def analyze_source(self, source: Source) -> None:
        for f in source.fields:
            self.analyze_field(f, self.scope)
        for m in source.methods:
            self.analyze_method(m, self.scope)
        main = self.scope.lookup_function("main", 0)
        if main is None:
            raise PlcTypeError("missing method main()", source.offset)
        if main.return_type is not INTEGER:
            raise PlcTypeError(
                "main() must declare return type Integer, got " + main.return_type.name,
                source.offset,
            )

    def analyze_field(self, ast: Field, scope: Scope) -> None:
        if scope.defines_variable(ast.name):
            raise PlcTypeError("field '" + ast.name + "' is already defined", ast.offset)
        if ast.constant and ast.value is None:
            raise PlcTypeError("constant field '" + ast.name + "' needs a value", ast.offset)
        declared: Type | None = None
        if ast.type_name is not None:
            declared = get_type(ast.type_name, ast.offset)
        if ast.value is not None:
            value_type = self.analyze_expr(ast.value, scope)
            if declared is None:
                declared = value_type
            else:
                require_assignable(declared, value_type, ast.value.offset)
        if declared is None:
            declared = ANY
        ast.variable = scope.define_variable(ast.name, declared, ast.constant)

    def analyze_method(self, ast: Method, scope: Scope) -> None:
        arity = len(ast.parameters)
        if scope.defines_function(ast.name, arity):
            raise PlcTypeError(
                "method '" + ast.name + "/" + str(arity) + "' is already defined",
                ast.offset,
            )
        parameter_types: list[Type] = []
        for type_name in ast.parameter_type_names:
            if type_name is None:
                parameter_types.append(ANY)
            else:
                parameter_types.append(get_type(type_name, ast.offset))
        return_type = NIL
        if ast.return_type_name is not None:
            return_type = get_type(ast.return_type_name, ast.offset)

        ast.function = scope.define_function(ast.name, parameter_types, return_type, _no_op)

        body = scope.child()
        for name, typ in zip(ast.parameters, parameter_types):
            if body.defines_variable(name):
                raise PlcTypeError("duplicate parameter '" + name + "'", ast.offset)
            body.define_variable(name, typ)
        old_return = self.method_return
        self.method_return = return_type
        try:
            self.analyze_stmts(ast.statements, body)
        finally:
            self.method_return = old_return

    # ── Statements ────────────────────────────────────────────

    def analyze_stmts(self, stmts: list[Stmt], scope: Scope) -> None:
        for stmt in stmts:
            self.analyze_stmt(stmt, scope)

    def analyze_stmt(self, stmt: Stmt, scope: Scope) -> None:
        if isinstance(stmt, ExprStmt):
            if not isinstance(stmt.expression, Call):
                raise PlcTypeError("expression statement must be a call", stmt.offset)
            self.analyze_expr(stmt.expression, scope)
        elif isinstance(stmt, Declaration):
            self.analyze_declaration(stmt, scope)
        elif isinstance(stmt, Assignment):
            self.analyze_assignment(stmt, scope)
        elif isinstance(stmt, IfStmt):
            self.analyze_if(stmt, scope)
        elif isinstance(stmt, ForStmt):
            if stmt.initialization is not None:
                self.analyze_stmt(stmt.initialization, scope)
            self.require_condition(stmt.condition, scope)
            if stmt.increment is not None:
                self.analyze_stmt(stmt.increment, scope)
            self.analyze_stmts(stmt.statements, scope.child())
        elif isinstance(stmt, WhileStmt):
            self.require_condition(stmt.condition, scope)
            self.analyze_stmts(stmt.statements, scope.child())
        elif isinstance(stmt, ReturnStmt):
            if self.method_return is None:
                raise PlcTypeError("RETURN outside of a method", stmt.offset)
            value_type = self.analyze_expr(stmt.value, scope)
            require_assignable(self.method_return, value_type, stmt.value.offset)
        else:
            raise PlcTypeError("unhandled statement " + type(stmt).__name__, stmt.offset)

    def analyze_declaration(self, stmt: Declaration, scope: Scope) -> None:
        if scope.defines_variable(stmt.name):
            raise PlcTypeError(
                "'" + stmt.name + "' is already defined in this scope", stmt.offset
            )
        declared: Type | None = None
        if stmt.type_name is not None:
            declared = get_type(stmt.type_name, stmt.offset)
        if stmt.value is None:
            if declared is None:
                raise PlcTypeError(
                    "declaration of '" + stmt.name + "' needs a type or a value",
                    stmt.offset,
                )
        else:
            value_type = self.analyze_expr(stmt.value, scope)
            if declared is None:
                declared = value_type
            else:
                require_assignable(declared, value_type, stmt.value.offset)
        stmt.variable = scope.define_variable(stmt.name, declared)

    def analyze_assignment(self, stmt: Assignment, scope: Scope) -> None:
        if not isinstance(stmt.receiver, Access):
            raise PlcTypeError("assignment target must be a variable or field", stmt.offset)
        target_type = self.analyze_expr(stmt.receiver, scope)
        variable = stmt.receiver.variable
        if variable is not None and variable.constant:
            raise PlcTypeError(
                "cannot assign to constant '" + variable.name + "'", stmt.offset
            )
        value_type = self.analyze_expr(stmt.value, scope)
        require_assignable(target_type, value_type, stmt.value.offset)

    def analyze_if(self, stmt: IfStmt, scope: Scope) -> None:
        self.require_condition(stmt.condition, scope)
        if len(stmt.then_statements) == 0:
            raise PlcTypeError("IF must have at least one statement", stmt.offset)
        self.analyze_stmts(stmt.then_statements, scope.child())
        if len(stmt.else_statements) > 0:
            self.analyze_stmts(stmt.else_statements, scope.child())

    def require_condition(self, condition: Expr, scope: Scope) -> None:
        require_assignable(BOOLEAN, self.analyze_expr(condition, scope), condition.offset)

    # ── Expressions ───────────────────────────────────────────

    def analyze_expr(self, expr: Expr, scope: Scope) -> Type:
        """Resolve expr's type, record it on the node, and return it."""
        if isinstance(expr, Literal):
            typ = literal_type(expr.value, expr.offset)
        elif isinstance(expr, Group):
            if not isinstance(expr.expression, Binary):
                raise PlcTypeError(
                    "only binary expressions may be grouped", expr.offset
                )
            typ = self.analyze_expr(expr.expression, scope)
        elif isinstance(expr, Binary):
            typ = self.analyze_binary(expr, scope)
        elif isinstance(expr, Access):
            typ = self.analyze_access(expr, scope)
        elif isinstance(expr, Call):
            typ = self.analyze_call(expr, scope)
        else:
            raise PlcTypeError("unhandled expression " + type(expr).__name__, expr.offset)
        expr.type = typ
        return typ

    def analyze_binary(self, expr: Binary, scope: Scope) -> Type:
        left = self.analyze_expr(expr.left, scope)
        right = self.analyze_expr(expr.right, scope)
        op = expr.operator
        if op in ("&&", "||"):
            require_assignable(BOOLEAN, left, expr.left.offset)
            require_assignable(BOOLEAN, right, expr.right.offset)
            return BOOLEAN
        if op in ("<", "<=", ">", ">=", "==", "!="):
            require_assignable(COMPARABLE, left, expr.left.offset)
            require_assignable(COMPARABLE, right, expr.right.offset)
            return BOOLEAN
        if op == "+":
            if left is STRING or right is STRING:
                return STRING
            return self._require_numeric_pair(op, left, right, expr.offset)
        if op in ("-", "*", "/"):
            return self._require_numeric_pair(op, left, right, expr.offset)
        raise PlcTypeError("unsupported binary operator '" + op + "'", expr.offset)

    def _require_numeric_pair(self, op: str, left: Type, right: Type, offset: int) -> Type:
        if left is not right or left not in NUMERIC_TYPES:
            raise PlcTypeError(
                "operands of "
                + op
                + " must be the same numeric type, got "
                + left.name
                + " and "
                + right.name,
                offset,
            )
        return left

    def _member_scope(self, receiver: Expr | None, scope: Scope) -> Scope:
        if receiver is None:
            return scope
        return self.analyze_expr(receiver, scope).scope

    def analyze_access(self, expr: Access, scope: Scope) -> Type:
        lookup = self._member_scope(expr.receiver, scope)
        variable: Variable | None = lookup.lookup_variable(expr.name)
        if variable is None:
            raise PlcTypeError("undefined name '" + expr.name + "'", expr.offset)
        expr.variable = variable
        return variable.type

    def analyze_call(self, expr: Call, scope: Scope) -> Type:
        lookup = self._member_scope(expr.receiver, scope)
        # Member methods take their receiver as an extra first parameter.
        skip = 0 if expr.receiver is None else 1
        function = lookup.lookup_function(expr.name, len(expr.arguments) + skip)
        if function is None:
            raise PlcTypeError(
                "undefined method '" + expr.name + "/" + str(len(expr.arguments)) + "'",
                expr.offset,
            )
        for argument, parameter_type in zip(
            expr.arguments, function.parameter_types[skip:]
        ):
            require_assignable(
                parameter_type, self.analyze_expr(argument, scope), argument.offset
            )
        expr.function = function
        return function.return_type


# ============================================================
# PUBLIC API
# ============================================================


def analyze(source: Source, scope: Scope | None = None) -> Analyzer:
    """Type-check source, annotating it in place. Raises PlcTypeError."""
    logger.debug(
        "analyzing %d fields, %d methods", len(source.fields), len(source.methods)
    )
    analyzer = Analyzer(scope)
    analyzer.analyze_source(source)
    return analyzer
