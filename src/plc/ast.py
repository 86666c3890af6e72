"""PLC AST: parse-time node definitions plus analyzer annotations."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .check import Type
    from .scope import Function, Variable


class Char(str):
    """A character literal value, kept distinct from a one-character string."""

    def __repr__(self) -> str:
        return "Char(" + str.__repr__(self) + ")"


LiteralValue = bool | int | Decimal | Char | str | None


# ============================================================
# BASE
# ============================================================


@dataclass
class Node:
    """Base for all nodes. offset is -1 for nodes built by hand."""

    offset: int = field(default=-1, kw_only=True, compare=False, repr=False)


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr(Node):
    """Base for all expressions. type is set by the analyzer."""

    type: Type | None = field(default=None, kw_only=True, compare=False, repr=False)


@dataclass
class Literal(Expr):
    """TRUE, FALSE, NIL, or a number/character/string literal."""

    value: LiteralValue


@dataclass
class Group(Expr):
    """( expr )."""

    expression: Expr


@dataclass
class Binary(Expr):
    """left op right."""

    operator: str
    left: Expr
    right: Expr


@dataclass
class Access(Expr):
    """name, or receiver.name."""

    receiver: Expr | None
    name: str
    variable: Variable | None = field(
        default=None, kw_only=True, compare=False, repr=False
    )


@dataclass
class Call(Expr):
    """name(args), or receiver.name(args)."""

    receiver: Expr | None
    name: str
    arguments: list[Expr]
    function: Function | None = field(
        default=None, kw_only=True, compare=False, repr=False
    )


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt(Node):
    """Base for all statements."""


@dataclass
class ExprStmt(Stmt):
    """expr ;: only calls pass analysis."""

    expression: Expr


@dataclass
class Declaration(Stmt):
    """LET name (: Type)? (= expr)? ;"""

    name: str
    type_name: str | None
    value: Expr | None
    variable: Variable | None = field(
        default=None, kw_only=True, compare=False, repr=False
    )


@dataclass
class Assignment(Stmt):
    """receiver = value ;: receiver must be an Access."""

    receiver: Expr
    value: Expr


@dataclass
class IfStmt(Stmt):
    """IF cond DO ... (ELSE ...)? END."""

    condition: Expr
    then_statements: list[Stmt]
    else_statements: list[Stmt]


@dataclass
class ForStmt(Stmt):
    """FOR ( init? ; cond ; increment? ) ... END."""

    initialization: Stmt | None
    condition: Expr
    increment: Stmt | None
    statements: list[Stmt]


@dataclass
class WhileStmt(Stmt):
    """WHILE cond DO ... END."""

    condition: Expr
    statements: list[Stmt]


@dataclass
class ReturnStmt(Stmt):
    """RETURN expr ;"""

    value: Expr


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class Field(Node):
    """LET CONST? name (: Type)? (= expr)? ; at program scope."""

    name: str
    type_name: str | None
    constant: bool
    value: Expr | None
    variable: Variable | None = field(
        default=None, kw_only=True, compare=False, repr=False
    )


@dataclass
class Method(Node):
    """DEF name(params) (: Type)? DO ... END."""

    name: str
    parameters: list[str]
    parameter_type_names: list[str | None]
    return_type_name: str | None
    statements: list[Stmt]
    function: Function | None = field(
        default=None, kw_only=True, compare=False, repr=False
    )


@dataclass
class Source(Node):
    """A whole program: fields, then methods."""

    fields: list[Field]
    methods: list[Method]


# ============================================================
# VISITOR
# ============================================================


class AstVisitor:
    """Read-only dispatch over the closed set of node variants.

    Subclasses implement one ``visit_<variant>`` method per node class they
    care about; ``visit`` routes a node to it. Visitors must not change the
    type/binding annotations left by the analyzer.
    """

    _METHODS: dict[type, str] = {
        Source: "visit_source",
        Field: "visit_field",
        Method: "visit_method",
        ExprStmt: "visit_expr_stmt",
        Declaration: "visit_declaration",
        Assignment: "visit_assignment",
        IfStmt: "visit_if",
        ForStmt: "visit_for",
        WhileStmt: "visit_while",
        ReturnStmt: "visit_return",
        Literal: "visit_literal",
        Group: "visit_group",
        Binary: "visit_binary",
        Access: "visit_access",
        Call: "visit_call",
    }

    def visit(self, node: Node) -> Any:
        name = self._METHODS.get(type(node))
        if name is None:
            raise TypeError("unhandled node type: " + type(node).__name__)
        return getattr(self, name)(node)
