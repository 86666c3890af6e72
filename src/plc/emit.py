"""PLC emitter: renders an AST back into PLC source text.

Built on the read-only `AstVisitor`; it reads node fields only and never
touches the analyzer's annotations. Output re-parses to an equivalent tree.
"""

from __future__ import annotations

from decimal import Decimal

from .ast import (
    Access,
    Assignment,
    AstVisitor,
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
    Node,
    ReturnStmt,
    Source,
    Stmt,
    WhileStmt,
)
from .tokens import ESCAPE_MAP

_REVERSE_ESCAPES: dict[str, str] = {v: "\\" + k for k, v in ESCAPE_MAP.items()}


def to_source(node: Node) -> str:
    """Render a Source, declaration, statement, or expression as PLC text."""
    return _Emitter().emit(node)


def _escape(value: str, quote: str) -> str:
    out: list[str] = []
    for c in value:
        if c in _REVERSE_ESCAPES and (c not in "'\"" or c == quote):
            out.append(_REVERSE_ESCAPES[c])
        else:
            out.append(c)
    return "".join(out)


class _Emitter(AstVisitor):
    _INDENT: str = "    "

    # Expression precedence (higher binds tighter)
    _PREC_LOGICAL: int = 1
    _PREC_COMPARE: int = 2
    _PREC_SUM: int = 3
    _PREC_PRODUCT: int = 4
    _PREC_POSTFIX: int = 5

    _BIN_PREC: dict[str, int] = {
        "&&": _PREC_LOGICAL,
        "||": _PREC_LOGICAL,
        "==": _PREC_COMPARE,
        "!=": _PREC_COMPARE,
        "<": _PREC_COMPARE,
        "<=": _PREC_COMPARE,
        ">": _PREC_COMPARE,
        ">=": _PREC_COMPARE,
        "+": _PREC_SUM,
        "-": _PREC_SUM,
        "*": _PREC_PRODUCT,
        "/": _PREC_PRODUCT,
    }

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0

    # ── Public ──────────────────────────────────────────────

    def emit(self, node: Node) -> str:
        if isinstance(node, Expr):
            return self.visit(node)
        self._lines = []
        self._indent_level = 0
        self.visit(node)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        return text + "\n"

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_block(self, stmts: list[Stmt]) -> None:
        self._indent_level += 1
        for stmt in stmts:
            self.visit(stmt)
        self._indent_level -= 1

    # ── Declarations ────────────────────────────────────────

    def visit_source(self, node: Source) -> None:
        for f in node.fields:
            self.visit(f)
        for i, m in enumerate(node.methods):
            if i > 0 or len(node.fields) > 0:
                self._lines.append("")
            self.visit(m)

    def visit_field(self, node: Field) -> None:
        head = "LET CONST " if node.constant else "LET "
        self._emit_line(
            head + node.name + self._annotation(node.type_name) + self._init(node.value) + ";"
        )

    def visit_method(self, node: Method) -> None:
        params: list[str] = []
        for name, type_name in zip(node.parameters, node.parameter_type_names):
            params.append(name + self._annotation(type_name))
        self._emit_line(
            "DEF "
            + node.name
            + "("
            + ", ".join(params)
            + ")"
            + self._annotation(node.return_type_name)
            + " DO"
        )
        self._emit_block(node.statements)
        self._emit_line("END")

    def _annotation(self, type_name: str | None) -> str:
        if type_name is None:
            return ""
        return ": " + type_name

    def _init(self, value: Expr | None) -> str:
        if value is None:
            return ""
        return " = " + self.visit(value)

    # ── Statements ──────────────────────────────────────────

    def visit_expr_stmt(self, node: ExprStmt) -> None:
        self._emit_line(self.visit(node.expression) + ";")

    def visit_declaration(self, node: Declaration) -> None:
        self._emit_line(
            "LET " + node.name + self._annotation(node.type_name) + self._init(node.value) + ";"
        )

    def visit_assignment(self, node: Assignment) -> None:
        self._emit_line(self._render_assignment(node) + ";")

    def _render_assignment(self, node: Stmt | None) -> str:
        if node is None:
            return ""
        if not isinstance(node, Assignment):
            raise TypeError("FOR clauses must be assignments")
        return self.visit(node.receiver) + " = " + self.visit(node.value)

    def visit_if(self, node: IfStmt) -> None:
        self._emit_line("IF " + self.visit(node.condition) + " DO")
        self._emit_block(node.then_statements)
        if len(node.else_statements) > 0:
            self._emit_line("ELSE")
            self._emit_block(node.else_statements)
        self._emit_line("END")

    def visit_for(self, node: ForStmt) -> None:
        self._emit_line(
            "FOR ("
            + self._render_assignment(node.initialization)
            + "; "
            + self.visit(node.condition)
            + "; "
            + self._render_assignment(node.increment)
            + ")"
        )
        self._emit_block(node.statements)
        self._emit_line("END")

    def visit_while(self, node: WhileStmt) -> None:
        self._emit_line("WHILE " + self.visit(node.condition) + " DO")
        self._emit_block(node.statements)
        self._emit_line("END")

    def visit_return(self, node: ReturnStmt) -> None:
        self._emit_line("RETURN " + self.visit(node.value) + ";")

    # ── Expressions ─────────────────────────────────────────

    def _prec(self, expr: Expr) -> int:
        if isinstance(expr, Binary):
            return self._BIN_PREC.get(expr.operator, self._PREC_LOGICAL)
        return self._PREC_POSTFIX

    def _wrap(self, expr: Expr, min_prec: int) -> str:
        text = self.visit(expr)
        if self._prec(expr) < min_prec:
            return "(" + text + ")"
        return text

    def _receiver(self, expr: Expr) -> str:
        # a bare number would swallow the dot as a decimal point
        if isinstance(expr, Literal) and isinstance(expr.value, (int, Decimal)):
            if not isinstance(expr.value, bool):
                return "(" + self.visit(expr) + ")"
        return self._wrap(expr, self._PREC_POSTFIX)

    def visit_literal(self, node: Literal) -> str:
        value = node.value
        if value is None:
            return "NIL"
        if value is True:
            return "TRUE"
        if value is False:
            return "FALSE"
        if isinstance(value, Char):
            return "'" + _escape(value, "'") + "'"
        if isinstance(value, str):
            return '"' + _escape(value, '"') + '"'
        return str(value)

    def visit_group(self, node: Group) -> str:
        return "(" + self.visit(node.expression) + ")"

    def visit_binary(self, node: Binary) -> str:
        prec = self._prec(node)
        # left-associative: the right operand needs parens at equal precedence
        left = self._wrap(node.left, prec)
        right = self._wrap(node.right, prec + 1)
        return left + " " + node.operator + " " + right

    def visit_access(self, node: Access) -> str:
        if node.receiver is None:
            return node.name
        return self._receiver(node.receiver) + "." + node.name

    def visit_call(self, node: Call) -> str:
        args = ", ".join(self.visit(a) for a in node.arguments)
        call = node.name + "(" + args + ")"
        if node.receiver is None:
            return call
        return self._receiver(node.receiver) + "." + call
