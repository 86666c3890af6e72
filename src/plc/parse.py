"""PLC parser: recursive descent, one method per grammar production."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable

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
from .errors import ParseError
from .tokens import (
    TK_CHAR,
    TK_DECIMAL,
    TK_IDENT,
    TK_INT,
    TK_OP,
    TK_STRING,
    KEYWORDS,
    Token,
    unescape,
)

LOGICAL_OPS: tuple[str, ...] = ("&&", "||")
COMPARE_OPS: tuple[str, ...] = ("==", "!=", "<", "<=", ">", ">=")
SUM_OPS: tuple[str, ...] = ("+", "-")
PRODUCT_OPS: tuple[str, ...] = ("*", "/")


class Parser:
    """Recursive descent parser for PLC."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def has(self, offset: int = 0) -> bool:
        return self.pos + offset < len(self.tokens)

    def current(self) -> Token | None:
        if not self.has():
            return None
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def at(self, *texts: str) -> bool:
        """Is the current token's text one of texts (matched literally)?"""
        tok = self.current()
        return tok is not None and tok.text in texts

    def at_kind(self, kind: str) -> bool:
        tok = self.current()
        return tok is not None and tok.kind == kind

    def match(self, *texts: str) -> bool:
        if self.at(*texts):
            self.advance()
            return True
        return False

    def expect(self, text: str) -> Token:
        if not self.at(text):
            raise self.error("expected '" + text + "', got " + self._describe())
        return self.advance()

    def expect_ident(self, what: str = "identifier") -> Token:
        tok = self.current()
        if tok is None or tok.kind != TK_IDENT or tok.text in KEYWORDS:
            raise self.error("expected " + what + ", got " + self._describe())
        return self.advance()

    def error(self, msg: str) -> ParseError:
        return ParseError(msg, self._offset())

    def _describe(self) -> str:
        tok = self.current()
        if tok is None:
            return "end of input"
        return "'" + tok.text + "'"

    def _offset(self) -> int:
        """Offset of the current token, or just past the last one at end of input."""
        tok = self.current()
        if tok is not None:
            return tok.offset
        if len(self.tokens) == 0:
            return 0
        last = self.tokens[-1]
        return last.offset + len(last.text)

    # ── Top Level ────────────────────────────────────────────

    def parse_source(self) -> Source:
        offset = self._offset()
        fields: list[Field] = []
        methods: list[Method] = []
        while self.at("LET"):
            fields.append(self.parse_field())
        while self.at("DEF"):
            methods.append(self.parse_method())
        if self.has():
            if self.at("LET"):
                raise self.error("fields must be declared before methods")
            raise self.error("expected LET or DEF, got " + self._describe())
        return Source(fields, methods, offset=offset)

    def parse_field(self) -> Field:
        offset = self._offset()
        self.expect("LET")
        constant = self.match("CONST")
        name_tok = self.expect_ident()
        type_name = self.parse_type_annotation()
        value: Expr | None = None
        if self.match("="):
            value = self.parse_expression()
        self.expect(";")
        return Field(name_tok.text, type_name, constant, value, offset=offset)

    def parse_method(self) -> Method:
        offset = self._offset()
        self.expect("DEF")
        name_tok = self.expect_ident("method name")
        self.expect("(")
        parameters: list[str] = []
        parameter_types: list[str | None] = []
        if not self.at(")"):
            while True:
                param_tok = self.expect_ident("parameter name")
                parameters.append(param_tok.text)
                parameter_types.append(self.parse_type_annotation())
                if not self.match(","):
                    break
        self.expect(")")
        return_type = self.parse_type_annotation()
        self.expect("DO")
        statements = self.parse_block("END")
        self.expect("END")
        return Method(
            name_tok.text,
            parameters,
            parameter_types,
            return_type,
            statements,
            offset=offset,
        )

    def parse_type_annotation(self) -> str | None:
        """( ':' IDENT )?"""
        if not self.match(":"):
            return None
        return self.expect_ident("type name").text

    def parse_block(self, *terminators: str) -> list[Stmt]:
        """Statements up to (not including) one of the terminator keywords."""
        stmts: list[Stmt] = []
        while not self.at(*terminators):
            if not self.has():
                raise self.error("expected " + " or ".join(terminators) + ", got end of input")
            stmts.append(self.parse_statement())
        return stmts

    # ── Statements ───────────────────────────────────────────

    def parse_statement(self) -> Stmt:
        if self.at("LET"):
            return self.parse_declaration_statement()
        if self.at("IF"):
            return self.parse_if_statement()
        if self.at("FOR"):
            return self.parse_for_statement()
        if self.at("WHILE"):
            return self.parse_while_statement()
        if self.at("RETURN"):
            return self.parse_return_statement()
        return self.parse_expression_statement()

    def parse_declaration_statement(self) -> Declaration:
        offset = self._offset()
        self.expect("LET")
        name_tok = self.expect_ident()
        type_name = self.parse_type_annotation()
        value: Expr | None = None
        if self.match("="):
            value = self.parse_expression()
        self.expect(";")
        return Declaration(name_tok.text, type_name, value, offset=offset)

    def parse_if_statement(self) -> IfStmt:
        offset = self._offset()
        self.expect("IF")
        condition = self.parse_expression()
        self.expect("DO")
        then_statements = self.parse_block("ELSE", "END")
        else_statements: list[Stmt] = []
        if self.match("ELSE"):
            else_statements = self.parse_block("END")
        self.expect("END")
        return IfStmt(condition, then_statements, else_statements, offset=offset)

    def parse_for_statement(self) -> ForStmt:
        offset = self._offset()
        self.expect("FOR")
        self.expect("(")
        initialization: Stmt | None = None
        if self.at_kind(TK_IDENT):
            initialization = self.parse_for_assignment()
        self.expect(";")
        condition = self.parse_expression()
        self.expect(";")
        increment: Stmt | None = None
        if self.at_kind(TK_IDENT):
            increment = self.parse_for_assignment()
        self.expect(")")
        statements = self.parse_block("END")
        self.expect("END")
        return ForStmt(initialization, condition, increment, statements, offset=offset)

    def parse_for_assignment(self) -> Assignment:
        """IDENT '=' Expr: the init and increment clauses of FOR."""
        name_tok = self.expect_ident()
        self.expect("=")
        value = self.parse_expression()
        receiver = Access(None, name_tok.text, offset=name_tok.offset)
        return Assignment(receiver, value, offset=name_tok.offset)

    def parse_while_statement(self) -> WhileStmt:
        offset = self._offset()
        self.expect("WHILE")
        condition = self.parse_expression()
        self.expect("DO")
        statements = self.parse_block("END")
        self.expect("END")
        return WhileStmt(condition, statements, offset=offset)

    def parse_return_statement(self) -> ReturnStmt:
        offset = self._offset()
        self.expect("RETURN")
        value = self.parse_expression()
        self.expect(";")
        return ReturnStmt(value, offset=offset)

    def parse_expression_statement(self) -> Stmt:
        """Expr ( '=' Expr )? ';': the receiver is validated by the analyzer."""
        offset = self._offset()
        expression = self.parse_expression()
        if self.match("="):
            value = self.parse_expression()
            self.expect(";")
            return Assignment(expression, value, offset=offset)
        self.expect(";")
        return ExprStmt(expression, offset=offset)

    # ── Expressions ──────────────────────────────────────────

    def parse_expression(self) -> Expr:
        return self.parse_logical_expression()

    def parse_logical_expression(self) -> Expr:
        """Logical = Equality ( ( '&&' | '||' ) Equality )*"""
        return self._parse_binary_tier(LOGICAL_OPS, self.parse_equality_expression)

    def parse_equality_expression(self) -> Expr:
        """Equality = Additive ( CompareOp Additive )*"""
        return self._parse_binary_tier(COMPARE_OPS, self.parse_additive_expression)

    def parse_additive_expression(self) -> Expr:
        """Additive = Multiplicative ( ( '+' | '-' ) Multiplicative )*"""
        return self._parse_binary_tier(SUM_OPS, self.parse_multiplicative_expression)

    def parse_multiplicative_expression(self) -> Expr:
        """Multiplicative = Secondary ( ( '*' | '/' ) Secondary )*"""
        return self._parse_binary_tier(PRODUCT_OPS, self.parse_secondary_expression)

    def _parse_binary_tier(
        self, ops: tuple[str, ...], operand: Callable[[], Expr]
    ) -> Expr:
        left = operand()
        while self.at_kind(TK_OP) and self.at(*ops):
            op = self.advance().text
            right = operand()
            left = Binary(op, left, right, offset=left.offset)
        return left

    def parse_secondary_expression(self) -> Expr:
        """Secondary = Primary ( '.' IDENT ( '(' Args ')' )? )*"""
        expr = self.parse_primary_expression()
        while self.match("."):
            name_tok = self.expect_ident("member name after '.'")
            if self.match("("):
                arguments = self.parse_arguments()
                expr = Call(expr, name_tok.text, arguments, offset=expr.offset)
            else:
                expr = Access(expr, name_tok.text, offset=expr.offset)
        return expr

    def parse_arguments(self) -> list[Expr]:
        """Args = ( Expr ( ',' Expr )* )? ')': the '(' is already consumed."""
        arguments: list[Expr] = []
        if not self.at(")"):
            arguments.append(self.parse_expression())
            while self.match(","):
                arguments.append(self.parse_expression())
        self.expect(")")
        return arguments

    def parse_primary_expression(self) -> Expr:
        tok = self.current()
        if tok is None:
            raise self.error("expected expression, got end of input")
        offset = tok.offset

        if tok.kind == TK_IDENT:
            if tok.text == "NIL":
                self.advance()
                return Literal(None, offset=offset)
            if tok.text == "TRUE":
                self.advance()
                return Literal(True, offset=offset)
            if tok.text == "FALSE":
                self.advance()
                return Literal(False, offset=offset)
            if tok.text in KEYWORDS:
                raise self.error("expected expression, got keyword '" + tok.text + "'")
            self.advance()
            if self.match("("):
                arguments = self.parse_arguments()
                return Call(None, tok.text, arguments, offset=offset)
            return Access(None, tok.text, offset=offset)

        if tok.kind == TK_INT:
            self.advance()
            return Literal(int(tok.text), offset=offset)
        if tok.kind == TK_DECIMAL:
            self.advance()
            return Literal(Decimal(tok.text), offset=offset)
        if tok.kind == TK_CHAR:
            self.advance()
            return Literal(Char(unescape(tok.text[1:-1])), offset=offset)
        if tok.kind == TK_STRING:
            self.advance()
            return Literal(unescape(tok.text[1:-1]), offset=offset)

        if self.match("("):
            inner = self.parse_expression()
            if not self.at(")"):
                raise self.error("expected ')' to close group, got " + self._describe())
            self.advance()
            return Group(inner, offset=offset)

        raise self.error("expected expression, got " + self._describe())


def parse(tokens: list[Token]) -> Source:
    """Parse a token list into a Source AST."""
    return Parser(tokens).parse_source()
