"""Analyzer unit tests: assignability, annotations, and member resolution."""

from decimal import Decimal

import pytest

from plc.ast import Access, Binary, Call, Literal, Method, ReturnStmt, Source
from plc.check import (
    ANY,
    BOOLEAN,
    CHARACTER,
    COMPARABLE,
    DECIMAL,
    INTEGER,
    NIL,
    STRING,
    Analyzer,
    Type,
    analyze,
    get_type,
    is_assignable,
    register_type,
    require_assignable,
)
from plc.errors import PlcTypeError
from plc.parse import parse
from plc.scope import Scope
from plc.tokens import tokenize

ALL_TYPES = [ANY, NIL, COMPARABLE, BOOLEAN, INTEGER, DECIMAL, CHARACTER, STRING]


@pytest.mark.parametrize("typ", ALL_TYPES, ids=lambda t: t.name)
def test_type_is_assignable_to_itself(typ):
    require_assignable(typ, typ)


@pytest.mark.parametrize("typ", ALL_TYPES, ids=lambda t: t.name)
def test_everything_is_assignable_to_any(typ):
    require_assignable(ANY, typ)


def test_comparable_capability():
    for typ in (INTEGER, DECIMAL, CHARACTER, STRING):
        require_assignable(COMPARABLE, typ)
    for typ in (BOOLEAN, NIL, ANY):
        with pytest.raises(PlcTypeError):
            require_assignable(COMPARABLE, typ)


def test_assignability_is_one_directional():
    assert is_assignable(ANY, INTEGER)
    assert not is_assignable(INTEGER, ANY)
    assert not is_assignable(INTEGER, DECIMAL)


def test_get_type():
    assert get_type("Integer") is INTEGER
    with pytest.raises(PlcTypeError, match="unknown type 'Widget'"):
        get_type("Widget")


def test_register_type():
    point = Type("Point")
    register_type(point)
    assert get_type("Point") is point


def test_analyze_annotates_in_place():
    source = parse(
        tokenize("LET x = 2;\nDEF main(): Integer DO\n    RETURN x * 3;\nEND\n")
    )
    analyze(source)
    field = source.fields[0]
    ret = source.methods[0].statements[0]
    assert field.variable is not None
    assert field.variable.type is INTEGER
    assert ret.value.type is INTEGER
    assert ret.value.left.variable is field.variable
    assert source.methods[0].function.return_type is INTEGER


def test_main_check_on_hand_built_source():
    main = Method("main", [], [], "Integer", [ReturnStmt(Literal(0))])
    analyze(Source([], [main]))
    renamed = Method("notMain", [], [], "Integer", [ReturnStmt(Literal(0))])
    with pytest.raises(PlcTypeError, match="missing method main"):
        analyze(Source([], [renamed]))


def test_unknown_operator_rejected():
    analyzer = Analyzer()
    expr = Binary("%", Literal(1), Literal(2))
    with pytest.raises(PlcTypeError, match="unsupported binary operator '%'"):
        analyzer.analyze_expr(expr, analyzer.scope)


def test_member_resolution_uses_receiver_type():
    point = Type("Point", comparable=False)
    point.scope.define_variable("x", INTEGER)
    point.scope.define_function("scaled", [ANY, DECIMAL], DECIMAL, lambda args: None)
    outer = Scope()
    outer.define_variable("p", point)
    analyzer = Analyzer(outer)

    field = Access(Access(None, "p"), "x")
    assert analyzer.analyze_expr(field, analyzer.scope) is INTEGER
    assert field.variable is point.scope.lookup_variable("x")

    call = Call(Access(None, "p"), "scaled", [Literal(None)])
    with pytest.raises(PlcTypeError, match="cannot use Nil where Decimal"):
        analyzer.analyze_expr(call, analyzer.scope)

    call = Call(Access(None, "p"), "scaled", [Literal(Decimal("2.0"))])
    assert analyzer.analyze_expr(call, analyzer.scope) is DECIMAL
    assert call.function.arity == 2


def test_member_lookup_does_not_see_lexical_scope():
    outer = Scope()
    outer.define_variable("p", INTEGER)
    analyzer = Analyzer(outer)
    call = Call(Access(None, "p"), "print", [])
    with pytest.raises(PlcTypeError, match="undefined method 'print/0'"):
        analyzer.analyze_expr(call, analyzer.scope)


def test_error_offset_points_at_node():
    text = 'DEF main(): Integer DO\n    RETURN "s";\nEND\n'
    with pytest.raises(PlcTypeError) as info:
        analyze(parse(tokenize(text)))
    assert info.value.offset == text.index('"s"')
