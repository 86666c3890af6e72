"""Source emitter: rendering and re-parse stability."""

from decimal import Decimal

import pytest

from plc.ast import Access, AstVisitor, Binary, Call, Char, Group, Literal
from plc.check import analyze
from plc.emit import to_source
from plc.parse import parse
from plc.tokens import tokenize

PROGRAMS = [
    """\
LET CONST limit: Integer = 10;
LET total;

DEF add(a: Integer, b): Integer DO
    RETURN a + b;
END

DEF main(): Integer DO
    LET i: Integer = 0;
    FOR (i = 0; i < limit; i = i + 1)
        total = add(i, 1);
    END
    WHILE i > 0 && TRUE DO
        i = i - 1;
    END
    IF (i + 1) * 2 == 2 DO
        print("tab\\tquote\\"");
    ELSE
        print('\\'');
    END
    RETURN 0;
END
""",
    "DEF main(): Integer DO x.y.z(1, -2.5).w = NIL; FOR (; FALSE; ) END RETURN 0; END",
    "LET a = 1 - (2 - 3); LET b = a.f().g; LET c = 5 - -1;",
]


def normalize(text: str) -> str:
    return to_source(parse(tokenize(text)))


@pytest.mark.parametrize("program", PROGRAMS)
def test_round_trip_is_stable(program):
    once = normalize(program)
    assert normalize(once) == once


def test_program_layout():
    text = "LET CONST x: Integer = 1; DEF main(): Integer DO IF TRUE DO RETURN x; END RETURN 0; END"
    assert normalize(text) == (
        "LET CONST x: Integer = 1;\n"
        "\n"
        "DEF main(): Integer DO\n"
        "    IF TRUE DO\n"
        "        RETURN x;\n"
        "    END\n"
        "    RETURN 0;\n"
        "END\n"
    )


def test_canonical_text_is_a_fixed_point():
    assert normalize(PROGRAMS[0]) == PROGRAMS[0]


def test_hand_built_precedence_gets_parentheses():
    sum_ = Binary("+", Literal(1), Literal(2))
    assert to_source(Binary("*", sum_, Literal(3))) == "(1 + 2) * 3"
    nested = Binary("-", Literal(1), Binary("-", Literal(2), Literal(3)))
    assert to_source(nested) == "1 - (2 - 3)"
    assert to_source(Binary("-", Binary("-", Literal(1), Literal(2)), Literal(3))) == "1 - 2 - 3"


def test_group_is_rendered_once():
    expr = Binary("*", Group(Binary("+", Literal(1), Literal(2))), Literal(3))
    assert to_source(expr) == "(1 + 2) * 3"


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, "NIL"),
        (True, "TRUE"),
        (False, "FALSE"),
        (42, "42"),
        (-7, "-7"),
        (Decimal("1.50"), "1.50"),
        (Char("\n"), "'\\n'"),
        (Char("'"), "'\\''"),
        (Char('"'), "'\"'"),
        ('say "hi"\n', '"say \\"hi\\"\\n"'),
        ("it's", '"it\'s"'),
    ],
)
def test_literals(value, expected):
    assert to_source(Literal(value)) == expected


def test_member_chain():
    expr = Call(Access(Access(None, "a"), "b"), "c", [Literal(1), Access(None, "d")])
    assert to_source(expr) == "a.b.c(1, d)"


@pytest.mark.parametrize(
    "receiver,expected",
    [
        (Literal(1), "(1).x"),
        (Literal(Decimal("2.5")), "(2.5).x"),
        (Literal(-3), "(-3).x"),
        (Literal(True), "TRUE.x"),
        (Literal("s"), '"s".x'),
    ],
)
def test_number_receiver_gets_parentheses(receiver, expected):
    text = to_source(Access(receiver, "x"))
    assert text == expected
    parse(tokenize("DEF main() DO RETURN " + text + "; END"))
    assert to_source(Call(receiver, "f", [])) == expected[:-1] + "f()"


def test_emit_leaves_annotations_alone():
    source = parse(
        tokenize("LET x = 2;\nDEF main(): Integer DO\n    RETURN x + 1;\nEND\n")
    )
    analyze(source)
    ret = source.methods[0].statements[0]
    before = (ret.value.type, ret.value.left.variable, source.fields[0].variable)
    to_source(source)
    assert (ret.value.type, ret.value.left.variable, source.fields[0].variable) == before


def test_visitor_rejects_unknown_nodes():
    with pytest.raises(TypeError, match="unhandled node type"):
        AstVisitor().visit(object())
