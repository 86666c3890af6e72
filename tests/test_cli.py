"""Command-line front end."""

import pytest

from plc.cli import main

HELLO = """\
DEF main(): Integer DO
    print("hello");
    RETURN 7;
END
"""


@pytest.fixture
def write_program(tmp_path):
    def write(text: str):
        path = tmp_path / "prog.plc"
        path.write_text(text)
        return str(path)

    return write


def test_runs_program_and_exits_with_main_result(write_program, capsys):
    assert main([write_program(HELLO)]) == 7
    assert capsys.readouterr().out == "hello\n"


def test_exit_value_masked_to_byte(write_program):
    program = "DEF main(): Integer DO RETURN 257; END"
    assert main([write_program(program)]) == 1


def test_parse_error_reported(write_program, capsys):
    assert main([write_program("DEF main( DO END")]) == 1
    err = capsys.readouterr().err
    assert err.startswith("plc: parse error: ")
    assert "at offset" in err


def test_type_error_reported(write_program, capsys):
    assert main([write_program("DEF notMain(): Integer DO RETURN 0; END")]) == 1
    assert "plc: type error: missing method main()" in capsys.readouterr().err


def test_runtime_fault_reported(write_program, capsys):
    assert main([write_program("DEF main(): Integer DO RETURN 1 / 0; END")]) == 1
    assert "plc: runtime fault: division by zero" in capsys.readouterr().err


def test_no_check_skips_analysis(write_program):
    program = "DEF add(a, b) DO RETURN a + b; END DEF main(): Integer DO RETURN add(2, 3); END"
    assert main([write_program(program)]) == 1
    assert main(["--no-check", write_program(program)]) == 5


def test_non_integer_result(write_program, capsys):
    program = 'DEF main() DO RETURN "x"; END'
    assert main(["--no-check", write_program(program)]) == 1
    assert "non-Integer" in capsys.readouterr().err


def test_emit_prints_normalized_source(write_program, capsys):
    assert main(["--emit", write_program("DEF main(): Integer DO RETURN 0; END")]) == 0
    assert capsys.readouterr().out == "DEF main(): Integer DO\n    RETURN 0;\nEND\n"


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "absent.plc")]) == 1
    assert "cannot open" in capsys.readouterr().err


def test_unknown_flag():
    with pytest.raises(SystemExit) as info:
        main(["--bogus"])
    assert info.value.code == 2


def test_extra_argument(write_program):
    path = write_program(HELLO)
    with pytest.raises(SystemExit) as info:
        main([path, path])
    assert info.value.code == 2


def test_help(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--help"])
    assert info.value.code == 0
    assert capsys.readouterr().out.startswith("plc [OPTIONS]")


def test_deep_recursion_runs(write_program):
    program = (
        "DEF count(n: Integer): Integer DO\n"
        "    IF n == 0 DO\n"
        "        RETURN 0;\n"
        "    END\n"
        "    RETURN 1 + count(n - 1);\n"
        "END\n"
        "DEF main(): Integer DO\n"
        "    RETURN count(1500) - 1300;\n"
        "END\n"
    )
    assert main([write_program(program)]) == 200


def test_runaway_recursion_reported(write_program, capsys):
    program = "DEF loop(): Integer DO RETURN loop(); END DEF main(): Integer DO RETURN loop(); END"
    assert main([write_program(program)]) == 1
    assert "plc: runtime fault: maximum call depth exceeded" in capsys.readouterr().err
