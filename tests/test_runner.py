from __future__ import annotations

import io
from pathlib import Path

import pytest

from pylox import runner
from pylox.repl import ReplState, eval_entry, open_depth, run_command
from pylox.runtime import LoxNumber, LoxNil, LoxString
from tests.support.harness import (
    LexError,
    LoxTypeError,
    LoxUndefinedVariable,
    ParseError,
    make_globals,
    repl_eval,
    run,
)


def test_run_returns_globals() -> None:
    env = run("var answer = 6 * 7;")
    assert env.get("answer") == LoxNumber(42)


def test_run_reuses_given_environment() -> None:
    env = make_globals()
    run("var a = 1;", env)
    run("a = a + 1;", env)

    assert env.get("a") == LoxNumber(2)


def test_front_end_errors_propagate() -> None:
    with pytest.raises(LexError):
        run("var a = @;")
    with pytest.raises(ParseError):
        run("var a = ;")


REPL_CASES = [
    pytest.param("1 + 2", ("number", 3), False, id="bare-expression"),
    pytest.param("1 + 2;", ("number", 3), False, id="expression-statement"),
    pytest.param('"a" + "b"', ("string", "ab"), False, id="string-expression"),
    pytest.param("var x = 1;", ("nil", None), True, id="declaration"),
    pytest.param("print 1;", ("nil", None), True, id="print-statement"),
    pytest.param("fun f() {}", ("nil", None), True, id="function-declaration"),
    pytest.param("1; 2;", ("nil", None), True, id="two-statements"),
]


@pytest.mark.parametrize("text, expected, is_statement", REPL_CASES)
def test_repl_eval(text: str, expected, is_statement: bool) -> None:
    value, stmt = repl_eval(text, make_globals())

    assert stmt is is_statement
    kind, payload = expected
    match kind:
        case "number":
            assert value == LoxNumber(payload)
        case "string":
            assert value == LoxString(payload)
        case "nil":
            assert isinstance(value, LoxNil)


def test_repl_eval_keeps_state_between_entries(capsys: pytest.CaptureFixture[str]) -> None:
    env = make_globals()
    repl_eval("var count = 1;", env)
    repl_eval("count = count + 1;", env)
    value, stmt = repl_eval("count", env)

    assert stmt is False
    assert value == LoxNumber(2)

    repl_eval("print count;", env)
    assert capsys.readouterr().out == "2\n"


def test_repl_eval_errors() -> None:
    env = make_globals()

    with pytest.raises(LoxUndefinedVariable):
        repl_eval("nope", env)
    with pytest.raises(LoxTypeError):
        repl_eval("-nil", env)
    with pytest.raises(ParseError):
        repl_eval("var = 3;", env)


DEPTH_CASES = [
    pytest.param("print 1;", 0, id="complete"),
    pytest.param("fun f() {", 1, id="open-brace"),
    pytest.param("if (a) {\n  while (b) {", 2, id="nested-open"),
    pytest.param("f(1,", 1, id="open-paren"),
    pytest.param("{ }", 0, id="closed-block"),
    pytest.param('print "abc', 1, id="open-string"),
]


@pytest.mark.parametrize("text, depth", DEPTH_CASES)
def test_open_depth(text: str, depth: int) -> None:
    assert open_depth(text) == depth


def test_repl_echoes_lone_expressions(capsys: pytest.CaptureFixture[str]) -> None:
    state = ReplState()

    eval_entry("var s = \"hi\";", state)
    eval_entry("s", state)
    eval_entry("nil", state)
    eval_entry("print s;", state)

    assert capsys.readouterr().out == "\"hi\"\nhi\n"


def test_repl_reports_errors_and_continues(capsys: pytest.CaptureFixture[str]) -> None:
    state = ReplState()

    eval_entry("print ghost;", state)
    eval_entry("1 +", state)
    eval_entry("1 + 1", state)

    captured = capsys.readouterr()
    assert captured.err.splitlines()[0].startswith("Error: Undefined variable 'ghost'.")
    assert "Error: Expect expression." in captured.err
    assert captured.out == "2\n"


def test_repl_reset_command(capsys: pytest.CaptureFixture[str]) -> None:
    state = ReplState()
    eval_entry("var kept = 1;", state)
    before = state.env

    assert run_command("/reset", state) is True
    assert state.env is not before
    assert not state.env.contains("kept")
    assert state.env.contains("clock")
    assert capsys.readouterr().out == "Environment reset.\n"


def test_repl_py_traceback_command(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("LOX_DEBUG_PY_TRACE", "0")
    state = ReplState()

    run_command("/py-traceback", state)
    run_command("/py-traceback off", state)
    run_command("/py-traceback on", state)
    run_command("/py-traceback maybe", state)

    captured = capsys.readouterr()
    assert captured.out.splitlines() == [
        "Python traceback: on",
        "Python traceback: off",
        "Python traceback: on",
    ]
    assert captured.err.startswith("Usage: /py-traceback")


def test_repl_command_dispatch(capsys: pytest.CaptureFixture[str]) -> None:
    state = ReplState()

    assert run_command("print 1;", state) is False
    assert run_command("/nope", state) is True
    assert capsys.readouterr().err == "Unknown command: /nope\n"


def test_main_runs_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    script = tmp_path / "hello.lox"
    script.write_text('print "hello";\n', encoding="utf-8")

    assert runner.main([str(script)]) == 0
    assert capsys.readouterr().out == "hello\n"


def test_main_runs_literal_source(capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main(["print 1 + 1;"]) == 0
    assert capsys.readouterr().out == "2\n"


def test_main_reads_stdin(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO('print "piped";'))

    assert runner.main(["-"]) == 0
    assert capsys.readouterr().out == "piped\n"


EXIT_CASES = [
    pytest.param(["print 1 +;"], runner.EXIT_DATAERR, "Error: Expect expression.", id="parse-error"),
    pytest.param(["print $;"], runner.EXIT_DATAERR, "Error: Unexpected character", id="lex-error"),
    pytest.param(["print \u00b2;"], runner.EXIT_DATAERR, "Error: Unexpected character", id="non-ascii-digit"),
    pytest.param(["print nope;"], runner.EXIT_SOFTWARE, "Error: Undefined variable 'nope'.", id="runtime-error"),
    pytest.param(["missing_script.lox"], runner.EXIT_NOINPUT, "Error: cannot read missing_script.lox", id="missing-file"),
    pytest.param(["a", "b"], runner.EXIT_USAGE, "Usage: pylox", id="too-many-args"),
]


@pytest.mark.parametrize("argv, code, stderr_prefix", EXIT_CASES)
def test_main_exit_codes(argv, code: int, stderr_prefix: str, capsys: pytest.CaptureFixture[str], tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert runner.main(argv) == code
    assert capsys.readouterr().err.startswith(stderr_prefix)


def test_main_prints_python_traceback_when_enabled(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("LOX_DEBUG_PY_TRACE", "1")

    assert runner.main(["print 1 / 0;"]) == runner.EXIT_SOFTWARE
    err = capsys.readouterr().err
    assert err.startswith("Error: Division by zero.")
    assert "Python traceback:" in err


def test_verbose_flag_logs_stages(capsys: pytest.CaptureFixture[str], caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("DEBUG", logger="pylox"):
        assert runner.main(["--verbose", "fun f() {} f();"]) == 0

    messages = [rec.getMessage() for rec in caplog.records]
    assert any(msg.startswith("parse ") for msg in messages)
    assert any(msg.startswith("declare fn f") for msg in messages)
    assert any(msg.startswith("call f") for msg in messages)
