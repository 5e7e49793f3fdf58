from __future__ import annotations

import io
import sys
from contextlib import redirect_stdout
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from pylox.lexer_rd import LexError, Lexer
from pylox.parser_rd import ParseError, parse_source
from pylox.runner import run, repl_eval
from pylox.runtime import (
    GlobalEnvironment,
    LoxArityError,
    LoxBool,
    LoxDivisionByZero,
    LoxFunction,
    LoxNil,
    LoxNotCallable,
    LoxNumber,
    LoxRuntimeError,
    LoxStackOverflow,
    LoxString,
    LoxTypeError,
    LoxUndefinedVariable,
    LoxUnsupported,
    NativeFunction,
    make_globals,
)

KEYWORDS = Lexer.KEYWORDS


def run_program(source: str, env: Optional[GlobalEnvironment] = None) -> Tuple[GlobalEnvironment, List[str]]:
    """Run `source` and return the globals plus every line it printed."""
    out = io.StringIO()

    with redirect_stdout(out):
        env = run(source, env)

    return env, out.getvalue().splitlines()


def verify_value(value: object, kind: str, expected: object) -> None:
    """Assert a runtime value has the expected variant and payload."""
    match kind:
        case "string":
            assert isinstance(
                value, LoxString
            ), f"expected LoxString, got {type(value).__name__}"
            assert (
                value.value == expected
            ), f"expected {expected!r}, got {value.value!r}"
            return
        case "number":
            assert isinstance(
                value, LoxNumber
            ), f"expected number, got {type(value).__name__}"
            assert (
                abs(value.value - float(expected)) <= 1e-9
            ), f"expected {expected}, got {value.value}"
            return
        case "bool":
            assert isinstance(
                value, LoxBool
            ), f"expected bool, got {type(value).__name__}"
            assert value.value is bool(
                expected
            ), f"expected {expected}, got {value.value}"
            return
        case "nil":
            assert isinstance(
                value, LoxNil
            ), f"expected LoxNil, got {type(value).__name__}"
            return
        case "function":
            assert isinstance(
                value, LoxFunction
            ), f"expected LoxFunction, got {type(value).__name__}"
            assert value.name == expected, f"expected {expected!r}, got {value.name!r}"
            return
        case _:
            raise AssertionError(f"unknown expectation kind {kind}")


def run_output_case(
    source: str,
    expected_lines: Optional[Sequence[str]],
    expected_exc: Optional[type],
) -> None:
    """Execute one scenario, comparing printed output or the raised error."""
    if expected_exc is not None:
        with pytest.raises(expected_exc):
            run_program(source)
        return

    _, lines = run_program(source)
    if expected_lines is not None:
        assert lines == list(expected_lines), f"expected {list(expected_lines)!r}, got {lines!r}"


def run_global_case(source: str, name: str, kind: str, expected: object) -> None:
    """Execute `source` and check the global `name` afterwards."""
    env, _ = run_program(source)
    verify_value(env.get(name), kind, expected)


__all__ = [
    "GlobalEnvironment",
    "KEYWORDS",
    "LexError",
    "LoxArityError",
    "LoxDivisionByZero",
    "LoxNotCallable",
    "LoxRuntimeError",
    "LoxStackOverflow",
    "LoxTypeError",
    "LoxUndefinedVariable",
    "LoxUnsupported",
    "NativeFunction",
    "ParseError",
    "make_globals",
    "parse_source",
    "repl_eval",
    "run",
    "run_global_case",
    "run_output_case",
    "run_program",
    "verify_value",
]
