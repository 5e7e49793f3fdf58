from __future__ import annotations

import pytest

from pylox.eval.helpers import is_truthy
from pylox.runtime import (
    FALSE,
    NIL,
    TRUE,
    Environment,
    GlobalEnvironment,
    LoxBool,
    LoxNumber,
    LoxRuntimeError,
    LoxString,
    LoxUndefinedVariable,
    NativeFunction,
    make_globals,
)
from pylox.utils import lox_equals, stringify


def test_define_get_assign() -> None:
    env = make_globals()
    env.define("a", LoxNumber(1))
    assert env.get("a") == LoxNumber(1)

    env.assign("a", LoxString("x"))
    assert env.get("a") == LoxString("x")


def test_get_walks_outward() -> None:
    globals_env = make_globals()
    globals_env.define("g", TRUE)
    inner = Environment(parent=Environment(parent=globals_env))

    assert inner.get("g") is TRUE
    assert inner.root() is globals_env


def test_assign_targets_nearest_binding() -> None:
    globals_env = make_globals()
    globals_env.define("x", LoxNumber(1))
    middle = Environment(parent=globals_env)
    middle.define("x", LoxNumber(2))
    inner = Environment(parent=middle)

    inner.assign("x", LoxNumber(3))

    assert middle.get("x") == LoxNumber(3)
    assert globals_env.get("x") == LoxNumber(1)
    assert not inner.contains("x")


def test_assign_never_declares() -> None:
    env = Environment(parent=make_globals())

    with pytest.raises(LoxUndefinedVariable):
        env.assign("missing", NIL)
    assert not env.contains("missing")


def test_define_shadows_outer() -> None:
    globals_env = make_globals()
    globals_env.define("x", LoxNumber(1))
    inner = Environment(parent=globals_env)
    inner.define("x", LoxNumber(2))

    assert inner.get("x") == LoxNumber(2)
    assert globals_env.get("x") == LoxNumber(1)


def test_globals_start_with_natives() -> None:
    env = make_globals()
    clock = env.get("clock")

    assert isinstance(clock, NativeFunction)
    assert clock.arity == 0
    now = clock.fn([])
    assert isinstance(now, LoxNumber)
    assert now.value.is_integer()


def test_global_environment_is_root() -> None:
    env = GlobalEnvironment(max_call_depth=5)
    assert env.parent is None
    assert env.root() is env
    assert env.call_depth == 0
    assert env.max_call_depth == 5


def test_detached_chain_has_no_root() -> None:
    orphan = Environment(parent=Environment(parent=None))

    with pytest.raises(LoxRuntimeError, match="does not end at the globals"):
        orphan.root()


TRUTHY_CASES = [
    pytest.param(NIL, False, id="nil"),
    pytest.param(FALSE, False, id="false"),
    pytest.param(TRUE, True, id="true"),
    pytest.param(LoxNumber(0), True, id="zero"),
    pytest.param(LoxString(""), True, id="empty-string"),
]


@pytest.mark.parametrize("value, expected", TRUTHY_CASES)
def test_truthiness(value, expected: bool) -> None:
    assert is_truthy(value) is expected


EQUALITY_CASES = [
    pytest.param(NIL, NIL, True, id="nil-nil"),
    pytest.param(LoxNumber(1), LoxNumber(1.0), True, id="numbers"),
    pytest.param(LoxString("a"), LoxString("a"), True, id="strings"),
    pytest.param(LoxBool(True), TRUE, True, id="bools"),
    pytest.param(NIL, FALSE, False, id="nil-false"),
    pytest.param(LoxNumber(0), FALSE, False, id="zero-false"),
    pytest.param(LoxString("1"), LoxNumber(1), False, id="string-number"),
]


@pytest.mark.parametrize("lhs, rhs, expected", EQUALITY_CASES)
def test_equality(lhs, rhs, expected: bool) -> None:
    assert lox_equals(lhs, rhs) is expected


DISPLAY_CASES = [
    pytest.param(NIL, "nil", "nil", id="nil"),
    pytest.param(TRUE, "true", "true", id="true"),
    pytest.param(LoxNumber(3.0), "3", "3", id="integral-number"),
    pytest.param(LoxNumber(2.5), "2.5", "2.5", id="fractional-number"),
    pytest.param(LoxNumber(-1.0), "-1", "-1", id="negative"),
    pytest.param(LoxString("hi"), "hi", '"hi"', id="string"),
]


@pytest.mark.parametrize("value, display, debug", DISPLAY_CASES)
def test_display_forms(value, display: str, debug: str) -> None:
    assert stringify(value) == display
    assert repr(value) == debug
