from __future__ import annotations

import importlib
import logging
from typing import Any, Callable, List, Optional

from .types import (
    LoxNil, LoxNumber, LoxString, LoxBool, LoxFunction, NativeFunction,
    LoxValue, LoxCallable, NativeFn, NIL, TRUE, FALSE,
    Completion, NormalCompletion, ReturnCompletion, NORMAL,
    Environment, GlobalEnvironment, Builtins,
    LoxRuntimeError, LoxUndefinedVariable, LoxTypeError, LoxDivisionByZero,
    LoxNotCallable, LoxArityError, LoxUnsupported, LoxStackOverflow,
    is_callable,
)

logger = logging.getLogger(__name__)

_STDLIB_INITIALIZED = False

def init_stdlib() -> None:
    """Load stdlib modules (idempotent) so register_native hooks run."""
    global _STDLIB_INITIALIZED

    if _STDLIB_INITIALIZED:
        return

    importlib.import_module("pylox.stdlib")
    _STDLIB_INITIALIZED = True

def register_native(name: str, *, arity: int):
    def dec(fn: NativeFn):
        if name in Builtins.natives:
            logger.debug("Overwriting native %s", name)
        Builtins.natives[name] = NativeFunction(name=name, arity=arity, fn=fn)
        return fn

    return dec

def make_globals(max_call_depth: Optional[int] = None) -> GlobalEnvironment:
    """Fresh global environment with every registered native defined."""
    init_stdlib()
    return GlobalEnvironment(max_call_depth=max_call_depth)

ExecFunc = Callable[[Any, Environment], Completion]

def call_value(callee: LoxValue, args: List[LoxValue], exec_func: ExecFunc) -> LoxValue:
    """Invoke a native or declared function with already-evaluated arguments."""
    if not is_callable(callee):
        raise LoxNotCallable()

    if len(args) != callee.arity:
        raise LoxArityError(callee.arity, len(args))

    match callee:
        case NativeFunction(fn=fn):
            return fn(args)
        case LoxFunction():
            return _call_lox_function(callee, args, exec_func)

    raise LoxNotCallable()

def _call_lox_function(fn: LoxFunction, args: List[LoxValue], exec_func: ExecFunc) -> LoxValue:
    globals_env = fn.globals

    if globals_env.call_depth >= globals_env.max_call_depth:
        raise LoxStackOverflow()

    call_env = Environment(parent=globals_env)
    for name, arg in zip(fn.params, args):
        call_env.define(name, arg)

    logger.debug("call %s depth=%d", fn.name, globals_env.call_depth + 1)
    globals_env.call_depth += 1

    try:
        for stmt in fn.body.children:
            result = exec_func(stmt, call_env)
            if isinstance(result, ReturnCompletion):
                return result.value
    finally:
        globals_env.call_depth -= 1

    return NIL

__all__ = [
    "LoxNil", "LoxNumber", "LoxString", "LoxBool", "LoxFunction", "NativeFunction",
    "LoxValue", "LoxCallable", "NIL", "TRUE", "FALSE",
    "Completion", "NormalCompletion", "ReturnCompletion", "NORMAL",
    "Environment", "GlobalEnvironment", "Builtins",
    "LoxRuntimeError", "LoxUndefinedVariable", "LoxTypeError", "LoxDivisionByZero",
    "LoxNotCallable", "LoxArityError", "LoxUnsupported", "LoxStackOverflow",
    "is_callable",
    "init_stdlib", "register_native", "make_globals", "call_value",
]
