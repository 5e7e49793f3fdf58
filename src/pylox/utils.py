from __future__ import annotations

import os as _os
from typing import Optional

from .types import (
    LoxValue,
    LoxNil,
    LoxNumber,
    LoxString,
    LoxBool,
    LoxFunction,
    NativeFunction,
)

DEFAULT_MAX_CALL_DEPTH = 64

_TRUTHY_FLAGS = {"1", "true", "yes", "on"}


def debug_py_trace_enabled() -> bool:
    """Check LOX_DEBUG_PY_TRACE; when set, drivers also print Python tracebacks."""
    return _os.environ.get("LOX_DEBUG_PY_TRACE", "").strip().lower() in _TRUTHY_FLAGS


def configured_max_call_depth(default: int = DEFAULT_MAX_CALL_DEPTH) -> int:
    """Read LOX_MAX_CALL_DEPTH, falling back to `default` when unset or invalid."""
    raw = _os.environ.get("LOX_MAX_CALL_DEPTH")
    if raw is None:
        return default

    try:
        depth = int(raw)
    except ValueError:
        return default

    return depth if depth > 0 else default


def lox_equals(lhs: LoxValue, rhs: LoxValue) -> bool:
    match (lhs, rhs):
        case (LoxNil(), LoxNil()):
            return True
        case (LoxNumber(value=a), LoxNumber(value=b)):
            return a == b
        case (LoxString(value=a), LoxString(value=b)):
            return a == b
        case (LoxBool(value=a), LoxBool(value=b)):
            return a == b
        case (
            (LoxFunction(), LoxFunction())
            | (NativeFunction(), NativeFunction())
        ):
            return lhs is rhs
        case _:
            return False


def stringify(value: Optional[LoxValue]) -> str:
    """Display form used by `print`: like repr, but strings are unquoted."""
    if isinstance(value, LoxString):
        return value.value

    if isinstance(value, LoxNil) or value is None:
        return "nil"

    return repr(value)
