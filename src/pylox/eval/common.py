from __future__ import annotations

from typing import Any, Optional, Tuple

from lark import Token

from ..runtime import LoxNumber, LoxString, LoxRuntimeError, LoxTypeError, LoxValue
from ..tree import is_token, token_kind

def expect_ident_token(node: Any, context: str) -> str:
    if is_token(node) and token_kind(node) == 'IDENT':
        return str(node.value)

    raise LoxRuntimeError(f"{context} must be an identifier")

def ident_token_value(node: Any) -> Optional[str]:
    if is_token(node) and token_kind(node) == 'IDENT':
        return str(node.value)

    return None

def require_number(value: LoxValue, message: str = "Operand must be a number.") -> float:
    if not isinstance(value, LoxNumber):
        raise LoxTypeError(message)

    return value.value

def require_numbers(lhs: LoxValue, rhs: LoxValue) -> Tuple[float, float]:
    if not (isinstance(lhs, LoxNumber) and isinstance(rhs, LoxNumber)):
        raise LoxTypeError("Operands must be numbers.")

    return lhs.value, rhs.value

def token_number(token: Token, _: Any) -> LoxNumber:
    return LoxNumber(float(token.value))

def token_string(token: Token, _: Any) -> LoxString:
    raw = token.value

    if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
        raw = raw[1:-1]

    return LoxString(raw)
