from __future__ import annotations

from typing import Callable, List

from lark import Token

from ..runtime import (
    Environment,
    LoxBool,
    LoxDivisionByZero,
    LoxNumber,
    LoxRuntimeError,
    LoxString,
    LoxTypeError,
    LoxValue,
)
from ..tree import Node, Tree, token_kind
from ..utils import lox_equals
from .common import expect_ident_token, require_number, require_numbers
from .helpers import is_truthy

EvalFunc = Callable[[Node, Environment], LoxValue]

def eval_unary(op: Token, rhs_node: Node, env: Environment, eval_func: EvalFunc) -> LoxValue:
    rhs = eval_func(rhs_node, env)

    match op:
        case Token(type='MINUS'):
            return LoxNumber(-require_number(rhs))
        case Token(type='BANG'):
            return LoxBool(not is_truthy(rhs))
        case _:
            raise LoxRuntimeError(f"Unsupported unary op: {op}")

def eval_binary(children: List[Node], env: Environment, eval_func: EvalFunc) -> LoxValue:
    lhs_node, op, rhs_node = children

    # operands evaluate left to right before any type check
    lhs = eval_func(lhs_node, env)
    rhs = eval_func(rhs_node, env)

    return apply_binary(token_kind(op), lhs, rhs)

def apply_binary(op: str | None, lhs: LoxValue, rhs: LoxValue) -> LoxValue:
    match op:
        case 'PLUS':
            return _add(lhs, rhs)
        case 'MINUS':
            a, b = require_numbers(lhs, rhs)
            return LoxNumber(a - b)
        case 'STAR':
            a, b = require_numbers(lhs, rhs)
            return LoxNumber(a * b)
        case 'SLASH':
            a, b = require_numbers(lhs, rhs)
            if b == 0:
                raise LoxDivisionByZero()
            return LoxNumber(a / b)
        case 'LT':
            a, b = require_numbers(lhs, rhs)
            return LoxBool(a < b)
        case 'LTE':
            a, b = require_numbers(lhs, rhs)
            return LoxBool(a <= b)
        case 'GT':
            a, b = require_numbers(lhs, rhs)
            return LoxBool(a > b)
        case 'GTE':
            a, b = require_numbers(lhs, rhs)
            return LoxBool(a >= b)
        case 'EQ':
            return LoxBool(lox_equals(lhs, rhs))
        case 'NEQ':
            return LoxBool(not lox_equals(lhs, rhs))
        case _:
            raise LoxRuntimeError(f"Unknown operator {op}")

def _add(lhs: LoxValue, rhs: LoxValue) -> LoxValue:
    match (lhs, rhs):
        case (LoxNumber(value=a), LoxNumber(value=b)):
            return LoxNumber(a + b)
        case (LoxString(value=a), LoxString(value=b)):
            return LoxString(a + b)
        case _:
            raise LoxTypeError("Operands must be two numbers or two strings.")

def eval_logical(kind: str, children: List[Node], env: Environment, eval_func: EvalFunc) -> LoxValue:
    """Short-circuiting `and`/`or`; the result is the operand that decided it."""
    lhs_node, _, rhs_node = children
    lhs = eval_func(lhs_node, env)

    if kind == 'or':
        if is_truthy(lhs):
            return lhs
    elif not is_truthy(lhs):
        return lhs

    return eval_func(rhs_node, env)

def eval_assign(n: Tree, env: Environment, eval_func: EvalFunc) -> LoxValue:
    target, value_node = n.children
    name = expect_ident_token(target, "Assignment target")

    value = eval_func(value_node, env)
    env.assign(name, value)
    return value
