from __future__ import annotations

from typing import Callable

from lark import Token

from .runtime import (
    Completion,
    Environment,
    GlobalEnvironment,
    LoxRuntimeError,
    LoxStackOverflow,
    LoxUnsupported,
    LoxValue,
    NIL,
    NORMAL,
    TRUE,
    FALSE,
    ReturnCompletion,
    call_value,
    init_stdlib,
)
from .tree import Node, Tree, is_token, node_meta, tree_label
from .utils import stringify

from .eval.blocks import execute_block, execute_statements
from .eval.common import token_number, token_string
from .eval.expr import eval_assign, eval_binary, eval_logical, eval_unary
from .eval.fn import eval_fun_decl, eval_return_stmt
from .eval.loops import eval_for_stmt, eval_if_stmt, eval_while_stmt

def _maybe_attach_location(exc: LoxRuntimeError, node: Node) -> None:
    if exc.lox_meta is not None:
        return

    meta = node_meta(node)

    if meta is not None and getattr(meta, "line", None) is not None:
        exc.lox_meta = meta

# ---------------- Public API ----------------

def run_statements(program: Tree, env: GlobalEnvironment) -> GlobalEnvironment:
    """Execute a parsed `program` against `env` and return it."""
    init_stdlib()

    try:
        result = execute_statements(program.children, env, execute)
    except RecursionError as exc:
        err = LoxStackOverflow()
        err.lox_py_trace = exc.__traceback__
        raise err from None
    except LoxRuntimeError as e:
        if e.lox_py_trace is None:
            e.lox_py_trace = e.__traceback__
        raise

    if isinstance(result, ReturnCompletion):
        raise LoxUnsupported("Can't return from top-level code.")

    return env

# ---------------- Core evaluator ----------------

def evaluate(expr: Node, env: Environment) -> LoxValue:
    try:
        if is_token(expr):
            return _eval_token(expr, env)

        handler = _EXPR_DISPATCH.get(expr.data)
        if handler is None:
            raise LoxUnsupported(f"Unknown expression node: {expr.data}")
        return handler(expr, env)
    except LoxRuntimeError as e:
        _maybe_attach_location(e, expr)
        raise

def execute(stmt: Node, env: Environment) -> Completion:
    try:
        handler = _STMT_DISPATCH.get(tree_label(stmt))
        if handler is None:
            raise LoxUnsupported(f"Unknown statement node: {tree_label(stmt) or stmt}")
        return handler(stmt, env)
    except LoxRuntimeError as e:
        _maybe_attach_location(e, stmt)
        raise

# ---------------- Tokens ----------------

def _eval_token(t: Token, env: Environment) -> LoxValue:
    handler = _TOKEN_DISPATCH.get(t.type)
    if handler:
        return handler(t, env)

    if t.type == 'IDENT':
        return env.get(t.value)

    raise LoxUnsupported(f"Unhandled token {t.type}:{t.value}")

# ---------------- Expressions ----------------

def _eval_call(n: Tree, env: Environment) -> LoxValue:
    callee_node, args_node = n.children
    callee = evaluate(callee_node, env)
    args = [evaluate(arg, env) for arg in args_node.children]

    return call_value(callee, args, execute)

# ---------------- Statements ----------------

def _exec_expr_stmt(n: Tree, env: Environment) -> Completion:
    evaluate(n.children[0], env)
    return NORMAL

def _exec_print_stmt(n: Tree, env: Environment) -> Completion:
    value = evaluate(n.children[0], env)
    print(stringify(value))
    return NORMAL

def _exec_var_decl(n: Tree, env: Environment) -> Completion:
    name_tok = n.children[0]
    value = evaluate(n.children[1], env) if len(n.children) > 1 else NIL

    env.define(name_tok.value, value)
    return NORMAL

_EXPR_DISPATCH: dict[str, Callable[[Tree, Environment], LoxValue]] = {
    'group': lambda n, env: evaluate(n.children[0], env),
    'assign': lambda n, env: eval_assign(n, env, evaluate),
    'unary': lambda n, env: eval_unary(n.children[0], n.children[1], env, evaluate),
    'binary': lambda n, env: eval_binary(n.children, env, evaluate),
    'and': lambda n, env: eval_logical('and', n.children, env, evaluate),
    'or': lambda n, env: eval_logical('or', n.children, env, evaluate),
    'call': _eval_call,
}

_STMT_DISPATCH: dict[str | None, Callable[[Tree, Environment], Completion]] = {
    'exprstmt': _exec_expr_stmt,
    'printstmt': _exec_print_stmt,
    'vardecl': _exec_var_decl,
    'block': lambda n, env: execute_block(n, env, execute),
    'ifstmt': lambda n, env: eval_if_stmt(n, env, evaluate, execute),
    'whilestmt': lambda n, env: eval_while_stmt(n, env, evaluate, execute),
    'forstmt': lambda n, env: eval_for_stmt(n, env, evaluate, execute),
    'fundecl': lambda n, env: eval_fun_decl(n, env),
    'returnstmt': lambda n, env: eval_return_stmt(n, env, evaluate),
}

_TOKEN_DISPATCH: dict[str, Callable[[Token, Environment], LoxValue]] = {
    'NUMBER': token_number,
    'STRING': token_string,
    'TRUE': lambda _, __: TRUE,
    'FALSE': lambda _, __: FALSE,
    'NIL': lambda _, __: NIL,
}
