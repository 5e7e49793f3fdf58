from __future__ import annotations

from typing import Callable

from ..runtime import Completion, Environment, LoxRuntimeError, LoxValue, NORMAL, ReturnCompletion
from ..tree import Node, Tree, tree_children, tree_label
from .helpers import is_truthy

EvalFunc = Callable[[Node, Environment], LoxValue]
ExecFunc = Callable[[Node, Environment], Completion]

def eval_if_stmt(n: Tree, env: Environment, eval_func: EvalFunc, exec_func: ExecFunc) -> Completion:
    children = tree_children(n)

    if len(children) not in (2, 3):
        raise LoxRuntimeError("Malformed if statement")

    cond_node, then_node = children[0], children[1]
    else_node = children[2] if len(children) == 3 else None

    if is_truthy(eval_func(cond_node, env)):
        return exec_func(then_node, env)

    if else_node is not None:
        return exec_func(else_node, env)
    return NORMAL

def eval_while_stmt(n: Tree, env: Environment, eval_func: EvalFunc, exec_func: ExecFunc) -> Completion:
    cond_node, body_node = n.children

    while is_truthy(eval_func(cond_node, env)):
        result = exec_func(body_node, env)

        if isinstance(result, ReturnCompletion):
            return result

    return NORMAL

def eval_for_stmt(n: Tree, env: Environment, eval_func: EvalFunc, exec_func: ExecFunc) -> Completion:
    """Run `for (init; cond; incr) body` as a while loop in its own scope.

    The tree is not rewritten; `body_node` is the same object every iteration.
    """
    init_node, cond_node, incr_node, body_node = n.children
    loop_env = Environment(parent=env)

    if tree_label(init_node) != 'emptystmt':
        exec_func(init_node, loop_env)

    has_cond = tree_label(cond_node) != 'emptyexpr'
    has_incr = tree_label(incr_node) != 'emptyexpr'

    while not has_cond or is_truthy(eval_func(cond_node, loop_env)):
        result = exec_func(body_node, loop_env)

        if isinstance(result, ReturnCompletion):
            return result

        if has_incr:
            eval_func(incr_node, loop_env)

    return NORMAL
