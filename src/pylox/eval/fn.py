from __future__ import annotations

import logging
from typing import Any, Callable, List

from ..runtime import (
    Completion,
    Environment,
    LoxFunction,
    LoxRuntimeError,
    LoxValue,
    NIL,
    NORMAL,
    ReturnCompletion,
)
from ..tree import Node, Tree, is_tree, tree_children, tree_label
from .common import expect_ident_token, ident_token_value

logger = logging.getLogger(__name__)

EvalFunc = Callable[[Node, Environment], LoxValue]

def extract_param_names(params_node: Any, context: str = "parameter list") -> List[str]:
    if params_node is None:
        return []

    names: List[str] = []

    for p in tree_children(params_node):
        name = ident_token_value(p)

        if name is None:
            raise LoxRuntimeError(f"Unsupported parameter node in {context}: {p}")
        names.append(name)

    return names

def eval_fun_decl(n: Tree, env: Environment) -> Completion:
    children = tree_children(n)

    if len(children) != 3:
        raise LoxRuntimeError("Malformed function declaration")

    name_node, params_node, body_node = children
    name = expect_ident_token(name_node, "Function name")

    if not (is_tree(body_node) and tree_label(body_node) == 'block'):
        raise LoxRuntimeError("Function body must be a block")

    params = extract_param_names(params_node, context="function declaration")
    fn_value = LoxFunction(
        name=name,
        params=tuple(params),
        body=body_node,
        globals=env.root(),
    )

    logger.debug("declare fn %s/%d", name, len(params))
    env.define(name, fn_value)

    return NORMAL

def eval_return_stmt(n: Tree, env: Environment, eval_func: EvalFunc) -> Completion:
    if not n.children:
        return ReturnCompletion(NIL)

    return ReturnCompletion(eval_func(n.children[0], env))
