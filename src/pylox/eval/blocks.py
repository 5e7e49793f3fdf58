from __future__ import annotations

from typing import Callable, Iterable

from ..runtime import Completion, Environment, NORMAL, ReturnCompletion
from ..tree import Node, Tree

ExecFunc = Callable[[Node, Environment], Completion]

def execute_statements(stmts: Iterable[Node], env: Environment, exec_func: ExecFunc) -> Completion:
    """Run statements in order inside `env`; stop at the first return."""
    for stmt in stmts:
        result = exec_func(stmt, env)

        if isinstance(result, ReturnCompletion):
            return result

    return NORMAL

def execute_block(n: Tree, env: Environment, exec_func: ExecFunc) -> Completion:
    # one child scope per entry into the block
    return execute_statements(n.children, Environment(parent=env), exec_func)
