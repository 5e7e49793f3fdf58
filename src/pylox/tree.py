"""Shared helpers for working with the Lark Tree/Token nodes of the Lox AST.

The recursive-descent parser builds plain `lark.Tree` and `lark.Token`
objects; nothing here or in the evaluator ever mutates them.
"""
from __future__ import annotations
from typing import Any, List, Optional

from lark import Token, Tree
from lark.tree import Meta
from typing_extensions import TypeAlias, TypeGuard


Node: TypeAlias = Tree | Token


def make_meta(line: int, column: int) -> Meta:
    """Build a populated Meta carrying the node's source position."""
    meta = Meta()
    meta.line = line
    meta.column = column
    meta.empty = False
    return meta

def is_tree(node: Any) -> TypeGuard[Tree]:
    return isinstance(node, Tree)

def is_token(node: Any) -> TypeGuard[Token]:
    return isinstance(node, Token)

def tree_label(node: Node) -> Optional[str]:
    return node.data if is_tree(node) else None

def tree_children(node: Node) -> List[Node]:
    if not is_tree(node):
        return []

    return list(node.children)

def token_kind(node: Any) -> Optional[str]:
    if not is_token(node):
        return None

    return str(node.type)

def node_meta(node: Node) -> Optional[Any]:
    """Return whatever carries `line`/`column` for this node, if anything."""
    if is_token(node):
        return node if getattr(node, "line", None) is not None else None

    if is_tree(node):
        meta = node.meta
        if getattr(meta, "empty", True):
            return None
        return meta

    return None
