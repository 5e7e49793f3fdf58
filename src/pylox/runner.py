from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional, Tuple

from lark import Tree

from .evaluator import evaluate, run_statements
from .lexer_rd import LexError, tokenize
from .parser_rd import ParseError, Parser
from .runtime import GlobalEnvironment, LoxRuntimeError, LoxValue, NIL, make_globals
from .token_types import TT, Tok
from .tree import tree_label
from .utils import debug_py_trace_enabled

logger = logging.getLogger(__name__)

EXIT_USAGE = 64
EXIT_DATAERR = 65
EXIT_NOINPUT = 66
EXIT_SOFTWARE = 70

def parse_program(source: str) -> Tree:
    logger.debug("lex %d chars", len(source))
    tokens = tokenize(source)

    logger.debug("parse %d tokens", len(tokens))
    return Parser(tokens).parse()

def run(source: str, env: Optional[GlobalEnvironment] = None) -> GlobalEnvironment:
    """Lex, parse and execute `source`; returns the globals it ran against."""
    program = parse_program(source)

    if env is None:
        env = make_globals()

    logger.debug("run %d top-level statements", len(program.children))
    return run_statements(program, env)

def repl_eval(text: str, env: GlobalEnvironment) -> Tuple[LoxValue, bool]:
    """
    Evaluate one REPL entry.

    A single expression statement (or a bare expression without its `;`) is
    evaluated and its value returned with `is_statement=False`. Anything else
    runs as a program and yields `(nil, True)`.
    """
    tokens = tokenize(text)

    if not _has_trailing_semi(tokens) and _looks_like_expression(tokens):
        tokens = tokens[:-1] + [_synthetic_semi(tokens[-1])] + tokens[-1:]

    program = Parser(tokens).parse()
    stmts = program.children

    if len(stmts) == 1 and tree_label(stmts[0]) == 'exprstmt':
        try:
            return evaluate(stmts[0].children[0], env), False
        except LoxRuntimeError as e:
            if e.lox_py_trace is None:
                e.lox_py_trace = e.__traceback__
            raise

    run_statements(program, env)
    return NIL, True

_STATEMENT_LEADS = {TT.VAR, TT.FUN, TT.CLASS, TT.PRINT, TT.IF, TT.WHILE, TT.FOR, TT.RETURN, TT.LBRACE}

def _has_trailing_semi(tokens: List[Tok]) -> bool:
    return len(tokens) >= 2 and tokens[-2].type in (TT.SEMI, TT.RBRACE)

def _looks_like_expression(tokens: List[Tok]) -> bool:
    return len(tokens) >= 2 and tokens[0].type not in _STATEMENT_LEADS

def _synthetic_semi(eof: Tok) -> Tok:
    return Tok(TT.SEMI, ";", eof.line, eof.column)

def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - "-" => read stdin.
    - A `.lox` path or any existing file => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg == "-":
        return sys.stdin.read()

    candidate = Path(arg)
    if candidate.suffix == ".lox":
        return candidate.read_text(encoding="utf-8")

    try:
        is_file = candidate.is_file()
    except OSError:
        # source text too long to be a path
        is_file = False

    if is_file:
        return candidate.read_text(encoding="utf-8")

    return arg

def _report(exc: BaseException) -> None:
    print(f"Error: {exc}", file=sys.stderr)

    if debug_py_trace_enabled() and isinstance(exc, LoxRuntimeError):
        tb = exc.lox_py_trace
        if tb:
            print("\nPython traceback:", file=sys.stderr)
            print("".join(traceback.format_tb(tb)), file=sys.stderr, end="")

def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    verbose = False
    arg = None

    for token in args:
        if token in ("-v", "--verbose"):
            verbose = True
            continue

        if arg is None:
            arg = token
        else:
            print("Usage: pylox [--verbose] [FILE | - | SOURCE]", file=sys.stderr)
            return EXIT_USAGE

    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    if arg is None:
        from .repl import repl

        repl()
        return 0

    try:
        source = _load_source(arg)
    except OSError as exc:
        print(f"Error: cannot read {arg}: {exc}", file=sys.stderr)
        return EXIT_NOINPUT

    try:
        run(source)
    except (LexError, ParseError) as exc:
        _report(exc)
        return EXIT_DATAERR
    except LoxRuntimeError as exc:
        _report(exc)
        return EXIT_SOFTWARE

    return 0

if __name__ == "__main__":
    sys.exit(main())
