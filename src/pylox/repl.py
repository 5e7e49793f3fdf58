"""Interactive REPL for Lox, powered by prompt_toolkit."""

from __future__ import annotations

import os
import sys
import traceback
from typing import Callable, Dict

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .lexer_rd import LexError, tokenize
from .parser_rd import ParseError
from .repl_highlight import LoxLexer
from .runtime import GlobalEnvironment, make_globals
from .runner import repl_eval
from .token_types import TT
from .types import LoxNil, LoxRuntimeError
from .utils import debug_py_trace_enabled

_TRACE_VAR = "LOX_DEBUG_PY_TRACE"


def open_depth(text: str) -> int:
    """Count unclosed parens and braces in *text*; 0 means the entry is complete."""
    try:
        tokens = tokenize(text)
    except LexError as exc:
        # an unterminated string keeps the entry open
        return 1 if "Unterminated string" in exc.message else 0

    depth = 0

    for tok in tokens:
        if tok.type in (TT.LPAR, TT.LBRACE):
            depth += 1
        elif tok.type in (TT.RPAR, TT.RBRACE):
            depth = max(depth - 1, 0)

    return depth


class ReplState:
    """Globals of the running session; `/reset` swaps them out."""

    def __init__(self) -> None:
        self.env: GlobalEnvironment = make_globals()


def _cmd_clear(state: ReplState, arg: str) -> None:
    clear()


def _cmd_py_traceback(state: ReplState, arg: str) -> None:
    match arg.lower():
        case "on":
            os.environ[_TRACE_VAR] = "1"
        case "off":
            os.environ.pop(_TRACE_VAR, None)
        case "":
            if debug_py_trace_enabled():
                os.environ.pop(_TRACE_VAR, None)
            else:
                os.environ[_TRACE_VAR] = "1"
        case _:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return

    print(f"Python traceback: {'on' if debug_py_trace_enabled() else 'off'}")


def _cmd_reset(state: ReplState, arg: str) -> None:
    state.env = make_globals()
    print("Environment reset.")


SLASH_COMMANDS: Dict[str, Callable[[ReplState, str], None]] = {
    "/clear": _cmd_clear,
    "/py-traceback": _cmd_py_traceback,
    "/reset": _cmd_reset,
}


def run_command(line: str, state: ReplState) -> bool:
    """Run a `/command` line. Returns False when *line* is Lox source."""
    if not line.startswith("/"):
        return False

    name, _, arg = line.partition(" ")
    handler = SLASH_COMMANDS.get(name)

    if handler is None:
        print(f"Unknown command: {name}", file=sys.stderr)
    else:
        handler(state, arg.strip())

    return True


def _print_error(exc: Exception) -> None:
    print(f"Error: {exc}", file=sys.stderr)

    if debug_py_trace_enabled() and isinstance(exc, LoxRuntimeError) and exc.lox_py_trace:
        print("\nPython traceback:", file=sys.stderr)
        print("".join(traceback.format_tb(exc.lox_py_trace)), file=sys.stderr, end="")


def eval_entry(text: str, state: ReplState) -> None:
    """Evaluate one complete entry, echoing the value of a lone expression."""
    try:
        result, stmt = repl_eval(text, state.env)
    except (ParseError, LexError, LoxRuntimeError) as exc:
        _print_error(exc)
        return
    except RecursionError:
        print("Error: Stack overflow.", file=sys.stderr)
        return

    if not stmt and not isinstance(result, LoxNil):
        print(repr(result))


def repl() -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    state = ReplState()
    bindings = KeyBindings()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        depth = open_depth(buf.text)

        if buf.text.startswith("/") or depth == 0:
            buf.validate_and_handle()
        else:
            buf.insert_text("\n" + "    " * depth)

    session: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        lexer=LoxLexer(),
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("lox repl, Ctrl-D to exit, /reset /clear /py-traceback")

    while True:
        try:
            text = session.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = text.strip()
        if not text or run_command(text, state):
            continue

        eval_entry(text, state)
