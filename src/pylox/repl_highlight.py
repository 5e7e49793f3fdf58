"""prompt_toolkit lexer for live Lox syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer_rd import Lexer as LoxTokenizer, LexError
from .token_types import TT, Tok

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "boolean": "ansicyan",
    "constant": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "function": "bold ansiyellow",
    "builtin": "ansiyellow",
    "operator": "",
    "punctuation": "",
    "comment": "italic ansigray",
    "error": "bold ansired",
}

_KEYWORDS = (
    TT.AND, TT.CLASS, TT.ELSE, TT.FOR, TT.FUN, TT.IF, TT.OR, TT.PRINT,
    TT.RETURN, TT.SUPER, TT.THIS, TT.VAR, TT.WHILE,
)
_OPERATORS = (
    TT.PLUS, TT.MINUS, TT.STAR, TT.SLASH, TT.BANG, TT.EQ, TT.NEQ,
    TT.LT, TT.LTE, TT.GT, TT.GTE, TT.ASSIGN,
)
_PUNCTUATION = (TT.LPAR, TT.RPAR, TT.LBRACE, TT.RBRACE, TT.DOT, TT.COMMA, TT.SEMI)

_TT_GROUP = {
    **{tt: "keyword" for tt in _KEYWORDS},
    **{tt: "operator" for tt in _OPERATORS},
    **{tt: "punctuation" for tt in _PUNCTUATION},
    TT.TRUE: "boolean",
    TT.FALSE: "boolean",
    TT.NIL: "constant",
    TT.NUMBER: "number",
    TT.STRING: "string",
    TT.IDENT: "identifier",
}

_BUILTIN_NAMES = {"clock"}


def _ident_group(tokens: list[Tok], idx: int) -> str:
    tok = tokens[idx]
    prev_tok = tokens[idx - 1] if idx > 0 else None

    # name right after `fun`
    if prev_tok is not None and prev_tok.type == TT.FUN:
        return "function"

    if tok.value in _BUILTIN_NAMES:
        return "builtin"

    return "identifier"


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = LoxTokenizer(text).tokenize()
    except LexError:
        return [("", text)]

    result: StyleAndTextTuples = []
    pos = 0

    for i, tok in enumerate(tokens):
        if tok.type == TT.EOF:
            continue

        tok_text = str(tok.value) if tok.value is not None else ""
        if not tok_text:
            continue

        # Find actual position of this token value in the line from pos onwards.
        idx = text.find(tok_text, pos)
        if idx < 0:
            continue

        # Unstyled gap before token.
        if idx > pos:
            result.append(("", text[pos:idx]))

        group = _TT_GROUP.get(tok.type, "")
        if tok.type == TT.IDENT:
            group = _ident_group(tokens, i)
        result.append((GROUP_STYLE.get(group, ""), tok_text))
        pos = idx + len(tok_text)

    # Trailing text is whitespace and/or a line comment.
    if pos < len(text):
        rest = text[pos:]
        comment_at = rest.find("//")

        if comment_at < 0:
            result.append(("", rest))
        else:
            if comment_at > 0:
                result.append(("", rest[:comment_at]))
            result.append((GROUP_STYLE["comment"], rest[comment_at:]))

    return result if result else [("", text)]


class LoxLexer(Lexer):
    """prompt_toolkit Lexer that highlights Lox source using the RD lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
