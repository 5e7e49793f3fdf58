"""
Recursive Descent Parser for Lox

Structure:
- Lexer: Token stream from source
- Parser: Recursive descent, one method per precedence level
- AST: Lark Tree/Token nodes consumed by the evaluator

The parser stops at the first error; it does no panic-mode recovery.
"""

from typing import Optional, List

from lark import Tree, Token

from .token_types import TT, Tok
from .tree import make_meta

# Maximum number of parameters or call arguments.
MAX_ARGS = 255

# ============================================================================
# Parser
# ============================================================================

class ParseError(Exception):
    """Parse error with position info"""
    def __init__(self, message: str, token: Optional[Tok] = None):
        self.message = message
        self.token = token
        self.line = token.line if token else None
        self.column = token.column if token else None
        if token is None:
            super().__init__(message)
        elif token.type == TT.EOF:
            super().__init__(f"{message} at end, line {token.line}, col {token.column}")
        else:
            super().__init__(f"{message} at '{token.value}', line {token.line}, col {token.column}")

class Parser:
    """
    Recursive descent parser for Lox.

    Expression precedence (lowest to highest):
    1. assignment (=, right associative)
    2. or
    3. and
    4. equality (==, !=)
    5. comparison (<, <=, >, >=)
    6. term (+, -)
    7. factor (*, /)
    8. unary (!, -)
    9. call (callee(args))
    10. primary (literals, identifiers, parens)
    """

    def __init__(self, tokens: List[Tok]):
        self.tokens = tokens
        self.pos = 0
        self.current = tokens[0] if tokens else Tok(TT.EOF, None, 0, 0)

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token"""
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return Tok(TT.EOF, None, 0, 0)

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        prev = self.current
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
            self.current = self.tokens[self.pos]
        return prev

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT, message: Optional[str] = None) -> Tok:
        """Consume token of expected type or raise error"""
        if not self.check(token_type):
            msg = message or f"Expected {token_type.name}, got {self.current.type.name}"
            raise ParseError(msg, self.current)
        return self.advance()

    # ========================================================================
    # Node Construction
    # ========================================================================

    @staticmethod
    def token(tok: Tok) -> Token:
        """Convert a lexer token into a positioned Lark token"""
        return Token(tok.type.name, tok.value, line=tok.line, column=tok.column)

    @staticmethod
    def tree(label: str, children: list, at: Tok) -> Tree:
        """Build a Tree positioned at the given token"""
        return Tree(label, children, make_meta(at.line, at.column))

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse(self) -> Tree:
        """Parse entire program"""
        first = self.current
        stmts = []

        while not self.check(TT.EOF):
            stmts.append(self.parse_declaration())

        return self.tree('program', stmts, first)

    # ========================================================================
    # Declarations
    # ========================================================================

    def parse_declaration(self) -> Tree:
        """
        Parse a declaration or a plain statement.

        Declarations include:
        - var name [= expr];
        - fun name(params) { body }
        """
        if self.check(TT.VAR):
            return self.parse_var_decl()
        if self.check(TT.FUN):
            return self.parse_fun_decl()
        if self.check(TT.CLASS):
            raise ParseError("Classes are not supported.", self.current)

        return self.parse_statement()

    def parse_var_decl(self) -> Tree:
        """Parse variable declaration: var name [= expr];"""
        var_tok = self.expect(TT.VAR)
        name = self.expect(TT.IDENT, "Expect variable name.")

        children = [self.token(name)]
        if self.match(TT.ASSIGN):
            children.append(self.parse_expr())

        self.expect(TT.SEMI, "Expect ';' after variable declaration.")
        return self.tree('vardecl', children, var_tok)

    def parse_fun_decl(self) -> Tree:
        """Parse function declaration: fun name(params) { body }"""
        fun_tok = self.expect(TT.FUN)
        name = self.expect(TT.IDENT, "Expect function name.")

        lpar = self.expect(TT.LPAR, "Expect '(' after function name.")
        params = self.parse_param_list(lpar)
        self.expect(TT.RPAR, "Expect ')' after parameters.")

        if not self.check(TT.LBRACE):
            raise ParseError("Expect '{' before function body.", self.current)
        body = self.parse_block()

        return self.tree('fundecl', [self.token(name), params, body], fun_tok)

    def parse_param_list(self, lpar: Tok) -> Tree:
        """Parse function parameter list"""
        params = []

        if self.check(TT.RPAR, TT.EOF):
            return self.tree('paramlist', params, lpar)

        while True:
            if len(params) >= MAX_ARGS:
                raise ParseError(f"Can't have more than {MAX_ARGS} parameters.", self.current)

            param = self.expect(TT.IDENT, "Expect parameter name.")
            params.append(self.token(param))

            if not self.match(TT.COMMA):
                break

        return self.tree('paramlist', params, lpar)

    # ========================================================================
    # Statements
    # ========================================================================

    def parse_statement(self) -> Tree:
        """
        Parse a single statement.

        Statements include:
        - Control flow (if, while, for)
        - print, return
        - Blocks
        - Expression statements
        """
        if self.check(TT.IF):
            return self.parse_if_stmt()
        if self.check(TT.WHILE):
            return self.parse_while_stmt()
        if self.check(TT.FOR):
            return self.parse_for_stmt()
        if self.check(TT.PRINT):
            return self.parse_print_stmt()
        if self.check(TT.RETURN):
            return self.parse_return_stmt()
        if self.check(TT.LBRACE):
            return self.parse_block()

        return self.parse_expr_stmt()

    def parse_block(self) -> Tree:
        """Parse block: { declarations }"""
        lbrace = self.expect(TT.LBRACE)
        stmts = []

        while not self.check(TT.RBRACE, TT.EOF):
            stmts.append(self.parse_declaration())

        self.expect(TT.RBRACE, "Expect '}' after block.")
        return self.tree('block', stmts, lbrace)

    def parse_if_stmt(self) -> Tree:
        """
        Parse if statement:
        if (expr) stmt [else stmt]
        """
        if_tok = self.expect(TT.IF)
        self.expect(TT.LPAR, "Expect '(' after 'if'.")
        cond = self.parse_expr()
        self.expect(TT.RPAR, "Expect ')' after if condition.")

        children = [cond, self.parse_statement()]

        # Dangling else binds to the nearest if
        if self.match(TT.ELSE):
            children.append(self.parse_statement())

        return self.tree('ifstmt', children, if_tok)

    def parse_while_stmt(self) -> Tree:
        """Parse while loop: while (expr) stmt"""
        while_tok = self.expect(TT.WHILE)
        self.expect(TT.LPAR, "Expect '(' after 'while'.")
        cond = self.parse_expr()
        self.expect(TT.RPAR, "Expect ')' after condition.")
        body = self.parse_statement()
        return self.tree('whilestmt', [cond, body], while_tok)

    def parse_for_stmt(self) -> Tree:
        """
        Parse for loop:
        for ([init]; [cond]; [incr]) stmt

        Missing clauses become emptystmt/emptyexpr placeholders so the
        children always line up as (init, cond, incr, body).
        """
        for_tok = self.expect(TT.FOR)
        self.expect(TT.LPAR, "Expect '(' after 'for'.")

        if self.check(TT.SEMI):
            init = self.tree('emptystmt', [], self.advance())
        elif self.check(TT.VAR):
            init = self.parse_var_decl()
        else:
            init = self.parse_expr_stmt()

        if self.check(TT.SEMI):
            cond = self.tree('emptyexpr', [], self.current)
        else:
            cond = self.parse_expr()
        self.expect(TT.SEMI, "Expect ';' after loop condition.")

        if self.check(TT.RPAR):
            incr = self.tree('emptyexpr', [], self.current)
        else:
            incr = self.parse_expr()
        self.expect(TT.RPAR, "Expect ')' after for clauses.")

        body = self.parse_statement()
        return self.tree('forstmt', [init, cond, incr, body], for_tok)

    def parse_print_stmt(self) -> Tree:
        """Parse print statement: print expr;"""
        print_tok = self.expect(TT.PRINT)
        value = self.parse_expr()
        self.expect(TT.SEMI, "Expect ';' after value.")
        return self.tree('printstmt', [value], print_tok)

    def parse_return_stmt(self) -> Tree:
        """Parse return statement: return [expr];"""
        ret_tok = self.expect(TT.RETURN)

        if self.match(TT.SEMI):
            return self.tree('returnstmt', [], ret_tok)

        value = self.parse_expr()
        self.expect(TT.SEMI, "Expect ';' after return value.")
        return self.tree('returnstmt', [value], ret_tok)

    def parse_expr_stmt(self) -> Tree:
        """Parse expression statement: expr;"""
        first = self.current
        expr = self.parse_expr()
        self.expect(TT.SEMI, "Expect ';' after expression.")
        return self.tree('exprstmt', [expr], first)

    # ========================================================================
    # Expressions - Precedence Climbing
    # ========================================================================

    def parse_expr(self) -> Tree | Token:
        """Parse expression (top level)."""
        return self.parse_assignment()

    def parse_assignment(self) -> Tree | Token:
        """Parse assignment: IDENT = expr (right associative)"""
        expr = self.parse_or_expr()

        if self.check(TT.ASSIGN):
            equals = self.advance()
            value = self.parse_assignment()

            if isinstance(expr, Token) and expr.type == 'IDENT':
                return Tree('assign', [expr, value], make_meta(expr.line, expr.column))

            raise ParseError("Invalid assignment target.", equals)

        return expr

    def parse_or_expr(self) -> Tree | Token:
        """Parse logical OR: expr or expr"""
        left = self.parse_and_expr()

        while self.check(TT.OR):
            op = self.advance()
            right = self.parse_and_expr()
            left = self.tree('or', [left, self.token(op), right], op)

        return left

    def parse_and_expr(self) -> Tree | Token:
        """Parse logical AND: expr and expr"""
        left = self.parse_equality_expr()

        while self.check(TT.AND):
            op = self.advance()
            right = self.parse_equality_expr()
            left = self.tree('and', [left, self.token(op), right], op)

        return left

    def _parse_binary(self, next_level, *ops: TT) -> Tree | Token:
        """Left-associative binary level over the given operator tokens."""
        left = next_level()

        while self.check(*ops):
            op = self.advance()
            right = next_level()
            left = self.tree('binary', [left, self.token(op), right], op)

        return left

    def parse_equality_expr(self) -> Tree | Token:
        """Parse equality: expr == expr"""
        return self._parse_binary(self.parse_comparison_expr, TT.EQ, TT.NEQ)

    def parse_comparison_expr(self) -> Tree | Token:
        """Parse comparison: expr < expr"""
        return self._parse_binary(self.parse_term_expr, TT.LT, TT.LTE, TT.GT, TT.GTE)

    def parse_term_expr(self) -> Tree | Token:
        """Parse addition/subtraction: expr + expr"""
        return self._parse_binary(self.parse_factor_expr, TT.PLUS, TT.MINUS)

    def parse_factor_expr(self) -> Tree | Token:
        """Parse multiplication/division: expr * expr"""
        return self._parse_binary(self.parse_unary_expr, TT.STAR, TT.SLASH)

    def parse_unary_expr(self) -> Tree | Token:
        """Parse unary operators: -expr, !expr"""
        if self.check(TT.MINUS, TT.BANG):
            op = self.advance()
            operand = self.parse_unary_expr()
            return self.tree('unary', [self.token(op), operand], op)

        return self.parse_call_expr()

    def parse_call_expr(self) -> Tree | Token:
        """Parse calls: callee(args)(args)..."""
        expr = self.parse_primary_expr()

        while self.check(TT.LPAR):
            lpar = self.advance()
            args = self.parse_arg_list(lpar)
            rpar = self.expect(TT.RPAR, "Expect ')' after arguments.")
            # Call errors are reported at the closing paren
            expr = self.tree('call', [expr, args], rpar)

        return expr

    def parse_arg_list(self, lpar: Tok) -> Tree:
        """Parse function call arguments"""
        args = []

        if self.check(TT.RPAR, TT.EOF):
            return self.tree('arglist', args, lpar)

        while True:
            if len(args) >= MAX_ARGS:
                raise ParseError(f"Can't have more than {MAX_ARGS} arguments.", self.current)

            args.append(self.parse_expr())

            if not self.match(TT.COMMA):
                break

        return self.tree('arglist', args, lpar)

    def parse_primary_expr(self) -> Tree | Token:
        """
        Parse primary expressions:
        - Literals (numbers, strings, true, false, nil)
        - Identifiers
        - Parenthesized expressions
        """
        if self.check(TT.NUMBER, TT.STRING, TT.TRUE, TT.FALSE, TT.NIL, TT.IDENT):
            return self.token(self.advance())

        if self.check(TT.LPAR):
            lpar = self.advance()
            expr = self.parse_expr()
            self.expect(TT.RPAR, "Expect ')' after expression.")
            return self.tree('group', [expr], lpar)

        if self.check(TT.THIS, TT.SUPER):
            raise ParseError(f"'{self.current.value}' is not supported.", self.current)

        raise ParseError("Expect expression.", self.current)


# ============================================================================
# Entry Points
# ============================================================================

def parse_source(source: str) -> Tree:
    """
    Parse Lox source code into a `program` tree.

    Args:
        source: Source code to parse
    """
    from .lexer_rd import tokenize

    tokens = tokenize(source)
    parser = Parser(tokens)
    return parser.parse()


def parse_expr_fragment(source: str) -> Tree | Token:
    """
    Parse a standalone expression fragment (no trailing ';').
    """
    from .lexer_rd import tokenize

    tokens = tokenize(source)
    parser = Parser(tokens)
    expr = parser.parse_expr()

    # Ensure we've consumed the entire fragment
    if not parser.check(TT.EOF):
        raise ParseError("Unexpected tokens after expression fragment", parser.current)
    return expr
