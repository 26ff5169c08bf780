"""
Operator-precedence parser for address expressions.

Parses a token stream from the Lexer into an AST defined in ast_nodes.
The grammar, loosest layer first:

    additive    :=  multiplicative ( '+' | '-' ) additive  |  multiplicative
    multiplic.  :=  bitwise ( '*' | '/' | '%' ) multiplic.  |  bitwise
    bitwise     :=  unary ( '|' | '&' | '^' | '>>' | '<<' ) bitwise  |  unary
    unary       :=  ( '~' | '-' | '+' ) unary  |  term
    term        :=  hex | dec | register | '(' additive ')'

Note the ordering: bitwise operators bind tighter than '*', and every
binary layer recurses on its right side, so operators of the same layer
group to the right: ``10 - 3 - 2`` is ``10 - (3 - 2)``.

The grammar is driven with an explicit operand stack and operator stack
instead of Python recursion, so parentheses and prefix operators can nest
as deep as the input goes.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Tuple, Union
from .lexer import ExprSyntaxError, Lexer, Token, TokenType
from .ast_nodes import *

logger = logging.getLogger(__name__)


class ParseError(ExprSyntaxError):
    def __init__(self, message: str, token: Token):
        self.token = token
        got = "end of input" if token.type == TokenType.EOF else repr(token.value)
        super().__init__(f"{message} (got {got})", token.pos)


ADDITIVE_OPS = {
    TokenType.PLUS: OperatorKind.ADD,
    TokenType.MINUS: OperatorKind.SUB,
}

MULTIPLICATIVE_OPS = {
    TokenType.STAR: OperatorKind.MUL,
    TokenType.SLASH: OperatorKind.DIV,
    TokenType.PERCENT: OperatorKind.MOD,
}

BITWISE_OPS = {
    TokenType.PIPE: OperatorKind.BIT_OR,
    TokenType.AMP: OperatorKind.BIT_AND,
    TokenType.CARET: OperatorKind.BIT_XOR,
    TokenType.RSHIFT: OperatorKind.SHIFT_RIGHT,
    TokenType.LSHIFT: OperatorKind.SHIFT_LEFT,
}

UNARY_OPS = {
    TokenType.MINUS: UnaryOperator.NEG,
    TokenType.PLUS: UnaryOperator.PLUS,
    TokenType.TILDE: UnaryOperator.BIT_NOT,
}

# Binding level per layer; higher binds tighter. '(' sits at 0.
BINARY_LAYERS = [ADDITIVE_OPS, MULTIPLICATIVE_OPS, BITWISE_OPS]
BINARY_OPS = {
    ttype: (kind, level)
    for level, layer in enumerate(BINARY_LAYERS, start=1)
    for ttype, kind in layer.items()
}
UNARY_LEVEL = len(BINARY_LAYERS) + 1
GROUP_LEVEL = 0

# (level, token, operator); operator is None for an open '('
PendingOp = Tuple[int, Token, Union[OperatorKind, UnaryOperator, None]]


class Parser:
    """Parser producing an AST from tokens."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    # ── Helpers ─────────────────────────────

    def _cur(self) -> Token:
        return self.tokens[self.pos]

    def _at(self, *types: TokenType) -> bool:
        return self._cur().type in types

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _expect(self, ttype: TokenType, msg: str = "") -> Token:
        if self._cur().type != ttype:
            if not msg:
                msg = f"Expected {ttype.value!r}"
            raise ParseError(msg, self._cur())
        return self._advance()

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._cur().type in types:
            return self._advance()
        return None

    # ── Entry point ─────────────────────────

    def parse(self) -> Expression:
        """Parse a complete expression; trailing tokens are an error."""
        operands: List[Expression] = []
        pending: List[PendingOp] = []
        open_groups = 0

        while True:
            # Operand position: prefix operators and '(' then one term
            while True:
                tok = self._match(*UNARY_OPS, TokenType.LPAREN)
                if tok is None:
                    break
                if tok.type == TokenType.LPAREN:
                    pending.append((GROUP_LEVEL, tok, None))
                    open_groups += 1
                else:
                    pending.append((UNARY_LEVEL, tok, UNARY_OPS[tok.type]))
            operands.append(self._parse_term())

            # Operator position: close groups, then at most one binary operator
            while open_groups and self._match(TokenType.RPAREN):
                self._reduce(operands, pending, GROUP_LEVEL)
                pending.pop()
                open_groups -= 1

            tok = self._match(*BINARY_OPS)
            if tok is None:
                break
            kind, level = BINARY_OPS[tok.type]
            # Strictly tighter only: equal levels stay stacked and group right
            self._reduce(operands, pending, level)
            pending.append((level, tok, kind))

        if open_groups:
            self._expect(TokenType.RPAREN, "Expected ')'")
        self._reduce(operands, pending, GROUP_LEVEL)
        if not self._at(TokenType.EOF):
            raise ParseError("Unexpected trailing input", self._cur())
        return operands.pop()

    # ── Terms and reductions ────────────────

    def _parse_term(self) -> Expression:
        """Parse terms: hex literal, decimal literal, register."""
        tok = self._cur()

        if self._at(TokenType.HEX_INT, TokenType.DEC_INT):
            self._advance()
            return Literal(value=tok.value, pos=tok.pos)

        if self._at(TokenType.REGISTER):
            self._advance()
            return RegisterRef(name=tok.value, pos=tok.pos)

        raise ParseError("Expected literal, register or '('", tok)

    @staticmethod
    def _reduce(operands: List[Expression], pending: List[PendingOp], level: int):
        """Fold every pending operator binding tighter than ``level``."""
        while pending and pending[-1][0] > level:
            _, tok, op = pending.pop()
            if isinstance(op, UnaryOperator):
                operand = operands.pop()
                operands.append(UnaryOp(op=op, operand=operand, pos=tok.pos))
            else:
                right = operands.pop()
                left = operands.pop()
                operands.append(BinaryOp(op=op, left=left, right=right, pos=tok.pos))


def parse(text: str) -> Expression:
    """Parse expression text into an AST (raises ExprSyntaxError)."""
    tokens = Lexer(text).tokenize()
    expr = Parser(tokens).parse()
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("parsed %r -> %s", text, unparse(expr))
    return expr
