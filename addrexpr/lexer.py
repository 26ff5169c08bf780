"""
Lexer / Tokenizer for address expressions.

Converts a single-line expression such as ``$rsp + 0x18 * 2`` into a
stream of tokens for the parser. Handles decimal and hexadecimal integer
literals, ``$name`` register references, the arithmetic and bitwise
operators, and parentheses.

Only space and tab separate tokens. Anything else that does not start a
token (newlines included) is rejected with the offset where it was found.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Dict, List

from .utils import INT64_MAX

HEX_DIGITS = "0123456789abcdefABCDEF"
DEC_DIGITS = "0123456789"


# ──────────────────────────────────────────────
# Token types
# ──────────────────────────────────────────────

class TokenType(enum.Enum):
    # Literals
    HEX_INT = "HEX_INT"
    DEC_INT = "DEC_INT"

    # Register reference ($name)
    REGISTER = "REGISTER"

    # Operators
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    PERCENT = "%"
    PIPE = "|"
    AMP = "&"
    CARET = "^"
    LSHIFT = "<<"
    RSHIFT = ">>"
    TILDE = "~"

    # Punctuation
    LPAREN = "("
    RPAREN = ")"

    # Special
    EOF = "EOF"


# ──────────────────────────────────────────────
# Token data class
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str | int
    pos: int

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, @{self.pos})"


# Longest match first
MULTI_CHAR_OPS = [
    ("<<", TokenType.LSHIFT),
    (">>", TokenType.RSHIFT),
]

SINGLE_CHAR_OPS: Dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "|": TokenType.PIPE,
    "&": TokenType.AMP,
    "^": TokenType.CARET,
    "~": TokenType.TILDE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
}


def is_ident_char(ch: str) -> bool:
    """Register names are ASCII letters, digits and underscores."""
    return ch.isascii() and (ch.isalnum() or ch == "_")


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────

class ExprSyntaxError(Exception):
    """Input text does not match the expression grammar."""

    def __init__(self, message: str, pos: int):
        self.pos = pos
        self.reason = message
        super().__init__(f"Syntax error at offset {pos}: {message}")


class LexerError(ExprSyntaxError):
    pass


# ──────────────────────────────────────────────
# Lexer
# ──────────────────────────────────────────────

class Lexer:
    """Tokenizes an expression string into a list of Tokens."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.tokens: List[Token] = []

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else "\0"

    def _skip_whitespace(self):
        while self.pos < len(self.source) and self.source[self.pos] in " \t":
            self.pos += 1

    def _literal(self, ttype: TokenType, text: str, base: int, start: int) -> Token:
        value = int(text, base)
        if value > INT64_MAX:
            raise LexerError(f"Integer literal out of 64-bit range: {self.source[start:self.pos]}", start)
        return Token(ttype, value, start)

    def _read_number(self) -> Token:
        start = self.pos

        # Hex: 0x... (needs at least one digit, otherwise the '0' stands alone)
        if self._peek() == "0" and self._peek(1) == "x" and self._peek(2) in HEX_DIGITS:
            self.pos += 2
            digits_start = self.pos
            while self.pos < len(self.source) and self.source[self.pos] in HEX_DIGITS:
                self.pos += 1
            return self._literal(TokenType.HEX_INT, self.source[digits_start:self.pos], 16, start)

        while self.pos < len(self.source) and self.source[self.pos] in DEC_DIGITS:
            self.pos += 1
        return self._literal(TokenType.DEC_INT, self.source[start:self.pos], 10, start)

    def _read_register(self) -> Token:
        start = self.pos
        self.pos += 1  # '$'
        name_start = self.pos
        while self.pos < len(self.source) and is_ident_char(self.source[self.pos]):
            self.pos += 1
        if self.pos == name_start:
            raise LexerError("Expected register name after '$'", name_start)
        return Token(TokenType.REGISTER, self.source[name_start:self.pos], start)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source and return a list of tokens."""
        self.tokens = []
        self.pos = 0

        while self.pos < len(self.source):
            self._skip_whitespace()
            if self.pos >= len(self.source):
                break

            ch = self._peek()

            # The '\0' sentinel from _peek is not a digit
            if ch in DEC_DIGITS:
                self.tokens.append(self._read_number())
                continue

            if ch == "$":
                self.tokens.append(self._read_register())
                continue

            matched = False
            for op_str, op_type in MULTI_CHAR_OPS:
                if self.source.startswith(op_str, self.pos):
                    self.tokens.append(Token(op_type, op_str, self.pos))
                    self.pos += len(op_str)
                    matched = True
                    break

            if matched:
                continue

            if ch in SINGLE_CHAR_OPS:
                self.tokens.append(Token(SINGLE_CHAR_OPS[ch], ch, self.pos))
                self.pos += 1
                continue

            raise LexerError(f"Unexpected character: {ch!r}", self.pos)

        self.tokens.append(Token(TokenType.EOF, "", len(self.source)))
        return self.tokens


def tokenize(source: str) -> List[Token]:
    return Lexer(source).tokenize()
