"""
addrexpr — address expressions over live CPU registers
=======================================================
A tiny expression language for computing addresses, offsets and patch
targets from integer literals and register values read out of a running
target (process, emulator or debugger).

    $rsp + 0x18          $eax & ~0xFFF          ($pc - 4) * 2

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────┐
    │  Text    │───>│  Lexer   │───>│  Parser  │───>│ Evaluator │───> int (i64)
    │          │    │ (tokens) │    │  (AST)   │    │           │
    └──────────┘    └──────────┘    └──────────┘    └─────┬─────┘
                                                          │ lookup(name)
                                                    ┌─────┴─────┐
                                                    │ Resolver  │  registers.py
                                                    └───────────┘

    - lexer.py:       hand-written scanner, offsets on every token
    - parser.py:      operator-precedence parse on explicit stacks
    - ast_nodes.py:   frozen dataclass tree + unparse/walk helpers
    - evaluator.py:   tree walk with 64-bit wraparound arithmetic
    - registers.py:   resolvers (dict, register file, live CPU object)
    - interpolate.py: {expr} substitution inside byte payloads

Precedence is NOT C's: + - bind loosest, then * / %, then | & ^ >> <<,
then unary ~ - +. Operators of one layer group to the right.
"""

__version__ = "0.2.0"

from typing import Mapping, Optional

from .lexer import Lexer, Token, TokenType, ExprSyntaxError, LexerError
from .ast_nodes import *
from .parser import Parser, ParseError, parse
from .evaluator import (
    Evaluator, EvalError, UnknownRegister, DivisionByZero, InvalidRegisterValue, evaluate,
)
from .registers import (
    ARCH_PROFILES, RegisterResolver, MappingResolver, RegisterFile, CpuRegisterResolver,
)
from .interpolate import interpolate, render


def evaluate_text(source: str, resolver: Optional[RegisterResolver] = None, *,
                  registers: Optional[Mapping[str, int]] = None) -> int:
    """Parse and evaluate an expression in one call.

    Args:
        source: Expression text, e.g. ``"$eax + 0x10"``.
        resolver: Where register values come from.
        registers: Shortcut for ``MappingResolver(registers)``; ignored
            when ``resolver`` is given.

    Returns:
        The signed 64-bit result.

    Raises:
        ExprSyntaxError: the text does not parse.
        EvalError: unknown register, division by zero, bad register value.
    """
    if resolver is None and registers is not None:
        resolver = MappingResolver(registers)
    return evaluate(parse(source), resolver)
