"""
Tree-walking evaluator for address expressions.

Computes the signed 64-bit value of an AST. Register references are
answered by an injected resolver (see registers.RegisterResolver); the
evaluator itself holds no state between calls, so evaluating the same
tree twice against the same register values gives the same result.

Arithmetic semantics (fixed-width machine words):
  - + - * wrap modulo 2**64, they never raise
  - / truncates toward zero, % takes the sign of the dividend
  - a zero divisor raises DivisionByZero
  - << and >> use the shift amount modulo 64; >> is arithmetic
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, List
from .ast_nodes import *
from .utils import WORD_BITS, wrap_i64

if TYPE_CHECKING:
    from .registers import RegisterResolver

logger = logging.getLogger(__name__)

SHIFT_MASK = WORD_BITS - 1


class EvalError(Exception):
    """Raised when a well-formed expression cannot be evaluated."""


class UnknownRegister(EvalError):
    def __init__(self, name: str, pos: int = 0):
        self.name = name
        self.pos = pos
        super().__init__(f"Unknown register: ${name}")


class DivisionByZero(EvalError):
    def __init__(self, pos: int = 0):
        self.pos = pos
        super().__init__(f"Division by zero at offset {pos}")


class InvalidRegisterValue(EvalError):
    """A register holds bytes that do not read as a decimal integer."""

    def __init__(self, name: str, raw: bytes):
        self.name = name
        self.raw = raw
        super().__init__(f"Register ${name} does not hold a number: {raw!r}")


def _trunc_div(lhs: int, rhs: int) -> int:
    q = abs(lhs) // abs(rhs)
    return -q if (lhs < 0) != (rhs < 0) else q


class Evaluator:
    """Evaluates expression trees against one register resolver."""

    def __init__(self, resolver: RegisterResolver | None = None):
        self.resolver = resolver

    def evaluate(self, expr: Expression) -> int:
        """Post-order walk on an explicit stack; left operands go first."""
        values: List[int] = []
        stack = [(expr, False)]
        while stack:
            node, operands_done = stack.pop()
            if isinstance(node, Literal):
                values.append(wrap_i64(node.value))
            elif isinstance(node, RegisterRef):
                values.append(self._eval_register(node))
            elif isinstance(node, UnaryOp):
                if operands_done:
                    values.append(self._apply_unary(node, values.pop()))
                else:
                    stack.append((node, True))
                    stack.append((node.operand, False))
            elif isinstance(node, BinaryOp):
                if operands_done:
                    rhs = values.pop()
                    lhs = values.pop()
                    values.append(self._apply_binary(node, lhs, rhs))
                else:
                    # Left popped first: resolver lookups happen in source order
                    stack.append((node, True))
                    stack.append((node.right, False))
                    stack.append((node.left, False))
            else:
                raise TypeError(f"Not an expression node: {node!r}")
        return values.pop()

    def _eval_register(self, expr: RegisterRef) -> int:
        value = None
        if self.resolver is not None:
            value = self.resolver.lookup(expr.name)
        if value is None:
            raise UnknownRegister(expr.name, expr.pos)
        logger.debug("$%s = %#x", expr.name, value)
        return wrap_i64(value)

    @staticmethod
    def _apply_unary(expr: UnaryOp, value: int) -> int:
        if expr.op == UnaryOperator.NEG:
            return wrap_i64(-value)
        if expr.op == UnaryOperator.BIT_NOT:
            return ~value
        return value

    @staticmethod
    def _apply_binary(expr: BinaryOp, lhs: int, rhs: int) -> int:
        op = expr.op

        if op == OperatorKind.ADD:
            return wrap_i64(lhs + rhs)
        if op == OperatorKind.SUB:
            return wrap_i64(lhs - rhs)
        if op == OperatorKind.MUL:
            return wrap_i64(lhs * rhs)
        if op in (OperatorKind.DIV, OperatorKind.MOD):
            if rhs == 0:
                raise DivisionByZero(expr.pos)
            q = _trunc_div(lhs, rhs)
            if op == OperatorKind.DIV:
                return wrap_i64(q)  # INT64_MIN / -1
            return lhs - rhs * q
        if op == OperatorKind.BIT_OR:
            return lhs | rhs
        if op == OperatorKind.BIT_AND:
            return lhs & rhs
        if op == OperatorKind.BIT_XOR:
            return lhs ^ rhs
        if op == OperatorKind.SHIFT_LEFT:
            return wrap_i64(lhs << (rhs & SHIFT_MASK))
        if op == OperatorKind.SHIFT_RIGHT:
            return lhs >> (rhs & SHIFT_MASK)
        raise TypeError(f"Unknown operator: {op!r}")


def evaluate(expr: Expression, resolver: RegisterResolver | None = None) -> int:
    """Evaluate a tree; raises EvalError subclasses on failure."""
    return Evaluator(resolver).evaluate(expr)
