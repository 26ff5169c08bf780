"""
AST Node definitions for address expressions.

Defines the tree produced by the parser and consumed by the evaluator.
Nodes are frozen: a tree is built once per parse and never mutated, and
every child is owned by exactly one parent.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Union


# ──────────────────────────────────────────────
# Operators
# ──────────────────────────────────────────────

class OperatorKind(enum.Enum):
    """Binary operators, valued by their source symbol."""
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    BIT_OR = "|"
    BIT_AND = "&"
    SHIFT_RIGHT = ">>"
    SHIFT_LEFT = "<<"
    BIT_XOR = "^"


class UnaryOperator(enum.Enum):
    NEG = "-"
    PLUS = "+"
    BIT_NOT = "~"


# ──────────────────────────────────────────────
# Base AST node
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class ASTNode:
    """Base class for all AST nodes. ``pos`` is the source offset and is
    left out of equality, so trees compare by shape and values."""
    pos: int = field(default=0, compare=False)


# ──────────────────────────────────────────────
# Expressions
# ──────────────────────────────────────────────

Expression = Union["Literal", "RegisterRef", "UnaryOp", "BinaryOp"]

@dataclass(frozen=True)
class Literal(ASTNode):
    """Integer constant (decimal or 0x hex in the source)."""
    value: int = 0

@dataclass(frozen=True)
class RegisterRef(ASTNode):
    """Register reference; ``name`` excludes the leading '$'."""
    name: str = ""

@dataclass(frozen=True)
class UnaryOp(ASTNode):
    """Unary operation: op operand (prefix)."""
    op: UnaryOperator = UnaryOperator.PLUS
    operand: Expression = None  # type: ignore

@dataclass(frozen=True)
class BinaryOp(ASTNode):
    """Binary operation: left op right."""
    op: OperatorKind = OperatorKind.ADD
    left: Expression = None   # type: ignore
    right: Expression = None  # type: ignore


# ──────────────────────────────────────────────
# Tree helpers
# ──────────────────────────────────────────────

def walk(expr: Expression) -> Iterator[Expression]:
    """Yield every node of the tree in pre-order."""
    stack = [expr]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, BinaryOp):
            stack.append(node.right)
            stack.append(node.left)
        elif isinstance(node, UnaryOp):
            stack.append(node.operand)


def registers_used(expr: Expression) -> List[str]:
    """Register names referenced by the tree, first appearance first."""
    seen: List[str] = []
    for node in walk(expr):
        if isinstance(node, RegisterRef) and node.name not in seen:
            seen.append(node.name)
    return seen


def unparse(expr: Expression) -> str:
    """Render the tree back to source with every grouping made explicit.

    ``10 - 3 - 2`` comes back as ``(10 - (3 - 2))``. Parsing the result
    gives back an equal tree.
    """
    parts: List[str] = []
    stack = [(expr, False)]
    while stack:
        node, children_done = stack.pop()
        if isinstance(node, Literal):
            parts.append(str(node.value))
        elif isinstance(node, RegisterRef):
            parts.append(f"${node.name}")
        elif isinstance(node, UnaryOp):
            if children_done:
                parts.append(f"{node.op.value}{parts.pop()}")
            else:
                stack.append((node, True))
                stack.append((node.operand, False))
        elif isinstance(node, BinaryOp):
            if children_done:
                right = parts.pop()
                left = parts.pop()
                parts.append(f"({left} {node.op.value} {right})")
            else:
                stack.append((node, True))
                stack.append((node.right, False))
                stack.append((node.left, False))
        else:
            raise TypeError(f"Not an expression node: {node!r}")
    return parts.pop()
