"""
``{expr}`` substitution in command payloads.

A payload such as ``b"AAAA{$rsp + 0x10}"`` has each braced expression
parsed, evaluated and replaced by its decimal text. A brace group holding
only a register whose value is raw captured bytes is replaced by those
bytes unchanged, so captured output can be echoed back verbatim.

Substitution is one left-to-right pass; inserted text is not re-scanned.
"""

from __future__ import annotations
import logging
import re
from typing import Union

from .ast_nodes import Expression, RegisterRef
from .evaluator import Evaluator
from .lexer import ExprSyntaxError
from .parser import parse
from .registers import RegisterFile, RegisterResolver

logger = logging.getLogger(__name__)

BRACE_RE = re.compile(rb"\{(.*?)\}", re.DOTALL)


def render(expr: Expression, resolver: RegisterResolver | None = None) -> bytes:
    """Evaluate ``expr`` and return the bytes that replace it in a payload."""
    if isinstance(expr, RegisterRef) and isinstance(resolver, RegisterFile):
        raw = resolver.get(expr.name)
        if isinstance(raw, bytes):
            return raw
    return str(Evaluator(resolver).evaluate(expr)).encode("ascii")


def interpolate(template: Union[str, bytes],
                resolver: RegisterResolver | None = None) -> bytes:
    """Replace every ``{expr}`` in ``template``; raises on the first bad one."""
    if isinstance(template, str):
        template = template.encode("utf-8")

    def _sub(m: re.Match) -> bytes:
        raw = m.group(1)
        try:
            source = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise ExprSyntaxError("Expression is not valid UTF-8", m.start(1)) from None
        try:
            expr = parse(source)
        except ExprSyntaxError as e:
            # Report the offset within the whole template
            raise ExprSyntaxError(e.reason, m.start(1) + e.pos) from e
        out = render(expr, resolver)
        logger.debug("{%s} -> %r", source, out)
        return out

    return BRACE_RE.sub(_sub, template)
