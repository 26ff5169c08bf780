"""
Parser tests for addrexpr.

The precedence chain here is deliberately not C's: + - loosest, then
* / %, then | & ^ >> <<, then unary. Every binary layer groups to the
right. These tests pin that shape down through ``unparse``.
"""
import sys
import os
import logging
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from addrexpr.parser import parse, Parser, ParseError
from addrexpr.lexer import Lexer, ExprSyntaxError, LexerError
from addrexpr.ast_nodes import (
    Literal, RegisterRef, UnaryOp, BinaryOp, OperatorKind, UnaryOperator,
    unparse, walk, registers_used,
)


def _shape(source: str) -> str:
    return unparse(parse(source))


class TestTerms:
    def test_decimal_and_hex_literals(self):
        assert parse("26") == Literal(value=26)
        assert parse("0x1A") == Literal(value=26)

    def test_register(self):
        assert parse("$eax") == RegisterRef(name="eax")

    def test_parentheses_are_transparent(self):
        assert parse("((7))") == Literal(value=7)

    def test_positions_recorded(self):
        expr = parse("1 + $rsp")
        assert isinstance(expr, BinaryOp)
        assert expr.pos == 2
        assert expr.left.pos == 0
        assert expr.right.pos == 4

    def test_equality_ignores_positions(self):
        assert parse("1+2") == parse("  1 +   2")


class TestPrecedence:
    def test_additive_is_loosest(self):
        expr = parse("1 + 2 * 3")
        assert expr == BinaryOp(
            op=OperatorKind.ADD,
            left=Literal(value=1),
            right=BinaryOp(op=OperatorKind.MUL, left=Literal(value=2), right=Literal(value=3)),
        )

    def test_bitwise_binds_tighter_than_multiplicative(self):
        assert _shape("2 & 1 * 3") == "((2 & 1) * 3)"
        assert _shape("3 * 2 | 1") == "(3 * (2 | 1))"

    def test_shift_binds_tighter_than_add(self):
        assert _shape("1 + 1 << 4") == "(1 + (1 << 4))"

    def test_unary_binds_tightest(self):
        assert _shape("-2 * 3") == "(-2 * 3)"
        assert _shape("~0 & 0xF") == "(~0 & 15)"

    def test_unary_nests(self):
        assert parse("-~+1") == UnaryOp(
            op=UnaryOperator.NEG,
            operand=UnaryOp(
                op=UnaryOperator.BIT_NOT,
                operand=UnaryOp(op=UnaryOperator.PLUS, operand=Literal(value=1)),
            ),
        )

    def test_unary_applies_to_parenthesized(self):
        assert _shape("-(1 + 2)") == "-(1 + 2)"

    def test_mixed_precedence_example(self):
        # '1337 + 0x4242 * 375' groups as 1337 + (0x4242 * 375)
        assert _shape("1337 + 0x4242 * 375") == "(1337 + (16962 * 375))"


class TestRightAssociativity:
    @pytest.mark.parametrize("src, shape", [
        ("10 - 3 - 2", "(10 - (3 - 2))"),
        ("100 / 10 / 5", "(100 / (10 / 5))"),
        ("1 - 2 + 3", "(1 - (2 + 3))"),
        ("8 % 5 * 2", "(8 % (5 * 2))"),
        ("1 << 2 >> 1", "(1 << (2 >> 1))"),
        ("1 | 2 & 3 ^ 4", "(1 | (2 & (3 ^ 4)))"),
    ])
    def test_same_layer_groups_right(self, src, shape):
        assert _shape(src) == shape

    def test_parentheses_override(self):
        assert _shape("(10 - 3) - 2") == "((10 - 3) - 2)"


class TestSyntaxErrors:
    def test_missing_operand_at_end(self):
        with pytest.raises(ParseError) as ei:
            parse("1 +")
        assert ei.value.pos == 3
        assert "end of input" in str(ei.value)

    def test_unclosed_parenthesis(self):
        with pytest.raises(ParseError) as ei:
            parse("(1 + 2")
        assert ei.value.pos == 6
        assert "')'" in str(ei.value)

    def test_trailing_input(self):
        with pytest.raises(ParseError) as ei:
            parse("1 2")
        assert ei.value.pos == 2

    def test_stray_closing_parenthesis(self):
        with pytest.raises(ParseError) as ei:
            parse("(1))")
        assert ei.value.pos == 3

    def test_empty_input(self):
        with pytest.raises(ParseError) as ei:
            parse("")
        assert ei.value.pos == 0

    def test_empty_parentheses(self):
        with pytest.raises(ParseError) as ei:
            parse("()")
        assert ei.value.pos == 1

    def test_double_binary_operator(self):
        with pytest.raises(ParseError) as ei:
            parse("1 * * 2")
        assert ei.value.pos == 4

    def test_lexer_errors_are_syntax_errors(self):
        with pytest.raises(ExprSyntaxError):
            parse("1 + @")
        assert issubclass(LexerError, ExprSyntaxError)
        assert issubclass(ParseError, ExprSyntaxError)

    def test_unclosed_deep_nesting(self):
        with pytest.raises(ParseError) as ei:
            parse("(" * 300 + "1")
        assert ei.value.pos == 301
        assert "')'" in str(ei.value)


class TestDeepNesting:
    def test_deep_parentheses(self):
        assert parse("(" * 5000 + "$a" + ")" * 5000) == RegisterRef(name="a")

    def test_long_unary_chain(self):
        expr = parse("~" * 3000 + "1")
        nodes = list(walk(expr))
        assert len(nodes) == 3001
        assert all(isinstance(n, UnaryOp) for n in nodes[:-1])
        assert nodes[-1] == Literal(value=1)

    def test_long_chain_still_groups_right(self):
        expr = parse("1 - " * 2000 + "1")
        depth = 0
        while isinstance(expr, BinaryOp):
            assert isinstance(expr.left, Literal)
            expr = expr.right
            depth += 1
        assert depth == 2000

    def test_unparse_deep_tree(self):
        assert unparse(parse("-" * 2000 + "7")) == "-" * 2000 + "7"


class TestTreeHelpers:
    def test_unparse_round_trip(self):
        for src in ["10 - 3 - 2", "$rsp + ~0xF & 8", "-(-$a) * ($b % 3)", "1 << 2 << 3"]:
            expr = parse(src)
            assert parse(unparse(expr)) == expr

    def test_walk_is_preorder(self):
        kinds = [type(n).__name__ for n in walk(parse("$a + -1"))]
        assert kinds == ["BinaryOp", "RegisterRef", "UnaryOp", "Literal"]

    def test_registers_used_in_order_without_duplicates(self):
        assert registers_used(parse("$b + $a * $b - ($c)")) == ["b", "a", "c"]

    def test_parser_class_api(self):
        tokens = Lexer("$pc - 4").tokenize()
        expr = Parser(tokens).parse()
        assert expr.op == OperatorKind.SUB
        assert expr.left == RegisterRef(name="pc")


class TestDebugLogging:
    def test_tree_rendered_only_when_debug_enabled(self, monkeypatch, caplog):
        import addrexpr.parser as parser_mod
        calls = []
        monkeypatch.setattr(parser_mod, "unparse", lambda e: calls.append(e) or "<tree>")

        caplog.set_level(logging.INFO, logger="addrexpr.parser")
        parse("1 + 2")
        assert calls == []

        caplog.set_level(logging.DEBUG, logger="addrexpr.parser")
        parse("1 + 2")
        assert len(calls) == 1
        assert "<tree>" in caplog.text
