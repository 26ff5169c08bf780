#!/usr/bin/env python3
"""
addrcalc — evaluate address expressions from the command line

Usage:
    python addrcalc.py <expr> [--reg NAME=VALUE ...] [--registers regs.json]
                              [--arch x86_64|aarch64|...] [--format dec|hex|both]
                              [--tokens] [--ast] [--template] [--verbose]

Examples:
    python addrcalc.py "0x400000 + 0x1A * 8"
    python addrcalc.py '$rsp + 0x18' --reg rsp=0x7ffc0000 --format hex
    python addrcalc.py '$pc - 4' --registers snapshot.json --arch aarch64
    python addrcalc.py 'A{$len - 1}B' --template --reg len=8
    python addrcalc.py '10 - 3 - 2' --ast      # shows (10 - (3 - 2))

Exit codes: 0 ok, 1 syntax error, 2 evaluation error, 3 bad arguments.
"""

import argparse
import json
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from addrexpr import __version__, Lexer, parse, interpolate, unparse, registers_used
from addrexpr.evaluator import Evaluator, EvalError
from addrexpr.lexer import ExprSyntaxError
from addrexpr.registers import ARCH_PROFILES, RegisterFile
from addrexpr.utils import parse_int_arg, to_hex64

EXIT_OK = 0
EXIT_SYNTAX = 1
EXIT_EVAL = 2
EXIT_USAGE = 3

log = logging.getLogger("addrcalc")


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Console logging through rich; WARNING by default, DEBUG with -v."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(
        console=Console(stderr=True),
        level=level,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)
    return log


def parse_reg_arg(text: str):
    """Split ``NAME=VALUE`` (a leading '$' on NAME is allowed)."""
    name, sep, value = text.partition("=")
    name = name.strip().lstrip("$")
    if not sep or not name:
        raise ValueError(f"Expected NAME=VALUE, got {text!r}")
    return name, parse_int_arg(value)


def load_register_file(path: str) -> dict:
    """Read a JSON object of register name -> int or numeric string ("0x10")."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of registers")
    out = {}
    for name, value in data.items():
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ValueError(f"{path}: register {name!r} must be an integer or string")
        out[name] = parse_int_arg(value) if isinstance(value, str) else value
    return out


def format_result(value: int, fmt: str) -> str:
    if fmt == "hex":
        return to_hex64(value)
    if fmt == "both":
        return f"{value} ({to_hex64(value)})"
    return str(value)


class UsageArgumentParser(argparse.ArgumentParser):
    """argparse that reports bad arguments with EXIT_USAGE instead of 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_arg_parser() -> UsageArgumentParser:
    parser = UsageArgumentParser(
        prog="addrcalc",
        description="Evaluate address expressions over CPU register values",
        epilog="Profiles: " + ", ".join(ARCH_PROFILES.keys()),
    )
    parser.add_argument("expr", help="Expression text (or payload with --template)")
    parser.add_argument("--reg", "-r", action="append", default=[], metavar="NAME=VALUE",
                        help="Set a register (decimal or 0x hex); repeatable")
    parser.add_argument("--registers", metavar="FILE",
                        help="JSON object of register values to load first")
    parser.add_argument("--arch", default="generic", choices=list(ARCH_PROFILES.keys()),
                        help="Restrict register names to a CPU profile (default: generic)")
    parser.add_argument("--format", choices=["dec", "hex", "both"], default="dec",
                        help="Result format (default: dec)")
    parser.add_argument("--tokens", action="store_true",
                        help="Dump token stream and exit (debug)")
    parser.add_argument("--ast", action="store_true",
                        help="Dump AST with explicit grouping and exit (debug)")
    parser.add_argument("--template", action="store_true",
                        help="Treat EXPR as a payload and substitute each {expr}")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log parsing and register reads to stderr")
    parser.add_argument("--version", action="version",
                        version=f"addrcalc {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        regs = RegisterFile(arch=args.arch)
        if args.registers:
            regs.update(load_register_file(args.registers))
        for item in args.reg:
            name, value = parse_reg_arg(item)
            regs.set(name, value)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    log.debug("arch=%s registers=%s", args.arch, regs.available_registers())

    try:
        if args.tokens:
            for tok in Lexer(args.expr).tokenize():
                print(tok)
            return EXIT_OK

        if args.template:
            sys.stdout.buffer.write(interpolate(args.expr, regs) + b"\n")
            sys.stdout.flush()
            return EXIT_OK

        expr = parse(args.expr)
        if args.ast:
            _print_ast(expr)
            print(unparse(expr))
            return EXIT_OK

        missing = [n for n in registers_used(expr) if not regs.exists(n)]
        if missing:
            log.debug("registers not set: %s", ", ".join(missing))

        value = Evaluator(regs).evaluate(expr)
        print(format_result(value, args.format))
        return EXIT_OK

    except ExprSyntaxError as e:
        print(f"{e}", file=sys.stderr)
        print(f"  {args.expr}", file=sys.stderr)
        print(f"  {' ' * e.pos}^", file=sys.stderr)
        return EXIT_SYNTAX
    except EvalError as e:
        print(f"Evaluation error: {e}", file=sys.stderr)
        return EXIT_EVAL


def _print_ast(node, indent=0):
    """Pretty-print an AST node tree (debug helper)."""
    prefix = "  " * indent
    if hasattr(node, '__dataclass_fields__'):
        print(f"{prefix}{type(node).__name__}:")
        for fname in node.__dataclass_fields__:
            val = getattr(node, fname)
            if hasattr(val, '__dataclass_fields__'):
                print(f"{prefix}  {fname}:")
                _print_ast(val, indent + 2)
            elif hasattr(val, 'value') and hasattr(val, 'name'):
                print(f"{prefix}  {fname}: {val.value}")
            else:
                print(f"{prefix}  {fname}: {val}")
    else:
        print(f"{prefix}{node}")


if __name__ == "__main__":
    sys.exit(main())
