"""
64-bit two's-complement helpers shared by the evaluator and the CLI.
"""

from __future__ import annotations

WORD_BITS = 64
U64_MASK = (1 << WORD_BITS) - 1
INT64_MIN = -(1 << (WORD_BITS - 1))
INT64_MAX = (1 << (WORD_BITS - 1)) - 1


def u64(x: int) -> int:
    """Force the value into the unsigned 64-bit range."""
    return x & U64_MASK


def wrap_i64(x: int) -> int:
    """Wrap an arbitrary int to signed 64-bit, two's complement."""
    x &= U64_MASK
    return x - (1 << WORD_BITS) if x > INT64_MAX else x


def to_hex64(x: int, *, prefix: bool = True) -> str:
    """Hex rendering of the 64-bit bit pattern ('-1' -> 0xffffffffffffffff)."""
    s = format(u64(x), "016x")
    return ("0x" + s) if prefix else s


def parse_int_arg(value: str) -> int:
    """Parse a command-line integer: decimal or 0x hex, optional sign."""
    value = value.strip()
    sign = 1
    if value[:1] in ("+", "-"):
        sign = -1 if value[0] == "-" else 1
        value = value[1:]
    if value.startswith("0x") or value.startswith("0X"):
        return sign * int(value[2:], 16)
    return sign * int(value, 10)
