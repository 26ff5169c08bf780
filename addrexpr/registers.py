"""
Register resolvers: where ``$name`` values come from.

The evaluator only needs ``lookup(name) -> int | None``. This module
provides the implementations used in practice:

  MappingResolver      plain dict of name -> int
  RegisterFile         the register store filled while driving a target
                       process; values are ints or raw captured bytes
  CpuRegisterResolver  reads a live CPU register-set object (e.g. an
                       emulator's Registers with A, B, D, X, PC ...)

ARCH_PROFILES lists the register names recognised per architecture.
A RegisterFile bound to a profile refuses to store names outside it.
"""

from __future__ import annotations
import logging
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Protocol, Union

from .evaluator import InvalidRegisterValue

logger = logging.getLogger(__name__)

RegisterValue = Union[int, bytes]


class RegisterResolver(Protocol):
    def lookup(self, name: str) -> Optional[int]:
        """Current value of a register, or None if the name is not known."""
        ...


# ──────────────────────────────────────────────
# Architecture profiles
# ──────────────────────────────────────────────

def _numbered(prefix: str, count: int) -> List[str]:
    return [f"{prefix}{i}" for i in range(count)]


ARCH_PROFILES: Dict[str, dict] = {
    "generic": {
        "registers": None,   # any name
        "description": "No restriction on register names",
    },
    "x86_64": {
        "registers": frozenset(
            ["rax", "rbx", "rcx", "rdx", "rsi", "rdi", "rbp", "rsp", "rip", "rflags",
             "eax", "ebx", "ecx", "edx", "esi", "edi", "ebp", "esp", "eip", "eflags",
             "ax", "bx", "cx", "dx", "si", "di", "bp", "sp",
             "al", "bl", "cl", "dl", "ah", "bh", "ch", "dh",
             "cs", "ds", "es", "fs", "gs", "ss", "fs_base", "gs_base"]
            + _numbered("r", 16)[8:]
            + [f"r{i}{s}" for i in range(8, 16) for s in ("d", "w", "b")]
        ),
        "description": "x86-64 general purpose, segment and flag registers",
    },
    "x86": {
        "registers": frozenset(
            ["eax", "ebx", "ecx", "edx", "esi", "edi", "ebp", "esp", "eip", "eflags",
             "ax", "bx", "cx", "dx", "si", "di", "bp", "sp",
             "al", "bl", "cl", "dl", "ah", "bh", "ch", "dh",
             "cs", "ds", "es", "fs", "gs", "ss"]
        ),
        "description": "32-bit x86 registers",
    },
    "aarch64": {
        "registers": frozenset(_numbered("x", 31) + _numbered("w", 31)
                               + ["sp", "pc", "lr", "fp", "xzr", "wzr", "nzcv", "cpsr"]),
        "description": "ARM64 general purpose registers",
    },
    "arm": {
        "registers": frozenset(_numbered("r", 16)
                               + ["sp", "lr", "pc", "ip", "fp", "sb", "sl", "cpsr"]),
        "description": "32-bit ARM registers",
    },
    "riscv": {
        "registers": frozenset(
            _numbered("x", 32)
            + ["zero", "ra", "sp", "gp", "tp", "fp", "pc"]
            + _numbered("t", 7) + _numbered("s", 12) + _numbered("a", 8)
        ),
        "description": "RISC-V integer registers (xN and ABI names)",
    },
    "hc11": {
        "registers": frozenset(["a", "b", "d", "x", "y", "sp", "pc", "cc", "ccr"]),
        "description": "Motorola 68HC11 CPU registers",
    },
}


def profile_registers(arch: str) -> Optional[FrozenSet[str]]:
    """Register names of a profile (None means unrestricted)."""
    if arch not in ARCH_PROFILES:
        raise ValueError(f"Unknown architecture profile: {arch!r}")
    return ARCH_PROFILES[arch]["registers"]


def bytes_to_int(name: str, raw: bytes) -> int:
    """Read captured register bytes as decimal text (``b' 42\\n'`` -> 42)."""
    try:
        return int(raw.decode("ascii").strip(), 10)
    except (UnicodeDecodeError, ValueError):
        raise InvalidRegisterValue(name, raw) from None


# ──────────────────────────────────────────────
# Resolvers
# ──────────────────────────────────────────────

class MappingResolver:
    """Answers lookups from a fixed name -> int mapping."""

    def __init__(self, values: Mapping[str, int]):
        self.values = dict(values)

    def lookup(self, name: str) -> Optional[int]:
        return self.values.get(name)

    def __repr__(self):
        return f"MappingResolver({self.values!r})"


class RegisterFile:
    """Named register store, filled as a target program is driven.

    Values may be ints or the raw bytes captured from the program's output;
    byte values are read as decimal text on lookup. Bound to an
    architecture profile, names are case-insensitive and kept in lower
    case, so ``RAX`` and ``$rax`` are the same register.
    """

    def __init__(self, values: Optional[Mapping[str, RegisterValue]] = None,
                 arch: str = "generic"):
        self.arch = arch
        self.allowed = profile_registers(arch)
        self._map: Dict[str, RegisterValue] = {}
        for name, value in (values or {}).items():
            self.set(name, value)

    def _key(self, name: str) -> str:
        return name if self.allowed is None else name.lower()

    def set(self, name: str, value: RegisterValue):
        if isinstance(value, bool) or not isinstance(value, (int, bytes)):
            raise TypeError(f"Register ${name} must be int or bytes, got {type(value).__name__}")
        key = self._key(name)
        if self.allowed is not None and key not in self.allowed:
            raise ValueError(f"Register ${name} is not part of the {self.arch} profile")
        self._map[key] = value

    def get(self, name: str) -> Optional[RegisterValue]:
        return self._map.get(self._key(name))

    def exists(self, name: str) -> bool:
        return self._key(name) in self._map

    def available_registers(self) -> List[str]:
        return sorted(self._map)

    def lookup(self, name: str) -> Optional[int]:
        value = self.get(name)
        if value is None:
            return None
        if isinstance(value, bytes):
            return bytes_to_int(name, value)
        return value

    def update(self, values: Mapping[str, RegisterValue]):
        for name, value in values.items():
            self.set(name, value)

    def __len__(self):
        return len(self._map)

    def __repr__(self):
        return f"RegisterFile(arch={self.arch!r}, registers={self.available_registers()})"


class CpuRegisterResolver:
    """Reads registers straight off a CPU register-set object.

    ``names`` maps expression register names to attribute names; by default
    each attribute in ``names`` is reachable by its lower-case name, so an
    emulator exposing ``A``, ``D`` and ``PC`` answers ``$a``, ``$d``, ``$pc``.
    Values are read at lookup time, so the answer is the live value.
    """

    def __init__(self, cpu: object, names: Union[Iterable[str], Mapping[str, str]]):
        self.cpu = cpu
        if isinstance(names, Mapping):
            self.names = {k.lower(): v for k, v in names.items()}
        else:
            self.names = {attr.lower(): attr for attr in names}

    def lookup(self, name: str) -> Optional[int]:
        attr = self.names.get(name.lower())
        if attr is None:
            return None
        value = getattr(self.cpu, attr)
        logger.debug("read %s.%s = %r", type(self.cpu).__name__, attr, value)
        return int(value)
