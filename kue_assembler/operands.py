"""
Operand parser.

Turns operand text into a typed Operand once, so the encoder can dispatch on
its shape instead of re-matching strings:

  ACC / IX / SP         REGISTER
  12H, LABEL+1, -1      IMMEDIATE     (expression, evaluated later)
  [d]                   INDIRECT
  (d)                   INDIRECT      legacy form (KUE-CHIP2 only)
  [SP+d] [SP] [IX+d]    INDEXED
  (IX+d) (IX)           INDEXED       legacy form (KUE-CHIP2 only)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import enum
import re

from .errors import InvalidOperandError

__all__ = ['OperandKind', 'Operand', 'parse_operand', 'REGISTERS']

REGISTERS = ('ACC', 'IX', 'SP')

_EXPR_RE = re.compile(r'^[A-Z0-9_+\-*/]+$')
_INDEXED_RE = re.compile(r'^(?P<base>SP|IX)(?P<offset>[+\-].*)?$')


class OperandKind(enum.Enum):
    REGISTER = "REGISTER"
    IMMEDIATE = "IMMEDIATE"
    INDIRECT = "INDIRECT"
    INDEXED = "INDEXED"


@dataclass(frozen=True)
class Operand:
    kind: OperandKind
    text: str
    register: Optional[str] = None   # REGISTER, or base of INDEXED
    expr: Optional[str] = None       # value / address / offset expression
    legacy: bool = False             # parenthesized form

    def is_register(self, *names: str) -> bool:
        return self.kind is OperandKind.REGISTER and self.register in names


def parse_operand(text: str) -> Operand:
    """Classify one operand. Raises InvalidOperandError for unknown shapes."""
    norm = re.sub(r'\s+', '', text).upper()

    if norm in REGISTERS:
        return Operand(OperandKind.REGISTER, text, register=norm)

    if len(norm) >= 2 and (norm[0], norm[-1]) in (('[', ']'), ('(', ')')):
        legacy = norm[0] == '('
        inner = norm[1:-1]
        if not inner:
            raise InvalidOperandError(f"Empty address in operand '{text}'")

        match = _INDEXED_RE.match(inner)
        if match:
            offset = match.group('offset') or '0'
            if offset.startswith('+'):
                offset = offset[1:]
            if not _EXPR_RE.match(offset):
                raise InvalidOperandError(f"Invalid offset in operand '{text}'")
            return Operand(OperandKind.INDEXED, text, register=match.group('base'),
                           expr=offset, legacy=legacy)

        if not _EXPR_RE.match(inner):
            raise InvalidOperandError(f"Invalid address in operand '{text}'")
        return Operand(OperandKind.INDIRECT, text, expr=inner, legacy=legacy)

    if _EXPR_RE.match(norm):
        return Operand(OperandKind.IMMEDIATE, text, expr=norm)

    raise InvalidOperandError(f"Invalid operand '{text}'")
