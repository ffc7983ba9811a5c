"""
Listing renderer.

One output line per source line:

    0000: 0062 0000  # LOOP:  LD ACC, 0
    ^addr ^opcode ^operand    ^original source

Every hex field is 2 digits per byte of the target's address unit; negative
values are written in two's complement, truncated to the field width.
Lines that produce nothing keep only the '#' and the source text.
"""

from __future__ import annotations
from typing import Dict, List, Optional
import logging

from .config import LISTING_COLUMN
from .encoder import EncodedInstruction
from .lexer import AsmLine

__all__ = ['to_hex', 'render_line', 'render_listing']

logger = logging.getLogger(__name__)


def to_hex(value: int, digits: int, prefix: str = '') -> str:
    """Zero-padded uppercase hex, masked to `digits` hex digits."""
    value &= (1 << (4 * digits)) - 1
    return f"{prefix}{value:0{digits}X}"


def render_line(line: AsmLine, encoded: Optional[EncodedInstruction], addr_unit_bytes: int) -> str:
    digits = 2 * addr_unit_bytes
    addr = opcode = operand = ''
    if encoded is not None:
        if encoded.addr is not None:
            addr = to_hex(encoded.addr, digits) + ':'
        if encoded.opcode is not None:
            opcode = to_hex(encoded.opcode, digits)
        if encoded.operand is not None:
            operand = to_hex(encoded.operand, digits)

    comment = f" {line.raw}" if line.raw != '' else ''
    return f"{addr} {opcode} {operand}".ljust(LISTING_COLUMN) + f"#{comment}"


def render_listing(lines: List[AsmLine], encoded: Dict[int, EncodedInstruction],
                   addr_unit_bytes: int) -> str:
    """Render all lines; `encoded` maps line numbers to their encodings."""
    out = []
    for line in lines:
        text = render_line(line, encoded.get(line.line_num), addr_unit_bytes)
        logger.debug(text)
        out.append(text)
    return '\n'.join(out) + '\n'
