"""
KUE-CHIP Two-Pass Assembler.

Assembles KUE-CHIP2 / KUE-CHIP3 assembly text into a hex listing: one line
per source line with address, opcode word, operand word and the original
source as a comment.

Input:  Assembly text + target mode ('kuechip2' or 'kuechip3')
Output: Listing text

Two address cursors are tracked:
  code cursor  Where the next instruction goes. Starts at 0 and advances by
               width x address-unit bytes per instruction.
  data cursor  Where the next DAT word goes. Undefined until a LOC sets it,
               advances by one address unit per DAT.

How the two-pass algorithm works:
  Pass 1: Walk every line, bind labels to the code cursor and advance it by
          each instruction's width. Widths depend only on operand shapes, so
          no operand is evaluated yet and forward references are harmless.
          EQU binds its label right away (EQU CA = current code address).
  Pass 2: Walk the lines again with a complete symbol table, evaluate every
          operand and emit opcode/operand words. LOC is re-evaluated here so
          it may refer to labels defined later. Encoding stops at END.
          Each instruction must land on the address and width pass 1 gave it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from .config import DEFAULT_TARGET, get_profile, resolve_log_level
from .encoder import EncodedInstruction, Mnemonic, encode
from .errors import AssemblerError, MissingLabelError, OperandCountError, UnresolvedSymbolError
from .expression import evaluate
from .lexer import AsmLine, tokenize
from .listing import render_listing
from .symbols import SymbolTable

__all__ = ['Assembler', 'AssemblyContext', 'AssemblerError', 'assemble', 'run_pass1', 'run_pass2']

logger = logging.getLogger(__name__)


@dataclass
class AssemblyContext:
    """Mutable state of one assembly run, threaded through both passes."""
    addr_unit_bytes: int
    legacy_operands: bool = False
    symbols: SymbolTable = field(default_factory=SymbolTable)
    cur_addr: int = 0                    # code cursor (bytes)
    loc_addr: Optional[int] = None       # data cursor, set by LOC
    ended: bool = False                  # END seen
    pending_labels: List[AsmLine] = field(default_factory=list)   # label-only lines

    @classmethod
    def for_target(cls, mode: str) -> "AssemblyContext":
        profile = get_profile(mode)
        return cls(addr_unit_bytes=profile["addr_unit_bytes"],
                   legacy_operands=profile["legacy_operands"])

    def advance(self, width: int) -> None:
        self.cur_addr += width * self.addr_unit_bytes

    def rewind(self) -> None:
        """Reset the cursors for the next pass; symbols are kept."""
        self.cur_addr = 0
        self.loc_addr = None
        self.ended = False
        self.pending_labels = []


# ──────────────────────────────────────────────
# Pass 1: address allocation
# ──────────────────────────────────────────────

def _single_operand(line: AsmLine, mnem: Mnemonic) -> str:
    if line.op1 is None or line.op2 is not None:
        raise OperandCountError(f"Expected 1 operand for {mnem.value}")
    return line.op1


def _bind(ctx: AssemblyContext, owner: AsmLine, value: int) -> None:
    """Bind owner's label, locating any error at the line that defines it."""
    try:
        ctx.symbols.bind(owner.label, value, owner.line_num)
    except AssemblerError as e:
        raise e.locate(owner.line_num, owner.raw)


def _bind_labels(line: AsmLine, ctx: AssemblyContext) -> None:
    """Bind the line's label and any dangling ones to the code cursor."""
    owners = ctx.pending_labels + ([line] if line.label else [])
    ctx.pending_labels = []
    for owner in owners:
        _bind(ctx, owner, ctx.cur_addr)


def _define_equ(line: AsmLine, ctx: AssemblyContext) -> None:
    op1 = _single_operand(line, Mnemonic.EQU)
    if line.label:
        owners = [line]
    elif ctx.pending_labels:
        owners, ctx.pending_labels = ctx.pending_labels, []
    else:
        raise MissingLabelError("Label not found for EQU")

    if op1.upper() == 'CA':
        # Current address; the code cursor does not move
        value = ctx.cur_addr
    else:
        value = evaluate(op1, ctx.symbols)
    for owner in owners:
        _bind(ctx, owner, value)


def _pass1_line(line: AsmLine, ctx: AssemblyContext,
                allocated: Dict[int, EncodedInstruction]) -> None:
    if line.mnemonic is None:
        # Label on a line of its own: it belongs to the next instruction
        ctx.pending_labels.append(line)
        return

    mnem = Mnemonic.lookup(line.mnemonic)

    if mnem is Mnemonic.EQU:
        _define_equ(line, ctx)
        return

    _bind_labels(line, ctx)

    if mnem is Mnemonic.LOC:
        op1 = _single_operand(line, mnem)
        try:
            ctx.loc_addr = evaluate(op1, ctx.symbols)
        except UnresolvedSymbolError:
            # Forward reference; pass 2 evaluates it again
            ctx.loc_addr = None
            logger.debug(f"LOC {op1} deferred to pass 2 (l.{line.line_num})")
        return

    if mnem is Mnemonic.END:
        ctx.ended = True
        return

    enc = encode(line, ctx, allocate_only=True)
    if enc.is_data:
        return

    enc.addr = ctx.cur_addr
    allocated[line.line_num] = enc
    ctx.advance(enc.width)
    logger.debug(f"Allocate {enc.width} unit(s) at {enc.addr} for {mnem.value} (l.{line.line_num})")


def run_pass1(lines: List[AsmLine], ctx: AssemblyContext) -> Dict[int, EncodedInstruction]:
    """Pass 1: bind labels and allocate code addresses.

    Returns line number -> allocation (address and width, no opcode).
    """
    allocated: Dict[int, EncodedInstruction] = {}
    for line in lines:
        if line.is_blank:
            continue
        try:
            _pass1_line(line, ctx, allocated)
        except AssemblerError as e:
            e.locate(line.line_num, line.raw)
            logger.error(f"{e.message} (l.{e.line_num})")
            raise

    # Labels at the very end of the source still name an address
    owners, ctx.pending_labels = ctx.pending_labels, []
    for owner in owners:
        try:
            _bind(ctx, owner, ctx.cur_addr)
        except AssemblerError as e:
            logger.error(f"{e.message} (l.{e.line_num})")
            raise
    return allocated


# ──────────────────────────────────────────────
# Pass 2: encoding
# ──────────────────────────────────────────────

def _pass2_line(line: AsmLine, ctx: AssemblyContext,
                allocated: Dict[int, EncodedInstruction],
                encoded: Dict[int, EncodedInstruction]) -> None:
    mnem = Mnemonic.lookup(line.mnemonic)

    if mnem is Mnemonic.LOC:
        ctx.loc_addr = evaluate(line.op1, ctx.symbols)
        logger.debug(f"LOC addr: {ctx.loc_addr} (l.{line.line_num})")
        return

    if mnem is Mnemonic.EQU:
        return  # already bound in pass 1

    enc = encode(line, ctx)

    if enc.is_data:
        enc.addr = ctx.loc_addr
        ctx.loc_addr += ctx.addr_unit_bytes
    else:
        planned = allocated.get(line.line_num)
        if planned is None or planned.width != enc.width or planned.addr != ctx.cur_addr:
            raise AssemblerError(
                f"Internal error: {mnem.value} encoded as {enc.width} unit(s) at "
                f"{ctx.cur_addr}, pass 1 allocated "
                f"{planned.width if planned else 0} unit(s) at "
                f"{planned.addr if planned else None}")
        enc.addr = ctx.cur_addr
        ctx.advance(enc.width)

    logger.debug(f"Encode {mnem.value} at {enc.addr}: {enc.opcode} {enc.operand} (l.{line.line_num})")
    encoded[line.line_num] = enc


def run_pass2(lines: List[AsmLine], ctx: AssemblyContext,
              allocated: Dict[int, EncodedInstruction]) -> Dict[int, EncodedInstruction]:
    """Pass 2: encode every line up to END with the complete symbol table."""
    ctx.rewind()
    encoded: Dict[int, EncodedInstruction] = {}
    for line in lines:
        if line.mnemonic is None:
            continue
        if line.mnemonic.upper() == Mnemonic.END.value:
            ctx.ended = True
            break
        try:
            _pass2_line(line, ctx, allocated, encoded)
        except AssemblerError as e:
            e.locate(line.line_num, line.raw)
            logger.error(f"{e.message} (l.{line.line_num})")
            raise
    return encoded


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass KUE-CHIP assembler.

    Usage:
        asm = Assembler('kuechip3')
        listing = asm.assemble(source_text)
        asm.symbols   # {'LOOP': 4, ...}
    """

    def __init__(self, mode: str = DEFAULT_TARGET, log_level: Optional[str] = None):
        self.profile = get_profile(mode)
        self.mode = mode.lower()
        if log_level:
            logging.getLogger('kue_assembler').setLevel(resolve_log_level(log_level))

        self.context: Optional[AssemblyContext] = None
        self.lines: List[AsmLine] = []                     # Tokenized source lines
        self.encoded: Dict[int, EncodedInstruction] = {}   # line number -> encoding
        self.listing: Optional[str] = None
        self.warnings: List[str] = []

    @property
    def addr_unit_bytes(self) -> int:
        return self.profile["addr_unit_bytes"]

    @property
    def symbols(self) -> Dict[str, int]:
        return self.context.symbols.as_dict() if self.context else {}

    @property
    def loc_addr(self) -> Optional[int]:
        return self.context.loc_addr if self.context else None

    def assemble(self, source: str) -> str:
        """Assemble source text and return the listing.

        Raises AssemblerError (or a subclass) on the first failing line; no
        partial listing is produced in that case.
        """
        self.context = AssemblyContext.for_target(self.mode)
        self.encoded = {}
        self.listing = None
        self.warnings = []

        logger.info(f"Start assemble ({self.mode})")
        try:
            self.lines = tokenize(source)
        except AssemblerError as e:
            logger.error(f"Failed to parse assembly program: {e}")
            raise

        logger.info("Start pass 1")
        allocated = run_pass1(self.lines, self.context)
        logger.debug(f"Symbols: {self.context.symbols.as_dict()}")

        logger.info("Start pass 2")
        self.encoded = run_pass2(self.lines, self.context, allocated)

        logger.info("Start generate")
        self.listing = render_listing(self.lines, self.encoded, self.addr_unit_bytes)

        if not self.context.ended:
            msg = "'END' instruction is not found"
            logger.warning(msg)
            self.warnings.append(msg)

        return self.listing

    def get_listing(self) -> str:
        return self.listing or ""


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str, mode: str = DEFAULT_TARGET, log_level: Optional[str] = None) -> str:
    """Assemble source text, return the listing."""
    return Assembler(mode, log_level).assemble(source)
