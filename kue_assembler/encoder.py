"""
KUE-CHIP instruction encoder.

Every instruction is one opcode word, optionally followed by one operand
word, so its width is 1 or 2 address units. The width depends only on the
operand *shapes*, never on operand values, which is what lets pass 1
allocate addresses before any forward label is known:

    encode(line, ctx, allocate_only=True)   -> width only (pass 1)
    encode(line, ctx)                       -> opcode + operand (pass 2)

Both calls go through the same per-group planner, so the width reported in
pass 1 is the width emitted in pass 2.

Register/memory instructions (LD ST SBC ADC SUB ADD EOR OR AND CMP):

    opcode = base + (8 if op1 is IX else 0) + mode offset of op2

    op2        offset   operand word
    ACC          +0      -
    IX           +1      -
    d            +2      d
    [SP+d]       +3      d
    [d]          +4      d
    (d)          +5      d      (KUE-CHIP2 only)
    [IX+d]       +6      d
    (IX+d)       +7      d      (KUE-CHIP2 only)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple
import enum

from .errors import (
    InvalidOperandError, MissingLocAddressError, OperandCountError,
    UnknownMnemonicError, UnsupportedDirectiveError,
)
from .expression import evaluate
from .lexer import AsmLine
from .operands import Operand, OperandKind, parse_operand

if TYPE_CHECKING:
    from .assembler import AssemblyContext

__all__ = ['Mnemonic', 'Group', 'EncodedInstruction', 'encode', 'GROUPS']


class Mnemonic(enum.Enum):
    # Pseudo instructions
    EQU = "EQU"
    LOC = "LOC"
    END = "END"
    DAT = "DAT"
    PROG = "PROG"
    # Register / memory
    LD = "LD"
    ST = "ST"
    SBC = "SBC"
    ADC = "ADC"
    SUB = "SUB"
    ADD = "ADD"
    EOR = "EOR"
    OR = "OR"
    AND = "AND"
    CMP = "CMP"
    # Branches
    BA = "BA"
    BVF = "BVF"
    BNZ = "BNZ"
    BZP = "BZP"
    BP = "BP"
    BNI = "BNI"
    BNC = "BNC"
    BGE = "BGE"
    BGT = "BGT"
    BZN = "BZN"
    BNO = "BNO"
    BZ = "BZ"
    BN = "BN"
    BC = "BC"
    BLT = "BLT"
    BLE = "BLE"
    # Stack
    PSH = "PSH"
    POP = "POP"
    CAL = "CAL"
    RET = "RET"
    INC = "INC"
    DEC = "DEC"
    # Shift / rotate
    SRA = "SRA"
    SLA = "SLA"
    SRL = "SRL"
    SLL = "SLL"
    RRA = "RRA"
    RLA = "RLA"
    RRL = "RRL"
    RLL = "RLL"
    # No operand
    NOP = "NOP"
    HLT = "HLT"
    RCF = "RCF"
    SCF = "SCF"
    OUT = "OUT"
    IN = "IN"

    @classmethod
    def lookup(cls, text: str) -> "Mnemonic":
        try:
            return cls(text.upper())
        except ValueError:
            raise UnknownMnemonicError(f"Invalid mnemonic '{text}'") from None


class Group(enum.Enum):
    PSEUDO = "PSEUDO"            # EQU LOC END: handled by the driver
    DATA = "DATA"                # DAT
    UNSUPPORTED = "UNSUPPORTED"  # PROG
    ALU = "ALU"
    BRANCH = "BRANCH"
    CALL = "CALL"
    STACK = "STACK"
    SP_STEP = "SP_STEP"
    SHIFT = "SHIFT"
    FIXED = "FIXED"


# ──────────────────────────────────────────────
# Opcode tables
# ──────────────────────────────────────────────

M = Mnemonic

ALU_BASE: Dict[Mnemonic, int] = {
    M.LD: 0x60, M.ST: 0x70, M.SBC: 0x80, M.ADC: 0x90, M.SUB: 0xA0,
    M.ADD: 0xB0, M.EOR: 0xC0, M.OR: 0xD0, M.AND: 0xE0, M.CMP: 0xF0,
}

BRANCH_OPCODES: Dict[Mnemonic, int] = {
    M.BA: 0x30, M.BNZ: 0x31, M.BZP: 0x32, M.BP: 0x33,
    M.BNI: 0x34, M.BNC: 0x35, M.BGE: 0x36, M.BGT: 0x37,
    M.BVF: 0x38, M.BZ: 0x39, M.BN: 0x3A, M.BZN: 0x3B,
    M.BNO: 0x3C, M.BC: 0x3D, M.BLT: 0x3E, M.BLE: 0x3F,
}

SHIFT_BASE: Dict[Mnemonic, int] = {
    M.SRA: 0x40, M.SLA: 0x41, M.SRL: 0x42, M.SLL: 0x43,
    M.RRA: 0x44, M.RLA: 0x45, M.RRL: 0x46, M.RLL: 0x47,
}

FIXED_OPCODES: Dict[Mnemonic, int] = {
    M.NOP: 0x00, M.HLT: 0x0F, M.RCF: 0x20, M.SCF: 0x28,
    M.OUT: 0x10, M.IN: 0x1F, M.RET: 0x0D,
}

STACK_OPCODES: Dict[Mnemonic, Dict[str, int]] = {
    M.PSH: {'ACC': 0x08, 'IX': 0x09},
    M.POP: {'ACC': 0x0A, 'IX': 0x0B},
}

SP_STEP_OPCODES: Dict[Mnemonic, int] = {M.INC: 0x04, M.DEC: 0x05}

# ADD SP,d / SUB SP,d
SP_ARITH_OPCODES: Dict[Mnemonic, int] = {M.ADD: 0x06, M.SUB: 0x07}

# LD between IX and SP, LD SP,d
LD_IX_SP = 0x01
LD_SP_IMM = 0x02
LD_SP_IX = 0x03

CAL_OPCODE = 0x0C

GROUPS: Dict[Mnemonic, Group] = {M.EQU: Group.PSEUDO, M.LOC: Group.PSEUDO, M.END: Group.PSEUDO,
                                 M.DAT: Group.DATA, M.PROG: Group.UNSUPPORTED,
                                 M.CAL: Group.CALL}
GROUPS.update({m: Group.ALU for m in ALU_BASE})
GROUPS.update({m: Group.BRANCH for m in BRANCH_OPCODES})
GROUPS.update({m: Group.SHIFT for m in SHIFT_BASE})
GROUPS.update({m: Group.FIXED for m in FIXED_OPCODES})
GROUPS.update({m: Group.STACK for m in STACK_OPCODES})
GROUPS.update({m: Group.SP_STEP for m in SP_STEP_OPCODES})

_ungrouped = set(Mnemonic) - set(GROUPS)
if _ungrouped:
    raise RuntimeError(f"Mnemonics without an encoding group: {sorted(m.value for m in _ungrouped)}")


@dataclass
class EncodedInstruction:
    """Encoding of one source line.

    For DAT lines `opcode` holds the data word and `addr` is a data address;
    `width` counts code address units only, so it is 0 for DAT and the
    pseudo instructions.
    """
    width: int = 0
    opcode: Optional[int] = None
    operand: Optional[int] = None
    addr: Optional[int] = None
    is_data: bool = False


# (opcode, operand expression or None)
Plan = Tuple[int, Optional[str]]


def _expect_operands(mnem: Mnemonic, line: AsmLine, count: int) -> None:
    if line.operand_count != count:
        plural = "operand" if count == 1 else "operands"
        raise OperandCountError(
            f"Expected {count} {plural} for {mnem.value}, got {line.operand_count}")


def _target(mnem: Mnemonic, text: str) -> str:
    """Branch / call target: a plain expression."""
    op = parse_operand(text)
    if op.kind is not OperandKind.IMMEDIATE:
        raise InvalidOperandError(f"Invalid target '{text}' for {mnem.value}")
    return op.expr


def _mode_offset(mnem: Mnemonic, op: Operand, ctx: "AssemblyContext") -> Plan:
    """Opcode offset and operand expression selected by the second operand."""
    if op.kind is OperandKind.REGISTER:
        if mnem is M.ST:
            raise InvalidOperandError(
                f"Invalid operand '{op.register}' of 'ST' (use 'LD' to set registers)")
        if op.register == 'ACC':
            return 0, None
        if op.register == 'IX':
            return 1, None
        raise InvalidOperandError(f"Invalid operand '{op.register}' for {mnem.value}")

    if op.legacy and not ctx.legacy_operands:
        raise InvalidOperandError(
            f"Parenthesized operand '{op.text}' is only available on kuechip2")

    if op.kind is OperandKind.IMMEDIATE:
        if mnem is M.ST:
            raise InvalidOperandError(
                f"Invalid operand '{op.text}' of 'ST' (an immediate cannot be a destination)")
        return 2, op.expr

    if op.kind is OperandKind.INDIRECT:
        return (5 if op.legacy else 4), op.expr

    # INDEXED
    if op.register == 'SP':
        if op.legacy:
            raise InvalidOperandError(f"Invalid operand '{op.text}' (use [SP+d])")
        return 3, op.expr
    return (7 if op.legacy else 6), op.expr


def _plan_alu(mnem: Mnemonic, line: AsmLine, ctx: "AssemblyContext") -> Plan:
    _expect_operands(mnem, line, 2)
    op1 = parse_operand(line.op1)
    op2 = parse_operand(line.op2)

    # Stack pointer transfers and arithmetic
    if mnem is M.LD and op1.is_register('SP'):
        if op2.is_register('IX'):
            return LD_SP_IX, None
        if op2.kind is OperandKind.IMMEDIATE:
            return LD_SP_IMM, op2.expr
        raise InvalidOperandError(f"Invalid operand '{line.op2}' for LD SP")
    if mnem is M.LD and op1.is_register('IX') and op2.is_register('SP'):
        return LD_IX_SP, None
    if mnem in SP_ARITH_OPCODES and op1.is_register('SP'):
        if op2.kind is not OperandKind.IMMEDIATE:
            raise InvalidOperandError(f"Invalid operand '{line.op2}' for {mnem.value} SP")
        return SP_ARITH_OPCODES[mnem], op2.expr

    if op1.is_register('ACC'):
        opcode = ALU_BASE[mnem]
    elif op1.is_register('IX'):
        opcode = ALU_BASE[mnem] + 8
    else:
        raise InvalidOperandError(f"Invalid operand '{line.op1}' for {mnem.value}")

    offset, expr = _mode_offset(mnem, op2, ctx)
    return opcode + offset, expr


def _plan_branch(mnem: Mnemonic, line: AsmLine, ctx: "AssemblyContext") -> Plan:
    _expect_operands(mnem, line, 1)
    return BRANCH_OPCODES[mnem], _target(mnem, line.op1)


def _plan_call(mnem: Mnemonic, line: AsmLine, ctx: "AssemblyContext") -> Plan:
    _expect_operands(mnem, line, 1)
    return CAL_OPCODE, _target(mnem, line.op1)


def _plan_stack(mnem: Mnemonic, line: AsmLine, ctx: "AssemblyContext") -> Plan:
    _expect_operands(mnem, line, 1)
    op = parse_operand(line.op1)
    if not op.is_register('ACC', 'IX'):
        raise InvalidOperandError(f"Invalid operand '{line.op1}' for {mnem.value} (ACC or IX)")
    return STACK_OPCODES[mnem][op.register], None


def _plan_sp_step(mnem: Mnemonic, line: AsmLine, ctx: "AssemblyContext") -> Plan:
    _expect_operands(mnem, line, 1)
    if not parse_operand(line.op1).is_register('SP'):
        raise InvalidOperandError(f"Invalid operand '{line.op1}' for {mnem.value} (only SP)")
    return SP_STEP_OPCODES[mnem], None


def _plan_shift(mnem: Mnemonic, line: AsmLine, ctx: "AssemblyContext") -> Plan:
    _expect_operands(mnem, line, 1)
    op = parse_operand(line.op1)
    if op.is_register('ACC'):
        return SHIFT_BASE[mnem], None
    if op.is_register('IX'):
        return SHIFT_BASE[mnem] + 8, None
    raise InvalidOperandError(f"Invalid operand '{line.op1}' for {mnem.value} (ACC or IX)")


def _plan_fixed(mnem: Mnemonic, line: AsmLine, ctx: "AssemblyContext") -> Plan:
    _expect_operands(mnem, line, 0)
    return FIXED_OPCODES[mnem], None


_PLANNERS: Dict[Group, Callable[[Mnemonic, AsmLine, "AssemblyContext"], Plan]] = {
    Group.ALU: _plan_alu,
    Group.BRANCH: _plan_branch,
    Group.CALL: _plan_call,
    Group.STACK: _plan_stack,
    Group.SP_STEP: _plan_sp_step,
    Group.SHIFT: _plan_shift,
    Group.FIXED: _plan_fixed,
}


def encode(line: AsmLine, ctx: "AssemblyContext", allocate_only: bool = False) -> EncodedInstruction:
    """Encode one mnemonic-bearing line.

    With allocate_only the result only carries the width (in address units)
    and no expression is evaluated, so forward references are fine. Without
    it every operand expression is evaluated against ctx.symbols.
    """
    mnem = Mnemonic.lookup(line.mnemonic)
    group = GROUPS[mnem]

    if group is Group.PSEUDO:
        return EncodedInstruction(width=0)

    if group is Group.UNSUPPORTED:
        raise UnsupportedDirectiveError(f"'{mnem.value}' is not supported")

    if group is Group.DATA:
        _expect_operands(mnem, line, 1)
        if allocate_only:
            return EncodedInstruction(width=0, is_data=True)
        if ctx.loc_addr is None:
            raise MissingLocAddressError("Address for DAT is not defined (no LOC before DAT)")
        return EncodedInstruction(width=0, is_data=True,
                                  opcode=evaluate(line.op1, ctx.symbols))

    opcode, expr = _PLANNERS[group](mnem, line, ctx)
    width = 1 if expr is None else 2
    if allocate_only:
        return EncodedInstruction(width=width)

    operand = evaluate(expr, ctx.symbols) if expr is not None else None
    return EncodedInstruction(width=width, opcode=opcode, operand=operand)
