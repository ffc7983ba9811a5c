"""
Instruction encoder tests: opcode tables, addressing modes, widths.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from kue_assembler.assembler import AssemblyContext
from kue_assembler.encoder import GROUPS, Group, Mnemonic, encode
from kue_assembler.errors import (
    InvalidOperandError, MissingLocAddressError, OperandCountError,
    UnknownMnemonicError, UnresolvedSymbolError, UnsupportedDirectiveError,
)
from kue_assembler.lexer import tokenize_line


def _encode(text, mode="kuechip3", symbols=None):
    ctx = AssemblyContext.for_target(mode)
    for name, value in (symbols or {}).items():
        ctx.symbols.bind(name, value)
    enc = encode(tokenize_line(text), ctx)
    return enc.opcode, enc.operand


class TestAluModes:

    def test_register_sources(self):
        assert _encode("LD ACC, ACC") == (0x60, None)
        assert _encode("LD ACC, IX") == (0x61, None)
        assert _encode("LD IX, ACC") == (0x68, None)
        assert _encode("SUB IX, ACC") == (0xA8, None)
        assert _encode("EOR ACC, ACC") == (0xC0, None)
        assert _encode("OR ACC, IX") == (0xD1, None)

    def test_immediate(self):
        assert _encode("LD ACC, 12H") == (0x62, 18)
        assert _encode("ADD ACC, 1") == (0xB2, 1)
        assert _encode("SBC ACC, 1") == (0x82, 1)
        assert _encode("ADC ACC, 1") == (0x92, 1)
        assert _encode("AND ACC, 0FH") == (0xE2, 15)
        assert _encode("LD ACC, -1") == (0x62, -1)

    def test_stack_relative(self):
        assert _encode("LD ACC, [SP+2]") == (0x63, 2)
        assert _encode("LD ACC, [SP]") == (0x63, 0)
        assert _encode("LD ACC, [SP+ 2]") == (0x63, 2)
        assert _encode("LD ACC,[SP+ 2]") == (0x63, 2)
        assert _encode("CMP IX, [SP+1]") == (0xFB, 1)

    def test_absolute(self):
        assert _encode("LD ACC, [80H]") == (0x64, 128)
        assert _encode("ST ACC, [10H]") == (0x74, 16)
        assert _encode("ADD ACC, [DATA]", symbols={"DATA": 0x20}) == (0xB4, 0x20)

    def test_index_relative(self):
        assert _encode("LD ACC, [IX+1]") == (0x66, 1)
        assert _encode("LD ACC, [IX]") == (0x66, 0)
        assert _encode("LD IX, [IX-1]") == (0x6E, -1)
        assert _encode("ST IX, [IX+2]") == (0x7E, 2)

    def test_legacy_forms_on_kuechip2(self):
        assert _encode("LD ACC, (10H)", mode="kuechip2") == (0x65, 16)
        assert _encode("LD ACC, (IX+3)", mode="kuechip2") == (0x67, 3)
        assert _encode("ST ACC, (IX)", mode="kuechip2") == (0x77, 0)

    def test_legacy_forms_rejected_on_kuechip3(self):
        for text in ("LD ACC, (10H)", "LD ACC, (IX+3)"):
            with pytest.raises(InvalidOperandError, match="kuechip2"):
                _encode(text)

    def test_store_destinations(self):
        for text in ("ST ACC, ACC", "ST ACC, IX", "ST ACC, 5"):
            with pytest.raises(InvalidOperandError):
                _encode(text)

    def test_invalid_registers(self):
        for text in ("LD ACC, SP", "ADD 5, ACC", "LD [10H], ACC"):
            with pytest.raises(InvalidOperandError):
                _encode(text)


class TestStackPointer:

    def test_transfers(self):
        assert _encode("LD IX, SP") == (0x01, None)
        assert _encode("LD SP, IX") == (0x03, None)
        assert _encode("LD SP, 100H") == (0x02, 256)

    def test_arithmetic(self):
        assert _encode("ADD SP, 2") == (0x06, 2)
        assert _encode("SUB SP, 2") == (0x07, 2)

    def test_step(self):
        assert _encode("INC SP") == (0x04, None)
        assert _encode("DEC SP") == (0x05, None)
        with pytest.raises(InvalidOperandError):
            _encode("INC ACC")

    def test_invalid(self):
        for text in ("LD SP, ACC", "ADD SP, IX"):
            with pytest.raises(InvalidOperandError):
                _encode(text)


class TestOtherGroups:

    def test_branches(self):
        expected = {
            "BA": 0x30, "BNZ": 0x31, "BZP": 0x32, "BP": 0x33,
            "BNI": 0x34, "BNC": 0x35, "BGE": 0x36, "BGT": 0x37,
            "BVF": 0x38, "BZ": 0x39, "BN": 0x3A, "BZN": 0x3B,
            "BNO": 0x3C, "BC": 0x3D, "BLT": 0x3E, "BLE": 0x3F,
        }
        for name, opcode in expected.items():
            assert _encode(f"{name} 10H") == (opcode, 16)

    def test_branch_target_must_be_expression(self):
        with pytest.raises(InvalidOperandError):
            _encode("BA [10H]")

    def test_push_pop(self):
        assert _encode("PSH ACC") == (0x08, None)
        assert _encode("PSH IX") == (0x09, None)
        assert _encode("POP ACC") == (0x0A, None)
        assert _encode("POP IX") == (0x0B, None)
        with pytest.raises(InvalidOperandError):
            _encode("PSH SP")

    def test_call(self):
        assert _encode("CAL SUBR", symbols={"SUBR": 0x40}) == (0x0C, 0x40)
        assert _encode("RET") == (0x0D, None)

    def test_shifts(self):
        assert _encode("SRA ACC") == (0x40, None)
        assert _encode("SLL IX") == (0x4B, None)
        assert _encode("RLL IX") == (0x4F, None)
        assert _encode("rra acc") == (0x44, None)

    def test_fixed(self):
        expected = {"NOP": 0x00, "HLT": 0x0F, "RCF": 0x20, "SCF": 0x28,
                    "OUT": 0x10, "IN": 0x1F}
        for name, opcode in expected.items():
            assert _encode(name) == (opcode, None)

    def test_every_mnemonic_has_a_group(self):
        assert set(GROUPS) == set(Mnemonic)
        assert GROUPS[Mnemonic.PROG] is Group.UNSUPPORTED


class TestErrors:

    def test_operand_count(self):
        for text in ("LD ACC", "HLT ACC", "BA", "PSH", "RET ACC", "DAT"):
            with pytest.raises(OperandCountError):
                _encode(text)

    def test_unknown_mnemonic(self):
        with pytest.raises(UnknownMnemonicError, match="FOO"):
            _encode("FOO ACC")

    def test_prog_is_unsupported(self):
        with pytest.raises(UnsupportedDirectiveError):
            _encode("PROG")

    def test_undefined_symbol(self):
        with pytest.raises(UnresolvedSymbolError):
            _encode("LD ACC, FOO")

    def test_dat_needs_loc(self):
        with pytest.raises(MissingLocAddressError):
            _encode("DAT 1")


class TestWidths:

    LINES = [
        "LD ACC, IX", "LD ACC, 5", "ST ACC, [SP+1]", "ADD IX, [IX+2]",
        "LD SP, 10H", "LD IX, SP", "ADD SP, 1", "INC SP", "BA 0", "CAL 0",
        "PSH ACC", "SLA ACC", "NOP", "HLT",
    ]

    def test_allocation_matches_encoding(self):
        for text in self.LINES:
            ctx = AssemblyContext.for_target("kuechip3")
            line = tokenize_line(text)
            planned = encode(line, ctx, allocate_only=True)
            full = encode(line, ctx)
            assert planned.width == full.width, text
            assert full.width == (1 if full.operand is None else 2), text

    def test_allocation_does_not_evaluate(self):
        ctx = AssemblyContext.for_target("kuechip3")
        enc = encode(tokenize_line("BA LATER"), ctx, allocate_only=True)
        assert enc.width == 2
        assert enc.opcode is None

    def test_data_and_pseudo_widths(self):
        ctx = AssemblyContext.for_target("kuechip3")
        ctx.loc_addr = 0x10
        dat = encode(tokenize_line("DAT 5"), ctx)
        assert (dat.width, dat.opcode, dat.is_data) == (0, 5, True)
        assert encode(tokenize_line("EQU 1"), ctx).width == 0
