"""
Tokenizer and operand parser tests.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from kue_assembler.errors import InvalidOperandError, LineSyntaxError
from kue_assembler.lexer import tokenize, tokenize_line
from kue_assembler.operands import OperandKind, parse_operand


class TestTokenizeLine:

    def test_full_line(self):
        t = tokenize_line("LOOP:   ADD  ACC, 1   ;; step", 3)
        assert t.line_num == 3
        assert t.label == "LOOP"
        assert t.mnemonic == "ADD"
        assert t.op1 == "ACC"
        assert t.op2 == "1"
        assert t.comment == " step"

    def test_comment_markers(self):
        for marker in ("#", ";;", "//"):
            t = tokenize_line(f"        HLT     {marker} stop here")
            assert t.mnemonic == "HLT"
            assert t.op1 is None
            assert t.comment == " stop here"

    def test_first_comment_marker_wins(self):
        t = tokenize_line("NOP // a # b")
        assert t.comment == " a # b"

    def test_star_is_not_a_comment(self):
        t = tokenize_line("        LD   ACC, 2*3")
        assert t.op2 == "2*3"
        assert t.comment is None

    def test_second_operand_keeps_inner_blanks(self):
        t = tokenize_line("        LD   ACC, [SP+ 2]")
        assert t.op1 == "ACC"
        assert t.op2 == "[SP+ 2]"

    def test_operands_without_blank(self):
        t = tokenize_line("LD ACC,IX")
        assert (t.op1, t.op2) == ("ACC", "IX")

    def test_no_blank_after_comma_with_blank_inside_brackets(self):
        t = tokenize_line("LD ACC,[SP+ 2]")
        assert (t.op1, t.op2) == ("ACC", "[SP+ 2]")

    def test_tabs_separate_tokens(self):
        t = tokenize_line("\tBA\tLOOP")
        assert (t.mnemonic, t.op1) == ("BA", "LOOP")

    def test_blank_and_comment_only_lines(self):
        assert tokenize_line("").is_blank
        assert tokenize_line("      ").is_blank
        assert tokenize_line("# just a comment").is_blank

    def test_label_only_line(self):
        t = tokenize_line("START:")
        assert t.label == "START"
        assert t.mnemonic is None
        assert not t.is_blank

    def test_label_without_space(self):
        t = tokenize_line("X:NOP")
        assert (t.label, t.mnemonic) == ("X", "NOP")

    def test_case_is_preserved(self):
        t = tokenize_line("loop: ld acc, ix")
        assert (t.label, t.mnemonic, t.op1, t.op2) == ("loop", "ld", "acc", "ix")

    def test_malformed_label(self):
        with pytest.raises(LineSyntaxError, match="Line 7"):
            tokenize_line("BAD-LABEL: NOP", 7)

    def test_raw_text_kept(self):
        t = tokenize_line("  NOP  # x\r")
        assert t.raw == "  NOP  # x"


class TestTokenize:

    def test_line_numbers_start_at_one(self):
        lines = tokenize("NOP\n\nHLT")
        assert [l.line_num for l in lines] == [1, 2, 3]
        assert lines[1].is_blank

    def test_trailing_newline_gives_empty_line(self):
        lines = tokenize("NOP\n")
        assert len(lines) == 2
        assert lines[1].raw == ""


class TestParseOperand:

    def test_registers(self):
        for name in ("ACC", "ix", "Sp"):
            op = parse_operand(name)
            assert op.kind is OperandKind.REGISTER
            assert op.register == name.upper()

    def test_immediate(self):
        op = parse_operand("label+2")
        assert op.kind is OperandKind.IMMEDIATE
        assert op.expr == "LABEL+2"

    def test_indirect(self):
        op = parse_operand("[80H]")
        assert op.kind is OperandKind.INDIRECT
        assert op.expr == "80H"
        assert not op.legacy

    def test_legacy_indirect(self):
        op = parse_operand("(DATA)")
        assert op.kind is OperandKind.INDIRECT
        assert op.legacy

    def test_indexed(self):
        op = parse_operand("[IX+ 3]")
        assert (op.kind, op.register, op.expr) == (OperandKind.INDEXED, "IX", "3")
        op = parse_operand("[SP]")
        assert (op.kind, op.register, op.expr) == (OperandKind.INDEXED, "SP", "0")
        op = parse_operand("[IX-1]")
        assert op.expr == "-1"
        op = parse_operand("(IX+OFS)")
        assert op.legacy and op.expr == "OFS"

    def test_label_starting_with_register_name(self):
        op = parse_operand("[SPEED]")
        assert op.kind is OperandKind.INDIRECT
        assert op.expr == "SPEED"

    def test_invalid_shapes(self):
        for text in ("[]", "[SP+]", "A.B", "[1", "@X"):
            with pytest.raises(InvalidOperandError):
                parse_operand(text)
