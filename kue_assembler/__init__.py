"""
KUE-CHIP Assembler
==================
A two-pass assembler for the KUE-CHIP2 and KUE-CHIP3 teaching CPUs.

Pipeline:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
    │  Source  │───>│  Lexer   │───>│  Pass 1  │───>│  Pass 2  │───>│ Listing  │
    │  (.asm)  │    │ (lines)  │    │ (labels) │    │ (encode) │    │  (.bin)  │
    └──────────┘    └──────────┘    └──────────┘    └──────────┘    └──────────┘

    - lexer.py:      Line tokenizer (label / mnemonic / operands / comment)
    - operands.py:   Operand shapes (register, immediate, [d], [IX+d], ...)
    - expression.py: Literals, labels and + - * / arithmetic
    - symbols.py:    Label table
    - encoder.py:    Opcode tables and addressing-mode dispatch
    - assembler.py:  Two-pass driver
    - listing.py:    Hex listing output
"""

__version__ = "1.0.0"

from .errors import (
    AssemblerError, LineSyntaxError, UnknownMnemonicError, OperandCountError,
    InvalidOperandError, UnresolvedSymbolError, UnsupportedDirectiveError,
    MissingLocAddressError, DuplicateLabelError, MissingLabelError,
    ExpressionError, TargetError,
)
from .config import TARGET_PROFILES, DEFAULT_TARGET
from .lexer import AsmLine, tokenize, tokenize_line
from .expression import evaluate, is_number
from .symbols import SymbolTable
from .encoder import Mnemonic, EncodedInstruction, encode
from .assembler import Assembler, AssemblyContext, assemble
from .listing import render_listing, to_hex
