"""
Line tokenizer for KUE-CHIP assembly source.

Splits each source line into label, mnemonic, up to two operands and a
trailing comment. The tokenizer knows nothing about instruction semantics:
absent fields stay None. The only error is a malformed label ("MY-LABEL:").

    LOOP:   ADD  ACC, [IX+2]    ;; running sum
    ^label  ^mnemonic ^op1 ^op2  ^comment
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional
import re

from .errors import LineSyntaxError

__all__ = ['AsmLine', 'tokenize_line', 'tokenize']

# '#', ';;' or '//' starts a comment. '*' is multiplication, not a comment.
_COMMENT_RE = re.compile(r'(#|;;|//)(?P<comment>.*)$')
_LABEL_RE = re.compile(r'^(?P<label>[A-Za-z0-9_]+)\s*:')
_BLANKS_RE = re.compile(r'[ \t]+')


@dataclass
class AsmLine:
    """Tokenized assembly source line."""
    line_num: int = 0
    raw: str = ""
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    op1: Optional[str] = None
    op2: Optional[str] = None
    comment: Optional[str] = None

    @property
    def is_blank(self) -> bool:
        """True for empty and comment-only lines."""
        return self.label is None and self.mnemonic is None

    @property
    def operand_count(self) -> int:
        return (self.op1 is not None) + (self.op2 is not None)


def tokenize_line(line: str, line_num: int = 0) -> AsmLine:
    """Tokenize one line into label, mnemonic, operands and comment."""
    raw = line.rstrip('\r')
    result = AsmLine(line_num=line_num, raw=raw)
    text = raw.strip()

    # Strip comment
    match = _COMMENT_RE.search(text)
    if match:
        result.comment = match.group('comment')
        text = text[:match.start()].strip()

    # Strip leading label
    match = _LABEL_RE.match(text)
    if match:
        result.label = match.group('label')
        text = text[match.end():].strip()

    if not text:
        return result

    tokens = _BLANKS_RE.split(text)
    if tokens[0].endswith(':'):
        raise LineSyntaxError(f"Invalid label '{tokens[0][:-1]}'", line_num, raw)
    result.mnemonic = tokens.pop(0)

    if tokens:
        # "ACC," or "ACC,IX" / "ACC,[SP+" with no blank after the comma
        op1, _, rest = tokens.pop(0).partition(',')
        if rest:
            tokens.insert(0, rest)
        result.op1 = op1

    # The second operand may contain blanks, e.g. "[SP+ 2]"
    if tokens:
        result.op2 = ' '.join(tokens)

    return result


def tokenize(source: str) -> List[AsmLine]:
    """Tokenize a whole source text; line numbers start at 1."""
    return [tokenize_line(line, i) for i, line in enumerate(source.split('\n'), 1)]
