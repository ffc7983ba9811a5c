"""
Exception hierarchy for the KUE-CHIP assembler.

Every failure the assembler can report derives from AssemblerError. Errors are
raised where they are detected (evaluator, encoder, symbol table) without a
source position; the driver attaches the offending line before re-raising.
"""

from __future__ import annotations

__all__ = [
    'AssemblerError', 'LineSyntaxError', 'UnknownMnemonicError',
    'OperandCountError', 'InvalidOperandError', 'UnresolvedSymbolError',
    'UnsupportedDirectiveError', 'MissingLocAddressError',
    'DuplicateLabelError', 'MissingLabelError', 'ExpressionError',
    'TargetError',
]


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(self._format())

    def _format(self) -> str:
        if not self.line_num:
            return self.message
        if self.line_text.strip():
            return f"Line {self.line_num}: {self.message} [{self.line_text.strip()}]"
        return f"Line {self.line_num}: {self.message}"

    def locate(self, line_num: int, line_text: str = "") -> "AssemblerError":
        """Attach a source position, unless one is already set."""
        if not self.line_num:
            self.line_num = line_num
            self.line_text = line_text
            self.args = (self._format(),)
        return self


class LineSyntaxError(AssemblerError):
    """A line cannot be split into its structural parts."""


class UnknownMnemonicError(AssemblerError):
    pass


class OperandCountError(AssemblerError):
    pass


class InvalidOperandError(AssemblerError):
    """Operand shape is not accepted by the mnemonic (e.g. ST into a register)."""


class UnresolvedSymbolError(AssemblerError):
    pass


class UnsupportedDirectiveError(AssemblerError):
    pass


class MissingLocAddressError(AssemblerError):
    """DAT seen before any LOC has set the data address."""


class DuplicateLabelError(AssemblerError):
    pass


class MissingLabelError(AssemblerError):
    pass


class ExpressionError(AssemblerError):
    pass


class TargetError(AssemblerError):
    pass
