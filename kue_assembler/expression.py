"""
Expression evaluator.

Supports decimal literals (123, -5), hexadecimal literals with an H suffix
(12H, 0FFH), symbol references and the four arithmetic operators with the
usual precedence (* and / bind tighter than + and -). Division truncates
toward zero so every result stays an integer.

Symbols must already be bound: the assembler only evaluates operands in
pass 2, when the symbol table is complete, so an unknown name is an error
rather than something to retry later.
"""

from __future__ import annotations
from typing import List, Mapping, Optional, Union
import logging
import re

from .errors import ExpressionError, UnresolvedSymbolError

__all__ = ['evaluate', 'is_number']

logger = logging.getLogger(__name__)

_OPERATORS = ('+', '-', '*', '/')
_SPLIT_RE = re.compile(r'([+\-*/])')
_HEX_RE = re.compile(r'^[0-9A-F]+H$', re.IGNORECASE)
_DEC_RE = re.compile(r'^[+-]?[0-9]+$')


def is_number(text: str) -> bool:
    """True for a decimal or H-suffixed hexadecimal literal."""
    text = re.sub(r'\s+', '', text)
    return bool(_DEC_RE.match(text) or _HEX_RE.match(text))


def evaluate(expression: str, symbols: Optional[Mapping[str, int]] = None) -> int:
    """Evaluate an expression string to an integer.

    Args:
        expression: Source text, e.g. '12H', 'TABLE+2', 'N*2-1'.
        symbols: Symbol table (anything supporting `in` and `[]` with
            uppercase names).

    Raises:
        UnresolvedSymbolError: a term is neither a literal nor a bound symbol.
        ExpressionError: malformed arithmetic (dangling operator, x/0).
    """
    if symbols is None:
        symbols = {}
    expr = re.sub(r'\s+', '', expression)
    if not expr:
        raise ExpressionError("Empty expression")

    if any(op in expr for op in _OPERATORS):
        return _evaluate_arithmetic(expr, symbols)

    # Hexadecimal
    if _HEX_RE.match(expr):
        return int(expr[:-1], 16)

    # Decimal
    if _DEC_RE.match(expr):
        return int(expr)

    # Label
    name = expr.upper()
    if name in symbols:
        return symbols[name]

    raise UnresolvedSymbolError(f"'{expression}' cannot be evaluated (undefined symbol)")


def _evaluate_arithmetic(expr: str, symbols: Mapping[str, int]) -> int:
    items: List[Union[int, str]] = []
    sign = 1
    expect_term = True

    for token in _SPLIT_RE.split(expr):
        if token == '':
            continue
        if token in _OPERATORS:
            if expect_term:
                # Unary sign: leading, or directly after another operator
                if token == '-':
                    sign = -sign
                elif token != '+':
                    raise ExpressionError(f"Unexpected '{token}' in expression '{expr}'")
                continue
            items.append(token)
            expect_term = True
        else:
            value = evaluate(token, symbols)
            logger.debug(f"Evaluate term: {token} -> {value}")
            items.append(sign * value)
            sign = 1
            expect_term = False

    if expect_term:
        raise ExpressionError(f"Dangling operator in expression '{expr}'")

    # * and / first, then + and -, both left to right
    terms: List[Union[int, str]] = [items[0]]
    for i in range(1, len(items), 2):
        op, value = items[i], items[i + 1]
        if op == '*':
            terms[-1] = terms[-1] * value
        elif op == '/':
            terms[-1] = _divide(terms[-1], value, expr)
        else:
            terms.extend((op, value))

    result = terms[0]
    for i in range(1, len(terms), 2):
        if terms[i] == '+':
            result += terms[i + 1]
        else:
            result -= terms[i + 1]

    logger.debug(f"Evaluate expression: {expr} -> {result}")
    return result


def _divide(dividend: int, divisor: int, expr: str) -> int:
    if divisor == 0:
        raise ExpressionError(f"Division by zero in expression '{expr}'")
    quotient = abs(dividend) // abs(divisor)
    return quotient if (dividend < 0) == (divisor < 0) else -quotient
