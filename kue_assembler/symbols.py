"""
Symbol table: label / EQU name -> integer value.

Names are case-insensitive and stored uppercase. A name is bound once per
assembly run; binding it again is a source error.
"""

from __future__ import annotations
from typing import Dict, Iterator, Optional
import logging

from .errors import DuplicateLabelError

__all__ = ['SymbolTable']

logger = logging.getLogger(__name__)


class SymbolTable:
    """Case-insensitive name -> value mapping with single assignment."""

    def __init__(self):
        self._symbols: Dict[str, int] = {}
        self._defined_at: Dict[str, int] = {}   # name -> source line number

    @staticmethod
    def normalize(name: str) -> str:
        return name.strip().upper()

    def bind(self, name: str, value: int, line_num: int = 0) -> None:
        key = self.normalize(name)
        if key in self._symbols:
            where = self._defined_at.get(key)
            suffix = f" (first defined at line {where})" if where else ""
            raise DuplicateLabelError(f"Label '{key}' is already defined{suffix}")
        self._symbols[key] = value
        self._defined_at[key] = line_num
        logger.debug(f"Bind {key} = {value} (l.{line_num})")

    def resolve(self, name: str) -> Optional[int]:
        return self._symbols.get(self.normalize(name))

    def as_dict(self) -> Dict[str, int]:
        return dict(self._symbols)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.normalize(name) in self._symbols

    def __getitem__(self, name: str) -> int:
        return self._symbols[self.normalize(name)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def __repr__(self) -> str:
        return f"SymbolTable({self._symbols!r})"
