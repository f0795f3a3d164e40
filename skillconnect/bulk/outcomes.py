"""Typed per-item results accumulated by the bulk engine."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from skillconnect.errors import ItemError


@dataclass(frozen=True)
class ItemSuccess:
    item: Any


@dataclass(frozen=True)
class ItemFailure:
    item: Any
    error: str
    line_number: Optional[int] = None

    @classmethod
    def from_error(cls, error: ItemError, item: Any = None, line_number: Optional[int] = None) -> "ItemFailure":
        return cls(
            item=error.item if error.item is not None else item,
            error=error.message,
            line_number=error.line_number if error.line_number is not None else line_number,
        )


ItemOutcome = Union[ItemSuccess, ItemFailure]
