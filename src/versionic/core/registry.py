"""
Explicit kind ➜ record class registry.

Snapshots point at their owner by ``(owner_id, owner_kind)``; the kind is
resolved to a class here instead of by importing a class name at runtime.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, Type

if TYPE_CHECKING:
    from .record import Record


def snake(name: str) -> str:
    """CamelCase ➜ snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class RecordRegistry:
    def __init__(self) -> None:
        self._kinds: Dict[str, Type[Record]] = {}

    def register(self, kind: str, record_cls: Type[Record]) -> None:
        existing = self._kinds.get(kind)
        if existing is not None and existing.__qualname__ != record_cls.__qualname__:
            raise ValueError(
                f"record kind {kind!r} is already bound to {existing.__qualname__}"
            )
        self._kinds[kind] = record_cls

    def resolve(self, kind: str) -> Type[Record]:
        try:
            return self._kinds[kind]
        except KeyError:
            raise LookupError(f"unknown record kind {kind!r}") from None

    def kinds(self) -> list[str]:
        return sorted(self._kinds)

    def __contains__(self, kind: str) -> bool:
        return kind in self._kinds


registry = RecordRegistry()
