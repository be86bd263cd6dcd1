"""Flags entities whose names mark them as system or library types."""

from __future__ import annotations
from typing import Optional

from app.config import IgnoreConfig
from core.type_model import Entity


class IgnoreFilter:
    def __init__(self, config: Optional[IgnoreConfig] = None) -> None:
        self.config = config or IgnoreConfig()
        self._whitelist = frozenset(self.config.whitelist)
        self._prefixes = tuple(self.config.prefixes)
        self._suffixes = tuple(self.config.suffixes)

    def should_ignore(self, fully_qualified_name: str) -> bool:
        if not self.config.enabled or not fully_qualified_name:
            return False
        if fully_qualified_name in self._whitelist:
            return False
        if self._prefixes and fully_qualified_name.startswith(self._prefixes):
            return True
        return bool(self._suffixes) and fully_qualified_name.endswith(self._suffixes)

    def apply(self, entity: Entity) -> bool:
        entity.is_ignored = self.should_ignore(entity.fully_qualified_name)
        return entity.is_ignored


__all__ = ["IgnoreFilter"]
