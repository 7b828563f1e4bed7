from __future__ import annotations

from typing import List


class Registry:
    def __init__(self, kind: str = "item") -> None:
        self.kind = kind
        self._entries = {}

    def register(self, name: str, entry) -> None:
        if name in self._entries:
            raise ValueError(f"Duplicate {self.kind} registration: {name}")
        self._entries[name] = entry

    def get(self, name: str):
        try:
            return self._entries[name]
        except KeyError:
            raise KeyError(f"unknown {self.kind} '{name}', choose from: {', '.join(self.names())}") from None

    def names(self) -> List[str]:
        return sorted(self._entries)
