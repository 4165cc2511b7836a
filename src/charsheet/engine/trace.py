from __future__ import annotations
from typing import Dict, Iterable, List, Optional

class TraceSession:
    """Explain lines collected during one calculation, optionally keyed by property."""

    def __init__(self) -> None:
        self.lines: List[str] = []
        self._by_property: Dict[str, List[str]] = {}

    def add(self, line: str, prop: Optional[str] = None) -> None:
        self.lines.append(line)
        if prop is not None:
            self._by_property.setdefault(prop, []).append(line)

    def dump(self, properties: Optional[Iterable[str]] = None) -> list[str]:
        if properties is None:
            return list(self.lines)
        out: list[str] = []
        for p in properties:
            out.extend(self._by_property.get(p, []))
        return out
