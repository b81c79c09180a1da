"""Immutable dataclasses shared by the cache, sources and tools.

Entities are the JSON objects returned by the directory API; the only
field the cache relies on is the string ``"id"``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping


Entity = Mapping[str, Any]


def entity_key(entity: Entity) -> str:
    return str(entity["id"])


@dataclass(frozen=True)
class Page:
    """One page of entities from a paginated listing."""

    items: List[Entity] = field(default_factory=list)
    total: int = 0
    has_more: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"items": [dict(e) for e in self.items], "total": self.total, "has_more": self.has_more}


@dataclass(frozen=True)
class SearchResult:
    items: List[Entity] = field(default_factory=list)
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"items": [dict(e) for e in self.items], "total": self.total}


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of a cache's contents.

    Field notes:
    - valid_entries: entries that are not expired yet
    - average_age: mean seconds since insertion across all entries
    - hit_rate: mean access count per entry (a proxy, not a true ratio)
    """

    size: int
    maxsize: int
    valid_entries: int = 0
    total_accesses: int = 0
    average_age: float = 0.0
    hit_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
