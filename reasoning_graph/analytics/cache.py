"""Capacity-bounded least-recently-used result cache."""

from __future__ import annotations

import copy
from collections import OrderedDict
from typing import Any, Dict, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


class LRUCache(Generic[V]):
    """Ordered-dict LRU. ``get`` refreshes recency; ``put`` evicts the stalest entry.

    Values are deep-copied on the way in and out so callers can never mutate a
    cached result.
    """

    def __init__(self, capacity: int = 128):
        if capacity < 1:
            raise ValueError("LRU cache capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[Hashable, V]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def get(self, key: Hashable) -> Optional[V]:
        if key not in self._entries:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return copy.deepcopy(self._entries[key])

    def put(self, key: Hashable, value: V) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = copy.deepcopy(value)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)
            self.evictions += 1

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "capacity": self.capacity,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }
