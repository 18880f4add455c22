"""Bounded, self-cleaning storage for gaps, placeholders and fill strategies."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, TypeVar

from reasoning_graph.errors import GapNotFoundError
from reasoning_graph.models.config import GapSettings
from reasoning_graph.models.enums import MemoryPressure
from reasoning_graph.models.gaps import GapFillStrategy, KnowledgeGap, MemoryStats, PlaceholderNode, utc_now
from reasoning_graph.utils.structured_log import log_gap_sweep

logger = logging.getLogger(__name__)

V = TypeVar("V")


def _evict_oldest(store: "OrderedDict[str, V]", cap: int, stamp: Callable[[V], datetime]) -> int:
    overflow = len(store) - cap
    if overflow <= 0:
        return 0
    oldest = sorted(store, key=lambda key: stamp(store[key]))[:overflow]
    for key in oldest:
        del store[key]
    return overflow


class GapRegistry:
    """Three bounded maps owned by one detector instance.

    ``clock`` returns the current aware datetime and is injectable so that
    age-based expiry can be exercised without waiting.
    """

    def __init__(self, settings: Optional[GapSettings] = None, clock: Callable[[], datetime] = utc_now):
        self.settings = settings or GapSettings()
        self.clock = clock
        self.gaps: "OrderedDict[str, KnowledgeGap]" = OrderedDict()
        self.placeholders: "OrderedDict[str, PlaceholderNode]" = OrderedDict()
        self.strategies: "OrderedDict[str, GapFillStrategy]" = OrderedDict()
        self.last_cleanup: Optional[datetime] = None
        self._lock = threading.RLock()

    # Gaps

    def add_gap(self, gap: KnowledgeGap) -> KnowledgeGap:
        """Insert or refresh a gap; progress already recorded against the id is kept."""
        with self._lock:
            existing = self.gaps.get(gap.id)
            if existing is not None and existing.metadata.evidence_count:
                gap = gap.model_copy(
                    update={
                        "confidence": existing.confidence,
                        "metadata": gap.metadata.model_copy(
                            update={
                                "evidence_count": existing.metadata.evidence_count,
                                "completion_percentage": existing.metadata.completion_percentage,
                                "status": existing.metadata.status,
                            }
                        ),
                    }
                )
            self.gaps[gap.id] = gap
            self.gaps.move_to_end(gap.id)
            return gap

    def get_gap(self, gap_id: str) -> KnowledgeGap:
        with self._lock:
            gap = self.gaps.get(gap_id)
        if gap is None:
            raise GapNotFoundError(gap_id)
        return gap

    def update_gap(self, gap: KnowledgeGap) -> None:
        with self._lock:
            if gap.id not in self.gaps:
                raise GapNotFoundError(gap.id)
            self.gaps[gap.id] = gap

    def list_gaps(self) -> List[KnowledgeGap]:
        with self._lock:
            return list(self.gaps.values())

    # Placeholders and strategies

    def add_placeholder(self, placeholder: PlaceholderNode) -> None:
        with self._lock:
            self.placeholders[placeholder.id] = placeholder
            self.placeholders.move_to_end(placeholder.id)

    def add_strategy(self, strategy: GapFillStrategy) -> None:
        with self._lock:
            self.strategies[strategy.key] = strategy
            self.strategies.move_to_end(strategy.key)

    # Cleanup

    def enforce_limits(self) -> Dict[str, int]:
        """Evict the oldest entries of every collection above its cap."""
        with self._lock:
            return {
                "gaps": _evict_oldest(self.gaps, self.settings.max_gaps, lambda g: g.metadata.discovered_at),
                "placeholders": _evict_oldest(
                    self.placeholders, self.settings.max_placeholders, lambda p: p.metadata.created_at
                ),
                "strategies": _evict_oldest(self.strategies, self.settings.max_strategies, lambda s: s.created_at),
            }

    def sweep(self) -> Dict[str, int]:
        """
        Run one cleanup pass.

        Drops expired gaps and placeholders, strategies whose gap is gone,
        then enforces the caps.

        Returns:
            Number of entries removed per collection
        """
        with self._lock:
            now = self.clock()
            gap_cutoff = now - timedelta(seconds=self.settings.gap_max_age_seconds)
            placeholder_cutoff = now - timedelta(seconds=self.settings.placeholder_max_age_seconds)

            expired_gaps = [key for key, gap in self.gaps.items() if gap.metadata.discovered_at < gap_cutoff]
            for key in expired_gaps:
                del self.gaps[key]
            expired_placeholders = [
                key for key, placeholder in self.placeholders.items() if placeholder.metadata.created_at < placeholder_cutoff
            ]
            for key in expired_placeholders:
                del self.placeholders[key]
            orphaned = [key for key, strategy in self.strategies.items() if strategy.gap_id not in self.gaps]
            for key in orphaned:
                del self.strategies[key]

            evicted = self.enforce_limits()
            removed = {
                "gaps": len(expired_gaps) + evicted["gaps"],
                "placeholders": len(expired_placeholders) + evicted["placeholders"],
                "strategies": len(orphaned) + evicted["strategies"],
            }
            self.last_cleanup = now
            remaining = self.counts()

        logger.debug(f"Gap registry sweep removed {removed}, remaining {remaining}")
        log_gap_sweep(removed, remaining)
        return removed

    def clear(self) -> None:
        with self._lock:
            self.gaps.clear()
            self.placeholders.clear()
            self.strategies.clear()

    # Reporting

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {
                "gaps": len(self.gaps),
                "placeholders": len(self.placeholders),
                "strategies": len(self.strategies),
            }

    def memory_stats(self) -> MemoryStats:
        counts = self.counts()
        capacity = self.settings.max_gaps + self.settings.max_placeholders + self.settings.max_strategies
        usage = sum(counts.values()) / capacity
        if usage > 0.8:
            pressure = MemoryPressure.HIGH
        elif usage > 0.5:
            pressure = MemoryPressure.MEDIUM
        else:
            pressure = MemoryPressure.LOW
        return MemoryStats(
            detected_gaps=counts["gaps"],
            placeholder_nodes=counts["placeholders"],
            gap_fill_strategies=counts["strategies"],
            last_cleanup=self.last_cleanup,
            memory_pressure=pressure,
            limits={
                "max_gaps": self.settings.max_gaps,
                "max_placeholders": self.settings.max_placeholders,
                "max_strategies": self.settings.max_strategies,
                "cleanup_interval_seconds": self.settings.cleanup_interval_seconds,
            },
        )
