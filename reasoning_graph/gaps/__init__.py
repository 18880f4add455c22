"""Knowledge gap detection, placeholder synthesis, strategies and prioritization."""

from reasoning_graph.gaps.detector import KnowledgeGapDetector, classify_progress
from reasoning_graph.gaps.registry import GapRegistry
from reasoning_graph.gaps.sweeper import PeriodicSweeper

__all__ = ["GapRegistry", "KnowledgeGapDetector", "PeriodicSweeper", "classify_progress"]
