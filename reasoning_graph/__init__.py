"""Reasoning graph analytics, knowledge-gap detection and computational budgeting."""

from reasoning_graph.analytics import GraphAnalyticsEngine
from reasoning_graph.budget import ComputationalBudgetManager
from reasoning_graph.gaps import KnowledgeGapDetector

__version__ = "0.1.0"

__all__ = ["ComputationalBudgetManager", "GraphAnalyticsEngine", "KnowledgeGapDetector", "__version__"]
