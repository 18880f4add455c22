"""Graph analytics: index, bounded cache, algorithm families and the engine facade."""

from reasoning_graph.analytics.cache import LRUCache
from reasoning_graph.analytics.engine import GraphAnalyticsEngine
from reasoning_graph.analytics.index import GraphIndex, graph_fingerprint

__all__ = ["GraphAnalyticsEngine", "GraphIndex", "LRUCache", "graph_fingerprint"]
