"""Observability: per-algorithm call metrics."""

from reasoning_graph.observability.metrics import AlgorithmMetrics, MetricsCollector

__all__ = ["AlgorithmMetrics", "MetricsCollector"]
