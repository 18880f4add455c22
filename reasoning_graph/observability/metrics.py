"""
Metrics Collection for Algorithm Performance Monitoring

Tracks call counts, durations, cache hits and failures per analytics algorithm.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class AlgorithmMetrics:
    """Metrics for a single algorithm."""

    algorithm_name: str
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    cached_calls: int = 0
    total_duration: float = 0.0
    average_duration: float = 0.0
    min_duration: float = float("inf")
    max_duration: float = 0.0
    last_call_time: Optional[datetime] = None
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


class MetricsCollector:
    """Collects and aggregates per-algorithm metrics for one engine instance."""

    def __init__(self):
        self.metrics: Dict[str, AlgorithmMetrics] = {}
        self._lock = threading.Lock()

    def record_call(
        self,
        algorithm_name: str,
        duration: float,
        success: bool = True,
        error_type: Optional[str] = None,
        cached: bool = False,
    ):
        """
        Record an algorithm call.

        Args:
            algorithm_name: Name of the algorithm
            duration: Call duration in milliseconds
            success: Whether the call was successful
            error_type: Type of error if failed
            cached: Whether the result was served from cache
        """
        with self._lock:
            if algorithm_name not in self.metrics:
                self.metrics[algorithm_name] = AlgorithmMetrics(algorithm_name=algorithm_name)

            metrics = self.metrics[algorithm_name]
            metrics.total_calls += 1
            metrics.total_duration += duration
            metrics.last_call_time = datetime.now()

            if success:
                metrics.successful_calls += 1
            else:
                metrics.failed_calls += 1
                if error_type:
                    metrics.error_counts[error_type] += 1
            if cached:
                metrics.cached_calls += 1

            metrics.average_duration = metrics.total_duration / metrics.total_calls
            metrics.min_duration = min(metrics.min_duration, duration)
            metrics.max_duration = max(metrics.max_duration, duration)

    def get_metrics(self, algorithm_name: Optional[str] = None) -> Dict[str, AlgorithmMetrics]:
        if algorithm_name:
            return {algorithm_name: self.metrics[algorithm_name]} if algorithm_name in self.metrics else {}
        return self.metrics.copy()

    def get_success_rate(self, algorithm_name: str) -> float:
        metrics = self.metrics.get(algorithm_name)
        if metrics is None or metrics.total_calls == 0:
            return 0.0
        return metrics.successful_calls / metrics.total_calls

    def reset_metrics(self, algorithm_name: Optional[str] = None):
        with self._lock:
            if algorithm_name:
                self.metrics.pop(algorithm_name, None)
            else:
                self.metrics.clear()

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary statistics across all algorithms.

        Returns:
            Summary dictionary
        """
        total_calls = sum(m.total_calls for m in self.metrics.values())
        total_successful = sum(m.successful_calls for m in self.metrics.values())
        return {
            "total_algorithms": len(self.metrics),
            "total_calls": total_calls,
            "total_successful": total_successful,
            "total_failed": sum(m.failed_calls for m in self.metrics.values()),
            "total_cached": sum(m.cached_calls for m in self.metrics.values()),
            "overall_success_rate": total_successful / total_calls if total_calls > 0 else 0.0,
            "algorithms": {
                name: {
                    "total_calls": m.total_calls,
                    "success_rate": m.successful_calls / m.total_calls if m.total_calls > 0 else 0.0,
                    "average_duration": m.average_duration,
                    "max_duration": m.max_duration,
                    "error_counts": dict(m.error_counts),
                }
                for name, m in self.metrics.items()
            },
        }
