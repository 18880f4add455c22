"""
Unit tests for observability (per-algorithm metrics).
"""

from reasoning_graph.observability import MetricsCollector


class TestMetricsCollector:
    """Test MetricsCollector class."""

    def test_metrics_collector_initialization(self):
        collector = MetricsCollector()
        assert len(collector.metrics) == 0

    def test_record_successful_call(self):
        collector = MetricsCollector()

        collector.record_call("pagerank", duration=1.5, success=True)

        metrics = collector.metrics["pagerank"]
        assert metrics.total_calls == 1
        assert metrics.successful_calls == 1
        assert metrics.failed_calls == 0
        assert metrics.average_duration == 1.5

    def test_record_failed_call(self):
        collector = MetricsCollector()

        collector.record_call("max_flow", duration=0.5, success=False, error_type="NodeNotFoundError")

        metrics = collector.metrics["max_flow"]
        assert metrics.failed_calls == 1
        assert metrics.error_counts["NodeNotFoundError"] == 1

    def test_record_multiple_calls(self):
        collector = MetricsCollector()

        collector.record_call("louvain", duration=1.0)
        collector.record_call("louvain", duration=3.0)
        collector.record_call("louvain", duration=2.0, cached=True)

        metrics = collector.metrics["louvain"]
        assert metrics.total_calls == 3
        assert metrics.cached_calls == 1
        assert metrics.average_duration == 2.0
        assert metrics.min_duration == 1.0
        assert metrics.max_duration == 3.0

    def test_success_rate_and_summary(self):
        collector = MetricsCollector()
        collector.record_call("a", duration=1.0)
        collector.record_call("a", duration=1.0, success=False, error_type="ValueError")
        collector.record_call("b", duration=1.0)

        assert collector.get_success_rate("a") == 0.5
        assert collector.get_success_rate("missing") == 0.0
        summary = collector.get_summary()
        assert summary["total_algorithms"] == 2
        assert summary["total_calls"] == 3
        assert summary["total_failed"] == 1
        assert summary["algorithms"]["a"]["error_counts"] == {"ValueError": 1}

    def test_reset_metrics(self):
        collector = MetricsCollector()
        collector.record_call("a", duration=1.0)
        collector.record_call("b", duration=1.0)

        collector.reset_metrics("a")
        assert set(collector.get_metrics()) == {"b"}
        collector.reset_metrics()
        assert collector.get_metrics() == {}
