"""
Unit tests for ComputationalBudgetManager.
"""

import math
from concurrent.futures import ThreadPoolExecutor

import pytest

from reasoning_graph.budget import ComputationalBudgetManager, complexity_factors
from reasoning_graph.models import (
    BudgetConstraints,
    ComputationalResource,
    GraphData,
    GraphNode,
    OperationProfile,
    PendingOperation,
    ResourceType,
)
from reasoning_graph.utils.structured_log import configure_audit_logging, load_events_from_jsonl


@pytest.fixture
def manager(fake_clock):
    return ComputationalBudgetManager(clock=fake_clock)


def _balanced(manager):
    return all(
        math.isclose(r.used + r.available, r.total, abs_tol=1e-9) for r in manager.get_resources().values()
    )


class TestComplexityFactors:
    """Test complexity_factors."""

    def test_no_graph(self):
        assert complexity_factors(None) == (1.0, "unknown")

    def test_density_and_parameters(self, triangle_graph):
        factor, band = complexity_factors(triangle_graph, {"k": 3})
        assert factor == pytest.approx(2.0 * 1.1)
        assert band == "low"

    def test_large_graph_log_scaling(self):
        graph = GraphData(nodes=[GraphNode(id=str(i)) for i in range(1500)])
        factor, band = complexity_factors(graph)
        assert factor == pytest.approx(math.log(1.5) + 1)
        assert band == "high"


class TestEstimateOperationCost:
    """Test estimate_operation_cost."""

    def test_baseline_profile(self, manager):
        estimate = manager.estimate_operation_cost("centrality_calculation")

        assert estimate.estimated_cost == pytest.approx(3.5)
        assert estimate.estimated_duration == pytest.approx(2000.0)
        assert estimate.resource_breakdown == pytest.approx({"cpu": 1.0, "memory": 2.5})
        assert estimate.feasible
        assert estimate.recommendations == []
        assert estimate.complexity == "unknown"

    def test_scales_with_graph(self, manager, triangle_graph):
        estimate = manager.estimate_operation_cost("community_detection", triangle_graph)

        assert estimate.estimated_cost == pytest.approx(5.5 * 2.0)
        assert estimate.estimated_duration == pytest.approx(3000.0 * 2.0)
        assert estimate.complexity == "low"

    def test_unknown_type_uses_default(self, manager):
        estimate = manager.estimate_operation_cost("teleportation")

        assert estimate.estimated_cost == 100.0
        assert estimate.estimated_duration == 1000.0
        assert estimate.resource_breakdown == pytest.approx({"cpu": 50.0, "memory": 30.0, "api_calls": 20.0})
        assert estimate.feasible
        assert estimate.recommendations == ["Consider profiling this operation type for better estimates"]

    def test_infeasible_estimate_suggests_reductions(self, fake_clock, tight_budget, triangle_graph):
        manager = ComputationalBudgetManager(constraints=tight_budget, clock=fake_clock)

        estimate = manager.estimate_operation_cost("graph_optimization", triangle_graph, {"seed": 1})

        assert estimate.estimated_cost == pytest.approx(22.0)
        assert not estimate.feasible
        assert estimate.recommendations[0] == "Operation exceeds budget constraints"
        assert "Consider reducing cpu usage through data preprocessing" in estimate.recommendations
        assert "Consider optimizing this operation to reduce costs" in estimate.recommendations

    def test_feasible_near_cap_suggests_optimizing(self, fake_clock):
        manager = ComputationalBudgetManager(constraints=BudgetConstraints(max_operation_cost=4.0), clock=fake_clock)

        estimate = manager.estimate_operation_cost("centrality_calculation")

        assert estimate.estimated_cost == pytest.approx(3.5)
        assert estimate.feasible
        assert estimate.recommendations == ["Consider optimizing this operation to reduce costs"]

    def test_infeasible_when_resource_short(self, manager):
        manager.allocate_resources("hog", "large_graph_analysis", {"cpu": 95})
        assert not manager.estimate_operation_cost("centrality_calculation").feasible


class TestAllocation:
    """Test allocate_resources and release_resources."""

    def test_allocate_and_release_conserve_capacity(self, manager):
        outcome = manager.allocate_resources("op1", "centrality_calculation", {"cpu": 10, "memory": 50})

        assert outcome.success
        assert outcome.allocation.estimated_cost == pytest.approx(3.5)
        resources = manager.get_resources()
        assert resources["cpu"].used == 10
        assert resources["cpu"].available == 90
        assert _balanced(manager)

        assert manager.release_resources("op1")
        resources = manager.get_resources()
        assert resources["cpu"].used == 0
        assert resources["cpu"].available == 100
        assert _balanced(manager)

    def test_insufficient_resource_rejected(self, manager):
        outcome = manager.allocate_resources("big", "graph_optimization", {"cpu": 150})

        assert not outcome.success
        assert outcome.allocation is None
        assert any(error.startswith("Insufficient cpu") for error in outcome.errors)
        assert manager.get_resources()["cpu"].used == 0

    def test_every_shortfall_reported(self, manager):
        outcome = manager.allocate_resources("bad", "x", {"gpu": 1, "cpu": -1})
        assert "Unknown resource type: gpu" in outcome.errors
        assert "Negative request for cpu: -1" in outcome.errors

    def test_duplicate_operation_id_rejected(self, manager):
        manager.allocate_resources("op1", "structure_analysis", {"cpu": 1})
        outcome = manager.allocate_resources("op1", "structure_analysis", {"cpu": 1})
        assert outcome.errors == ["Operation op1 already holds an allocation"]

    def test_operation_and_total_caps(self, fake_clock, tight_budget):
        manager = ComputationalBudgetManager(constraints=tight_budget, clock=fake_clock)

        too_big = manager.allocate_resources("big", "strategy_generation", {"api_calls": 2500})
        assert any("exceeds maximum allowed 20.0" in error for error in too_big.errors)

        for i in range(3):
            assert manager.allocate_resources(f"op{i}", "strategy_generation", {"api_calls": 1500}).success
        over = manager.allocate_resources("op3", "strategy_generation", {"api_calls": 1500})
        assert not over.success
        assert any("would exceed budget 50.0" in error for error in over.errors)

    def test_release_unknown_returns_false(self, manager):
        assert manager.release_resources("never-allocated") is False

    def test_double_release_returns_false(self, manager):
        manager.allocate_resources("op1", "structure_analysis", {"cpu": 5})
        assert manager.release_resources("op1")
        assert manager.release_resources("op1") is False

    def test_concurrent_allocations_never_oversubscribe(self, manager):
        def grab(i):
            return manager.allocate_resources(f"op{i}", "repeated_operations", {"cpu": 1}).success

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(grab, range(150)))

        assert sum(results) == 100
        assert manager.get_resources()["cpu"].available == pytest.approx(0.0)
        assert _balanced(manager)

    def test_allocations_are_audited(self, manager, tmp_path):
        audit_path = configure_audit_logging(str(tmp_path))
        manager.allocate_resources("op1", "structure_analysis", {"cpu": 5})
        manager.allocate_resources("op2", "structure_analysis", {"cpu": 500})
        manager.release_resources("op1", actual_cost=1.0)

        events = load_events_from_jsonl(str(audit_path))
        assert [(e["type"], e["operation_id"]) for e in events] == [
            ("allocation", "op1"),
            ("allocation", "op2"),
            ("release", "op1"),
        ]
        assert events[1]["success"] is False


class TestLearning:
    """Profiles learn from actual cost and duration."""

    def test_exponential_moving_average(self, manager):
        manager.allocate_resources("op1", "centrality_calculation", {"cpu": 10, "memory": 50})
        manager.release_resources("op1", actual_cost=10.0, actual_duration=3000.0)

        profile = manager.get_profile("centrality_calculation")
        assert profile.average_cost == pytest.approx(0.3 * 10 + 0.7 * 3.5)
        assert profile.average_duration == pytest.approx(0.3 * 3000 + 0.7 * 2000)
        assert profile.samples == 1
        assert manager.estimate_operation_cost("centrality_calculation").estimated_cost == pytest.approx(5.45)

    def test_efficiency_and_spend_use_actual_cost(self, manager):
        manager.allocate_resources("op1", "centrality_calculation", {"cpu": 10, "memory": 50})
        manager.release_resources("op1", actual_cost=7.0)

        metrics = manager.get_resource_usage_metrics()
        assert metrics.total_cost == pytest.approx(7.0)
        assert metrics.average_efficiency == pytest.approx(0.5)
        assert manager.total_spent == pytest.approx(7.0)

    def test_readers_see_consistent_ledger_under_concurrency(self, manager):
        def run(i):
            manager.allocate_resources(f"op{i}", "structure_analysis", {"cpu": 1})
            manager.release_resources(f"op{i}", actual_cost=0.5, actual_duration=10.0)
            return manager.total_spent, manager.get_profile("structure_analysis").samples

        with ThreadPoolExecutor(max_workers=8) as pool:
            observed = list(pool.map(run, range(40)))

        assert all(samples >= 1 for _, samples in observed)
        assert manager.total_spent == pytest.approx(20.0)
        assert manager.get_profile("structure_analysis").samples == 40

    def test_unknown_type_gains_a_profile(self, manager):
        manager.allocate_resources("op1", "custom_scan", {"cpu": 2})
        manager.release_resources("op1", actual_cost=0.5, actual_duration=120.0)

        profile = manager.get_profile("custom_scan")
        assert profile.samples == 1
        assert profile.average_cost == 0.5
        assert profile.resource_requirements == {"cpu": 2}
        assert manager.estimate_operation_cost("custom_scan").estimated_duration == pytest.approx(120.0)

    def test_registered_profile_overrides_baseline(self, manager):
        manager.register_profile(
            OperationProfile(
                operation_type="centrality_calculation",
                average_duration=10.0,
                average_cost=1.0,
                resource_requirements={"cpu": 10},
            )
        )
        assert manager.estimate_operation_cost("centrality_calculation").estimated_cost == pytest.approx(1.0)


class TestReserve:
    """Test the reserve context manager."""

    def test_releases_on_exit(self, manager):
        with manager.reserve("r1", "structure_analysis", {"cpu": 5}) as outcome:
            assert outcome.success
            assert manager.get_resources()["cpu"].used == 5

        assert manager.get_resources()["cpu"].used == 0
        assert manager.outstanding_allocations() == []
        assert manager.get_profile("structure_analysis").samples == 1

    def test_releases_when_block_raises(self, manager):
        with pytest.raises(RuntimeError):
            with manager.reserve("r1", "structure_analysis", {"cpu": 5}):
                raise RuntimeError("analysis failed")
        assert manager.get_resources()["cpu"].used == 0

    def test_failed_reservation_is_a_value(self, manager):
        with manager.reserve("r1", "structure_analysis", {"cpu": 500}) as outcome:
            assert not outcome.success
        assert manager.get_resources()["cpu"].used == 0


class TestPlanningAndReporting:
    """Test optimize_resource_allocation, apply_optimizations and usage metrics."""

    def test_schedule_respects_spent_budget(self, fake_clock):
        manager = ComputationalBudgetManager(constraints=BudgetConstraints(max_total_cost=20.0), clock=fake_clock)
        manager.allocate_resources("done", "repeated_operations", {"cpu": 100})

        pending = [
            PendingOperation(id="a", type="x", priority=2, required_resources={"memory": 100}, expected_duration=10),
            PendingOperation(id="b", type="x", priority=1, required_resources={"memory": 200}, expected_duration=10),
        ]
        result = manager.optimize_resource_allocation(pending)

        assert [op.operation_id for op in result.optimized_schedule] == ["a"]
        assert result.unscheduled_operations == ["b"]
        assert result.total_cost == pytest.approx(5.0)

    def test_apply_optimizations_for_centrality(self, manager, evidence_graph):
        report = manager.apply_optimizations("centrality_calculation")

        assert [s.name for s in report.applicable_strategies] == ["Graph Pruning", "Approximation Algorithms"]
        assert report.potential_savings == pytest.approx(3.5 * 0.9)
        assert report.quality_impact == pytest.approx(0.2)

        with_graph = manager.apply_optimizations("centrality_calculation", evidence_graph)
        assert with_graph.recommendations[0].implementation.endswith("(affects 1 nodes)")

    def test_apply_optimizations_without_strategy(self, manager):
        report = manager.apply_optimizations("max_flow")
        assert report.applicable_strategies == []
        assert report.potential_savings == 0.0

    def test_usage_metrics_flag_bottlenecks(self, manager):
        manager.allocate_resources("op1", "graph_optimization", {"cpu": 95})

        metrics = manager.get_resource_usage_metrics()

        assert metrics.resource_utilization["cpu"] == pytest.approx(0.95)
        assert metrics.bottlenecks == ["cpu"]
        assert "Consider increasing cpu capacity" in metrics.recommendations
        assert "memory is underutilized, consider reducing allocation" in metrics.recommendations
        assert metrics.cost_breakdown["cpu"] == pytest.approx(9.5)
        assert metrics.outstanding_allocations == 1

    def test_time_window_filters_old_allocations(self, manager, fake_clock):
        manager.allocate_resources("old", "structure_analysis", {"cpu": 5})
        fake_clock.advance(hours=2)
        manager.allocate_resources("new", "structure_analysis", {"cpu": 5})

        assert manager.get_resource_usage_metrics(time_window=3600).total_cost == pytest.approx(0.5)
        assert manager.get_resource_usage_metrics().total_cost == pytest.approx(1.0)

    def test_custom_resource_pool(self, fake_clock):
        pool = [ComputationalResource(id="gpu", type=ResourceType.CPU, total=4, cost_per_unit=2.5)]
        manager = ComputationalBudgetManager(resources=pool, clock=fake_clock)

        outcome = manager.allocate_resources("train", "custom", {"gpu": 2})
        assert outcome.allocation.estimated_cost == pytest.approx(5.0)
        assert set(manager.get_resources()) == {"gpu"}
