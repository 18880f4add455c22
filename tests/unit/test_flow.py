"""
Unit tests for maximum flow and minimum cut.
"""

import pytest

from reasoning_graph.analytics import GraphIndex
from reasoning_graph.analytics.flow import SOLVERS, compute_max_flow
from reasoning_graph.errors import GraphAnalyticsError, NodeNotFoundError
from reasoning_graph.models import FlowAlgorithm, GraphData, GraphEdge, GraphNode


@pytest.fixture
def diamond():
    """s splits into a and b which rejoin at t; a-t is the narrow pipe."""
    return GraphData(
        nodes=[GraphNode(id=node_id) for node_id in ("s", "a", "b", "t")],
        edges=[
            GraphEdge(id="sa", source="s", target="a", metadata={"capacity": 3}),
            GraphEdge(id="sb", source="s", target="b", metadata={"capacity": 2}),
            GraphEdge(id="at", source="a", target="t", metadata={"capacity": 1}),
            GraphEdge(id="bt", source="b", target="t", metadata={"capacity": 4}),
        ],
    )


class TestComputeMaxFlow:
    """Test compute_max_flow."""

    @pytest.mark.parametrize("algorithm", list(FlowAlgorithm))
    def test_max_flow_equals_min_cut(self, diamond, algorithm):
        result, _ = compute_max_flow(GraphIndex.build(diamond), "s", "t", algorithm)

        assert result.max_flow == pytest.approx(3.0)
        assert result.min_cut.capacity == pytest.approx(3.0)
        assert result.min_cut.edges == ["at", "sb"]
        assert result.min_cut.source_set == ["s", "a"]
        assert result.min_cut.sink_set == ["b", "t"]

    def test_flow_distribution_respects_capacity(self, diamond):
        result, _ = compute_max_flow(GraphIndex.build(diamond), "s", "t", FlowAlgorithm.EDMONDS_KARP)

        assert result.flow_distribution["at"] == pytest.approx(1.0)
        assert result.flow_distribution["sb"] == pytest.approx(2.0)
        for edge in diamond.edges:
            assert result.flow_distribution[edge.id] <= edge.capacity() + 1e-9

    def test_saturated_edges_are_bottlenecks(self, diamond):
        result, _ = compute_max_flow(GraphIndex.build(diamond), "s", "t", FlowAlgorithm.DINIC)

        saturated = {b.edge_id for b in result.bottlenecks}
        assert {"at", "sb"} <= saturated
        assert all(b.utilization >= 0.8 for b in result.bottlenecks)

    def test_no_path_gives_zero_flow(self, diamond):
        result, _ = compute_max_flow(GraphIndex.build(diamond), "t", "s", FlowAlgorithm.FORD_FULKERSON)
        assert result.max_flow == 0.0
        assert result.bottlenecks == []

    def test_missing_source_fails_fast(self, diamond):
        with pytest.raises(NodeNotFoundError, match="Source node 'ghost' not found"):
            compute_max_flow(GraphIndex.build(diamond), "ghost", "t", FlowAlgorithm.EDMONDS_KARP)

    def test_missing_sink_fails_fast(self, diamond):
        with pytest.raises(NodeNotFoundError) as exc_info:
            compute_max_flow(GraphIndex.build(diamond), "s", "ghost", FlowAlgorithm.EDMONDS_KARP)
        assert exc_info.value.role == "sink"

    def test_source_equals_sink(self, diamond):
        with pytest.raises(GraphAnalyticsError, match="different"):
            compute_max_flow(GraphIndex.build(diamond), "s", "s", FlowAlgorithm.EDMONDS_KARP)

    def test_every_algorithm_registered(self):
        assert set(SOLVERS) == set(FlowAlgorithm)
