"""
Unit tests for shortest paths and distance metrics.
"""

import pytest

from reasoning_graph.analytics import GraphIndex
from reasoning_graph.analytics.paths import SOLVERS, compute_paths, path_reliability
from reasoning_graph.errors import GraphAnalyticsError, NodeNotFoundError
from reasoning_graph.models import GraphData, GraphEdge, GraphNode, PathAlgorithm


@pytest.fixture
def weighted_chain():
    """a -> b -> c with a longer direct a -> c shortcut."""
    return GraphData(
        nodes=[GraphNode(id="a"), GraphNode(id="b"), GraphNode(id="c")],
        edges=[
            GraphEdge(id="ab", source="a", target="b", weight=0.2),
            GraphEdge(id="bc", source="b", target="c", weight=0.3),
            GraphEdge(id="ac", source="a", target="c", weight=0.9),
        ],
    )


class TestComputePaths:
    """Test compute_paths."""

    @pytest.mark.parametrize("algorithm", list(PathAlgorithm))
    def test_algorithms_agree(self, weighted_chain, algorithm):
        result = compute_paths(GraphIndex.build(weighted_chain), algorithm)

        assert result.all_pairs_distances["a"]["c"] == pytest.approx(0.5)
        route = next(p for p in result.shortest_paths if p.source == "a" and p.target == "c")
        assert route.path == ["a", "b", "c"]
        assert route.reliability == pytest.approx(0.06)

    def test_unreachable_pairs_excluded_from_aggregates(self, weighted_chain):
        result = compute_paths(GraphIndex.build(weighted_chain), PathAlgorithm.DIJKSTRA)

        assert "a" not in result.all_pairs_distances["c"]
        assert result.diameter == pytest.approx(0.5)
        # a->b 0.2, a->c 0.5, b->c 0.3
        assert result.average_path_length == pytest.approx(1.0 / 3)
        assert "c" not in result.eccentricities
        assert result.radius == pytest.approx(0.3)
        assert result.central_nodes == ["b"]
        assert result.peripheral_nodes == ["a"]

    def test_source_and_target_filters(self, weighted_chain):
        result = compute_paths(GraphIndex.build(weighted_chain), PathAlgorithm.DIJKSTRA, ["a"], ["c"])
        assert [(p.source, p.target) for p in result.shortest_paths] == [("a", "c")]

    def test_unknown_source_raises(self, weighted_chain):
        with pytest.raises(NodeNotFoundError, match="ghost"):
            compute_paths(GraphIndex.build(weighted_chain), PathAlgorithm.DIJKSTRA, ["ghost"])

    def test_negative_weights(self):
        graph = GraphData(
            nodes=[GraphNode(id="a"), GraphNode(id="b"), GraphNode(id="c")],
            edges=[
                GraphEdge(id="ab", source="a", target="b", weight=2.0),
                GraphEdge(id="bc", source="b", target="c", weight=-1.0),
                GraphEdge(id="ac", source="a", target="c", weight=1.5),
            ],
        )
        index = GraphIndex.build(graph)

        with pytest.raises(GraphAnalyticsError, match="non-negative"):
            compute_paths(index, PathAlgorithm.DIJKSTRA)
        for algorithm in (PathAlgorithm.JOHNSON, PathAlgorithm.BELLMAN_FORD, PathAlgorithm.FLOYD_WARSHALL):
            result = compute_paths(index, algorithm)
            assert result.all_pairs_distances["a"]["c"] == pytest.approx(1.0), algorithm

    def test_negative_cycle_rejected(self):
        graph = GraphData(
            nodes=[GraphNode(id="a"), GraphNode(id="b")],
            edges=[
                GraphEdge(id="ab", source="a", target="b", weight=1.0),
                GraphEdge(id="ba", source="b", target="a", weight=-2.0),
            ],
        )
        with pytest.raises(GraphAnalyticsError, match="negative-weight cycle"):
            compute_paths(GraphIndex.build(graph), PathAlgorithm.BELLMAN_FORD)

    def test_empty_graph(self):
        result = compute_paths(GraphIndex.build(GraphData()), PathAlgorithm.DIJKSTRA)
        assert result.shortest_paths == []
        assert result.diameter == 0.0

    def test_every_algorithm_registered(self):
        assert set(SOLVERS) == set(PathAlgorithm)


class TestPathReliability:
    """Test path_reliability."""

    def test_trivial_path(self, weighted_chain):
        assert path_reliability(GraphIndex.build(weighted_chain), ["a"]) == 1.0
