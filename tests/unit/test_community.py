"""
Unit tests for community detection.
"""

import pytest

from reasoning_graph.analytics import GraphIndex
from reasoning_graph.analytics.community import (
    DETECTORS,
    build_hierarchy,
    conductance,
    describe_communities,
    detect,
    membership_of,
    modularity,
)
from reasoning_graph.models import CommunityAlgorithm, GraphData
from reasoning_graph.models.options import CommunityOptions


def _as_sets(partition):
    return {frozenset(members) for members in partition}


class TestDetect:
    """Test every detector on a graph with obvious structure."""

    @pytest.mark.parametrize(
        "algorithm",
        [
            CommunityAlgorithm.LOUVAIN,
            CommunityAlgorithm.LEIDEN,
            CommunityAlgorithm.SPECTRAL,
            CommunityAlgorithm.WALKTRAP,
        ],
    )
    def test_barbell_splits_into_triangles(self, barbell_graph, algorithm):
        index = GraphIndex.build(barbell_graph)
        partition, _ = detect(index, algorithm, CommunityOptions())

        assert _as_sets(partition) == {frozenset("abc"), frozenset("def")}

    @pytest.mark.parametrize("algorithm", list(CommunityAlgorithm))
    def test_partition_covers_every_node_once(self, barbell_graph, algorithm):
        index = GraphIndex.build(barbell_graph)
        partition, _ = detect(index, algorithm, CommunityOptions())

        members = [node for community in partition for node in community]
        assert sorted(members) == sorted(index.node_ids)

    def test_partition_is_ordered_by_snapshot(self, barbell_graph):
        partition, _ = detect(GraphIndex.build(barbell_graph), CommunityAlgorithm.LOUVAIN, CommunityOptions())
        assert partition == [["a", "b", "c"], ["d", "e", "f"]]

    def test_isolated_nodes_are_singletons(self, isolated_node_graph):
        partition, _ = detect(GraphIndex.build(isolated_node_graph), CommunityAlgorithm.INFOMAP, CommunityOptions())
        assert ["d"] in partition

    def test_empty_graph(self):
        assert detect(GraphIndex.build(GraphData()), CommunityAlgorithm.LOUVAIN, CommunityOptions()) == ([], 0)

    def test_every_algorithm_registered(self):
        assert set(DETECTORS) == set(CommunityAlgorithm)


class TestQuality:
    """Test modularity, conductance and community descriptions."""

    def test_modularity_of_natural_split(self, barbell_graph):
        graph = GraphIndex.build(barbell_graph).undirected
        split = modularity(graph, [["a", "b", "c"], ["d", "e", "f"]])
        lumped = modularity(graph, [["a", "b", "c", "d", "e", "f"]])

        assert split > 0.3
        assert lumped == pytest.approx(0.0)

    def test_conductance_of_triangle_side(self, barbell_graph):
        graph = GraphIndex.build(barbell_graph).undirected
        # One cut edge over a volume of 7 half-edges (weights 0.5 each).
        assert conductance(graph, ["a", "b", "c"]) == pytest.approx(1 / 7)

    def test_describe_communities(self, barbell_graph):
        graph = GraphIndex.build(barbell_graph).undirected
        described = describe_communities(graph, [["a", "b", "c"], ["d", "e", "f"]])

        assert [c.size for c in described] == [3, 3]
        assert described[0].density == pytest.approx(1.0)
        assert sum(c.modularity for c in described) == pytest.approx(
            modularity(graph, [["a", "b", "c"], ["d", "e", "f"]])
        )

    def test_membership_of(self):
        assert membership_of([["a", "b"], ["c"]]) == {"a": 0, "b": 0, "c": 1}


class TestHierarchy:
    """Test build_hierarchy."""

    def test_merges_until_one_community(self, barbell_graph):
        graph = GraphIndex.build(barbell_graph).undirected
        levels = build_hierarchy(graph, [["a", "b", "c"], ["d", "e", "f"]])

        assert len(levels) == 2
        assert levels[0].merged is None
        assert levels[1].merged == [0, 1]
        assert sorted(levels[1].communities[0]) == ["a", "b", "c", "d", "e", "f"]

    def test_stops_when_communities_are_disconnected(self, graph_factory):
        graph = GraphIndex.build(graph_factory(["a", "b", "c", "d"], [("a", "b"), ("c", "d")])).undirected
        levels = build_hierarchy(graph, [["a", "b"], ["c", "d"]])
        assert len(levels) == 1
