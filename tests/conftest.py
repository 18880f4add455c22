"""
Pytest configuration and fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from reasoning_graph.models import (
    BudgetConstraints,
    GraphData,
    GraphEdge,
    GraphNode,
    KnowledgeGap,
)
from reasoning_graph.models.gaps import GapLocation, GapMetadata
from reasoning_graph.models.enums import GapType
from reasoning_graph.models.graph import Position
from reasoning_graph.utils.structured_log import reset_audit_logging


def make_graph(node_ids: List[str], pairs: List[tuple], bidirectional: bool = True, **edge_kwargs) -> GraphData:
    """Small helper: nodes with full confidence and one edge per pair."""
    return GraphData(
        nodes=[GraphNode(id=node_id, label=node_id, confidence=[0.9, 0.9, 0.9]) for node_id in node_ids],
        edges=[
            GraphEdge(id=f"e_{s}_{t}", source=s, target=t, bidirectional=bidirectional, **edge_kwargs)
            for s, t in pairs
        ],
    )


@pytest.fixture
def triangle_graph() -> GraphData:
    return make_graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("a", "c")])


@pytest.fixture
def star_graph() -> GraphData:
    """Hub ``h`` connected to four leaves."""
    return make_graph(["h", "l1", "l2", "l3", "l4"], [("h", "l1"), ("h", "l2"), ("h", "l3"), ("h", "l4")])


@pytest.fixture
def barbell_graph() -> GraphData:
    """Two triangles joined by the single edge c-d."""
    return make_graph(
        ["a", "b", "c", "d", "e", "f"],
        [("a", "b"), ("b", "c"), ("a", "c"), ("d", "e"), ("e", "f"), ("d", "f"), ("c", "d")],
    )


@pytest.fixture
def isolated_node_graph() -> GraphData:
    """Chain a-b-c plus an isolated node d."""
    graph = make_graph(["a", "b", "c"], [("a", "b"), ("b", "c")])
    graph.nodes.append(GraphNode(id="d", label="d", confidence=[0.9, 0.9, 0.9]))
    return graph


@pytest.fixture
def evidence_graph() -> GraphData:
    """A mixed evidence graph with a weak node, a causal edge and positions."""
    return GraphData(
        nodes=[
            GraphNode(
                id="n1",
                label="Sleep deprivation study",
                type="evidence",
                confidence=[0.8, 0.7, 0.9],
                position=Position(x=100, y=100),
            ),
            GraphNode(
                id="n2",
                label="Cognitive performance decline",
                type="evidence",
                confidence=[0.7, 0.8, 0.6],
                position=Position(x=200, y=100),
            ),
            GraphNode(id="n3", label="Anecdotal report", type="evidence", confidence=[0.2, 0.1, 0.3]),
            GraphNode(
                id="n4",
                label="Memory consolidation hypothesis",
                type="hypothesis",
                confidence=[0.6, 0.6, 0.6],
                metadata={"methodology": "rct"},
            ),
        ],
        edges=[
            GraphEdge(id="e1", source="n1", target="n2", type="causal", confidence=0.8),
            GraphEdge(id="e2", source="n2", target="n3", type="supportive", confidence=0.4),
            GraphEdge(id="e3", source="n4", target="n2", type="causal", confidence=0.7),
        ],
    )


def make_gap(gap_id: str, **overrides) -> KnowledgeGap:
    fields = {
        "id": gap_id,
        "type": GapType.MISSING_EVIDENCE,
        "description": f"Gap {gap_id}",
        "location": GapLocation(domain=["evidence"], related_nodes=[]),
        "priority": 0.7,
        "confidence": 0.5,
        "detectability": 0.8,
        "fillability": 0.8,
        "importance": 0.7,
        "metadata": GapMetadata(detection_method="test"),
    }
    fields.update(overrides)
    return KnowledgeGap(**fields)


class FakeClock:
    """Manually advanced aware clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tight_budget() -> BudgetConstraints:
    return BudgetConstraints(max_total_cost=50.0, max_operation_cost=20.0)


@pytest.fixture(autouse=True)
def _reset_audit_logging():
    yield
    reset_audit_logging()


@pytest.fixture
def graph_factory():
    return make_graph


@pytest.fixture
def gap_factory():
    return make_gap
