"""Placeholder synthesis: low-confidence stand-ins for unresolved gaps."""

from __future__ import annotations

import random
from typing import List, Optional, Sequence

from reasoning_graph.analytics.similarity import label_keywords
from reasoning_graph.gaps.detectors import suggest_methodologies
from reasoning_graph.models.enums import GapType, PlaceholderType
from reasoning_graph.models.gaps import (
    DiscoveryHeuristics,
    ExpectedProperties,
    KnowledgeGap,
    PlaceholderMetadata,
    PlaceholderNode,
)
from reasoning_graph.models.graph import GraphData, GraphEdge, GraphNode, Position

PLACEHOLDER_CONFIDENCE = 0.1
PLACEHOLDER_EDGE_CONFIDENCE = 0.2
DEFAULT_CONFIDENCE_DIMENSIONS = 3
CANVAS_WIDTH = 800.0
CANVAS_HEIGHT = 600.0

_EXPECTED_TYPES = {
    GapType.MISSING_EVIDENCE: "evidence",
    GapType.CONCEPTUAL_GAP: "concept",
    GapType.METHODOLOGICAL_GAP: "methodology",
    GapType.CAUSAL_GAP: "causal_mechanism",
}

_EXPECTED_MECHANISMS = {
    GapType.CAUSAL_GAP: ["causal_pathway", "mediating_variable"],
    GapType.METHODOLOGICAL_GAP: ["identification_strategy"],
}

POTENTIAL_SOURCES = ["academic_literature", "expert_consultation", "empirical_research"]


def confidence_dimensions(graph: GraphData) -> int:
    """Most common confidence vector length in the graph."""
    lengths = [len(node.confidence) for node in graph.nodes if node.confidence]
    if not lengths:
        return DEFAULT_CONFIDENCE_DIMENSIONS
    return max(set(lengths), key=lambda length: (lengths.count(length), -length))


def placeholder_position(related: Sequence[GraphNode], rng: random.Random) -> Position:
    positioned = [node.position for node in related if node.position is not None]
    if not positioned:
        return Position(x=rng.random() * CANVAS_WIDTH, y=rng.random() * CANVAS_HEIGHT)
    return Position(
        x=sum(p.x for p in positioned) / len(positioned),
        y=sum(p.y for p in positioned) / len(positioned),
    )


def placeholder_type(gap: KnowledgeGap) -> PlaceholderType:
    if gap.type in (GapType.MISSING_EDGE, GapType.MISSING_NODE):
        return PlaceholderType.STRUCTURAL
    if gap.type == GapType.MISSING_EVIDENCE:
        return PlaceholderType.EVIDENTIAL
    return PlaceholderType.CONCEPTUAL


def discovery_heuristics(gap: KnowledgeGap, related: Sequence[GraphNode]) -> DiscoveryHeuristics:
    """Search terms come from the labels of the related nodes, falling back to the description."""
    terms: List[str] = []
    for node in related:
        for keyword in sorted(label_keywords(node.label)):
            if keyword not in terms:
                terms.append(keyword)
    if not terms:
        terms = [" ".join(gap.description.split()[:3])]
    directions = [f"Investigate {gap.type.value} in {gap.location.contextual_area or 'the graph'}"]
    for connection in gap.evidence.missing_connections:
        directions.append(f"Test the link {connection.expected_source} -> {connection.expected_target}")
    return DiscoveryHeuristics(
        search_terms=terms[:8],
        research_directions=directions,
        potential_sources=list(POTENTIAL_SOURCES),
        methodological_approaches=suggest_methodologies(gap),
    )


def build_placeholder(
    gap: KnowledgeGap, graph: GraphData, rng: random.Random, dimensions: Optional[int] = None
) -> PlaceholderNode:
    nodes = graph.node_map()
    related = [nodes[node_id] for node_id in gap.location.related_nodes if node_id in nodes]
    description = gap.description[:30]
    return PlaceholderNode(
        id=f"placeholder_{gap.id}",
        label=f"Gap: {description}...",
        gap_id=gap.id,
        confidence=[PLACEHOLDER_CONFIDENCE] * (dimensions or confidence_dimensions(graph)),
        position=placeholder_position(related, rng),
        expected_properties=ExpectedProperties(
            expected_type=_EXPECTED_TYPES.get(gap.type, "unknown"),
            expected_connections=min(5, len(gap.location.related_nodes) + 2),
            expected_evidence=list(gap.evidence.indicative_patterns),
            expected_mechanisms=_EXPECTED_MECHANISMS.get(gap.type, ["unknown_mechanism"]),
        ),
        discovery_heuristics=discovery_heuristics(gap, related),
        metadata=PlaceholderMetadata(
            gap_severity=gap.priority,
            research_urgency=gap.importance,
            expected_difficulty=1 - gap.fillability,
            placeholder_type=placeholder_type(gap),
        ),
    )


def as_graph_node(placeholder: PlaceholderNode) -> GraphNode:
    return GraphNode(
        id=placeholder.id,
        label=placeholder.label,
        type=placeholder.type,
        confidence=list(placeholder.confidence),
        position=placeholder.position.model_copy(),
        metadata={
            **placeholder.metadata.model_dump(mode="json"),
            "gap_id": placeholder.gap_id,
            "placeholder": True,
            "expected_properties": placeholder.expected_properties.model_dump(),
        },
    )


def hypothetical_edges(placeholder: PlaceholderNode, gap: KnowledgeGap, graph: GraphData) -> List[GraphEdge]:
    ids = set(graph.node_ids())
    return [
        GraphEdge(
            id=f"placeholder_edge_{placeholder.id}_{node_id}",
            source=placeholder.id,
            target=node_id,
            type="hypothetical",
            confidence=PLACEHOLDER_EDGE_CONFIDENCE,
            bidirectional=False,
            metadata={
                "type": "placeholder_connection",
                "gap_id": gap.id,
                "hypothetical": True,
                "needs_validation": True,
            },
        )
        for node_id in gap.location.related_nodes
        if node_id in ids
    ]
