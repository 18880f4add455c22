"""Reasoning graph snapshot models."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

DEFAULT_EDGE_STRENGTH = 0.5


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class GraphNode(BaseModel):
    """A node of the reasoning graph.

    ``confidence`` is a vector of independent evidential dimensions, not a
    single probability.
    """

    id: str
    label: str = ""
    type: str = "evidence"
    confidence: List[float] = Field(default_factory=list)
    position: Optional[Position] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def mean_confidence(self) -> Optional[float]:
        if not self.confidence:
            return None
        return sum(self.confidence) / len(self.confidence)


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    type: str = "supportive"
    weight: Optional[float] = None
    confidence: Optional[float] = None
    bidirectional: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def strength(self) -> float:
        """Scalar strength: weight, then confidence, then 0.5."""
        if self.weight is not None:
            return float(self.weight)
        if self.confidence is not None:
            return float(self.confidence)
        return DEFAULT_EDGE_STRENGTH

    def capacity(self) -> float:
        """Flow capacity: metadata capacity, then confidence, then 1."""
        capacity = self.metadata.get("capacity")
        if capacity is not None:
            return float(capacity)
        if self.confidence is not None:
            return float(self.confidence)
        return 1.0


class Hyperedge(BaseModel):
    id: str
    nodes: List[str] = Field(min_length=2)
    type: str = "synthesis"
    weight: float = 1.0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GraphData(BaseModel):
    """Immutable-by-convention snapshot handed to the engines."""

    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
    hyperedges: List[Hyperedge] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _unique_node_ids(self) -> "GraphData":
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id: {node.id}")
            seen.add(node.id)
        return self

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def node_map(self) -> Dict[str, GraphNode]:
        return {node.id: node for node in self.nodes}

    def valid_edges(self) -> List[GraphEdge]:
        """Edges whose endpoints both resolve to nodes of this graph."""
        ids = set(self.node_ids())
        return [edge for edge in self.edges if edge.source in ids and edge.target in ids]

    def is_empty(self) -> bool:
        return not self.nodes

    def statistics(self) -> Dict[str, Any]:
        """Aggregate counts, including the hyperedges the matrix algorithms ignore."""
        ids = set(self.node_ids())
        valid = self.valid_edges()
        arities = [len(h.nodes) for h in self.hyperedges]
        resolved_hyperedges = sum(1 for h in self.hyperedges if all(n in ids for n in h.nodes))
        return {
            "node_count": len(self.nodes),
            "edge_count": len(self.edges),
            "valid_edge_count": len(valid),
            "dangling_edge_count": len(self.edges) - len(valid),
            "hyperedge_count": len(self.hyperedges),
            "resolved_hyperedge_count": resolved_hyperedges,
            "mean_hyperedge_arity": sum(arities) / len(arities) if arities else 0.0,
            "max_hyperedge_arity": max(arities) if arities else 0,
            "node_types": dict(Counter(node.type for node in self.nodes)),
            "edge_types": dict(Counter(edge.type for edge in self.edges)),
        }
