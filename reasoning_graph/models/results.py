"""Result envelopes and payloads returned by the analytics engine."""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from reasoning_graph.models.enums import ComponentKind, EditType

T = TypeVar("T")


class ResultMetadata(BaseModel):
    parameters: Dict[str, Any] = Field(default_factory=dict)
    convergence: bool = True
    iterations: int = 0
    quality_metrics: Dict[str, float] = Field(default_factory=dict)


class AlgorithmResult(BaseModel, Generic[T]):
    """Uniform envelope for every analytics entry point.

    ``execution_time`` is wall time in milliseconds; ``memory_usage`` is an
    estimate in bytes derived from the graph size, not a measurement.
    """

    algorithm_name: str
    execution_time: float
    memory_usage: int
    result: T
    confidence: float = Field(ge=0.0, le=1.0)
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)


# Centrality ---------------------------------------------------------------


class CentralityResult(BaseModel):
    """Per-measure node scores, keyed by measure name then node id."""

    measures: Dict[str, Dict[str, float]] = Field(default_factory=dict)

    def top(self, measure: str, k: int = 5) -> List[tuple]:
        scores = self.measures.get(measure, {})
        return sorted(scores.items(), key=lambda item: (-item[1], item[0]))[:k]


# Communities ----------------------------------------------------------------


class Community(BaseModel):
    id: int
    nodes: List[str]
    size: int
    density: float
    modularity: float
    conductance: float


class HierarchyLevel(BaseModel):
    level: int
    communities: List[List[str]]
    merged: Optional[List[int]] = None
    modularity: float = 0.0


class CommunityResult(BaseModel):
    communities: List[Community] = Field(default_factory=list)
    membership: Dict[str, int] = Field(default_factory=dict)
    hierarchy: Optional[List[HierarchyLevel]] = None


# Paths --------------------------------------------------------------------


class ShortestPath(BaseModel):
    source: str
    target: str
    distance: float
    path: List[str]
    reliability: float


class PathResult(BaseModel):
    shortest_paths: List[ShortestPath] = Field(default_factory=list)
    all_pairs_distances: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    diameter: float = 0.0
    radius: float = 0.0
    average_path_length: float = 0.0
    eccentricities: Dict[str, float] = Field(default_factory=dict)
    central_nodes: List[str] = Field(default_factory=list)
    peripheral_nodes: List[str] = Field(default_factory=list)


# Flow ---------------------------------------------------------------------


class MinCut(BaseModel):
    capacity: float
    edges: List[str]
    source_set: List[str]
    sink_set: List[str]


class Bottleneck(BaseModel):
    edge_id: str
    source: str
    target: str
    flow: float
    capacity: float
    utilization: float
    criticality: float


class FlowResult(BaseModel):
    max_flow: float
    min_cut: MinCut
    flow_distribution: Dict[str, float] = Field(default_factory=dict)
    bottlenecks: List[Bottleneck] = Field(default_factory=list)


# Structure ----------------------------------------------------------------


class Component(BaseModel):
    kind: ComponentKind
    nodes: List[str]
    size: int


class Block(BaseModel):
    nodes: List[str]
    edges: List[str]


class ConnectivityNumbers(BaseModel):
    node_connectivity: int = 0
    edge_connectivity: int = 0
    algebraic_connectivity: float = 0.0


class StructureResult(BaseModel):
    components: List[Component] = Field(default_factory=list)
    articulation_points: List[str] = Field(default_factory=list)
    bridges: List[str] = Field(default_factory=list)
    blocks: List[Block] = Field(default_factory=list)
    connectivity: ConnectivityNumbers = Field(default_factory=ConnectivityNumbers)


# Similarity ---------------------------------------------------------------


class SimilarityResult(BaseModel):
    node_to_node: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    edge_to_edge: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    by_type: Dict[str, Dict[str, Dict[str, float]]] = Field(default_factory=dict)


# Optimization -------------------------------------------------------------


class OptimizationConstraints(BaseModel):
    max_node_additions: int = 0
    max_node_removals: int = 0
    max_edge_additions: int = 5
    max_edge_removals: int = 5
    preserve_nodes: List[str] = Field(default_factory=list)
    preserve_edges: List[str] = Field(default_factory=list)
    max_iterations: int = 100
    random_seed: Optional[int] = 42


class GraphEdit(BaseModel):
    type: EditType
    target: str
    source: Optional[str] = None
    impact: float = 0.0


class ConvergenceInfo(BaseModel):
    iterations: int
    converged: bool
    final_gradient: float
    optimality: float


class OptimizationResult(BaseModel):
    objective: str
    original_value: float
    optimized_value: float
    improvement: float
    edits: List[GraphEdit] = Field(default_factory=list)
    convergence: ConvergenceInfo
