"""Default resource pool, baseline operation profiles and the optimization catalog."""

from __future__ import annotations

from typing import Dict, List

from reasoning_graph.models.budget import (
    ComplexityMetrics,
    ComputationalResource,
    OperationProfile,
    OptimizationStrategy,
)
from reasoning_graph.models.enums import ImplementationComplexity, ResourcePriority, ResourceType
from reasoning_graph.models.graph import GraphData

PRUNING_CONFIDENCE = 0.3


def default_resources() -> Dict[str, ComputationalResource]:
    resources = [
        ComputationalResource(
            id="cpu",
            type=ResourceType.CPU,
            total=100.0,
            unit="core-hours",
            cost_per_unit=0.1,
            priority=ResourcePriority.CRITICAL,
        ),
        ComputationalResource(
            id="memory",
            type=ResourceType.MEMORY,
            total=1000.0,
            unit="GB-hours",
            cost_per_unit=0.05,
            priority=ResourcePriority.CRITICAL,
        ),
        ComputationalResource(
            id="api_calls",
            type=ResourceType.API_CALLS,
            total=10_000.0,
            unit="calls",
            cost_per_unit=0.01,
            priority=ResourcePriority.HIGH,
        ),
        ComputationalResource(
            id="storage",
            type=ResourceType.STORAGE,
            total=10_000.0,
            unit="GB",
            cost_per_unit=0.02,
            priority=ResourcePriority.MEDIUM,
        ),
    ]
    return {resource.id: resource for resource in resources}


# operation type -> (average duration ms, requirements, algorithmic complexity)
_BASELINES = {
    "centrality_calculation": (2000.0, {"cpu": 10.0, "memory": 50.0}, "O(n*m)"),
    "community_detection": (3000.0, {"cpu": 15.0, "memory": 80.0}, "O(m log n)"),
    "clustering": (3000.0, {"cpu": 15.0, "memory": 80.0}, "O(m log n)"),
    "path_finding": (1500.0, {"cpu": 8.0, "memory": 40.0}, "O(m + n log n)"),
    "shortest_paths": (1500.0, {"cpu": 8.0, "memory": 40.0}, "O(m + n log n)"),
    "max_flow": (1500.0, {"cpu": 8.0, "memory": 30.0}, "O(n*m^2)"),
    "structure_analysis": (1000.0, {"cpu": 5.0, "memory": 20.0}, "O(n + m)"),
    "similarity_calculations": (2500.0, {"cpu": 12.0, "memory": 100.0}, "O(n^2)"),
    "graph_optimization": (10_000.0, {"cpu": 40.0, "memory": 120.0}, "O(k*n^2)"),
    "large_graph_analysis": (20_000.0, {"cpu": 60.0, "memory": 400.0, "storage": 100.0}, "O(n*m)"),
    "multi_layer_operations": (8000.0, {"cpu": 30.0, "memory": 150.0}, "O(l*m)"),
    "repeated_operations": (500.0, {"cpu": 2.0, "memory": 10.0}, "O(1)"),
    "gap_detection": (3000.0, {"cpu": 10.0, "memory": 60.0, "api_calls": 50.0}, "O(n^2)"),
    "placeholder_synthesis": (800.0, {"cpu": 3.0, "memory": 20.0}, "O(g)"),
    "strategy_generation": (500.0, {"cpu": 1.0, "api_calls": 100.0}, "O(1)"),
    "research_prioritization": (500.0, {"cpu": 1.0, "memory": 5.0}, "O(g log g)"),
}


def requirement_cost(requirements: Dict[str, float], resources: Dict[str, ComputationalResource]) -> float:
    """Priced sum of a requirement vector. Unknown resource ids cost nothing."""
    return sum(amount * resources[rid].cost_per_unit for rid, amount in requirements.items() if rid in resources)


def default_profiles(resources: Dict[str, ComputationalResource]) -> Dict[str, OperationProfile]:
    profiles = {}
    for operation_type, (duration, requirements, complexity) in _BASELINES.items():
        profiles[operation_type] = OperationProfile(
            operation_type=operation_type,
            average_duration=duration,
            average_cost=requirement_cost(requirements, resources),
            resource_requirements=dict(requirements),
            complexity_metrics=ComplexityMetrics(algorithmic_complexity=complexity),
        )
    return profiles


def default_strategies() -> List[OptimizationStrategy]:
    return [
        OptimizationStrategy(
            name="Graph Pruning",
            description="Remove low-confidence nodes and edges before processing",
            cost_reduction=0.3,
            quality_impact=0.1,
            applicable_operations=["centrality_calculation", "community_detection", "path_finding"],
            implementation_complexity=ImplementationComplexity.LOW,
        ),
        OptimizationStrategy(
            name="Hierarchical Processing",
            description="Process graph in hierarchical layers to reduce complexity",
            cost_reduction=0.4,
            quality_impact=0.15,
            applicable_operations=["large_graph_analysis", "multi_layer_operations"],
            implementation_complexity=ImplementationComplexity.MEDIUM,
        ),
        OptimizationStrategy(
            name="Approximation Algorithms",
            description="Use approximation algorithms for near-optimal results",
            cost_reduction=0.6,
            quality_impact=0.2,
            applicable_operations=["centrality_calculation", "shortest_paths", "clustering"],
            implementation_complexity=ImplementationComplexity.MEDIUM,
        ),
        OptimizationStrategy(
            name="Caching Strategy",
            description="Cache intermediate results to avoid recomputation",
            cost_reduction=0.5,
            quality_impact=0.0,
            applicable_operations=["repeated_operations", "similarity_calculations"],
            implementation_complexity=ImplementationComplexity.LOW,
        ),
    ]


def implementation_guidance(strategy: OptimizationStrategy, graph: GraphData) -> str:
    if strategy.name == "Graph Pruning":
        weak = [
            node
            for node in graph.nodes
            if node.mean_confidence() is not None and node.mean_confidence() < PRUNING_CONFIDENCE
        ]
        return f"Remove nodes with confidence < {PRUNING_CONFIDENCE} (affects {len(weak)} nodes)"
    if strategy.name == "Hierarchical Processing":
        return "Implement layer-by-layer processing starting with highest-confidence nodes"
    if strategy.name == "Approximation Algorithms":
        return "Replace exact algorithms with approximation variants (e.g., approximate PageRank)"
    if strategy.name == "Caching Strategy":
        return "Implement LRU cache for frequently accessed graph computations"
    return "Follow standard optimization practices"
