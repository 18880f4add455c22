"""Enum definitions for algorithm selection and gap/budget bookkeeping."""

from enum import Enum
from typing import Type, TypeVar, Union

from reasoning_graph.errors import UnknownAlgorithmError

E = TypeVar("E", bound=Enum)


class CentralityMeasure(str, Enum):
    BETWEENNESS = "betweenness"
    CLOSENESS = "closeness"
    PAGERANK = "pagerank"
    EIGENVECTOR = "eigenvector"
    KATZ = "katz"
    DEGREE = "degree"
    HARMONIC = "harmonic"
    SUBGRAPH = "subgraph"


class CommunityAlgorithm(str, Enum):
    LOUVAIN = "louvain"
    LEIDEN = "leiden"
    INFOMAP = "infomap"
    SPECTRAL = "spectral"
    WALKTRAP = "walktrap"
    LABEL_PROPAGATION = "label_propagation"


class PathAlgorithm(str, Enum):
    DIJKSTRA = "dijkstra"
    FLOYD_WARSHALL = "floyd_warshall"
    JOHNSON = "johnson"
    BELLMAN_FORD = "bellman_ford"


class FlowAlgorithm(str, Enum):
    FORD_FULKERSON = "ford_fulkerson"
    EDMONDS_KARP = "edmonds_karp"
    DINIC = "dinic"
    PUSH_RELABEL = "push_relabel"


class SimilarityType(str, Enum):
    STRUCTURAL = "structural"
    SEMANTIC = "semantic"
    FUNCTIONAL = "functional"


class OptimizationObjective(str, Enum):
    MODULARITY = "modularity"
    EFFICIENCY = "efficiency"
    ROBUSTNESS = "robustness"
    CENTRALITY = "centrality"
    FLOW = "flow"


class OptimizationAlgorithm(str, Enum):
    GREEDY = "greedy"
    SIMULATED_ANNEALING = "simulated_annealing"
    GENETIC = "genetic"
    GRADIENT_DESCENT = "gradient_descent"


class EditType(str, Enum):
    ADD_EDGE = "add_edge"
    REMOVE_EDGE = "remove_edge"
    ADD_NODE = "add_node"
    REMOVE_NODE = "remove_node"


class ComponentKind(str, Enum):
    STRONG = "strong"
    WEAK = "weak"
    BICONNECTED = "biconnected"


class GapType(str, Enum):
    MISSING_NODE = "missing_node"
    MISSING_EDGE = "missing_edge"
    MISSING_EVIDENCE = "missing_evidence"
    CONCEPTUAL_GAP = "conceptual_gap"
    METHODOLOGICAL_GAP = "methodological_gap"
    CAUSAL_GAP = "causal_gap"


class ResearchPriorityTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ValidationStatus(str, Enum):
    UNVALIDATED = "unvalidated"
    VALIDATED = "validated"
    DISPUTED = "disputed"


class GapStatus(str, Enum):
    OPEN = "open"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"
    INVALIDATED = "invalidated"


class PlaceholderType(str, Enum):
    STRUCTURAL = "structural"
    EVIDENTIAL = "evidential"
    CONCEPTUAL = "conceptual"


class StrategyType(str, Enum):
    LITERATURE_REVIEW = "literature_review"
    EMPIRICAL_RESEARCH = "empirical_research"
    EXPERT_CONSULTATION = "expert_consultation"
    THEORETICAL_DERIVATION = "theoretical_derivation"
    COMPUTATIONAL_MODELING = "computational_modeling"


class MemoryPressure(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResourceType(str, Enum):
    CPU = "cpu"
    MEMORY = "memory"
    STORAGE = "storage"
    NETWORK = "network"
    API_CALLS = "api_calls"
    TIME = "time"


class ResourcePriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ImplementationComplexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def coerce_choice(enum_cls: Type[E], value: Union[str, E], operation: str) -> E:
    """Resolve a caller-supplied tag to a member of ``enum_cls``.

    Raises:
        UnknownAlgorithmError: if ``value`` names no member. The message
            carries the offending tag.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise UnknownAlgorithmError(
            operation, value, [member.value for member in enum_cls]
        ) from None
