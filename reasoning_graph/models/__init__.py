"""Model exports for engine boundaries."""

from reasoning_graph.models.budget import (
    AllocationOutcome,
    BudgetConstraints,
    ComputationalResource,
    CostEstimate,
    OperationProfile,
    OptimizationReport,
    OptimizationStrategy,
    PendingOperation,
    ResourceAllocation,
    ResourceUsageMetrics,
    ScheduledOperation,
    ScheduleResult,
)
from reasoning_graph.models.config import (
    AnalyticsSettings,
    BudgetSettings,
    EngineSettings,
    GapSettings,
    LoggingSettings,
)
from reasoning_graph.models.enums import (
    CentralityMeasure,
    CommunityAlgorithm,
    EditType,
    FlowAlgorithm,
    GapStatus,
    GapType,
    OptimizationAlgorithm,
    OptimizationObjective,
    PathAlgorithm,
    ResourceType,
    SimilarityType,
    StrategyType,
)
from reasoning_graph.models.gaps import (
    AvailableResources,
    CausalCandidate,
    DomainKnowledge,
    EvidenceItem,
    ExpectedPattern,
    GapAnalysisResult,
    GapFillStrategy,
    KnowledgeGap,
    KnownTheory,
    MemoryStats,
    PlaceholderNode,
    PlaceholderSynthesis,
    PrioritizationResult,
    ProgressReport,
    ResearchConstraints,
    ResearchPrioritization,
    StrategyRecommendation,
)
from reasoning_graph.models.graph import GraphData, GraphEdge, GraphNode, Hyperedge, Position
from reasoning_graph.models.results import (
    AlgorithmResult,
    CentralityResult,
    CommunityResult,
    FlowResult,
    OptimizationConstraints,
    OptimizationResult,
    PathResult,
    SimilarityResult,
    StructureResult,
)

__all__ = [
    "AlgorithmResult",
    "AllocationOutcome",
    "AnalyticsSettings",
    "AvailableResources",
    "BudgetConstraints",
    "BudgetSettings",
    "CausalCandidate",
    "CentralityMeasure",
    "CentralityResult",
    "CommunityAlgorithm",
    "CommunityResult",
    "ComputationalResource",
    "CostEstimate",
    "DomainKnowledge",
    "EditType",
    "EngineSettings",
    "EvidenceItem",
    "ExpectedPattern",
    "FlowAlgorithm",
    "FlowResult",
    "GapAnalysisResult",
    "GapFillStrategy",
    "GapSettings",
    "GapStatus",
    "GapType",
    "GraphData",
    "GraphEdge",
    "GraphNode",
    "Hyperedge",
    "KnowledgeGap",
    "KnownTheory",
    "LoggingSettings",
    "MemoryStats",
    "OperationProfile",
    "OptimizationAlgorithm",
    "OptimizationConstraints",
    "OptimizationObjective",
    "OptimizationReport",
    "OptimizationResult",
    "OptimizationStrategy",
    "PathAlgorithm",
    "PathResult",
    "PendingOperation",
    "PlaceholderNode",
    "PlaceholderSynthesis",
    "Position",
    "PrioritizationResult",
    "ProgressReport",
    "ResearchConstraints",
    "ResearchPrioritization",
    "ResourceAllocation",
    "ResourceType",
    "ResourceUsageMetrics",
    "ScheduledOperation",
    "ScheduleResult",
    "SimilarityResult",
    "SimilarityType",
    "StrategyRecommendation",
    "StructureResult",
]
