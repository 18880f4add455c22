"""Knowledge-gap, placeholder, strategy and prioritization models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from reasoning_graph.models.enums import (
    GapStatus,
    GapType,
    MemoryPressure,
    PlaceholderType,
    ResearchPriorityTier,
    StrategyType,
    ValidationStatus,
)
from reasoning_graph.models.graph import GraphData, GraphEdge, Position


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GapLocation(BaseModel):
    domain: List[str] = Field(default_factory=list)
    related_nodes: List[str] = Field(default_factory=list)
    contextual_area: str = ""


class MissingConnection(BaseModel):
    expected_source: str
    expected_target: str
    evidence_strength: float = Field(ge=0.0, le=1.0)


class GapEvidence(BaseModel):
    indicative_patterns: List[str] = Field(default_factory=list)
    missing_connections: List[MissingConnection] = Field(default_factory=list)
    structural_anomalies: List[str] = Field(default_factory=list)


class GapImpact(BaseModel):
    on_reliability: float = Field(ge=0.0, le=1.0, default=0.0)
    on_completeness: float = Field(ge=0.0, le=1.0, default=0.0)
    on_coherence: float = Field(ge=0.0, le=1.0, default=0.0)
    on_explanatory_power: float = Field(ge=0.0, le=1.0, default=0.0)


class GapMetadata(BaseModel):
    discovered_at: datetime = Field(default_factory=utc_now)
    detection_method: str
    validation_status: ValidationStatus = ValidationStatus.UNVALIDATED
    research_priority: ResearchPriorityTier = ResearchPriorityTier.MEDIUM
    evidence_count: int = 0
    completion_percentage: float = 0.0
    status: GapStatus = GapStatus.OPEN


class KnowledgeGap(BaseModel):
    id: str
    type: GapType
    description: str
    location: GapLocation = Field(default_factory=GapLocation)
    priority: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    detectability: float = Field(ge=0.0, le=1.0)
    fillability: float = Field(ge=0.0, le=1.0)
    importance: float = Field(ge=0.0, le=1.0)
    evidence: GapEvidence = Field(default_factory=GapEvidence)
    impact: GapImpact = Field(default_factory=GapImpact)
    metadata: GapMetadata


# Domain knowledge supplied by the caller


class ExpectedPattern(BaseModel):
    pattern: str
    nodes: List[str] = Field(default_factory=list)
    relationships: List[str] = Field(
        default_factory=list,
        description="Relationships written as 'source->target' (or 'source-target' for undirected).",
    )


class KnownTheory(BaseModel):
    theory: str
    required_elements: List[str] = Field(default_factory=list)


class CausalCandidate(BaseModel):
    source: str
    target: str
    strength: float = Field(ge=0.0, le=1.0)
    rationale: str = ""


class DomainKnowledge(BaseModel):
    expected_patterns: List[ExpectedPattern] = Field(default_factory=list)
    known_theories: List[KnownTheory] = Field(default_factory=list)
    causal_candidates: List[CausalCandidate] = Field(default_factory=list)


# Detection summary


class StructuralHole(BaseModel):
    id: str
    description: str
    affected_nodes: List[str]
    bridging_potential: float


class ResearchRecommendation(BaseModel):
    gap_id: str
    priority: float
    description: str
    expected_impact: float
    estimated_effort: float
    methodology: List[str]


class GapAnalysisResult(BaseModel):
    total_gaps: int
    gaps: List[KnowledgeGap] = Field(default_factory=list)
    gaps_by_type: Dict[str, int] = Field(default_factory=dict)
    gaps_by_priority: Dict[str, int] = Field(default_factory=dict)
    critical_gaps: List[KnowledgeGap] = Field(default_factory=list)
    fillable_gaps: List[KnowledgeGap] = Field(default_factory=list)
    structural_holes: List[StructuralHole] = Field(default_factory=list)
    research_recommendations: List[ResearchRecommendation] = Field(default_factory=list)


# Placeholders


class ExpectedProperties(BaseModel):
    expected_type: str
    expected_connections: int
    expected_evidence: List[str] = Field(default_factory=list)
    expected_mechanisms: List[str] = Field(default_factory=list)


class DiscoveryHeuristics(BaseModel):
    search_terms: List[str] = Field(default_factory=list)
    research_directions: List[str] = Field(default_factory=list)
    potential_sources: List[str] = Field(default_factory=list)
    methodological_approaches: List[str] = Field(default_factory=list)


class PlaceholderMetadata(BaseModel):
    created_at: datetime = Field(default_factory=utc_now)
    gap_severity: float
    research_urgency: float
    expected_difficulty: float
    placeholder_type: PlaceholderType


class PlaceholderNode(BaseModel):
    id: str
    label: str
    type: str = "knowledge_gap"
    gap_id: str
    confidence: List[float]
    position: Position
    expected_properties: ExpectedProperties
    discovery_heuristics: DiscoveryHeuristics
    metadata: PlaceholderMetadata


class PlaceholderSynthesis(BaseModel):
    modified_graph: GraphData
    placeholder_nodes: List[PlaceholderNode] = Field(default_factory=list)
    new_connections: List[GraphEdge] = Field(default_factory=list)


# Fill strategies


class StrategyStep(BaseModel):
    step: int
    action: str
    resources: List[str] = Field(default_factory=list)
    timeline: int = Field(description="Days")
    dependencies: List[str] = Field(default_factory=list)


class SuccessCriterion(BaseModel):
    criterion: str
    measurable: bool = True
    threshold: float


class ExpectedOutcome(BaseModel):
    node_type: str
    evidence_strength: float
    connection_count: int
    impact_score: float


class RiskAssessment(BaseModel):
    feasibility_risk: float = Field(ge=0.0, le=1.0)
    resource_risk: float = Field(ge=0.0, le=1.0)
    time_risk: float = Field(ge=0.0, le=1.0)
    quality_risk: float = Field(ge=0.0, le=1.0)


class GapFillStrategy(BaseModel):
    gap_id: str
    strategy_type: StrategyType
    description: str
    steps: List[StrategyStep] = Field(default_factory=list)
    success_criteria: List[SuccessCriterion] = Field(default_factory=list)
    expected_outcome: ExpectedOutcome
    risk_assessment: RiskAssessment
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def key(self) -> str:
        return f"{self.gap_id}_{self.strategy_type.value}"


class AvailableResources(BaseModel):
    expertise: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)
    timeframe: int = Field(default=180, description="Days")
    budget: float = 50_000.0


class AlternativeApproach(BaseModel):
    approach: StrategyType
    viability: float
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)


class StrategyRecommendation(BaseModel):
    strategies: List[GapFillStrategy]
    recommended_strategy: GapFillStrategy
    alternative_approaches: List[AlternativeApproach] = Field(default_factory=list)


# Prioritization


class ResearchConstraints(BaseModel):
    budget: float = 100_000.0
    timeline: int = Field(default=365, description="Days")
    resources: List[str] = Field(default_factory=list)
    expertise: List[str] = Field(default_factory=list)


class ResearchTimeline(BaseModel):
    short_term: bool
    medium_term: bool
    long_term: bool


class ResearchPrioritization(BaseModel):
    gap_id: str
    priority_score: float
    rationale: str
    urgency: float
    impact: float
    feasibility: float
    cost: float
    duration: int
    dependencies: List[str] = Field(default_factory=list)
    stakeholders: List[str] = Field(default_factory=list)
    timeline: ResearchTimeline


class ResearchPhase(BaseModel):
    phase: int
    duration: int
    gaps: List[str]
    cost: float
    resources: List[str] = Field(default_factory=list)
    expected_outcomes: List[str] = Field(default_factory=list)


class ResearchPlan(BaseModel):
    phases: List[ResearchPhase] = Field(default_factory=list)
    total_cost: float = 0.0
    total_duration: int = 0
    deferred_gaps: List[str] = Field(default_factory=list)
    risk_profile: str = "low"


class FundingRecommendation(BaseModel):
    gap_id: str
    requested_amount: float
    justification: str
    expected_roi: float


class PrioritizationResult(BaseModel):
    prioritized_gaps: List[ResearchPrioritization] = Field(default_factory=list)
    research_plan: ResearchPlan = Field(default_factory=ResearchPlan)
    funding_recommendations: List[FundingRecommendation] = Field(default_factory=list)


# Progress monitoring


class EvidenceItem(BaseModel):
    type: str = "empirical"
    strength: float = Field(ge=0.0, le=1.0)
    source: str = ""
    description: str = ""


class ProgressAssessment(BaseModel):
    completion_percentage: float
    quality_score: float
    confidence_increase: float
    remaining_uncertainty: float


class ProgressReport(BaseModel):
    progress_assessment: ProgressAssessment
    updated_gap: KnowledgeGap
    recommended_actions: List[str] = Field(default_factory=list)
    gap_status: GapStatus


class MemoryStats(BaseModel):
    detected_gaps: int
    placeholder_nodes: int
    gap_fill_strategies: int
    last_cleanup: Optional[datetime] = None
    memory_pressure: MemoryPressure
    limits: Dict[str, Any] = Field(default_factory=dict)
