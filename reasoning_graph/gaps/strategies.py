"""Catalog of gap-fill strategies and their resource-adjusted risk."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from reasoning_graph.models.enums import GapType, StrategyType
from reasoning_graph.models.gaps import (
    AlternativeApproach,
    AvailableResources,
    ExpectedOutcome,
    GapFillStrategy,
    KnowledgeGap,
    RiskAssessment,
    StrategyRecommendation,
    StrategyStep,
    SuccessCriterion,
)


@dataclass(frozen=True)
class StrategyTemplate:
    strategy_type: StrategyType
    description: str
    steps: Tuple[Tuple[str, Tuple[str, ...], int], ...]
    criteria: Tuple[Tuple[str, float], ...]
    node_type: str
    evidence_strength: float
    connection_count: int
    impact_score: float
    risk: Tuple[float, float, float, float]
    expertise: frozenset = field(default_factory=frozenset)
    nominal_cost: float = 0.0

    @property
    def duration(self) -> int:
        return sum(days for _, _, days in self.steps)


EMPIRICAL = StrategyTemplate(
    strategy_type=StrategyType.EMPIRICAL_RESEARCH,
    description="Conduct empirical research to fill evidence gap",
    steps=(
        ("Design study methodology", ("methodologist", "domain_expert"), 30),
        ("Collect data", ("research_assistant", "data_collection_tools"), 60),
        ("Analyze results and update the graph", ("statistician",), 30),
    ),
    criteria=(("Evidence strength > 0.7", 0.7), ("Mean node confidence >= 0.6", 0.6)),
    node_type="evidence",
    evidence_strength=0.8,
    connection_count=3,
    impact_score=0.7,
    risk=(0.3, 0.4, 0.5, 0.2),
    expertise=frozenset({"methodologist", "domain_expert", "statistician"}),
    nominal_cost=40_000.0,
)

THEORETICAL = StrategyTemplate(
    strategy_type=StrategyType.THEORETICAL_DERIVATION,
    description="Develop theoretical framework to address conceptual gap",
    steps=(
        ("Map existing concepts", ("domain_expert",), 14),
        ("Derive theoretical framework", ("theorist",), 45),
        ("Peer review of framework", ("domain_expert",), 21),
    ),
    criteria=(("Pattern elements covered >= 0.8", 0.8),),
    node_type="theory",
    evidence_strength=0.6,
    connection_count=5,
    impact_score=0.8,
    risk=(0.2, 0.3, 0.4, 0.3),
    expertise=frozenset({"theorist", "domain_expert"}),
    nominal_cost=15_000.0,
)

COMPUTATIONAL = StrategyTemplate(
    strategy_type=StrategyType.COMPUTATIONAL_MODELING,
    description="Develop computational model to address methodological gap",
    steps=(
        ("Specify model", ("methodologist",), 14),
        ("Implement and calibrate model", ("data_scientist", "compute_cluster"), 45),
        ("Validate against observed data", ("statistician",), 30),
    ),
    criteria=(("Model validation accuracy >= 0.75", 0.75),),
    node_type="methodology",
    evidence_strength=0.7,
    connection_count=4,
    impact_score=0.6,
    risk=(0.4, 0.5, 0.3, 0.4),
    expertise=frozenset({"data_scientist", "methodologist", "statistician"}),
    nominal_cost=25_000.0,
)

LITERATURE = StrategyTemplate(
    strategy_type=StrategyType.LITERATURE_REVIEW,
    description="Conduct systematic literature review",
    steps=(
        ("Define search strategy", ("librarian",), 7),
        ("Screen and extract studies", ("research_assistant",), 30),
        ("Synthesize findings", ("domain_expert",), 14),
    ),
    criteria=(("Relevant studies identified >= 5", 5.0), ("Synthesis confidence >= 0.5", 0.5)),
    node_type="literature_synthesis",
    evidence_strength=0.5,
    connection_count=2,
    impact_score=0.4,
    risk=(0.1, 0.2, 0.2, 0.3),
    expertise=frozenset({"librarian", "domain_expert"}),
    nominal_cost=5_000.0,
)

CATALOG: Dict[GapType, List[StrategyTemplate]] = {
    GapType.MISSING_EVIDENCE: [EMPIRICAL],
    GapType.CONCEPTUAL_GAP: [THEORETICAL],
    GapType.METHODOLOGICAL_GAP: [COMPUTATIONAL],
    GapType.CAUSAL_GAP: [EMPIRICAL],
}


def _clip(value: float) -> float:
    return round(min(1.0, max(0.0, value)), 6)


def assess_risk(template: StrategyTemplate, resources: AvailableResources) -> RiskAssessment:
    """Base risk shifted by expertise coverage, budget headroom and timeframe."""
    feasibility, resource, time, quality = template.risk
    if template.expertise:
        offered = {skill.lower() for skill in resources.expertise} | {tool.lower() for tool in resources.tools}
        missing = 1 - len(template.expertise & offered) / len(template.expertise)
        feasibility += 0.2 * missing
        quality += 0.1 * missing
    if resources.budget < template.nominal_cost:
        resource += 0.2
    elif resources.budget >= 2 * template.nominal_cost:
        resource -= 0.1
    if template.duration > resources.timeframe:
        time += 0.2
    return RiskAssessment(
        feasibility_risk=_clip(feasibility),
        resource_risk=_clip(resource),
        time_risk=_clip(time),
        quality_risk=_clip(quality),
    )


def build_strategy(template: StrategyTemplate, gap: KnowledgeGap, resources: AvailableResources) -> GapFillStrategy:
    steps: List[StrategyStep] = []
    previous: List[str] = []
    for number, (action, needs, days) in enumerate(template.steps, start=1):
        steps.append(StrategyStep(step=number, action=action, resources=list(needs), timeline=days, dependencies=previous))
        previous = [action]
    return GapFillStrategy(
        gap_id=gap.id,
        strategy_type=template.strategy_type,
        description=template.description,
        steps=steps,
        success_criteria=[SuccessCriterion(criterion=text, threshold=threshold) for text, threshold in template.criteria],
        expected_outcome=ExpectedOutcome(
            node_type=template.node_type,
            evidence_strength=template.evidence_strength,
            connection_count=template.connection_count,
            impact_score=template.impact_score,
        ),
        risk_assessment=assess_risk(template, resources),
    )


def _alternative(strategy: GapFillStrategy) -> AlternativeApproach:
    risk = strategy.risk_assessment
    axes = {
        "feasibility": risk.feasibility_risk,
        "resource": risk.resource_risk,
        "time": risk.time_risk,
        "quality": risk.quality_risk,
    }
    worst = max(axes, key=axes.__getitem__)
    return AlternativeApproach(
        approach=strategy.strategy_type,
        viability=_clip(1 - risk.feasibility_risk),
        pros=[
            f"Produces {strategy.expected_outcome.node_type} with expected strength "
            f"{strategy.expected_outcome.evidence_strength:.1f}"
        ],
        cons=[f"Highest risk is {worst} ({axes[worst]:.2f})"],
    )


def recommend_strategies(gap: KnowledgeGap, resources: AvailableResources) -> StrategyRecommendation:
    templates = CATALOG.get(gap.type, []) + [LITERATURE]
    strategies = [build_strategy(template, gap, resources) for template in templates]
    recommended = max(strategies, key=lambda s: s.expected_outcome.impact_score)
    alternatives = sorted(
        (_alternative(s) for s in strategies if s is not recommended),
        key=lambda a: -a.viability,
    )
    return StrategyRecommendation(
        strategies=strategies,
        recommended_strategy=recommended,
        alternative_approaches=alternatives,
    )
