"""Research prioritization: scoring, phased planning and funding."""

from __future__ import annotations

from typing import Dict, List, Sequence

from reasoning_graph.models.gaps import (
    FundingRecommendation,
    KnowledgeGap,
    PrioritizationResult,
    ResearchConstraints,
    ResearchPhase,
    ResearchPlan,
    ResearchPrioritization,
    ResearchTimeline,
)

COST_SCALE = 1000.0
BASE_DURATION_DAYS = 30
DIFFICULTY_DURATION_DAYS = 150
PHASE_WIDTH = 3


def priority_score(gap: KnowledgeGap) -> float:
    return 0.4 * gap.importance + 0.3 * gap.fillability + 0.3 * gap.detectability


def _rationale(gap: KnowledgeGap) -> str:
    impact = "High impact" if gap.importance > 0.7 else "Moderate impact" if gap.importance > 0.4 else "Low impact"
    fill = (
        "good fillability"
        if gap.fillability > 0.6
        else "moderate fillability" if gap.fillability > 0.4 else "hard to fill"
    )
    return f"{impact} gap with {fill}"


def prioritize_gap(gap: KnowledgeGap, dependencies: List[str]) -> ResearchPrioritization:
    difficulty = 1 - gap.fillability
    return ResearchPrioritization(
        gap_id=gap.id,
        priority_score=priority_score(gap),
        rationale=_rationale(gap),
        urgency=gap.priority,
        impact=gap.importance,
        feasibility=gap.fillability,
        cost=difficulty * COST_SCALE,
        duration=int(round(BASE_DURATION_DAYS + DIFFICULTY_DURATION_DAYS * difficulty)),
        dependencies=dependencies,
        stakeholders=sorted({f"{domain}_researchers" for domain in gap.location.domain}),
        timeline=ResearchTimeline(
            short_term=gap.fillability > 0.7,
            medium_term=gap.fillability > 0.4,
            long_term=gap.fillability <= 0.4,
        ),
    )


def _dependencies(gaps: Sequence[KnowledgeGap]) -> Dict[str, List[str]]:
    """A gap depends on every higher-scoring gap that touches one of its nodes."""
    ranked = sorted(gaps, key=lambda g: (-priority_score(g), g.id))
    result: Dict[str, List[str]] = {}
    for i, gap in enumerate(ranked):
        nodes = set(gap.location.related_nodes)
        result[gap.id] = [other.id for other in ranked[:i] if nodes & set(other.location.related_nodes)]
    return result


def build_plan(prioritized: Sequence[ResearchPrioritization], constraints: ResearchConstraints) -> ResearchPlan:
    """
    Pack gaps, best first, into phases of up to three parallel workstreams.

    A gap is deferred when its cost would exceed the remaining budget or
    when no phase can take it without exceeding the timeline.
    """
    phases: List[ResearchPhase] = []
    deferred: List[str] = []
    spent = 0.0

    def elapsed() -> int:
        return sum(phase.duration for phase in phases)

    for item in prioritized:
        if spent + item.cost > constraints.budget:
            deferred.append(item.gap_id)
            continue
        current = phases[-1] if phases else None
        if current is not None and len(current.gaps) < PHASE_WIDTH:
            grown = max(current.duration, item.duration)
            if elapsed() - current.duration + grown <= constraints.timeline:
                current.gaps.append(item.gap_id)
                current.duration = grown
                current.cost += item.cost
                current.expected_outcomes.append(f"Resolve {item.gap_id}")
                spent += item.cost
                continue
        if elapsed() + item.duration > constraints.timeline:
            deferred.append(item.gap_id)
            continue
        phases.append(
            ResearchPhase(
                phase=len(phases) + 1,
                duration=item.duration,
                gaps=[item.gap_id],
                cost=item.cost,
                resources=list(constraints.resources),
                expected_outcomes=[f"Resolve {item.gap_id}"],
            )
        )
        spent += item.cost

    planned = [item for item in prioritized if item.gap_id not in set(deferred)]
    if planned:
        difficulty = sum(1 - item.feasibility for item in planned) / len(planned)
        risk = "high" if difficulty > 0.6 else "medium" if difficulty > 0.3 else "low"
    else:
        risk = "low"
    return ResearchPlan(
        phases=phases,
        total_cost=spent,
        total_duration=elapsed(),
        deferred_gaps=deferred,
        risk_profile=risk,
    )


def funding_recommendations(prioritized: Sequence[ResearchPrioritization], plan: ResearchPlan) -> List[FundingRecommendation]:
    planned = {gap_id for phase in plan.phases for gap_id in phase.gaps}
    return [
        FundingRecommendation(
            gap_id=item.gap_id,
            requested_amount=item.cost,
            justification=f"{item.rationale} (priority score {item.priority_score:.2f})",
            expected_roi=item.impact * COST_SCALE / max(item.cost, 1.0),
        )
        for item in prioritized
        if item.gap_id in planned
    ]


def prioritize(gaps: Sequence[KnowledgeGap], constraints: ResearchConstraints) -> PrioritizationResult:
    dependencies = _dependencies(gaps)
    prioritized = sorted(
        (prioritize_gap(gap, dependencies[gap.id]) for gap in gaps),
        key=lambda item: (-item.priority_score, item.gap_id),
    )
    plan = build_plan(prioritized, constraints)
    return PrioritizationResult(
        prioritized_gaps=prioritized,
        research_plan=plan,
        funding_recommendations=funding_recommendations(prioritized, plan),
    )
