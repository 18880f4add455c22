"""
Unit tests for gap-fill strategies and research prioritization.
"""

import pytest

from reasoning_graph.gaps.prioritization import build_plan, prioritize, prioritize_gap, priority_score
from reasoning_graph.gaps.strategies import EMPIRICAL, LITERATURE, assess_risk, recommend_strategies
from reasoning_graph.models import AvailableResources, GapType, ResearchConstraints, StrategyType
from reasoning_graph.models.gaps import GapLocation


class TestRecommendStrategies:
    """Test recommend_strategies."""

    def test_evidence_gap_prefers_empirical_research(self, gap_factory):
        recommendation = recommend_strategies(gap_factory("g1"), AvailableResources())

        assert [s.strategy_type for s in recommendation.strategies] == [
            StrategyType.EMPIRICAL_RESEARCH,
            StrategyType.LITERATURE_REVIEW,
        ]
        assert recommendation.recommended_strategy.strategy_type == StrategyType.EMPIRICAL_RESEARCH
        assert [a.approach for a in recommendation.alternative_approaches] == [StrategyType.LITERATURE_REVIEW]

    @pytest.mark.parametrize(
        ("gap_type", "expected"),
        [
            (GapType.CONCEPTUAL_GAP, StrategyType.THEORETICAL_DERIVATION),
            (GapType.METHODOLOGICAL_GAP, StrategyType.COMPUTATIONAL_MODELING),
            (GapType.CAUSAL_GAP, StrategyType.EMPIRICAL_RESEARCH),
            (GapType.MISSING_EDGE, StrategyType.LITERATURE_REVIEW),
        ],
    )
    def test_catalog_by_gap_type(self, gap_factory, gap_type, expected):
        recommendation = recommend_strategies(gap_factory("g1", type=gap_type), AvailableResources())
        assert recommendation.recommended_strategy.strategy_type == expected

    def test_steps_chain_dependencies(self, gap_factory):
        strategy = recommend_strategies(gap_factory("g1"), AvailableResources()).recommended_strategy

        assert [step.step for step in strategy.steps] == [1, 2, 3]
        assert strategy.steps[0].dependencies == []
        assert strategy.steps[1].dependencies == [strategy.steps[0].action]
        assert strategy.gap_id == "g1"
        assert strategy.key == "g1_empirical_research"


class TestAssessRisk:
    """Test assess_risk."""

    def test_missing_expertise_raises_feasibility_risk(self):
        risk = assess_risk(EMPIRICAL, AvailableResources())

        assert risk.feasibility_risk == pytest.approx(0.5)
        assert risk.quality_risk == pytest.approx(0.3)
        assert risk.resource_risk == pytest.approx(0.4)
        assert risk.time_risk == pytest.approx(0.5)

    def test_well_resourced_short_timeframe(self):
        resources = AvailableResources(
            expertise=["Methodologist", "domain_expert", "statistician"],
            budget=100_000,
            timeframe=60,
        )
        risk = assess_risk(EMPIRICAL, resources)

        assert risk.feasibility_risk == pytest.approx(0.3)
        assert risk.resource_risk == pytest.approx(0.3)
        assert risk.time_risk == pytest.approx(0.7)

    def test_tight_budget(self):
        assert assess_risk(LITERATURE, AvailableResources(budget=1000)).resource_risk == pytest.approx(0.4)


class TestPrioritization:
    """Test scoring and phased planning."""

    def test_priority_score_formula(self, gap_factory):
        gap = gap_factory("g1", importance=0.7, fillability=0.8, detectability=0.8)
        assert priority_score(gap) == pytest.approx(0.76)

    def test_cost_and_duration_scale_with_difficulty(self, gap_factory):
        item = prioritize_gap(gap_factory("g1", fillability=0.8), [])

        assert item.cost == pytest.approx(200.0)
        assert item.duration == 60
        assert item.timeline.short_term
        assert item.rationale == "Moderate impact gap with good fillability"

    def test_ranked_best_first_with_dependencies(self, gap_factory):
        shared = GapLocation(domain=["evidence"], related_nodes=["n1"])
        gaps = [
            gap_factory("low", importance=0.2, location=shared),
            gap_factory("high", importance=0.9, location=shared),
            gap_factory("apart", importance=0.5),
        ]
        result = prioritize(gaps, ResearchConstraints())

        assert [item.gap_id for item in result.prioritized_gaps] == ["high", "apart", "low"]
        by_id = {item.gap_id: item for item in result.prioritized_gaps}
        assert by_id["low"].dependencies == ["high"]
        assert by_id["apart"].dependencies == []
        assert by_id["high"].stakeholders == ["evidence_researchers"]

    def test_phases_hold_three_workstreams(self, gap_factory):
        result = prioritize([gap_factory(f"g{i}") for i in range(4)], ResearchConstraints())
        plan = result.research_plan

        assert [len(phase.gaps) for phase in plan.phases] == [3, 1]
        assert plan.total_duration == 120
        assert plan.total_cost == pytest.approx(800.0)
        assert plan.deferred_gaps == []
        assert plan.risk_profile == "low"
        assert len(result.funding_recommendations) == 4

    def test_budget_defers_overflow(self, gap_factory):
        prioritized = [prioritize_gap(gap_factory(f"g{i}"), []) for i in range(2)]
        plan = build_plan(prioritized, ResearchConstraints(budget=300))

        assert plan.deferred_gaps == ["g1"]
        assert plan.total_cost == pytest.approx(200.0)

    def test_timeline_defers_long_work(self, gap_factory):
        prioritized = [prioritize_gap(gap_factory("slow", fillability=0.1), [])]
        result = build_plan(prioritized, ResearchConstraints(timeline=50))

        assert result.phases == []
        assert result.deferred_gaps == ["slow"]

    def test_funding_only_for_planned_gaps(self, gap_factory):
        result = prioritize([gap_factory("a"), gap_factory("b")], ResearchConstraints(budget=250))
        assert [f.gap_id for f in result.funding_recommendations] == ["a"]
        assert result.funding_recommendations[0].expected_roi == pytest.approx(0.7 * 1000 / 200)
