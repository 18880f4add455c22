"""
Unit tests for KnowledgeGapDetector.
"""

import pytest

from reasoning_graph.errors import GapNotFoundError
from reasoning_graph.gaps import KnowledgeGapDetector, classify_progress
from reasoning_graph.models import (
    CausalCandidate,
    DomainKnowledge,
    EvidenceItem,
    ExpectedPattern,
    GapSettings,
    GapStatus,
    GapType,
    GraphData,
    GraphEdge,
    GraphNode,
    KnownTheory,
)
from reasoning_graph.models.enums import ValidationStatus


@pytest.fixture
def detector():
    detector = KnowledgeGapDetector()
    yield detector
    detector.destroy()


@pytest.fixture
def staged_graph():
    """x precedes y in time; both hang off z but are not linked to each other."""
    return GraphData(
        nodes=[
            GraphNode(id="x", label="exposure", confidence=[0.9, 0.9], metadata={"stage": 1}),
            GraphNode(id="y", label="outcome", confidence=[0.9, 0.9], metadata={"stage": 2}),
            GraphNode(id="z", label="context", confidence=[0.9, 0.9]),
        ],
        edges=[
            GraphEdge(id="xz", source="x", target="z", bidirectional=True),
            GraphEdge(id="yz", source="y", target="z", bidirectional=True),
        ],
    )


class TestDetectKnowledgeGaps:
    """Test detect_knowledge_gaps."""

    def test_isolated_node_is_a_structural_gap(self, detector, isolated_node_graph):
        result = detector.detect_knowledge_gaps(isolated_node_graph)

        ids = [gap.id for gap in result.gaps]
        assert ids == ["structural_gap_d"]
        gap = result.gaps[0]
        assert gap.type == GapType.MISSING_EDGE
        assert gap.priority == pytest.approx(0.6)
        assert gap.location.related_nodes == ["d"]
        assert result.gaps_by_type == {"missing_edge": 1}
        assert result.gaps_by_priority == {"high": 0, "medium": 1, "low": 0}

    def test_evidence_and_methodology_gaps(self, detector, evidence_graph):
        result = detector.detect_knowledge_gaps(evidence_graph)
        by_id = {gap.id: gap for gap in result.gaps}

        assert by_id["evidence_gap_n3"].type == GapType.MISSING_EVIDENCE
        assert by_id["evidence_gap_n3"].fillability == pytest.approx(0.8)
        assert by_id["methodological_gap_e1"].priority == pytest.approx(0.9)
        # n4 documents its methodology, so its causal claim is covered.
        assert "methodological_gap_e3" not in by_id
        assert "evidence_gap_n1" not in by_id
        assert [gap.id for gap in result.critical_gaps] == ["methodological_gap_e1"]
        assert result.total_gaps == len(result.gaps)

    def test_recommendations_ranked_by_priority(self, detector, evidence_graph):
        result = detector.detect_knowledge_gaps(evidence_graph)

        priorities = [rec.priority for rec in result.research_recommendations]
        assert priorities == sorted(priorities, reverse=True)
        top = result.research_recommendations[0]
        assert top.gap_id == "methodological_gap_e1"
        assert top.methodology == ["methodology_development", "validation_study"]
        assert top.estimated_effort == pytest.approx(0.4)

    def test_conceptual_gaps_from_domain_knowledge(self, detector, evidence_graph):
        knowledge = DomainKnowledge(
            expected_patterns=[ExpectedPattern(pattern="sleep_memory", nodes=["n1", "n5"], relationships=["n1->n5"])],
            known_theories=[
                KnownTheory(theory="consolidation", required_elements=["Memory consolidation hypothesis", "hippocampus"])
            ],
        )
        by_id = {gap.id: gap for gap in detector.detect_knowledge_gaps(evidence_graph, knowledge).gaps}

        pattern_gap = by_id["conceptual_gap_sleep_memory"]
        assert pattern_gap.evidence.structural_anomalies == ["n5"]
        assert pattern_gap.location.related_nodes == ["n1"]
        assert [(c.expected_source, c.expected_target) for c in pattern_gap.evidence.missing_connections] == [
            ("n1", "n5")
        ]
        theory_gap = by_id["conceptual_gap_theory_consolidation"]
        assert theory_gap.evidence.structural_anomalies == ["hippocampus"]

    def test_causal_gap_inferred_from_temporal_order(self, detector, staged_graph):
        by_id = {gap.id: gap for gap in detector.detect_knowledge_gaps(staged_graph).gaps}

        assert "causal_gap_x_y" in by_id
        assert "causal_gap_y_x" not in by_id
        assert by_id["causal_gap_x_y"].priority == pytest.approx(0.7)

    def test_explicit_causal_candidate_takes_precedence(self, detector, staged_graph):
        knowledge = DomainKnowledge(causal_candidates=[CausalCandidate(source="x", target="y", strength=0.95)])
        gap = next(
            gap
            for gap in detector.detect_knowledge_gaps(staged_graph, knowledge).gaps
            if gap.id == "causal_gap_x_y"
        )
        assert gap.priority == pytest.approx(0.95)

    def test_existing_edge_suppresses_causal_candidate(self, detector, evidence_graph):
        knowledge = DomainKnowledge(causal_candidates=[CausalCandidate(source="n1", target="n2", strength=0.9)])
        ids = {gap.id for gap in detector.detect_knowledge_gaps(evidence_graph, knowledge).gaps}
        assert "causal_gap_n1_n2" not in ids

    def test_repeated_detection_deduplicates(self, detector, evidence_graph):
        first = detector.detect_knowledge_gaps(evidence_graph)
        detector.detect_knowledge_gaps(evidence_graph)
        assert len(detector.list_gaps()) == first.total_gaps

    def test_empty_graph(self, detector):
        result = detector.detect_knowledge_gaps(GraphData())
        assert result.total_gaps == 0
        assert result.structural_holes == []


class TestPlaceholders:
    """Test create_placeholder_nodes."""

    def test_input_graph_is_not_mutated(self, detector, evidence_graph):
        gaps = detector.detect_knowledge_gaps(evidence_graph).gaps
        before = evidence_graph.model_dump()

        synthesis = detector.create_placeholder_nodes(evidence_graph, gaps)

        assert evidence_graph.model_dump() == before
        assert len(synthesis.modified_graph.nodes) == len(evidence_graph.nodes) + len(gaps)
        assert len(synthesis.placeholder_nodes) == len(gaps)

    def test_placeholder_shape(self, detector, evidence_graph):
        gap = next(g for g in detector.detect_knowledge_gaps(evidence_graph).gaps if g.id == "evidence_gap_n3")
        synthesis = detector.create_placeholder_nodes(evidence_graph, [gap])

        placeholder = synthesis.placeholder_nodes[0]
        assert placeholder.id == "placeholder_evidence_gap_n3"
        assert placeholder.confidence == [0.1, 0.1, 0.1]
        assert placeholder.gap_id == "evidence_gap_n3"
        edge = synthesis.new_connections[0]
        assert edge.id == "placeholder_edge_placeholder_evidence_gap_n3_n3"
        assert edge.confidence == pytest.approx(0.2)
        assert edge.metadata["type"] == "placeholder_connection"
        assert edge.metadata["needs_validation"] is True

    def test_position_is_centroid_of_positioned_neighbours(self, detector, evidence_graph):
        gap = next(
            g for g in detector.detect_knowledge_gaps(evidence_graph).gaps if g.id == "methodological_gap_e1"
        )
        placeholder = detector.create_placeholder_nodes(evidence_graph, [gap]).placeholder_nodes[0]
        assert (placeholder.position.x, placeholder.position.y) == (150.0, 100.0)

    def test_placeholders_are_registered(self, detector, evidence_graph):
        gaps = detector.detect_knowledge_gaps(evidence_graph).gaps
        detector.create_placeholder_nodes(evidence_graph, gaps)
        assert detector.get_memory_stats().placeholder_nodes == len(gaps)


class TestProgress:
    """Test monitor_gap_filling_progress."""

    @pytest.mark.parametrize(
        ("completion", "status"),
        [(0, GapStatus.OPEN), (40, GapStatus.OPEN), (60, GapStatus.PARTIALLY_FILLED), (100, GapStatus.FILLED)],
    )
    def test_classify_progress(self, completion, status):
        assert classify_progress(completion) == status

    def test_five_items_fill_the_gap(self, detector, evidence_graph):
        detector.detect_knowledge_gaps(evidence_graph)
        evidence = [EvidenceItem(strength=0.8) for _ in range(5)]

        report = detector.monitor_gap_filling_progress("evidence_gap_n3", evidence)

        assert report.gap_status == GapStatus.FILLED
        assert report.progress_assessment.completion_percentage == 100.0
        assert report.progress_assessment.quality_score == pytest.approx(0.8)
        assert report.updated_gap.confidence == pytest.approx(1.0)
        assert report.updated_gap.metadata.validation_status == ValidationStatus.VALIDATED
        assert detector.get_gap("evidence_gap_n3").metadata.evidence_count == 5

    def test_progress_accumulates_across_calls(self, detector, evidence_graph):
        detector.detect_knowledge_gaps(evidence_graph)
        first = detector.monitor_gap_filling_progress("evidence_gap_n3", [EvidenceItem(strength=0.3)] * 2)
        second = detector.monitor_gap_filling_progress("evidence_gap_n3", [EvidenceItem(strength=0.3)])

        assert first.gap_status == GapStatus.OPEN
        assert "Prioritize higher-quality evidence sources" in first.recommended_actions
        assert second.progress_assessment.completion_percentage == pytest.approx(60.0)
        assert second.gap_status == GapStatus.PARTIALLY_FILLED

    def test_redetection_keeps_progress(self, detector, evidence_graph):
        detector.detect_knowledge_gaps(evidence_graph)
        detector.monitor_gap_filling_progress("evidence_gap_n3", [EvidenceItem(strength=0.5)] * 3)
        detector.detect_knowledge_gaps(evidence_graph)

        assert detector.get_gap("evidence_gap_n3").metadata.evidence_count == 3

    def test_unknown_gap_raises(self, detector):
        with pytest.raises(GapNotFoundError, match="Gap missing not found"):
            detector.monitor_gap_filling_progress("missing", [EvidenceItem(strength=0.5)])


class TestLifecycle:
    """Test initialize/destroy and cleanup hooks."""

    def test_initialize_and_destroy_are_idempotent(self):
        detector = KnowledgeGapDetector(GapSettings(cleanup_interval_seconds=3600))
        detector.initialize()
        detector.initialize()
        assert detector.running

        detector.destroy()
        detector.destroy()
        assert not detector.running

    def test_context_manager_clears_state(self, evidence_graph):
        with KnowledgeGapDetector() as detector:
            detector.detect_knowledge_gaps(evidence_graph)
            assert detector.list_gaps()
        assert detector.list_gaps() == []
        assert not detector.running

    def test_force_cleanup_reports_removed_counts(self, detector):
        assert detector.force_cleanup() == {"gaps": 0, "placeholders": 0, "strategies": 0}
        assert detector.get_memory_stats().last_cleanup is not None

    def test_strategies_are_tracked_per_gap(self, detector, evidence_graph):
        gap = next(g for g in detector.detect_knowledge_gaps(evidence_graph).gaps if g.id == "evidence_gap_n3")
        detector.generate_gap_fill_strategies(gap)
        assert len(detector.list_strategies("evidence_gap_n3")) == 2
