"""
Knowledge Gap Detector

Finds structural, evidential, conceptual, methodological and causal gaps in a
reasoning graph, synthesizes placeholders for them, derives fill strategies
and research priorities, and tracks gap-filling progress. All state lives in
the detector's own GapRegistry.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from reasoning_graph.analytics.index import GraphIndex
from reasoning_graph.gaps import detectors, placeholders, prioritization, strategies
from reasoning_graph.gaps.registry import GapRegistry
from reasoning_graph.gaps.sweeper import PeriodicSweeper
from reasoning_graph.models.config import GapSettings
from reasoning_graph.models.enums import GapStatus, ValidationStatus
from reasoning_graph.models.gaps import (
    AvailableResources,
    DomainKnowledge,
    EvidenceItem,
    GapAnalysisResult,
    GapFillStrategy,
    KnowledgeGap,
    MemoryStats,
    PlaceholderSynthesis,
    PrioritizationResult,
    ProgressAssessment,
    ProgressReport,
    ResearchConstraints,
    StrategyRecommendation,
    utc_now,
)
from reasoning_graph.models.graph import GraphData, GraphEdge
from reasoning_graph.utils.structured_log import log_gap_detection

logger = logging.getLogger(__name__)

COMPLETION_PER_EVIDENCE = 20.0
CONFIDENCE_PER_STRENGTH = 0.1


def classify_progress(completion_percentage: float) -> GapStatus:
    if completion_percentage > 80:
        return GapStatus.FILLED
    if completion_percentage > 40:
        return GapStatus.PARTIALLY_FILLED
    return GapStatus.OPEN


class KnowledgeGapDetector:
    """Gap detection with an owned, bounded registry.

    Call ``initialize()`` to start the periodic sweep and ``destroy()`` to stop
    it; both are idempotent. Hosts that schedule their own maintenance can
    skip the background task and call ``sweep()`` directly.
    """

    def __init__(
        self,
        settings: Optional[GapSettings] = None,
        random_seed: Optional[int] = 42,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or GapSettings()
        self.random_seed = random_seed
        self.registry = GapRegistry(self.settings, clock)
        self._rng = random.Random(random_seed)
        self._sweeper = PeriodicSweeper(self.sweep, self.settings.cleanup_interval_seconds)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        self.registry.clear()
        if self._sweeper.start():
            logger.info(
                f"Knowledge gap detector initialized (sweep every {self.settings.cleanup_interval_seconds:.0f}s)"
            )

    def destroy(self) -> None:
        self._sweeper.stop()
        self.registry.clear()
        logger.debug("Knowledge gap detector destroyed")

    @property
    def running(self) -> bool:
        return self._sweeper.running

    def __enter__(self) -> "KnowledgeGapDetector":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.destroy()

    def sweep(self) -> Dict[str, int]:
        return self.registry.sweep()

    def force_cleanup(self) -> Dict[str, int]:
        removed = self.registry.sweep()
        logger.info(f"Forced gap registry cleanup: {removed}")
        return removed

    def get_memory_stats(self) -> MemoryStats:
        return self.registry.memory_stats()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect_knowledge_gaps(
        self, graph: GraphData, domain_knowledge: Optional[DomainKnowledge] = None
    ) -> GapAnalysisResult:
        """
        Run all five detectors over the snapshot.

        Args:
            graph: Snapshot to scan
            domain_knowledge: Expected patterns, known theories and causal
                candidates supplied by the caller

        Returns:
            GapAnalysisResult summarizing the deduplicated gaps
        """
        index = GraphIndex.build(graph)
        found = (
            detectors.detect_structural_gaps(graph, index, self.random_seed)
            + detectors.detect_evidential_gaps(graph, self.settings.low_confidence_threshold)
            + detectors.detect_conceptual_gaps(graph, domain_knowledge)
            + detectors.detect_methodological_gaps(graph)
            + detectors.detect_causal_gaps(
                graph, index, domain_knowledge, self.settings.max_inferred_causal_candidates
            )
        )

        unique: Dict[str, KnowledgeGap] = {}
        for gap in found:
            unique.setdefault(gap.id, gap)
        gaps = [self.registry.add_gap(gap) for gap in unique.values()]
        self.registry.enforce_limits()

        by_type = dict(Counter(gap.type.value for gap in gaps))
        by_priority = {"high": 0, "medium": 0, "low": 0}
        for gap in gaps:
            by_priority[detectors.priority_band(gap.priority)] += 1

        logger.info(f"Gap detection: {len(gaps)} gaps identified from {len(graph.nodes)} nodes")
        log_gap_detection(len(gaps), by_type)
        return GapAnalysisResult(
            total_gaps=len(gaps),
            gaps=gaps,
            gaps_by_type=by_type,
            gaps_by_priority=by_priority,
            critical_gaps=[gap for gap in gaps if gap.priority > 0.8],
            fillable_gaps=[gap for gap in gaps if gap.fillability > 0.6],
            structural_holes=detectors.find_structural_holes(index, self.random_seed),
            research_recommendations=detectors.research_recommendations(gaps),
        )

    def create_placeholder_nodes(self, graph: GraphData, gaps: Sequence[KnowledgeGap]) -> PlaceholderSynthesis:
        """Append one placeholder per gap to a deep copy of ``graph``; the input is untouched."""
        modified = graph.model_copy(deep=True)
        dimensions = placeholders.confidence_dimensions(graph)
        taken = set(modified.node_ids())
        created = []
        connections: List[GraphEdge] = []
        for gap in gaps:
            placeholder = placeholders.build_placeholder(gap, graph, self._rng, dimensions)
            if placeholder.id in taken:
                logger.debug(f"Placeholder {placeholder.id} already present; skipping")
                continue
            taken.add(placeholder.id)
            edges = placeholders.hypothetical_edges(placeholder, gap, graph)
            modified.nodes.append(placeholders.as_graph_node(placeholder))
            modified.edges.extend(edges)
            connections.extend(edges)
            created.append(placeholder)
            self.registry.add_placeholder(placeholder)
        self.registry.enforce_limits()
        return PlaceholderSynthesis(modified_graph=modified, placeholder_nodes=created, new_connections=connections)

    # ------------------------------------------------------------------
    # Strategy and prioritization
    # ------------------------------------------------------------------

    def generate_gap_fill_strategies(
        self, gap: KnowledgeGap, resources: Optional[AvailableResources] = None
    ) -> StrategyRecommendation:
        recommendation = strategies.recommend_strategies(gap, resources or AvailableResources())
        for strategy in recommendation.strategies:
            self.registry.add_strategy(strategy)
        self.registry.enforce_limits()
        return recommendation

    def prioritize_research(
        self, gaps: Sequence[KnowledgeGap], constraints: Optional[ResearchConstraints] = None
    ) -> PrioritizationResult:
        return prioritization.prioritize(gaps, constraints or ResearchConstraints())

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def monitor_gap_filling_progress(self, gap_id: str, new_evidence: Sequence[EvidenceItem]) -> ProgressReport:
        """
        Fold a batch of evidence into a stored gap.

        Raises:
            GapNotFoundError: If no gap with ``gap_id`` is registered
        """
        gap = self.registry.get_gap(gap_id)
        evidence_count = gap.metadata.evidence_count + len(new_evidence)
        completion = min(100.0, COMPLETION_PER_EVIDENCE * evidence_count)
        strengths = [item.strength for item in new_evidence]
        quality = sum(strengths) / len(strengths) if strengths else 0.0
        confidence = min(1.0, gap.confidence + CONFIDENCE_PER_STRENGTH * sum(strengths))
        status = classify_progress(completion)

        updated = gap.model_copy(
            update={
                "confidence": confidence,
                "metadata": gap.metadata.model_copy(
                    update={
                        "evidence_count": evidence_count,
                        "completion_percentage": completion,
                        "status": status,
                        "validation_status": (
                            ValidationStatus.VALIDATED if status == GapStatus.FILLED else gap.metadata.validation_status
                        ),
                    }
                ),
            }
        )
        self.registry.update_gap(updated)

        assessment = ProgressAssessment(
            completion_percentage=completion,
            quality_score=quality,
            confidence_increase=confidence - gap.confidence,
            remaining_uncertainty=1.0 - confidence,
        )
        return ProgressReport(
            progress_assessment=assessment,
            updated_gap=updated,
            recommended_actions=self._progress_actions(status, quality),
            gap_status=status,
        )

    @staticmethod
    def _progress_actions(status: GapStatus, quality: float) -> List[str]:
        if status == GapStatus.FILLED:
            actions = ["Validate findings against independent sources", "Replace placeholder with confirmed node"]
        elif status == GapStatus.PARTIALLY_FILLED:
            actions = ["Continue current research direction", "Seek additional validation"]
        else:
            actions = ["Gather additional evidence", "Revisit the gap-fill strategy"]
        if quality < 0.5:
            actions.append("Prioritize higher-quality evidence sources")
        return actions

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_gap(self, gap_id: str) -> KnowledgeGap:
        return self.registry.get_gap(gap_id)

    def list_gaps(self) -> List[KnowledgeGap]:
        return self.registry.list_gaps()

    def list_strategies(self, gap_id: str) -> List[GapFillStrategy]:
        return [s for s in self.registry.strategies.values() if s.gap_id == gap_id]
