"""The five knowledge-gap detectors and the detection summary helpers.

Each detector is a plain function of the snapshot returning KnowledgeGap
records with deterministic ids, so repeated passes over the same graph
deduplicate cleanly in the registry.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Set, Tuple

import networkx as nx
import numpy as np

from reasoning_graph.analytics.community import louvain_membership
from reasoning_graph.analytics.index import GraphIndex
from reasoning_graph.analytics.similarity import jaccard, label_keywords
from reasoning_graph.models.enums import GapType, ResearchPriorityTier
from reasoning_graph.models.gaps import (
    CausalCandidate,
    DomainKnowledge,
    ExpectedPattern,
    GapEvidence,
    GapImpact,
    GapLocation,
    GapMetadata,
    KnowledgeGap,
    KnownTheory,
    MissingConnection,
    ResearchRecommendation,
    StructuralHole,
)
from reasoning_graph.models.graph import GraphData, GraphNode

logger = logging.getLogger(__name__)

BRIDGE_RELATEDNESS_THRESHOLD = 0.2
UNMET_RELATIONSHIP_STRENGTH = 0.5
MAX_RECOMMENDATIONS = 5
MAX_STRUCTURAL_HOLES = 5


def _impact(reliability: float, completeness: float, coherence: float, explanatory: float) -> GapImpact:
    return GapImpact(
        on_reliability=reliability,
        on_completeness=completeness,
        on_coherence=coherence,
        on_explanatory_power=explanatory,
    )


def suggest_methodologies(gap: KnowledgeGap) -> List[str]:
    if gap.type == GapType.MISSING_EVIDENCE:
        return ["systematic_review", "empirical_study"]
    if gap.type == GapType.CONCEPTUAL_GAP:
        return ["theoretical_analysis", "conceptual_modeling"]
    if gap.type == GapType.METHODOLOGICAL_GAP:
        return ["methodology_development", "validation_study"]
    return ["literature_review"]


# Structural ---------------------------------------------------------------


def _isolated_node_gap(node: GraphNode) -> KnowledgeGap:
    return KnowledgeGap(
        id=f"structural_gap_{node.id}",
        type=GapType.MISSING_EDGE,
        description=f"Node {node.label or node.id} lacks expected connections",
        location=GapLocation(domain=[node.type], related_nodes=[node.id], contextual_area="structural_connectivity"),
        priority=0.6,
        confidence=0.8,
        detectability=0.9,
        fillability=0.7,
        importance=0.6,
        evidence=GapEvidence(indicative_patterns=["isolated_node"], structural_anomalies=["zero_degree_node"]),
        impact=_impact(0.3, 0.7, 0.5, 0.4),
        metadata=GapMetadata(detection_method="structural_analysis", research_priority=ResearchPriorityTier.MEDIUM),
    )


def _community_profile(members: Sequence[str], nodes: Dict[str, GraphNode]) -> Tuple[Set[str], Set[str]]:
    keywords: Set[str] = set()
    types: Set[str] = set()
    for node_id in members:
        keywords |= label_keywords(nodes[node_id].label)
        types.add(nodes[node_id].type)
    return keywords, types


def _bridge_gaps(graph: GraphData, index: GraphIndex, seed: Optional[int]) -> List[KnowledgeGap]:
    """Related communities (shared label keywords or node types) with no edge between them."""
    membership = louvain_membership(index, seed)
    communities: Dict[int, List[str]] = {}
    for node_id in index.node_ids:
        communities.setdefault(membership[node_id], []).append(node_id)
    candidates = [members for _, members in sorted(communities.items()) if len(members) >= 2]
    if len(candidates) < 2:
        return []

    nodes = graph.node_map()
    undirected = index.undirected
    owner = {node_id: i for i, members in enumerate(candidates) for node_id in members}
    linked: Set[Tuple[int, int]] = set()
    for u, v in undirected.edges():
        if u in owner and v in owner and owner[u] != owner[v]:
            linked.add((min(owner[u], owner[v]), max(owner[u], owner[v])))

    def representative(members: Sequence[str]) -> str:
        return max(members, key=lambda node_id: (undirected.degree(node_id), -index.index[node_id]))

    gaps: List[KnowledgeGap] = []
    profiles = [_community_profile(members, nodes) for members in candidates]
    for a, b in combinations(range(len(candidates)), 2):
        if (a, b) in linked:
            continue
        relatedness = max(jaccard(profiles[a][0], profiles[b][0]), jaccard(profiles[a][1], profiles[b][1]))
        if relatedness < BRIDGE_RELATEDNESS_THRESHOLD:
            continue
        left, right = representative(candidates[a]), representative(candidates[b])
        gaps.append(
            KnowledgeGap(
                id=f"bridge_gap_{left}_{right}",
                type=GapType.MISSING_EDGE,
                description=f"Related clusters around {left} and {right} are not connected",
                location=GapLocation(
                    domain=sorted(profiles[a][1] | profiles[b][1]),
                    related_nodes=[left, right],
                    contextual_area="community_bridging",
                ),
                priority=0.5,
                confidence=round(0.4 + 0.4 * relatedness, 6),
                detectability=0.6,
                fillability=0.6,
                importance=0.6,
                evidence=GapEvidence(
                    indicative_patterns=["disconnected_communities"],
                    missing_connections=[
                        MissingConnection(expected_source=left, expected_target=right, evidence_strength=relatedness)
                    ],
                    structural_anomalies=["missing_bridge"],
                ),
                impact=_impact(0.3, 0.6, 0.7, 0.5),
                metadata=GapMetadata(
                    detection_method="community_bridge_analysis", research_priority=ResearchPriorityTier.MEDIUM
                ),
            )
        )
    return gaps


def detect_structural_gaps(graph: GraphData, index: GraphIndex, seed: Optional[int] = 42) -> List[KnowledgeGap]:
    degree = {node_id: 0 for node_id in index.node_ids}
    for edge in graph.valid_edges():
        degree[edge.source] += 1
        degree[edge.target] += 1
    gaps = [_isolated_node_gap(node) for node in graph.nodes if degree[node.id] == 0]
    gaps.extend(_bridge_gaps(graph, index, seed))
    return gaps


# Evidential ---------------------------------------------------------------


def detect_evidential_gaps(graph: GraphData, threshold: float = 0.4) -> List[KnowledgeGap]:
    gaps: List[KnowledgeGap] = []
    for node in graph.nodes:
        mean = node.mean_confidence()
        if mean is None or mean >= threshold:
            continue
        gaps.append(
            KnowledgeGap(
                id=f"evidence_gap_{node.id}",
                type=GapType.MISSING_EVIDENCE,
                description=f"Node {node.label or node.id} needs additional supporting evidence",
                location=GapLocation(domain=[node.type], related_nodes=[node.id], contextual_area="evidence_support"),
                priority=0.7,
                confidence=0.9,
                detectability=0.8,
                fillability=0.8,
                importance=0.7,
                evidence=GapEvidence(
                    indicative_patterns=["low_confidence"], structural_anomalies=["insufficient_evidence"]
                ),
                impact=_impact(0.8, 0.4, 0.3, 0.5),
                metadata=GapMetadata(detection_method="confidence_analysis", research_priority=ResearchPriorityTier.HIGH),
            )
        )
    return gaps


# Conceptual ---------------------------------------------------------------


def _parse_relationship(relationship: str) -> Optional[Tuple[str, str, bool]]:
    """'a->b' is directed, 'a-b' is undirected."""
    if "->" in relationship:
        source, target = relationship.split("->", 1)
        return source.strip(), target.strip(), True
    if "-" in relationship:
        source, target = relationship.split("-", 1)
        return source.strip(), target.strip(), False
    return None


def _unmet_relationships(graph: GraphData, pattern: ExpectedPattern) -> List[MissingConnection]:
    present: Set[Tuple[str, str]] = set()
    for edge in graph.valid_edges():
        present.add((edge.source, edge.target))
        if edge.bidirectional:
            present.add((edge.target, edge.source))
    unmet: List[MissingConnection] = []
    for relationship in pattern.relationships:
        parsed = _parse_relationship(relationship)
        if parsed is None:
            logger.debug(f"Ignoring malformed relationship '{relationship}' in pattern {pattern.pattern}")
            continue
        source, target, directed = parsed
        satisfied = (source, target) in present or (not directed and (target, source) in present)
        if not satisfied:
            unmet.append(
                MissingConnection(
                    expected_source=source, expected_target=target, evidence_strength=UNMET_RELATIONSHIP_STRENGTH
                )
            )
    return unmet


def _theory_elements_present(graph: GraphData) -> Set[str]:
    present = set(graph.node_ids())
    present |= {node.label.strip().lower() for node in graph.nodes if node.label}
    return present


def _conceptual_gap(
    gap_id: str,
    description: str,
    related: List[str],
    area: str,
    missing: List[str],
    pattern: str,
    connections: Optional[List[MissingConnection]] = None,
) -> KnowledgeGap:
    return KnowledgeGap(
        id=gap_id,
        type=GapType.CONCEPTUAL_GAP,
        description=description,
        location=GapLocation(domain=["conceptual"], related_nodes=related, contextual_area=area),
        priority=0.8,
        confidence=0.7,
        detectability=0.6,
        fillability=0.5,
        importance=0.8,
        evidence=GapEvidence(
            indicative_patterns=[pattern],
            missing_connections=connections or [],
            structural_anomalies=missing,
        ),
        impact=_impact(0.4, 0.8, 0.9, 0.7),
        metadata=GapMetadata(detection_method="pattern_matching", research_priority=ResearchPriorityTier.HIGH),
    )


def detect_conceptual_gaps(graph: GraphData, knowledge: Optional[DomainKnowledge]) -> List[KnowledgeGap]:
    if knowledge is None:
        return []
    ids = set(graph.node_ids())
    gaps: List[KnowledgeGap] = []
    for pattern in knowledge.expected_patterns:
        missing = [node_id for node_id in pattern.nodes if node_id not in ids]
        if not missing:
            continue
        gaps.append(
            _conceptual_gap(
                f"conceptual_gap_{pattern.pattern}",
                f"Missing elements for pattern: {pattern.pattern}",
                [node_id for node_id in pattern.nodes if node_id in ids],
                pattern.pattern,
                missing,
                "missing_pattern_elements",
                _unmet_relationships(graph, pattern),
            )
        )

    present = _theory_elements_present(graph)
    for theory in knowledge.known_theories:
        gaps.extend(_theory_gap(theory, present, ids))
    return gaps


def _theory_gap(theory: KnownTheory, present: Set[str], ids: Set[str]) -> List[KnowledgeGap]:
    missing = [
        element
        for element in theory.required_elements
        if element not in present and element.strip().lower() not in present
    ]
    if not missing:
        return []
    related = [element for element in theory.required_elements if element in ids]
    return [
        _conceptual_gap(
            f"conceptual_gap_theory_{theory.theory}",
            f"Theory {theory.theory} lacks required elements: {', '.join(missing)}",
            related,
            theory.theory,
            missing,
            "incomplete_theory",
        )
    ]


# Methodological -------------------------------------------------------------


def detect_methodological_gaps(graph: GraphData) -> List[KnowledgeGap]:
    nodes = graph.node_map()
    gaps: List[KnowledgeGap] = []
    for edge in graph.valid_edges():
        if "causal" not in edge.type:
            continue
        if nodes[edge.source].metadata.get("methodology") or nodes[edge.target].metadata.get("methodology"):
            continue
        gaps.append(
            KnowledgeGap(
                id=f"methodological_gap_{edge.id}",
                type=GapType.METHODOLOGICAL_GAP,
                description=f"Causal claim lacks methodological support: {edge.source} -> {edge.target}",
                location=GapLocation(
                    domain=["methodology"], related_nodes=[edge.source, edge.target], contextual_area="causal_inference"
                ),
                priority=0.9,
                confidence=0.8,
                detectability=0.7,
                fillability=0.6,
                importance=0.9,
                evidence=GapEvidence(
                    indicative_patterns=["unsupported_causal_claim"], structural_anomalies=["missing_methodology"]
                ),
                impact=_impact(0.9, 0.3, 0.6, 0.8),
                metadata=GapMetadata(
                    detection_method="methodology_analysis", research_priority=ResearchPriorityTier.CRITICAL
                ),
            )
        )
    return gaps


# Causal -------------------------------------------------------------------


def _temporal_order(node: GraphNode) -> Optional[Tuple[str, float]]:
    """(kind, value) from ``metadata['stage']`` or ``metadata['timestamp']``."""
    stage = node.metadata.get("stage")
    if isinstance(stage, (int, float)) and not isinstance(stage, bool):
        return "stage", float(stage)
    stamp = node.metadata.get("timestamp")
    if isinstance(stamp, (int, float)) and not isinstance(stamp, bool):
        return "timestamp", float(stamp)
    if isinstance(stamp, str):
        try:
            return "timestamp", datetime.fromisoformat(stamp.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return None
    return None


def _precedes(first: GraphNode, second: GraphNode) -> bool:
    a, b = _temporal_order(first), _temporal_order(second)
    return a is not None and b is not None and a[0] == b[0] and a[1] < b[1]


def _confidence_correlation(first: GraphNode, second: GraphNode) -> float:
    if len(first.confidence) != len(second.confidence) or len(first.confidence) < 2:
        return 0.0
    x, y = np.array(first.confidence), np.array(second.confidence)
    if np.ptp(x) <= 1e-12 or np.ptp(y) <= 1e-12:
        return 0.0
    value = float(np.corrcoef(x, y)[0, 1])
    return 0.0 if math.isnan(value) else value


def infer_causal_candidates(graph: GraphData, index: GraphIndex, limit: int = 10) -> List[CausalCandidate]:
    """Non-adjacent ordered pairs where the source precedes the target in time
    and the two share neighbours or co-vary in confidence.

    strength = 0.4 + 0.3 * neighbour Jaccard + 0.3 * positive correlation.
    """
    if limit <= 0:
        return []
    undirected = index.undirected
    nodes = graph.node_map()
    neighbours = {node_id: set(undirected.neighbors(node_id)) for node_id in index.node_ids}
    found: List[CausalCandidate] = []
    for source in index.node_ids:
        for target in index.node_ids:
            if source == target or undirected.has_edge(source, target):
                continue
            if not _precedes(nodes[source], nodes[target]):
                continue
            shared = jaccard(neighbours[source], neighbours[target])
            correlation = max(0.0, _confidence_correlation(nodes[source], nodes[target]))
            if shared <= 0 and correlation <= 0:
                continue
            found.append(
                CausalCandidate(
                    source=source,
                    target=target,
                    strength=min(1.0, 0.4 + 0.3 * shared + 0.3 * correlation),
                    rationale="temporal precedence with shared context",
                )
            )
    found.sort(key=lambda c: (-c.strength, index.index[c.source], index.index[c.target]))
    return found[:limit]


def detect_causal_gaps(
    graph: GraphData,
    index: GraphIndex,
    knowledge: Optional[DomainKnowledge] = None,
    inferred_limit: int = 10,
) -> List[KnowledgeGap]:
    existing: Set[Tuple[str, str]] = set()
    for edge in graph.valid_edges():
        existing.add((edge.source, edge.target))
        if edge.bidirectional:
            existing.add((edge.target, edge.source))

    explicit = knowledge.causal_candidates if knowledge is not None else []
    candidates: Dict[Tuple[str, str], CausalCandidate] = {}
    for candidate in list(explicit) + infer_causal_candidates(graph, index, inferred_limit):
        pair = (candidate.source, candidate.target)
        if candidate.source not in index.index or candidate.target not in index.index:
            logger.debug(f"Skipping causal candidate with unknown endpoint: {pair}")
            continue
        if pair in existing or pair in candidates:
            continue
        candidates[pair] = candidate

    gaps: List[KnowledgeGap] = []
    for (source, target), candidate in candidates.items():
        gaps.append(
            KnowledgeGap(
                id=f"causal_gap_{source}_{target}",
                type=GapType.CAUSAL_GAP,
                description=f"Potential causal relationship: {source} -> {target}",
                location=GapLocation(domain=["causal"], related_nodes=[source, target], contextual_area="causal_structure"),
                priority=candidate.strength,
                confidence=0.6,
                detectability=0.5,
                fillability=0.4,
                importance=candidate.strength,
                evidence=GapEvidence(
                    indicative_patterns=["temporal_precedence", "correlation"],
                    missing_connections=[
                        MissingConnection(
                            expected_source=source, expected_target=target, evidence_strength=candidate.strength
                        )
                    ],
                    structural_anomalies=["missing_causal_link"],
                ),
                impact=_impact(0.6, 0.7, 0.8, 0.9),
                metadata=GapMetadata(detection_method="causal_inference", research_priority=ResearchPriorityTier.MEDIUM),
            )
        )
    return gaps


# Summary ------------------------------------------------------------------


def priority_band(priority: float) -> str:
    if priority > 0.7:
        return "high"
    if priority > 0.4:
        return "medium"
    return "low"


def find_structural_holes(index: GraphIndex, seed: Optional[int] = 42) -> List[StructuralHole]:
    """Nodes with the lowest Burt constraint whose neighbours span several communities."""
    undirected = index.undirected
    candidates = [node_id for node_id in index.node_ids if undirected.degree(node_id) >= 2]
    if not candidates:
        return []
    membership = louvain_membership(index, seed)
    constraint = nx.constraint(undirected, nodes=candidates)

    holes: List[StructuralHole] = []
    for node_id in candidates:
        value = constraint.get(node_id)
        if value is None or math.isnan(value):
            continue
        neighbours = sorted(undirected.neighbors(node_id), key=index.index.__getitem__)
        spanned = {membership[other] for other in neighbours}
        if len(spanned) < 2:
            continue
        holes.append(
            StructuralHole(
                id=f"structural_hole_{node_id}",
                description=f"{node_id} brokers between {len(spanned)} otherwise separate clusters",
                affected_nodes=[node_id, *neighbours],
                bridging_potential=float(min(1.0, max(0.0, 1.0 - value))),
            )
        )
    holes.sort(key=lambda h: (-h.bridging_potential, index.index[h.affected_nodes[0]]))
    return holes[:MAX_STRUCTURAL_HOLES]


def research_recommendations(gaps: Sequence[KnowledgeGap], limit: int = MAX_RECOMMENDATIONS) -> List[ResearchRecommendation]:
    ranked = sorted(gaps, key=lambda gap: (-gap.priority, gap.id))[:limit]
    return [
        ResearchRecommendation(
            gap_id=gap.id,
            priority=gap.priority,
            description=f"Research {gap.description}",
            expected_impact=gap.importance,
            estimated_effort=1 - gap.fillability,
            methodology=suggest_methodologies(gap),
        )
        for gap in ranked
    ]
