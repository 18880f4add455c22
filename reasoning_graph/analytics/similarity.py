"""Node-to-node and edge-to-edge similarity maps."""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Sequence, Set

import networkx as nx
import numpy as np

from reasoning_graph.analytics.index import GraphIndex
from reasoning_graph.models.enums import SimilarityType
from reasoning_graph.models.graph import GraphData, GraphEdge
from reasoning_graph.models.options import SimilarityOptions

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"[a-z0-9]+")
_MIN_KEYWORD_LENGTH = 3


def label_keywords(label: str) -> Set[str]:
    return {token for token in _TOKEN.findall(label.lower()) if len(token) >= _MIN_KEYWORD_LENGTH}


def jaccard(a: Set, b: Set) -> float:
    union = a | b
    return len(a & b) / len(union) if union else 0.0


def structural(graph: GraphData, index: GraphIndex, options: SimilarityOptions) -> np.ndarray:
    """Neighbourhood Jaccard per hop radius, decayed and averaged."""
    undirected = index.undirected
    n = index.n
    rings: List[List[Set[str]]] = []
    for node_id in index.node_ids:
        lengths = nx.single_source_shortest_path_length(undirected, node_id, cutoff=options.max_distance)
        rings.append(
            [
                {other for other, hops in lengths.items() if 0 < hops <= radius}
                for radius in range(1, options.max_distance + 1)
            ]
        )
    decay_weights = [options.decay ** (radius - 1) for radius in range(1, options.max_distance + 1)]
    norm = sum(decay_weights)

    matrix = np.eye(n)
    for i in range(n):
        for j in range(i + 1, n):
            score = sum(w * jaccard(rings[i][r], rings[j][r]) for r, w in enumerate(decay_weights)) / norm
            matrix[i, j] = matrix[j, i] = score
    return matrix


def semantic(graph: GraphData, index: GraphIndex, options: SimilarityOptions) -> np.ndarray:
    """Label keyword overlap blended with node type agreement."""
    nodes = graph.node_map()
    keywords = [label_keywords(nodes[node_id].label) for node_id in index.node_ids]
    types = [nodes[node_id].type for node_id in index.node_ids]
    keyword_weight = options.semantic_keyword_weight
    n = index.n
    matrix = np.eye(n)
    for i in range(n):
        for j in range(i + 1, n):
            score = keyword_weight * jaccard(keywords[i], keywords[j]) + (1 - keyword_weight) * (
                1.0 if types[i] == types[j] else 0.0
            )
            matrix[i, j] = matrix[j, i] = score
    return matrix


def role_vectors(graph: GraphData, index: GraphIndex) -> np.ndarray:
    """Per node: in-degree, out-degree, mean confidence, mean incident edge strength."""
    nodes = graph.node_map()
    strengths: Dict[str, List[float]] = {node_id: [] for node_id in index.node_ids}
    for edge in index.edges:
        strengths[edge.source].append(edge.strength())
        strengths[edge.target].append(edge.strength())
    rows = []
    for node_id in index.node_ids:
        confidence = nodes[node_id].mean_confidence()
        incident = strengths[node_id]
        rows.append(
            [
                float(index.digraph.in_degree(node_id)),
                float(index.digraph.out_degree(node_id)),
                confidence if confidence is not None else 0.0,
                sum(incident) / len(incident) if incident else 0.0,
            ]
        )
    vectors = np.array(rows, dtype=float).reshape(len(rows), 4)
    scale = np.abs(vectors).max(axis=0)
    return vectors / np.where(scale > 0, scale, 1.0)


def functional(graph: GraphData, index: GraphIndex, options: SimilarityOptions) -> np.ndarray:
    """Cosine similarity of role vectors."""
    vectors = role_vectors(graph, index)
    norms = np.linalg.norm(vectors, axis=1)
    safe = np.where(norms > 0, norms, 1.0)
    unit = vectors / safe[:, None]
    matrix = np.clip(unit @ unit.T, 0.0, 1.0)
    np.fill_diagonal(matrix, 1.0)
    return matrix


MEASURES: Dict[SimilarityType, Callable[[GraphData, GraphIndex, SimilarityOptions], np.ndarray]] = {
    SimilarityType.STRUCTURAL: structural,
    SimilarityType.SEMANTIC: semantic,
    SimilarityType.FUNCTIONAL: functional,
}


def edge_similarity(edges: Sequence[GraphEdge]) -> Dict[str, Dict[str, float]]:
    """0.4 type match + 0.3 endpoint Jaccard + 0.3 strength closeness."""
    result: Dict[str, Dict[str, float]] = {edge.id: {edge.id: 1.0} for edge in edges}
    for i, first in enumerate(edges):
        for second in edges[i + 1 :]:
            type_match = 1.0 if first.type == second.type else 0.0
            endpoints = jaccard({first.source, first.target}, {second.source, second.target})
            closeness = 1.0 - min(1.0, abs(first.strength() - second.strength()))
            score = 0.4 * type_match + 0.3 * endpoints + 0.3 * closeness
            result[first.id][second.id] = score
            result[second.id][first.id] = score
    return result


def to_mapping(index: GraphIndex, matrix: np.ndarray) -> Dict[str, Dict[str, float]]:
    ids = index.node_ids
    return {ids[i]: {ids[j]: float(matrix[i, j]) for j in range(len(ids))} for i in range(len(ids))}


def compute_similarity(
    graph: GraphData,
    index: GraphIndex,
    kinds: Sequence[SimilarityType],
    options: SimilarityOptions,
) -> Dict[str, np.ndarray]:
    if index.n == 0:
        return {kind.value: np.zeros((0, 0)) for kind in kinds}
    return {kind.value: MEASURES[kind](graph, index, options) for kind in kinds}
