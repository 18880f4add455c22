"""Node centrality measures over a :class:`GraphIndex`."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Tuple

import networkx as nx
import numpy as np

from reasoning_graph.analytics.index import GraphIndex
from reasoning_graph.models.config import AnalyticsSettings
from reasoning_graph.models.enums import CentralityMeasure

logger = logging.getLogger(__name__)

Scores = Dict[str, float]


def _as_scores(index: GraphIndex, values: np.ndarray) -> Scores:
    return {node_id: float(values[i]) for i, node_id in enumerate(index.node_ids)}


def betweenness(index: GraphIndex, settings: AnalyticsSettings) -> Scores:
    # Brandes; edge strengths are not distances, so paths are counted unweighted.
    return dict(nx.betweenness_centrality(index.digraph, normalized=True))


def closeness(index: GraphIndex, settings: AnalyticsSettings) -> Scores:
    return dict(nx.closeness_centrality(index.digraph))


def harmonic(index: GraphIndex, settings: AnalyticsSettings) -> Scores:
    raw = nx.harmonic_centrality(index.digraph)
    scale = index.n - 1 if index.n > 1 else 1
    return {node_id: float(value) / scale for node_id, value in raw.items()}


def pagerank_vector(index: GraphIndex, settings: AnalyticsSettings) -> Tuple[np.ndarray, float]:
    """Power iteration for a fixed number of rounds.

    Each node splits its rank evenly across its out-edges; rank held by nodes
    without out-edges is spread uniformly. Returns the vector and the L1
    change of the last round.
    """
    n = index.n
    damping = settings.pagerank_damping
    adjacency = index.adjacency
    out_degree = adjacency.sum(axis=1)
    has_out = out_degree > 0
    safe_out = np.where(has_out, out_degree, 1.0)

    rank = np.full(n, 1.0 / n)
    delta = 0.0
    for _ in range(settings.pagerank_iterations):
        share = np.where(has_out, rank / safe_out, 0.0)
        dangling = rank[~has_out].sum()
        updated = (1.0 - damping) / n + damping * (adjacency.T @ share + dangling / n)
        delta = float(np.abs(updated - rank).sum())
        rank = updated
    return rank, delta


def pagerank(index: GraphIndex, settings: AnalyticsSettings) -> Scores:
    rank, _ = pagerank_vector(index, settings)
    return _as_scores(index, rank)


def eigenvector(index: GraphIndex, settings: AnalyticsSettings) -> Scores:
    """Power iteration on ``A_sym + I``; the shift keeps bipartite graphs from oscillating."""
    n = index.n
    shifted = index.symmetric_adjacency() + np.eye(n)
    vector = np.full(n, 1.0 / np.sqrt(n))
    for _ in range(max(settings.pagerank_iterations, 100)):
        updated = shifted @ vector
        norm = np.linalg.norm(updated)
        if norm == 0:
            break
        updated /= norm
        if np.abs(updated - vector).sum() < settings.power_iteration_tolerance * n:
            vector = updated
            break
        vector = updated
    return _as_scores(index, vector)


def katz(index: GraphIndex, settings: AnalyticsSettings) -> Scores:
    """Solve ``(I - alpha A^T) x = 1`` with ``alpha`` just inside the convergence radius."""
    n = index.n
    adjacency = index.adjacency
    spectral_radius = float(np.max(np.abs(np.linalg.eigvals(adjacency)))) if n else 0.0
    alpha = 0.9 / spectral_radius if spectral_radius > 1e-12 else 0.1
    solution = np.linalg.solve(np.eye(n) - alpha * adjacency.T, np.ones(n))
    norm = np.linalg.norm(solution)
    if norm > 0:
        solution = solution / norm
    return _as_scores(index, solution)


def degree(index: GraphIndex, settings: AnalyticsSettings) -> Scores:
    counts = index.incident_edge_counts()
    scale = index.n - 1 if index.n > 1 else 1
    return {node_id: count / scale for node_id, count in counts.items()}


def subgraph(index: GraphIndex, settings: AnalyticsSettings) -> Scores:
    """Estrada subgraph centrality: ``diag(exp(A_sym))`` via the eigendecomposition."""
    eigenvalues, eigenvectors = np.linalg.eigh(index.symmetric_adjacency())
    values = (eigenvectors ** 2) @ np.exp(eigenvalues)
    return _as_scores(index, values)


MEASURES: Dict[CentralityMeasure, Callable[[GraphIndex, AnalyticsSettings], Scores]] = {
    CentralityMeasure.BETWEENNESS: betweenness,
    CentralityMeasure.CLOSENESS: closeness,
    CentralityMeasure.PAGERANK: pagerank,
    CentralityMeasure.EIGENVECTOR: eigenvector,
    CentralityMeasure.KATZ: katz,
    CentralityMeasure.DEGREE: degree,
    CentralityMeasure.HARMONIC: harmonic,
    CentralityMeasure.SUBGRAPH: subgraph,
}


def min_max_normalize(scores: Scores) -> Scores:
    """Scale into [0, 1]; a measure with zero range is returned unchanged."""
    if not scores:
        return scores
    low = min(scores.values())
    high = max(scores.values())
    span = high - low
    if span <= 1e-12:
        return dict(scores)
    return {node_id: (value - low) / span for node_id, value in scores.items()}


def compute_centrality(
    index: GraphIndex,
    measures: Iterable[CentralityMeasure],
    settings: AnalyticsSettings,
    normalize: bool = True,
) -> Dict[str, Scores]:
    results: Dict[str, Scores] = {}
    if index.n == 0:
        return {measure.value: {} for measure in measures}
    for measure in measures:
        scores = MEASURES[measure](index, settings)
        results[measure.value] = min_max_normalize(scores) if normalize else scores
    return results


def centrality_quality(index: GraphIndex, results: Dict[str, Scores]) -> Dict[str, float]:
    """Coverage, degree variance and mean pairwise correlation between measures."""
    counts = index.incident_edge_counts()
    n = index.n
    coverage = sum(1 for c in counts.values() if c > 0) / n if n else 0.0
    degree_variance = float(np.var(list(counts.values()))) if n else 0.0

    varying: List[np.ndarray] = []
    for scores in results.values():
        vector = np.array([scores.get(node_id, 0.0) for node_id in index.node_ids])
        if vector.size > 1 and np.ptp(vector) > 1e-12:
            varying.append(vector)
    mean_correlation = 0.0
    if len(varying) > 1:
        matrix = np.corrcoef(np.vstack(varying))
        upper = matrix[np.triu_indices(len(varying), k=1)]
        mean_correlation = float(np.nanmean(upper)) if upper.size else 0.0

    return {
        "coverage": coverage,
        "degree_variance": degree_variance,
        "mean_measure_correlation": mean_correlation,
        "measures_computed": float(len(results)),
    }
