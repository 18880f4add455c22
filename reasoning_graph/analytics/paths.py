"""All-pairs shortest paths and the distance metrics derived from them.

Edge lengths are the weighted-adjacency entries (edge strength). Unreachable
pairs are left out of every aggregate instead of counting as zero.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import networkx as nx
import numpy as np

from reasoning_graph.analytics.index import GraphIndex
from reasoning_graph.errors import GraphAnalyticsError, NodeNotFoundError
from reasoning_graph.models.enums import PathAlgorithm
from reasoning_graph.models.results import PathResult, ShortestPath

logger = logging.getLogger(__name__)

Distances = Dict[str, Dict[str, float]]
Paths = Dict[str, Dict[str, List[str]]]

_VIRTUAL_SOURCE = ("__johnson_source__",)


def _has_negative_weights(index: GraphIndex) -> bool:
    return any(data["weight"] < 0 for _, _, data in index.digraph.edges(data=True))


def dijkstra(index: GraphIndex) -> Tuple[Distances, Paths]:
    if _has_negative_weights(index):
        raise GraphAnalyticsError("Dijkstra requires non-negative edge weights; use johnson or bellman_ford")
    distances: Distances = {}
    paths: Paths = {}
    for source, (dist, path) in nx.all_pairs_dijkstra(index.digraph, weight="weight"):
        distances[source] = dict(dist)
        paths[source] = dict(path)
    return distances, paths


def floyd_warshall(index: GraphIndex) -> Tuple[Distances, Paths]:
    """Vectorised Floyd-Warshall with a predecessor matrix for path reconstruction."""
    n = index.n
    dist = index.weights.copy()
    predecessor = np.full((n, n), -1, dtype=int)
    finite = np.isfinite(dist) & ~np.eye(n, dtype=bool)
    rows = np.repeat(np.arange(n)[:, None], n, axis=1)
    predecessor[finite] = rows[finite]

    for k in range(n):
        via = dist[:, k, None] + dist[None, k, :]
        better = via < dist
        if better.any():
            dist = np.where(better, via, dist)
            predecessor = np.where(better, predecessor[k, :][None, :], predecessor)

    if np.any(np.diag(dist) < 0):
        raise GraphAnalyticsError("Graph contains a negative-weight cycle")

    distances: Distances = {}
    paths: Paths = {}
    ids = index.node_ids
    for i in range(n):
        distances[ids[i]] = {}
        paths[ids[i]] = {}
        for j in range(n):
            if not np.isfinite(dist[i, j]):
                continue
            distances[ids[i]][ids[j]] = float(dist[i, j])
            hops = [j]
            cursor = j
            while cursor != i:
                cursor = int(predecessor[i, cursor])
                if cursor < 0:
                    break
                hops.append(cursor)
            paths[ids[i]][ids[j]] = [ids[h] for h in reversed(hops)]
    return distances, paths


def bellman_ford(index: GraphIndex) -> Tuple[Distances, Paths]:
    graph = index.digraph
    if nx.negative_edge_cycle(graph, weight="weight"):
        raise GraphAnalyticsError("Graph contains a negative-weight cycle")
    distances: Distances = {}
    paths: Paths = {}
    for source in index.node_ids:
        dist, path = nx.single_source_bellman_ford(graph, source, weight="weight")
        distances[source] = dict(dist)
        paths[source] = dict(path)
    return distances, paths


def johnson(index: GraphIndex) -> Tuple[Distances, Paths]:
    """Bellman-Ford potentials from a virtual source, then Dijkstra on reweighted edges."""
    augmented = index.digraph.copy()
    augmented.add_node(_VIRTUAL_SOURCE)
    for node_id in index.node_ids:
        augmented.add_edge(_VIRTUAL_SOURCE, node_id, weight=0.0)
    try:
        potential = nx.single_source_bellman_ford_path_length(augmented, _VIRTUAL_SOURCE, weight="weight")
    except nx.NetworkXUnbounded as exc:
        raise GraphAnalyticsError("Graph contains a negative-weight cycle") from exc

    reweighted = nx.DiGraph()
    reweighted.add_nodes_from(index.node_ids)
    for u, v, data in index.digraph.edges(data=True):
        reweighted.add_edge(u, v, weight=data["weight"] + potential[u] - potential[v])

    distances: Distances = {}
    paths: Paths = {}
    for source in index.node_ids:
        dist, path = nx.single_source_dijkstra(reweighted, source, weight="weight")
        distances[source] = {
            target: value - potential[source] + potential[target] for target, value in dist.items()
        }
        paths[source] = dict(path)
    return distances, paths


SOLVERS: Dict[PathAlgorithm, Callable[[GraphIndex], Tuple[Distances, Paths]]] = {
    PathAlgorithm.DIJKSTRA: dijkstra,
    PathAlgorithm.FLOYD_WARSHALL: floyd_warshall,
    PathAlgorithm.JOHNSON: johnson,
    PathAlgorithm.BELLMAN_FORD: bellman_ford,
}


def path_reliability(index: GraphIndex, path: List[str]) -> float:
    """Product of hop strengths; 1.0 for the trivial path."""
    reliability = 1.0
    for u, v in zip(path, path[1:]):
        reliability *= float(index.weights[index.index[u], index.index[v]])
    return reliability


def _check_nodes(index: GraphIndex, node_ids: Optional[Iterable[str]], role: str) -> Optional[List[str]]:
    if node_ids is None:
        return None
    selected = list(node_ids)
    for node_id in selected:
        if node_id not in index.index:
            raise NodeNotFoundError(node_id, role)
    return selected


def compute_paths(
    index: GraphIndex,
    algorithm: PathAlgorithm,
    sources: Optional[Iterable[str]] = None,
    targets: Optional[Iterable[str]] = None,
) -> PathResult:
    source_list = _check_nodes(index, sources, "source")
    target_list = _check_nodes(index, targets, "target")
    if index.n == 0:
        return PathResult()

    distances, paths = SOLVERS[algorithm](index)

    eccentricities: Dict[str, float] = {}
    finite: List[float] = []
    for source in index.node_ids:
        others = [d for target, d in distances.get(source, {}).items() if target != source]
        if others:
            eccentricities[source] = max(others)
            finite.extend(others)

    diameter = max(finite) if finite else 0.0
    radius = min(eccentricities.values()) if eccentricities else 0.0
    central = [n for n, e in eccentricities.items() if math.isclose(e, radius, abs_tol=1e-12)]
    peripheral = [n for n, e in eccentricities.items() if math.isclose(e, diameter, abs_tol=1e-12)]

    wanted_sources = source_list if source_list is not None else index.node_ids
    wanted_targets = set(target_list) if target_list is not None else None
    shortest: List[ShortestPath] = []
    for source in wanted_sources:
        for target, distance in distances.get(source, {}).items():
            if target == source or (wanted_targets is not None and target not in wanted_targets):
                continue
            route = paths[source][target]
            shortest.append(
                ShortestPath(
                    source=source,
                    target=target,
                    distance=float(distance),
                    path=route,
                    reliability=path_reliability(index, route),
                )
            )

    return PathResult(
        shortest_paths=shortest,
        all_pairs_distances={s: {t: float(d) for t, d in row.items()} for s, row in distances.items()},
        diameter=float(diameter),
        radius=float(radius),
        average_path_length=float(sum(finite) / len(finite)) if finite else 0.0,
        eccentricities=eccentricities,
        central_nodes=central,
        peripheral_nodes=peripheral,
    )
