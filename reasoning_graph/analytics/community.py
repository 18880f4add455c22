"""Community detection on the undirected view of the reasoning graph.

Every detector returns a partition (list of node-id lists, every node in
exactly one community) plus the number of passes it took. Louvain runs on
python-louvain; the other detectors are implemented over networkx and numpy.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import community as community_louvain  # type: ignore[import-untyped]
import networkx as nx
import numpy as np
from scipy.cluster.vq import kmeans2

from reasoning_graph.analytics.index import GraphIndex
from reasoning_graph.models.enums import CommunityAlgorithm
from reasoning_graph.models.options import CommunityOptions
from reasoning_graph.models.results import Community, HierarchyLevel

logger = logging.getLogger(__name__)

Partition = List[List[str]]

WALKTRAP_STEPS = 4
SPECTRAL_MAX_CLUSTERS = 10


def _ordered(partition: Sequence[Sequence[str]], order: Dict[str, int]) -> Partition:
    """Sort members by snapshot order and communities by their first member."""
    cleaned = [sorted(set(members), key=order.__getitem__) for members in partition if members]
    return sorted(cleaned, key=lambda members: order[members[0]])


def _from_membership(membership: Dict[str, int]) -> Partition:
    groups: Dict[int, List[str]] = {}
    for node_id, label in membership.items():
        groups.setdefault(label, []).append(node_id)
    return list(groups.values())


def louvain(index: GraphIndex, options: CommunityOptions) -> Tuple[Partition, int]:
    graph = index.undirected
    dendrogram = community_louvain.generate_dendrogram(
        graph, weight="weight", resolution=options.resolution, random_state=options.random_seed
    )
    membership = community_louvain.partition_at_level(dendrogram, len(dendrogram) - 1)
    return _from_membership(membership), len(dendrogram)


def leiden(index: GraphIndex, options: CommunityOptions) -> Tuple[Partition, int]:
    """Louvain followed by the Leiden refinement guarantee: no community is internally disconnected."""
    partition, levels = louvain(index, options)
    graph = index.undirected
    refined: Partition = []
    splits = 0
    for members in partition:
        pieces = list(nx.connected_components(graph.subgraph(members)))
        splits += len(pieces) - 1
        refined.extend(list(piece) for piece in pieces)
    if splits:
        logger.debug(f"Leiden refinement split {splits} disconnected communities")
    return refined, levels + 1


def _plogp(value: float) -> float:
    return value * math.log2(value) if value > 0 else 0.0


def infomap(index: GraphIndex, options: CommunityOptions) -> Tuple[Partition, int]:
    """Two-level map equation minimised by greedy node moves.

    Flow is the stationary distribution of an undirected random walk, so a
    node's visit rate is its weighted degree over ``2m`` and a module's exit
    rate is its cut weight over ``2m``.
    """
    graph = index.undirected
    nodes = list(index.node_ids)
    strength = {u: sum(d["weight"] for _, _, d in graph.edges(u, data=True)) for u in nodes}
    total = sum(strength.values())
    if total <= 0:
        return [[u] for u in nodes], 0

    module = {u: i for i, u in enumerate(nodes)}
    volume = {i: strength[u] for i, u in enumerate(nodes)}
    exit_weight = {i: strength[u] for i, u in enumerate(nodes)}

    node_terms = sum(_plogp(strength[u] / total) for u in nodes)

    def codelength() -> float:
        q = sum(exit_weight.values()) / total
        exit_terms = sum(_plogp(e / total) for e in exit_weight.values())
        module_terms = sum(
            _plogp((exit_weight[m] + volume[m]) / total) for m in volume if volume[m] > 0
        )
        return _plogp(q) - 2 * exit_terms - node_terms + module_terms

    rng = random.Random(options.random_seed)
    best = codelength()
    passes = 0
    for passes in range(1, options.iterations + 1):
        moved = False
        order = nodes[:]
        rng.shuffle(order)
        for u in order:
            if strength[u] == 0:
                continue
            links: Dict[int, float] = {}
            for v, data in graph[u].items():
                links[module[v]] = links.get(module[v], 0.0) + data["weight"]
            current = module[u]
            w_current = links.get(current, 0.0)
            k_u = strength[u]

            best_target, best_length = current, best
            for target, w_target in links.items():
                if target == current:
                    continue
                saved = (volume[current], exit_weight[current], volume[target], exit_weight[target])
                volume[current] -= k_u
                exit_weight[current] += 2 * w_current - k_u
                volume[target] += k_u
                exit_weight[target] += k_u - 2 * w_target
                length = codelength()
                volume[current], exit_weight[current], volume[target], exit_weight[target] = saved
                if length < best_length - 1e-12:
                    best_target, best_length = target, length

            if best_target != current:
                w_target = links[best_target]
                volume[current] -= k_u
                exit_weight[current] += 2 * w_current - k_u
                volume[best_target] += k_u
                exit_weight[best_target] += k_u - 2 * w_target
                module[u] = best_target
                best = best_length
                moved = True
        if not moved:
            break
    return _from_membership(module), passes


def spectral(index: GraphIndex, options: CommunityOptions) -> Tuple[Partition, int]:
    """Normalised-Laplacian embedding, cluster count from the largest eigengap, k-means."""
    n = index.n
    if n < 3:
        return [list(c) for c in nx.connected_components(index.undirected)], 1
    weights = nx.to_numpy_array(index.undirected, nodelist=index.node_ids, weight="weight")
    degrees = weights.sum(axis=1)
    inv_sqrt = np.where(degrees > 0, 1.0 / np.sqrt(np.where(degrees > 0, degrees, 1.0)), 0.0)
    laplacian = np.eye(n) - inv_sqrt[:, None] * weights * inv_sqrt[None, :]
    eigenvalues, eigenvectors = np.linalg.eigh(laplacian)

    k_max = min(SPECTRAL_MAX_CLUSTERS, n - 1)
    gaps = np.diff(eigenvalues[: k_max + 1])
    k = int(np.argmax(gaps)) + 1 if gaps.size else 1
    if k <= 1:
        return [list(index.node_ids)], 1

    embedding = eigenvectors[:, :k]
    norms = np.linalg.norm(embedding, axis=1, keepdims=True)
    embedding = embedding / np.where(norms > 0, norms, 1.0)
    seed = options.random_seed if options.random_seed is not None else 0
    _, labels = kmeans2(embedding, k, iter=options.iterations, minit="++", seed=seed)
    membership = {node_id: int(labels[i]) for i, node_id in enumerate(index.node_ids)}
    return _from_membership(membership), options.iterations


def walktrap(index: GraphIndex, options: CommunityOptions) -> Tuple[Partition, int]:
    """Pons-Latapy agglomeration on random-walk distances (t = 4), cut at best modularity."""
    n = index.n
    graph = index.undirected
    weights = nx.to_numpy_array(graph, nodelist=index.node_ids, weight="weight") + np.eye(n)
    degrees = weights.sum(axis=1)
    transition = weights / degrees[:, None]
    walk = np.linalg.matrix_power(transition, WALKTRAP_STEPS)
    inv_sqrt_degree = 1.0 / np.sqrt(degrees)

    clusters: Dict[int, List[int]] = {i: [i] for i in range(n)}
    profiles: Dict[int, np.ndarray] = {i: walk[i].copy() for i in range(n)}
    neighbours: Dict[int, set] = {i: set() for i in range(n)}
    for u, v in graph.edges():
        i, j = index.index[u], index.index[v]
        neighbours[i].add(j)
        neighbours[j].add(i)

    def merge_cost(a: int, b: int) -> float:
        size_a, size_b = len(clusters[a]), len(clusters[b])
        diff = (profiles[a] - profiles[b]) * inv_sqrt_degree
        return (size_a * size_b / (size_a + size_b)) * float(diff @ diff) / n

    def snapshot() -> Partition:
        return [[index.node_ids[i] for i in members] for members in clusters.values()]

    best_partition = snapshot()
    best_modularity = modularity(graph, best_partition)
    next_id = n
    merges = 0
    while True:
        candidates = [(merge_cost(a, b), a, b) for a in clusters for b in neighbours[a] if a < b]
        if not candidates:
            break
        _, a, b = min(candidates)
        size_a, size_b = len(clusters[a]), len(clusters[b])
        profiles[next_id] = (size_a * profiles.pop(a) + size_b * profiles.pop(b)) / (size_a + size_b)
        clusters[next_id] = clusters.pop(a) + clusters.pop(b)
        merged_neighbours = (neighbours.pop(a) | neighbours.pop(b)) - {a, b}
        for other in merged_neighbours:
            neighbours[other].discard(a)
            neighbours[other].discard(b)
            neighbours[other].add(next_id)
        neighbours[next_id] = merged_neighbours
        next_id += 1
        merges += 1

        current = snapshot()
        score = modularity(graph, current)
        if score > best_modularity + 1e-12:
            best_partition, best_modularity = current, score
    return best_partition, merges


def label_propagation(index: GraphIndex, options: CommunityOptions) -> Tuple[Partition, int]:
    communities = nx.algorithms.community.label_propagation_communities(index.undirected)
    return [list(c) for c in communities], 1


DETECTORS: Dict[CommunityAlgorithm, Callable[[GraphIndex, CommunityOptions], Tuple[Partition, int]]] = {
    CommunityAlgorithm.LOUVAIN: louvain,
    CommunityAlgorithm.LEIDEN: leiden,
    CommunityAlgorithm.INFOMAP: infomap,
    CommunityAlgorithm.SPECTRAL: spectral,
    CommunityAlgorithm.WALKTRAP: walktrap,
    CommunityAlgorithm.LABEL_PROPAGATION: label_propagation,
}


def detect(index: GraphIndex, algorithm: CommunityAlgorithm, options: CommunityOptions) -> Tuple[Partition, int]:
    if index.n == 0:
        return [], 0
    partition, iterations = DETECTORS[algorithm](index, options)
    return _ordered(partition, index.index), iterations


# Quality ------------------------------------------------------------------


def modularity(graph: nx.Graph, partition: Partition, resolution: float = 1.0) -> float:
    if graph.number_of_edges() == 0 or not partition:
        return 0.0
    return float(nx.algorithms.community.modularity(graph, partition, weight="weight", resolution=resolution))


def _volume(graph: nx.Graph, members: set) -> float:
    return float(sum(d for _, d in graph.degree(members, weight="weight")))


def conductance(graph: nx.Graph, members: Sequence[str]) -> float:
    inside = set(members)
    cut = float(nx.cut_size(graph, inside, weight="weight"))
    volume_in = _volume(graph, inside)
    volume_out = _volume(graph, set(graph.nodes) - inside)
    denominator = min(volume_in, volume_out)
    return cut / denominator if denominator > 0 else 0.0


def describe_communities(graph: nx.Graph, partition: Partition) -> List[Community]:
    total_weight = graph.size(weight="weight")
    described: List[Community] = []
    for cid, members in enumerate(partition):
        size = len(members)
        sub = graph.subgraph(members)
        possible = size * (size - 1) / 2
        density = sub.number_of_edges() / possible if possible else 0.0
        if total_weight > 0:
            internal = sub.size(weight="weight")
            degree_sum = _volume(graph, set(members))
            contribution = internal / total_weight - (degree_sum / (2 * total_weight)) ** 2
        else:
            contribution = 0.0
        described.append(
            Community(
                id=cid,
                nodes=list(members),
                size=size,
                density=density,
                modularity=contribution,
                conductance=conductance(graph, members),
            )
        )
    return described


def partition_quality(graph: nx.Graph, partition: Partition, communities: List[Community]) -> Dict[str, float]:
    coverage = performance = 0.0
    if graph.number_of_edges() > 0 and graph.number_of_nodes() > 1 and partition:
        coverage, performance = nx.algorithms.community.partition_quality(graph, partition)
    mean_conductance = (
        sum(c.conductance for c in communities) / len(communities) if communities else 0.0
    )
    return {
        "modularity": modularity(graph, partition),
        "coverage": float(coverage),
        "performance": float(performance),
        "conductance": mean_conductance,
        "community_count": float(len(partition)),
    }


def build_hierarchy(graph: nx.Graph, partition: Partition) -> List[HierarchyLevel]:
    """Agglomerative merge tree over the detected partition.

    Each level merges the pair of communities joined by the heaviest total
    edge weight; merging stops when no two communities are connected.
    """
    levels = [HierarchyLevel(level=0, communities=[list(c) for c in partition], modularity=modularity(graph, partition))]
    current = [list(c) for c in partition]
    while len(current) > 1:
        owner = {node: i for i, members in enumerate(current) for node in members}
        between: Dict[Tuple[int, int], float] = {}
        for u, v, data in graph.edges(data=True):
            a, b = owner[u], owner[v]
            if a != b:
                key = (min(a, b), max(a, b))
                between[key] = between.get(key, 0.0) + data.get("weight", 1.0)
        if not between:
            break
        (a, b), _ = max(between.items(), key=lambda item: (item[1], -item[0][0], -item[0][1]))
        merged = current[a] + current[b]
        current = [members for i, members in enumerate(current) if i not in (a, b)] + [merged]
        levels.append(
            HierarchyLevel(
                level=len(levels),
                communities=[list(c) for c in current],
                merged=[a, b],
                modularity=modularity(graph, current),
            )
        )
    return levels


def membership_of(partition: Partition) -> Dict[str, int]:
    return {node: cid for cid, members in enumerate(partition) for node in members}


def louvain_membership(index: GraphIndex, seed: Optional[int] = 42) -> Dict[str, int]:
    """Convenience for callers that only need a node -> community map."""
    partition, _ = detect(index, CommunityAlgorithm.LOUVAIN, CommunityOptions(random_seed=seed))
    return membership_of(partition)
