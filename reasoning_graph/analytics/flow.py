"""Maximum flow, minimum cut and bottleneck analysis over the capacity matrix."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Dict, List, Optional, Tuple

import networkx as nx
import numpy as np
from networkx.algorithms.flow import dinitz, edmonds_karp, preflow_push

from reasoning_graph.analytics.index import GraphIndex
from reasoning_graph.errors import GraphAnalyticsError, NodeNotFoundError
from reasoning_graph.models.enums import FlowAlgorithm
from reasoning_graph.models.results import Bottleneck, FlowResult, MinCut

logger = logging.getLogger(__name__)

EPSILON = 1e-12
MAX_AUGMENTATIONS = 100_000


def _augmenting_path(residual: np.ndarray, source: int, sink: int) -> Optional[List[int]]:
    """Depth-first search for any source-sink path with positive residual capacity."""
    parent = {source: -1}
    stack = [source]
    while stack:
        u = stack.pop()
        if u == sink:
            break
        for v in np.nonzero(residual[u] > EPSILON)[0][::-1]:
            v = int(v)
            if v not in parent:
                parent[v] = u
                stack.append(v)
    if sink not in parent:
        return None
    path = [sink]
    while path[-1] != source:
        path.append(parent[path[-1]])
    return path[::-1]


def ford_fulkerson(index: GraphIndex, source: int, sink: int) -> Tuple[float, np.ndarray, int]:
    residual = index.capacity.copy()
    total = 0.0
    augmentations = 0
    while augmentations < MAX_AUGMENTATIONS:
        path = _augmenting_path(residual, source, sink)
        if path is None:
            break
        hops = list(zip(path, path[1:]))
        bottleneck = min(residual[u, v] for u, v in hops)
        for u, v in hops:
            residual[u, v] -= bottleneck
            residual[v, u] += bottleneck
        total += bottleneck
        augmentations += 1
    net = np.clip(index.capacity - residual, 0.0, None)
    return total, net, augmentations


def _networkx_solver(flow_func: Callable) -> Callable[[GraphIndex, int, int], Tuple[float, np.ndarray, int]]:
    def solve(index: GraphIndex, source: int, sink: int) -> Tuple[float, np.ndarray, int]:
        ids = index.node_ids
        value, flow_dict = nx.maximum_flow(
            index.digraph, ids[source], ids[sink], capacity="capacity", flow_func=flow_func
        )
        gross = np.zeros((index.n, index.n))
        for u, targets in flow_dict.items():
            for v, amount in targets.items():
                gross[index.index[u], index.index[v]] = amount
        net = np.clip(gross - gross.T, 0.0, None)
        return float(value), net, 0

    return solve


SOLVERS: Dict[FlowAlgorithm, Callable[[GraphIndex, int, int], Tuple[float, np.ndarray, int]]] = {
    FlowAlgorithm.FORD_FULKERSON: ford_fulkerson,
    FlowAlgorithm.EDMONDS_KARP: _networkx_solver(edmonds_karp),
    FlowAlgorithm.DINIC: _networkx_solver(dinitz),
    FlowAlgorithm.PUSH_RELABEL: _networkx_solver(preflow_push),
}


def _source_side(index: GraphIndex, net: np.ndarray, source: int) -> set:
    residual = index.capacity - net + net.T
    seen = {source}
    queue = deque([source])
    while queue:
        u = queue.popleft()
        for v in np.nonzero(residual[u] > EPSILON)[0]:
            v = int(v)
            if v not in seen:
                seen.add(v)
                queue.append(v)
    return seen


def _edge_flows(index: GraphIndex, net: np.ndarray) -> Dict[str, float]:
    """Split each cell's flow across its edge records in proportion to their capacity."""
    flows = {edge.id: 0.0 for edge in index.edges}
    for (i, j), contributing in index.cell_edges.items():
        amount = float(net[i, j])
        if amount <= EPSILON:
            continue
        cell_capacity = float(index.capacity[i, j])
        for edge in contributing:
            share = edge.capacity() / cell_capacity if cell_capacity > 0 else 1.0 / len(contributing)
            flows[edge.id] += amount * share
    return flows


def compute_max_flow(
    index: GraphIndex,
    source_id: str,
    sink_id: str,
    algorithm: FlowAlgorithm,
    bottleneck_utilization: float = 0.8,
) -> Tuple[FlowResult, int]:
    if source_id not in index.index:
        raise NodeNotFoundError(source_id, "source")
    if sink_id not in index.index:
        raise NodeNotFoundError(sink_id, "sink")
    if source_id == sink_id:
        raise GraphAnalyticsError("Flow source and sink must be different nodes")

    source, sink = index.index[source_id], index.index[sink_id]
    value, net, iterations = SOLVERS[algorithm](index, source, sink)

    source_side = _source_side(index, net, source)
    sink_side = [node_id for i, node_id in enumerate(index.node_ids) if i not in source_side]
    cut_edges: List[str] = []
    cut_capacity = 0.0
    for (i, j), contributing in index.cell_edges.items():
        if i in source_side and j not in source_side:
            cut_capacity += float(index.capacity[i, j])
            cut_edges.extend(edge.id for edge in contributing)

    distribution = _edge_flows(index, net)
    bottlenecks: List[Bottleneck] = []
    for edge in index.edges:
        flow = distribution[edge.id]
        capacity = edge.capacity()
        if flow <= EPSILON or capacity <= 0:
            continue
        utilization = flow / capacity
        if utilization >= bottleneck_utilization:
            bottlenecks.append(
                Bottleneck(
                    edge_id=edge.id,
                    source=edge.source,
                    target=edge.target,
                    flow=flow,
                    capacity=capacity,
                    utilization=utilization,
                    criticality=utilization * flow / value if value > 0 else 0.0,
                )
            )
    bottlenecks.sort(key=lambda b: (-b.criticality, b.edge_id))

    result = FlowResult(
        max_flow=float(value),
        min_cut=MinCut(
            capacity=cut_capacity,
            edges=sorted(set(cut_edges)),
            source_set=[index.node_ids[i] for i in sorted(source_side)],
            sink_set=sink_side,
        ),
        flow_distribution=distribution,
        bottlenecks=bottlenecks,
    )
    return result, iterations
