"""Connectivity structure: components, cut vertices, bridges, blocks."""

from __future__ import annotations

import logging
from typing import List

import networkx as nx
import numpy as np

from reasoning_graph.analytics.index import GraphIndex
from reasoning_graph.models.enums import ComponentKind
from reasoning_graph.models.results import Block, Component, ConnectivityNumbers, StructureResult

logger = logging.getLogger(__name__)


def fiedler_value(adjacency: np.ndarray) -> float:
    """Second-smallest Laplacian eigenvalue of a symmetric (possibly weighted) adjacency."""
    if adjacency.shape[0] < 2:
        return 0.0
    laplacian = np.diag(adjacency.sum(axis=1)) - adjacency
    eigenvalues = np.linalg.eigvalsh(laplacian)
    return max(0.0, float(eigenvalues[1]))


def _components(index: GraphIndex) -> List[Component]:
    order = index.index

    def component(kind: ComponentKind, members) -> Component:
        nodes = sorted(members, key=order.__getitem__)
        return Component(kind=kind, nodes=nodes, size=len(nodes))

    found = [component(ComponentKind.STRONG, c) for c in nx.strongly_connected_components(index.digraph)]
    found += [component(ComponentKind.WEAK, c) for c in nx.weakly_connected_components(index.digraph)]
    found += [component(ComponentKind.BICONNECTED, c) for c in nx.biconnected_components(index.undirected)]
    return sorted(found, key=lambda c: (c.kind.value, order[c.nodes[0]]))


def analyze_structure(index: GraphIndex) -> StructureResult:
    if index.n == 0:
        return StructureResult()

    graph = index.undirected
    order = index.index

    articulation = sorted(nx.articulation_points(graph), key=order.__getitem__)

    bridges: List[str] = []
    for u, v in nx.bridges(graph):
        edge_ids = graph[u][v]["edge_ids"]
        # A pair carried by two edge records survives the loss of either one.
        if len(edge_ids) == 1:
            bridges.append(edge_ids[0])

    blocks: List[Block] = []
    for block_edges in nx.biconnected_component_edges(graph):
        nodes = set()
        edge_ids = set()
        for u, v in block_edges:
            nodes.update((u, v))
            edge_ids.update(graph[u][v]["edge_ids"])
        blocks.append(Block(nodes=sorted(nodes, key=order.__getitem__), edges=sorted(edge_ids)))
    blocks.sort(key=lambda b: order[b.nodes[0]])

    if index.n > 1:
        node_connectivity = int(nx.node_connectivity(graph))
        edge_connectivity = int(nx.edge_connectivity(graph))
    else:
        node_connectivity = edge_connectivity = 0

    return StructureResult(
        components=_components(index),
        articulation_points=articulation,
        bridges=sorted(bridges),
        blocks=blocks,
        connectivity=ConnectivityNumbers(
            node_connectivity=node_connectivity,
            edge_connectivity=edge_connectivity,
            algebraic_connectivity=fiedler_value(index.symmetric_adjacency()),
        ),
    )
