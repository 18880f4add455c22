"""Matrix and networkx views of a graph snapshot, shared by every analytics call.

Fill rule: a bidirectional edge populates both ``[s][t]`` and ``[t][s]``; a
directed edge populates only ``[s][t]``. Dangling endpoints and self-loops are
skipped. Parallel edges keep the smallest weight and add their capacities.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx
import numpy as np

from reasoning_graph.models.graph import GraphData, GraphEdge

logger = logging.getLogger(__name__)


def graph_fingerprint(graph: GraphData, options: Optional[Dict[str, Any]] = None) -> str:
    """Content hash over node ids and every edge attribute the matrices read, plus options if given."""
    payload: Dict[str, Any] = {
        "nodes": sorted(node.id for node in graph.nodes),
        "edges": sorted(
            (edge.source, edge.target, edge.bidirectional, edge.strength(), edge.capacity())
            for edge in graph.edges
        ),
    }
    if options is not None:
        payload["options"] = options
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


@dataclass
class GraphIndex:
    node_ids: List[str]
    index: Dict[str, int]
    adjacency: np.ndarray
    weights: np.ndarray
    capacity: np.ndarray
    edges: List[GraphEdge]
    digraph: nx.DiGraph
    cell_edges: Dict[Tuple[int, int], List[GraphEdge]] = field(default_factory=dict)
    _undirected: Optional[nx.Graph] = field(default=None, repr=False)

    @property
    def n(self) -> int:
        return len(self.node_ids)

    @classmethod
    def build(cls, graph: GraphData) -> "GraphIndex":
        node_ids = graph.node_ids()
        index = {node_id: i for i, node_id in enumerate(node_ids)}
        n = len(node_ids)

        adjacency = np.zeros((n, n), dtype=float)
        weights = np.full((n, n), np.inf, dtype=float)
        np.fill_diagonal(weights, 0.0)
        capacity = np.zeros((n, n), dtype=float)
        cell_edges: Dict[Tuple[int, int], List[GraphEdge]] = {}

        digraph = nx.DiGraph()
        digraph.add_nodes_from(node_ids)

        edges: List[GraphEdge] = []
        skipped = 0
        for edge in graph.edges:
            if edge.source not in index or edge.target not in index or edge.source == edge.target:
                skipped += 1
                continue
            edges.append(edge)
            s, t = index[edge.source], index[edge.target]
            cells = [(s, t), (t, s)] if edge.bidirectional else [(s, t)]
            strength = edge.strength()
            edge_capacity = edge.capacity()
            for i, j in cells:
                adjacency[i, j] = 1.0
                weights[i, j] = min(weights[i, j], strength)
                capacity[i, j] += edge_capacity
                cell_edges.setdefault((i, j), []).append(edge)

        for (i, j), contributing in cell_edges.items():
            digraph.add_edge(
                node_ids[i],
                node_ids[j],
                weight=float(weights[i, j]),
                capacity=float(capacity[i, j]),
                edge_ids=[e.id for e in contributing],
            )

        if skipped:
            logger.debug(f"Graph index skipped {skipped} dangling or self-loop edges")

        return cls(
            node_ids=node_ids,
            index=index,
            adjacency=adjacency,
            weights=weights,
            capacity=capacity,
            edges=edges,
            digraph=digraph,
            cell_edges=cell_edges,
        )

    @property
    def undirected(self) -> nx.Graph:
        """Undirected view; parallel and reciprocal cells collapse to the lighter weight."""
        if self._undirected is None:
            graph = nx.Graph()
            graph.add_nodes_from(self.node_ids)
            for u, v, data in self.digraph.edges(data=True):
                if graph.has_edge(u, v):
                    existing = graph[u][v]
                    existing["weight"] = min(existing["weight"], data["weight"])
                    existing["capacity"] = max(existing["capacity"], data["capacity"])
                    existing["edge_ids"] = sorted(set(existing["edge_ids"]) | set(data["edge_ids"]))
                else:
                    graph.add_edge(
                        u,
                        v,
                        weight=data["weight"],
                        capacity=data["capacity"],
                        edge_ids=list(data["edge_ids"]),
                    )
            self._undirected = graph
        return self._undirected

    def symmetric_adjacency(self) -> np.ndarray:
        return np.maximum(self.adjacency, self.adjacency.T)

    def incident_edge_counts(self) -> Dict[str, int]:
        """Number of valid edge records touching each node."""
        counts = {node_id: 0 for node_id in self.node_ids}
        for edge in self.edges:
            counts[edge.source] += 1
            counts[edge.target] += 1
        return counts

    def memory_estimate(self) -> int:
        """Rough byte estimate used in result envelopes."""
        return 100 * self.n + 50 * len(self.edges) + 8 * self.n * self.n
