"""
Graph Analytics Engine

Entry points for every analytics family. Each call builds a GraphIndex over
the snapshot, dispatches on an enum member and wraps the payload in an
AlgorithmResult envelope. Inputs are never mutated.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Union

import numpy as np

from reasoning_graph.analytics import centrality, community, flow, optimization, paths, similarity, structure
from reasoning_graph.analytics.cache import LRUCache
from reasoning_graph.analytics.index import GraphIndex, graph_fingerprint
from reasoning_graph.models.config import AnalyticsSettings
from reasoning_graph.models.enums import (
    CentralityMeasure,
    CommunityAlgorithm,
    ComponentKind,
    FlowAlgorithm,
    OptimizationAlgorithm,
    OptimizationObjective,
    PathAlgorithm,
    SimilarityType,
    coerce_choice,
)
from reasoning_graph.models.graph import GraphData
from reasoning_graph.models.options import CentralityOptions, CommunityOptions, SimilarityOptions
from reasoning_graph.models.results import (
    AlgorithmResult,
    CentralityResult,
    CommunityResult,
    FlowResult,
    OptimizationConstraints,
    OptimizationResult,
    PathResult,
    ResultMetadata,
    SimilarityResult,
    StructureResult,
)
from reasoning_graph.observability.metrics import MetricsCollector
from reasoning_graph.utils.structured_log import log_algorithm_call

logger = logging.getLogger(__name__)


class GraphAnalyticsEngine:
    """Structural analytics over reasoning-graph snapshots.

    The engine owns a bounded LRU cache of centrality results and a
    MetricsCollector; both live and die with the instance.
    """

    def __init__(
        self,
        settings: Optional[AnalyticsSettings] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.settings = settings or AnalyticsSettings()
        self.metrics = metrics or MetricsCollector()
        self._cache: LRUCache[AlgorithmResult] = LRUCache(self.settings.cache_capacity)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        return self._cache.stats()

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    @contextmanager
    def _track(self, name: str) -> Iterator[Dict[str, Any]]:
        """Time the wrapped block and record it, including failures."""
        state: Dict[str, Any] = {"started": time.perf_counter()}
        try:
            yield state
        except Exception as e:
            elapsed = (time.perf_counter() - state["started"]) * 1000
            self.metrics.record_call(name, elapsed, success=False, error_type=type(e).__name__)
            log_algorithm_call(name, "error", elapsed, error=str(e))
            raise
        elapsed = (time.perf_counter() - state["started"]) * 1000
        self.metrics.record_call(name, elapsed)
        log_algorithm_call(name, "ok", elapsed, **state.get("summary", {}))

    @staticmethod
    def _envelope(
        name: str,
        state: Dict[str, Any],
        index: GraphIndex,
        result: Any,
        confidence: float,
        parameters: Dict[str, Any],
        iterations: int = 0,
        converged: bool = True,
        quality: Optional[Dict[str, float]] = None,
    ) -> AlgorithmResult:
        return AlgorithmResult(
            algorithm_name=name,
            execution_time=(time.perf_counter() - state["started"]) * 1000,
            memory_usage=index.memory_estimate(),
            result=result,
            confidence=float(min(1.0, max(0.0, confidence))),
            metadata=ResultMetadata(
                parameters=parameters,
                convergence=converged,
                iterations=iterations,
                quality_metrics=quality or {},
            ),
        )

    # ------------------------------------------------------------------
    # Centrality
    # ------------------------------------------------------------------

    def compute_advanced_centrality(
        self, graph: GraphData, options: Optional[CentralityOptions] = None
    ) -> AlgorithmResult[CentralityResult]:
        """
        Compute the selected centrality measures.

        Args:
            graph: Snapshot to analyze
            options: Measures to compute and normalization/caching switches

        Returns:
            AlgorithmResult with one score map per measure

        Raises:
            UnknownAlgorithmError: If a measure name is not supported
        """
        options = options or CentralityOptions()
        measures = [coerce_choice(CentralityMeasure, tag, "centrality") for tag in options.algorithms]
        name = "advanced_centrality"
        cache_key = graph_fingerprint(graph, options.model_dump())

        if options.cache_results:
            cached = self._cache.get(cache_key)
            if cached is not None:
                self.metrics.record_call(name, 0.0, cached=True)
                log_algorithm_call(name, "cached", 0.0)
                logger.debug(f"Centrality served from cache ({cache_key[:12]})")
                return cached

        with self._track(name) as state:
            index = GraphIndex.build(graph)
            scores = centrality.compute_centrality(index, measures, self.settings, options.normalize)
            quality = centrality.centrality_quality(index, scores) if index.n else {}
            result = self._envelope(
                name,
                state,
                index,
                CentralityResult(measures=scores),
                confidence=0.5 + 0.5 * quality["coverage"] if index.n else 0.0,
                parameters={"algorithms": [m.value for m in measures], "normalize": options.normalize},
                iterations=self.settings.pagerank_iterations if CentralityMeasure.PAGERANK in measures else 0,
                quality=quality,
            )
            state["summary"] = {"nodes": index.n, "measures": len(measures)}

        if options.cache_results:
            self._cache.put(cache_key, result)
        return result

    # ------------------------------------------------------------------
    # Communities
    # ------------------------------------------------------------------

    def detect_advanced_communities(
        self,
        graph: GraphData,
        algorithm: Union[str, CommunityAlgorithm] = CommunityAlgorithm.LOUVAIN,
        options: Optional[CommunityOptions] = None,
    ) -> AlgorithmResult[CommunityResult]:
        choice = coerce_choice(CommunityAlgorithm, algorithm, "community detection")
        options = options or CommunityOptions()
        name = f"community_{choice.value}"
        with self._track(name) as state:
            index = GraphIndex.build(graph)
            partition, iterations = community.detect(index, choice, options)
            undirected = index.undirected
            communities = community.describe_communities(undirected, partition)
            hierarchy = community.build_hierarchy(undirected, partition) if options.hierarchical and partition else None
            quality = community.partition_quality(undirected, partition, communities)
            result = self._envelope(
                name,
                state,
                index,
                CommunityResult(
                    communities=communities,
                    membership=community.membership_of(partition),
                    hierarchy=hierarchy,
                ),
                confidence=0.5 + 0.5 * quality["modularity"] if partition else 0.0,
                parameters={"algorithm": choice.value, **options.model_dump()},
                iterations=iterations,
                converged=iterations < options.iterations,
                quality=quality,
            )
            state["summary"] = {"nodes": index.n, "communities": len(partition)}
        return result

    # ------------------------------------------------------------------
    # Paths and flow
    # ------------------------------------------------------------------

    def compute_advanced_paths(
        self,
        graph: GraphData,
        algorithm: Union[str, PathAlgorithm] = PathAlgorithm.DIJKSTRA,
        sources: Optional[Iterable[str]] = None,
        targets: Optional[Iterable[str]] = None,
    ) -> AlgorithmResult[PathResult]:
        choice = coerce_choice(PathAlgorithm, algorithm, "path")
        name = f"paths_{choice.value}"
        source_list = list(sources) if sources is not None else None
        target_list = list(targets) if targets is not None else None
        with self._track(name) as state:
            index = GraphIndex.build(graph)
            payload = paths.compute_paths(index, choice, source_list, target_list)
            reachable = sum(len(row) - 1 for row in payload.all_pairs_distances.values())
            possible = index.n * (index.n - 1)
            reachability = reachable / possible if possible else 0.0
            result = self._envelope(
                name,
                state,
                index,
                payload,
                confidence=reachability,
                parameters={"algorithm": choice.value, "sources": source_list, "targets": target_list},
                quality={
                    "reachability": reachability,
                    "diameter": payload.diameter,
                    "average_path_length": payload.average_path_length,
                },
            )
            state["summary"] = {"nodes": index.n, "paths": len(payload.shortest_paths)}
        return result

    def compute_max_flow(
        self,
        graph: GraphData,
        source: str,
        sink: str,
        algorithm: Union[str, FlowAlgorithm] = FlowAlgorithm.EDMONDS_KARP,
    ) -> AlgorithmResult[FlowResult]:
        """
        Maximum flow and minimum cut between two nodes.

        Raises:
            UnknownAlgorithmError: If the algorithm tag is not supported
            NodeNotFoundError: If source or sink is not in the graph
        """
        choice = coerce_choice(FlowAlgorithm, algorithm, "flow")
        name = f"max_flow_{choice.value}"
        with self._track(name) as state:
            index = GraphIndex.build(graph)
            payload, iterations = flow.compute_max_flow(
                index, source, sink, choice, self.settings.bottleneck_utilization
            )
            result = self._envelope(
                name,
                state,
                index,
                payload,
                confidence=1.0 if abs(payload.max_flow - payload.min_cut.capacity) <= 1e-6 else 0.5,
                parameters={"algorithm": choice.value, "source": source, "sink": sink},
                iterations=iterations,
                quality={
                    "max_flow": payload.max_flow,
                    "min_cut_capacity": payload.min_cut.capacity,
                    "bottleneck_count": float(len(payload.bottlenecks)),
                },
            )
            state["summary"] = {"max_flow": payload.max_flow}
        return result

    # ------------------------------------------------------------------
    # Structure and similarity
    # ------------------------------------------------------------------

    def analyze_structure(self, graph: GraphData) -> AlgorithmResult[StructureResult]:
        name = "structure_analysis"
        with self._track(name) as state:
            index = GraphIndex.build(graph)
            payload = structure.analyze_structure(index)
            weak = [c for c in payload.components if c.kind == ComponentKind.WEAK]
            result = self._envelope(
                name,
                state,
                index,
                payload,
                confidence=1.0 if index.n else 0.0,
                parameters={},
                quality={
                    "weak_components": float(len(weak)),
                    "articulation_points": float(len(payload.articulation_points)),
                    "bridges": float(len(payload.bridges)),
                    "algebraic_connectivity": payload.connectivity.algebraic_connectivity,
                },
            )
            state["summary"] = {"nodes": index.n, "components": len(weak)}
        return result

    def compute_similarity(
        self,
        graph: GraphData,
        similarity_types: Optional[Sequence[Union[str, SimilarityType]]] = None,
        options: Optional[SimilarityOptions] = None,
    ) -> AlgorithmResult[SimilarityResult]:
        kinds = [
            coerce_choice(SimilarityType, tag, "similarity")
            for tag in (similarity_types or [SimilarityType.STRUCTURAL])
        ]
        options = options or SimilarityOptions()
        name = "similarity"
        with self._track(name) as state:
            index = GraphIndex.build(graph)
            matrices = similarity.compute_similarity(graph, index, kinds, options)
            if index.n:
                combined = np.mean(np.stack(list(matrices.values())), axis=0)
                off_diagonal = combined[~np.eye(index.n, dtype=bool)]
                mean_similarity = float(off_diagonal.mean()) if off_diagonal.size else 0.0
            else:
                combined = np.zeros((0, 0))
                mean_similarity = 0.0
            payload = SimilarityResult(
                node_to_node=similarity.to_mapping(index, combined),
                edge_to_edge=similarity.edge_similarity(index.edges),
                by_type={kind: similarity.to_mapping(index, matrix) for kind, matrix in matrices.items()},
            )
            result = self._envelope(
                name,
                state,
                index,
                payload,
                confidence=0.8 if index.n else 0.0,
                parameters={"similarity_types": [k.value for k in kinds], **options.model_dump()},
                quality={"mean_similarity": mean_similarity, "types_computed": float(len(kinds))},
            )
            state["summary"] = {"nodes": index.n, "types": len(kinds)}
        return result

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def optimize_graph(
        self,
        graph: GraphData,
        objective: Union[str, OptimizationObjective] = OptimizationObjective.MODULARITY,
        constraints: Optional[OptimizationConstraints] = None,
        algorithm: Union[str, OptimizationAlgorithm] = OptimizationAlgorithm.GREEDY,
    ) -> AlgorithmResult[OptimizationResult]:
        """
        Search for graph edits that improve a structural objective.

        The returned edits describe the change; the input graph is left as is.
        """
        goal = coerce_choice(OptimizationObjective, objective, "optimization objective")
        choice = coerce_choice(OptimizationAlgorithm, algorithm, "optimization")
        constraints = constraints or OptimizationConstraints()
        name = f"optimize_{goal.value}_{choice.value}"
        with self._track(name) as state:
            index = GraphIndex.build(graph)
            payload = optimization.optimize(graph, goal, constraints, choice)
            result = self._envelope(
                name,
                state,
                index,
                payload,
                confidence=payload.convergence.optimality,
                parameters={"objective": goal.value, "algorithm": choice.value, **constraints.model_dump()},
                iterations=payload.convergence.iterations,
                converged=payload.convergence.converged,
                quality={
                    "original_value": payload.original_value,
                    "optimized_value": payload.optimized_value,
                    "improvement": payload.improvement,
                    "edit_count": float(len(payload.edits)),
                },
            )
            state["summary"] = {"improvement": payload.improvement, "edits": len(payload.edits)}
        return result
