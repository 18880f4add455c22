"""Constrained graph-edit search against a structural objective.

The search space is sequences of edits (add/remove edge, add/remove node)
bounded by the per-kind limits and preserve sets in
:class:`OptimizationConstraints`. Every algorithm is seeded and therefore
deterministic for a given snapshot.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import community as community_louvain  # type: ignore[import-untyped]
import networkx as nx
import numpy as np

from reasoning_graph.analytics.structure import fiedler_value
from reasoning_graph.models.enums import EditType, OptimizationAlgorithm, OptimizationObjective
from reasoning_graph.models.graph import GraphData
from reasoning_graph.models.results import (
    ConvergenceInfo,
    GraphEdit,
    OptimizationConstraints,
    OptimizationResult,
)

logger = logging.getLogger(__name__)

IMPROVEMENT_EPSILON = 1e-9
MAX_CANDIDATES_PER_KIND = 60
ADDED_EDGE_STRENGTH = 0.5


# Objectives ---------------------------------------------------------------


def modularity_objective(graph: nx.Graph, seed: Optional[int]) -> float:
    if graph.number_of_edges() == 0 or graph.size(weight="weight") <= 0:
        return 0.0
    partition = community_louvain.best_partition(graph, weight="weight", random_state=seed)
    return float(community_louvain.modularity(partition, graph, weight="weight"))


def efficiency_objective(graph: nx.Graph, seed: Optional[int]) -> float:
    if graph.number_of_nodes() < 2:
        return 0.0
    return float(nx.global_efficiency(graph))


def robustness_objective(graph: nx.Graph, seed: Optional[int]) -> float:
    """Mean share of the remaining nodes kept in the largest component after deleting one node."""
    n = graph.number_of_nodes()
    if n < 2:
        return 0.0
    total = 0.0
    for node in list(graph.nodes):
        reduced = graph.subgraph([other for other in graph.nodes if other != node])
        largest = max((len(c) for c in nx.connected_components(reduced)), default=0)
        total += largest / (n - 1)
    return total / n


def centrality_objective(graph: nx.Graph, seed: Optional[int]) -> float:
    """One minus Freeman degree centralization; 1.0 means perfectly even degrees."""
    n = graph.number_of_nodes()
    if n < 3:
        return 1.0
    degrees = [d for _, d in graph.degree()]
    peak = max(degrees)
    centralization = sum(peak - d for d in degrees) / ((n - 1) * (n - 2))
    return 1.0 - centralization


def flow_objective(graph: nx.Graph, seed: Optional[int]) -> float:
    """Capacity-weighted algebraic connectivity, normalised by the largest capacity."""
    if graph.number_of_nodes() < 2 or graph.number_of_edges() == 0:
        return 0.0
    capacities = nx.to_numpy_array(graph, weight="capacity")
    peak = float(capacities.max())
    if peak <= 0:
        return 0.0
    return fiedler_value(capacities) / peak


OBJECTIVES: Dict[OptimizationObjective, Callable[[nx.Graph, Optional[int]], float]] = {
    OptimizationObjective.MODULARITY: modularity_objective,
    OptimizationObjective.EFFICIENCY: efficiency_objective,
    OptimizationObjective.ROBUSTNESS: robustness_objective,
    OptimizationObjective.CENTRALITY: centrality_objective,
    OptimizationObjective.FLOW: flow_objective,
}


# Search state -------------------------------------------------------------


@dataclass
class EditState:
    nodes: List[str]
    edges: Dict[str, Tuple[str, str, float, float]]
    counts: Dict[EditType, int] = field(default_factory=lambda: {kind: 0 for kind in EditType})

    @classmethod
    def from_graph(cls, graph: GraphData) -> "EditState":
        return cls(
            nodes=graph.node_ids(),
            edges={
                edge.id: (edge.source, edge.target, edge.strength(), edge.capacity())
                for edge in graph.valid_edges()
                if edge.source != edge.target
            },
        )

    def copy(self) -> "EditState":
        return EditState(nodes=list(self.nodes), edges=dict(self.edges), counts=dict(self.counts))

    def to_graph(self) -> nx.Graph:
        graph = nx.Graph()
        graph.add_nodes_from(self.nodes)
        for source, target, strength, capacity in self.edges.values():
            if graph.has_edge(source, target):
                data = graph[source][target]
                data["weight"] = max(data["weight"], strength)
                data["capacity"] += capacity
            else:
                graph.add_edge(source, target, weight=strength, capacity=capacity)
        return graph

    def adjacent(self, u: str, v: str) -> bool:
        return any({s, t} == {u, v} for s, t, _, _ in self.edges.values())


class EditSpace:
    """Legal moves under the constraints, and their application to a state."""

    def __init__(self, constraints: OptimizationConstraints, rng: random.Random):
        self.constraints = constraints
        self.rng = rng
        self.limits = {
            EditType.ADD_EDGE: constraints.max_edge_additions,
            EditType.REMOVE_EDGE: constraints.max_edge_removals,
            EditType.ADD_NODE: constraints.max_node_additions,
            EditType.REMOVE_NODE: constraints.max_node_removals,
        }
        self.preserve_nodes = set(constraints.preserve_nodes)
        self.preserve_edges = set(constraints.preserve_edges)

    def _room(self, state: EditState, kind: EditType) -> bool:
        return state.counts[kind] < self.limits[kind]

    def _sample(self, moves: List[GraphEdit]) -> List[GraphEdit]:
        if len(moves) <= MAX_CANDIDATES_PER_KIND:
            return moves
        return self.rng.sample(moves, MAX_CANDIDATES_PER_KIND)

    def candidates(self, state: EditState) -> List[GraphEdit]:
        moves: List[GraphEdit] = []
        if self._room(state, EditType.ADD_EDGE):
            linked = {frozenset((s, t)) for s, t, _, _ in state.edges.values()}
            pairs = [
                GraphEdit(type=EditType.ADD_EDGE, source=u, target=v)
                for i, u in enumerate(state.nodes)
                for v in state.nodes[i + 1 :]
                if frozenset((u, v)) not in linked
            ]
            moves += self._sample(pairs)
        if self._room(state, EditType.REMOVE_EDGE):
            removable = [
                GraphEdit(type=EditType.REMOVE_EDGE, target=edge_id)
                for edge_id in state.edges
                if edge_id not in self.preserve_edges
            ]
            moves += self._sample(removable)
        if self._room(state, EditType.REMOVE_NODE):
            protected = set(self.preserve_nodes)
            for edge_id in self.preserve_edges:
                if edge_id in state.edges:
                    protected.update(state.edges[edge_id][:2])
            removable_nodes = [
                GraphEdit(type=EditType.REMOVE_NODE, target=node_id)
                for node_id in state.nodes
                if node_id not in protected
            ]
            moves += self._sample(removable_nodes)
        if self._room(state, EditType.ADD_NODE) and state.nodes:
            degree = {node_id: 0 for node_id in state.nodes}
            for s, t, _, _ in state.edges.values():
                degree[s] += 1
                degree[t] += 1
            anchor = max(state.nodes, key=lambda node_id: (degree[node_id], node_id))
            new_id = f"opt_node_{state.counts[EditType.ADD_NODE] + 1}"
            while new_id in degree:
                new_id += "_"
            moves.append(GraphEdit(type=EditType.ADD_NODE, source=anchor, target=new_id))
        return moves

    def apply(self, state: EditState, move: GraphEdit) -> Optional[EditState]:
        """Return the edited copy, or None when the move is no longer legal."""
        if not self._room(state, move.type):
            return None
        nxt = state.copy()
        if move.type == EditType.ADD_EDGE:
            if move.source not in nxt.nodes or move.target not in nxt.nodes or nxt.adjacent(move.source, move.target):
                return None
            edge_id = f"opt_edge_{move.source}_{move.target}"
            while edge_id in nxt.edges:
                edge_id += "_"
            nxt.edges[edge_id] = (move.source, move.target, ADDED_EDGE_STRENGTH, 1.0)
        elif move.type == EditType.REMOVE_EDGE:
            if move.target not in nxt.edges or move.target in self.preserve_edges:
                return None
            del nxt.edges[move.target]
        elif move.type == EditType.REMOVE_NODE:
            if move.target not in nxt.nodes or move.target in self.preserve_nodes:
                return None
            incident = [eid for eid, (s, t, _, _) in nxt.edges.items() if move.target in (s, t)]
            if any(eid in self.preserve_edges for eid in incident):
                return None
            nxt.nodes.remove(move.target)
            for eid in incident:
                del nxt.edges[eid]
        elif move.type == EditType.ADD_NODE:
            if move.source not in nxt.nodes or move.target in nxt.nodes:
                return None
            nxt.nodes.append(move.target)
            nxt.edges[f"opt_edge_{move.source}_{move.target}"] = (move.source, move.target, ADDED_EDGE_STRENGTH, 1.0)
        nxt.counts[move.type] += 1
        return nxt


# Algorithms ---------------------------------------------------------------


@dataclass
class SearchOutcome:
    state: EditState
    edits: List[GraphEdit]
    iterations: int


Evaluator = Callable[[EditState], float]


def _best_single_move(space: EditSpace, state: EditState, value: float, evaluate: Evaluator) -> Tuple[Optional[GraphEdit], Optional[EditState], float]:
    best_move, best_state, best_gain = None, None, 0.0
    for move in space.candidates(state):
        candidate = space.apply(state, move)
        if candidate is None:
            continue
        gain = evaluate(candidate) - value
        if gain > best_gain + IMPROVEMENT_EPSILON:
            best_move, best_state, best_gain = move, candidate, gain
    return best_move, best_state, best_gain


def greedy(state: EditState, space: EditSpace, evaluate: Evaluator, max_iterations: int) -> SearchOutcome:
    value = evaluate(state)
    edits: List[GraphEdit] = []
    iterations = 0
    for iterations in range(1, max_iterations + 1):
        move, nxt, gain = _best_single_move(space, state, value, evaluate)
        if move is None:
            break
        edits.append(move.model_copy(update={"impact": gain}))
        state, value = nxt, value + gain
    return SearchOutcome(state=state, edits=edits, iterations=iterations)


def simulated_annealing(
    state: EditState,
    space: EditSpace,
    evaluate: Evaluator,
    max_iterations: int,
    initial_temperature: float = 0.1,
    cooling: float = 0.95,
) -> SearchOutcome:
    rng = space.rng
    current, current_value = state, evaluate(state)
    current_edits: List[GraphEdit] = []
    best, best_value, best_edits = current, current_value, []
    temperature = initial_temperature
    iterations = 0
    for iterations in range(1, max_iterations + 1):
        moves = space.candidates(current)
        if not moves:
            break
        move = rng.choice(moves)
        candidate = space.apply(current, move)
        if candidate is not None:
            candidate_value = evaluate(candidate)
            delta = candidate_value - current_value
            if delta > 0 or rng.random() < math.exp(delta / max(temperature, 1e-12)):
                current, current_value = candidate, candidate_value
                current_edits = current_edits + [move.model_copy(update={"impact": delta})]
                if current_value > best_value + IMPROVEMENT_EPSILON:
                    best, best_value, best_edits = current, current_value, current_edits
        temperature *= cooling
    return SearchOutcome(state=best, edits=best_edits, iterations=iterations)


def _replay(state: EditState, space: EditSpace, genome: Sequence[GraphEdit], evaluate: Evaluator) -> Tuple[EditState, List[GraphEdit], float]:
    value = evaluate(state)
    applied: List[GraphEdit] = []
    for move in genome:
        nxt = space.apply(state, move)
        if nxt is None:
            continue
        nxt_value = evaluate(nxt)
        applied.append(move.model_copy(update={"impact": nxt_value - value}))
        state, value = nxt, nxt_value
    return state, applied, value


def genetic(
    state: EditState,
    space: EditSpace,
    evaluate: Evaluator,
    max_iterations: int,
    population_size: int = 12,
    mutation_rate: float = 0.3,
) -> SearchOutcome:
    rng = space.rng
    pool = space.candidates(state)
    baseline = evaluate(state)
    if not pool:
        return SearchOutcome(state=state, edits=[], iterations=0)
    genome_limit = max(1, sum(space.limits.values()))

    def random_genome() -> List[GraphEdit]:
        size = rng.randint(1, min(genome_limit, len(pool)))
        return rng.sample(pool, size)

    def fitness(genome: List[GraphEdit]) -> float:
        return _replay(state, space, genome, evaluate)[2]

    population = [[]] + [random_genome() for _ in range(population_size - 1)]
    scores = [fitness(g) for g in population]
    generations = min(max_iterations, 30)
    generation = 0
    for generation in range(1, generations + 1):
        elite = population[int(np.argmax(scores))]
        offspring = [elite]
        while len(offspring) < population_size:
            parents = []
            for _ in range(2):
                contenders = rng.sample(range(len(population)), min(3, len(population)))
                parents.append(population[max(contenders, key=lambda i: scores[i])])
            cut_a = rng.randint(0, len(parents[0]))
            cut_b = rng.randint(0, len(parents[1]))
            child = (parents[0][:cut_a] + parents[1][cut_b:])[:genome_limit]
            if rng.random() < mutation_rate:
                if child and rng.random() < 0.5:
                    child.pop(rng.randrange(len(child)))
                elif len(child) < genome_limit:
                    child.append(rng.choice(pool))
            offspring.append(child)
        population = offspring
        scores = [fitness(g) for g in population]

    best_genome = population[int(np.argmax(scores))]
    final_state, applied, final_value = _replay(state, space, best_genome, evaluate)
    if final_value <= baseline + IMPROVEMENT_EPSILON:
        return SearchOutcome(state=state, edits=[], iterations=generation)
    return SearchOutcome(state=final_state, edits=applied, iterations=generation)


def gradient_ascent(state: EditState, space: EditSpace, evaluate: Evaluator, max_iterations: int, initial_step: int = 3) -> SearchOutcome:
    """Finite-difference steepest ascent over the edit moves.

    The gradient is the objective change of every single legal move; a step
    applies the ``step`` best improving moves together and the step halves
    whenever the combined move fails to improve.
    """
    value = evaluate(state)
    edits: List[GraphEdit] = []
    step = initial_step
    iterations = 0
    for iterations in range(1, max_iterations + 1):
        gradient: List[Tuple[float, int, GraphEdit]] = []
        for order, move in enumerate(space.candidates(state)):
            candidate = space.apply(state, move)
            if candidate is not None:
                gain = evaluate(candidate) - value
                if gain > IMPROVEMENT_EPSILON:
                    gradient.append((gain, -order, move))
        if not gradient:
            break
        gradient.sort(key=lambda item: (item[0], item[1]), reverse=True)

        improved = False
        while step >= 1 and not improved:
            trial, trial_value, trial_edits = state, value, []
            for _, _, move in gradient[:step]:
                nxt = space.apply(trial, move)
                if nxt is None:
                    continue
                nxt_value = evaluate(nxt)
                trial_edits.append(move.model_copy(update={"impact": nxt_value - trial_value}))
                trial, trial_value = nxt, nxt_value
            if trial_value > value + IMPROVEMENT_EPSILON:
                state, value = trial, trial_value
                edits.extend(trial_edits)
                improved = True
            else:
                step //= 2
        if not improved:
            break
    return SearchOutcome(state=state, edits=edits, iterations=iterations)


ALGORITHMS: Dict[OptimizationAlgorithm, Callable[..., SearchOutcome]] = {
    OptimizationAlgorithm.GREEDY: greedy,
    OptimizationAlgorithm.SIMULATED_ANNEALING: simulated_annealing,
    OptimizationAlgorithm.GENETIC: genetic,
    OptimizationAlgorithm.GRADIENT_DESCENT: gradient_ascent,
}


def optimize(
    graph: GraphData,
    objective: OptimizationObjective,
    constraints: OptimizationConstraints,
    algorithm: OptimizationAlgorithm,
) -> OptimizationResult:
    measure = OBJECTIVES[objective]
    seed = constraints.random_seed

    def evaluate(state: EditState) -> float:
        return measure(state.to_graph(), seed)

    start = EditState.from_graph(graph)
    original = evaluate(start)
    if not start.nodes:
        return OptimizationResult(
            objective=objective.value,
            original_value=original,
            optimized_value=original,
            improvement=0.0,
            convergence=ConvergenceInfo(iterations=0, converged=True, final_gradient=0.0, optimality=1.0),
        )

    space = EditSpace(constraints, random.Random(seed))
    outcome = ALGORITHMS[algorithm](start, space, evaluate, constraints.max_iterations)
    optimized = evaluate(outcome.state)

    _, _, remaining_gain = _best_single_move(space, outcome.state, optimized, evaluate)
    scale = max(abs(optimized), 1e-9)
    optimality = float(min(1.0, max(0.0, 1.0 - remaining_gain / scale)))
    logger.debug(
        f"Optimization {objective.value}/{algorithm.value}: {original:.4f} -> {optimized:.4f} "
        f"with {len(outcome.edits)} edits"
    )
    return OptimizationResult(
        objective=objective.value,
        original_value=original,
        optimized_value=optimized,
        improvement=optimized - original,
        edits=outcome.edits,
        convergence=ConvergenceInfo(
            iterations=outcome.iterations,
            converged=remaining_gain <= IMPROVEMENT_EPSILON,
            final_gradient=remaining_gain,
            optimality=optimality,
        ),
    )
