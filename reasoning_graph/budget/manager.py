"""
Computational Budget Manager

Prices operations before they run, admits or rejects them against a finite
resource ledger, returns capacity on release and learns per-operation cost
profiles from what actually happened. Shortfalls come back as values
(infeasible estimates, failed allocation outcomes), never as exceptions.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from reasoning_graph.budget.profiles import (
    default_profiles,
    default_resources,
    default_strategies,
    implementation_guidance,
    requirement_cost,
)
from reasoning_graph.budget.scheduler import build_schedule, snapshot
from reasoning_graph.models.budget import (
    AllocationOutcome,
    BudgetConstraints,
    ComputationalResource,
    CostEstimate,
    OperationProfile,
    OptimizationRecommendation,
    OptimizationReport,
    OptimizationStrategy,
    PendingOperation,
    ResourceAllocation,
    ResourceUsageMetrics,
    ScheduleResult,
)
from reasoning_graph.models.config import BudgetSettings
from reasoning_graph.models.gaps import utc_now
from reasoning_graph.models.graph import GraphData
from reasoning_graph.utils.structured_log import log_allocation, log_release

logger = logging.getLogger(__name__)

LARGE_GRAPH_NODES = 1000
MEDIUM_GRAPH_NODES = 100
PARAMETER_WEIGHT = 0.1
BOTTLENECK_UTILIZATION = 0.8
SATURATED_UTILIZATION = 0.9
IDLE_UTILIZATION = 0.2
HEADROOM_SHARE = 0.8

# Share of the fallback estimate attributed to each resource.
_DEFAULT_BREAKDOWN = {"cpu": 0.5, "memory": 0.3, "api_calls": 0.2}


def complexity_factors(graph: Optional[GraphData], parameters: Optional[Mapping[str, Any]] = None) -> Tuple[float, str]:
    """Scaling multiplier and complexity band for an operation on ``graph``."""
    if graph is None:
        return 1.0, "unknown"
    n = len(graph.nodes)
    m = len(graph.edges)
    density = m / max(1.0, n * (n - 1) / 2)
    factor = 1.0
    if n > LARGE_GRAPH_NODES:
        factor *= math.log(n / LARGE_GRAPH_NODES) + 1
    factor *= 1 + density
    factor *= 1 + PARAMETER_WEIGHT * len(parameters or {})
    if n < MEDIUM_GRAPH_NODES:
        band = "low"
    elif n < LARGE_GRAPH_NODES:
        band = "medium"
    else:
        band = "high"
    return factor, band


class ComputationalBudgetManager:
    """Resource ledger plus cost model for analytics and gap operations.

    Allocation and release run under one lock, so concurrent callers never
    double-spend capacity. ``used + available == total`` holds for every
    resource after each call.
    """

    def __init__(
        self,
        constraints: Optional[BudgetConstraints] = None,
        resources: Optional[Sequence[ComputationalResource]] = None,
        profiles: Optional[Sequence[OperationProfile]] = None,
        strategies: Optional[Sequence[OptimizationStrategy]] = None,
        settings: Optional[BudgetSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.constraints = constraints or BudgetConstraints()
        self.settings = settings or BudgetSettings()
        self._clock = clock
        self._lock = threading.Lock()
        if resources is None:
            self._resources = default_resources()
        else:
            self._resources = {resource.id: resource.model_copy() for resource in resources}
        self._profiles = default_profiles(self._resources)
        for profile in profiles or []:
            self._profiles[profile.operation_type] = profile.model_copy(deep=True)
        self._strategies = list(strategies) if strategies is not None else default_strategies()
        self._allocations: List[ResourceAllocation] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_resources(self) -> Dict[str, ComputationalResource]:
        with self._lock:
            return snapshot(self._resources)

    def get_profile(self, operation_type: str) -> Optional[OperationProfile]:
        with self._lock:
            profile = self._profiles.get(operation_type)
            return profile.model_copy(deep=True) if profile is not None else None

    def register_profile(self, profile: OperationProfile) -> None:
        with self._lock:
            self._profiles[profile.operation_type] = profile.model_copy(deep=True)

    def outstanding_allocations(self) -> List[ResourceAllocation]:
        with self._lock:
            return [a.model_copy() for a in self._allocations if not a.released]

    @property
    def total_spent(self) -> float:
        with self._lock:
            return self._spent()

    def _spent(self) -> float:
        return sum(_cost_of(a) for a in self._allocations)

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------

    def estimate_operation_cost(
        self,
        operation_type: str,
        graph: Optional[GraphData] = None,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> CostEstimate:
        """
        Price an operation before running it.

        Requirements from the operation's profile are scaled by graph size,
        density and parameter count, priced per resource and calibrated by
        the profile's learned average cost.

        Returns:
            CostEstimate; ``feasible`` is False when the cost exceeds the
            per-operation cap or a resource cannot cover its share
        """
        profile = self._profiles.get(operation_type)
        if profile is None:
            return self._default_estimate(operation_type)

        factor, band = complexity_factors(graph, parameters)
        scaled = {rid: amount * factor for rid, amount in profile.resource_requirements.items()}
        base_cost = requirement_cost(profile.resource_requirements, self._resources)
        calibration = profile.average_cost / base_cost if base_cost > 0 else 1.0

        breakdown = {
            rid: amount * self._resources[rid].cost_per_unit * calibration
            for rid, amount in scaled.items()
            if rid in self._resources
        }
        cost = sum(breakdown.values()) if base_cost > 0 else profile.average_cost * factor

        feasible = cost <= self.constraints.max_operation_cost and all(
            rid in self._resources and self._resources[rid].available >= amount for rid, amount in scaled.items()
        )
        if not feasible:
            recommendations = self._cost_reductions(operation_type, cost, scaled)
        elif cost > HEADROOM_SHARE * self.constraints.max_operation_cost:
            recommendations = ["Consider optimizing this operation to reduce costs"]
        else:
            recommendations = []
        return CostEstimate(
            estimated_cost=cost,
            estimated_duration=profile.average_duration * factor,
            resource_breakdown=breakdown,
            feasible=feasible,
            recommendations=recommendations,
            complexity=band,
        )

    def _default_estimate(self, operation_type: str) -> CostEstimate:
        logger.debug(f"No profile for operation type '{operation_type}'; using default estimate")
        cost = self.settings.default_estimate_cost
        return CostEstimate(
            estimated_cost=cost,
            estimated_duration=self.settings.default_estimate_duration,
            resource_breakdown={rid: cost * share for rid, share in _DEFAULT_BREAKDOWN.items()},
            feasible=True,
            recommendations=["Consider profiling this operation type for better estimates"],
        )

    def _cost_reductions(self, operation_type: str, cost: float, scaled: Mapping[str, float]) -> List[str]:
        recommendations = ["Operation exceeds budget constraints"]
        for strategy in self._strategies:
            if operation_type in strategy.applicable_operations:
                recommendations.append(f"Apply {strategy.name}: {strategy.description}")
        for rid, amount in scaled.items():
            resource = self._resources.get(rid)
            if resource is not None and amount > HEADROOM_SHARE * resource.available:
                recommendations.append(f"Consider reducing {rid} usage through data preprocessing")
        if cost > HEADROOM_SHARE * self.constraints.max_operation_cost:
            recommendations.append("Consider optimizing this operation to reduce costs")
        return recommendations

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def allocate_resources(
        self, operation_id: str, operation_type: str, required_resources: Mapping[str, float]
    ) -> AllocationOutcome:
        """
        Reserve ``required_resources`` for one operation, all or nothing.

        Every shortfall is reported in ``errors``; the ledger is untouched
        unless the outcome is successful.
        """
        with self._lock:
            errors: List[str] = []
            if any(a.operation_id == operation_id and not a.released for a in self._allocations):
                errors.append(f"Operation {operation_id} already holds an allocation")
            for rid, amount in required_resources.items():
                resource = self._resources.get(rid)
                if resource is None:
                    errors.append(f"Unknown resource type: {rid}")
                elif amount < 0:
                    errors.append(f"Negative request for {rid}: {amount}")
                elif amount > resource.available:
                    errors.append(f"Insufficient {rid}: requested {amount}, available {resource.available}")

            cost = requirement_cost(required_resources, self._resources)
            if cost > self.constraints.max_operation_cost:
                errors.append(f"Operation cost {cost} exceeds maximum allowed {self.constraints.max_operation_cost}")
            spent = self._spent()
            if spent + cost > self.constraints.max_total_cost:
                errors.append(
                    f"Total cost {spent + cost} would exceed budget {self.constraints.max_total_cost}"
                )

            if errors:
                logger.warning(f"Allocation rejected for {operation_id}: {'; '.join(errors)}")
                log_allocation(operation_id, operation_type, False, errors=errors)
                return AllocationOutcome(success=False, errors=errors)

            for rid, amount in required_resources.items():
                resource = self._resources[rid]
                resource.used += amount
                resource.available -= amount
            allocation = ResourceAllocation(
                operation_id=operation_id,
                operation_type=operation_type,
                allocated_resources=dict(required_resources),
                estimated_cost=cost,
                timestamp=self._clock(),
            )
            self._allocations.append(allocation)

        logger.debug(f"Allocated {dict(required_resources)} to {operation_id} (estimated cost {cost:.2f})")
        log_allocation(
            operation_id, operation_type, True, resources=dict(required_resources), estimated_cost=cost
        )
        return AllocationOutcome(success=True, allocation=allocation.model_copy())

    def release_resources(
        self, operation_id: str, actual_cost: Optional[float] = None, actual_duration: Optional[float] = None
    ) -> bool:
        """
        Return an operation's resources to the pool and learn from its actuals.

        Args:
            operation_id: Id passed to ``allocate_resources``
            actual_cost: Observed cost, folded into the operation's profile
            actual_duration: Observed duration in milliseconds

        Returns:
            False when the id has no outstanding allocation
        """
        with self._lock:
            allocation = next(
                (a for a in self._allocations if a.operation_id == operation_id and not a.released), None
            )
            if allocation is None:
                logger.warning(f"No outstanding allocation for operation {operation_id}")
                return False

            for rid, amount in allocation.allocated_resources.items():
                resource = self._resources[rid]
                resource.used -= amount
                resource.available += amount
                # Clamp float drift so the ledger stays balanced at rest.
                if math.isclose(resource.used, 0.0, abs_tol=1e-9):
                    resource.used = 0.0
                    resource.available = resource.total

            allocation.released = True
            allocation.duration = actual_duration
            if actual_cost is not None:
                allocation.actual_cost = actual_cost
                if actual_cost > 0:
                    allocation.efficiency = allocation.estimated_cost / actual_cost
            self._learn(allocation, actual_cost, actual_duration)

        logger.debug(f"Released resources for {operation_id}")
        log_release(operation_id, actual_cost=actual_cost, duration=actual_duration, efficiency=allocation.efficiency)
        return True

    def _learn(self, allocation: ResourceAllocation, actual_cost: Optional[float], duration: Optional[float]) -> None:
        if actual_cost is None and duration is None:
            return
        alpha = self.settings.ema_alpha
        profile = self._profiles.get(allocation.operation_type)
        if profile is None:
            self._profiles[allocation.operation_type] = OperationProfile(
                operation_type=allocation.operation_type,
                average_duration=duration if duration is not None else self.settings.default_estimate_duration,
                average_cost=actual_cost if actual_cost is not None else allocation.estimated_cost,
                resource_requirements=dict(allocation.allocated_resources),
                samples=1,
            )
            logger.info(f"Learned new profile for operation type '{allocation.operation_type}'")
            return
        if actual_cost is not None:
            profile.average_cost = alpha * actual_cost + (1 - alpha) * profile.average_cost
        if duration is not None:
            profile.average_duration = alpha * duration + (1 - alpha) * profile.average_duration
        profile.samples += 1

    @contextmanager
    def reserve(
        self, operation_id: str, operation_type: str, required_resources: Mapping[str, float]
    ) -> Iterator[AllocationOutcome]:
        """
        Allocate for the duration of a ``with`` block.

        The outcome is yielded as-is; callers check ``success``. A successful
        allocation is released on exit with the measured wall-clock duration,
        whether or not the block raised.
        """
        outcome = self.allocate_resources(operation_id, operation_type, required_resources)
        started = time.perf_counter()
        try:
            yield outcome
        finally:
            if outcome.success:
                self.release_resources(operation_id, actual_duration=(time.perf_counter() - started) * 1000)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def optimize_resource_allocation(self, pending_operations: Sequence[PendingOperation]) -> ScheduleResult:
        """Serially schedule pending operations within the remaining budget."""
        with self._lock:
            resources = snapshot(self._resources)
            remaining = self.constraints.max_total_cost - self._spent()
        result = build_schedule(
            pending_operations,
            resources,
            self._profiles,
            remaining,
            self.settings.default_operation_duration,
        )
        logger.info(
            f"Scheduled {len(result.optimized_schedule)}/{len(pending_operations)} operations "
            f"(cost {result.total_cost:.2f}, efficiency {result.efficiency:.2f})"
        )
        return result

    def apply_optimizations(self, operation_type: str, graph: Optional[GraphData] = None) -> OptimizationReport:
        applicable = [s for s in self._strategies if operation_type in s.applicable_operations]
        if not applicable:
            return OptimizationReport()
        current = self.estimate_operation_cost(operation_type, graph).estimated_cost
        guidance_graph = graph if graph is not None else GraphData()
        recommendations = [
            OptimizationRecommendation(
                strategy=strategy.name,
                implementation=implementation_guidance(strategy, guidance_graph),
                cost_reduction=strategy.cost_reduction,
                effort=strategy.implementation_complexity,
            )
            for strategy in applicable
        ]
        return OptimizationReport(
            applicable_strategies=[s.model_copy() for s in applicable],
            potential_savings=sum(current * s.cost_reduction for s in applicable),
            quality_impact=max(s.quality_impact for s in applicable),
            recommendations=recommendations,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_resource_usage_metrics(self, time_window: Optional[float] = None) -> ResourceUsageMetrics:
        """
        Summarize spend and utilization.

        Args:
            time_window: Only count allocations made in the last
                ``time_window`` seconds; all allocations when None
        """
        with self._lock:
            allocations = list(self._allocations)
            if time_window is not None:
                cutoff = self._clock() - timedelta(seconds=time_window)
                allocations = [a for a in allocations if a.timestamp >= cutoff]
            utilization = {rid: resource.utilization for rid, resource in self._resources.items()}
            prices = {rid: resource.cost_per_unit for rid, resource in self._resources.items()}
            outstanding = sum(1 for a in self._allocations if not a.released)

        cost_breakdown = {rid: 0.0 for rid in prices}
        for allocation in allocations:
            for rid, amount in allocation.allocated_resources.items():
                cost_breakdown[rid] += amount * prices[rid]

        recommendations = []
        for rid, value in utilization.items():
            if value > SATURATED_UTILIZATION:
                recommendations.append(f"Consider increasing {rid} capacity")
            elif value < IDLE_UTILIZATION:
                recommendations.append(f"{rid} is underutilized, consider reducing allocation")

        return ResourceUsageMetrics(
            total_cost=sum(_cost_of(a) for a in allocations),
            average_efficiency=(sum(a.efficiency for a in allocations) / len(allocations) if allocations else 0.0),
            resource_utilization=utilization,
            bottlenecks=[rid for rid, value in utilization.items() if value > BOTTLENECK_UTILIZATION],
            recommendations=recommendations,
            cost_breakdown=cost_breakdown,
            outstanding_allocations=outstanding,
        )


def _cost_of(allocation: ResourceAllocation) -> float:
    return allocation.actual_cost if allocation.actual_cost is not None else allocation.estimated_cost
