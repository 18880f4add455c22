"""Serial timeline scheduling of pending operations against the resource pool."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence

from reasoning_graph.budget.profiles import requirement_cost
from reasoning_graph.models.budget import (
    ComputationalResource,
    OperationProfile,
    PendingOperation,
    ScheduledOperation,
    ScheduleResult,
)

logger = logging.getLogger(__name__)


def schedule_order(operations: Sequence[PendingOperation]) -> List[PendingOperation]:
    """Deadlines first (earliest first), then higher priority. Ties keep input order."""
    return sorted(
        operations,
        key=lambda op: (op.deadline is None, op.deadline if op.deadline is not None else 0.0, -op.priority),
    )


def _duration(op: PendingOperation, profiles: Mapping[str, OperationProfile], fallback: float) -> float:
    if op.expected_duration is not None:
        return op.expected_duration
    profile = profiles.get(op.type)
    return profile.average_duration if profile is not None else fallback


def _blocking_reason(op: PendingOperation, resources: Mapping[str, ComputationalResource]) -> str:
    for rid, amount in op.required_resources.items():
        resource = resources.get(rid)
        if resource is None:
            return f"unknown resource {rid}"
        if amount > resource.available:
            return f"insufficient {rid}"
    return ""


def build_schedule(
    operations: Sequence[PendingOperation],
    resources: Mapping[str, ComputationalResource],
    profiles: Mapping[str, OperationProfile],
    budget_remaining: float,
    default_duration: float,
) -> ScheduleResult:
    """
    Lay operations end to end on a single timeline starting at 0.

    An operation is left unscheduled when it names an unknown resource, needs
    more than is currently available, would push the cumulative cost past
    ``budget_remaining``, or would complete after its deadline.
    """
    schedule: List[ScheduledOperation] = []
    unscheduled: List[str] = []
    clock = 0.0
    total_cost = 0.0
    scheduled_priority = 0.0

    for op in schedule_order(operations):
        reason = _blocking_reason(op, resources)
        cost = requirement_cost(op.required_resources, resources)
        completion = clock + _duration(op, profiles, default_duration)
        if not reason and total_cost + cost > budget_remaining:
            reason = "over budget"
        if not reason and op.deadline is not None and completion > op.deadline:
            reason = "misses deadline"
        if reason:
            logger.debug(f"Operation {op.id} left unscheduled: {reason}")
            unscheduled.append(op.id)
            continue
        schedule.append(
            ScheduledOperation(
                operation_id=op.id,
                scheduled_time=clock,
                expected_completion=completion,
                resource_allocation=dict(op.required_resources),
                cost=cost,
            )
        )
        clock = completion
        total_cost += cost
        scheduled_priority += op.priority

    return ScheduleResult(
        optimized_schedule=schedule,
        total_cost=total_cost,
        efficiency=_efficiency(operations, schedule, scheduled_priority),
        unscheduled_operations=unscheduled,
    )


def _efficiency(
    operations: Sequence[PendingOperation], schedule: Sequence[ScheduledOperation], scheduled_priority: float
) -> float:
    """Share of requested priority that made it onto the timeline."""
    if not operations:
        return 0.0
    total_priority = sum(max(op.priority, 0.0) for op in operations)
    if total_priority <= 0:
        return len(schedule) / len(operations)
    return min(1.0, max(scheduled_priority, 0.0) / total_priority)


def snapshot(resources: Mapping[str, ComputationalResource]) -> Dict[str, ComputationalResource]:
    return {rid: resource.model_copy() for rid, resource in resources.items()}
