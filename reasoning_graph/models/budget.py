"""Computational budget ledger models."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from reasoning_graph.models.enums import ImplementationComplexity, ResourcePriority, ResourceType
from reasoning_graph.models.gaps import utc_now

_LEDGER_TOLERANCE = 1e-9


class ComputationalResource(BaseModel):
    """One row of the resource ledger. ``used + available == total`` always."""

    id: str
    type: ResourceType
    total: float = Field(ge=0.0)
    used: float = Field(ge=0.0, default=0.0)
    available: Optional[float] = None
    unit: str = "units"
    cost_per_unit: float = Field(ge=0.0, default=0.0)
    priority: ResourcePriority = ResourcePriority.MEDIUM

    @model_validator(mode="after")
    def _balance(self) -> "ComputationalResource":
        if self.available is None:
            self.available = self.total - self.used
        if not math.isclose(self.used + self.available, self.total, abs_tol=_LEDGER_TOLERANCE):
            raise ValueError(
                f"Resource {self.id}: used ({self.used}) + available ({self.available}) "
                f"!= total ({self.total})"
            )
        return self

    @property
    def utilization(self) -> float:
        return self.used / self.total if self.total else 0.0


class ResourceAllocation(BaseModel):
    operation_id: str
    operation_type: str
    allocated_resources: Dict[str, float]
    estimated_cost: float
    actual_cost: Optional[float] = None
    efficiency: float = 1.0
    timestamp: datetime = Field(default_factory=utc_now)
    duration: Optional[float] = None
    released: bool = False


class BudgetConstraints(BaseModel):
    max_total_cost: float = 1000.0
    max_operation_cost: float = 100.0
    time_limit: float = Field(default=3_600_000.0, description="Milliseconds")
    memory_limit: float = 1000.0
    api_call_limit: int = 10_000
    priority_weights: Dict[str, float] = Field(default_factory=dict)


class ComplexityMetrics(BaseModel):
    graph_size: int = 0
    node_complexity: float = 1.0
    edge_complexity: float = 1.0
    algorithmic_complexity: str = "O(n)"


class OperationProfile(BaseModel):
    operation_type: str
    average_duration: float = Field(description="Milliseconds")
    average_cost: float
    resource_requirements: Dict[str, float]
    scaling_factor: float = 1.0
    complexity_metrics: ComplexityMetrics = Field(default_factory=ComplexityMetrics)
    samples: int = 0


class OptimizationStrategy(BaseModel):
    name: str
    description: str
    cost_reduction: float = Field(ge=0.0, le=1.0)
    quality_impact: float = Field(ge=0.0, le=1.0)
    applicable_operations: List[str]
    implementation_complexity: ImplementationComplexity


class CostEstimate(BaseModel):
    estimated_cost: float
    estimated_duration: float
    resource_breakdown: Dict[str, float] = Field(default_factory=dict)
    feasible: bool
    recommendations: List[str] = Field(default_factory=list)
    complexity: str = "unknown"


class AllocationOutcome(BaseModel):
    success: bool
    allocation: Optional[ResourceAllocation] = None
    errors: List[str] = Field(default_factory=list)


class PendingOperation(BaseModel):
    id: str
    type: str
    priority: float = 0.0
    required_resources: Dict[str, float] = Field(default_factory=dict)
    deadline: Optional[float] = Field(default=None, description="Milliseconds from schedule start")
    expected_duration: Optional[float] = None


class ScheduledOperation(BaseModel):
    operation_id: str
    scheduled_time: float
    expected_completion: float
    resource_allocation: Dict[str, float]
    cost: float


class ScheduleResult(BaseModel):
    optimized_schedule: List[ScheduledOperation] = Field(default_factory=list)
    total_cost: float = 0.0
    efficiency: float = 0.0
    unscheduled_operations: List[str] = Field(default_factory=list)


class OptimizationRecommendation(BaseModel):
    strategy: str
    implementation: str
    cost_reduction: float
    effort: ImplementationComplexity


class OptimizationReport(BaseModel):
    applicable_strategies: List[OptimizationStrategy] = Field(default_factory=list)
    potential_savings: float = 0.0
    quality_impact: float = 0.0
    recommendations: List[OptimizationRecommendation] = Field(default_factory=list)


class ResourceUsageMetrics(BaseModel):
    total_cost: float
    average_efficiency: float
    resource_utilization: Dict[str, float]
    bottlenecks: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    cost_breakdown: Dict[str, float] = Field(default_factory=dict)
    outstanding_allocations: int = 0
