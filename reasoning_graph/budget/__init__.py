"""Computational budget: cost estimation, resource ledger and scheduling."""

from reasoning_graph.budget.manager import ComputationalBudgetManager, complexity_factors
from reasoning_graph.budget.scheduler import build_schedule, schedule_order

__all__ = [
    "ComputationalBudgetManager",
    "build_schedule",
    "complexity_factors",
    "schedule_order",
]
