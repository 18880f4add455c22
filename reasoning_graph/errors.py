"""Exception hierarchy for the reasoning graph engines.

Hard failures (programmer errors by the caller) are raised and never retried
internally. Budget shortfalls and infeasible estimates are returned as values
instead, see ``reasoning_graph.budget``.
"""

from __future__ import annotations

from typing import Iterable


class ReasoningGraphError(Exception):
    """Base class for all errors raised by this package."""


class GraphAnalyticsError(ReasoningGraphError):
    """Raised when an analytics computation cannot be carried out."""


class UnknownAlgorithmError(GraphAnalyticsError, ValueError):
    """An algorithm tag is not a member of the operation's closed choice set."""

    def __init__(self, operation: str, algorithm: object, choices: Iterable[str] = ()):
        self.operation = operation
        self.algorithm = algorithm
        self.choices = list(choices)
        message = f"Unknown {operation} algorithm: {algorithm!r}"
        if self.choices:
            message += f" (expected one of: {', '.join(self.choices)})"
        super().__init__(message)


class NodeNotFoundError(GraphAnalyticsError, KeyError):
    """A node required by the operation is absent from the graph."""

    def __init__(self, node_id: str, role: str = "node"):
        self.node_id = node_id
        self.role = role
        super().__init__(f"{role.capitalize()} node '{node_id}' not found in graph")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


class GapNotFoundError(ReasoningGraphError, KeyError):
    """Progress monitoring was asked about a gap the registry does not hold."""

    def __init__(self, gap_id: str):
        self.gap_id = gap_id
        super().__init__(f"Gap {gap_id} not found")

    def __str__(self) -> str:
        return str(self.args[0])
