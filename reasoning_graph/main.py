"""
Command line entry point

Runs analytics, gap detection and cost estimation over a graph JSON file and
prints the results as rich tables.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from reasoning_graph.analytics import GraphAnalyticsEngine
from reasoning_graph.budget import ComputationalBudgetManager
from reasoning_graph.config import load_settings
from reasoning_graph.errors import ReasoningGraphError
from reasoning_graph.gaps import KnowledgeGapDetector
from reasoning_graph.models import DomainKnowledge, EngineSettings, GraphData
from reasoning_graph.models.options import CentralityOptions
from reasoning_graph.utils.logging_config import LogLevel, get_logger, setup_logging
from reasoning_graph.utils.structured_log import configure_audit_logging

console = Console()
logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reasoning-graph",
        description="Reasoning graph analytics, knowledge-gap detection and cost estimation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--settings",
        type=str,
        default=None,
        help="Path to settings YAML (default: $REASONING_GRAPH_SETTINGS or config/settings.yaml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--verbose-level",
        type=str,
        choices=[level.value for level in LogLevel],
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        nargs="?",
        const="logs/reasoning_graph.log",
        default=None,
        help="Also log to a file (default location: logs/reasoning_graph.log)",
    )
    parser.add_argument("--audit-dir", type=str, default=None, help="Write a JSONL audit trail to this directory")
    parser.add_argument("--json", action="store_true", help="Print raw JSON instead of tables")

    sub = parser.add_subparsers(dest="command", required=True)

    centrality = sub.add_parser("centrality", help="Compute node centrality")
    centrality.add_argument("graph", help="Graph JSON file")
    centrality.add_argument("--measure", action="append", dest="algorithms", help="Measure to compute (repeatable)")
    centrality.add_argument("--top", type=int, default=5, help="Nodes to show per measure")

    communities = sub.add_parser("communities", help="Detect communities")
    communities.add_argument("graph", help="Graph JSON file")
    communities.add_argument("--algorithm", default="louvain")

    paths = sub.add_parser("paths", help="Shortest paths and distance statistics")
    paths.add_argument("graph", help="Graph JSON file")
    paths.add_argument("--algorithm", default="dijkstra")
    paths.add_argument("--source", action="append", dest="sources")
    paths.add_argument("--target", action="append", dest="targets")

    structure = sub.add_parser("structure", help="Components, cut points and connectivity")
    structure.add_argument("graph", help="Graph JSON file")

    gaps = sub.add_parser("gaps", help="Detect knowledge gaps")
    gaps.add_argument("graph", help="Graph JSON file")
    gaps.add_argument("--knowledge", type=str, default=None, help="Domain knowledge JSON file")

    estimate = sub.add_parser("estimate", help="Estimate the cost of an operation")
    estimate.add_argument("operation_type")
    estimate.add_argument("--graph", type=str, default=None, help="Graph JSON file to scale the estimate by")

    return parser


def load_graph(path: str) -> GraphData:
    with Path(path).open("r", encoding="utf-8") as f:
        return GraphData.model_validate(json.load(f))


def _configure(args: argparse.Namespace) -> EngineSettings:
    settings = load_settings(args.settings)
    setup_logging(
        level=args.verbose_level or settings.logging.level,
        log_to_file=bool(args.log_file) or settings.logging.log_to_file,
        log_file=args.log_file or settings.logging.log_file,
        verbose=args.verbose,
        debug=args.debug,
    )
    audit_dir = args.audit_dir or settings.logging.audit_log_dir
    if audit_dir:
        configure_audit_logging(audit_dir)
    return settings


def _print_json(payload) -> None:
    console.print_json(json.dumps(payload, default=str))


def run_centrality(args: argparse.Namespace, settings: EngineSettings) -> None:
    engine = GraphAnalyticsEngine(settings.analytics)
    options = CentralityOptions(algorithms=args.algorithms) if args.algorithms else CentralityOptions()
    outcome = engine.compute_advanced_centrality(load_graph(args.graph), options)
    if args.json:
        _print_json(outcome.model_dump(mode="json"))
        return
    table = Table(title=f"Centrality ({outcome.execution_time:.1f} ms)")
    table.add_column("Measure", style="cyan")
    table.add_column("Top nodes")
    for measure in outcome.result.measures:
        ranked = ", ".join(f"{node} ({score:.3f})" for node, score in outcome.result.top(measure, args.top))
        table.add_row(measure, ranked)
    console.print(table)


def run_communities(args: argparse.Namespace, settings: EngineSettings) -> None:
    engine = GraphAnalyticsEngine(settings.analytics)
    outcome = engine.detect_advanced_communities(load_graph(args.graph), args.algorithm)
    if args.json:
        _print_json(outcome.model_dump(mode="json"))
        return
    table = Table(title=f"Communities ({outcome.algorithm_name})")
    table.add_column("Id", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Density", justify="right")
    table.add_column("Conductance", justify="right")
    table.add_column("Nodes")
    for community in outcome.result.communities:
        table.add_row(
            str(community.id),
            str(community.size),
            f"{community.density:.3f}",
            f"{community.conductance:.3f}",
            ", ".join(community.nodes),
        )
    console.print(table)
    modularity = outcome.metadata.quality_metrics.get("modularity")
    if modularity is not None:
        console.print(f"Modularity: {modularity:.3f}")


def run_paths(args: argparse.Namespace, settings: EngineSettings) -> None:
    engine = GraphAnalyticsEngine(settings.analytics)
    outcome = engine.compute_advanced_paths(load_graph(args.graph), args.algorithm, args.sources, args.targets)
    if args.json:
        _print_json(outcome.model_dump(mode="json"))
        return
    result = outcome.result
    table = Table(title="Shortest paths")
    table.add_column("Source")
    table.add_column("Target")
    table.add_column("Distance", justify="right")
    table.add_column("Reliability", justify="right")
    table.add_column("Path")
    for path in result.shortest_paths:
        table.add_row(path.source, path.target, f"{path.distance:.3f}", f"{path.reliability:.3f}", " -> ".join(path.path))
    console.print(table)
    console.print(
        f"Diameter {result.diameter:.3f} | radius {result.radius:.3f} | "
        f"average path length {result.average_path_length:.3f}"
    )


def run_structure(args: argparse.Namespace, settings: EngineSettings) -> None:
    engine = GraphAnalyticsEngine(settings.analytics)
    outcome = engine.analyze_structure(load_graph(args.graph))
    if args.json:
        _print_json(outcome.model_dump(mode="json"))
        return
    result = outcome.result
    table = Table(title="Components")
    table.add_column("Kind")
    table.add_column("Size", justify="right")
    table.add_column("Nodes")
    for component in result.components:
        table.add_row(component.kind.value, str(component.size), ", ".join(component.nodes))
    console.print(table)
    console.print(f"Articulation points: {', '.join(result.articulation_points) or 'none'}")
    console.print(f"Bridges: {', '.join(result.bridges) or 'none'}")
    connectivity = result.connectivity
    console.print(
        f"Node connectivity {connectivity.node_connectivity} | edge connectivity "
        f"{connectivity.edge_connectivity} | algebraic connectivity {connectivity.algebraic_connectivity:.4f}"
    )


def run_gaps(args: argparse.Namespace, settings: EngineSettings) -> None:
    knowledge: Optional[DomainKnowledge] = None
    if args.knowledge:
        with Path(args.knowledge).open("r", encoding="utf-8") as f:
            knowledge = DomainKnowledge.model_validate(json.load(f))
    # One-shot run: no background sweep needed.
    detector = KnowledgeGapDetector(settings.gaps)
    analysis = detector.detect_knowledge_gaps(load_graph(args.graph), knowledge)
    if args.json:
        _print_json(analysis.model_dump(mode="json"))
        return
    table = Table(title=f"Knowledge gaps ({analysis.total_gaps})")
    table.add_column("Id", style="cyan")
    table.add_column("Type")
    table.add_column("Priority", justify="right")
    table.add_column("Fillability", justify="right")
    table.add_column("Description")
    for gap in sorted(analysis.gaps, key=lambda g: -g.priority):
        table.add_row(gap.id, gap.type.value, f"{gap.priority:.2f}", f"{gap.fillability:.2f}", gap.description)
    console.print(table)
    for recommendation in analysis.research_recommendations:
        console.print(f"- [{recommendation.priority:.2f}] {recommendation.description}")


def run_estimate(args: argparse.Namespace, settings: EngineSettings) -> None:
    manager = ComputationalBudgetManager(settings=settings.budget)
    graph = load_graph(args.graph) if args.graph else None
    estimate = manager.estimate_operation_cost(args.operation_type, graph)
    if args.json:
        _print_json(estimate.model_dump(mode="json"))
        return
    table = Table(title=f"Cost estimate: {args.operation_type}")
    table.add_column("Resource")
    table.add_column("Cost", justify="right")
    for resource, cost in estimate.resource_breakdown.items():
        table.add_row(resource, f"{cost:.3f}")
    console.print(table)
    status = "[green]feasible[/green]" if estimate.feasible else "[red]infeasible[/red]"
    console.print(
        f"Total {estimate.estimated_cost:.3f} | duration {estimate.estimated_duration:.0f} ms | "
        f"complexity {estimate.complexity} | {status}"
    )
    for recommendation in estimate.recommendations:
        console.print(f"- {recommendation}")


COMMANDS = {
    "centrality": run_centrality,
    "communities": run_communities,
    "paths": run_paths,
    "structure": run_structure,
    "gaps": run_gaps,
    "estimate": run_estimate,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    try:
        settings = _configure(args)
        COMMANDS[args.command](args, settings)
    except (FileNotFoundError, json.JSONDecodeError, ValueError, ReasoningGraphError) as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
