"""
Command-line interface for schemagraph.

Loads a graph document (the JSON output of schema ingestion) and runs
the analysis engine against it.

Usage:
    schemagraph ripple field_12 --graph app.json          # Impact of a field change
    schemagraph object-ripple object_3 --graph app.json   # Impact of an object change
    schemagraph complexity field field_12 --graph app.json
    schemagraph rollup object_3 --graph app.json          # Object complexity rollup
    schemagraph cycles --graph app.json                   # Circular dependencies
    schemagraph layers --graph app.json                   # Derivation depth bands
    schemagraph stats --graph app.json
    schemagraph paths field:field_9 field:field_1 --graph app.json
    schemagraph usage field_12 --graph app.json
"""

import json
import os
import sys
from functools import wraps
from typing import Any, Callable

import click
import structlog

from schemagraph.config.settings import get_settings
from schemagraph.graph.algorithms import derivation_depths, find_cycles, group_by_depth
from schemagraph.graph.cache import GraphCache
from schemagraph.graph.complexity import (
    ComplexityResult,
    compute_complexity,
    compute_object_complexity_rollup,
)
from schemagraph.graph.config import GraphConfig
from schemagraph.graph.errors import GraphError
from schemagraph.graph.loader import load_graph_document
from schemagraph.graph.ripple import (
    FieldRippleOptions,
    FieldRippleResult,
    build_field_ripple,
    build_object_ripple,
    summarize_field_ripple,
)
from schemagraph.graph.schemas import VALID_EDGE_TYPES, VALID_NODE_KINDS
from schemagraph.graph.serialize import edge_to_dict, node_to_dict
from schemagraph.graph.stats import compute_stats
from schemagraph.graph.store import DependencyGraph, paths_to
from schemagraph.graph.usage import analyze_field_usage
from schemagraph.observability.logging import bind_context, setup_logging

logger = structlog.get_logger(__name__)

graph_option = click.option(
    "--graph",
    "graph_path",
    type=click.Path(exists=True, dir_okay=False),
    envvar="SCHEMAGRAPH_DOCUMENT",
    required=True,
    help="Path to the graph document (JSON).",
)
json_option = click.option("--json", "as_json", is_flag=True, help="Emit JSON output")
edge_type_choice = click.Choice(sorted(VALID_EDGE_TYPES))


def _load(graph_path: str) -> DependencyGraph:
    ctx = click.get_current_context()
    bind_context(graph=graph_path)
    return load_graph_document(graph_path, cache=ctx.obj["graph_cache"])


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _handle_graph_errors(func: Callable) -> Callable:
    """Report engine errors as a message and exit code 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except GraphError as e:
            logger.error("Command failed", command=func.__name__, error=str(e))
            click.echo(click.style(f"Error: {e}", fg="red"), err=True)
            sys.exit(1)

    return wrapper


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, debug: bool) -> None:
    """Schemagraph - dependency analysis for application schemas."""
    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()

    # Callers may pass obj={"graph_cache": ...} to share a cache across invocations
    ctx.ensure_object(dict)
    if "graph_cache" not in ctx.obj:
        ctx.obj["graph_cache"] = GraphCache(capacity=get_settings().graph_cache_capacity)


# ── Ripple ────────────────────────────────────────────────


def _ripple_payload(result: FieldRippleResult) -> dict[str, Any]:
    summary = summarize_field_ripple(result)
    return {
        "root": node_to_dict(result.root) if result.root else None,
        "summary": {
            "total_impacted_nodes": summary.total_impacted_nodes,
            "total_impacted_fields": summary.total_impacted_fields,
            "total_impacted_views": summary.total_impacted_views,
            "total_impacted_objects": summary.total_impacted_objects,
            "edge_count": summary.edge_count,
            "max_depth_reached": summary.max_depth_reached,
        },
        "depths": result.depths,
        "impacted_fields": [node_to_dict(n) for n in result.impacted_fields],
        "impacted_views": [node_to_dict(n) for n in result.impacted_views],
        "impacted_objects": [node_to_dict(n) for n in result.impacted_objects],
        "impacted_scenes": [node_to_dict(n) for n in result.impacted_scenes],
        "edges": [edge_to_dict(e) for e in result.edges],
    }


def _print_ripple(result: FieldRippleResult) -> None:
    if result.root is None or not result.depths:
        click.echo(click.style("Root node not found in graph.", fg="yellow"))
        return

    summary = summarize_field_ripple(result)
    click.echo(f"\nRipple for {result.root.id}:")
    click.echo(f"  Impacted nodes:   {summary.total_impacted_nodes}")
    click.echo(f"  Impacted fields:  {summary.total_impacted_fields}")
    click.echo(f"  Impacted views:   {summary.total_impacted_views}")
    click.echo(f"  Impacted objects: {summary.total_impacted_objects}")
    click.echo(f"  Edges walked:     {summary.edge_count}")

    for label, nodes in (
        ("Fields", result.impacted_fields),
        ("Views", result.impacted_views),
        ("Objects", result.impacted_objects),
        ("Scenes", result.impacted_scenes),
    ):
        if not nodes:
            continue
        click.echo(f"\n  {label}:")
        for node in nodes:
            name = f" ({node.name})" if node.name else ""
            click.echo(f"    [{result.depth_of(node)}] {node.key}{name}")


def _ripple_options(
    max_depth: int | None, include: tuple[str, ...], exclude: tuple[str, ...]
) -> FieldRippleOptions:
    kwargs: dict[str, Any] = {
        "include_edge_types": list(include) or None,
        "exclude_edge_types": list(exclude) or None,
    }
    if max_depth is not None:
        kwargs["max_depth"] = max_depth
    return FieldRippleOptions(**kwargs)


def ripple_options(func: Callable) -> Callable:
    func = click.option(
        "--max-depth", type=click.IntRange(min=0), default=None,
        help="Maximum hops from the root (default: GRAPH_RIPPLE_MAX_DEPTH or unbounded)",
    )(func)
    func = click.option(
        "--include", multiple=True, type=edge_type_choice,
        help="Only traverse these edge types (repeatable)",
    )(func)
    func = click.option(
        "--exclude", multiple=True, type=edge_type_choice,
        help="Also skip these edge types (repeatable)",
    )(func)
    return func


@main.command()
@click.argument("field_key")
@graph_option
@ripple_options
@json_option
@_handle_graph_errors
def ripple(
    field_key: str,
    graph_path: str,
    max_depth: int | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    as_json: bool,
) -> None:
    """Show everything impacted by a change to FIELD_KEY.

    Example:
        schemagraph ripple field_12 --graph app.json --max-depth 2
    """
    graph = _load(graph_path)
    result = build_field_ripple(
        graph, field_key, _ripple_options(max_depth, include, exclude), GraphConfig()
    )
    if as_json:
        _echo_json(_ripple_payload(result))
    else:
        _print_ripple(result)


@main.command("object-ripple")
@click.argument("object_key")
@graph_option
@ripple_options
@json_option
@_handle_graph_errors
def object_ripple(
    object_key: str,
    graph_path: str,
    max_depth: int | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    as_json: bool,
) -> None:
    """Show everything impacted by a change to any field of OBJECT_KEY."""
    graph = _load(graph_path)
    result = build_object_ripple(
        graph, object_key, _ripple_options(max_depth, include, exclude), GraphConfig()
    )
    if as_json:
        _echo_json(_ripple_payload(result))
    else:
        _print_ripple(result)


# ── Complexity ────────────────────────────────────────────


def _complexity_payload(result: ComplexityResult) -> dict[str, Any]:
    return {
        "node": node_to_dict(result.node),
        "score": result.score,
        "breakdown": [
            {
                "feature_id": item.feature_id,
                "label": item.label,
                "raw": item.raw,
                "weight": item.weight,
                "weighted": item.weighted,
            }
            for item in result.breakdown
        ],
    }


def _print_complexity(result: ComplexityResult, indent: str = "  ") -> None:
    click.echo(f"{indent}{result.node.id}: {result.score:.2f}")
    for item in result.breakdown:
        if item.raw == 0:
            continue
        click.echo(
            f"{indent}  {item.label:<45} raw={item.raw:<5g} "
            f"x {item.weight:<5g} = {item.weighted:.2f}"
        )


@main.command()
@click.argument("kind", type=click.Choice(sorted(VALID_NODE_KINDS)))
@click.argument("key")
@graph_option
@json_option
@_handle_graph_errors
def complexity(kind: str, key: str, graph_path: str, as_json: bool) -> None:
    """Score the complexity of one node.

    Example:
        schemagraph complexity field field_12 --graph app.json
    """
    graph = _load(graph_path)
    node = graph.find_node(kind, key)
    if node is None:
        click.echo(click.style(f"{kind}:{key} not found in graph.", fg="yellow"))
        return

    result = compute_complexity(graph, node, graph_config=GraphConfig())
    if as_json:
        _echo_json(_complexity_payload(result))
    else:
        click.echo("\nComplexity:")
        _print_complexity(result)


@main.command()
@click.argument("object_key")
@graph_option
@json_option
@_handle_graph_errors
def rollup(object_key: str, graph_path: str, as_json: bool) -> None:
    """Sum the complexity of every field OBJECT_KEY contains."""
    graph = _load(graph_path)
    result = compute_object_complexity_rollup(
        graph, object_key, graph_config=GraphConfig()
    )
    if as_json:
        _echo_json(
            {
                "object": node_to_dict(result.object),
                "total_score": result.total_score,
                "fields": [_complexity_payload(r) for r in result.field_results],
            }
        )
        return

    click.echo(f"\nComplexity rollup for {result.object.id}:")
    click.echo(f"  Total score: {result.total_score:.2f}")
    click.echo(f"  Fields:      {len(result.field_results)}")
    for field_result in sorted(result.field_results, key=lambda r: -r.score):
        _print_complexity(field_result, indent="    ")


# ── Structure ─────────────────────────────────────────────


@main.command()
@graph_option
@click.option(
    "--edge-type", "edge_types", multiple=True, type=edge_type_choice,
    default=("derivesFrom",), show_default=True,
    help="Edge types forming the subgraph (repeatable)",
)
@json_option
@_handle_graph_errors
def cycles(graph_path: str, edge_types: tuple[str, ...], as_json: bool) -> None:
    """List circular dependencies (strongly connected components > 1 node)."""
    graph = _load(graph_path)
    found = find_cycles(graph, edge_types)
    if as_json:
        _echo_json([[n.id for n in component] for component in found])
        return

    if not found:
        click.echo(click.style("No cycles found.", fg="green"))
        return
    click.echo(click.style(f"\n{len(found)} cycle(s) found:", fg="yellow"))
    for component in found:
        click.echo("  " + " ↔ ".join(n.id for n in component))


@main.command()
@graph_option
@click.option(
    "--edge-type", "edge_types", multiple=True, type=edge_type_choice,
    default=("derivesFrom",), show_default=True,
    help="Edge types forming the subgraph (repeatable)",
)
@json_option
@_handle_graph_errors
def layers(graph_path: str, edge_types: tuple[str, ...], as_json: bool) -> None:
    """Group nodes into derivation depth bands (inputs at depth 0)."""
    graph = _load(graph_path)
    bands = group_by_depth(derivation_depths(graph, edge_types))
    if as_json:
        _echo_json({str(depth): ids for depth, ids in bands.items()})
        return

    click.echo("\nDerivation layers:")
    for depth, ids in bands.items():
        click.echo(f"  Depth {depth}: {len(ids)} node(s)")
        for node_id in ids:
            click.echo(f"    {node_id}")


@main.command()
@graph_option
@click.option("--top", "top_n", type=click.IntRange(min=1), default=None)
@json_option
@_handle_graph_errors
def stats(graph_path: str, top_n: int | None, as_json: bool) -> None:
    """Show graph size, shape and the most referenced fields."""
    graph = _load(graph_path)
    result = compute_stats(graph, top_n=top_n or GraphConfig().stats_top_n)
    if as_json:
        _echo_json(
            {
                "node_count": result.node_count,
                "edge_count": result.edge_count,
                "nodes_by_kind": result.nodes_by_kind,
                "edges_by_type": result.edges_by_type,
                "top_referenced_fields": [
                    {"field_key": r.field_key, "references": r.references}
                    for r in result.top_referenced_fields
                ],
                "derivation_cycles": result.derivation_cycles,
            }
        )
        return

    click.echo("\nGraph Stats:")
    click.echo(f"  Nodes: {result.node_count}")
    for kind, count in sorted(result.nodes_by_kind.items()):
        click.echo(f"    {kind:<8} {count}")
    click.echo(f"  Edges: {result.edge_count}")
    for edge_type, count in sorted(result.edges_by_type.items()):
        click.echo(f"    {edge_type:<12} {count}")
    click.echo(f"  Derivation cycles: {result.derivation_cycles}")
    if result.top_referenced_fields:
        click.echo("\n  Most referenced fields:")
        for ref in result.top_referenced_fields:
            click.echo(f"    {ref.field_key:<20} {ref.references}")


@main.command()
@click.argument("source")
@click.argument("target")
@graph_option
@click.option(
    "--max-depth", type=click.IntRange(min=1), default=None,
    help="Maximum hops searched (default: GRAPH_PATHS_MAX_DEPTH)",
)
@json_option
@_handle_graph_errors
def paths(
    source: str, target: str, graph_path: str, max_depth: int | None, as_json: bool
) -> None:
    """Show a shortest dependency path from SOURCE to TARGET (node ids).

    Example:
        schemagraph paths field:field_9 field:field_1 --graph app.json
    """
    graph = _load(graph_path)
    found = paths_to(
        graph, source, target, max_depth=max_depth or GraphConfig().paths_max_depth
    )
    if as_json:
        _echo_json([[n.id for n in path] for path in found])
        return

    if not found:
        click.echo(click.style(f"No path from {source} to {target}.", fg="yellow"))
        return
    for path in found:
        click.echo(" → ".join(n.id for n in path))


@main.command()
@click.argument("field_key")
@graph_option
@_handle_graph_errors
def usage(field_key: str, graph_path: str) -> None:
    """Show the fields and views that directly reference FIELD_KEY."""
    graph = _load(graph_path)
    result = analyze_field_usage(graph, field_key)
    if not result.by_fields and not result.by_views:
        click.echo(click.style(f"No references to {field_key}.", fg="yellow"))
        return

    for label, groups in (("Fields", result.by_fields), ("Views", result.by_views)):
        if not groups:
            continue
        click.echo(f"\n{label} referencing {field_key}:")
        for group in groups:
            types = ", ".join(sorted({e.type for e in group.edges}))
            click.echo(f"  {group.node.id:<24} {len(group.edges)} edge(s): {types}")


if __name__ == "__main__":
    main()
