"""Subgraph extraction and JSON-ready conversion.

The engine owns no wire format; these helpers only turn nodes, edges
and subgraphs into plain dicts for consumers (the CLI, an API layer)
to serialize however they like.
"""

from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Iterable, Literal

from .schemas import Edge, NodeRef, to_node_id
from .store import DependencyGraph


@dataclass
class Subgraph:
    """A set of nodes plus the edges collected between them."""

    nodes: list[NodeRef] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)


def build_subgraph(
    graph: DependencyGraph,
    roots: Iterable[NodeRef],
    direction: Literal["out", "in", "both"] = "both",
) -> Subgraph:
    """Collect everything reachable from ``roots`` in the given direction(s).

    Every adjacent edge of a reached node in the walked direction is kept.
    """
    nodes: dict[str, NodeRef] = {}
    edges: list[Edge] = []
    roots = [r for r in roots if r in graph]
    for root in roots:
        nodes.setdefault(to_node_id(root), graph.get_node(to_node_id(root)))

    walks: list[Literal["out", "in"]] = []
    if direction in ("out", "both"):
        walks.append("out")
    if direction in ("in", "both"):
        walks.append("in")

    for walk in walks:
        for root in roots:
            reached = graph.bfs(root, walk)
            for node in reached:
                nodes.setdefault(to_node_id(node), node)
            for node in reached:
                adjacent = (
                    graph.get_outgoing(node) if walk == "out" else graph.get_incoming(node)
                )
                edges.extend(adjacent)

    return Subgraph(nodes=list(nodes.values()), edges=edges)


def node_to_dict(node: NodeRef) -> dict[str, Any]:
    data: dict[str, Any] = {"id": to_node_id(node), "kind": node.kind, "key": node.key}
    if node.name is not None:
        data["name"] = node.name
    return data


def _details_to_dict(edge: Edge) -> dict[str, Any] | None:
    if edge.details is None or not is_dataclass(edge.details):
        return None
    return {k: v for k, v in asdict(edge.details).items() if v not in (None, {}, [])}


def edge_to_dict(edge: Edge) -> dict[str, Any]:
    data: dict[str, Any] = {
        "from": to_node_id(edge.source),
        "to": to_node_id(edge.target),
        "type": edge.type,
    }
    if edge.location_path:
        data["locationPath"] = edge.location_path
    details = _details_to_dict(edge)
    if details:
        data["details"] = details
    return data


def subgraph_to_dict(subgraph: Subgraph) -> dict[str, Any]:
    return {
        "nodes": [node_to_dict(n) for n in subgraph.nodes],
        "edges": [edge_to_dict(e) for e in subgraph.edges],
    }
