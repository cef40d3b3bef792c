"""Direct usage of a field: who references it, grouped by referrer."""

from collections import deque
from dataclasses import dataclass, field
from typing import Literal

from .schemas import Edge, NodeRef, to_node_id
from .serialize import Subgraph
from .store import DependencyGraph


@dataclass
class UsageGroup:
    """All edges from one referring entity to the field."""

    node: NodeRef
    edges: list[Edge] = field(default_factory=list)


@dataclass
class FieldUsage:
    """Referrers of a field, split into fields and views.

    Groups are sorted by edge count, most references first.
    """

    by_fields: list[UsageGroup] = field(default_factory=list)
    by_views: list[UsageGroup] = field(default_factory=list)


def analyze_field_usage(graph: DependencyGraph, field_key: str) -> FieldUsage:
    """Group a field's incoming edges by the field or view they come from."""
    target = graph.find_node("field", field_key)
    if target is None:
        return FieldUsage()

    by_fields: dict[str, UsageGroup] = {}
    by_views: dict[str, UsageGroup] = {}
    for edge in graph.get_incoming(target):
        if edge.source.kind == "field":
            groups = by_fields
        elif edge.source.kind == "view":
            groups = by_views
        else:
            continue
        group = groups.setdefault(
            edge.source_id, UsageGroup(node=graph.get_node(edge.source_id))
        )
        group.edges.append(edge)

    # sorted() is stable, so equal counts keep first-reference order
    return FieldUsage(
        by_fields=sorted(by_fields.values(), key=lambda g: -len(g.edges)),
        by_views=sorted(by_views.values(), key=lambda g: -len(g.edges)),
    )


def build_usage_subgraph(graph: DependencyGraph, field_key: str) -> Subgraph:
    """The field plus its direct field and view referrers."""
    target = graph.find_node("field", field_key)
    if target is None:
        return Subgraph()

    edges = [
        e for e in graph.get_incoming(target) if e.source.kind in ("field", "view")
    ]
    nodes: dict[str, NodeRef] = {to_node_id(target): target}
    for edge in edges:
        nodes.setdefault(edge.source_id, graph.get_node(edge.source_id))
    return Subgraph(nodes=list(nodes.values()), edges=edges)


def build_neighborhood_subgraph(
    graph: DependencyGraph,
    root: NodeRef | str,
    direction: Literal["in", "out", "both"] = "in",
    peer_depth: int = 1,
) -> Subgraph:
    """Everything within ``peer_depth`` hops of ``root``, unfiltered.

    Every adjacent edge of an expanded node is kept, including edges
    between already-visited nodes.
    """
    root_id = root if isinstance(root, str) else to_node_id(root)
    found = graph.get_node(root_id)
    if found is None:
        return Subgraph()

    nodes: dict[str, NodeRef] = {root_id: found}
    edges: list[Edge] = []
    queue: deque[tuple[NodeRef, int]] = deque([(found, 0)])
    while queue:
        node, depth = queue.popleft()
        if depth >= peer_depth:
            continue
        adjacent: list[tuple[Edge, str]] = []
        if direction in ("in", "both"):
            adjacent.extend((e, e.source_id) for e in graph.get_incoming(node))
        if direction in ("out", "both"):
            adjacent.extend((e, e.target_id) for e in graph.get_outgoing(node))
        for edge, other_id in adjacent:
            edges.append(edge)
            if other_id not in nodes:
                other = graph.get_node(other_id)
                nodes[other_id] = other
                queue.append((other, depth + 1))
    return Subgraph(nodes=list(nodes.values()), edges=edges)
