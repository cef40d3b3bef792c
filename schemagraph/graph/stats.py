"""Summary statistics for a dependency graph."""

from collections import Counter
from dataclasses import dataclass, field

from .algorithms import find_cycles
from .store import DependencyGraph


@dataclass(frozen=True)
class FieldReferenceCount:
    field_key: str
    references: int


@dataclass
class GraphStats:
    """Size and shape of a graph.

    Attributes:
        node_count: Number of nodes.
        edge_count: Number of edges.
        nodes_by_kind: Node count per kind.
        edges_by_type: Edge count per type.
        top_referenced_fields: Fields with the most incoming edges.
        derivation_cycles: Number of circular ``derivesFrom`` chains.
    """

    node_count: int
    edge_count: int
    nodes_by_kind: dict[str, int] = field(default_factory=dict)
    edges_by_type: dict[str, int] = field(default_factory=dict)
    top_referenced_fields: list[FieldReferenceCount] = field(default_factory=list)
    derivation_cycles: int = 0


def compute_stats(graph: DependencyGraph, top_n: int = 10) -> GraphStats:
    """Count nodes and edges and rank fields by incoming references."""
    nodes = graph.get_all_nodes()
    edges = graph.get_all_edges()

    references = [
        FieldReferenceCount(field_key=n.key, references=len(graph.get_incoming(n)))
        for n in nodes
        if n.kind == "field"
    ]
    references.sort(key=lambda r: r.references, reverse=True)

    return GraphStats(
        node_count=len(nodes),
        edge_count=len(edges),
        nodes_by_kind=dict(Counter(n.kind for n in nodes)),
        edges_by_type=dict(Counter(e.type for e in edges)),
        top_referenced_fields=references[:top_n],
        derivation_cycles=len(find_cycles(graph, ("derivesFrom",))),
    )
