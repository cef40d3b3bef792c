"""Structural graph algorithms over an edge-type-restricted view.

Cycle detection (strongly connected components), topological ordering
and longest-path depth layering. Every function takes the set of edge
types to consider; the induced subgraph always contains every node of
the store, so nodes without qualifying edges come back as singleton
components and depth-0 sources.

A component with more than one member is a genuine cycle, e.g. a
circular formula dependency among derived fields.
"""

from typing import Iterable, Sequence, TYPE_CHECKING

import networkx as nx
import structlog

from .errors import CyclicGraphError
from .schemas import NodeRef

if TYPE_CHECKING:
    from .store import DependencyGraph

logger = structlog.get_logger(__name__)

DEFAULT_EDGE_TYPES: tuple[str, ...] = ("derivesFrom",)


def _restricted_graph(
    graph: "DependencyGraph", edge_types: Iterable[str]
) -> tuple[nx.MultiDiGraph, dict[str, int]]:
    """Build the networkx view holding all nodes and only the chosen edge types.

    Returns the view plus each node id's insertion index, used to keep
    results deterministic.
    """
    allowed = frozenset(edge_types)
    G = nx.MultiDiGraph()
    order: dict[str, int] = {}
    for index, node in enumerate(graph.get_all_nodes()):
        order[node.id] = index
        G.add_node(node.id)
    for edge in graph.get_all_edges():
        if edge.type in allowed:
            G.add_edge(edge.source_id, edge.target_id, type=edge.type)
    return G, order


def strongly_connected_components(
    graph: "DependencyGraph", edge_types: Sequence[str] = DEFAULT_EDGE_TYPES
) -> list[list[NodeRef]]:
    """Partition every node into maximal mutually-reachable sets.

    Args:
        graph: The graph store.
        edge_types: Edge types forming the induced subgraph.

    Returns:
        Components as lists of nodes. Largest components first; ties are
        ordered by their earliest-inserted member, and members keep
        insertion order.
    """
    G, order = _restricted_graph(graph, edge_types)
    components = [
        sorted(component, key=order.__getitem__)
        for component in nx.strongly_connected_components(G)
    ]
    components.sort(key=lambda c: (-len(c), order[c[0]]))
    return [[graph.get_node(node_id) for node_id in c] for c in components]


def find_cycles(
    graph: "DependencyGraph", edge_types: Sequence[str] = DEFAULT_EDGE_TYPES
) -> list[list[NodeRef]]:
    """Components of size > 1, i.e. the cycles among the given edge types."""
    return [c for c in strongly_connected_components(graph, edge_types) if len(c) > 1]


def topological_sort(
    graph: "DependencyGraph", edge_types: Sequence[str] = DEFAULT_EDGE_TYPES
) -> list[NodeRef]:
    """Order all nodes so that for every included edge ``u -> v``, ``u`` comes first.

    With the dependent -> dependency convention this lists dependents
    before their dependencies; use ``dependency_order`` for the reverse.
    Ties are broken by insertion order.

    Raises:
        CyclicGraphError: If the restricted subgraph contains a cycle.
    """
    G, order = _restricted_graph(graph, edge_types)
    try:
        ordered = list(nx.lexicographical_topological_sort(G, key=order.__getitem__))
    except nx.NetworkXUnfeasible:
        cycles = find_cycles(graph, edge_types)
        # A node deriving from itself is a singleton component but still cyclic
        cycles.extend(
            [graph.get_node(node_id)]
            for node_id in sorted(nx.nodes_with_selfloops(G), key=order.__getitem__)
        )
        logger.warning(
            "Topological sort over cyclic subgraph",
            edge_types=list(edge_types),
            cycles=[[n.id for n in c] for c in cycles],
        )
        raise CyclicGraphError(
            f"Graph restricted to {sorted(edge_types)} contains "
            f"{len(cycles)} cycle(s)",
            edge_types=edge_types,
            components=cycles,
        ) from None
    return [graph.get_node(node_id) for node_id in ordered]


def dependency_order(
    graph: "DependencyGraph", edge_types: Sequence[str] = DEFAULT_EDGE_TYPES
) -> list[NodeRef]:
    """All nodes with dependencies before dependents.

    Raises:
        CyclicGraphError: If the restricted subgraph contains a cycle.
    """
    return list(reversed(topological_sort(graph, edge_types)))


def compute_depth_layers(
    graph: "DependencyGraph", edge_types: Sequence[str] = DEFAULT_EDGE_TYPES
) -> dict[str, int]:
    """Longest-path depth of every node from the restricted sources.

    A source has no restricted incoming edge and sits at depth 0. One
    dynamic-programming pass over the topological order applies
    ``depth[v] = max(depth[v], depth[u] + 1)`` for each edge ``u -> v``.

    Returns:
        Mapping node id -> depth, in topological order.

    Raises:
        CyclicGraphError: If the restricted subgraph contains a cycle.
    """
    allowed = frozenset(edge_types)
    ordered = topological_sort(graph, edge_types)
    depth = {node.id: 0 for node in ordered}
    for node in ordered:
        for edge in graph.get_outgoing(node):
            if edge.type not in allowed:
                continue
            depth[edge.target_id] = max(depth[edge.target_id], depth[node.id] + 1)
    return depth


def derivation_depths(
    graph: "DependencyGraph", edge_types: Sequence[str] = DEFAULT_EDGE_TYPES
) -> dict[str, int]:
    """Derivation depth bands: inputs at 0, each dependent one above its deepest input.

    The same pass as ``compute_depth_layers`` run over the dependency
    order, so a field deriving from two plain inputs is at depth 1 and a
    field deriving from that one is at depth 2.

    Raises:
        CyclicGraphError: If the restricted subgraph contains a cycle.
    """
    allowed = frozenset(edge_types)
    ordered = dependency_order(graph, edge_types)
    depth = {node.id: 0 for node in ordered}
    for node in ordered:
        for edge in graph.get_incoming(node):
            if edge.type not in allowed:
                continue
            depth[edge.source_id] = max(depth[edge.source_id], depth[node.id] + 1)
    return depth


def group_by_depth(depths: dict[str, int]) -> dict[int, list[str]]:
    """Invert a depth mapping into ``depth -> [node ids]`` bands, shallowest first."""
    bands: dict[int, list[str]] = {}
    for node_id, d in depths.items():
        bands.setdefault(d, []).append(node_id)
    return dict(sorted(bands.items()))
