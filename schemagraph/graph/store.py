"""In-memory graph store for schema dependencies.

Holds every node and edge of one schema snapshot with outgoing and
incoming adjacency indexes. The store is append-only: it is built once by
an ingestion step and then only read. A new snapshot gets a new store.
"""

from collections import deque
from typing import Callable, Iterator, Literal, Sequence

from .schemas import Edge, NodeRef, to_node_id

Direction = Literal["out", "in"]

EdgePredicate = Callable[[Edge], bool]


def _as_id(node: NodeRef | str) -> str:
    return node if isinstance(node, str) else to_node_id(node)


class DependencyGraph:
    """Directed multigraph of schema entities.

    Nodes are deduplicated on ``"{kind}:{key}"``; the first inserted
    NodeRef for an identity is the canonical copy. Edges are never
    deduplicated: every declaration site yields its own edge.

    Usage:
        graph = DependencyGraph()
        graph.add_edge(Edge(derived, base, "derivesFrom"))
        graph.get_incoming(base)  # -> [that edge]
    """

    def __init__(self) -> None:
        self._nodes: dict[str, NodeRef] = {}
        self._outgoing: dict[str, list[Edge]] = {}
        self._incoming: dict[str, list[Edge]] = {}
        self._edge_count = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_node(self, node: NodeRef) -> NodeRef:
        """Insert a node, or no-op if its identity already exists.

        Returns:
            The canonical stored node for that identity.
        """
        node_id = to_node_id(node)
        existing = self._nodes.get(node_id)
        if existing is not None:
            return existing
        self._nodes[node_id] = node
        return node

    def add_edge(self, edge: Edge) -> None:
        """Append an edge, registering both endpoints as nodes if absent."""
        self.add_node(edge.source)
        self.add_node(edge.target)
        self._outgoing.setdefault(edge.source_id, []).append(edge)
        self._incoming.setdefault(edge.target_id, []).append(edge)
        self._edge_count += 1

    def add_edges(self, edges: Sequence[Edge]) -> None:
        for edge in edges:
            self.add_edge(edge)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> NodeRef | None:
        """Get a node by identity string, or None if not found."""
        return self._nodes.get(node_id)

    def find_node(self, kind: str, key: str) -> NodeRef | None:
        """Get a node by kind and key, or None if not found."""
        return self._nodes.get(f"{kind}:{key}")

    def get_all_nodes(self) -> list[NodeRef]:
        """All nodes in insertion order."""
        return list(self._nodes.values())

    def get_all_edges(self) -> list[Edge]:
        """All edges, grouped by source node in first-seen order."""
        return [edge for edges in self._outgoing.values() for edge in edges]

    def get_outgoing(self, node: NodeRef | str) -> list[Edge]:
        """Edges whose source is ``node``, in insertion order."""
        return list(self._outgoing.get(_as_id(node), ()))

    def get_incoming(self, node: NodeRef | str) -> list[Edge]:
        """Edges whose target is ``node``, in insertion order."""
        return list(self._incoming.get(_as_id(node), ()))

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        if isinstance(node, (NodeRef, str)):
            return _as_id(node) in self._nodes
        return False

    def __iter__(self) -> Iterator[NodeRef]:
        return iter(list(self._nodes.values()))

    # ------------------------------------------------------------------
    # Traversals
    # ------------------------------------------------------------------

    def _neighbours(
        self, node_id: str, direction: Direction, edge_filter: EdgePredicate | None
    ) -> Iterator[NodeRef]:
        edges = (
            self._outgoing.get(node_id, ())
            if direction == "out"
            else self._incoming.get(node_id, ())
        )
        for edge in edges:
            if edge_filter is not None and not edge_filter(edge):
                continue
            yield edge.target if direction == "out" else edge.source

    def bfs(
        self,
        start: NodeRef | str,
        direction: Direction = "out",
        edge_filter: EdgePredicate | None = None,
    ) -> list[NodeRef]:
        """Breadth-first walk from ``start``, including ``start`` itself.

        Returns an empty list when ``start`` is not in the graph.
        """
        start_id = _as_id(start)
        root = self._nodes.get(start_id)
        if root is None:
            return []

        visited = {start_id}
        queue: deque[NodeRef] = deque([root])
        result: list[NodeRef] = []
        while queue:
            node = queue.popleft()
            result.append(node)
            for nxt in self._neighbours(to_node_id(node), direction, edge_filter):
                nxt_id = to_node_id(nxt)
                if nxt_id not in visited:
                    visited.add(nxt_id)
                    queue.append(self._nodes[nxt_id])
        return result

    def dfs(
        self,
        start: NodeRef | str,
        direction: Direction = "out",
        edge_filter: EdgePredicate | None = None,
    ) -> list[NodeRef]:
        """Depth-first pre-order walk from ``start`` (iterative, cycle safe)."""
        start_id = _as_id(start)
        if start_id not in self._nodes:
            return []

        visited: set[str] = set()
        result: list[NodeRef] = []
        stack = [start_id]
        while stack:
            node_id = stack.pop()
            if node_id in visited:
                continue
            visited.add(node_id)
            result.append(self._nodes[node_id])
            # Reversed so the first edge is explored first
            successors = [
                to_node_id(n)
                for n in self._neighbours(node_id, direction, edge_filter)
            ]
            for nxt_id in reversed(successors):
                if nxt_id not in visited:
                    stack.append(nxt_id)
        return result

    # ------------------------------------------------------------------
    # Structural algorithms (see algorithms.py)
    # ------------------------------------------------------------------

    def strongly_connected_components(
        self, edge_types: Sequence[str] = ("derivesFrom",)
    ) -> list[list[NodeRef]]:
        from .algorithms import strongly_connected_components

        return strongly_connected_components(self, edge_types)

    def topological_sort(
        self, edge_types: Sequence[str] = ("derivesFrom",)
    ) -> list[NodeRef]:
        from .algorithms import topological_sort

        return topological_sort(self, edge_types)


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------


def where_used(graph: DependencyGraph, node: NodeRef | str) -> list[Edge]:
    """Edges from every entity that depends on ``node``."""
    return graph.get_incoming(node)


def impact(graph: DependencyGraph, node: NodeRef | str) -> list[NodeRef]:
    """Everything ``node`` transitively depends on (outgoing closure)."""
    return graph.bfs(node, "out")


def depends_on(graph: DependencyGraph, node: NodeRef | str) -> list[NodeRef]:
    """Everything that transitively depends on ``node`` (incoming closure)."""
    return graph.bfs(node, "in")


def paths_to(
    graph: DependencyGraph,
    source: NodeRef | str,
    target: NodeRef | str,
    max_depth: int = 6,
) -> list[list[NodeRef]]:
    """Find a shortest path from ``source`` to ``target`` along outgoing edges.

    Returns:
        A list holding one path (list of nodes, source first), or an empty
        list if ``target`` is unreachable within ``max_depth`` hops.
    """
    source_id = _as_id(source)
    target_id = _as_id(target)
    if source_id not in graph or target_id not in graph:
        return []
    if source_id == target_id:
        return [[graph.get_node(source_id)]]

    parent: dict[str, str | None] = {source_id: None}
    queue: deque[tuple[str, int]] = deque([(source_id, 0)])
    found = False
    while queue and not found:
        node_id, depth = queue.popleft()
        if depth >= max_depth:
            continue
        for edge in graph.get_outgoing(node_id):
            nxt = edge.target_id
            if nxt in parent:
                continue
            parent[nxt] = node_id
            if nxt == target_id:
                found = True
                break
            queue.append((nxt, depth + 1))

    if not found:
        return []

    path: list[NodeRef] = []
    cur: str | None = target_id
    while cur is not None:
        path.append(graph.get_node(cur))
        cur = parent[cur]
    path.reverse()
    return [path]
