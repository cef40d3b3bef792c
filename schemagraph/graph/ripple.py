"""Ripple (impact) analysis over the dependency graph.

Answers "what else is affected if this field changes?". Dependencies are
stored dependent -> dependency, so the analyzer walks INCOMING edges
from the changed field: derived fields, filtering views and rules that
use the field, then whatever depends on those, and so on.

Traversal is breadth-first and level ordered. A node is recorded once,
at the depth where it is first discovered (shortest hop count along the
allowed edge types); later arrivals never move it. Nodes at exactly
``max_depth`` are included but not expanded.

Example:
    result = build_field_ripple(graph, "field_12", FieldRippleOptions(max_depth=2))
    [n.key for n in result.impacted_views]  # -> ["view_3", "view_9"]
"""

from collections import Counter, deque
from dataclasses import dataclass, field, replace
from typing import Sequence

import structlog

from .config import GraphConfig
from .policy import EdgeFilter
from .schemas import Edge, NodeRef, to_node_id
from .store import DependencyGraph

logger = structlog.get_logger(__name__)

_UNSET = object()


@dataclass(frozen=True)
class FieldRippleOptions:
    """Caller overrides for ripple traversal.

    Attributes:
        include_edge_types: Allow-list of edge types to traverse. Empty or
            None allows every type not excluded.
        exclude_edge_types: Extra exclusions on top of the ``rippleBuild``
            context defaults (displays, contains, sortsBy).
        max_depth: Maximum hop count from the root. None means unbounded;
            when left unset the ``GraphConfig.ripple_max_depth`` default
            applies.
    """

    include_edge_types: Sequence[str] | None = None
    exclude_edge_types: Sequence[str] | None = None
    max_depth: int | None | object = _UNSET

    def __post_init__(self) -> None:
        depth = self.max_depth
        if depth is not _UNSET and depth is not None and depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {depth}")

    def resolve_max_depth(self, config: GraphConfig) -> int | None:
        if self.max_depth is _UNSET:
            return config.ripple_max_depth
        return self.max_depth

    def edge_filter(self) -> EdgeFilter:
        return EdgeFilter.for_context(
            "rippleBuild", self.include_edge_types, self.exclude_edge_types
        )


@dataclass
class FieldRippleResult:
    """Entities reached by a ripple traversal.

    Attributes:
        root: The starting node, or None when the key was not found.
        nodes: Every reached node, root first, in discovery order.
        edges: Every allowed edge walked (incoming edges of expanded nodes).
        depths: Node id -> hop count at first discovery.
        first_edge_types: Node id -> type of the edge that first reached it.
        impacted_fields: Reached fields, root excluded.
        impacted_views: Reached views.
        impacted_objects: Reached objects.
        impacted_scenes: Reached scenes.
    """

    root: NodeRef | None
    nodes: list[NodeRef] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    depths: dict[str, int] = field(default_factory=dict)
    first_edge_types: dict[str, str] = field(default_factory=dict)
    impacted_fields: list[NodeRef] = field(default_factory=list)
    impacted_views: list[NodeRef] = field(default_factory=list)
    impacted_objects: list[NodeRef] = field(default_factory=list)
    impacted_scenes: list[NodeRef] = field(default_factory=list)

    def depth_of(self, node: NodeRef | str) -> int | None:
        node_id = node if isinstance(node, str) else to_node_id(node)
        return self.depths.get(node_id)

    def node_ids(self) -> set[str]:
        return set(self.depths)


@dataclass(frozen=True)
class RippleSummary:
    """Counts describing a ripple result."""

    total_impacted_nodes: int
    total_impacted_fields: int
    total_impacted_views: int
    total_impacted_objects: int
    edge_count: int
    max_depth_reached: int


def is_field_list_usage(edge: Edge) -> bool:
    """True for ``uses`` edges that come from a generic field list.

    Column lists and static field lists reference every field they show;
    treating those as impact would flag every displayed field. Rule field
    references (``.rules.fields``) are real usages and are kept.
    """
    if edge.type != "uses":
        return False
    path = edge.location_path or ""
    if ".rules.fields" in path:
        return False
    return path.endswith(".fields") or ".columns" in path or ".fields[" in path


def _partition(result: FieldRippleResult, root_id: str) -> None:
    for node in result.nodes:
        if node.kind == "field" and to_node_id(node) != root_id:
            result.impacted_fields.append(node)
        elif node.kind == "view":
            result.impacted_views.append(node)
        elif node.kind == "object" and to_node_id(node) != root_id:
            result.impacted_objects.append(node)
        elif node.kind == "scene":
            result.impacted_scenes.append(node)


def build_field_ripple(
    graph: DependencyGraph,
    field_key: str,
    options: FieldRippleOptions | None = None,
    config: GraphConfig | None = None,
) -> FieldRippleResult:
    """Build the ripple of entities impacted by a change to one field.

    Args:
        graph: The graph store.
        field_key: Key of the changed field (without the ``field:`` prefix).
        options: Edge-type overrides and depth limit.
        config: Engine configuration (default ripple depth).

    Returns:
        The ripple result; empty with ``root=None`` if the field is unknown.
    """
    options = options or FieldRippleOptions()
    config = config or GraphConfig()
    max_depth = options.resolve_max_depth(config)
    allowed = options.edge_filter()

    root = graph.find_node("field", field_key)
    if root is None:
        logger.debug("Ripple root not found", field_key=field_key)
        return FieldRippleResult(root=None)

    root_id = to_node_id(root)
    result = FieldRippleResult(root=root, nodes=[root], depths={root_id: 0})
    queue: deque[tuple[NodeRef, int]] = deque([(root, 0)])
    depth_stats: Counter[int] = Counter()
    edge_type_stats: Counter[str] = Counter()

    logger.debug(
        "Building field ripple",
        root=root_id,
        include=sorted(allowed.include),
        exclude=sorted(allowed.excluded),
        max_depth=max_depth,
    )

    while queue:
        node, depth = queue.popleft()
        depth_stats[depth] += 1
        if max_depth is not None and depth >= max_depth:
            continue

        for edge in graph.get_incoming(node):
            if not allowed(edge) or is_field_list_usage(edge):
                continue
            result.edges.append(edge)
            edge_type_stats[edge.type] += 1

            dependent_id = edge.source_id
            # First discovery wins
            if dependent_id in result.depths:
                continue
            dependent = graph.get_node(dependent_id)
            result.depths[dependent_id] = depth + 1
            result.first_edge_types[dependent_id] = edge.type
            result.nodes.append(dependent)
            queue.append((dependent, depth + 1))

    _partition(result, root_id)

    logger.info(
        "Field ripple complete",
        root=root_id,
        total_nodes=len(result.nodes),
        total_edges=len(result.edges),
        depth_stats=dict(depth_stats),
        edge_type_stats=dict(edge_type_stats),
    )
    return result


def build_object_ripple(
    graph: DependencyGraph,
    object_key: str,
    options: FieldRippleOptions | None = None,
    config: GraphConfig | None = None,
) -> FieldRippleResult:
    """Union of the field ripples of every field an object contains.

    The object is the root (depth 0), its member fields sit at depth 1
    and each field ripple's depths are shifted by one. Member ripples run
    with one hop less than ``max_depth`` so merged depths stay within the
    bound. The ``contains`` edges to the member fields are part of
    ``edges``.

    Returns:
        The merged result; empty with a placeholder root if the object
        is unknown.
    """
    options = options or FieldRippleOptions()
    config = config or GraphConfig()
    max_depth = options.resolve_max_depth(config)

    obj = graph.find_node("object", object_key)
    if obj is None:
        logger.debug("Ripple root not found", object_key=object_key)
        return FieldRippleResult(root=NodeRef("object", object_key))

    root_id = to_node_id(obj)
    result = FieldRippleResult(root=obj, nodes=[obj], depths={root_id: 0})
    if max_depth == 0:
        _partition(result, root_id)
        return result

    member_options = replace(
        options, max_depth=None if max_depth is None else max_depth - 1
    )
    members: list[NodeRef] = []
    for edge in graph.get_outgoing(obj):
        if edge.type == "contains" and edge.target.kind == "field":
            member = graph.get_node(edge.target_id)
            result.edges.append(edge)
            members.append(member)
            _merge_node(result, member, 1, edge.type)

    logger.debug("Building object ripple", root=root_id, field_count=len(members))

    for member in members:
        field_ripple = build_field_ripple(graph, member.key, member_options, config)
        result.edges.extend(field_ripple.edges)
        for node in field_ripple.nodes:
            node_id = to_node_id(node)
            _merge_node(
                result,
                node,
                field_ripple.depths[node_id] + 1,
                field_ripple.first_edge_types.get(node_id, "contains"),
            )

    _partition(result, root_id)

    logger.info(
        "Object ripple complete",
        root=root_id,
        field_count=len(members),
        total_nodes=len(result.nodes),
        total_edges=len(result.edges),
    )
    return result


def _merge_node(
    result: FieldRippleResult, node: NodeRef, depth: int, edge_type: str
) -> None:
    node_id = to_node_id(node)
    known = result.depths.get(node_id)
    if known is None:
        result.nodes.append(node)
        result.depths[node_id] = depth
        result.first_edge_types[node_id] = edge_type
    elif depth < known:
        result.depths[node_id] = depth
        result.first_edge_types[node_id] = edge_type


def summarize_field_ripple(result: FieldRippleResult) -> RippleSummary:
    """Compute simple ripple metrics for scoring or display."""
    return RippleSummary(
        total_impacted_nodes=len(result.nodes),
        total_impacted_fields=len(result.impacted_fields),
        total_impacted_views=len(result.impacted_views),
        total_impacted_objects=len(result.impacted_objects),
        edge_count=len(result.edges),
        max_depth_reached=max(result.depths.values(), default=0),
    )
