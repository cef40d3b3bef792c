"""Weighted complexity scoring for schema entities.

Turns the graph shape around a node into a single score plus an
itemized breakdown. Each feature measures one aspect of the graph around
the node (for example how many views filter by a field) as a raw
number. The raw value times the feature's static weight is its
contribution, and contributions are aggregated (summed by default)
into the score.

Features only see edges allowed by the ``complexity`` edge policy
context (sorts excluded) merged with caller overrides.

Example:
    result = compute_complexity(graph, graph.find_node("field", "field_7"))
    result.score       # -> 9.5
    result.breakdown   # -> [ComplexityBreakdownItem(...), ...]
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Iterable, Literal, Sequence

import structlog

from .config import GraphConfig
from .policy import EdgeFilter
from .schemas import VALID_NODE_KINDS, Edge, NodeRef, to_node_id
from .store import DependencyGraph

logger = structlog.get_logger(__name__)

EdgeAllowed = Callable[[Edge], bool]

Aggregation = Callable[[list[float]], float]


def owning_object_key(graph: DependencyGraph, node: NodeRef) -> str | None:
    """Key of the object that contains a field, or None if unknown."""
    if node.kind != "field":
        return None
    for edge in graph.get_incoming(node):
        if edge.type == "contains" and edge.source.kind == "object":
            return edge.source.key
    return None


# ---------------------------------------------------------------------------
# Feature strategy
# ---------------------------------------------------------------------------


class ComplexityFeature(ABC):
    """One weighted measurement of graph shape around a node.

    Subclasses implement ``contributing_edges``; the raw value defaults
    to the number of contributing edges. Features whose raw value is not
    a count (chain depths) override ``compute`` as well.
    """

    def __init__(
        self,
        feature_id: str,
        label: str,
        weight: float,
        applies_to: Iterable[str],
    ) -> None:
        kinds = frozenset(applies_to)
        if not kinds:
            raise ValueError(f"Feature {feature_id!r} must apply to at least one kind")
        unknown = kinds - VALID_NODE_KINDS
        if unknown:
            raise ValueError(
                f"Feature {feature_id!r} applies to unknown kinds {sorted(unknown)}"
            )
        if not math.isfinite(weight):
            raise ValueError(f"Feature {feature_id!r} weight must be finite")
        self.feature_id = feature_id
        self.label = label
        self.weight = weight
        self.applies_to = kinds

    def applies(self, node: NodeRef) -> bool:
        return node.kind in self.applies_to

    @abstractmethod
    def contributing_edges(
        self, graph: DependencyGraph, node: NodeRef, is_allowed: EdgeAllowed
    ) -> list[Edge]:
        """Edges that produce this feature's raw value for ``node``."""

    def compute(
        self, graph: DependencyGraph, node: NodeRef, is_allowed: EdgeAllowed
    ) -> float:
        """Raw (unweighted) value of the feature for ``node``."""
        return len(self.contributing_edges(graph, node, is_allowed))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.feature_id!r}, weight={self.weight})"


class EdgeCountFeature(ComplexityFeature):
    """Counts adjacent edges of one type, optionally narrowed.

    Args:
        direction: "in" counts edges pointing at the node (who depends on
            it), "out" counts edges leaving it (what it depends on).
        edge_type: Edge type to count.
        neighbour_kind: Only count edges whose other endpoint has this kind.
        rule_category: Only count ``uses`` edges with this rule category.
        cross_object: Only count edges whose other endpoint belongs to a
            different object than the node.
    """

    def __init__(
        self,
        feature_id: str,
        label: str,
        weight: float,
        applies_to: Iterable[str],
        *,
        direction: Literal["in", "out"],
        edge_type: str,
        neighbour_kind: str | None = None,
        rule_category: str | None = None,
        cross_object: bool = False,
    ) -> None:
        super().__init__(feature_id, label, weight, applies_to)
        self.direction = direction
        self.edge_type = edge_type
        self.neighbour_kind = neighbour_kind
        self.rule_category = rule_category
        self.cross_object = cross_object

    def contributing_edges(
        self, graph: DependencyGraph, node: NodeRef, is_allowed: EdgeAllowed
    ) -> list[Edge]:
        if self.direction == "in":
            candidates = graph.get_incoming(node)
        else:
            candidates = graph.get_outgoing(node)

        own_object = owning_object_key(graph, node) if self.cross_object else None
        matched: list[Edge] = []
        for edge in candidates:
            if edge.type != self.edge_type or not is_allowed(edge):
                continue
            other = edge.source if self.direction == "in" else edge.target
            if self.neighbour_kind is not None and other.kind != self.neighbour_kind:
                continue
            if self.rule_category is not None and edge.rule_category != self.rule_category:
                continue
            if self.cross_object and owning_object_key(graph, other) == own_object:
                continue
            matched.append(edge)
        return matched


class ChainDepthFeature(ComplexityFeature):
    """Depth of the derivation chain leading into a node.

    Walks incoming ``derivesFrom`` edges depth-first with an explicit
    stack. Each dependent is counted at the depth where the walk first
    reaches it and is never revisited, so a shortcut edge (C derives from
    both A and B, B from A) can hide a longer path. The walk terminates
    on cyclic (malformed) schemas instead of failing.

    Args:
        cross_object_cost: Steps charged for a hop between fields of two
            different known objects; ordinary hops cost one step.
    """

    def __init__(
        self,
        feature_id: str,
        label: str,
        weight: float,
        applies_to: Iterable[str] = ("field",),
        *,
        cross_object_cost: int = 1,
    ) -> None:
        super().__init__(feature_id, label, weight, applies_to)
        if cross_object_cost < 1:
            raise ValueError("cross_object_cost must be >= 1")
        self.cross_object_cost = cross_object_cost

    def _walk(
        self, graph: DependencyGraph, node: NodeRef, is_allowed: EdgeAllowed
    ) -> tuple[int, list[Edge]]:
        visited = {to_node_id(node)}
        stack: list[tuple[NodeRef, int, str | None]] = [
            (node, 0, owning_object_key(graph, node))
        ]
        walked: list[Edge] = []
        deepest = 0
        while stack:
            current, depth, current_object = stack.pop()
            deepest = max(deepest, depth)
            for edge in graph.get_incoming(current):
                if edge.type != "derivesFrom" or not is_allowed(edge):
                    continue
                dependent_id = edge.source_id
                if dependent_id in visited:
                    continue
                visited.add(dependent_id)
                walked.append(edge)
                dependent_object = owning_object_key(graph, edge.source)
                step = 1
                if (
                    current_object
                    and dependent_object
                    and dependent_object != current_object
                ):
                    step = self.cross_object_cost
                stack.append((edge.source, depth + step, dependent_object))
        return deepest, walked

    def contributing_edges(
        self, graph: DependencyGraph, node: NodeRef, is_allowed: EdgeAllowed
    ) -> list[Edge]:
        return self._walk(graph, node, is_allowed)[1]

    def compute(
        self, graph: DependencyGraph, node: NodeRef, is_allowed: EdgeAllowed
    ) -> float:
        return self._walk(graph, node, is_allowed)[0]


@lru_cache
def default_features(cross_object_hop_cost: int = 2) -> tuple[ComplexityFeature, ...]:
    """The built-in feature set.

    Record rules weigh the most among rule usages and display rules the
    least; cross-object derivations weigh more than local ones.
    """
    field_only = ("field",)
    return (
        EdgeCountFeature(
            "field.incoming.derivesFrom", "Derived-by fields", 2, field_only,
            direction="in", edge_type="derivesFrom", neighbour_kind="field",
        ),
        EdgeCountFeature(
            "field.incoming.crossObjectDerivesFrom", "Cross-object derived-by fields",
            3, field_only,
            direction="in", edge_type="derivesFrom", neighbour_kind="field",
            cross_object=True,
        ),
        EdgeCountFeature(
            "field.incoming.viewFilters", "Views filtering by field", 1.5, field_only,
            direction="in", edge_type="filtersBy", neighbour_kind="view",
        ),
        EdgeCountFeature(
            "field.incoming.viewSorts", "Views sorting by field", 0.25, field_only,
            direction="in", edge_type="sortsBy", neighbour_kind="view",
        ),
        EdgeCountFeature(
            "field.incoming.usedInRules", "Rules/values using field", 1, field_only,
            direction="in", edge_type="uses",
        ),
        EdgeCountFeature(
            "field.incoming.usedInRecordRules", "Record rules using field", 2.5,
            field_only,
            direction="in", edge_type="uses", rule_category="record",
        ),
        EdgeCountFeature(
            "field.incoming.usedInDisplayRules", "Display rules using field", 0.25,
            field_only,
            direction="in", edge_type="uses", rule_category="display",
        ),
        EdgeCountFeature(
            "field.incoming.usedInEmailRules", "Email rules using field", 0.5,
            field_only,
            direction="in", edge_type="uses", rule_category="email",
        ),
        ChainDepthFeature("field.chainDepth", "Derivation chain depth", 3),
        EdgeCountFeature(
            "field.outgoing.crossObjectDerivesFrom", "Cross-object dependencies", 2,
            field_only,
            direction="out", edge_type="derivesFrom", neighbour_kind="field",
            cross_object=True,
        ),
        EdgeCountFeature(
            "field.outgoing.aggregatesConnections", "Aggregates over connections", 3,
            field_only,
            direction="out", edge_type="connectsTo", neighbour_kind="object",
        ),
        ChainDepthFeature(
            "field.weightedChainDepth", "Weighted chain depth (cross-object heavier)",
            3.5, cross_object_cost=cross_object_hop_cost,
        ),
        EdgeCountFeature(
            "view.filterCount", "Filter rules", 1, ("view",),
            direction="out", edge_type="filtersBy",
        ),
        EdgeCountFeature(
            "view.sortCount", "Sort rules", 0, ("view",),
            direction="out", edge_type="sortsBy",
        ),
    )


BUILTIN_FEATURES: tuple[ComplexityFeature, ...] = default_features()


# ---------------------------------------------------------------------------
# Configuration and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComplexityConfig:
    """Caller overrides for complexity scoring.

    Attributes:
        edge_inclusion: Allow-list of edge types features may see.
        edge_exclusion: Extra exclusions on top of the ``complexity``
            context defaults (sortsBy).
        features: Feature set to evaluate (None = built-in features).
        aggregation: Combines weighted values into the score (None = sum).
    """

    edge_inclusion: Sequence[str] | None = None
    edge_exclusion: Sequence[str] | None = None
    features: Sequence[ComplexityFeature] | None = None
    aggregation: Aggregation | None = None

    def edge_filter(self) -> EdgeFilter:
        return EdgeFilter.for_context("complexity", self.edge_inclusion, self.edge_exclusion)


@dataclass(frozen=True)
class ComplexityBreakdownItem:
    """One feature's contribution to a score."""

    feature_id: str
    label: str
    raw: float
    weight: float
    weighted: float


@dataclass
class ComplexityResult:
    """Score and per-feature breakdown for one node."""

    node: NodeRef
    score: float
    breakdown: list[ComplexityBreakdownItem] = field(default_factory=list)

    def item(self, feature_id: str) -> ComplexityBreakdownItem | None:
        for item in self.breakdown:
            if item.feature_id == feature_id:
                return item
        return None


@dataclass
class ObjectComplexityRollup:
    """An object's complexity as the flat sum of its fields' scores."""

    object: NodeRef
    total_score: float
    field_results: list[ComplexityResult] = field(default_factory=list)


@dataclass(frozen=True)
class FeatureEdgeContribution:
    """The edges behind one feature's raw value, for drill-down."""

    feature_id: str
    label: str
    weight: float
    edges: list[Edge]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _resolve_features(
    config: ComplexityConfig, graph_config: GraphConfig | None
) -> Sequence[ComplexityFeature]:
    if config.features is not None:
        return config.features
    graph_config = graph_config or GraphConfig()
    return default_features(graph_config.cross_object_hop_cost)


def compute_complexity(
    graph: DependencyGraph,
    node: NodeRef,
    config: ComplexityConfig | None = None,
    graph_config: GraphConfig | None = None,
) -> ComplexityResult:
    """Score one node.

    Args:
        graph: The graph store.
        node: Node to score. Only features applying to its kind run.
        config: Edge overrides, feature set and aggregation.
        graph_config: Engine configuration (cross-object hop cost).

    Returns:
        The aggregated score and the breakdown in feature order.
    """
    config = config or ComplexityConfig()
    is_allowed = config.edge_filter()
    aggregate = config.aggregation or sum

    breakdown: list[ComplexityBreakdownItem] = []
    for feature in _resolve_features(config, graph_config):
        if not feature.applies(node):
            continue
        raw = feature.compute(graph, node, is_allowed)
        breakdown.append(
            ComplexityBreakdownItem(
                feature_id=feature.feature_id,
                label=feature.label,
                raw=raw,
                weight=feature.weight,
                weighted=raw * feature.weight,
            )
        )

    score = aggregate([item.weighted for item in breakdown])
    return ComplexityResult(node=node, score=score, breakdown=breakdown)


def compute_object_complexity_rollup(
    graph: DependencyGraph,
    object_key: str,
    config: ComplexityConfig | None = None,
    graph_config: GraphConfig | None = None,
) -> ObjectComplexityRollup:
    """Sum the complexity of every field an object contains.

    This is a flat sum over ``contains`` members, not a traversal.
    Unknown objects yield a placeholder node with a zero total.
    """
    obj = graph.find_node("object", object_key)
    if obj is None:
        return ObjectComplexityRollup(object=NodeRef("object", object_key), total_score=0)

    field_results = [
        compute_complexity(graph, graph.get_node(edge.target_id), config, graph_config)
        for edge in graph.get_outgoing(obj)
        if edge.type == "contains" and edge.target.kind == "field"
    ]
    total = sum(r.score for r in field_results)

    logger.debug(
        "Object complexity rollup",
        object=to_node_id(obj),
        field_count=len(field_results),
        total_score=total,
    )
    return ObjectComplexityRollup(object=obj, total_score=total, field_results=field_results)


def get_feature_edge_contributions(
    graph: DependencyGraph,
    node: NodeRef,
    config: ComplexityConfig | None = None,
    graph_config: GraphConfig | None = None,
) -> list[FeatureEdgeContribution]:
    """List, per applicable feature, the edges that produced its raw value."""
    config = config or ComplexityConfig()
    is_allowed = config.edge_filter()
    return [
        FeatureEdgeContribution(
            feature_id=feature.feature_id,
            label=feature.label,
            weight=feature.weight,
            edges=feature.contributing_edges(graph, node, is_allowed),
        )
        for feature in _resolve_features(config, graph_config)
        if feature.applies(node)
    ]


def rank_fields_by_complexity(
    graph: DependencyGraph,
    config: ComplexityConfig | None = None,
    top_n: int | None = None,
    graph_config: GraphConfig | None = None,
) -> list[ComplexityResult]:
    """Score every field, highest first (ties keep insertion order)."""
    results = [
        compute_complexity(graph, node, config, graph_config)
        for node in graph.get_all_nodes()
        if node.kind == "field"
    ]
    results.sort(key=lambda r: r.score, reverse=True)
    return results if top_n is None else results[:top_n]
