"""Dependency graph engine for declarative application schemas.

Models objects, fields, scenes and views as a directed multigraph whose
edges point from a dependent entity to what it depends on, and answers
three questions over it: what is impacted if a field changes (ripple),
how complex a field or object is (weighted features), and whether there
are circular or layered dependencies (SCC, topological order, depth).

Components:
- DependencyGraph: Append-only graph store with adjacency indexes
- EdgeFilter / is_edge_allowed: Edge visibility per consumer context
- strongly_connected_components / topological_sort: Cycle detection and layering
- build_field_ripple / build_object_ripple: Breadth-first impact analysis
- compute_complexity / compute_object_complexity_rollup: Weighted scoring
- GraphCache / build_graph: Injected cache and graph document loader
- GraphConfig: Pydantic settings with GRAPH_ prefix
"""

from schemagraph.graph.algorithms import (
    compute_depth_layers,
    dependency_order,
    derivation_depths,
    find_cycles,
    group_by_depth,
    strongly_connected_components,
    topological_sort,
)
from schemagraph.graph.cache import GraphCache
from schemagraph.graph.complexity import (
    BUILTIN_FEATURES,
    ChainDepthFeature,
    ComplexityBreakdownItem,
    ComplexityConfig,
    ComplexityFeature,
    ComplexityResult,
    EdgeCountFeature,
    FeatureEdgeContribution,
    ObjectComplexityRollup,
    compute_complexity,
    compute_object_complexity_rollup,
    get_feature_edge_contributions,
    rank_fields_by_complexity,
)
from schemagraph.graph.config import GraphConfig
from schemagraph.graph.errors import CyclicGraphError, GraphDocumentError, GraphError
from schemagraph.graph.loader import build_graph, load_graph_document
from schemagraph.graph.policy import (
    EdgeFilter,
    get_default_exclusions_for,
    get_displayed_endpoints,
    is_edge_allowed,
    should_display_edge_in_ripple,
)
from schemagraph.graph.ripple import (
    FieldRippleOptions,
    FieldRippleResult,
    build_field_ripple,
    build_object_ripple,
    summarize_field_ripple,
)
from schemagraph.graph.rules import RuleIndex, build_rule_index
from schemagraph.graph.schemas import (
    VALID_EDGE_TYPES,
    VALID_NODE_KINDS,
    ConnectionDetails,
    DerivationDetails,
    Edge,
    FilterDetails,
    NodeRef,
    RuleDetails,
    SortDetails,
    to_node_id,
)
from schemagraph.graph.serialize import Subgraph, build_subgraph
from schemagraph.graph.stats import GraphStats, compute_stats
from schemagraph.graph.store import (
    DependencyGraph,
    depends_on,
    impact,
    paths_to,
    where_used,
)
from schemagraph.graph.usage import analyze_field_usage, build_neighborhood_subgraph

__all__ = [
    "BUILTIN_FEATURES",
    "ChainDepthFeature",
    "ComplexityBreakdownItem",
    "ComplexityConfig",
    "ComplexityFeature",
    "ComplexityResult",
    "ConnectionDetails",
    "CyclicGraphError",
    "DependencyGraph",
    "DerivationDetails",
    "Edge",
    "EdgeCountFeature",
    "EdgeFilter",
    "FeatureEdgeContribution",
    "FieldRippleOptions",
    "FieldRippleResult",
    "FilterDetails",
    "GraphCache",
    "GraphConfig",
    "GraphDocumentError",
    "GraphError",
    "GraphStats",
    "NodeRef",
    "ObjectComplexityRollup",
    "RuleDetails",
    "RuleIndex",
    "SortDetails",
    "Subgraph",
    "VALID_EDGE_TYPES",
    "VALID_NODE_KINDS",
    "analyze_field_usage",
    "build_field_ripple",
    "build_graph",
    "build_neighborhood_subgraph",
    "build_object_ripple",
    "build_rule_index",
    "build_subgraph",
    "compute_complexity",
    "compute_depth_layers",
    "compute_object_complexity_rollup",
    "compute_stats",
    "dependency_order",
    "depends_on",
    "derivation_depths",
    "find_cycles",
    "get_default_exclusions_for",
    "get_displayed_endpoints",
    "get_feature_edge_contributions",
    "group_by_depth",
    "impact",
    "is_edge_allowed",
    "load_graph_document",
    "paths_to",
    "rank_fields_by_complexity",
    "should_display_edge_in_ripple",
    "strongly_connected_components",
    "summarize_field_ripple",
    "to_node_id",
    "topological_sort",
    "where_used",
]
